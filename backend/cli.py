import json
import argparse
import sys

from application.ports.metrics_repository import WorkoutRecord, SetRecord
from backend.core.metrics.config import MetricsConfig
from backend.core.metrics.engine import compute_metrics_v2


def load_records(data):
    """Build records from an export dict with "workouts" and "sets" lists."""
    if not isinstance(data, dict):
        raise TypeError("export must be a JSON object with \"workouts\" and \"sets\"")
    workouts = [WorkoutRecord(**w) for w in data.get("workouts", [])]
    sets = [SetRecord(**s) for s in data.get("sets", [])]
    return workouts, sets


def main(argv=None):
    parser = argparse.ArgumentParser(description="Compute v2 workout metrics from a JSON export")
    parser.add_argument("input", help="Input JSON file with workouts and sets")
    parser.add_argument("-o", "--output", help="Output JSON file path (default: stdout)")
    parser.add_argument("--no-kpis", action="store_true", help="Disable derived KPIs")
    parser.add_argument("--bodyweight", type=float, help="Include bodyweight loads using this body mass (kg)")

    args = parser.parse_args(argv)

    try:
        with open(args.input, 'r') as f:
            data = json.load(f)

        workouts, sets = load_records(data)
        config = MetricsConfig(
            derived_kpis_enabled=not args.no_kpis,
            include_bodyweight_loads=args.bodyweight is not None,
        )
        output = compute_metrics_v2(workouts, sets, config=config, bodyweight_kg=args.bodyweight)
        result = json.dumps(output.to_dict(), indent=2)

        if args.output:
            with open(args.output, 'w') as f:
                f.write(result)
        else:
            print(result)

    except FileNotFoundError:
        print(f"Error: File not found: {args.input}", file=sys.stderr)
        sys.exit(1)
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON: {e}", file=sys.stderr)
        sys.exit(1)
    except TypeError as e:
        print(f"Error: Invalid record: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
