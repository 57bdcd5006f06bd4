"""
Parity diff between the v1 summary and the v2 envelope.

Only a few fields are tracked: total volume, the number of personal records
and the length of the main (volume) series. A field missing on either side
is not a mismatch.
"""
from typing import Optional, List, Dict, Any, Mapping

from backend.core.metrics.series_adapter import resolve_series

MISMATCH_TOTAL_VOLUME = "totals.totalVolumeKg"
MISMATCH_PRS_LENGTH = "prs.length"
MISMATCH_SERIES_VOLUME_LENGTH = "series.volume.length"


def _total_volume(payload: Mapping[str, Any]) -> Optional[float]:
    totals = payload.get("totals")
    if not isinstance(totals, Mapping):
        return None
    value = totals.get("totalVolumeKg")
    if value is None:
        value = totals.get("total_volume_kg")
    return float(value) if isinstance(value, (int, float)) else None


def _prs_length(payload: Mapping[str, Any]) -> Optional[int]:
    prs = payload.get("prs")
    return len(prs) if isinstance(prs, (list, tuple)) else None


def _series_volume_length(payload: Mapping[str, Any]) -> Optional[int]:
    series = payload.get("series")
    if not isinstance(series, Mapping):
        return None
    return len(resolve_series(series, "volume"))


def summarize_parity_diff(
    v1: Mapping[str, Any],
    v2: Mapping[str, Any],
) -> Optional[Dict[str, Any]]:
    """
    Compare the tracked fields of a v1 and a v2 payload.

    Returns:
        None when nothing differs, otherwise a dict with ``mismatches``
        (dotted paths) plus a ``{v1, v2}`` pair for each mismatched field
        under ``totals``, ``prsLength`` and ``seriesVolumeLen``
    """
    mismatches: List[str] = []
    diff: Dict[str, Any] = {}

    v1_volume, v2_volume = _total_volume(v1), _total_volume(v2)
    if v1_volume is not None and v2_volume is not None:
        if v1_volume != v2_volume:
            mismatches.append(MISMATCH_TOTAL_VOLUME)
            diff["totals"] = {"v1": v1_volume, "v2": v2_volume}

    v1_prs, v2_prs = _prs_length(v1), _prs_length(v2)
    if v1_prs is not None and v2_prs is not None and v1_prs != v2_prs:
        mismatches.append(MISMATCH_PRS_LENGTH)
        diff["prsLength"] = {"v1": v1_prs, "v2": v2_prs}

    v1_len, v2_len = _series_volume_length(v1), _series_volume_length(v2)
    if v1_len is not None and v2_len is not None and v1_len != v2_len:
        mismatches.append(MISMATCH_SERIES_VOLUME_LENGTH)
        diff["seriesVolumeLen"] = {"v1": v1_len, "v2": v2_len}

    if not mismatches:
        return None
    return {"mismatches": mismatches, **diff}
