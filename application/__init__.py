"""
Application Layer for the Workout Metrics API.

This package contains:
- ports/: Abstract repository interfaces (what the metrics engine needs)
"""
