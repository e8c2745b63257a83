"""Formatting helpers for distance and area readouts. Internal unit is the meter."""

CM_PER_M = 100.0
CM2_PER_M2 = 10_000.0


def format_distance(meters: float) -> str:
    """Human readable length: centimetres below 1 m, two decimals below 10 m."""
    if meters < 1:
        return f"{meters * CM_PER_M:.0f} cm"
    if meters < 10:
        return f"{meters:.2f} m"
    return f"{meters:.1f} m"


def format_area(m2: float) -> str:
    """Human readable area: cm² below 1 m², one decimal below 100 m²."""
    if m2 < 1:
        return f"{m2 * CM2_PER_M2:.0f} cm²"
    if m2 < 100:
        return f"{m2:.1f} m²"
    return f"{m2:.0f} m²"
