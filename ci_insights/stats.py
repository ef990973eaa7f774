"""Numeric helpers shared by the aggregators."""

PERCENTILES = (50, 95, 99)


def percentiles(values: list[float]) -> tuple[float, float, float]:
    """Return (p50, p95, p99) using floor-indexed rank selection.

    Empty input gives zeros, a single value is returned for all three.
    """
    if not values:
        return (0.0, 0.0, 0.0)

    ordered = sorted(values)
    n = len(ordered)
    if n == 1:
        return (ordered[0], ordered[0], ordered[0])

    p50, p95, p99 = (ordered[min(n * pct // 100, n - 1)] for pct in PERCENTILES)
    return (p50, p95, p99)


def rate(count: int, total: int) -> float:
    """Percentage of `count` in `total`; 0.0 when there is nothing to count."""
    if total <= 0:
        return 0.0
    return count / total * 100.0


def success_rate(successful: int, total: int) -> float:
    return successful / max(total, 1) * 100.0
