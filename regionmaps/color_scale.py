"""
Discrete choropleth color scale.

Six classes:
    0: No data / zero   -> Gray
    1: Very low         -> Red
    2: Low              -> Orange
    3: Moderate         -> Yellow
    4: High             -> Light Green
    5: Very high        -> Green
"""

import math
from typing import List, Optional, Sequence, Tuple

Domain = Tuple[float, float]

COLOR_SCALE: Tuple[str, ...] = (
    "#D0D0D0",  # 0: no data or zero
    "#C0392B",  # 1: very low
    "#E67E22",  # 2: low
    "#F1C40F",  # 3: moderate
    "#82E0AA",  # 4: high
    "#27AE60",  # 5: very high
)

NO_DATA_CLASS = 0
FALLBACK_CLASS = 3
BUCKETS = 5


def _is_number(value: object) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)  # type: ignore[arg-type]
    except TypeError:
        return False


def color_class(value: Optional[float], domain: Optional[Domain]) -> int:
    """
    Map a value and its normalization domain to a class in 0..5.

    Zero is treated as absence of data, not as the lowest real value.
    A degenerate domain (max <= min) yields the middle class.
    """
    if not _is_number(value) or domain is None:
        return NO_DATA_CLASS
    lo, hi = domain
    if not (_is_number(lo) and _is_number(hi)):
        return NO_DATA_CLASS
    if value == 0:
        return NO_DATA_CLASS
    if hi <= lo:
        return FALLBACK_CLASS

    t = (value - lo) / (hi - lo)  # type: ignore[operator]
    t = min(1.0, max(0.0, t))
    return min(BUCKETS, max(1, math.ceil(t * BUCKETS)))


def choropleth_color(
    value: Optional[float],
    domain: Optional[Domain],
    palette: Sequence[str] = COLOR_SCALE,
) -> str:
    """Color token for a value; ``palette`` must hold exactly six colors."""
    if len(palette) != BUCKETS + 1:
        raise ValueError(f"Palette must have {BUCKETS + 1} colors, got {len(palette)}")
    return palette[color_class(value, domain)]


def legend_entries(
    domain: Optional[Domain], palette: Sequence[str] = COLOR_SCALE
) -> List[Tuple[str, str]]:
    """(range label, color) pairs for the five value buckets plus no-data."""
    entries: List[Tuple[str, str]] = []
    if domain is not None and domain[1] > domain[0]:
        lo, hi = domain
        step = (hi - lo) / BUCKETS
        for bucket in range(1, BUCKETS + 1):
            start = lo + step * (bucket - 1)
            end = lo + step * bucket
            entries.append((f"{start:,.1f} – {end:,.1f}", palette[bucket]))
    elif domain is not None:
        entries.append((f"{domain[0]:,.1f}", palette[FALLBACK_CLASS]))
    entries.append(("No data", palette[NO_DATA_CLASS]))
    return entries
