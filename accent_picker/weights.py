# accent_picker/weights.py
from __future__ import annotations

"""
Positional weighting.

Pixels in the corner bands weigh the most, border bands less, and the
interior least. The multipliers are normalised so the weighted mass of each
zone stays comparable to the image area.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ZoneMultipliers:
    base: float = 1.0
    border: float = 1.0
    corner: float = 1.0


def _ratio(numerator: float, denominator: float) -> float:
    # Zero-width borders or an empty interior leave the numerator as-is.
    return numerator / denominator if denominator != 0 else numerator


def compute_multipliers(
    border_width: int, border_height: int, width: int, height: int
) -> ZoneMultipliers:
    """
    Closed-form zone multipliers for an image and its border sizes.

    Args:
      border_width : width of the left/right border bands in pixels
      border_height: height of the top/bottom border bands in pixels
      width, height: image size in pixels
    Returns:
      ZoneMultipliers(base, border, corner) with corner >= border >= base
    """
    base = 1.0
    inner_h = height - 2 * border_height
    inner_w = width - 2 * border_width
    border = _ratio(
        base * inner_h * inner_w + 1,
        2 * (inner_h * border_height + inner_w * border_width),
    )
    corner = _ratio(
        border * (inner_w * border_height + inner_h * border_width) + 1,
        2 * border_height * border_width,
    )
    # corners >= borders >= interior, also when a zone is empty
    border = max(border, base)
    corner = max(corner, border)
    return ZoneMultipliers(base=base, border=border, corner=corner)


def zone_weight(
    x: int,
    y: int,
    width: int,
    height: int,
    h_border: int,
    v_border: int,
    multipliers: ZoneMultipliers,
) -> float:
    """
    Weight for pixel (x, y).

    h_border is the width of the left/right bands, v_border the height of the
    top/bottom bands. Comparisons are strict, so pixels lying exactly on a
    band edge fall through to the border weight unless a corner test holds.
    """
    if (
        (x < h_border and y < v_border)
        or (x > width - h_border and y < v_border)
        or (x < h_border and y > height - v_border)
        or (x > width - h_border and y > height - v_border)
    ):
        return multipliers.corner
    if h_border < x < width - h_border and v_border < y < height - v_border:
        return multipliers.base
    return multipliers.border


__all__ = ["ZoneMultipliers", "compute_multipliers", "zone_weight"]
