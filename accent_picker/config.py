# accent_picker/config.py
from __future__ import annotations

"""
Extraction configuration.

ExtractionConfig is an immutable, validated snapshot. The picker swaps in a
new snapshot on every successful setter call; requests keep whichever
snapshot they were created with.
"""

import dataclasses
from dataclasses import dataclass

from .constants import (
    DEFAULT_ACCURACY,
    DEFAULT_HORIZONTAL_BORDER_DIVISOR,
    DEFAULT_MIN_MERGE_DISTANCE,
    DEFAULT_VERTICAL_BORDER_DIVISOR,
)
from .errors import InvalidConfiguration


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_accuracy(accuracy: int) -> int:
    if not _is_int(accuracy) or accuracy <= 0:
        raise InvalidConfiguration(f"accuracy should be > 0, got {accuracy!r}")
    return accuracy


def validate_border_divisor(divisor: int, name: str = "border divisor") -> int:
    if not _is_int(divisor) or divisor <= 1:
        raise InvalidConfiguration(f"{name} should be > 1, got {divisor!r}")
    return divisor


def validate_merge_distance(distance: float) -> float:
    if isinstance(distance, bool) or not isinstance(distance, (int, float)):
        raise InvalidConfiguration(f"merge distance should be a number, got {distance!r}")
    if distance != distance or distance < 0:
        raise InvalidConfiguration(f"merge distance should be >= 0, got {distance!r}")
    return float(distance)


@dataclass(frozen=True)
class ExtractionConfig:
    """
    Tunables for one extraction pass.

    accuracy                  : sampling stride in pixels (both axes)
    vertical_border_divisor   : left/right borders are width // divisor wide
    horizontal_border_divisor : top/bottom borders are height // divisor tall
    min_merge_distance        : CIEDE2000 distance at or below which colours share a group
    """

    accuracy: int = DEFAULT_ACCURACY
    vertical_border_divisor: int = DEFAULT_VERTICAL_BORDER_DIVISOR
    horizontal_border_divisor: int = DEFAULT_HORIZONTAL_BORDER_DIVISOR
    min_merge_distance: float = DEFAULT_MIN_MERGE_DISTANCE

    def __post_init__(self) -> None:
        validate_accuracy(self.accuracy)
        validate_border_divisor(self.vertical_border_divisor, "vertical border divisor")
        validate_border_divisor(
            self.horizontal_border_divisor, "horizontal border divisor"
        )
        object.__setattr__(
            self, "min_merge_distance", validate_merge_distance(self.min_merge_distance)
        )

    def replace(self, **changes: object) -> "ExtractionConfig":
        """Validated copy with the given fields changed."""
        return dataclasses.replace(self, **changes)  # type: ignore[arg-type]

    def as_pairs(self) -> list[tuple[str, object]]:
        """(label, value) pairs for config log lines."""
        return [
            ("Accuracy", self.accuracy),
            ("V-border div", self.vertical_border_divisor),
            ("H-border div", self.horizontal_border_divisor),
            ("Merge dE", self.min_merge_distance),
        ]


__all__ = [
    "ExtractionConfig",
    "validate_accuracy",
    "validate_border_divisor",
    "validate_merge_distance",
]
