# accent_picker/registry.py
from __future__ import annotations

"""
Bounded colour groups.

A worker folds every sampled pixel into a BoundedColourRegistry. Groups are
compared against their founding Lab value only; the registry and each group's
member list are capped by dropping the newer half once the cap is reached.
"""

from dataclasses import dataclass, field
from typing import Generic, Iterator, List, Optional, TypeVar

from .colour_convert import delta_e2000_pair, rgb_to_lab_pixel
from .constants import MAX_GROUP_MEMBERS, MAX_PERMITTED_COLOURS
from .core_types import LabTuple, PackedRGB, unpack_rgb

T = TypeVar("T")


class BoundedColourList(Generic[T]):
    """
    Ordered list with a hard cap.

    After each single-item add, reaching max_size drops indices
    [max_size // 2, max_size). Older low-index entries always survive.
    Bulk adds are rejected so the cap is checked after every item.
    """

    def __init__(self, max_size: int) -> None:
        if max_size < 2:
            raise ValueError("max_size should be >= 2")
        self._max_size = max_size
        self._items: List[T] = []

    @property
    def max_size(self) -> int:
        return self._max_size

    def append(self, item: T) -> None:
        self._items.append(item)
        self._validate_size()

    def insert(self, index: int, item: T) -> None:
        self._items.insert(index, item)
        self._validate_size()

    def extend(self, items: object) -> None:
        raise TypeError("adding a collection is unsupported")

    def __iadd__(self, items: object) -> "BoundedColourList[T]":
        raise TypeError("adding a collection is unsupported")

    def _validate_size(self) -> None:
        if len(self._items) == self._max_size:
            del self._items[self._max_size // 2 : self._max_size]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __getitem__(self, index: int) -> T:
        return self._items[index]

    def __repr__(self) -> str:
        return f"BoundedColourList(max_size={self._max_size}, items={self._items!r})"


@dataclass
class ColourMember:
    """One exact colour inside a group and its accumulated weight."""

    rgb: PackedRGB
    weight: float


@dataclass
class ColourGroup:
    """Perceptual cluster anchored on the Lab value of its first colour."""

    lab: LabTuple
    weight: float
    members: BoundedColourList[ColourMember] = field(
        default_factory=lambda: BoundedColourList(MAX_GROUP_MEMBERS)
    )

    @classmethod
    def founded_by(
        cls,
        rgb: PackedRGB,
        lab: LabTuple,
        weight: float,
        max_members: int = MAX_GROUP_MEMBERS,
    ) -> "ColourGroup":
        group = cls(lab=lab, weight=float(weight), members=BoundedColourList(max_members))
        group.members.append(ColourMember(rgb, float(weight)))
        return group

    def add(self, rgb: PackedRGB, weight: float) -> None:
        """Fold a sample in. Exact rgb matches share a member."""
        self.weight += weight
        for member in self.members:
            if member.rgb == rgb:
                member.weight += weight
                return
        self.members.append(ColourMember(rgb, float(weight)))

    def top_colour(self) -> PackedRGB:
        """Heaviest member colour; the earliest one wins ties."""
        best: Optional[ColourMember] = None
        for member in self.members:
            if best is None or member.weight > best.weight:
                best = member
        if best is None:
            raise ValueError("colour group has no members")
        return best.rgb


class BoundedColourRegistry:
    """Capacity-bounded, insertion-ordered collection of ColourGroup."""

    def __init__(
        self,
        min_merge_distance: float,
        capacity: int = MAX_PERMITTED_COLOURS,
        max_members: int = MAX_GROUP_MEMBERS,
    ) -> None:
        self.min_merge_distance = float(min_merge_distance)
        self._max_members = max_members
        self._groups: BoundedColourList[ColourGroup] = BoundedColourList(capacity)

    @property
    def capacity(self) -> int:
        return self._groups.max_size

    def insert(
        self, rgb: PackedRGB, weight: float, lab: Optional[LabTuple] = None
    ) -> ColourGroup:
        """
        Fold one weighted sample in and return the group that took it.

        The first group (in insertion order) whose founding Lab is within
        min_merge_distance absorbs the sample; otherwise a new group starts.
        """
        if lab is None:
            lab = rgb_to_lab_pixel(*unpack_rgb(rgb))
        for group in self._groups:
            if delta_e2000_pair(lab, group.lab) <= self.min_merge_distance:
                group.add(rgb, weight)
                return group
        group = ColourGroup.founded_by(rgb, lab, weight, self._max_members)
        self._groups.append(group)
        return group

    def best(self) -> Optional[ColourGroup]:
        """Heaviest group, first-encountered on ties. None when empty."""
        best: Optional[ColourGroup] = None
        for group in self._groups:
            if best is None or group.weight > best.weight:
                best = group
        return best

    def __len__(self) -> int:
        return len(self._groups)

    def __iter__(self) -> Iterator[ColourGroup]:
        return iter(self._groups)


__all__ = [
    "BoundedColourList",
    "ColourMember",
    "ColourGroup",
    "BoundedColourRegistry",
]
