# accent_picker/core_types.py
from __future__ import annotations

"""
Core type aliases, the pixel-access contract, and packed-colour helpers.
"""

from typing import Callable, Protocol, Tuple, Union, runtime_checkable

import numpy as np
from numpy.typing import NDArray

# Basic aliases

RGBTuple = Tuple[int, int, int]
LabTuple = Tuple[float, float, float]
PackedRGB = int  # 0xRRGGBB
HexStr = str

U8Image = NDArray[np.uint8]  # (H, W, 3)
Lab = NDArray[np.float32]  # (..., 3) CIE Lab

# Callable signatures

ColourCallback = Callable[[PackedRGB], None]  # receives the found colour
DeliverySink = Callable[[Callable[[], None]], None]  # runs the callback somewhere


# Pixel access contract


@runtime_checkable
class PixelSource(Protocol):
    """
    Read-only random access to 8-bit RGB samples.

    get_pixel must be side-effect free and safe to call from several
    threads at once.
    """

    @property
    def width(self) -> int: ...

    @property
    def height(self) -> int: ...

    def get_pixel(self, x: int, y: int) -> PackedRGB: ...


# Small helpers


def pack_rgb(r: int, g: int, b: int) -> PackedRGB:
    """RGB components to a packed 0xRRGGBB int."""
    return ((int(r) & 0xFF) << 16) | ((int(g) & 0xFF) << 8) | (int(b) & 0xFF)


def unpack_rgb(value: PackedRGB) -> RGBTuple:
    """Packed 0xRRGGBB int to an (r, g, b) tuple. Bits above 24 are ignored."""
    return ((value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF)


def rgb_to_hex(rgb: Union[RGBTuple, PackedRGB]) -> HexStr:
    """RGB tuple or packed int to lowercase hex string '#rrggbb'."""
    if isinstance(rgb, (int, np.integer)):
        rgb = unpack_rgb(int(rgb))
    return f"#{rgb[0]:02x}{rgb[1]:02x}{rgb[2]:02x}"


def hex_to_rgb(hex_str: str) -> RGBTuple:
    """Parse '#rgb' or '#rrggbb' (case-insensitive) into an RGB tuple."""
    s = hex_str.strip().lower()
    if not s.startswith("#"):
        raise ValueError("hex must start with '#'")
    if len(s) == 4:
        r, g, b = s[1], s[2], s[3]
        s = f"#{r}{r}{g}{g}{b}{b}"
    if len(s) != 7:
        raise ValueError("hex must be '#rrggbb' or '#rgb'")
    return (int(s[1:3], 16), int(s[3:5], 16), int(s[5:7], 16))


def assert_u8_image_rgb(image: np.ndarray) -> U8Image:
    """Validate a uint8 (H,W,3 or 4) image and return it typed as U8Image."""
    if image.dtype != np.uint8 or image.ndim != 3 or image.shape[-1] < 3:
        raise TypeError("expected uint8 (H,W,3/4) image")
    return image  # type: ignore[return-value]


__all__ = [
    # aliases / types
    "RGBTuple",
    "LabTuple",
    "PackedRGB",
    "HexStr",
    "U8Image",
    "Lab",
    "ColourCallback",
    "DeliverySink",
    "PixelSource",
    # helpers
    "pack_rgb",
    "unpack_rgb",
    "rgb_to_hex",
    "hex_to_rgb",
    "assert_u8_image_rgb",
]
