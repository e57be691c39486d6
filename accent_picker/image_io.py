# accent_picker/image_io.py
from __future__ import annotations

import io
from pathlib import Path
from typing import Any, Union

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from .core_types import (
    PackedRGB,
    PixelSource,
    U8Image,
    assert_u8_image_rgb,
    pack_rgb,
    unpack_rgb,
)
from .utils import warn

"""
Pixel sources and image I/O (RGB in sRGB), plus accent preview rendering.
"""

try:
    from PIL import ImageCms  # ICC conversion if profile present
except ImportError:  # pragma: no cover
    ImageCms = None  # type: ignore[assignment]


class ArrayPixelSource:
    """PixelSource over a uint8 (H, W, 3|4) array. Alpha is ignored."""

    def __init__(self, array: np.ndarray) -> None:
        arr = assert_u8_image_rgb(np.asarray(array))
        self._rgb: U8Image = arr[..., :3]

    @classmethod
    def from_path(cls, path: Path) -> "ArrayPixelSource":
        return cls(load_image_rgb(path))

    @property
    def width(self) -> int:
        return int(self._rgb.shape[1])

    @property
    def height(self) -> int:
        return int(self._rgb.shape[0])

    @property
    def array(self) -> U8Image:
        return self._rgb

    def get_pixel(self, x: int, y: int) -> PackedRGB:
        r, g, b = self._rgb[y, x]
        return pack_rgb(r, g, b)

    def get_row_samples(self, y: int, stride: int) -> U8Image:
        """Row y at columns 0, stride, 2*stride, ... as uint8 [K,3]."""
        return self._rgb[y, ::stride]


def row_samples(source: PixelSource, y: int, stride: int) -> U8Image:
    """Sampled row as uint8 [K,3], using the source's fast path when it has one."""
    fast = getattr(source, "get_row_samples", None)
    if callable(fast):
        return np.asarray(fast(y, stride), dtype=np.uint8)
    return np.array(
        [unpack_rgb(source.get_pixel(x, y)) for x in range(0, source.width, stride)],
        dtype=np.uint8,
    ).reshape(-1, 3)


def as_pixel_source(image: Any) -> PixelSource:
    """Wrap ndarrays and PIL images; pass PixelSource objects through."""
    if isinstance(image, Image.Image):
        return ArrayPixelSource(np.array(image.convert("RGB"), dtype=np.uint8))
    if isinstance(image, np.ndarray):
        return ArrayPixelSource(image)
    if isinstance(image, PixelSource):
        return image
    raise TypeError(f"unsupported pixel source: {type(image).__name__}")


def _convert_to_srgb_rgb(im: Image.Image) -> Image.Image:
    im = ImageOps.exif_transpose(im)
    icc_bytes = im.info.get("icc_profile")

    if icc_bytes and ImageCms is not None:
        try:
            src_prof = ImageCms.ImageCmsProfile(io.BytesIO(icc_bytes))
            dst_prof = ImageCms.createProfile("sRGB")
            im2 = ImageCms.profileToProfile(
                im.convert("RGB"),
                src_prof,
                dst_prof,
                renderingIntent=ImageCms.Intent.PERCEPTUAL,
                outputMode="RGB",
            )
            if im2 is None:
                return im.convert("RGB")
            return im2
        except (ImageCms.PyCMSError, OSError, ValueError) as exc:
            warn(f"ICC profile not applied, using raw RGB: {exc}")
            return im.convert("RGB")

    return im.convert("RGB")


def load_image_rgb(path: Path) -> U8Image:
    """Load any Pillow-readable image as uint8 (H, W, 3) sRGB."""
    with Image.open(path) as im0:
        im = _convert_to_srgb_rgb(im0)
    return np.array(im, dtype=np.uint8)


def render_preview(
    image: Union[np.ndarray, Image.Image], accent: PackedRGB, pad: int = 32
) -> Image.Image:
    """Image centred on a canvas filled with the accent colour."""
    if isinstance(image, np.ndarray):
        image = Image.fromarray(assert_u8_image_rgb(image)[..., :3])
    im = image.convert("RGBA")
    pad = max(0, int(pad))
    canvas = Image.new(
        "RGBA", (im.width + 2 * pad, im.height + 2 * pad), (*unpack_rgb(accent), 255)
    )
    canvas.alpha_composite(im, (pad, pad))
    return canvas.convert("RGB")


def save_preview(path: Path, preview: Image.Image) -> Path:
    if path.suffix.lower() != ".png":
        path = path.with_suffix(".png")
    preview.save(path)
    return path


def is_image_file(path: Path) -> bool:
    try:
        with Image.open(path) as im:
            im.seek(0)
            im.load()
        return True
    except (UnidentifiedImageError, OSError):
        return False


__all__ = [
    "ArrayPixelSource",
    "row_samples",
    "as_pixel_source",
    "load_image_rgb",
    "render_preview",
    "save_preview",
    "is_image_file",
]
