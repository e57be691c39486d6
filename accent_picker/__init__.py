# accent_picker/__init__.py
"""
accent_picker package.

Purpose:
  Pick one representative accent colour for an image, suitable as a
  background behind it. See pick_accent.py for the CLI.

Public API:
  AccentPicker     : configuration holder; generate / generate_async / generate_on_executor.
  ExtractionConfig : immutable, validated tunables.
  Request          : one extraction pass (row bands, workers, aggregation).
  colour_convert   : sRGB -> Lab and CIEDE2000.
  registry         : bounded colour groups.
  weights          : corner / border / interior multipliers.
  image_io         : pixel sources, Pillow loading, previews.
  InvalidConfiguration, ExecutionFailure : error types.

Quick start:
  from accent_picker import AccentPicker
  colour = AccentPicker().set_accuracy(2).generate(rgb_array)
  print(f"#{colour:06x}")
"""

__version__ = "0.1.0"

# Re-export namespaces for convenience.
from . import colour_convert
from . import core_types
from . import registry
from . import weights
from . import image_io
from . import utils

from .config import ExtractionConfig  # noqa: E402,F401
from .errors import ExecutionFailure, InvalidConfiguration  # noqa: E402,F401
from .image_io import ArrayPixelSource, as_pixel_source  # noqa: E402,F401
from .picker import AccentPicker, InlineExecutor, shutdown_shared_pool  # noqa: E402,F401
from .request import Request  # noqa: E402,F401

__all__ = [
    "__version__",
    "colour_convert",
    "core_types",
    "registry",
    "weights",
    "image_io",
    "utils",
    "AccentPicker",
    "ExtractionConfig",
    "Request",
    "ArrayPixelSource",
    "as_pixel_source",
    "InlineExecutor",
    "shutdown_shared_pool",
    "InvalidConfiguration",
    "ExecutionFailure",
]
