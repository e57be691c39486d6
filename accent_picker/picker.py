# accent_picker/picker.py
from __future__ import annotations

"""
AccentPicker: the stateful front end.

Holds the live configuration, builds a fresh Request per call from a snapshot
of it, and runs the request inline, on a shared background pool, or on a
caller-supplied executor.

Exports:
- AccentPicker
- InlineExecutor
- SharedWorkerPool, shared_pool(), shutdown_shared_pool()
"""

import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

from .config import (
    ExtractionConfig,
    validate_accuracy,
    validate_border_divisor,
    validate_merge_distance,
)
from .constants import POOL_CORE_SIZE, POOL_MAX_SIZE, POOL_THREAD_PREFIX
from .core_types import ColourCallback, DeliverySink, PackedRGB
from .errors import InvalidConfiguration
from .image_io import as_pixel_source
from .request import Request
from .utils import print_config_line


class InlineExecutor(Executor):
    """Runs every submitted call immediately on the calling thread."""

    max_parallelism = 1

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future:
        future: Future = Future()
        future.set_running_or_notify_cancel()
        try:
            result = fn(*args, **kwargs)
        except BaseException as exc:
            future.set_exception(exc)
        else:
            future.set_result(result)
        return future


class SharedWorkerPool(ThreadPoolExecutor):
    """
    Elastic background pool.

    Threads are started on demand up to max_size and idle threads are reused.
    Requests size their band count from core_size.
    """

    def __init__(
        self, core_size: int = POOL_CORE_SIZE, max_size: int = POOL_MAX_SIZE
    ) -> None:
        super().__init__(
            max_workers=max(core_size, max_size), thread_name_prefix=POOL_THREAD_PREFIX
        )
        self.max_parallelism = core_size


_shared_pool: Optional[SharedWorkerPool] = None
_shared_pool_lock = threading.Lock()


def shared_pool() -> SharedWorkerPool:
    """Process-wide pool used by generate_async, created on first use."""
    global _shared_pool
    with _shared_pool_lock:
        if _shared_pool is None:
            _shared_pool = SharedWorkerPool()
        return _shared_pool


def shutdown_shared_pool(wait: bool = True) -> None:
    """Shut the shared pool down; the next async call starts a new one."""
    global _shared_pool
    with _shared_pool_lock:
        pool, _shared_pool = _shared_pool, None
    if pool is not None:
        pool.shutdown(wait=wait)


class AccentPicker:
    """
    Picks one accent colour per image.

    Setters validate first and leave the current configuration untouched when
    they raise InvalidConfiguration. Each generate call snapshots the
    configuration, so later setter calls never affect work in flight.
    """

    def __init__(
        self,
        config: Optional[ExtractionConfig] = None,
        *,
        debug: bool = False,
        deliver: Optional[DeliverySink] = None,
    ) -> None:
        self._config = config or ExtractionConfig()
        self.debug = debug
        self.deliver = deliver

    # Configuration

    @property
    def config(self) -> ExtractionConfig:
        return self._config

    @property
    def accuracy(self) -> int:
        return self._config.accuracy

    @property
    def vertical_border_divisor(self) -> int:
        return self._config.vertical_border_divisor

    @property
    def horizontal_border_divisor(self) -> int:
        return self._config.horizontal_border_divisor

    @property
    def min_merge_distance(self) -> float:
        return self._config.min_merge_distance

    def set_accuracy(self, accuracy: int) -> "AccentPicker":
        """Sampling stride: with accuracy 3 every third pixel of every third row is read."""
        self._config = self._config.replace(accuracy=validate_accuracy(accuracy))
        return self

    def set_min_merge_distance(self, distance: float) -> "AccentPicker":
        """CIEDE2000 distance at or below which two colours count as the same."""
        self._config = self._config.replace(
            min_merge_distance=validate_merge_distance(distance)
        )
        return self

    def set_vertical_border_divisor(self, divisor: int) -> "AccentPicker":
        """Left/right borders are image.width // divisor wide."""
        validate_border_divisor(divisor, "vertical border divisor")
        self._config = self._config.replace(vertical_border_divisor=divisor)
        return self

    def set_horizontal_border_divisor(self, divisor: int) -> "AccentPicker":
        """Top/bottom borders are image.height // divisor tall."""
        validate_border_divisor(divisor, "horizontal border divisor")
        self._config = self._config.replace(horizontal_border_divisor=divisor)
        return self

    def set_border_divisor(self, divisor: int) -> "AccentPicker":
        """Sets both border divisors."""
        validate_border_divisor(divisor)
        self._config = self._config.replace(
            vertical_border_divisor=divisor, horizontal_border_divisor=divisor
        )
        return self

    def log_config(self) -> None:
        print_config_line("picker", self._config.as_pairs(), debug=self.debug)

    # Generation

    def _create_request(self) -> Request:
        return Request(self._config, debug=self.debug, deliver=self.deliver)

    def generate(self, image: Any) -> PackedRGB:
        """Colour for `image`, computed on this thread by a single worker."""
        future = self._create_request().execute(
            as_pixel_source(image), lambda _colour: None, InlineExecutor(), 1
        )
        return future.result()

    def generate_async(
        self, image: Any, callback: ColourCallback
    ) -> "Future[PackedRGB]":
        """Compute on the shared background pool; callback receives the colour."""
        return self.generate_on_executor(image, callback, shared_pool())

    def generate_on_executor(
        self,
        image: Any,
        callback: ColourCallback,
        executor: Executor,
        force_workers: int = 0,
    ) -> "Future[PackedRGB]":
        """
        Compute on `executor`. force_workers > 0 pins the number of row bands;
        0 sizes it from the executor.
        """
        if force_workers < 0:
            raise InvalidConfiguration("provide a legal worker count (>= 0)")
        return self._create_request().execute(
            as_pixel_source(image), callback, executor, force_workers
        )


__all__ = [
    "AccentPicker",
    "InlineExecutor",
    "SharedWorkerPool",
    "shared_pool",
    "shutdown_shared_pool",
]
