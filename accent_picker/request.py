# accent_picker/request.py
from __future__ import annotations

"""
One extraction pass over a pixel source.

Rows are split into equal bands, one per worker. Each worker samples its band
on a stride grid, folds the weighted samples into its own bounded registry and
reports the heaviest group. The worker that completes last aggregates the
reports and delivers the colour exactly once.
"""

import threading
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Dict, List, Literal, Optional, Tuple

from .colour_convert import rgb_to_lab
from .config import ExtractionConfig
from .core_types import ColourCallback, DeliverySink, PackedRGB, PixelSource, pack_rgb
from .errors import ExecutionFailure, InvalidConfiguration
from .image_io import row_samples
from .registry import BoundedColourRegistry, ColourGroup
from .utils import debug_log, format_seconds_compact, split_rows_into_bands
from .weights import ZoneMultipliers, compute_multipliers, zone_weight

RequestState = Literal["created", "running", "completed", "failed"]


def deliver_inline(fn) -> None:
    """Default delivery sink: run the callback on the finishing worker thread."""
    fn()


def executor_parallelism(executor: Executor) -> Optional[int]:
    """
    Parallelism hint reported by an executor, if any.

    Honours a `max_parallelism` attribute first, then the worker cap of a
    ThreadPoolExecutor.
    """
    hint = getattr(executor, "max_parallelism", None)
    if hint is None and isinstance(executor, ThreadPoolExecutor):
        hint = getattr(executor, "_max_workers", None)
    if hint is None:
        return None
    return int(hint)


def resolve_worker_count(
    height: int, accuracy: int, executor: Executor, force_workers: int = 0
) -> int:
    """
    Number of row bands for an image.

    A forced count wins. Otherwise the executor's parallelism hint, capped by
    the number of sampled rows, or the sampled row count when there is no hint.
    """
    if force_workers > 0:
        num_workers = force_workers
    else:
        sampled_rows = height // accuracy
        hint = executor_parallelism(executor)
        num_workers = min(hint, sampled_rows) if hint else sampled_rows
    num_workers = max(1, num_workers)
    if 2 * height < num_workers:
        num_workers = 1
    # every band needs at least one row
    return min(num_workers, height)


class Request:
    """
    Single-use extraction pass.

    State: created -> running -> completed | failed. A request never runs
    twice; the picker builds a new one for every invocation.
    """

    def __init__(
        self,
        config: ExtractionConfig,
        *,
        debug: bool = False,
        deliver: Optional[DeliverySink] = None,
    ) -> None:
        self.config = config
        self.multipliers = ZoneMultipliers()
        self.state: RequestState = "created"
        self.num_workers = 0
        self._debug = debug
        self._deliver: DeliverySink = deliver or deliver_inline
        self._lock = threading.Lock()
        self._results: Dict[int, ColourGroup] = {}
        self._errors: List[BaseException] = []
        self._finished = 0
        self._future: "Future[PackedRGB]" = Future()

    # Validation

    def _assert_accuracy(self, width: int, height: int) -> None:
        accuracy = self.config.accuracy
        if accuracy <= 0:
            raise InvalidConfiguration("accuracy should be > 0")
        if accuracy > height:
            raise InvalidConfiguration("accuracy should be <= image height")
        if accuracy > width:
            raise InvalidConfiguration("accuracy should be <= image width")

    # Execution

    def execute(
        self,
        source: PixelSource,
        callback: ColourCallback,
        executor: Executor,
        force_workers: int = 0,
    ) -> "Future[PackedRGB]":
        """
        Validate, partition and submit one worker per row band.

        Configuration problems raise InvalidConfiguration here, before any
        work is submitted. The returned future resolves to the packed colour,
        or to ExecutionFailure if any worker failed.
        """
        if self.state != "created":
            raise RuntimeError("request already executed; create a new one")
        if force_workers < 0:
            raise InvalidConfiguration("forced worker count should be >= 0")

        width, height = int(source.width), int(source.height)
        self._assert_accuracy(width, height)

        v_border = height // self.config.horizontal_border_divisor
        h_border = width // self.config.vertical_border_divisor
        self.multipliers = compute_multipliers(h_border, v_border, width, height)

        self.num_workers = resolve_worker_count(
            height, self.config.accuracy, executor, force_workers
        )
        bands = split_rows_into_bands(height, self.num_workers)

        self.state = "running"
        self._future.set_running_or_notify_cancel()
        start = time.perf_counter()
        if self._debug:
            debug_log(
                f"request {width}x{height}  workers={self.num_workers}  "
                f"borders=({h_border},{v_border})  "
                f"mul=({self.multipliers.base:.3f},{self.multipliers.border:.3f},"
                f"{self.multipliers.corner:.3f})"
            )

        for index, band in enumerate(bands):
            try:
                executor.submit(
                    self._run_worker,
                    index,
                    source,
                    band,
                    h_border,
                    v_border,
                    callback,
                    start,
                )
            except RuntimeError as exc:
                # executor refused the work (e.g. shut down)
                for missing in range(index, len(bands)):
                    self._finish_worker(missing, None, exc, callback, start)
                break
        return self._future

    def _scan_band(
        self,
        source: PixelSource,
        band: Tuple[int, int],
        h_border: int,
        v_border: int,
    ) -> Tuple[Optional[ColourGroup], Tuple[int, int]]:
        width, height = int(source.width), int(source.height)
        accuracy = self.config.accuracy
        registry = BoundedColourRegistry(self.config.min_merge_distance)
        end_x = end_y = 0
        for y in range(band[0], band[1], accuracy):
            row = row_samples(source, y, accuracy)
            labs = rgb_to_lab(row).tolist()
            for i, (r, g, b) in enumerate(row.tolist()):
                x = i * accuracy
                weight = zone_weight(
                    x, y, width, height, h_border, v_border, self.multipliers
                )
                registry.insert(pack_rgb(r, g, b), weight, lab=tuple(labs[i]))
                end_x = x
            end_y = y
        return registry.best(), (end_x, end_y)

    def _run_worker(
        self,
        index: int,
        source: PixelSource,
        band: Tuple[int, int],
        h_border: int,
        v_border: int,
        callback: ColourCallback,
        start: float,
    ) -> None:
        group: Optional[ColourGroup] = None
        failure: Optional[BaseException] = None
        try:
            group, (end_x, end_y) = self._scan_band(source, band, h_border, v_border)
            if self._debug:
                debug_log(
                    f"finished a part at ({end_x},{end_y}) in "
                    f"{format_seconds_compact(time.perf_counter() - start)}"
                )
        except Exception as exc:
            failure = exc
        except BaseException as exc:
            failure = exc
            raise
        finally:
            self._finish_worker(index, group, failure, callback, start)

    def _finish_worker(
        self,
        index: int,
        group: Optional[ColourGroup],
        failure: Optional[BaseException],
        callback: ColourCallback,
        start: float,
    ) -> None:
        with self._lock:
            if group is not None:
                self._results[index] = group
            if failure is not None:
                self._errors.append(failure)
            self._finished += 1
            is_last = self._finished == self.num_workers
        if is_last:
            self._complete(callback, start)

    # Aggregation

    def aggregate(self) -> Optional[ColourGroup]:
        """Heaviest worker result, scanned in band order."""
        best: Optional[ColourGroup] = None
        for index in sorted(self._results):
            group = self._results[index]
            if best is None or group.weight > best.weight:
                best = group
        return best

    def _complete(self, callback: ColourCallback, start: float) -> None:
        elapsed = format_seconds_compact(time.perf_counter() - start)
        if self._errors:
            self._fail(
                ExecutionFailure(
                    f"{len(self._errors)} of {self.num_workers} workers failed: "
                    f"{self._errors[0]!r}"
                ),
                self._errors[0],
                elapsed,
            )
            return
        best = self.aggregate()
        if best is None:
            self._fail(ExecutionFailure("no pixels were sampled"), None, elapsed)
            return
        colour = best.top_colour()
        if self._debug:
            debug_log(f"finished in {elapsed}  colour=#{colour:06x}")
        try:
            self._deliver(lambda: callback(colour))
        except BaseException as exc:
            self._fail(
                ExecutionFailure(f"colour callback raised {exc!r}"), exc, elapsed
            )
            if not isinstance(exc, Exception):
                raise
            return
        self.state = "completed"
        self._future.set_result(colour)

    def _fail(
        self, failure: ExecutionFailure, cause: Optional[BaseException], elapsed: str
    ) -> None:
        failure.__cause__ = cause
        self.state = "failed"
        if self._debug:
            debug_log(f"failed after {elapsed}: {failure}")
        self._future.set_exception(failure)


__all__ = [
    "RequestState",
    "Request",
    "deliver_inline",
    "executor_parallelism",
    "resolve_worker_count",
]
