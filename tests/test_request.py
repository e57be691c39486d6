"""
Unit tests for Request: validation, partitioning, worker counts,
aggregation and completion signalling.
"""

import threading
from concurrent.futures import Executor, ThreadPoolExecutor

import numpy as np
import pytest

from accent_picker.config import ExtractionConfig
from accent_picker.core_types import pack_rgb
from accent_picker.errors import ExecutionFailure, InvalidConfiguration
from accent_picker.image_io import ArrayPixelSource
from accent_picker.picker import InlineExecutor
from accent_picker.request import Request, executor_parallelism, resolve_worker_count
from accent_picker.utils import split_rows_into_bands
from accent_picker.weights import ZoneMultipliers, compute_multipliers, zone_weight

from conftest import BLUE, GREEN, RED, solid_image


class RecordingSource:
    """PixelSource without a row fast path that records the rows it serves."""

    def __init__(self, array: np.ndarray, fail_on_row=None) -> None:
        self._array = array
        self._fail_on_row = fail_on_row
        self._lock = threading.Lock()
        self.rows = set()

    @property
    def width(self) -> int:
        return self._array.shape[1]

    @property
    def height(self) -> int:
        return self._array.shape[0]

    def get_pixel(self, x: int, y: int) -> int:
        if y == self._fail_on_row:
            raise IOError(f"row {y} unreadable")
        with self._lock:
            self.rows.add(y)
        r, g, b = self._array[y, x]
        return pack_rgb(r, g, b)


class BareExecutor(Executor):
    """Executor with no parallelism hint that runs calls inline."""

    def submit(self, fn, /, *args, **kwargs):
        return InlineExecutor().submit(fn, *args, **kwargs)


def run(request, image, executor=None, force_workers=0):
    colours = []
    future = request.execute(
        image if not isinstance(image, np.ndarray) else ArrayPixelSource(image),
        colours.append,
        executor or InlineExecutor(),
        force_workers,
    )
    return future, colours


class TestRowBands:
    def test_equal_bands(self):
        assert split_rows_into_bands(12, 3) == [(0, 4), (4, 8), (8, 12)]

    def test_remainder_rows_are_dropped(self):
        assert split_rows_into_bands(10, 3) == [(0, 3), (3, 6), (6, 9)]

    def test_single_band(self):
        assert split_rows_into_bands(7, 0) == [(0, 7)]

    def test_remainder_row_is_never_read(self):
        source = RecordingSource(solid_image(5, 10, RED))
        future, _ = run(Request(ExtractionConfig(accuracy=1)), source, force_workers=3)
        assert future.result() == pack_rgb(*RED)
        assert source.rows == set(range(9))


class TestWorkerCount:
    def test_forced_count_wins(self):
        assert resolve_worker_count(100, 1, InlineExecutor(), 5) == 5

    def test_pool_size_hint(self):
        with ThreadPoolExecutor(max_workers=4) as pool:
            assert executor_parallelism(pool) == 4
            assert resolve_worker_count(100, 1, pool) == 4
            assert resolve_worker_count(3, 1, pool) == 3

    def test_inline_executor_uses_one_worker(self):
        assert resolve_worker_count(100, 3, InlineExecutor()) == 1

    def test_no_hint_falls_back_to_sampled_rows(self):
        assert executor_parallelism(BareExecutor()) is None
        assert resolve_worker_count(100, 3, BareExecutor()) == 33
        assert resolve_worker_count(2, 3, BareExecutor()) == 1

    def test_oversplitting_collapses_to_one(self):
        assert resolve_worker_count(100, 1, InlineExecutor(), 500) == 1

    def test_capped_at_height(self):
        assert resolve_worker_count(100, 1, InlineExecutor(), 150) == 100


class TestValidation:
    @pytest.mark.parametrize("accuracy", [11, 20])
    def test_accuracy_larger_than_image_rejected(self, accuracy, deferred_executor):
        request = Request(ExtractionConfig(accuracy=accuracy))
        colours = []
        with pytest.raises(InvalidConfiguration):
            request.execute(
                ArrayPixelSource(solid_image(10, 10, RED)),
                colours.append,
                deferred_executor,
            )
        assert deferred_executor.pending == []
        assert colours == []
        assert request.state == "created"

    def test_accuracy_larger_than_width_only(self):
        with pytest.raises(InvalidConfiguration):
            run(Request(ExtractionConfig(accuracy=6)), solid_image(5, 20, RED))

    def test_negative_forced_workers_rejected(self, deferred_executor):
        with pytest.raises(InvalidConfiguration):
            Request(ExtractionConfig()).execute(
                ArrayPixelSource(solid_image(10, 10, RED)),
                lambda c: None,
                deferred_executor,
                -1,
            )
        assert deferred_executor.pending == []

    def test_request_is_single_use(self):
        request = Request(ExtractionConfig(accuracy=1))
        future, _ = run(request, solid_image(4, 4, RED))
        assert future.result() == pack_rgb(*RED)
        assert request.state == "completed"
        with pytest.raises(RuntimeError):
            run(request, solid_image(4, 4, RED))


class TestExtraction:
    @pytest.mark.parametrize("divisor", [2, 3, 5, 10])
    def test_solid_colour(self, divisor):
        config = ExtractionConfig(
            accuracy=1,
            vertical_border_divisor=divisor,
            horizontal_border_divisor=divisor,
            min_merge_distance=20,
        )
        future, colours = run(Request(config), solid_image(10, 10, RED))
        assert future.result() == pack_rgb(*RED)
        assert colours == [pack_rgb(*RED)]

    def test_red_blue_halves_follow_weighted_area(self):
        img = solid_image(10, 10, RED)
        img[:, 5:] = BLUE
        config = ExtractionConfig(
            accuracy=1,
            vertical_border_divisor=2,
            horizontal_border_divisor=2,
            min_merge_distance=20,
        )

        # derive the expected winner from the multipliers: corner-zone mass
        mul = compute_multipliers(5, 5, 10, 10)
        corner_only = ZoneMultipliers(base=0.0, border=0.0, corner=1.0)
        corner_mass = {pack_rgb(*RED): 0.0, pack_rgb(*BLUE): 0.0}
        totals = dict(corner_mass)
        for y in range(10):
            for x in range(10):
                rgb = pack_rgb(*img[y, x])
                in_corner = zone_weight(x, y, 10, 10, 5, 5, corner_only)
                corner_mass[rgb] += in_corner * mul.corner
                totals[rgb] += zone_weight(x, y, 10, 10, 5, 5, mul)
        expected = max(corner_mass, key=corner_mass.get)
        other = min(corner_mass, key=corner_mass.get)
        assert corner_mass[expected] > corner_mass[other]
        assert totals[expected] >= totals[other]

        for executor, workers in ((InlineExecutor(), 0), (InlineExecutor(), 5)):
            future, colours = run(Request(config), img, executor, workers)
            assert future.result() == expected
            assert colours == [expected]
        # red: 45 corner pixels, blue: 36
        assert expected == pack_rgb(*RED)

    def test_accuracy_equal_to_image_size_samples_one_pixel(self):
        img = solid_image(10, 10, RED)
        img[0, 0] = GREEN
        source = RecordingSource(img)
        future, _ = run(Request(ExtractionConfig(accuracy=10)), source)
        assert future.result() == pack_rgb(*GREEN)
        assert source.rows == {0}

    def test_accuracy_equal_to_width_samples_one_column(self):
        img = solid_image(10, 20, RED)
        img[:, 0] = GREEN
        future, _ = run(Request(ExtractionConfig(accuracy=10)), img)
        assert future.result() == pack_rgb(*GREEN)

    def test_interior_heavy_image_prefers_border_colour(self):
        """A thin frame outweighs a larger interior"""
        img = solid_image(64, 64, BLUE)
        img[:4, :] = RED
        img[-4:, :] = RED
        img[:, :4] = RED
        img[:, -4:] = RED
        config = ExtractionConfig(
            accuracy=1, vertical_border_divisor=16, horizontal_border_divisor=16
        )
        future, _ = run(Request(config), img)
        assert future.result() == pack_rgb(*RED)

    def test_deterministic_with_fixed_worker_count(self):
        rng = np.random.default_rng(7)
        palette = np.array(
            [RED, GREEN, BLUE, (240, 240, 240), (30, 30, 30), (200, 120, 40)],
            dtype=np.uint8,
        )
        img = palette[rng.integers(0, len(palette), size=(41, 37))]
        config = ExtractionConfig(accuracy=1, min_merge_distance=10)

        results = set()
        with ThreadPoolExecutor(max_workers=4) as pool:
            for _ in range(3):
                future, _ = run(Request(config), img, pool, force_workers=4)
                results.add(future.result(timeout=30))
        future, _ = run(Request(config), img, InlineExecutor(), force_workers=4)
        results.add(future.result())
        assert len(results) == 1


class TestCompletion:
    def test_callback_fires_exactly_once_across_threads(self):
        rng = np.random.default_rng(3)
        img = rng.integers(0, 256, size=(64, 48, 3), dtype=np.uint8)
        calls = []
        lock = threading.Lock()

        def callback(colour):
            with lock:
                calls.append(colour)

        with ThreadPoolExecutor(max_workers=8) as pool:
            request = Request(ExtractionConfig(accuracy=2))
            future = request.execute(ArrayPixelSource(img), callback, pool, 16)
            colour = future.result(timeout=30)
        assert calls == [colour]
        assert request.num_workers == 16
        assert request.state == "completed"

    def test_delivery_sink_receives_callback(self):
        delivered = []

        def deliver(fn):
            delivered.append(fn)
            fn()

        colours = []
        request = Request(ExtractionConfig(accuracy=1), deliver=deliver)
        request.execute(
            ArrayPixelSource(solid_image(6, 6, GREEN)), colours.append, InlineExecutor(), 3
        )
        assert len(delivered) == 1
        assert colours == [pack_rgb(*GREEN)]

    def test_worker_failure_fails_the_invocation(self):
        source = RecordingSource(solid_image(8, 8, RED), fail_on_row=5)
        colours = []
        with ThreadPoolExecutor(max_workers=4) as pool:
            request = Request(ExtractionConfig(accuracy=1))
            future = request.execute(source, colours.append, pool, 4)
            with pytest.raises(ExecutionFailure) as excinfo:
                future.result(timeout=30)
        assert isinstance(excinfo.value.__cause__, IOError)
        assert colours == []
        assert request.state == "failed"

    def test_refused_submission_fails_the_invocation(self):
        pool = ThreadPoolExecutor(max_workers=2)
        pool.shutdown()
        colours = []
        future = Request(ExtractionConfig(accuracy=1)).execute(
            ArrayPixelSource(solid_image(8, 8, RED)), colours.append, pool, 2
        )
        with pytest.raises(ExecutionFailure):
            future.result(timeout=5)
        assert colours == []

    @pytest.mark.parametrize("workers", [1, 2])
    def test_raising_callback_fails_the_invocation(self, workers):
        def callback(colour):
            raise RuntimeError("consumer broke")

        with ThreadPoolExecutor(max_workers=2) as pool:
            request = Request(ExtractionConfig(accuracy=1))
            future = request.execute(
                ArrayPixelSource(solid_image(8, 8, RED)), callback, pool, workers
            )
            with pytest.raises(ExecutionFailure) as excinfo:
                future.result(timeout=30)
        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert request.state == "failed"

    def test_base_exception_in_worker_still_completes(self):
        class Abort(BaseException):
            pass

        class AbortingSource(RecordingSource):
            def get_pixel(self, x, y):
                if y == 6:
                    raise Abort()
                return super().get_pixel(x, y)

        colours = []
        request = Request(ExtractionConfig(accuracy=1))
        future = request.execute(
            AbortingSource(solid_image(8, 8, RED)), colours.append, InlineExecutor(), 4
        )
        assert future.done()
        with pytest.raises(ExecutionFailure) as excinfo:
            future.result()
        assert isinstance(excinfo.value.__cause__, Abort)
        assert colours == []
        assert request.state == "failed"

    def test_debug_logging(self, capsys):
        request = Request(ExtractionConfig(accuracy=1), debug=True)
        run(request, solid_image(4, 4, RED), force_workers=2)
        out = capsys.readouterr().out
        assert "[debug] request 4x4" in out
        assert out.count("finished a part") == 2
        assert "colour=#ff0000" in out
