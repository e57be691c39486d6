"""
Test configuration and fixtures for accent_picker tests.
"""
from typing import Any, Callable, List, Tuple

import numpy as np
import pytest
from concurrent.futures import Executor, Future

from accent_picker.picker import shutdown_shared_pool


RED = (255, 0, 0)
GREEN = (0, 255, 0)
BLUE = (0, 0, 255)


def solid_image(width: int, height: int, rgb: Tuple[int, int, int]) -> np.ndarray:
    """uint8 (H, W, 3) image filled with one colour."""
    img = np.zeros((height, width, 3), dtype=np.uint8)
    img[:, :] = rgb
    return img


class DeferredExecutor(Executor):
    """Queues submitted calls until run_all() is called."""

    def __init__(self) -> None:
        self.pending: List[Tuple[Callable[..., Any], tuple, dict]] = []

    def submit(self, fn, /, *args, **kwargs) -> Future:
        self.pending.append((fn, args, kwargs))
        return Future()

    def run_all(self) -> None:
        pending, self.pending = self.pending, []
        for fn, args, kwargs in pending:
            fn(*args, **kwargs)


@pytest.fixture
def deferred_executor() -> DeferredExecutor:
    return DeferredExecutor()


@pytest.fixture(scope="session", autouse=True)
def shared_pool_teardown():
    """Stop the shared async pool once the session ends."""
    yield
    shutdown_shared_pool()
