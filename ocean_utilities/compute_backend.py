"""
Compute Back-ends

The wave pipeline talks to its compute stage through a small capability:

    dispatch(kernel_id, group_counts)   run a bound kernel over the grid
    set_param(name, value)              set a kernel parameter
    request_readback(buffer, region)    asynchronous copy to host -> Future
    poll()                              advance readback completion
    close()                             drop outstanding requests and buffers

``NumpyComputeBackend`` runs kernels as vectorized numpy over whole grids and
completes readbacks on a worker thread. ``LatencyQueueBackend`` completes
readbacks only after a fixed number of ``poll()`` calls, on the caller's
thread, and can inject failures; it makes the stale-until-swap behaviour
deterministic for tests and single-threaded hosts.

The readback region is staged (copied) when the request is issued, so the
asynchronous transfer never observes writes made by later ticks.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

import numpy as np

from ocean_utilities.exceptions import ComputeBackendError, ReadbackError

logger = logging.getLogger(__name__)

_MISSING = object()

# (x, width, y, height) in texels, like a GPU readback region
Region = Tuple[int, int, int, int]


class ComputeBackend(ABC):
    """Opaque parallel compute capability used by ``OceanSurface``."""

    @abstractmethod
    def dispatch(self, kernel_id, group_counts: Sequence[int]) -> None: ...

    @abstractmethod
    def set_param(self, name: str, value: Any) -> None: ...

    @abstractmethod
    def request_readback(self, buffer: str, region: Optional[Region] = None) -> Future: ...

    @abstractmethod
    def has_kernel(self, kernel_id) -> bool: ...

    @abstractmethod
    def create_buffer(self, name: str, shape: Tuple[int, ...], dtype=np.float64) -> np.ndarray: ...

    def poll(self) -> None:
        """Advance completion of outstanding readbacks; no-op by default."""

    def close(self) -> None:
        """Discard outstanding requests and release buffers."""


class NumpyComputeBackend(ComputeBackend):
    def __init__(self, max_workers: int = 1):
        self.params: Dict[str, Any] = {}
        self.buffers: Dict[str, np.ndarray] = {}
        self._kernels: Dict[Any, Callable[["NumpyComputeBackend"], None]] = {}
        self._executor: Optional[ThreadPoolExecutor] = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="ocean-readback"
        )
        self.closed = False

    # kernels -----------------------------------------------------------------
    def register_kernel(self, kernel_id, fn: Callable[["NumpyComputeBackend"], None]) -> None:
        self._kernels[kernel_id] = fn

    def has_kernel(self, kernel_id) -> bool:
        return kernel_id in self._kernels

    def dispatch(self, kernel_id, group_counts: Sequence[int]) -> None:
        if self.closed:
            raise ComputeBackendError("dispatch on a closed compute backend")
        fn = self._kernels.get(kernel_id)
        if fn is None:
            raise ComputeBackendError(f"no kernel bound for id {kernel_id!r}")
        if len(group_counts) != 3 or any(int(g) < 1 for g in group_counts):
            raise ComputeBackendError(f"group counts must be three positive integers, got {group_counts}")
        fn(self)

    # parameters --------------------------------------------------------------
    def set_param(self, name: str, value: Any) -> None:
        self.params[name] = value

    def param(self, name: str, default: Any = _MISSING) -> Any:
        if name in self.params:
            return self.params[name]
        if default is _MISSING:
            raise ComputeBackendError(f"kernel parameter '{name}' is not set")
        return default

    # buffers -----------------------------------------------------------------
    def create_buffer(self, name: str, shape: Tuple[int, ...], dtype=np.float64) -> np.ndarray:
        buffer = np.zeros(shape, dtype=dtype)
        self.buffers[name] = buffer
        return buffer

    def buffer(self, name: str) -> np.ndarray:
        try:
            return self.buffers[name]
        except KeyError:
            raise ComputeBackendError(f"unknown buffer '{name}'") from None

    def _stage(self, buffer: str, region: Optional[Region]) -> np.ndarray:
        data = self.buffer(buffer)
        if region is not None:
            x, width, y, height = (int(v) for v in region)
            data = data[y:y + height, x:x + width]
        return np.array(data, copy=True)

    @staticmethod
    def _transfer(staged: np.ndarray) -> np.ndarray:
        # host-side heights are single precision, as on the device
        return np.ascontiguousarray(staged, dtype=np.float32)

    # readback ----------------------------------------------------------------
    def request_readback(self, buffer: str, region: Optional[Region] = None) -> Future:
        if self.closed or self._executor is None:
            raise ComputeBackendError("readback requested on a closed compute backend")
        staged = self._stage(buffer, region)
        return self._executor.submit(self._transfer, staged)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None
        self.buffers.clear()
        logger.debug("compute backend closed")


class LatencyQueueBackend(NumpyComputeBackend):
    """Numpy back-end whose readbacks complete after ``latency_polls`` polls."""

    def __init__(self, latency_polls: int = 1):
        super().__init__(max_workers=1)
        self.latency_polls = int(latency_polls)
        self._pending: deque = deque()
        self._failures_left = 0

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def fail_next(self, count: int = 1) -> None:
        """Make the next ``count`` readbacks to complete fail."""
        self._failures_left += int(count)

    def request_readback(self, buffer: str, region: Optional[Region] = None) -> Future:
        if self.closed:
            raise ComputeBackendError("readback requested on a closed compute backend")
        future: Future = Future()
        self._pending.append([self.latency_polls, future, self._stage(buffer, region)])
        return future

    def poll(self) -> None:
        for entry in self._pending:
            entry[0] -= 1
        while self._pending and self._pending[0][0] <= 0:
            _, future, staged = self._pending.popleft()
            if self._failures_left > 0:
                self._failures_left -= 1
                future.set_exception(ReadbackError("simulated readback failure"))
            else:
                future.set_result(self._transfer(staged))

    def close(self) -> None:
        while self._pending:
            _, future, _ = self._pending.popleft()
            future.cancel()
        super().close()
