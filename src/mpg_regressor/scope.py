"""Explicit lifetime scope for intermediate numeric buffers."""

from __future__ import annotations

from types import TracebackType

import numpy as np


class TensorScope:
    """Holds intermediate arrays for the length of a ``with`` block.

    Every tracked buffer is dropped when the block exits, whether it returns
    normally or raises, so nothing created inside outlives the call that made it.
    """

    def __init__(self) -> None:
        self._buffers: list[np.ndarray] = []
        self._closed = False

    def __enter__(self) -> TensorScope:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()

    def track(self, array: np.ndarray) -> np.ndarray:
        """Register a buffer owned by this scope and hand it back."""
        if self._closed:
            raise RuntimeError("Cannot track buffers in a released scope.")
        self._buffers.append(array)
        return array

    def release(self) -> None:
        """Drop every tracked buffer."""
        self._buffers.clear()
        self._closed = True

    @property
    def live_count(self) -> int:
        return len(self._buffers)

    @property
    def closed(self) -> bool:
        return self._closed
