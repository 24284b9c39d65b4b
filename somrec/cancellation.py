"""Cooperative cancellation and progress reporting for long-running loads."""

from __future__ import annotations

import threading
from collections.abc import Callable

ProgressCallback = Callable[[float], None]


class Cancelled(Exception):
    """Raised inside a load/train when its cancellation token was set."""


class CancellationToken:
    """Polled cancellation flag shared between a load and its requester."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Cancelled()


class ProgressReporter:
    """
    Forward progress to a callback as a non-decreasing fraction in [0, 1].

    A stage maps its own [0, 1] progress into a sub-range of the parent, so
    training and indexing can report independently.
    """

    def __init__(
        self,
        callback: ProgressCallback | None = None,
        start: float = 0.0,
        end: float = 1.0,
        _shared: list[float] | None = None,
    ) -> None:
        self._callback = callback
        self._start = start
        self._end = end
        self._last = _shared if _shared is not None else [0.0]

    def report(self, fraction: float) -> None:
        if self._callback is None:
            return
        fraction = min(max(fraction, 0.0), 1.0)
        value = self._start + (self._end - self._start) * fraction
        if value < self._last[0]:
            return
        self._last[0] = value
        self._callback(value)

    def stage(self, start: float, end: float) -> ProgressReporter:
        """Sub-reporter covering [start, end] of this reporter's range."""
        span = self._end - self._start
        return ProgressReporter(
            self._callback,
            start=self._start + span * start,
            end=self._start + span * end,
            _shared=self._last,
        )
