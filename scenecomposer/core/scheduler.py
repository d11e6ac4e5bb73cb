"""Single-shot deferred calls run after the current event turn."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass
class DeferredCall:
    """Handle to a scheduled call."""

    label: str
    callback: Callable[[], None]
    cancelled: bool = False
    done: bool = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.done)


@dataclass
class DeferredCalls:
    """Queue of calls deferred to the next turn of the event loop.

    The owner drives the queue with ``run_pending()`` once it has finished
    handling the current event. Calls scheduled while the queue is running
    wait for the following turn.
    """

    _queue: list[DeferredCall] = field(default_factory=list)

    def call_soon(self, callback: Callable[[], None], label: str = "") -> DeferredCall:
        handle = DeferredCall(label=label or getattr(callback, "__name__", "call"), callback=callback)
        self._queue.append(handle)
        logger.debug(f"Deferred '{handle.label}'")
        return handle

    @property
    def pending_count(self) -> int:
        return sum(1 for h in self._queue if h.pending)

    def run_pending(self) -> int:
        """Run every call queued before this turn started.

        Returns:
            Number of calls executed
        """
        batch, self._queue = self._queue, []
        ran = 0
        for handle in batch:
            if not handle.pending:
                continue
            handle.done = True
            handle.callback()
            ran += 1
        return ran

    def cancel_all(self) -> int:
        """Cancel every pending call. Returns how many were cancelled."""
        count = 0
        for handle in self._queue:
            if handle.pending:
                handle.cancel()
                count += 1
        self._queue.clear()
        if count:
            logger.debug(f"Cancelled {count} deferred call(s)")
        return count
