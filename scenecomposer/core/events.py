"""Minimal observer primitive used for editor notifications."""

from __future__ import annotations

from typing import Any, Callable


class Signal:
    """Broadcast channel with ordered subscribers.

    Subscribers are called in connection order. Exceptions raised by a
    subscriber propagate to whoever emitted the signal.
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._subscribers: list[Callable[..., Any]] = []

    def connect(self, callback: Callable[..., Any]) -> Callable[..., Any]:
        """Subscribe a callback. Returns it so this can be used as a decorator."""
        if callback not in self._subscribers:
            self._subscribers.append(callback)
        return callback

    def disconnect(self, callback: Callable[..., Any]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def clear(self) -> None:
        self._subscribers.clear()

    def emit(self, *args: Any) -> None:
        for callback in list(self._subscribers):
            callback(*args)

    def __len__(self) -> int:
        return len(self._subscribers)

    def __repr__(self) -> str:
        return f"Signal({self.name!r}, {len(self._subscribers)} subscribers)"
