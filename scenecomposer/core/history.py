"""Command-based undo/redo history.

Every state mutation the editor exposes is expressed as one Command: a
pair of closures that move the state forward (``execute``) and back
(``undo``). The History only sequences commands; building them is the
caller's job.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from .events import Signal

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_SIZE = 50


@dataclass(frozen=True)
class Command:
    """A reversible unit of state mutation.

    Attributes:
        kind: Short label describing the operation (e.g. "transform")
        execute: Applies the mutation
        undo: Reverts the mutation
    """

    kind: str
    execute: Callable[[], None]
    undo: Callable[[], None]


class History:
    """Bounded undo/redo stacks.

    Pushing a command always clears the redo stack, so history never
    branches. When the undo stack exceeds ``max_size`` the oldest command
    is evicted.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE):
        if max_size < 1:
            raise ValueError(f"History size must be at least 1, got {max_size}")
        self.max_size = max_size
        self._undo: deque[Command] = deque(maxlen=max_size)
        self._redo: deque[Command] = deque(maxlen=max_size)
        self.changed = Signal("history.changed")

    @property
    def can_undo(self) -> bool:
        return len(self._undo) > 0

    @property
    def can_redo(self) -> bool:
        return len(self._redo) > 0

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)

    def push(self, command: Command) -> None:
        """Record a command that has already been applied."""
        if len(self._undo) == self.max_size:
            logger.debug(f"History full, evicting oldest '{self._undo[0].kind}' command")
        self._undo.append(command)
        self._redo.clear()
        logger.debug(f"Pushed '{command.kind}' ({len(self._undo)} undoable)")
        self.changed.emit()

    def undo(self) -> bool:
        """Revert the most recent command.

        Returns:
            True if a command was undone, False if the stack was empty
        """
        if not self._undo:
            return False
        command = self._undo.pop()
        command.undo()
        self._redo.append(command)
        logger.debug(f"Undid '{command.kind}'")
        self.changed.emit()
        return True

    def redo(self) -> bool:
        """Re-apply the most recently undone command.

        Returns:
            True if a command was redone, False if the stack was empty
        """
        if not self._redo:
            return False
        command = self._redo.pop()
        command.execute()
        self._undo.append(command)
        logger.debug(f"Redid '{command.kind}'")
        self.changed.emit()
        return True

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
        self.changed.emit()

    def __repr__(self) -> str:
        return f"History(undo={len(self._undo)}, redo={len(self._redo)}, max={self.max_size})"


class EditSession(Generic[T]):
    """Batches a multi-step edit (focus, type, blur) into one command.

    ``begin()`` snapshots the value once; repeated calls while a session
    is open keep the first snapshot. ``commit()`` hands the net
    before/after pair to ``on_commit`` only when the value changed.

    Example:
        session = EditSession(lambda: editor.instruction, editor.commit_instruction)
        with session:
            editor.set_instruction("pick up the cup")
    """

    def __init__(
        self,
        capture: Callable[[], T],
        on_commit: Callable[[T, T], None],
    ):
        self._capture = capture
        self._on_commit = on_commit
        self._before: T | None = None
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def begin(self) -> None:
        if not self._active:
            self._before = self._capture()
            self._active = True

    def commit(self) -> bool:
        """Close the session.

        Returns:
            True if a change was committed
        """
        if not self._active:
            return False
        before = self._before
        after = self._capture()
        self._active = False
        self._before = None
        if before == after:
            return False
        self._on_commit(before, after)  # type: ignore[arg-type]
        return True

    def cancel(self) -> None:
        self._active = False
        self._before = None

    def __enter__(self) -> EditSession[T]:
        self.begin()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.commit()
        else:
            self.cancel()
