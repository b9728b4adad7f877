"""Search requests and cancellation scopes."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass


class SearchCancelled(Exception):
    """Raised inside a search when its scope has been superseded."""


@dataclass(frozen=True)
class SearchRequest:
    """The settled text of one search round and its generation number."""

    generation: int
    text: str


class CancellationScope:
    """Right to publish for exactly one search round.

    A scope is created when a debounce timer elapses and is cancelled when a newer round takes
    over. Cancelling also cancels the task running the search so a pending HTTP await is
    abandoned; the search itself is expected to call `raise_if_cancelled()` around its
    suspension points.
    """

    def __init__(self, request: SearchRequest) -> None:
        self.request = request
        self._cancelled = False
        self._task: asyncio.Task | None = None

    @property
    def generation(self) -> int:
        return self.request.generation

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def bind(self, task: asyncio.Task | None) -> None:
        """Attach the task running this scope's search."""

        self._task = task

    def cancel(self) -> None:
        """Request cancellation. Idempotent and non-blocking."""

        if self._cancelled:
            return
        self._cancelled = True
        task = self._task
        if task is not None and not task.done() and task is not _current_task_or_none():
            task.cancel()

    def release(self) -> None:
        """Drop the task reference once the round has settled."""

        self._task = None

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise SearchCancelled(f"search generation {self.generation} was superseded")

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "active"
        return f"CancellationScope(generation={self.generation}, {state})"


def _current_task_or_none() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
