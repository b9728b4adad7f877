"""Debounced search pipeline.

Sequencing for every edit pushed through `submit()`:

    1) identical consecutive text is ignored;
    2) a debounce timer is (re)started; a newer edit discards the pending timer;
    3) when the timer elapses a new generation and `CancellationScope` become current and the
       previous scope is cancelled;
    4) the text is parsed; unparseable text publishes a neutral result without searching;
    5) the injected search function runs with the scope;
    6) only the current, non-cancelled scope may publish. A failed search publishes the empty
       result together with the error ("clear on error"), so a stale answer is never shown as
       current.

All mutable state lives in one `_PipelineState` guarded by a lock that is never held across an
`await`. Callbacks run outside the lock.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, TypeVar

from src.query.parser import parse_query
from src.query.schema import ParsedQuery
from src.search.scope import CancellationScope, SearchCancelled, SearchRequest

logger = logging.getLogger(__name__)

R = TypeVar("R")

DEFAULT_DEBOUNCE_S = 0.3

SearchFunction = Callable[[ParsedQuery, CancellationScope], Awaitable[R]]
QueryParser = Callable[[str], ParsedQuery | None]


@dataclass(frozen=True)
class SearchSnapshot(Generic[R]):
    """A consistent view of the pipeline state, handed to change callbacks."""

    result: R
    is_loading: bool = False
    error: Exception | None = None
    generation: int = 0
    text: str = ""

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class _PipelineState(Generic[R]):
    result: R
    is_loading: bool = False
    error: Exception | None = None
    generation: int = 0
    published_generation: int = 0
    published_text: str = ""
    last_text: str | None = None
    pending: asyncio.Task | None = None
    scope: CancellationScope | None = None
    closed: bool = False


class DebouncedSearch(Generic[R]):
    """Bridge a stream of search-box edits to a single latest-wins result.

    Args:
        search: Async function resolving a parsed query. It receives the round's scope and must
            call `scope.raise_if_cancelled()` (or let task cancellation propagate) once it
            notices it was superseded.
        empty: Neutral result published for empty text and on errors.
        unparsed: Builds the result for text the parser rejects; defaults to `empty`.
        on_results: Called once per publish with the new `SearchSnapshot`.
        on_loading: Called on every `is_loading` transition.
        debounce_s: Quiet period before an edit is searched.
        parser: Text-to-query parser.
    """

    def __init__(
            self,
            search: SearchFunction[R],
            empty: R,
            *,
            on_results: Callable[[SearchSnapshot[R]], None] | None = None,
            on_loading: Callable[[bool], None] | None = None,
            debounce_s: float = DEFAULT_DEBOUNCE_S,
            parser: QueryParser = parse_query,
            unparsed: Callable[[str], R] | None = None,
    ) -> None:
        if debounce_s < 0:
            raise ValueError("debounce_s must be >= 0")

        self._search = search
        self._empty = empty
        self._on_results = on_results
        self._on_loading = on_loading
        self._debounce_s = debounce_s
        self._parser = parser
        self._unparsed = unparsed

        self._lock = threading.Lock()
        self._state: _PipelineState[R] = _PipelineState(result=empty)
        self._tasks: set[asyncio.Task] = set()

    # Public API

    def submit(self, text: str) -> None:
        """Push the latest search-box text. Never blocks; must be called on the event loop."""

        with self._lock:
            state = self._state
            if state.closed or text == state.last_text:
                return
            state.last_text = text
            timer, state.pending = state.pending, None
            if text:
                state.pending = self._spawn(self._debounce(text))

        if timer is not None:
            timer.cancel()

        if not text:
            self._publish_empty()
            return

        self._set_loading(True)

    def current_result(self) -> R:
        with self._lock:
            return self._state.result

    def snapshot(self) -> SearchSnapshot[R]:
        with self._lock:
            return self._snapshot_locked()

    @property
    def is_loading(self) -> bool:
        with self._lock:
            return self._state.is_loading

    def close(self) -> None:
        """Cancel pending and in-flight work. Idempotent."""

        with self._lock:
            state = self._state
            if state.closed:
                return
            state.closed = True
            timer, state.pending = state.pending, None
            scope, state.scope = state.scope, None
            tasks = list(self._tasks)

        if timer is not None:
            timer.cancel()
        if scope is not None:
            scope.cancel()
        for task in tasks:
            task.cancel()

    async def join(self) -> None:
        """Wait until every timer and search started by this pipeline has finished."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # Internals

    def _spawn(self, coro: Awaitable[None]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _snapshot_locked(self) -> SearchSnapshot[R]:
        state = self._state
        return SearchSnapshot(
            result=state.result,
            is_loading=state.is_loading,
            error=state.error,
            generation=state.published_generation,
            text=state.published_text,
        )

    async def _debounce(self, text: str) -> None:
        await asyncio.sleep(self._debounce_s)

        with self._lock:
            state = self._state
            if state.closed or state.pending is not asyncio.current_task():
                return
            state.pending = None
            state.generation += 1
            scope = CancellationScope(SearchRequest(generation=state.generation, text=text))
            scope.bind(asyncio.current_task())
            previous, state.scope = state.scope, scope

        if previous is not None:
            previous.cancel()

        self._set_loading(True)
        await self._resolve(scope)

    async def _resolve(self, scope: CancellationScope) -> None:
        try:
            query = self._parser(scope.request.text)
            if query is None:
                logger.debug("unparseable query generation=%d", scope.generation)
                neutral = self._empty
                if self._unparsed is not None:
                    neutral = self._unparsed(scope.request.text)
                self._publish(scope, neutral, None)
                return

            result = await self._search(query, scope)
            scope.raise_if_cancelled()
        except SearchCancelled:
            logger.debug("search superseded generation=%d", scope.generation)
            return
        except Exception as exc:
            if scope.cancelled:
                return
            logger.warning("search failed generation=%d error=%r", scope.generation, exc)
            self._publish(scope, self._empty, exc)
            return
        finally:
            scope.release()

        self._publish(scope, result, None)

    def _publish(self, scope: CancellationScope, result: R, error: Exception | None) -> None:
        with self._lock:
            state = self._state
            if (
                    state.closed
                    or scope.cancelled
                    or state.scope is not scope
                    or scope.generation < state.published_generation
            ):
                return
            state.result = result
            state.error = error
            state.published_generation = scope.generation
            state.published_text = scope.request.text
            loading_changed = state.is_loading
            state.is_loading = False
            snapshot = self._snapshot_locked()

        if loading_changed:
            self._emit_loading(False)
        self._emit_results(snapshot)

    def _publish_empty(self) -> None:
        with self._lock:
            state = self._state
            state.generation += 1
            scope, state.scope = state.scope, None
            state.result = self._empty
            state.error = None
            state.published_generation = state.generation
            state.published_text = ""
            loading_changed = state.is_loading
            state.is_loading = False
            snapshot = self._snapshot_locked()

        if scope is not None:
            scope.cancel()
        if loading_changed:
            self._emit_loading(False)
        self._emit_results(snapshot)

    def _set_loading(self, value: bool) -> None:
        with self._lock:
            if self._state.closed or self._state.is_loading == value:
                return
            self._state.is_loading = value
        self._emit_loading(value)

    def _emit_loading(self, value: bool) -> None:
        if self._on_loading is None:
            return
        try:
            self._on_loading(value)
        except Exception:
            logger.exception("loading callback failed")

    def _emit_results(self, snapshot: SearchSnapshot[R]) -> None:
        if self._on_results is None:
            return
        try:
            self._on_results(snapshot)
        except Exception:
            logger.exception("results callback failed")
