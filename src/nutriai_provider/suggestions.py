from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

import structlog

from .errors import ProviderError
from .metrics import suggestion_requests_total
from .prompts import suggestion_prompt

log = structlog.get_logger()

DEFAULT_DEBOUNCE_SECONDS = 0.35
DEFAULT_MIN_CHARS = 2
DEFAULT_MAX_RESULTS = 8


class Completer(Protocol):
    async def complete(self, prompt: str, options: Any = None) -> Any: ...


class SuggestionState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    LOADING = "loading"
    SETTLED = "settled"


class SuggestionOutcome(str, Enum):
    SUCCESS = "success"
    EMPTY = "empty"
    ERROR = "error"


def decode_suggestions(value: Any, limit: int = DEFAULT_MAX_RESULTS) -> list[str]:
    """Accept a bare list or {"suggestions": [...]}; every other shape is empty."""
    if isinstance(value, list):
        items = value
    elif isinstance(value, dict) and isinstance(value.get("suggestions"), list):
        items = value["suggestions"]
    else:
        return []
    names = [item.strip() for item in items if isinstance(item, str) and item.strip()]
    return names[:limit]


async def fetch_suggestions(
    router: Completer,
    query: str,
    *,
    min_chars: int = DEFAULT_MIN_CHARS,
    limit: int = DEFAULT_MAX_RESULTS,
) -> list[str]:
    """One-shot suggestion lookup. Raises ProviderError; callers decide how to degrade."""
    query = query.strip()
    if len(query) < min_chars:
        return []
    value = await router.complete(suggestion_prompt(query, limit))
    return decode_suggestions(value, limit)


@dataclass
class SuggestionSession:
    last_query: str = ""
    last_results: list[str] = field(default_factory=list)
    is_loading: bool = False
    state: SuggestionState = SuggestionState.IDLE
    outcome: SuggestionOutcome | None = None
    generation: int = 0
    pending_timer: asyncio.Task[None] | None = None


class SuggestionController:
    """Debounced autocomplete for one input field.

    Every input change bumps `session.generation`; a fetch only writes its result
    back when its generation is still the current one, so late responses for an
    old query never replace newer state. Must be driven from a running event
    loop.
    """

    def __init__(
        self,
        router: Completer,
        *,
        delay_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        min_chars: int = DEFAULT_MIN_CHARS,
        max_results: int = DEFAULT_MAX_RESULTS,
        listener: Callable[[SuggestionSession], None] | None = None,
        sleeper: Callable[[float], Awaitable[None]] | None = None,
    ):
        self.router = router
        self.delay_seconds = max(0.0, delay_seconds)
        self.min_chars = min_chars
        self.max_results = max_results
        self.session = SuggestionSession()
        self._listener = listener
        self._sleep: Callable[[float], Awaitable[None]] = sleeper or asyncio.sleep
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _notify(self) -> None:
        if self._listener is not None:
            self._listener(self.session)

    def _cancel_timer(self) -> None:
        timer = self.session.pending_timer
        if timer is not None and not timer.done():
            timer.cancel()
        self.session.pending_timer = None

    def on_input(self, query: str) -> None:
        if self._closed:
            log.debug("suggestion_input_after_close", query=query)
            return

        s = self.session
        s.generation += 1
        self._cancel_timer()
        s.last_query = query
        s.is_loading = False

        if len(query.strip()) < self.min_chars:
            s.state = SuggestionState.IDLE
            s.outcome = None
            s.last_results = []
            self._notify()
            return

        s.state = SuggestionState.PENDING
        task = asyncio.get_running_loop().create_task(self._run(s.generation, query.strip()))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        s.pending_timer = task
        self._notify()

    def clear(self) -> None:
        self.on_input("")

    def close(self) -> None:
        """Stop the field: cancel the pending timer and ignore any fetch still in flight."""
        if self._closed:
            return
        self._closed = True
        self.session.generation += 1
        self._cancel_timer()
        self.session.is_loading = False

    def _is_current(self, generation: int) -> bool:
        return not self._closed and generation == self.session.generation

    async def _run(self, generation: int, query: str) -> None:
        await self._sleep(self.delay_seconds)
        if not self._is_current(generation):
            return

        s = self.session
        # From here on the task is an in-flight fetch, not a timer: later input
        # no longer cancels it, it just loses the generation check.
        s.pending_timer = None
        s.state = SuggestionState.LOADING
        s.is_loading = True
        self._notify()

        try:
            results = await fetch_suggestions(self.router, query, min_chars=self.min_chars, limit=self.max_results)
            outcome = SuggestionOutcome.SUCCESS if results else SuggestionOutcome.EMPTY
        except ProviderError as e:
            log.info("suggestions_failed", query=query, kind=e.kind.value, error=e.message)
            results, outcome = [], SuggestionOutcome.ERROR
        except Exception:
            log.exception("suggestions_crashed", query=query)
            results, outcome = [], SuggestionOutcome.ERROR
        suggestion_requests_total.labels(outcome=outcome.value).inc()

        if not self._is_current(generation):
            log.debug("suggestions_discarded", query=query, generation=generation, current=s.generation)
            return

        s.last_results = results
        s.outcome = outcome
        s.state = SuggestionState.SETTLED
        s.is_loading = False
        self._notify()

    async def settle(self) -> None:
        """Wait until no timer or fetch started by this controller is running."""
        while True:
            pending = [t for t in self._tasks if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)
