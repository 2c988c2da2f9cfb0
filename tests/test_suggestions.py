import asyncio
import re
from collections import defaultdict

import pytest

from nutriai_provider.errors import RateLimitError, ResponseParseError
from nutriai_provider.suggestions import (
    SuggestionController,
    SuggestionOutcome,
    SuggestionState,
    decode_suggestions,
    fetch_suggestions,
)

_QUERY_RE = re.compile(r'query: "(.*?)"')


async def no_sleep(_: float) -> None:
    return None


class FakeRouter:
    """Answers suggestion prompts from a table; optionally holds replies until released."""

    def __init__(self, replies, *, gated=False):
        self.replies = replies
        self.queries = []
        self.started = defaultdict(asyncio.Event)
        self._gates = defaultdict(asyncio.Event)
        self._gated = gated

    def release(self, query):
        self._gates[query].set()

    async def complete(self, prompt, options=None):
        query = _QUERY_RE.search(prompt).group(1)
        self.queries.append(query)
        self.started[query].set()
        if self._gated:
            await self._gates[query].wait()
        reply = self.replies[query]
        if isinstance(reply, Exception):
            raise reply
        return reply


def test_decode_accepts_bare_list_and_wrapped_list():
    assert decode_suggestions(["apple", "apple pie"]) == ["apple", "apple pie"]
    assert decode_suggestions({"suggestions": ["apple"]}) == ["apple"]


@pytest.mark.parametrize("value", [{"items": ["apple"]}, {"suggestions": "apple"}, {}, "apple", 42, None])
def test_decode_other_shapes_are_empty(value):
    assert decode_suggestions(value) == []


def test_decode_drops_non_strings_and_caps_results():
    value = ["a1", 3, None, "  ", " a2 "] + [f"x{i}" for i in range(10)]
    out = decode_suggestions(value, limit=8)
    assert out[:2] == ["a1", "a2"]
    assert len(out) == 8


@pytest.mark.asyncio
async def test_fetch_suggestions_short_query_makes_no_call():
    router = FakeRouter({})
    assert await fetch_suggestions(router, " a ") == []
    assert router.queries == []


@pytest.mark.asyncio
async def test_one_character_never_issues_a_request():
    router = FakeRouter({})
    c = SuggestionController(router, sleeper=no_sleep)
    c.on_input("a")
    assert c.session.state is SuggestionState.IDLE
    assert c.session.pending_timer is None
    await c.settle()
    assert router.queries == []


@pytest.mark.asyncio
async def test_two_characters_then_pause_issues_exactly_one_request():
    delays = []

    async def recording_sleep(seconds: float) -> None:
        delays.append(seconds)

    router = FakeRouter({"ap": ["apple", "apricot"]})
    c = SuggestionController(router, sleeper=recording_sleep)
    c.on_input("ap")
    assert c.session.state is SuggestionState.PENDING
    await c.settle()

    assert delays == [0.35]
    assert router.queries == ["ap"]
    assert c.session.state is SuggestionState.SETTLED
    assert c.session.outcome is SuggestionOutcome.SUCCESS
    assert c.session.last_results == ["apple", "apricot"]
    assert c.session.is_loading is False


@pytest.mark.asyncio
async def test_rapid_keystrokes_issue_one_request_for_the_last_query():
    router = FakeRouter({"chi": ["chicken breast"]})
    c = SuggestionController(router, delay_seconds=0.01)
    c.on_input("ch")
    c.on_input("chi")
    c.on_input("chic")
    c.on_input("chi")
    await c.settle()
    assert router.queries == ["chi"]
    assert c.session.last_results == ["chicken breast"]


@pytest.mark.asyncio
async def test_real_delay_debounces_keystrokes_inside_the_window():
    router = FakeRouter({"app": ["apple"], "appl": ["apple"]})
    c = SuggestionController(router, delay_seconds=0.05)
    c.on_input("ap")
    await asyncio.sleep(0.01)
    c.on_input("app")
    await asyncio.sleep(0.01)
    c.on_input("appl")
    await c.settle()
    assert router.queries == ["appl"]


@pytest.mark.asyncio
async def test_stale_response_is_discarded():
    snapshots = []
    router = FakeRouter({"ap": ["apple"], "chi": ["chicken breast"]}, gated=True)
    c = SuggestionController(
        router,
        sleeper=no_sleep,
        listener=lambda s: snapshots.append(list(s.last_results)),
    )

    c.on_input("ap")
    await router.started["ap"].wait()
    assert c.session.state is SuggestionState.LOADING

    c.on_input("chi")
    router.release("ap")
    router.release("chi")
    await c.settle()

    assert router.queries == ["ap", "chi"]
    assert c.session.last_results == ["chicken breast"]
    assert all("apple" not in snap for snap in snapshots)


@pytest.mark.asyncio
async def test_clearing_the_field_discards_in_flight_result():
    router = FakeRouter({"ap": ["apple"]}, gated=True)
    c = SuggestionController(router, sleeper=no_sleep)
    c.on_input("ap")
    await router.started["ap"].wait()

    c.clear()
    assert c.session.state is SuggestionState.IDLE
    assert c.session.last_results == []

    router.release("ap")
    await c.settle()
    assert c.session.state is SuggestionState.IDLE
    assert c.session.last_results == []


@pytest.mark.asyncio
async def test_close_cancels_pending_timer():
    router = FakeRouter({"ap": ["apple"]})
    c = SuggestionController(router, delay_seconds=10)
    c.on_input("ap")
    timer = c.session.pending_timer
    c.close()
    await c.settle()
    assert timer.cancelled()
    assert router.queries == []
    c.on_input("apple")
    assert c.session.pending_timer is None


@pytest.mark.asyncio
async def test_close_discards_in_flight_result():
    router = FakeRouter({"ap": ["apple"]}, gated=True)
    c = SuggestionController(router, sleeper=no_sleep)
    c.on_input("ap")
    await router.started["ap"].wait()
    c.close()
    router.release("ap")
    await c.settle()
    assert c.session.last_results == []


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [RateLimitError("slow down", status_code=429), ResponseParseError("bad json")])
async def test_provider_errors_degrade_to_empty_list(error):
    router = FakeRouter({"ap": error})
    c = SuggestionController(router, sleeper=no_sleep)
    c.on_input("ap")
    await c.settle()
    assert c.session.last_results == []
    assert c.session.outcome is SuggestionOutcome.ERROR
    assert c.session.state is SuggestionState.SETTLED


@pytest.mark.asyncio
async def test_unexpected_shape_settles_empty_not_error():
    router = FakeRouter({"ap": {"foods": ["apple"]}})
    c = SuggestionController(router, sleeper=no_sleep)
    c.on_input("ap")
    await c.settle()
    assert c.session.outcome is SuggestionOutcome.EMPTY
    assert c.session.last_results == []


@pytest.mark.asyncio
async def test_unexpected_completer_failure_settles_as_error():
    router = FakeRouter({"ap": RuntimeError("boom")})
    c = SuggestionController(router, sleeper=no_sleep)
    c.on_input("ap")
    tasks = list(c._tasks)
    await c.settle()
    assert c.session.state is SuggestionState.SETTLED
    assert c.session.outcome is SuggestionOutcome.ERROR
    assert c.session.is_loading is False
    assert c.session.last_results == []
    assert [t.exception() for t in tasks] == [None]
