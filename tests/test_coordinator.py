"""Request coordinator: caching, supersession and fallback."""

from __future__ import annotations

import asyncio

import pytest

from typeahead.services.cache import normalize_key
from typeahead.services.coordinator import RequestCoordinator
from typeahead.services.exceptions import (
    GENERIC_FAILURE_MESSAGE,
    SearchCancelled,
    TransportError,
    UserVisibleError,
)
from typeahead.services.fallback import FallbackResolver


class FakeCache:
    def __init__(self, entries: dict[str, list[str]] | None = None) -> None:
        self.entries = dict(entries or {})
        self.reads: list[str] = []
        self.writes: list[tuple[str, list[str]]] = []

    async def get(self, key: str):
        self.reads.append(key)
        value = self.entries.get(normalize_key(key))
        return list(value) if value is not None else None

    async def set(self, key: str, value) -> None:
        self.writes.append((normalize_key(key), list(value)))
        self.entries[normalize_key(key)] = list(value)


class FakeClient:
    """Answers from ``responses``; terms listed in ``gates`` block until released."""

    def __init__(self, responses: dict[str, list[str] | Exception] | None = None) -> None:
        self.responses = dict(responses or {})
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: list[str] = []

    def hold(self, term: str) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates[term] = gate
        return gate

    async def search(self, term, token=None):
        self.calls.append(term)

        async def _answer():
            gate = self.gates.get(term)
            if gate is not None:
                await gate.wait()
            response = self.responses.get(term, [])
            if isinstance(response, Exception):
                raise response
            return list(response)

        if token is None:
            return await _answer()
        return await token.run(_answer())


def _coordinator(cache: FakeCache, client: FakeClient) -> RequestCoordinator:
    return RequestCoordinator(cache=cache, client=client, fallback=FallbackResolver(cache))


@pytest.mark.asyncio
async def test_blank_term_touches_nothing():
    cache, client = FakeCache(), FakeClient()
    coordinator = _coordinator(cache, client)

    outcome = await coordinator.resolve("   ")

    assert outcome.status == "results"
    assert outcome.results == []
    assert cache.reads == [] and client.calls == []
    assert coordinator.generation == 0


@pytest.mark.asyncio
async def test_cache_hit_skips_network():
    cache = FakeCache({"dog": ["Dog", "Dogecoin"]})
    client = FakeClient()
    coordinator = _coordinator(cache, client)

    outcome = await coordinator.resolve("dog")

    assert outcome.results == ["Dog", "Dogecoin"]
    assert outcome.source == "cache"
    assert client.calls == []
    assert cache.writes == []


@pytest.mark.asyncio
async def test_cached_empty_list_is_a_hit():
    cache = FakeCache({"void": []})
    client = FakeClient({"void": ["Void"]})
    coordinator = _coordinator(cache, client)

    outcome = await coordinator.resolve("void")

    assert outcome.results == []
    assert outcome.source == "cache"
    assert client.calls == []


@pytest.mark.asyncio
async def test_remote_results_are_written_through():
    cache = FakeCache()
    client = FakeClient({"Albert": ["Albert Einstein", "Albert Camus"]})
    coordinator = _coordinator(cache, client)

    first = await coordinator.resolve("Albert")
    second = await coordinator.resolve("Albert")

    assert first.results == ["Albert Einstein", "Albert Camus"]
    assert first.source == "remote"
    assert cache.entries == {"albert": ["Albert Einstein", "Albert Camus"]}
    assert second.results == first.results
    assert second.source == "cache"
    assert client.calls == ["Albert"]


@pytest.mark.asyncio
async def test_empty_remote_result_is_not_cached():
    cache = FakeCache()
    client = FakeClient({"zzzz": []})
    coordinator = _coordinator(cache, client)

    outcome = await coordinator.resolve("zzzz")

    assert outcome.status == "results"
    assert outcome.results == []
    assert cache.writes == []


@pytest.mark.asyncio
async def test_generations_increase_monotonically():
    coordinator = _coordinator(FakeCache(), FakeClient())

    await coordinator.resolve("a")
    first = coordinator.generation
    await coordinator.resolve("b")

    assert coordinator.generation == first + 1


@pytest.mark.asyncio
async def test_superseded_request_is_dropped_without_cache_write():
    cache = FakeCache()
    client = FakeClient({"a": ["A"], "ab": ["AB"]})
    release_a = client.hold("a")
    coordinator = _coordinator(cache, client)

    first = asyncio.create_task(coordinator.resolve("a"))
    await asyncio.sleep(0)
    second = await coordinator.resolve("ab")
    release_a.set()
    first_outcome = await first

    assert first_outcome.status == "superseded"
    assert not first_outcome.observable
    assert second.results == ["AB"]
    assert cache.writes == [("ab", ["AB"])]


@pytest.mark.asyncio
async def test_earlier_result_never_shown_when_later_request_still_pending():
    cache = FakeCache()
    client = FakeClient({"a": ["A"], "ab": ["AB"]})
    release_a = client.hold("a")
    release_ab = client.hold("ab")
    coordinator = _coordinator(cache, client)

    first = asyncio.create_task(coordinator.resolve("a"))
    await asyncio.sleep(0)
    second = asyncio.create_task(coordinator.resolve("ab"))
    await asyncio.sleep(0)
    release_a.set()

    first_outcome = await first
    assert first_outcome.status == "superseded"
    assert "a" not in cache.entries

    release_ab.set()
    assert (await second).results == ["AB"]


@pytest.mark.asyncio
async def test_earlier_result_hidden_even_if_later_request_fails():
    cache = FakeCache()
    client = FakeClient({"a": ["A"], "ab": TransportError("offline")})
    release_a = client.hold("a")
    coordinator = _coordinator(cache, client)

    first = asyncio.create_task(coordinator.resolve("a"))
    await asyncio.sleep(0)
    second = await coordinator.resolve("ab")
    release_a.set()

    assert (await first).status == "superseded"
    assert second.status == "error"


@pytest.mark.asyncio
async def test_transport_error_uses_fallback_cache_entry():
    class ExpireOnFirstRead(FakeCache):
        async def get(self, key: str):
            value = await super().get(key)
            return None if len(self.reads) == 1 else value

    cache = ExpireOnFirstRead({"cat": ["Cat", "Catalonia"]})
    client = FakeClient({"cat": TransportError("offline")})
    coordinator = _coordinator(cache, client)

    outcome = await coordinator.resolve("cat")

    assert outcome.status == "results"
    assert outcome.source == "fallback"
    assert outcome.results == ["Cat", "Catalonia"]
    assert client.calls == ["cat"]


@pytest.mark.asyncio
async def test_unreachable_remote_without_cache_yields_user_visible_error():
    cache = FakeCache()
    client = FakeClient({"xyz": TransportError("offline")})
    coordinator = _coordinator(cache, client)

    outcome = await coordinator.resolve("xyz")

    assert outcome.status == "error"
    assert outcome.error == GENERIC_FAILURE_MESSAGE
    with pytest.raises(UserVisibleError):
        outcome.unwrap()


@pytest.mark.asyncio
async def test_superseded_outcome_unwraps_to_cancelled():
    client = FakeClient({"a": ["A"]})
    release = client.hold("a")
    coordinator = _coordinator(FakeCache(), client)

    pending = asyncio.create_task(coordinator.resolve("a"))
    await asyncio.sleep(0)
    coordinator.retire_active()
    release.set()
    outcome = await pending

    assert outcome.status == "superseded"
    with pytest.raises(SearchCancelled):
        outcome.unwrap()


@pytest.mark.asyncio
async def test_retire_active_cancels_token():
    client = FakeClient({"a": ["A"]})
    client.hold("a")
    coordinator = _coordinator(FakeCache(), client)

    pending = asyncio.create_task(coordinator.resolve("a"))
    await asyncio.sleep(0)
    request = coordinator.active
    coordinator.retire_active()

    assert request is not None and request.token.cancelled
    assert coordinator.active is None
    assert (await asyncio.wait_for(pending, timeout=1)).status == "superseded"
