"""
Property-based tests for the Known-Word Cache module.

Uses Hypothesis for property-based testing to verify single-flight
refreshes, the refresh throttle, and post-confirmation mutations.
"""

import asyncio
from typing import Optional

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from vocab_review.api_client import ApiError, ApiResult
from vocab_review.enums import ApiErrorCode, ApiStatus, RefreshOutcome
from vocab_review.exceptions import Unauthenticated
from vocab_review.known_words import KnownWordsCache
from vocab_review.models import KnownWordsPayload, ResetScope


word_id_strategy = st.text(alphabet="abcdef0123456789", min_size=1, max_size=8)
word_ids_strategy = st.frozensets(word_id_strategy, max_size=20)


def ok(payload=None) -> ApiResult:
    return ApiResult(status=ApiStatus.OK, payload=payload, http_status_code=200)


def failure(status: ApiStatus = ApiStatus.TRANSPORT_ERROR) -> ApiResult:
    code = {
        ApiStatus.APP_ERROR: ApiErrorCode.APPLICATION,
        ApiStatus.UNAUTHORIZED: ApiErrorCode.UNAUTHORIZED,
    }.get(status, ApiErrorCode.NETWORK_ERROR)
    return ApiResult(status=status, error=ApiError(code=code, message="failed"))


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeVocabularyClient:
    """Records word-tag calls and answers with configurable results."""

    def __init__(self, known: frozenset = frozenset()) -> None:
        self.known = set(known)
        self.calls: list[tuple] = []
        self.known_result: Optional[ApiResult] = None
        self.mutation_result: Optional[ApiResult] = None
        self.gate: Optional[asyncio.Event] = None

    async def get_known_words(self) -> ApiResult:
        self.calls.append(("known",))
        if self.gate is not None:
            await self.gate.wait()
        if self.known_result is not None:
            return self.known_result
        return ok(KnownWordsPayload(word_ids=frozenset(self.known), total_count=len(self.known)))

    async def mark_word(self, word_id: str) -> ApiResult:
        self.calls.append(("mark", word_id))
        return self.mutation_result or ok()

    async def unmark_word(self, word_id: str) -> ApiResult:
        self.calls.append(("unmark", word_id))
        return self.mutation_result or ok()

    async def forget_words(self, word_ids: list) -> ApiResult:
        self.calls.append(("forget", tuple(word_ids)))
        return self.mutation_result or ok()

    async def forget_all(self) -> ApiResult:
        self.calls.append(("forget_all",))
        return self.mutation_result or ok()


def make_cache(client: FakeVocabularyClient, logged_in: bool = True, clock: Optional[FakeClock] = None):
    session = {"active": logged_in}
    cache = KnownWordsCache(
        client=client,
        is_authenticated=lambda: session["active"],
        throttle_seconds=5.0,
        clock=clock or FakeClock(),
    )
    return cache, session


class TestRefreshProperty:
    """
    Property-based tests for refresh semantics.
    """

    @given(known=word_ids_strategy)
    @settings(max_examples=100)
    def test_refresh_replaces_members(self, known: frozenset) -> None:
        """
        Property 1: Refresh replaces members wholesale.

        *For any* server listing, a successful refresh makes the cache
        members equal to it and records the fetch time.
        """
        client = FakeVocabularyClient(known)
        clock = FakeClock()
        cache, _ = make_cache(client, clock=clock)

        result = asyncio.run(cache.refresh())

        assert result.outcome == RefreshOutcome.REFRESHED
        assert cache.members == known
        assert cache.last_successful_fetch == clock.now
        assert not cache.in_flight

    def test_refresh_without_session_makes_no_request(self) -> None:
        client = FakeVocabularyClient({"a"})
        cache, _ = make_cache(client, logged_in=False)

        result = asyncio.run(cache.refresh())

        assert result.outcome == RefreshOutcome.SKIPPED_NO_SESSION
        assert client.calls == []

    @given(
        elapsed=st.floats(min_value=0.0, max_value=20.0, allow_nan=False),
    )
    @settings(max_examples=100)
    def test_throttle_window(self, elapsed: float) -> None:
        """
        Property 2: Throttle.

        *For any* delay after a successful refresh, another refresh issues
        a request only once the 5 second window has passed.
        """
        client = FakeVocabularyClient({"a"})
        clock = FakeClock(0.0)
        cache, _ = make_cache(client, clock=clock)

        async def scenario():
            await cache.refresh()
            clock.advance(elapsed)
            return await cache.refresh()

        result = asyncio.run(scenario())

        if elapsed < 5.0:
            assert result.outcome == RefreshOutcome.SKIPPED_THROTTLED
            assert len(client.calls) == 1
        else:
            assert result.outcome == RefreshOutcome.REFRESHED
            assert len(client.calls) == 2

    def test_throttle_example(self) -> None:
        """Refreshes at t=0, 2 and 6 issue exactly two requests."""
        client = FakeVocabularyClient({"a"})
        clock = FakeClock(0.0)
        cache, _ = make_cache(client, clock=clock)

        async def scenario():
            await cache.refresh()
            clock.now = 2.0
            await cache.refresh()
            clock.now = 6.0
            await cache.refresh()

        asyncio.run(scenario())

        assert len(client.calls) == 2

    @given(concurrent=st.integers(min_value=2, max_value=6))
    @settings(max_examples=50)
    def test_single_flight(self, concurrent: int) -> None:
        """
        Property 3: Single flight.

        *For any* number of refreshes started while one is in flight, only
        one listing request is made.
        """
        client = FakeVocabularyClient({"a"})
        cache, _ = make_cache(client)

        async def scenario():
            client.gate = asyncio.Event()
            tasks = [asyncio.ensure_future(cache.refresh()) for _ in range(concurrent)]
            await asyncio.sleep(0)
            assert cache.in_flight
            client.gate.set()
            return await asyncio.gather(*tasks)

        results = asyncio.run(scenario())

        assert len(client.calls) == 1
        outcomes = [r.outcome for r in results]
        assert outcomes.count(RefreshOutcome.REFRESHED) == 1
        assert outcomes.count(RefreshOutcome.SKIPPED_IN_FLIGHT) == concurrent - 1
        assert not cache.in_flight

    @given(status=st.sampled_from([ApiStatus.APP_ERROR, ApiStatus.TRANSPORT_ERROR, ApiStatus.UNAUTHORIZED]))
    @settings(max_examples=20)
    def test_failure_keeps_members_and_allows_retry(self, status: ApiStatus) -> None:
        """
        Property 4: Failed refresh.

        *For any* failure, members stay unchanged, the in-flight flag is
        cleared and no throttle window starts.
        """
        client = FakeVocabularyClient({"a", "b"})
        clock = FakeClock()
        cache, _ = make_cache(client, clock=clock)

        async def scenario():
            await cache.refresh()
            clock.advance(10.0)
            client.known = {"c"}
            client.known_result = failure(status)
            failed = await cache.refresh()
            client.known_result = None
            retried = await cache.refresh()
            return failed, retried

        failed, retried = asyncio.run(scenario())

        assert failed.outcome == RefreshOutcome.FAILED
        assert failed.api_result.status == status
        assert retried.outcome == RefreshOutcome.REFRESHED
        assert cache.members == frozenset({"c"})

    def test_response_after_reset_is_discarded(self) -> None:
        client = FakeVocabularyClient({"old"})
        cache, session = make_cache(client)

        async def scenario():
            client.gate = asyncio.Event()
            task = asyncio.ensure_future(cache.refresh())
            await asyncio.sleep(0)
            session["active"] = False
            cache.reset()
            client.gate.set()
            return await task

        result = asyncio.run(scenario())

        assert result.outcome == RefreshOutcome.DISCARDED
        assert result.api_result is None
        assert cache.members == frozenset()
        assert cache.last_successful_fetch is None


class TestMutationProperty:
    """
    Property-based tests for post-confirmation mutations.
    """

    @given(known=word_ids_strategy, word_id=word_id_strategy, mark=st.booleans())
    @settings(max_examples=100)
    def test_mark_applies_after_confirmation(self, known: frozenset, word_id: str, mark: bool) -> None:
        """
        Property 5: Confirmed mutations.

        *For any* cache and word, a confirmed mark adds the word and a
        confirmed unmark removes it; nothing else changes.
        """
        client = FakeVocabularyClient(known)
        cache, _ = make_cache(client)

        async def scenario():
            await cache.refresh()
            if mark:
                return await cache.mark_known(word_id)
            return await cache.mark_unknown(word_id)

        result = asyncio.run(scenario())

        assert result.ok
        expected = set(known)
        if mark:
            expected.add(word_id)
        else:
            expected.discard(word_id)
        assert cache.members == frozenset(expected)

    @given(
        known=word_ids_strategy,
        word_id=word_id_strategy,
        status=st.sampled_from([ApiStatus.APP_ERROR, ApiStatus.TRANSPORT_ERROR, ApiStatus.UNAUTHORIZED]),
    )
    @settings(max_examples=100)
    def test_failed_mutation_leaves_members(self, known: frozenset, word_id: str, status: ApiStatus) -> None:
        client = FakeVocabularyClient(known)
        cache, _ = make_cache(client)

        async def scenario():
            await cache.refresh()
            client.mutation_result = failure(status)
            return await cache.mark_known(word_id)

        result = asyncio.run(scenario())

        assert result.status == status
        assert cache.members == known

    def test_mutation_without_session_raises(self) -> None:
        client = FakeVocabularyClient()
        cache, _ = make_cache(client, logged_in=False)

        with pytest.raises(Unauthenticated):
            asyncio.run(cache.mark_known("w1"))

        assert client.calls == []

    @given(known=word_ids_strategy, data=st.data())
    @settings(max_examples=100)
    def test_reset_current_page(self, known: frozenset, data) -> None:
        """
        Property 6: Page reset.

        *For any* page of ids, a confirmed reset removes exactly those ids.
        """
        page_ids = data.draw(st.lists(word_id_strategy, min_size=1, max_size=12, unique=True))
        client = FakeVocabularyClient(known)
        cache, _ = make_cache(client)

        async def scenario():
            await cache.refresh()
            return await cache.reset_known(ResetScope.current_page(page_ids))

        result = asyncio.run(scenario())

        assert result.ok
        assert ("forget", tuple(page_ids)) in client.calls
        assert cache.members == known - frozenset(page_ids)

    def test_reset_all(self) -> None:
        client = FakeVocabularyClient({"a", "b"})
        cache, _ = make_cache(client)

        async def scenario():
            await cache.refresh()
            await cache.reset_known(ResetScope.all())

        asyncio.run(scenario())

        assert ("forget_all",) in client.calls
        assert cache.members == frozenset()

    def test_reset_empty_page_is_noop(self) -> None:
        client = FakeVocabularyClient({"a"})
        cache, _ = make_cache(client)

        async def scenario():
            await cache.refresh()
            return await cache.reset_known(ResetScope.current_page([]))

        result = asyncio.run(scenario())

        assert result.ok
        assert client.calls == [("known",)]
        assert cache.members == frozenset({"a"})

    def test_reset_clears_state(self) -> None:
        client = FakeVocabularyClient({"a"})
        clock = FakeClock()
        cache, _ = make_cache(client, clock=clock)
        asyncio.run(cache.refresh())

        cache.reset()

        assert cache.members == frozenset()
        assert cache.last_successful_fetch is None
        assert not cache.is_throttled()
