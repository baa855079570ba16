"""
Known-Word Cache module for the vocabulary review client.

This module keeps the set of word identifiers the current user has marked
as known, with:
- Single-flight refresh (at most one listing request in flight)
- A time-window throttle after each successful refresh
- Post-confirmation updates for mark/unmark/forget mutations
- Explicit reset when the session token is cleared
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional

from .api_client import ApiResult, VocabularyClient
from .audit_logger import AuditLogger
from .enums import ApiStatus, LogLevel, RefreshOutcome, ResetScopeKind
from .exceptions import Unauthenticated
from .models import ResetScope


@dataclass
class RefreshResult:
    """Result of a refresh request."""

    outcome: RefreshOutcome
    api_result: Optional[ApiResult] = None


class KnownWordsCache:
    """
    Cache of known word identifiers for the logged-in user.

    Members only change after the server confirms a listing or a mutation.
    A generation counter is bumped on every reset so that responses started
    under a previous session are never applied to the current one.
    """

    DEFAULT_THROTTLE_SECONDS = 5.0

    def __init__(
        self,
        client: VocabularyClient,
        is_authenticated: Callable[[], bool],
        throttle_seconds: float = DEFAULT_THROTTLE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Initialize the known-word cache.

        Args:
            client: Vocabulary API client used for listings and mutations
            is_authenticated: Returns True while a session token is held
            throttle_seconds: Minimum time between successful refreshes
            clock: Monotonic clock, injectable for tests
            logger: Optional audit logger
        """
        self._client = client
        self._is_authenticated = is_authenticated
        self._throttle_seconds = throttle_seconds
        self._clock = clock
        self._logger = logger

        self._members: set[str] = set()
        self._last_successful_fetch: Optional[float] = None
        self._in_flight = False
        self._generation = 0

    @property
    def members(self) -> frozenset[str]:
        """Snapshot of the known word identifiers."""
        return frozenset(self._members)

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def last_successful_fetch(self) -> Optional[float]:
        return self._last_successful_fetch

    def __contains__(self, word_id: str) -> bool:
        return word_id in self._members

    def is_throttled(self) -> bool:
        """Check whether a refresh now would fall inside the throttle window."""
        if self._last_successful_fetch is None:
            return False
        return self._clock() - self._last_successful_fetch < self._throttle_seconds

    async def refresh(self) -> RefreshResult:
        """
        Reload the known word identifiers from the server.

        Skipped without a session, while another refresh is in flight, or
        inside the throttle window. On success the members are replaced
        wholesale; on failure they are left untouched. The in-flight flag is
        always cleared so a later call can retry. A response that lands after
        ``reset()`` is reported as DISCARDED without its API result.

        Returns:
            RefreshResult with the outcome and the API result, if one applies
            to the current session
        """
        if not self._is_authenticated():
            return RefreshResult(RefreshOutcome.SKIPPED_NO_SESSION)
        if self._in_flight:
            return RefreshResult(RefreshOutcome.SKIPPED_IN_FLIGHT)
        if self.is_throttled():
            return RefreshResult(RefreshOutcome.SKIPPED_THROTTLED)

        generation = self._generation
        self._in_flight = True
        try:
            result = await self._client.get_known_words()
        finally:
            if generation == self._generation:
                self._in_flight = False

        if generation != self._generation:
            self._log(LogLevel.DEBUG, "Discarded known-word listing from a previous session", {})
            return RefreshResult(RefreshOutcome.DISCARDED)

        if not result.ok:
            self._log(
                LogLevel.WARN,
                "Failed to load known words",
                {"status": result.status.value, "error": result.error.message if result.error else None},
            )
            return RefreshResult(RefreshOutcome.FAILED, result)

        self._members = set(result.payload.word_ids)
        self._last_successful_fetch = self._clock()
        self._log(LogLevel.INFO, "Known words loaded", {"count": len(self._members)})
        return RefreshResult(RefreshOutcome.REFRESHED, result)

    async def mark_known(self, word_id: str) -> ApiResult:
        """Tag a word as known on the server, then add it locally."""
        return await self._mutate(word_id, known=True)

    async def mark_unknown(self, word_id: str) -> ApiResult:
        """Remove the known tag on the server, then drop it locally."""
        return await self._mutate(word_id, known=False)

    async def _mutate(self, word_id: str, known: bool) -> ApiResult:
        self._require_session()

        generation = self._generation
        if known:
            result = await self._client.mark_word(word_id)
        else:
            result = await self._client.unmark_word(word_id)

        if result.ok and generation == self._generation:
            if known:
                self._members.add(word_id)
            else:
                self._members.discard(word_id)
        return result

    async def reset_known(self, scope: ResetScope) -> ApiResult:
        """
        Forget known words on the server, then locally.

        Args:
            scope: The page's word ids, or all known words

        Returns:
            The API result; members are untouched unless it is OK

        Raises:
            Unauthenticated: If no session is held
        """
        self._require_session()

        if scope.kind == ResetScopeKind.CURRENT_PAGE and not scope.word_ids:
            # Nothing on the page, nothing to forget.
            return ApiResult(status=ApiStatus.OK)

        generation = self._generation
        if scope.kind == ResetScopeKind.ALL:
            result = await self._client.forget_all()
        else:
            result = await self._client.forget_words(list(scope.word_ids))

        if result.ok and generation == self._generation:
            if scope.kind == ResetScopeKind.ALL:
                self._members.clear()
            else:
                self._members.difference_update(scope.word_ids)
        return result

    def reset(self) -> None:
        """Invalidate the cache after the session token was cleared."""
        self._generation += 1
        self._members.clear()
        self._last_successful_fetch = None
        self._in_flight = False

    def _require_session(self) -> None:
        if not self._is_authenticated():
            raise Unauthenticated(
                code="login_required",
                message="Please log in before changing known words",
            )

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, "KnownWordsCache", message, data)
