"""
Vocabulary Session Controller for the vocabulary review client.

This module provides the orchestration layer that answers "which word list
and metadata should be displayed right now" and applies mutations against
both the server and the local cache. It integrates:
- The pagination/search state machine with sequenced fetches
- The known-word cache with single-flight, throttled refreshes
- The auth session and its durable copy in the session store
- Uniform handling of unauthorized responses (forced logout)
"""

import random
from dataclasses import dataclass
from typing import Optional

from .api_client import ApiResult, AuthClient, VocabularyClient
from .audit_logger import AuditLogger
from .config import ClientConfig
from .enums import ApiStatus, LogLevel
from .exceptions import (
    ApplicationError,
    PersistenceError,
    TransportError,
    Unauthenticated,
    Unauthorized,
    ValidationError,
)
from .known_words import KnownWordsCache, RefreshResult
from .models import AuthUser, ResetScope, Stats, ViewSnapshot
from .pagination import FetchTicket, PaginationState
from .session_store import SessionStore


@dataclass(frozen=True)
class AuthSession:
    """In-memory auth session: the bearer token and the user it belongs to."""

    token: str
    user: AuthUser


class VocabularySessionController:
    """
    Stateful controller behind the vocabulary review screen.

    Owns the auth session, the pagination state and the known-word cache;
    no other component mutates them. Every remote failure is recoverable:
    application and transport errors leave local state untouched, and an
    unauthorized response logs the user out before re-signalling login.
    """

    def __init__(
        self,
        vocabulary_client: VocabularyClient,
        auth_client: AuthClient,
        session_store: SessionStore,
        config: Optional[ClientConfig] = None,
        logger: Optional[AuditLogger] = None,
        known_words: Optional[KnownWordsCache] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        """
        Initialize the controller.

        Args:
            vocabulary_client: Client for word lists, search and word tags
            auth_client: Client for login, registration and profile
            session_store: Durable copy of the auth session
            config: Client configuration (defaults are used if omitted)
            logger: Optional audit logger
            known_words: Optional pre-built cache (tests inject a fake clock)
            rng: Optional random source for shuffling
        """
        self._config = config or ClientConfig()
        self._vocabulary = vocabulary_client
        self._auth = auth_client
        self._store = session_store
        self._logger = logger
        self._rng = rng

        self._session: Optional[AuthSession] = None
        # Bumped whenever the session is replaced or dropped.
        self._session_epoch = 0

        self._vocabulary.bind_token_provider(self._current_token)
        self._auth.bind_token_provider(self._current_token)

        self._pagination = PaginationState(
            page_size=self._config.pagination.default_page_size,
            page_size_options=self._config.pagination.page_size_options,
        )
        self._known_words = known_words or KnownWordsCache(
            client=self._vocabulary,
            is_authenticated=self._has_session,
            throttle_seconds=self._config.known_words.throttle_seconds,
            logger=logger,
        )

        self._words_visible = True
        self._translations_visible = True

    async def __aenter__(self) -> "VocabularySessionController":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close both API clients."""
        await self._vocabulary.close()
        await self._auth.close()

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> ViewSnapshot:
        """Immutable view of everything currently displayed."""
        return ViewSnapshot(
            words=self._pagination.words,
            page=self._pagination.snapshot,
            mode=self._pagination.mode,
            known_word_ids=self._known_words.members,
            user=self._session.user if self._session else None,
            shuffled=self._pagination.shuffled,
            words_visible=self._words_visible,
            translations_visible=self._translations_visible,
        )

    @property
    def user(self) -> Optional[AuthUser]:
        return self._session.user if self._session else None

    @property
    def known_words(self) -> KnownWordsCache:
        return self._known_words

    @property
    def pagination(self) -> PaginationState:
        return self._pagination

    def _current_token(self) -> Optional[str]:
        return self._session.token if self._session else None

    def _has_session(self) -> bool:
        return self._session is not None

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> ViewSnapshot:
        """Restore a persisted session, then load normal mode page 1."""
        await self.restore_session()
        return await self._run_fetch(self._pagination.start())

    async def restore_session(self) -> Optional[AuthUser]:
        """
        Validate the persisted token against the auth API.

        A persisted token that is missing, tampered with or rejected by the
        server silently leaves the controller logged out.

        Returns:
            The restored user, or None when logged out
        """
        stored = None
        try:
            stored = self._store.load()
        except PersistenceError as e:
            self._log_error("SessionStore", f"Discarding unreadable session: {e.message}", {"code": e.code})
            self._clear_persisted()

        if stored is not None:
            self._start_session(AuthSession(token=stored.token, user=stored.user))
            epoch = self._session_epoch
            result = await self._auth.get_current_user()
            if epoch != self._session_epoch:
                self._log(LogLevel.DEBUG, "Controller", "Session changed while restoring", {})
            elif result.ok:
                self._log_info("Controller", "Restored persisted session", {"username": stored.user.username})
                await self._refresh_known_words()
            else:
                self._log_info(
                    "Controller",
                    "Persisted session is no longer valid",
                    {"status": result.status.value},
                )
                self._end_session()
                self._clear_persisted()

        return self.user

    async def login(self, username: str, password: str) -> AuthUser:
        """
        Log in and persist the new session.

        Raises:
            ValidationError: If a credential is empty
            ApplicationError, Unauthorized, TransportError: If the server rejects
                the login; the current session is left unchanged
        """
        if not username or not password:
            raise ValidationError(
                code="empty_credentials",
                message="Username and password are required",
            )

        result = await self._auth.login(username, password)
        if not result.ok:
            self._raise_for(result)

        payload = result.payload
        self._store.save(payload.token, payload.user)
        self._start_session(AuthSession(token=payload.token, user=payload.user))
        self._known_words.reset()
        self._log_info("Controller", "Logged in", {"username": payload.user.username})

        await self._refresh_known_words()
        return payload.user

    def logout(self) -> None:
        """Drop the session locally, persisted copy and known-word cache included."""
        self._end_session()
        self._clear_persisted()
        self._log_info("Controller", "Logged out", {})

    def _start_session(self, session: AuthSession) -> None:
        self._session = session
        self._session_epoch += 1

    def _end_session(self) -> None:
        self._session = None
        self._session_epoch += 1
        self._known_words.reset()

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        full_name: Optional[str] = None,
    ) -> AuthUser:
        """Create an account. Does not log in."""
        if not username or not email or not password:
            raise ValidationError(
                code="empty_registration_field",
                message="Username, email and password are required",
            )

        result = await self._auth.register(username, email, password, full_name)
        if not result.ok:
            self._raise_for(result)

        self._log_info("Controller", "Registered account", {"username": result.payload.username})
        return result.payload

    async def load_profile(self) -> AuthUser:
        """Fetch the current user's profile and update the stored copy."""
        self._require_session("view your profile")
        epoch = self._session_epoch
        result = await self._auth.get_profile()
        if not result.ok:
            self._raise_for(result, epoch)
        return self._replace_user(result.payload, epoch)

    async def update_profile(
        self, full_name: Optional[str] = None, bio: Optional[str] = None
    ) -> AuthUser:
        """Update full name and/or bio and store the returned profile."""
        self._require_session("update your profile")
        epoch = self._session_epoch
        result = await self._auth.update_profile(full_name=full_name, bio=bio)
        if not result.ok:
            self._raise_for(result, epoch)
        return self._replace_user(result.payload, epoch)

    async def change_password(self, current_password: str, new_password: str) -> None:
        self._require_session("change your password")
        if not current_password or not new_password:
            raise ValidationError(
                code="empty_password",
                message="Current and new password are required",
            )
        epoch = self._session_epoch
        result = await self._auth.change_password(current_password, new_password)
        if not result.ok:
            self._raise_for(result, epoch)
        self._log_info("Controller", "Password changed", {})

    def _replace_user(self, user: AuthUser, epoch: int) -> AuthUser:
        if self._session is None or epoch != self._session_epoch:
            # Logged out or switched sessions while the request was in flight.
            return user
        token = self._session.token
        self._store.save(token, user)
        self._session = AuthSession(token=token, user=user)
        return user

    # ------------------------------------------------------------------
    # Browsing
    # ------------------------------------------------------------------

    async def search(self, query: str) -> ViewSnapshot:
        """Enter search mode for ``query`` and fetch its first page."""
        return await self._run_fetch(self._pagination.submit_search(query))

    async def exit_search(self) -> ViewSnapshot:
        """Leave search mode and fetch normal mode page 1."""
        return await self._run_fetch(self._pagination.exit_search())

    async def change_page(self, page: int) -> ViewSnapshot:
        """
        Go to ``page`` in the current mode.

        Out-of-range pages are ignored once the total is known.
        """
        ticket = self._pagination.go_to_page(page)
        if ticket is None:
            self._log_info(
                "Pagination",
                "Ignored out-of-range page",
                {"page": page, "total_pages": self._pagination.snapshot.total_pages},
            )
            return self.snapshot
        return await self._run_fetch(ticket)

    async def change_page_size(self, page_size: int) -> ViewSnapshot:
        """Use ``page_size`` from now on and fetch page 1 of the current mode."""
        return await self._run_fetch(self._pagination.change_page_size(page_size))

    def shuffle_view(self) -> ViewSnapshot:
        """Randomly reorder the displayed words; server state is untouched."""
        self._pagination.shuffle(self._rng)
        return self.snapshot

    async def restore_view(self) -> ViewSnapshot:
        """Re-fetch the current page to restore server order."""
        return await self._run_fetch(self._pagination.reload())

    def toggle_words_visible(self) -> ViewSnapshot:
        self._words_visible = not self._words_visible
        return self.snapshot

    def toggle_translations_visible(self) -> ViewSnapshot:
        self._translations_visible = not self._translations_visible
        return self.snapshot

    async def _run_fetch(self, ticket: FetchTicket) -> ViewSnapshot:
        """Fetch a listing for ``ticket`` and apply it unless superseded."""
        epoch = self._session_epoch
        if ticket.mode.is_search:
            result = await self._vocabulary.search_words(ticket.mode.query, ticket.page, ticket.page_size)
        else:
            result = await self._vocabulary.get_words(ticket.page, ticket.page_size)

        if not result.ok:
            if result.status == ApiStatus.UNAUTHORIZED or self._pagination.is_current(ticket):
                self._pagination.abandon(ticket)
                self._raise_for(result, epoch)
            self._log_info(
                "Pagination",
                "Ignored failure of a superseded fetch",
                {"sequence": ticket.sequence, "status": result.status.value},
            )
            return self.snapshot

        if not self._pagination.apply(ticket, result.payload):
            self._log(
                LogLevel.DEBUG,
                "Pagination",
                "Discarded stale response",
                {"sequence": ticket.sequence, "latest": self._pagination.latest_sequence},
            )
            return self.snapshot

        page = self._pagination.snapshot
        self._log_info(
            "Pagination",
            "Displayed page",
            {
                "mode": ticket.mode.kind.value,
                "page": page.current_page,
                "page_size": page.page_size,
                "total_items": page.total_items,
            },
        )

        # Past the end of a listing that shrank: land on its last page.
        if page.current_page > page.total_pages >= 1:
            clamped = self._pagination.go_to_page(page.total_pages)
            if clamped is not None:
                return await self._run_fetch(clamped)

        await self._refresh_known_words()
        return self.snapshot

    # ------------------------------------------------------------------
    # Known words
    # ------------------------------------------------------------------

    async def refresh_known_words(self) -> RefreshResult:
        """Reload the known-word cache, subject to its throttle."""
        return await self._refresh_known_words()

    async def _refresh_known_words(self) -> RefreshResult:
        epoch = self._session_epoch
        refresh = await self._known_words.refresh()
        api_result = refresh.api_result
        if api_result is not None and api_result.status == ApiStatus.UNAUTHORIZED:
            self._drop_rejected_session(epoch)
        return refresh

    async def mark(self, word_id: str, known: bool) -> ViewSnapshot:
        """
        Mark a word as known or unknown.

        The cache changes only after the server confirms.

        Raises:
            Unauthenticated: If not logged in (no request is made)
            Unauthorized: If the server rejected the token (session is cleared)
            ApplicationError, TransportError: On other failures
        """
        self._require_session("mark words")
        epoch = self._session_epoch
        if known:
            result = await self._known_words.mark_known(word_id)
        else:
            result = await self._known_words.mark_unknown(word_id)
        if not result.ok:
            self._raise_for(result, epoch)
        self._log_info("Controller", "Marked word", {"word_id": word_id, "known": known})
        return self.snapshot

    def current_page_scope(self) -> ResetScope:
        """Reset scope covering the words currently displayed."""
        return ResetScope.current_page(word.id for word in self._pagination.words)

    async def reset_known(self, scope: ResetScope) -> ViewSnapshot:
        """Forget the known words in ``scope`` on the server, then locally."""
        self._require_session("reset known words")
        epoch = self._session_epoch
        result = await self._known_words.reset_known(scope)
        if not result.ok:
            self._raise_for(result, epoch)
        self._log_info(
            "Controller",
            "Reset known words",
            {"scope": scope.kind.value, "count": len(scope.word_ids)},
        )
        return self.snapshot

    async def load_stats(self) -> Stats:
        epoch = self._session_epoch
        result = await self._vocabulary.get_stats()
        if not result.ok:
            self._raise_for(result, epoch)
        return result.payload

    # ------------------------------------------------------------------
    # Error handling
    # ------------------------------------------------------------------

    def _require_session(self, action: str) -> None:
        if self._session is None:
            raise Unauthenticated(
                code="login_required",
                message=f"Please log in to {action}",
            )

    def _raise_for(self, result: ApiResult, epoch: Optional[int] = None) -> None:
        """
        Convert a non-OK API result into the matching exception.

        ``epoch`` is the session epoch the request was sent under. An
        unauthorized result logs out only that session; without an epoch
        (login, registration) nothing is logged out.
        """
        error = result.error
        message = error.message if error else "Request failed"
        details = {"http_status_code": result.http_status_code}

        if result.status == ApiStatus.UNAUTHORIZED:
            if epoch is not None:
                self._drop_rejected_session(epoch)
            raise Unauthorized(code="unauthorized", message=message, details=details)

        self._log_error("Controller", message, {"status": result.status.value, **details})

        if result.status == ApiStatus.APP_ERROR:
            raise ApplicationError(code=error.code.value, message=message, details=details)
        raise TransportError(
            code=error.code.value if error else "transport_error",
            message=message,
            details=details,
        )

    def _drop_rejected_session(self, epoch: int) -> None:
        """Log out after a 401, unless the rejected token belongs to an earlier session."""
        if self._session is None:
            return
        if epoch != self._session_epoch:
            self._log(LogLevel.DEBUG, "Controller", "Ignored rejection of a previous session", {})
            return
        self._log_info("Controller", "Session rejected by server", {})
        self.logout()

    def _clear_persisted(self) -> None:
        try:
            self._store.clear()
        except PersistenceError as e:
            self._log_error("SessionStore", f"Failed to clear session file: {e.message}", {"code": e.code})

    def _log(self, level: LogLevel, component: str, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, component, message, data)

    def _log_info(self, component: str, message: str, data: dict) -> None:
        """Log an info message if logger is available."""
        self._log(LogLevel.INFO, component, message, data)

    def _log_error(self, component: str, message: str, data: dict) -> None:
        """Log an error message if logger is available."""
        self._log(LogLevel.ERROR, component, message, data)


def create_controller(
    config: ClientConfig,
    logger: Optional[AuditLogger] = None,
) -> VocabularySessionController:
    """
    Build a controller with HTTP clients and a session store from configuration.

    Args:
        config: Client configuration
        logger: Optional audit logger

    Returns:
        A controller that still needs ``initialize()``
    """
    vocabulary_client = VocabularyClient(
        base_url=config.api.base_url,
        timeout=config.api.timeout_seconds,
    )
    auth_client = AuthClient(
        base_url=config.api.base_url,
        timeout=config.api.timeout_seconds,
    )
    session_store = SessionStore(
        file_path=config.persistence.session_file_path,
        hmac_secret=config.persistence.hmac_secret,
    )
    return VocabularySessionController(
        vocabulary_client=vocabulary_client,
        auth_client=auth_client,
        session_store=session_store,
        config=config,
        logger=logger,
    )
