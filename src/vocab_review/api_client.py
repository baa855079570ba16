"""
Remote API clients for the vocabulary review client.

This module provides async clients for the vocabulary and auth APIs. Every
call is decoded at this boundary into an ``ApiResult``: a tagged result that
is either OK with a typed payload, or carries an ``ApiError`` describing an
application failure (non-zero envelope code), an unauthorized response
(HTTP 401), or a transport failure. Callers never inspect raw JSON.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

import httpx

from .enums import ApiErrorCode, ApiStatus
from .models import (
    AuthUser,
    KnownWordsPayload,
    LoginPayload,
    Stats,
    Word,
    WordPage,
)

T = TypeVar("T")

TokenProvider = Callable[[], Optional[str]]


@dataclass
class ApiError:
    """Error information from a remote API call."""

    code: ApiErrorCode
    message: str
    http_status_code: Optional[int] = None


@dataclass
class ApiResult(Generic[T]):
    """Decoded result of a remote API call."""

    status: ApiStatus
    payload: Optional[T] = None
    error: Optional[ApiError] = None
    http_status_code: int = 0
    response_time_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == ApiStatus.OK


class ApiClient:
    """
    Async JSON-over-HTTP client for the ``{code, data, msg}`` envelope.

    A bearer token is attached to every request while the token provider
    returns one. The client never raises for HTTP or network failures; they
    are returned as non-OK results.
    """

    def __init__(
        self,
        base_url: str,
        token_provider: Optional[TokenProvider] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the API client.

        Args:
            base_url: Base URL of the remote service (e.g. http://localhost:8080)
            token_provider: Callable returning the current session token, if any
            timeout: Request timeout in seconds
            transport: Optional httpx transport, used by tests to fake the server
        """
        self._base_url = base_url.rstrip("/")
        self._token_provider = token_provider
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "ApiClient":
        """Async context manager entry."""
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    def bind_token_provider(self, token_provider: Optional[TokenProvider]) -> None:
        """Set the callable consulted for the bearer token on each request."""
        self._token_provider = token_provider

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )
        return self._client

    def _auth_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self._token_provider() if self._token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        decode: Callable[[Any], T],
        params: Optional[dict] = None,
        json_body: Optional[dict] = None,
    ) -> ApiResult[T]:
        """
        Perform a request and decode its envelope.

        Args:
            method: HTTP method
            path: Path relative to the base URL
            decode: Converts the envelope's ``data`` member into the payload
            params: Optional query parameters
            json_body: Optional JSON request body

        Returns:
            ApiResult with the decoded payload or the error
        """
        start_time = time.perf_counter()
        client = self._ensure_client()

        try:
            response = await client.request(
                method,
                path,
                params=params,
                json=json_body,
                headers=self._auth_headers(),
            )
        except httpx.TimeoutException:
            return self._failure(
                ApiStatus.TRANSPORT_ERROR,
                ApiErrorCode.TIMEOUT,
                f"Request timed out after {self._timeout}s",
                0,
                start_time,
            )
        except httpx.HTTPError as e:
            return self._failure(
                ApiStatus.TRANSPORT_ERROR,
                ApiErrorCode.NETWORK_ERROR,
                f"Connection error: {e}",
                0,
                start_time,
            )

        status_code = response.status_code

        # 401 means the token is gone, whatever the body says
        if status_code == 401:
            return self._failure(
                ApiStatus.UNAUTHORIZED,
                ApiErrorCode.UNAUTHORIZED,
                self._envelope_message(response) or "Session expired, please log in again",
                status_code,
                start_time,
            )

        try:
            envelope = response.json()
        except ValueError:
            envelope = None

        if not isinstance(envelope, dict) or "code" not in envelope:
            if status_code >= 400:
                return self._failure(
                    ApiStatus.TRANSPORT_ERROR,
                    ApiErrorCode.HTTP_ERROR,
                    f"Unexpected HTTP status: {status_code}",
                    status_code,
                    start_time,
                )
            return self._failure(
                ApiStatus.TRANSPORT_ERROR,
                ApiErrorCode.PARSE_ERROR,
                "Response is not a valid API envelope",
                status_code,
                start_time,
            )

        if envelope.get("code") != 0:
            return self._failure(
                ApiStatus.APP_ERROR,
                ApiErrorCode.APPLICATION,
                envelope.get("msg") or "Request failed",
                status_code,
                start_time,
            )

        try:
            payload = decode(envelope.get("data"))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            return self._failure(
                ApiStatus.TRANSPORT_ERROR,
                ApiErrorCode.PARSE_ERROR,
                f"Failed to decode response data: {e}",
                status_code,
                start_time,
            )

        return ApiResult(
            status=ApiStatus.OK,
            payload=payload,
            http_status_code=status_code,
            response_time_ms=self._elapsed_ms(start_time),
        )

    @staticmethod
    def _envelope_message(response: httpx.Response) -> Optional[str]:
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict):
            return body.get("msg")
        return None

    def _failure(
        self,
        status: ApiStatus,
        code: ApiErrorCode,
        message: str,
        http_status_code: int,
        start_time: float,
    ) -> ApiResult:
        return ApiResult(
            status=status,
            error=ApiError(
                code=code,
                message=message,
                http_status_code=http_status_code or None,
            ),
            http_status_code=http_status_code,
            response_time_ms=self._elapsed_ms(start_time),
        )

    def _elapsed_ms(self, start_time: float) -> float:
        """Calculate elapsed time in milliseconds."""
        return (time.perf_counter() - start_time) * 1000

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None


def _decode_none(data: Any) -> None:
    return None


def _decode_word_page(data: Any) -> WordPage:
    data = data or {}
    items = data.get("items") or []
    total = int(data.get("total") or 0)
    if total < 0:
        raise ValueError(f"Negative total: {total}")
    return WordPage(
        items=tuple(Word.from_dict(item) for item in items),
        total=total,
    )


def _decode_known_words(data: Any) -> KnownWordsPayload:
    data = data or {}
    words = data.get("words") or []
    word_ids = frozenset(str(word["id"]) for word in words)
    return KnownWordsPayload(
        word_ids=word_ids,
        total_count=int(data.get("totalCount", len(word_ids))),
    )


def _decode_login(data: Any) -> LoginPayload:
    return LoginPayload(
        token=data["token"],
        user=AuthUser.from_dict(data["user"]),
    )


class VocabularyClient(ApiClient):
    """Client for the word list, search and word-tag endpoints."""

    async def get_words(self, page_num: int = 1, page_size: int = 12) -> ApiResult[WordPage]:
        return await self._request(
            "GET",
            "/api/words",
            _decode_word_page,
            params={"pageNum": page_num, "pageSize": page_size},
        )

    async def search_words(
        self, query: str, page_num: int = 1, page_size: int = 12
    ) -> ApiResult[WordPage]:
        return await self._request(
            "GET",
            "/api/search",
            _decode_word_page,
            params={"q": query, "pageNum": page_num, "pageSize": page_size},
        )

    async def get_stats(self) -> ApiResult[Stats]:
        return await self._request("GET", "/api/word-tags/stats", Stats.from_dict)

    async def mark_word(self, word_id: str) -> ApiResult[None]:
        return await self._request(
            "POST", "/api/word-tags/mark", _decode_none, json_body={"wordId": word_id}
        )

    async def unmark_word(self, word_id: str) -> ApiResult[None]:
        return await self._request(
            "DELETE", "/api/word-tags/unmark", _decode_none, json_body={"wordId": word_id}
        )

    async def get_known_words(self) -> ApiResult[KnownWordsPayload]:
        return await self._request("POST", "/api/word-tags/known", _decode_known_words)

    async def forget_words(self, word_ids: list[str]) -> ApiResult[None]:
        return await self._request(
            "POST",
            "/api/word-tags/forget-words",
            _decode_none,
            json_body={"wordIds": list(word_ids)},
        )

    async def forget_all(self) -> ApiResult[None]:
        return await self._request(
            "POST", "/api/word-tags/forget-all", _decode_none, json_body={"confirm": True}
        )


class AuthClient(ApiClient):
    """Client for the login, registration and profile endpoints."""

    async def login(self, username: str, password: str) -> ApiResult[LoginPayload]:
        return await self._request(
            "POST",
            "/api/auth/login",
            _decode_login,
            json_body={"username": username, "password": password},
        )

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        full_name: Optional[str] = None,
    ) -> ApiResult[AuthUser]:
        body = {"username": username, "email": email, "password": password}
        if full_name:
            body["full_name"] = full_name
        return await self._request("POST", "/api/auth/register", AuthUser.from_dict, json_body=body)

    async def get_current_user(self) -> ApiResult[AuthUser]:
        return await self._request("GET", "/api/auth/me", AuthUser.from_dict)

    async def get_profile(self) -> ApiResult[AuthUser]:
        return await self._request("GET", "/api/auth/profile", AuthUser.from_dict)

    async def update_profile(
        self, full_name: Optional[str] = None, bio: Optional[str] = None
    ) -> ApiResult[AuthUser]:
        body = {}
        if full_name is not None:
            body["full_name"] = full_name
        if bio is not None:
            body["bio"] = bio
        return await self._request("PUT", "/api/auth/profile", AuthUser.from_dict, json_body=body)

    async def change_password(self, current_password: str, new_password: str) -> ApiResult[None]:
        return await self._request(
            "POST",
            "/api/auth/change-password",
            _decode_none,
            json_body={
                "current_password": current_password,
                "new_password": new_password,
            },
        )
