"""
Data models for the vocabulary review client.

This module defines the words and users decoded from the remote API, the
pagination snapshot, the session mode variant, and the immutable view
snapshot emitted by the session controller.
"""

import math
from dataclasses import dataclass
from typing import Optional

from .enums import ResetScopeKind, SessionModeKind


@dataclass(frozen=True)
class Word:
    """A vocabulary entry as served by the word list and search endpoints."""

    id: str
    english: str
    chinese: str
    phonetic: Optional[str] = None
    difficulty: Optional[float] = None
    category: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Word":
        return cls(
            id=str(data["id"]),
            english=data.get("english", ""),
            chinese=data.get("chinese", ""),
            phonetic=data.get("phonetic"),
            difficulty=data.get("difficulty"),
            category=data.get("category"),
        )


@dataclass(frozen=True)
class AuthUser:
    """Profile of the logged-in user."""

    id: str
    username: str
    email: str
    full_name: Optional[str] = None
    bio: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "AuthUser":
        # The auth API answers with either camelCase or snake_case names.
        return cls(
            id=str(data["id"]),
            username=data["username"],
            email=data.get("email", ""),
            full_name=data.get("fullName", data.get("full_name")),
            bio=data.get("bio"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "fullName": self.full_name,
            "bio": self.bio,
        }


@dataclass(frozen=True)
class WordPage:
    """One page of words plus the total the server reports for the listing."""

    items: tuple[Word, ...]
    total: int


@dataclass(frozen=True)
class LoginPayload:
    """Token and profile returned by a successful login."""

    token: str
    user: AuthUser


@dataclass(frozen=True)
class KnownWordsPayload:
    """Identifiers the server holds as known for the current user."""

    word_ids: frozenset[str]
    total_count: int


@dataclass(frozen=True)
class Stats:
    """Learning statistics for the current user."""

    total_known_words: int
    total_learning_days: int
    average_words_per_day: float

    @classmethod
    def from_dict(cls, data: dict) -> "Stats":
        return cls(
            total_known_words=int(data.get("totalKnownWords", 0)),
            total_learning_days=int(data.get("totalLearningDays", 0)),
            average_words_per_day=float(data.get("averageWordsPerDay", 0.0)),
        )


@dataclass(frozen=True)
class PageSnapshot:
    """
    Pagination metadata for the displayed word list.

    Always built whole by ``build`` so the derived fields can never disagree
    with the inputs they are computed from.
    """

    current_page: int
    page_size: int
    total_items: int
    total_pages: int
    start_index: int
    end_index: int

    @classmethod
    def build(cls, current_page: int, page_size: int, total_items: int) -> "PageSnapshot":
        if current_page < 1:
            raise ValueError(f"current_page must be >= 1, got {current_page}")
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")
        if total_items < 0:
            raise ValueError(f"total_items must be >= 0, got {total_items}")
        return cls(
            current_page=current_page,
            page_size=page_size,
            total_items=total_items,
            total_pages=math.ceil(total_items / page_size),
            start_index=(current_page - 1) * page_size + 1,
            end_index=min(current_page * page_size, total_items),
        )


@dataclass(frozen=True)
class SessionMode:
    """Normal browsing, or a search scoped to a non-empty query."""

    kind: SessionModeKind
    query: Optional[str] = None

    def __post_init__(self) -> None:
        if self.kind == SessionModeKind.SEARCH and not self.query:
            raise ValueError("Search mode requires a non-empty query")
        if self.kind == SessionModeKind.NORMAL and self.query is not None:
            raise ValueError("Normal mode carries no query")

    @classmethod
    def normal(cls) -> "SessionMode":
        return cls(SessionModeKind.NORMAL)

    @classmethod
    def search(cls, query: str) -> "SessionMode":
        return cls(SessionModeKind.SEARCH, query)

    @property
    def is_search(self) -> bool:
        return self.kind == SessionModeKind.SEARCH


@dataclass(frozen=True)
class ResetScope:
    """Which known words a reset forgets: the given page ids, or all of them."""

    kind: ResetScopeKind
    word_ids: tuple[str, ...] = ()

    @classmethod
    def current_page(cls, word_ids) -> "ResetScope":
        return cls(ResetScopeKind.CURRENT_PAGE, tuple(word_ids))

    @classmethod
    def all(cls) -> "ResetScope":
        return cls(ResetScopeKind.ALL)


@dataclass(frozen=True)
class StoredSession:
    """Durable copy of the auth session."""

    token: str
    user: AuthUser
    updated_at: str = ""


@dataclass(frozen=True)
class WordRow:
    """A displayed word with its known-word membership resolved."""

    word: Word
    known: bool


@dataclass(frozen=True)
class ViewSnapshot:
    """Everything the presentation layer needs to render the current state."""

    words: tuple[Word, ...]
    page: PageSnapshot
    mode: SessionMode
    known_word_ids: frozenset[str]
    user: Optional[AuthUser] = None
    shuffled: bool = False
    words_visible: bool = True
    translations_visible: bool = True

    @property
    def rows(self) -> tuple[WordRow, ...]:
        return tuple(
            WordRow(word=word, known=word.id in self.known_word_ids)
            for word in self.words
        )

    @property
    def logged_in(self) -> bool:
        return self.user is not None
