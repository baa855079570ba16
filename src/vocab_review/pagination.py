"""
Pagination and search state machine for the vocabulary review client.

This module tracks the browsing mode (normal or search), the current page
and page size, and the displayed word list. Every transition issues a
``FetchTicket`` carrying a monotonically increasing sequence number; a
fetch result is applied only when its ticket is the latest one issued, so
a slow response can never overwrite the result of a newer request.
"""

import random
from dataclasses import dataclass
from typing import Optional

from .config import PAGE_SIZE_OPTIONS
from .exceptions import ValidationError
from .models import PageSnapshot, SessionMode, Word, WordPage


@dataclass(frozen=True)
class FetchTicket:
    """A requested listing: which mode, page and size to fetch."""

    sequence: int
    mode: SessionMode
    page: int
    page_size: int


class PaginationState:
    """
    Normal/Search browsing state with sequenced fetches.

    Two views of the state are kept:
    - the requested target (mode, page, size), updated by each transition
      so that chained transitions never read a stale size or query
    - the displayed state (mode, snapshot, words), committed only by
      ``apply`` from the latest ticket, all fields together
    """

    def __init__(
        self,
        page_size: int = 12,
        page_size_options: tuple[int, ...] = PAGE_SIZE_OPTIONS,
    ) -> None:
        """
        Initialize the state in normal mode on page 1.

        Args:
            page_size: Initial page size
            page_size_options: Allowed page sizes
        """
        self._page_size_options = tuple(page_size_options)
        self._validate_page_size(page_size)

        self._sequence = 0

        self._requested_mode = SessionMode.normal()
        self._requested_page = 1
        self._requested_page_size = page_size

        self._mode = SessionMode.normal()
        self._snapshot = PageSnapshot.build(1, page_size, 0)
        self._words: tuple[Word, ...] = ()
        self._total_known = False
        self._shuffled = False

    @property
    def mode(self) -> SessionMode:
        return self._mode

    @property
    def snapshot(self) -> PageSnapshot:
        return self._snapshot

    @property
    def words(self) -> tuple[Word, ...]:
        return self._words

    @property
    def shuffled(self) -> bool:
        return self._shuffled

    @property
    def total_known(self) -> bool:
        """True once a listing result has been applied."""
        return self._total_known

    @property
    def latest_sequence(self) -> int:
        return self._sequence

    def submit_search(self, query: str) -> FetchTicket:
        """Enter search mode for ``query`` on page 1."""
        query = (query or "").strip()
        if not query:
            raise ValidationError(
                code="empty_query",
                message="Search query must not be empty",
            )
        return self._issue(SessionMode.search(query), 1, self._requested_page_size)

    def exit_search(self) -> FetchTicket:
        """Leave search mode, back to normal mode on page 1."""
        if not self._requested_mode.is_search:
            raise ValidationError(
                code="not_searching",
                message="Not in search mode",
            )
        return self._issue(SessionMode.normal(), 1, self._requested_page_size)

    def go_to_page(self, page: int) -> Optional[FetchTicket]:
        """
        Move to ``page`` in the current mode.

        Returns:
            The ticket to fetch, or None if the page is out of range for the
            displayed listing (no transition happens)
        """
        if page < 1:
            return None
        if self._bounds_known() and page > max(self._snapshot.total_pages, 1):
            return None
        return self._issue(self._requested_mode, page, self._requested_page_size)

    def change_page_size(self, page_size: int) -> FetchTicket:
        """Switch to ``page_size`` and go back to page 1 of the current mode."""
        self._validate_page_size(page_size)
        return self._issue(self._requested_mode, 1, page_size)

    def start(self) -> FetchTicket:
        """Request normal mode page 1, whatever was requested before."""
        return self._issue(SessionMode.normal(), 1, self._requested_page_size)

    def reload(self) -> FetchTicket:
        """Re-request the current mode and page."""
        return self._issue(self._requested_mode, self._requested_page, self._requested_page_size)

    def is_current(self, ticket: FetchTicket) -> bool:
        return ticket.sequence == self._sequence

    def apply(self, ticket: FetchTicket, page: WordPage) -> bool:
        """
        Commit a fetch result if its ticket is still the latest.

        Returns:
            True if applied, False if the result was stale and discarded
        """
        if not self.is_current(ticket):
            return False

        self._mode = ticket.mode
        self._snapshot = PageSnapshot.build(ticket.page, ticket.page_size, page.total)
        self._words = tuple(page.items)
        self._total_known = True
        self._shuffled = False
        return True

    def abandon(self, ticket: FetchTicket) -> None:
        """Roll the requested target back to the displayed state after a failed fetch."""
        if not self.is_current(ticket):
            return
        self._requested_mode = self._mode
        self._requested_page = self._snapshot.current_page
        self._requested_page_size = self._snapshot.page_size

    def shuffle(self, rng: Optional[random.Random] = None) -> tuple[Word, ...]:
        """Permute the displayed words client-side (Fisher-Yates)."""
        words = list(self._words)
        (rng or random).shuffle(words)
        self._words = tuple(words)
        self._shuffled = True
        return self._words

    def _issue(self, mode: SessionMode, page: int, page_size: int) -> FetchTicket:
        self._sequence += 1
        self._requested_mode = mode
        self._requested_page = page
        self._requested_page_size = page_size
        return FetchTicket(
            sequence=self._sequence,
            mode=mode,
            page=page,
            page_size=page_size,
        )

    def _bounds_known(self) -> bool:
        # The displayed total only bounds pages of the same listing.
        return (
            self._total_known
            and self._mode == self._requested_mode
            and self._snapshot.page_size == self._requested_page_size
        )

    def _validate_page_size(self, page_size: int) -> None:
        if page_size not in self._page_size_options:
            raise ValidationError(
                code="invalid_page_size",
                message=f"Page size must be one of {', '.join(str(s) for s in self._page_size_options)}",
                details={"page_size": page_size},
            )
