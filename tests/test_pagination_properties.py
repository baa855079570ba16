"""
Property-based tests for the Pagination module.

Uses Hypothesis for property-based testing to verify the pagination
arithmetic and the sequenced Normal/Search state machine.
"""

import random

import pytest
from hypothesis import given, settings, assume
from hypothesis import strategies as st

from vocab_review.config import PAGE_SIZE_OPTIONS
from vocab_review.exceptions import ValidationError
from vocab_review.models import PageSnapshot, SessionMode, Word, WordPage
from vocab_review.pagination import PaginationState


# Strategies for generating test data

page_size_strategy = st.sampled_from(PAGE_SIZE_OPTIONS)

query_strategy = st.text(
    alphabet=st.characters(whitelist_categories=("L", "N")),
    min_size=1,
    max_size=20,
)


def make_page(count: int, total: int, prefix: str = "w") -> WordPage:
    """Build a WordPage with ``count`` words and a reported total."""
    return WordPage(
        items=tuple(
            Word(id=f"{prefix}{i}", english=f"word{i}", chinese=f"词{i}")
            for i in range(count)
        ),
        total=total,
    )


class TestPageSnapshotArithmeticProperty:
    """
    Property-based tests for pagination arithmetic.
    """

    @given(
        current_page=st.integers(min_value=1, max_value=500),
        page_size=page_size_strategy,
        total_items=st.integers(min_value=0, max_value=10000),
    )
    @settings(max_examples=200)
    def test_derived_fields(self, current_page: int, page_size: int, total_items: int) -> None:
        """
        Property 1: Derived pagination fields.

        *For any* page, size and total, total_pages is the ceiling of
        total/size, start_index is (page-1)*size+1 and end_index is
        min(page*size, total).
        """
        snapshot = PageSnapshot.build(current_page, page_size, total_items)

        assert snapshot.total_pages == -(-total_items // page_size)
        assert snapshot.start_index == (current_page - 1) * page_size + 1
        assert snapshot.end_index == min(current_page * page_size, total_items)

    def test_examples(self) -> None:
        snapshot = PageSnapshot.build(2, 12, 30)
        assert (snapshot.total_pages, snapshot.start_index, snapshot.end_index) == (3, 13, 24)

        snapshot = PageSnapshot.build(3, 12, 30)
        assert (snapshot.start_index, snapshot.end_index) == (25, 30)

        snapshot = PageSnapshot.build(1, 12, 0)
        assert snapshot.total_pages == 0
        assert snapshot.start_index == 1
        assert snapshot.end_index == 0

    @given(
        current_page=st.integers(max_value=0),
        page_size=st.integers(max_value=0),
        total_items=st.integers(max_value=-1),
    )
    @settings(max_examples=50)
    def test_invalid_inputs_rejected(self, current_page: int, page_size: int, total_items: int) -> None:
        with pytest.raises(ValueError):
            PageSnapshot.build(current_page, 12, 0)
        with pytest.raises(ValueError):
            PageSnapshot.build(1, page_size, 0)
        with pytest.raises(ValueError):
            PageSnapshot.build(1, 12, total_items)


class TestSessionModeProperty:
    """Tests for the Normal/Search mode variant."""

    def test_search_requires_query(self) -> None:
        with pytest.raises(ValueError):
            SessionMode.search("")

    def test_normal_has_no_query(self) -> None:
        assert SessionMode.normal().query is None
        assert not SessionMode.normal().is_search


class TestTransitionsProperty:
    """
    Property-based tests for state machine transitions.
    """

    @given(query=query_strategy, page_size=page_size_strategy)
    @settings(max_examples=100)
    def test_submit_search_targets_page_one(self, query: str, page_size: int) -> None:
        """
        Property 2: Entering search resets to page 1.

        *For any* non-empty query, submitting it issues a search ticket for
        page 1 at the current page size.
        """
        state = PaginationState(page_size=page_size)
        state.apply(state.reload(), make_page(page_size, 200))
        state.apply(state.go_to_page(3), make_page(page_size, 200))

        ticket = state.submit_search(query)

        assert ticket.mode == SessionMode.search(query.strip())
        assert ticket.page == 1
        assert ticket.page_size == page_size

    @given(query=st.text(alphabet=" \t\n", max_size=5))
    @settings(max_examples=30)
    def test_blank_search_rejected(self, query: str) -> None:
        state = PaginationState()
        sequence = state.latest_sequence

        with pytest.raises(ValidationError) as exc_info:
            state.submit_search(query)

        assert exc_info.value.code == "empty_query"
        assert state.latest_sequence == sequence

    def test_exit_search_outside_search_rejected(self) -> None:
        state = PaginationState()
        with pytest.raises(ValidationError) as exc_info:
            state.exit_search()
        assert exc_info.value.code == "not_searching"

    def test_exit_search_returns_to_normal_page_one(self) -> None:
        state = PaginationState(page_size=24)
        state.apply(state.submit_search("cat"), make_page(24, 100))
        state.apply(state.go_to_page(2), make_page(24, 100))

        ticket = state.exit_search()

        assert ticket.mode == SessionMode.normal()
        assert ticket.page == 1
        assert ticket.page_size == 24

    @given(query=st.sampled_from(["cat", "dog", "tree"]), page=st.integers(min_value=1, max_value=4))
    @settings(max_examples=20)
    def test_start_is_normal_page_one(self, query: str, page: int) -> None:
        state = PaginationState(page_size=24)
        state.apply(state.submit_search(query), make_page(24, 100))
        state.apply(state.go_to_page(page), make_page(24, 100))

        ticket = state.start()

        assert ticket.mode == SessionMode.normal()
        assert ticket.page == 1
        assert ticket.page_size == 24
        assert ticket.sequence == state.latest_sequence

    @given(
        total_items=st.integers(min_value=0, max_value=500),
        page_size=page_size_strategy,
        target=st.integers(min_value=-5, max_value=60),
    )
    @settings(max_examples=200)
    def test_go_to_page_respects_bounds(self, total_items: int, page_size: int, target: int) -> None:
        """
        Property 3: Page bounds.

        *For any* known total, a page outside [1, max(total_pages, 1)]
        issues no ticket and leaves the sequence unchanged.
        """
        state = PaginationState(page_size=page_size)
        state.apply(state.reload(), make_page(min(page_size, total_items), total_items))
        sequence = state.latest_sequence
        total_pages = state.snapshot.total_pages

        ticket = state.go_to_page(target)

        if 1 <= target <= max(total_pages, 1):
            assert ticket is not None
            assert ticket.page == target
            assert state.latest_sequence == sequence + 1
        else:
            assert ticket is None
            assert state.latest_sequence == sequence

    def test_go_to_page_before_total_known(self) -> None:
        state = PaginationState()
        ticket = state.go_to_page(5)
        assert ticket is not None
        assert ticket.page == 5

    @given(page_size=page_size_strategy)
    @settings(max_examples=20)
    def test_change_page_size_resets_to_page_one(self, page_size: int) -> None:
        state = PaginationState()
        state.apply(state.reload(), make_page(12, 500))
        state.apply(state.go_to_page(4), make_page(12, 500))

        ticket = state.change_page_size(page_size)

        assert ticket.page == 1
        assert ticket.page_size == page_size

    @given(page_size=st.integers(min_value=1, max_value=100))
    @settings(max_examples=50)
    def test_unsupported_page_size_rejected(self, page_size: int) -> None:
        assume(page_size not in PAGE_SIZE_OPTIONS)
        state = PaginationState()
        with pytest.raises(ValidationError) as exc_info:
            state.change_page_size(page_size)
        assert exc_info.value.code == "invalid_page_size"

    def test_chained_transitions_use_requested_size(self) -> None:
        """A page change issued right after a size change uses the new size."""
        state = PaginationState()
        state.apply(state.reload(), make_page(12, 500))

        state.change_page_size(48)
        ticket = state.go_to_page(2)

        assert ticket.page_size == 48

    def test_chained_transitions_use_requested_query(self) -> None:
        state = PaginationState()
        state.submit_search("apple")
        ticket = state.go_to_page(2)

        assert ticket.mode == SessionMode.search("apple")


class TestSequencingProperty:
    """
    Property-based tests for sequenced fetch application.
    """

    @given(
        num_tickets=st.integers(min_value=2, max_value=8),
        data=st.data(),
    )
    @settings(max_examples=100)
    def test_only_latest_ticket_applies(self, num_tickets: int, data) -> None:
        """
        Property 4: Latest request wins.

        *For any* set of outstanding tickets resolved in any order, only
        the result of the last issued ticket is committed.
        """
        state = PaginationState()
        tickets = [state.go_to_page(i + 1) for i in range(num_tickets)]
        order = data.draw(st.permutations(tickets))

        for ticket in order:
            applied = state.apply(ticket, make_page(3, 100, prefix=f"p{ticket.page}-"))
            assert applied == (ticket is tickets[-1])

        assert state.snapshot.current_page == num_tickets
        assert all(word.id.startswith(f"p{num_tickets}-") for word in state.words)

    @given(
        sequence_of_pages=st.lists(st.integers(min_value=1, max_value=9), min_size=1, max_size=10),
    )
    @settings(max_examples=100)
    def test_sequence_strictly_increases(self, sequence_of_pages: list) -> None:
        state = PaginationState()
        previous = state.latest_sequence
        for page in sequence_of_pages:
            ticket = state.go_to_page(page)
            assert ticket.sequence > previous
            previous = ticket.sequence

    def test_apply_commits_all_fields_together(self) -> None:
        state = PaginationState()
        ticket = state.submit_search("cat")

        # Nothing displayed changes until the result lands.
        assert state.mode == SessionMode.normal()

        state.apply(ticket, make_page(5, 5))

        assert state.mode == SessionMode.search("cat")
        assert state.snapshot.total_items == 5
        assert len(state.words) == 5

    def test_abandon_restores_requested_target(self) -> None:
        state = PaginationState()
        state.apply(state.reload(), make_page(12, 100))

        ticket = state.change_page_size(36)
        state.abandon(ticket)
        follow_up = state.go_to_page(2)

        assert follow_up.page_size == 12
        assert follow_up.mode == SessionMode.normal()

    def test_abandon_of_stale_ticket_is_ignored(self) -> None:
        state = PaginationState()
        stale = state.submit_search("cat")
        state.go_to_page(2)

        state.abandon(stale)
        ticket = state.go_to_page(3)

        assert ticket.mode == SessionMode.search("cat")


class TestShuffleProperty:
    """Property-based tests for client-side shuffling."""

    @given(count=st.integers(min_value=0, max_value=60), seed=st.integers())
    @settings(max_examples=100)
    def test_shuffle_is_a_permutation(self, count: int, seed: int) -> None:
        """
        Property 5: Shuffle permutes.

        *For any* displayed list, shuffling keeps the same multiset of
        words and does not touch pagination.
        """
        state = PaginationState(page_size=60)
        state.apply(state.reload(), make_page(count, count))
        before_words = state.words
        before_snapshot = state.snapshot

        shuffled = state.shuffle(random.Random(seed))

        assert sorted(w.id for w in shuffled) == sorted(w.id for w in before_words)
        assert state.snapshot == before_snapshot
        assert state.shuffled

    def test_apply_clears_shuffled_flag(self) -> None:
        state = PaginationState()
        state.apply(state.reload(), make_page(12, 12))
        state.shuffle(random.Random(1))

        state.apply(state.reload(), make_page(12, 12))

        assert not state.shuffled
