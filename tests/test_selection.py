"""Tests for the bounded movie selection."""

from __future__ import annotations

import random

import pytest

from picker.errors import CapacityExceeded, DuplicateSelection, NotSelected, SelectionError
from picker.models import Movie
from picker.services.selection import SELECTION_CAPACITY, SelectionSet


def _movie(movie_id: str) -> Movie:
    return Movie(id=movie_id, title=f"Movie {movie_id}", release_year="2000")


def test_sixth_add_exceeds_capacity() -> None:
    selection = SelectionSet()
    for movie_id in "ABCDE":
        assert selection.is_complete() is False
        selection.add(_movie(movie_id))

    assert selection.is_complete() is True
    with pytest.raises(CapacityExceeded):
        selection.add(_movie("F"))
    assert selection.snapshot() == ("A", "B", "C", "D", "E")


def test_duplicate_add_is_rejected() -> None:
    selection = SelectionSet()
    selection.add(_movie("1"))

    with pytest.raises(DuplicateSelection):
        selection.add(_movie("1"))
    assert len(selection) == 1


def test_remove_shifts_remaining_order() -> None:
    selection = SelectionSet()
    for movie_id in ("1", "2", "3"):
        selection.add(_movie(movie_id))

    removed = selection.remove("2")

    assert removed.id == "2"
    assert selection.snapshot() == ("1", "3")
    with pytest.raises(NotSelected):
        selection.remove("2")


def test_snapshot_is_unaffected_by_later_mutation() -> None:
    selection = SelectionSet()
    for movie_id in ("1", "2", "3", "4", "5"):
        selection.add(_movie(movie_id))

    snapshot = selection.snapshot()
    selection.remove("3")
    selection.add(_movie("9"))

    assert snapshot == ("1", "2", "3", "4", "5")
    assert selection.snapshot() == ("1", "2", "4", "5", "9")


def test_random_edits_never_break_invariants() -> None:
    rng = random.Random(20241017)
    selection = SelectionSet()
    pool = [_movie(str(index)) for index in range(8)]

    for _ in range(500):
        movie = rng.choice(pool)
        try:
            if rng.random() < 0.6:
                selection.add(movie)
            else:
                selection.remove(movie.id)
        except SelectionError:
            pass
        ids = selection.snapshot()
        assert len(ids) <= SELECTION_CAPACITY
        assert len(set(ids)) == len(ids)


def test_payload_reports_completion() -> None:
    selection = SelectionSet()
    selection.add(_movie("7"))

    payload = selection.to_payload()

    assert payload["capacity"] == 5
    assert payload["complete"] is False
    assert payload["items"] == [{"id": "7", "title": "Movie 7", "releaseYear": "2000"}]
