"""Bounded, ordered selection of movies awaiting submission."""

from __future__ import annotations

from typing import Iterator

from ..errors import CapacityExceeded, DuplicateSelection, NotSelected
from ..models import Movie

SELECTION_CAPACITY = 5


class SelectionSet:
    """Ordered set of at most :data:`SELECTION_CAPACITY` distinct movies."""

    def __init__(self, capacity: int = SELECTION_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be a positive integer")
        self._capacity = capacity
        self._movies: list[Movie] = []

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def movies(self) -> tuple[Movie, ...]:
        return tuple(self._movies)

    def __len__(self) -> int:
        return len(self._movies)

    def __iter__(self) -> Iterator[Movie]:
        return iter(tuple(self._movies))

    def contains(self, movie_id: str) -> bool:
        return any(movie.id == movie_id for movie in self._movies)

    def add(self, movie: Movie) -> None:
        """Append ``movie`` to the selection.

        Raises :class:`CapacityExceeded` when the selection is full and
        :class:`DuplicateSelection` when the movie is already selected.
        """

        if len(self._movies) >= self._capacity:
            raise CapacityExceeded(
                f"Only {self._capacity} movies can be selected"
            )
        if self.contains(movie.id):
            raise DuplicateSelection(f"Movie {movie.id} is already selected")
        self._movies.append(movie)

    def remove(self, movie_id: str) -> Movie:
        """Remove and return the selected movie with ``movie_id``."""

        for position, movie in enumerate(self._movies):
            if movie.id == movie_id:
                del self._movies[position]
                return movie
        raise NotSelected(f"Movie {movie_id} is not selected")

    def clear(self) -> None:
        self._movies.clear()

    def is_complete(self) -> bool:
        return len(self._movies) == self._capacity

    def snapshot(self) -> tuple[str, ...]:
        """Return the selected identifiers in insertion order as an immutable copy."""

        return tuple(movie.id for movie in self._movies)

    def to_payload(self) -> dict[str, object]:
        return {
            "capacity": self._capacity,
            "complete": self.is_complete(),
            "items": [movie.to_payload() for movie in self._movies],
        }
