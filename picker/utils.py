"""Utility helpers for the movie picker."""

from __future__ import annotations

import re
import unicodedata


_WHITESPACE_RE = re.compile(r"\s+")


def fold_text(value: str) -> str:
    """Return a case- and accent-insensitive search key for ``value``."""

    value = unicodedata.normalize("NFKD", value)
    value = "".join(char for char in value if not unicodedata.combining(char))
    value = _WHITESPACE_RE.sub(" ", value)
    return value.strip().casefold()


def movie_id_from_raw(raw_id: object) -> str:
    """Convert a pushed identifier into the catalog's text representation.

    Identifiers are opaque: integral floats such as ``7.0`` become ``"7"`` but
    no other arithmetic is applied.
    """

    if isinstance(raw_id, bool):
        raise TypeError("Boolean values are not movie identifiers")
    if isinstance(raw_id, float) and raw_id.is_integer():
        return str(int(raw_id))
    return str(raw_id).strip()


def movie_id_to_wire(movie_id: str) -> int:
    """Return the integer form used on the submission wire format."""

    try:
        return int(movie_id.strip(), 10)
    except ValueError as exc:
        raise ValueError(f"Movie id {movie_id!r} is not numeric") from exc
