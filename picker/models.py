"""Pydantic models and domain records for catalog and recommendation payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Movie(BaseModel):
    """A single catalog entry parsed from the bulk titles feed."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(min_length=1)
    title: str = Field(
        validation_alias=AliasChoices("title", "name"),
        serialization_alias="title",
    )
    release_year: str = Field(
        default="",
        validation_alias=AliasChoices("release_year", "releaseYear", "date", "year"),
        serialization_alias="releaseYear",
    )

    @field_validator("id", "title", "release_year", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        if value is None:
            return ""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        if isinstance(value, str):
            return value.strip()
        return value

    def display_title(self) -> str:
        """Return a human-friendly title for result cards."""

        title = self.title.strip()
        if title:
            return title
        return f"Movie {self.id}"

    def to_payload(self) -> dict[str, str]:
        return {
            "id": self.id,
            "title": self.display_title(),
            "releaseYear": self.release_year,
        }


class PageView(BaseModel):
    """Derived slice of the catalog for one page and optional search query."""

    page_number: int = Field(ge=1)
    page_size: int = Field(ge=1)
    page_count: int = Field(ge=1)
    query: str = ""
    items: list[Movie] = Field(default_factory=list)
    cumulative: bool = False

    @property
    def has_previous(self) -> bool:
        return self.page_number > 1

    @property
    def has_next(self) -> bool:
        return self.page_number < self.page_count

    def to_payload(self) -> dict[str, object]:
        return {
            "page": self.page_number,
            "pageSize": self.page_size,
            "pageCount": self.page_count,
            "query": self.query,
            "cumulative": self.cumulative,
            "hasPrevious": self.has_previous,
            "hasNext": self.has_next,
            "items": [movie.to_payload() for movie in self.items],
        }


class SubmissionPayload(BaseModel):
    """Outbound request body carrying the selected movie identifiers."""

    model_config = ConfigDict(populate_by_name=True)

    movie_ids: list[int] = Field(alias="movieIds")

    def to_wire(self) -> dict[str, list[int]]:
        return self.model_dump(by_alias=True)


class RecommendationFrame(BaseModel):
    """Inbound push frame with recommended movie identifiers."""

    model_config = ConfigDict(populate_by_name=True)

    movie_ids: list[int] = Field(alias="movieIds")


@dataclass(frozen=True, slots=True)
class Resolved:
    """A pushed identifier that matched a catalog entry."""

    movie: Movie

    @property
    def raw_id(self) -> str:
        return self.movie.id

    def to_payload(self) -> dict[str, object]:
        return {"resolved": True, **self.movie.to_payload()}


@dataclass(frozen=True, slots=True)
class Unresolved:
    """A pushed identifier with no catalog entry."""

    raw_id: int | str

    def to_payload(self) -> dict[str, object]:
        return {"resolved": False, "id": str(self.raw_id)}


ResolvedEntry = Union[Resolved, Unresolved]


@dataclass(frozen=True, slots=True)
class RecommendationResult:
    """Ordered resolution of one pushed identifier batch."""

    entries: tuple[ResolvedEntry, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    @property
    def movies(self) -> list[Movie]:
        return [entry.movie for entry in self.entries if isinstance(entry, Resolved)]

    @property
    def unresolved_ids(self) -> list[int | str]:
        return [entry.raw_id for entry in self.entries if isinstance(entry, Unresolved)]

    def extend(self, other: "RecommendationResult") -> "RecommendationResult":
        """Return a new result with ``other`` appended, keeping duplicates."""

        return RecommendationResult(entries=self.entries + other.entries)

    def to_payload(self) -> list[dict[str, object]]:
        return [entry.to_payload() for entry in self.entries]
