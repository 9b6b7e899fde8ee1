from picker.models import (
    Movie,
    PageView,
    RecommendationFrame,
    RecommendationResult,
    Resolved,
    Unresolved,
)


def test_movie_accepts_feed_and_client_field_names() -> None:
    movie = Movie.model_validate({"id": " 17 ", "name": "Amélie", "date": 2001})

    assert movie.id == "17"
    assert movie.title == "Amélie"
    assert movie.release_year == "2001"
    assert movie.to_payload() == {"id": "17", "title": "Amélie", "releaseYear": "2001"}


def test_movie_without_title_falls_back_to_identifier() -> None:
    movie = Movie(id="42", title="  ")

    assert movie.display_title() == "Movie 42"


def test_movies_are_hashable_and_comparable() -> None:
    first = Movie(id="1", title="Dinosaur Planet", release_year="2003")
    second = Movie(id="1", title="Dinosaur Planet", release_year="2003")

    assert first == second
    assert len({first, second}) == 1


def test_result_variants_serialise_with_resolution_flag() -> None:
    movie = Movie(id="7", title="8 Man", release_year="1992")
    result = RecommendationResult(entries=(Resolved(movie), Unresolved(99999)))

    assert result.to_payload() == [
        {"resolved": True, "id": "7", "title": "8 Man", "releaseYear": "1992"},
        {"resolved": False, "id": "99999"},
    ]
    assert result.movies == [movie]
    assert result.unresolved_ids == [99999]


def test_result_extend_keeps_duplicates_in_order() -> None:
    movie = Movie(id="7", title="8 Man")
    first = RecommendationResult(entries=(Resolved(movie),))
    second = RecommendationResult(entries=(Resolved(movie), Unresolved(3)))

    combined = first.extend(second)

    assert len(combined) == 3
    assert len(first) == 1
    assert [entry.raw_id for entry in combined] == ["7", "7", 3]


def test_frame_reads_camel_case_ids() -> None:
    frame = RecommendationFrame.model_validate({"movieIds": [3, 1, 2]})

    assert frame.movie_ids == [3, 1, 2]


def test_page_view_navigation_flags() -> None:
    view = PageView(page_number=1, page_size=10, page_count=1)

    assert view.has_previous is False
    assert view.has_next is False
    assert view.to_payload()["items"] == []
