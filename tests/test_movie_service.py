"""Tests for the movie catalog service."""

from datetime import UTC, datetime
from uuid import uuid4

import pytest

from movies_crud.domain.errors import ErrorKind, TransientBackendError, ValidationError
from movies_crud.domain.movies import Movie, SearchFilters
from movies_crud.services.movies import apply_filters, parse_movie_form
from tests.conftest import (
    InMemoryFavoriteRepository,
    InMemoryMovieRepository,
    InMemoryStorageGateway,
)


def _movie(title: str, **fields) -> Movie:
    return Movie(id=uuid4(), title=title, owner_id=uuid4(), **fields)


def test_parse_movie_form_normalises_fields() -> None:
    payload = parse_movie_form(
        {
            "title": "  Arrival ",
            "year": "2016",
            "duration": 116,
            "score": "8.5",
            "cast": "Amy Adams, Jeremy Renner, ",
            "genres": ["Sci-Fi", " Drama "],
            "director": "",
        }
    )

    assert payload == {
        "title": "Arrival",
        "year": 2016,
        "duration": 116,
        "score": 8.5,
        "cast": ["Amy Adams", "Jeremy Renner"],
        "genres": ["Sci-Fi", "Drama"],
        "director": None,
    }


@pytest.mark.parametrize(
    "form",
    [
        {"title": ""},
        {"title": "Old", "year": 1899},
        {"title": "Future", "year": 2031},
        {"title": "Short", "duration": 0},
        {"title": "Loud", "score": 10.5},
        {"title": "Odd", "year": "nineteen"},
        {"title": "Half", "duration": 90.5},
    ],
)
def test_parse_movie_form_rejects_invalid_values(form) -> None:
    with pytest.raises(ValidationError):
        parse_movie_form(form)


def test_parse_movie_form_partial_keeps_only_given_fields() -> None:
    assert parse_movie_form({"score": 7}, partial=True) == {"score": 7.0}


def test_apply_filters_matches_title_or_director_and_sorts() -> None:
    movies = [
        _movie("Dune", year=2021, director="Denis Villeneuve", score=8.0),
        _movie("Arrival", year=2016, director="Denis Villeneuve", score=7.9),
        _movie("Alien", year=1979, director="Ridley Scott", score=8.5),
    ]

    by_director = apply_filters(movies, SearchFilters(query="villeneuve"))
    by_score = apply_filters(
        movies, SearchFilters(sort_by="score", sort_order="desc")
    )
    recent = apply_filters(movies, SearchFilters(year_from=2000, year_to=2020))

    assert [m.title for m in by_director] == ["Arrival", "Dune"]
    assert [m.title for m in by_score] == ["Alien", "Dune", "Arrival"]
    assert [m.title for m in recent] == ["Arrival"]


def test_apply_filters_by_genre_and_min_score() -> None:
    movies = [
        _movie("Heat", genres=("Crime",), score=8.3),
        _movie("Moon", genres=("Sci-Fi",), score=7.8),
        _movie("Paul", genres=("sci-fi",), score=7.0),
    ]

    result = apply_filters(
        movies, SearchFilters(genres=("Sci-Fi",), min_score=7.5)
    )

    assert [m.title for m in result] == ["Moon"]


def test_apply_filters_rejects_unknown_sort() -> None:
    with pytest.raises(ValidationError):
        apply_filters([], SearchFilters(sort_by="budget"))


def test_list_movies_flags_viewer_favorites(
    movie_service,
    movie_repository: InMemoryMovieRepository,
    favorite_repository: InMemoryFavoriteRepository,
) -> None:
    viewer = uuid4()
    liked = movie_repository.add(uuid4(), "Arrival")
    movie_repository.add(uuid4(), "Brazil")
    favorite_repository.toggle(viewer, liked.id)

    as_viewer = movie_service.list_movies(viewer)
    anonymous = movie_service.list_movies()

    assert [(m.title, m.is_favorited) for m in as_viewer.movies] == [
        ("Arrival", True),
        ("Brazil", False),
    ]
    assert not any(m.is_favorited for m in anonymous.movies)


def test_list_movies_reports_unknown_sort(movie_service) -> None:
    result = movie_service.list_movies(filters=SearchFilters(sort_by="budget"))

    assert result.success is False
    assert result.error is ErrorKind.VALIDATION


def test_list_movies_surfaces_backend_error(
    movie_service,
    movie_repository: InMemoryMovieRepository,
    favorite_repository: InMemoryFavoriteRepository,
) -> None:
    movie_repository.add(uuid4(), "Arrival")
    favorite_repository.error = TransientBackendError("timeout")

    result = movie_service.list_movies(uuid4())

    assert result.success is False
    assert result.error is ErrorKind.TRANSIENT


def test_create_and_update_movie(movie_service) -> None:
    owner = uuid4()
    created = movie_service.create_movie(owner, {"title": "Arrival", "year": 2016})

    updated = movie_service.update_movie(
        created.movie.id, owner, {"score": "8.1", "user_id": str(uuid4())}
    )

    assert created.success
    assert updated.success
    assert updated.movie.score == 8.1
    assert updated.movie.owner_id == owner
    assert updated.movie.title == "Arrival"


def test_update_movie_by_non_owner_is_forbidden(movie_service) -> None:
    created = movie_service.create_movie(uuid4(), {"title": "Arrival"})

    result = movie_service.update_movie(created.movie.id, uuid4(), {"title": "Mine"})

    assert result.error is ErrorKind.FORBIDDEN


def test_update_movie_with_nothing_to_change(movie_service) -> None:
    owner = uuid4()
    created = movie_service.create_movie(owner, {"title": "Arrival"})

    result = movie_service.update_movie(created.movie.id, owner, {})

    assert result.error is ErrorKind.VALIDATION


def test_get_missing_movie(movie_service) -> None:
    assert movie_service.get_movie(uuid4()).error is ErrorKind.NOT_FOUND


def test_delete_movie_cascades_and_removes_portrait(
    movie_service,
    movie_repository: InMemoryMovieRepository,
    favorite_repository: InMemoryFavoriteRepository,
    playlist_repository,
    storage: InMemoryStorageGateway,
) -> None:
    owner = uuid4()
    movie = movie_repository.add(
        owner,
        "Arrival",
        portrait_url="https://storage.test/object/public/portraits/movie_1.png",
    )
    storage.objects[("portraits", "movie_1.png")] = b"png"
    favorite_repository.toggle(uuid4(), movie.id)
    playlist = playlist_repository.create_playlist(owner, {"title": "Sci-Fi"})
    playlist_repository.add_movie(playlist.id, movie.id)

    result = movie_service.delete_movie(movie.id, owner)

    assert result.success
    assert movie.id not in movie_repository.movies
    assert favorite_repository.pairs == []
    assert playlist_repository.memberships == []
    assert storage.objects == {}


def test_delete_movie_succeeds_when_portrait_removal_fails(
    movie_service,
    movie_repository: InMemoryMovieRepository,
    storage: InMemoryStorageGateway,
) -> None:
    owner = uuid4()
    movie = movie_repository.add(
        owner, "Arrival", portrait_url="https://storage.test/portraits/p.png"
    )
    storage.remove_error = TransientBackendError("storage down")

    result = movie_service.delete_movie(movie.id, owner)

    assert result.success
    assert movie.id not in movie_repository.movies


def test_delete_movie_by_non_owner_is_forbidden(
    movie_service, movie_repository: InMemoryMovieRepository
) -> None:
    movie = movie_repository.add(uuid4(), "Arrival")

    result = movie_service.delete_movie(movie.id, uuid4())

    assert result.error is ErrorKind.FORBIDDEN
    assert movie.id in movie_repository.movies


def test_upload_portrait_replaces_previous_object(
    movie_service,
    movie_repository: InMemoryMovieRepository,
    storage: InMemoryStorageGateway,
) -> None:
    owner = uuid4()
    old_url = "https://storage.test/object/public/portraits/old.png"
    movie = movie_repository.add(owner, "Arrival", portrait_url=old_url)
    storage.objects[("portraits", "old.png")] = b"old"

    result = movie_service.upload_portrait(movie.id, owner, "poster.JPG", b"new")

    assert result.success
    assert result.path.startswith(f"movie_{movie.id}_")
    assert result.path.endswith(".jpg")
    assert ("portraits", "old.png") not in storage.objects
    assert ("portraits", result.path) in storage.objects
    assert movie_repository.movies[movie.id].portrait_url == result.url


@pytest.mark.parametrize(
    ("filename", "size"),
    [("poster.bmp", 10), ("poster", 10), ("poster.png", 5 * 1024 * 1024 + 1)],
)
def test_upload_portrait_validation(
    movie_service,
    movie_repository: InMemoryMovieRepository,
    storage: InMemoryStorageGateway,
    filename: str,
    size: int,
) -> None:
    owner = uuid4()
    movie = movie_repository.add(owner, "Arrival")

    result = movie_service.upload_portrait(movie.id, owner, filename, b"x" * size)

    assert result.success is False
    assert result.error is ErrorKind.VALIDATION
    assert storage.objects == {}


def test_sort_by_created_at_uses_creation_order(
    movie_service, movie_repository: InMemoryMovieRepository
) -> None:
    owner = uuid4()
    movie_repository.add(owner, "First")
    movie_repository.add(owner, "Second")

    result = movie_service.list_movies(
        filters=SearchFilters(sort_by="created_at", sort_order="desc")
    )

    assert [m.title for m in result.movies] == ["Second", "First"]
    assert all(m.created_at <= datetime.now(tz=UTC) for m in result.movies)


def test_upload_portrait_removes_new_object_when_pointer_update_fails(
    movie_service,
    movie_repository: InMemoryMovieRepository,
    storage: InMemoryStorageGateway,
) -> None:
    owner = uuid4()
    old_url = "https://storage.test/object/public/portraits/old.png"
    movie = movie_repository.add(owner, "Arrival", portrait_url=old_url)
    storage.objects[("portraits", "old.png")] = b"old"
    movie_repository.update_error = TransientBackendError("connection reset")

    result = movie_service.upload_portrait(movie.id, owner, "poster.png", b"new")

    assert result.error is ErrorKind.TRANSIENT
    assert storage.objects == {("portraits", "old.png"): b"old"}
    assert movie_repository.movies[movie.id].portrait_url == old_url
