"""
tests/test_api_movies.py -- Integration tests for the read-only JSON movie API.

Covers:
  - GET /api/v1/movies lists every movie with the owner's username
  - GET /api/v1/movies/{id} returns one movie, 404 envelope when missing
  - no password hash or email ever appears in a response
"""

from __future__ import annotations

from catalog.models import Movie
from tests.conftest import register_user


def _seed(user_store, movie_store) -> int:
    uid = register_user(user_store, "alice")
    return movie_store.create_movie(
        Movie(
            name="Dune",
            description="Spice.",
            year=2021,
            genres=["Sci-Fi"],
            rating=8.0,
            duration=155,
            owner_id=uid,
        )
    )


class TestListMovies:
    def test_empty_catalog(self, web_client):
        resp = web_client.get("/api/v1/movies")
        assert resp.status_code == 200
        assert resp.json() == []

    def test_lists_with_owner(self, web_client, user_store, movie_store):
        movie_id = _seed(user_store, movie_store)

        data = web_client.get("/api/v1/movies").json()

        assert len(data) == 1
        assert data[0]["id"] == movie_id
        assert data[0]["owner"] == "alice"
        assert data[0]["genres"] == ["Sci-Fi"]
        assert "hashed_password" not in data[0]
        assert "email" not in data[0]


class TestGetMovie:
    def test_returns_movie(self, web_client, user_store, movie_store):
        movie_id = _seed(user_store, movie_store)

        resp = web_client.get(f"/api/v1/movies/{movie_id}")

        assert resp.status_code == 200
        assert resp.json()["name"] == "Dune"

    def test_missing_movie_is_404_envelope(self, web_client):
        resp = web_client.get("/api/v1/movies/999")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"

    def test_id_beyond_storage_range_is_404(self, web_client):
        resp = web_client.get("/api/v1/movies/" + "9" * 30)
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"

    def test_non_integer_id_is_422(self, web_client):
        resp = web_client.get("/api/v1/movies/abc")
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"
