"""
tests/test_web_routes.py -- Integration tests for the HTML routes in web/routes.py.

Covers:
  - registration and login flows, including the identical failure message
  - post-login redirect honours a relative next= and rejects off-site targets
  - protected pages redirect anonymous visitors to /login?next=<path>
  - add/edit/delete for the owner; non-owners bounced to /movies untouched
  - invalid movie form re-renders with the submitted values
  - unknown or malformed movie IDs redirect to /movies
  - logout clears the session and is safe to repeat
  - store failures during register/login render a generic form error
"""

from __future__ import annotations

from sqlalchemy.exc import OperationalError

from auth.tokens import SESSION_COOKIE
from catalog.forms import max_year
from tests.conftest import login_as, register_user

MOVIE_FORM = {
    "name": "Dune",
    "description": "Spice must flow.",
    "year": "2021",
    "genres": ["Sci-Fi", "Adventure"],
    "rating": "8.5",
    "duration": "155",
}


def _add_movie(client, **overrides) -> int:
    resp = client.post("/movies/add", data={**MOVIE_FORM, **overrides})
    assert resp.status_code == 303, resp.text[:300]
    return int(resp.headers["location"].rsplit("/", 1)[1])


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


class TestRegister:
    def test_form_renders(self, web_client):
        resp = web_client.get("/register")
        assert resp.status_code == 200
        assert 'name="username"' in resp.text

    def test_success_redirects_to_login(self, web_client, user_store):
        resp = web_client.post(
            "/register", data={"username": "alice", "email": "alice@x.com", "password": "secret1"}
        )
        assert resp.status_code == 303
        assert resp.headers["location"] == "/login"
        assert user_store.get_by_email("alice@x.com").username == "alice"

    def test_duplicate_re_renders_with_message(self, web_client, user_store):
        register_user(user_store, "alice")
        resp = web_client.post(
            "/register", data={"username": "alice", "email": "alice@x.com", "password": "secret1"}
        )
        assert resp.status_code == 200
        assert "Username or email already exists." in resp.text
        assert user_store.count_users() == 1

    def test_invalid_input_keeps_username_but_not_password(self, web_client, user_store):
        resp = web_client.post("/register", data={"username": "alice", "email": "bad", "password": "hunter22"})
        assert resp.status_code == 200
        assert 'value="alice"' in resp.text
        assert "hunter22" not in resp.text
        assert user_store.count_users() == 0


# ---------------------------------------------------------------------------
# Login / logout
# ---------------------------------------------------------------------------


class TestLogin:
    def test_success_sets_http_only_cookie(self, web_client, user_store):
        register_user(user_store, "alice")
        resp = web_client.post("/login", data={"email": "alice@x.com", "password": "secret1"})

        assert resp.status_code == 302
        assert resp.headers["location"] == "/dashboard"
        cookie = resp.headers["set-cookie"]
        assert cookie.startswith(f"{SESSION_COOKIE}=")
        assert "HttpOnly" in cookie
        assert "samesite=lax" in cookie.lower()

    def test_failures_show_the_same_message(self, web_client, user_store):
        register_user(user_store, "alice")

        unknown = web_client.post("/login", data={"email": "nobody@x.com", "password": "secret1"})
        wrong = web_client.post("/login", data={"email": "alice@x.com", "password": "nope-nope"})

        assert unknown.status_code == wrong.status_code == 200
        assert "Invalid credentials" in unknown.text
        assert "Invalid credentials" in wrong.text
        assert SESSION_COOKIE not in unknown.headers.get("set-cookie", "")

    def test_relative_next_is_honoured(self, web_client, user_store):
        register_user(user_store, "alice")
        resp = web_client.post("/login?next=/movies/add", data={"email": "alice@x.com", "password": "secret1"})
        assert resp.headers["location"] == "/movies/add"

    def test_off_site_next_is_ignored(self, web_client, user_store):
        register_user(user_store, "alice")
        for target in ("//evil.com", "https://evil.com/", "evil.com"):
            web_client.cookies.clear()
            resp = web_client.post(
                "/login", params={"next": target}, data={"email": "alice@x.com", "password": "secret1"}
            )
            assert resp.headers["location"] == "/dashboard"

    def test_login_form_keeps_next(self, web_client):
        resp = web_client.get("/login", params={"next": "/movies/add"})
        assert "next=/movies/add" in resp.text or "next=%2Fmovies%2Fadd" in resp.text

    def test_logged_in_user_skips_login_form(self, web_client, user_store):
        register_user(user_store, "alice")
        login_as(web_client, "alice@x.com")
        resp = web_client.get("/login")
        assert resp.status_code == 302
        assert resp.headers["location"] == "/dashboard"


class TestLogout:
    def test_logout_ends_session(self, web_client, user_store):
        register_user(user_store, "alice")
        login_as(web_client, "alice@x.com")

        resp = web_client.get("/logout")
        assert resp.status_code == 302
        assert resp.headers["location"] == "/"

        resp = web_client.get("/dashboard")
        assert resp.status_code == 302
        assert resp.headers["location"].startswith("/login")

    def test_logout_twice_is_harmless(self, web_client):
        assert web_client.get("/logout").status_code == 302
        assert web_client.get("/logout").status_code == 302

    def test_stale_cookie_is_treated_as_anonymous(self, web_client):
        resp = web_client.get("/dashboard", headers={"Cookie": f"{SESSION_COOKIE}=forged-token"})
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login?next=/dashboard"


# ---------------------------------------------------------------------------
# Access control redirects
# ---------------------------------------------------------------------------


class TestAnonymousAccess:
    def test_public_pages(self, web_client):
        assert web_client.get("/").status_code == 200
        assert web_client.get("/movies").status_code == 200

    def test_dashboard_requires_login(self, web_client):
        resp = web_client.get("/dashboard")
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login?next=/dashboard"

    def test_add_form_requires_login(self, web_client):
        resp = web_client.get("/movies/add")
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login?next=/movies/add"

    def test_anonymous_post_creates_nothing(self, web_client, movie_store):
        resp = web_client.post("/movies/add", data=MOVIE_FORM)
        assert resp.status_code == 302
        assert movie_store.count_movies() == 0


# ---------------------------------------------------------------------------
# Movie CRUD
# ---------------------------------------------------------------------------


class TestMovies:
    def test_owner_flow(self, web_client, user_store, movie_store):
        register_user(user_store, "alice")
        login_as(web_client, "alice@x.com")

        movie_id = _add_movie(web_client)

        detail = web_client.get(f"/movies/{movie_id}")
        assert detail.status_code == 200
        assert "Dune" in detail.text
        assert f"/movies/{movie_id}/edit" in detail.text

        dashboard = web_client.get("/dashboard")
        assert "Dune" in dashboard.text

        resp = web_client.post(f"/movies/{movie_id}/edit", data={**MOVIE_FORM, "name": "Dune: Part One"})
        assert resp.status_code == 303
        assert resp.headers["location"] == f"/movies/{movie_id}"
        assert movie_store.get_movie(movie_id).name == "Dune: Part One"

        resp = web_client.post(f"/movies/{movie_id}/delete")
        assert resp.status_code == 303
        assert resp.headers["location"] == "/dashboard"
        assert movie_store.get_movie(movie_id) is None

    def test_invalid_add_re_renders_with_values(self, web_client, user_store, movie_store):
        register_user(user_store, "alice")
        login_as(web_client, "alice@x.com")

        resp = web_client.post("/movies/add", data={**MOVIE_FORM, "year": "1800"})

        assert resp.status_code == 200
        assert 'value="1800"' in resp.text
        assert 'value="Dune"' in resp.text
        assert "Year must be" in resp.text
        assert movie_store.count_movies() == 0

    def test_invalid_edit_shows_stored_movie(self, web_client, user_store, movie_store):
        register_user(user_store, "alice")
        login_as(web_client, "alice@x.com")
        movie_id = _add_movie(web_client)

        resp = web_client.post(f"/movies/{movie_id}/edit", data={**MOVIE_FORM, "name": "Changed", "rating": "11"})

        assert resp.status_code == 200
        assert "Rating must be" in resp.text
        assert 'value="Dune"' in resp.text
        assert movie_store.get_movie(movie_id).rating == 8.5

    def test_other_user_cannot_touch_movie(self, web_client, user_store, movie_store):
        register_user(user_store, "alice")
        register_user(user_store, "bob")
        login_as(web_client, "alice@x.com")
        movie_id = _add_movie(web_client)

        login_as(web_client, "bob@x.com")

        detail = web_client.get(f"/movies/{movie_id}")
        assert detail.status_code == 200
        assert f"/movies/{movie_id}/edit" not in detail.text
        assert "alice" in detail.text

        for resp in (
            web_client.get(f"/movies/{movie_id}/edit"),
            web_client.post(f"/movies/{movie_id}/edit", data={**MOVIE_FORM, "name": "Hijacked"}),
            web_client.post(f"/movies/{movie_id}/delete"),
        ):
            assert resp.status_code == 303
            assert resp.headers["location"] == "/movies"

        movie = movie_store.get_movie(movie_id)
        assert movie.name == "Dune"
        assert "Dune" not in web_client.get("/dashboard").text

    def test_everyone_sees_the_full_list(self, web_client, user_store):
        register_user(user_store, "alice")
        register_user(user_store, "bob")
        login_as(web_client, "alice@x.com")
        _add_movie(web_client, name="Alien")
        login_as(web_client, "bob@x.com")
        _add_movie(web_client, name="Brazil")

        web_client.cookies.clear()
        page = web_client.get("/movies").text
        assert "Alien" in page and "Brazil" in page
        assert "alice" in page and "bob" in page

    def test_unknown_and_malformed_ids_redirect(self, web_client):
        for path in ("/movies/999", "/movies/abc", "/movies/0", "/movies/-1", "/movies/" + "9" * 30):
            resp = web_client.get(path)
            assert resp.status_code == 303, path
            assert resp.headers["location"] == "/movies"

    def test_add_form_caps_year_input(self, web_client, user_store):
        register_user(user_store, "alice")
        login_as(web_client, "alice@x.com")
        resp = web_client.get("/movies/add")
        assert 'min="1888"' in resp.text
        assert f'max="{max_year()}"' in resp.text

    def test_oversized_duration_is_a_field_error(self, web_client, user_store, movie_store):
        register_user(user_store, "alice")
        login_as(web_client, "alice@x.com")

        resp = web_client.post("/movies/add", data={**MOVIE_FORM, "duration": "9" * 30})

        assert resp.status_code == 200
        assert "Duration must be" in resp.text
        assert movie_store.count_movies() == 0


class TestLandingPage:
    def test_shows_catalog_totals(self, web_client, user_store):
        register_user(user_store, "alice")
        login_as(web_client, "alice@x.com")
        _add_movie(web_client)

        resp = web_client.get("/")
        assert "1 movies added by 1 members" in resp.text


# ---------------------------------------------------------------------------
# Store failures
# ---------------------------------------------------------------------------


def _broken(*args, **kwargs):
    raise OperationalError("SELECT 1", {}, Exception("database is locked"))


class TestStoreFailures:
    def test_register_shows_generic_error(self, web_client, user_store, monkeypatch):
        monkeypatch.setattr(user_store, "create_user", _broken)

        resp = web_client.post(
            "/register", data={"username": "alice", "email": "alice@x.com", "password": "secret1"}
        )

        assert resp.status_code == 200
        assert "Registration failed. Please try again." in resp.text
        assert 'value="alice"' in resp.text

    def test_login_shows_generic_error(self, web_client, user_store, monkeypatch):
        register_user(user_store, "alice")
        monkeypatch.setattr(user_store, "get_by_email", _broken)

        resp = web_client.post("/login", data={"email": "alice@x.com", "password": "secret1"})

        assert resp.status_code == 200
        assert "Error logging in. Please try again." in resp.text
        assert SESSION_COOKIE not in resp.headers.get("set-cookie", "")
