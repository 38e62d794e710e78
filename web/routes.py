"""
web/routes.py -- Jinja2 template routes for the movie catalog web UI.

These routes serve server-rendered HTML. They share app.state with the JSON
API (same stores, same CatalogService) but return HTML and redirects.

The session principal is resolved once per request by a dependency and passed
explicitly into every service call and template. Routes that need a login use
get_principal (raises UnauthenticatedError); routes that merely adapt to one
use try_get_principal (None when anonymous). UnauthenticatedError,
ForbiddenError and NotFoundError are turned into redirects by the handlers in
api/main.py, so handlers here only deal with form re-display.

Route registration order matters: GET/POST /movies/add must be registered
before GET /movies/{movie_id} or FastAPI captures "add" as a path param.

Routes:
  GET  /                         -- landing page
  GET  /register                 -- registration form
  POST /register                 -- create account, 303 /login
  GET  /login                    -- login form
  POST /login                    -- open session, 302 next or /dashboard (rate limited)
  GET  /logout                   -- close session, 302 /
  GET  /dashboard                -- the principal's movies (auth required)
  GET  /movies                   -- every movie
  GET  /movies/add               -- add form (auth required)
  POST /movies/add               -- create movie, 303 /movies/{id}
  GET  /movies/{movie_id}        -- detail, with owner controls for the owner
  GET  /movies/{movie_id}/edit   -- edit form (owner only)
  POST /movies/{movie_id}/edit   -- apply edit, 303 /movies/{id}
  POST /movies/{movie_id}/delete -- delete, 303 /dashboard
"""

import logging
from pathlib import Path
from typing import Any, Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.exc import SQLAlchemyError

from api.limiter import limiter
from auth import service as auth_service
from auth.dependencies import get_principal, try_get_principal
from auth.models import SessionPrincipal
from auth.store import UserStore
from auth.tokens import SESSION_COOKIE, clear_session_cookie, set_session_cookie
from catalog.forms import FIRST_FILM_YEAR, max_year
from catalog.guard import require_ownership
from catalog.models import Movie
from catalog.service import CatalogService
from catalog.store import MAX_ID
from core.config import get_settings
from core.errors import AuthenticationError, ConflictError, FieldError, NotFoundError, ValidationError

logger = logging.getLogger("movieapp.web")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
router = APIRouter()

_settings = get_settings()

GENRE_OPTIONS = [
    "Action",
    "Adventure",
    "Animation",
    "Comedy",
    "Crime",
    "Documentary",
    "Drama",
    "Fantasy",
    "Horror",
    "Mystery",
    "Romance",
    "Sci-Fi",
    "Thriller",
    "Western",
]

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _render(
    request: Request,
    name: str,
    principal: Optional[SessionPrincipal],
    status_code: int = 200,
    **context: Any,
) -> HTMLResponse:
    """Render a template with the request and principal always in context."""
    return templates.TemplateResponse(
        request,
        name,
        {"principal": principal, **context},
        status_code=status_code,
    )


def _safe_next(next_url: Optional[str]) -> str:
    """Validate a post-login redirect target. Only accept relative paths.

    Rejects absolute URLs and protocol-relative "//host" paths, both of which
    would send the browser off-site after login.
    """
    if next_url and next_url.startswith("/") and not next_url.startswith("//"):
        return next_url
    return "/dashboard"


def _parse_id(raw: str) -> int:
    """Path IDs arrive as strings; anything that cannot name a stored row is a missing movie."""
    try:
        movie_id = int(raw)
    except ValueError:
        raise NotFoundError() from None
    if not 1 <= movie_id <= MAX_ID:
        raise NotFoundError()
    return movie_id


def _movie_values(movie: Movie) -> dict[str, Any]:
    return {
        "name": movie.name,
        "description": movie.description,
        "year": movie.year,
        "genres": movie.genres,
        "rating": movie.rating,
        "duration": movie.duration,
    }


def _form_context(
    action: str,
    title: str,
    values: dict[str, Any],
    errors: list[FieldError],
    current_year: Optional[int] = None,
) -> dict[str, Any]:
    genres = values.get("genres") or []
    if isinstance(genres, str):
        genres = [genres]
    options = GENRE_OPTIONS + [g for g in genres if g not in GENRE_OPTIONS]
    return {
        "title": title,
        "action": action,
        "old": values,
        "selected_genres": genres,
        "genre_options": options,
        "errors": errors,
        "min_year": FIRST_FILM_YEAR,
        "max_year": max_year(current_year),
    }


# ---------------------------------------------------------------------------
# GET / -- landing
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
def index(request: Request, principal: Optional[SessionPrincipal] = Depends(try_get_principal)) -> HTMLResponse:
    catalog: CatalogService = request.app.state.catalog
    return _render(request, "index.html", principal, title="Home", stats=catalog.stats())


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


@router.get("/register", response_class=HTMLResponse)
def register_form(request: Request, principal: Optional[SessionPrincipal] = Depends(try_get_principal)):
    if principal is not None:
        return RedirectResponse("/dashboard", status_code=302)
    return _render(request, "register.html", principal, title="Register", errors=[], old={})


@router.post("/register", response_class=HTMLResponse)
def register_post(
    request: Request,
    username: str = Form(default=""),
    email: str = Form(default=""),
    password: str = Form(default=""),
    principal: Optional[SessionPrincipal] = Depends(try_get_principal),
):
    """Create an account. Success redirects to the login form."""
    user_store: UserStore = request.app.state.user_store
    old = {"username": username, "email": email}
    try:
        auth_service.register(user_store, username, email, password)
    except ValidationError as exc:
        return _render(request, "register.html", principal, title="Register", errors=exc.errors, old=exc.values)
    except ConflictError as exc:
        errors = [FieldError(field=None, msg=exc.message)]
        return _render(request, "register.html", principal, title="Register", errors=errors, old=old)
    except SQLAlchemyError:
        logger.exception("Registration failed for %r", username)
        errors = [FieldError(field=None, msg="Registration failed. Please try again.")]
        return _render(request, "register.html", principal, title="Register", errors=errors, old=old)
    return RedirectResponse("/login", status_code=303)


# ---------------------------------------------------------------------------
# Login / logout
# ---------------------------------------------------------------------------


@router.get("/login", response_class=HTMLResponse)
def login_form(request: Request, principal: Optional[SessionPrincipal] = Depends(try_get_principal)):
    if principal is not None:
        return RedirectResponse("/dashboard", status_code=302)
    return _render(
        request,
        "login.html",
        principal,
        title="Login",
        errors=[],
        old={},
        next=request.query_params.get("next", ""),
    )


@router.post("/login", response_class=HTMLResponse)
@limiter.limit(_settings.login_rate_limit)  # brute-force mitigation
def login_post(
    request: Request,
    email: str = Form(default=""),
    password: str = Form(default=""),
):
    """Open a session and set the session cookie.

    Unknown email and wrong password render the same message.
    """
    user_store: UserStore = request.app.state.user_store
    next_param = request.query_params.get("next", "")
    old = {"email": email}
    try:
        token, principal = auth_service.login(user_store, email, password)
    except (ValidationError, AuthenticationError) as exc:
        errors = exc.errors if isinstance(exc, ValidationError) else [FieldError(field=None, msg=exc.message)]
        return _render(request, "login.html", None, title="Login", errors=errors, old=old, next=next_param)
    except SQLAlchemyError:
        logger.exception("Login failed with a store error")
        errors = [FieldError(field=None, msg="Error logging in. Please try again.")]
        return _render(request, "login.html", None, title="Login", errors=errors, old=old, next=next_param)

    # Drop any session the browser was already holding.
    auth_service.logout(user_store, request.cookies.get(SESSION_COOKIE))

    resp = RedirectResponse(_safe_next(next_param), status_code=302)
    set_session_cookie(resp, token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/logout")
def logout(request: Request) -> RedirectResponse:
    """Destroy the session (if any), clear the cookie, and go home."""
    auth_service.logout(request.app.state.user_store, request.cookies.get(SESSION_COOKIE))
    resp = RedirectResponse("/", status_code=302)
    clear_session_cookie(resp)
    return resp


# ---------------------------------------------------------------------------
# GET /dashboard -- the principal's own movies
# ---------------------------------------------------------------------------


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard(request: Request, principal: SessionPrincipal = Depends(get_principal)) -> HTMLResponse:
    catalog: CatalogService = request.app.state.catalog
    movies = catalog.list_owned_by(principal.id)
    return _render(request, "dashboard.html", principal, title="Dashboard", movies=movies)


# ---------------------------------------------------------------------------
# GET /movies -- everyone's movies
# ---------------------------------------------------------------------------


@router.get("/movies", response_class=HTMLResponse)
def movies(request: Request, principal: Optional[SessionPrincipal] = Depends(try_get_principal)) -> HTMLResponse:
    catalog: CatalogService = request.app.state.catalog
    return _render(request, "movies.html", principal, title="Movies", movies=catalog.list_all())


# ---------------------------------------------------------------------------
# /movies/add (MUST precede /movies/{movie_id})
# ---------------------------------------------------------------------------


@router.get("/movies/add", response_class=HTMLResponse)
def add_movie_form(request: Request, principal: SessionPrincipal = Depends(get_principal)) -> HTMLResponse:
    catalog: CatalogService = request.app.state.catalog
    ctx = _form_context("/movies/add", "Add Movie", {}, [], catalog.current_year)
    return _render(request, "movie_form.html", principal, **ctx)


@router.post("/movies/add", response_class=HTMLResponse)
def add_movie(
    request: Request,
    name: str = Form(default=""),
    description: str = Form(default=""),
    year: str = Form(default=""),
    genres: Optional[list[str]] = Form(default=None),  # noqa: B008
    rating: str = Form(default=""),
    duration: str = Form(default=""),
    principal: SessionPrincipal = Depends(get_principal),
):
    """Create a movie owned by the principal and redirect to its page."""
    catalog: CatalogService = request.app.state.catalog
    values = {
        "name": name,
        "description": description,
        "year": year,
        "genres": genres or [],
        "rating": rating,
        "duration": duration,
    }
    try:
        movie_id = catalog.create(principal, values)
    except ValidationError as exc:
        ctx = _form_context("/movies/add", "Add Movie", exc.values, exc.errors, catalog.current_year)
        return _render(request, "movie_form.html", principal, **ctx)
    except SQLAlchemyError:
        logger.exception("Saving movie failed for user %d", principal.id)
        errors = [FieldError(None, "Error saving movie.")]
        ctx = _form_context("/movies/add", "Add Movie", values, errors, catalog.current_year)
        return _render(request, "movie_form.html", principal, **ctx)
    return RedirectResponse(f"/movies/{movie_id}", status_code=303)


# ---------------------------------------------------------------------------
# GET /movies/{movie_id} -- detail
# ---------------------------------------------------------------------------


@router.get("/movies/{movie_id}", response_class=HTMLResponse)
def movie_detail(
    request: Request,
    movie_id: str,
    principal: Optional[SessionPrincipal] = Depends(try_get_principal),
) -> HTMLResponse:
    catalog: CatalogService = request.app.state.catalog
    movie = catalog.get_by_id(_parse_id(movie_id))
    return _render(
        request,
        "movie_detail.html",
        principal,
        title=movie.name,
        movie=movie,
        is_owner=catalog.is_owner(principal, movie),
    )


# ---------------------------------------------------------------------------
# /movies/{movie_id}/edit -- owner only
# ---------------------------------------------------------------------------


@router.get("/movies/{movie_id}/edit", response_class=HTMLResponse)
def edit_movie_form(
    request: Request,
    movie_id: str,
    principal: SessionPrincipal = Depends(get_principal),
) -> HTMLResponse:
    catalog: CatalogService = request.app.state.catalog
    movie = require_ownership(catalog.movies, principal, _parse_id(movie_id))
    ctx = _form_context(f"/movies/{movie.id}/edit", "Edit Movie", _movie_values(movie), [], catalog.current_year)
    return _render(request, "movie_form.html", principal, movie=movie, **ctx)


@router.post("/movies/{movie_id}/edit", response_class=HTMLResponse)
def edit_movie(
    request: Request,
    movie_id: str,
    name: str = Form(default=""),
    description: str = Form(default=""),
    year: str = Form(default=""),
    genres: Optional[list[str]] = Form(default=None),  # noqa: B008
    rating: str = Form(default=""),
    duration: str = Form(default=""),
    principal: SessionPrincipal = Depends(get_principal),
):
    """Apply the owner's edit. Invalid input re-displays the movie as stored."""
    catalog: CatalogService = request.app.state.catalog
    mid = _parse_id(movie_id)
    values = {
        "name": name,
        "description": description,
        "year": year,
        "genres": genres or [],
        "rating": rating,
        "duration": duration,
    }
    try:
        catalog.update(principal, mid, values)
    except ValidationError as exc:
        movie = exc.current
        ctx = _form_context(f"/movies/{mid}/edit", "Edit Movie", _movie_values(movie), exc.errors, catalog.current_year)
        return _render(request, "movie_form.html", principal, movie=movie, **ctx)
    except SQLAlchemyError:
        logger.exception("Updating movie %d failed", mid)
        movie = require_ownership(catalog.movies, principal, mid)
        errors = [FieldError(None, "Error updating movie.")]
        ctx = _form_context(f"/movies/{mid}/edit", "Edit Movie", _movie_values(movie), errors, catalog.current_year)
        return _render(request, "movie_form.html", principal, movie=movie, **ctx)
    return RedirectResponse(f"/movies/{mid}", status_code=303)


# ---------------------------------------------------------------------------
# POST /movies/{movie_id}/delete -- owner only
# ---------------------------------------------------------------------------


@router.post("/movies/{movie_id}/delete")
def delete_movie(
    request: Request,
    movie_id: str,
    principal: SessionPrincipal = Depends(get_principal),
) -> RedirectResponse:
    catalog: CatalogService = request.app.state.catalog
    catalog.delete(principal, _parse_id(movie_id))
    return RedirectResponse("/dashboard", status_code=303)
