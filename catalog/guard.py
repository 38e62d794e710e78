"""
catalog/guard.py -- Authorization checks for movie routes and services.

require_ownership() returns the movie it loaded so the caller acts on that
object instead of fetching it a second time. The store's conditional
update/delete repeats the owner predicate at write time, so the guard decides
what the user is told and the store decides what actually changes.
"""

from __future__ import annotations

from typing import Optional

from auth.models import SessionPrincipal
from catalog.models import Movie
from catalog.store import MovieStore
from core.errors import ForbiddenError, NotFoundError, UnauthenticatedError


def require_authenticated(principal: Optional[SessionPrincipal]) -> SessionPrincipal:
    """Return principal unchanged, or raise UnauthenticatedError if there is none."""
    if principal is None:
        raise UnauthenticatedError()
    return principal


def require_ownership(store: MovieStore, principal: Optional[SessionPrincipal], movie_id: int) -> Movie:
    """Load a movie the principal owns.

    Raises UnauthenticatedError for anonymous callers, NotFoundError for a
    missing movie, and ForbiddenError when the movie belongs to someone else.
    """
    principal = require_authenticated(principal)
    movie = store.get_movie(movie_id)
    if movie is None:
        raise NotFoundError()
    if movie.owner_id != principal.id:
        raise ForbiddenError()
    return movie
