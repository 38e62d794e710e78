"""
catalog/service.py -- Use cases for browsing and editing the movie catalog.

CatalogService sits between the web/API layers and the two stores. Every
mutating method takes the session principal as an explicit argument and runs
it through catalog.guard before touching the store.

Reads resolve each movie's owner username with one extra query against the
users store (a read-only join done in application code, since movies and users
live in separate repositories).
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from auth.models import SessionPrincipal
from auth.store import UserStore
from catalog.forms import validate_movie
from catalog.guard import require_authenticated, require_ownership
from catalog.models import Movie
from catalog.store import MovieStore
from core.errors import NotFoundError, ValidationError

logger = logging.getLogger("movieapp.catalog")


class CatalogService:
    """Usage:
    catalog = CatalogService(MovieStore(), UserStore())
    movie_id = catalog.create(principal, {"name": "Dune", ...})
    catalog.update(principal, movie_id, {...})
    catalog.delete(principal, movie_id)
    """

    def __init__(self, movies: MovieStore, users: UserStore, current_year: Optional[int] = None) -> None:
        self.movies = movies
        self.users = users
        # None means "use the calendar"; tests pin it.
        self.current_year = current_year

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _with_owner_names(self, movies: list[Movie]) -> list[Movie]:
        names = self.users.get_usernames(m.owner_id for m in movies)
        for movie in movies:
            movie.owner_username = names.get(movie.owner_id)
        return movies

    def list_all(self) -> list[Movie]:
        """Every movie, with owner usernames. Order is whatever the store returns."""
        return self._with_owner_names(self.movies.list_movies())

    def list_owned_by(self, user_id: int) -> list[Movie]:
        return self.movies.list_movies_by_owner(user_id)

    def get_by_id(self, movie_id: int) -> Movie:
        """Return one movie with its owner username, or raise NotFoundError."""
        movie = self.movies.get_movie(movie_id)
        if movie is None:
            raise NotFoundError()
        return self._with_owner_names([movie])[0]

    def stats(self) -> dict[str, int]:
        """Catalog totals for the landing page."""
        return {"movies": self.movies.count_movies(), "members": self.users.count_users()}

    @staticmethod
    def is_owner(principal: Optional[SessionPrincipal], movie: Movie) -> bool:
        return principal is not None and principal.id == movie.owner_id

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, principal: Optional[SessionPrincipal], values: dict[str, Any]) -> int:
        """Validate and insert a movie owned by the principal. Returns the new ID.

        Raises ValidationError (errors + submitted values) on bad input; nothing
        is written in that case.
        """
        principal = require_authenticated(principal)
        fields = validate_movie(values, self.current_year)
        movie = Movie(
            name=fields.name,
            description=fields.description,
            year=fields.year,
            genres=fields.genres,
            rating=fields.rating,
            duration=fields.duration,
            owner_id=principal.id,
        )
        movie_id = self.movies.create_movie(movie)
        logger.info("Movie %d created by user %d", movie_id, principal.id)
        return movie_id

    def update(self, principal: Optional[SessionPrincipal], movie_id: int, values: dict[str, Any]) -> Movie:
        """Apply an edit from the movie's owner and return the updated movie.

        The owner never changes here, even if the submission carries an owner
        field. On bad input raises ValidationError whose `current` is the
        movie as it was before the edit.
        """
        current = require_ownership(self.movies, principal, movie_id)
        try:
            fields = validate_movie(values, self.current_year)
        except ValidationError as exc:
            raise ValidationError(exc.errors, exc.values, current=current) from exc

        updated = self.movies.update_movie(
            movie_id,
            principal.id,
            name=fields.name,
            description=fields.description,
            year=fields.year,
            genres=fields.genres,
            rating=fields.rating,
            duration=fields.duration,
        )
        if not updated:
            # Deleted between the ownership check and the write.
            raise NotFoundError()
        logger.info("Movie %d updated by user %d", movie_id, principal.id)
        return self.get_by_id(movie_id)

    def delete(self, principal: Optional[SessionPrincipal], movie_id: int) -> None:
        """Remove a movie the principal owns. There is no soft delete."""
        require_ownership(self.movies, principal, movie_id)
        if not self.movies.delete_movie(movie_id, principal.id):
            raise NotFoundError()
        logger.info("Movie %d deleted by user %d", movie_id, principal.id)
