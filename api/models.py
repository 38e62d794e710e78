"""
API response models for the movie catalog's JSON endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in catalog/models.py,
which own the internal domain representation. Route handlers map between the
two.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from catalog.models import Movie

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Uniform error envelope returned by every JSON error handler."""

    error: ErrorDetail


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]


# ---------------------------------------------------------------------------
# Movies
# ---------------------------------------------------------------------------


class MovieResponse(BaseModel):
    """Public view of a movie. owner is the username, never the password hash or email."""

    id: int
    name: str
    description: str
    year: int
    genres: list[str]
    rating: float
    duration: int
    owner_id: int
    owner: Optional[str] = None
    created_at: str

    @classmethod
    def from_movie(cls, movie: Movie) -> "MovieResponse":
        return cls(
            id=movie.id,
            name=movie.name,
            description=movie.description,
            year=movie.year,
            genres=movie.genres,
            rating=movie.rating,
            duration=movie.duration,
            owner_id=movie.owner_id,
            owner=movie.owner_username,
            created_at=movie.created_at,
        )
