"""
api/routes/v1/movies.py -- Read-only JSON access to the movie catalog.

Routes:
  GET /api/v1/movies            -- every movie with its owner's username
  GET /api/v1/movies/{movie_id} -- one movie, 404 envelope if missing

Both are public, matching GET /movies and GET /movies/{id} in the web UI.
Writes go through the HTML forms only.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from api.models import ErrorDetail, MovieResponse
from catalog.service import CatalogService
from core.errors import NotFoundError

router = APIRouter()


@router.get("/movies", response_model=list[MovieResponse])
def list_movies(request: Request) -> list[MovieResponse]:
    catalog: CatalogService = request.app.state.catalog
    return [MovieResponse.from_movie(m) for m in catalog.list_all()]


@router.get("/movies/{movie_id}", response_model=MovieResponse)
def get_movie(request: Request, movie_id: int) -> MovieResponse:
    catalog: CatalogService = request.app.state.catalog
    try:
        movie = catalog.get_by_id(movie_id)
    except NotFoundError as exc:
        raise HTTPException(
            status_code=404,
            detail=ErrorDetail(code="not_found", message=f"Movie {movie_id} not found.").model_dump(),
        ) from exc
    return MovieResponse.from_movie(movie)
