"""
catalog/forms.py -- Validation rules for the add/edit movie forms.

MovieForm is a Pydantic v2 model so HTML form strings ("2021", "8.5") are
coerced to the right numeric types in one place. validate_movie() is the only
entry point the service uses; it converts pydantic failures into the app's
ValidationError, echoing the submitted values unchanged for re-display.

The upper year bound moves with the calendar, so it is read from the
validation context (tests pin it) and falls back to the current UTC year.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, Field, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError

from catalog.models import MovieFields
from core.errors import ValidationError, field_errors

FIRST_FILM_YEAR = 1888
FUTURE_YEARS = 5
MIN_RATING = 0.0
MAX_RATING = 10.0
# Largest value a 32-bit INTEGER column holds on every supported backend.
MAX_DURATION = 2**31 - 1


def _strip(v):
    return v.strip() if isinstance(v, str) else v


def _normalize_genres(v):
    """Accept a single label or a list of labels; drop blanks and duplicates."""
    if v is None:
        return []
    if isinstance(v, str):
        v = [v]
    if not isinstance(v, (list, tuple)):
        return v
    out: list = []
    for item in v:
        item = _strip(item)
        if item == "" or item in out:
            continue
        out.append(item)
    return out


_Genre = Annotated[str, Field(min_length=1, max_length=50)]


def max_year(current_year: Optional[int] = None) -> int:
    return (current_year or datetime.now(timezone.utc).year) + FUTURE_YEARS


def movie_messages(current_year: Optional[int] = None) -> dict[str, str]:
    return {
        "name": "Name is required.",
        "description": "Description is required.",
        "year": f"Year must be a whole number between {FIRST_FILM_YEAR} and {max_year(current_year)}.",
        "genres": "Choose at least one genre.",
        "rating": f"Rating must be a number between {MIN_RATING:g} and {MAX_RATING:g}.",
        "duration": "Duration must be a positive whole number of minutes.",
    }


class MovieForm(BaseModel):
    """Fields submitted by the add and edit movie forms.

    owner_id is intentionally absent: extra keys in the submission are ignored,
    so a forged owner field can never reach the store.
    """

    name: Annotated[str, BeforeValidator(_strip), Field(min_length=1, max_length=255)]
    description: Annotated[str, BeforeValidator(_strip), Field(min_length=1)]
    year: Annotated[int, BeforeValidator(_strip), Field(ge=FIRST_FILM_YEAR)]
    genres: Annotated[list[_Genre], BeforeValidator(_normalize_genres), Field(min_length=1)]
    rating: Annotated[float, BeforeValidator(_strip), Field(ge=MIN_RATING, le=MAX_RATING, allow_inf_nan=False)]
    duration: Annotated[int, BeforeValidator(_strip), Field(ge=1, le=MAX_DURATION)]

    @field_validator("year")
    @classmethod
    def year_not_too_far_ahead(cls, v: int, info: ValidationInfo) -> int:
        current_year = (info.context or {}).get("current_year")
        if v > max_year(current_year):
            raise ValueError(movie_messages(current_year)["year"])
        return v


def validate_movie(values: dict[str, Any], current_year: Optional[int] = None) -> MovieFields:
    """Validate submitted movie fields.

    Returns the typed MovieFields on success. On failure raises ValidationError
    with one message per bad field and the submitted values unchanged.
    """
    try:
        form = MovieForm.model_validate(values, context={"current_year": current_year})
    except PydanticValidationError as exc:
        raise ValidationError(field_errors(exc, movie_messages(current_year)), values) from exc
    return MovieFields(
        name=form.name,
        description=form.description,
        year=form.year,
        genres=list(form.genres),
        rating=form.rating,
        duration=form.duration,
    )
