"""
catalog/models.py -- Domain dataclasses for the movie catalog.

These are pure data containers with zero logic. Validation lives in
catalog/forms.py, ownership rules in catalog/guard.py, persistence in
catalog/store.py.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Movie:
    """A catalog entry.

    owner_id is the user who created the movie. It is set once at insert time
    and no store method can change it afterwards.

    owner_username is not stored on the movie row; the catalog service fills it
    in from the users table for read views.

    id is None before the record is written to the database.
    """

    name: str
    description: str
    year: int
    genres: list[str]
    rating: float
    duration: int  # minutes
    owner_id: int
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    owner_username: Optional[str] = None


@dataclass(frozen=True)
class MovieFields:
    """The editable fields of a movie after validation."""

    name: str
    description: str
    year: int
    genres: list[str] = field(default_factory=list)
    rating: float = 0.0
    duration: int = 1
