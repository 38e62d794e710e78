"""
catalog/store.py -- SQLAlchemy-backed persistence layer for movies.

Uses SQLAlchemy Core (not ORM) so the dataclasses in catalog/models.py remain
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change.

Pattern: Repository + Data Mapper. MovieStore is the repository; _row_to_movie
is the mapper. Service code never touches SQL directly.

Ownership:
  update_movie() and delete_movie() take the acting owner's ID and put it in
  the WHERE clause next to the movie ID. The ownership check and the write are
  one statement, so there is no window between "is this yours?" and "change
  it". owner_id itself is never in the set of writable fields.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = MovieStore()                               # settings.database_url
    store = MovieStore("postgresql://user:pw@host/db")
    movie_id = store.create_movie(movie)
    store.update_movie(movie_id, owner_id, rating=9.0)
    store.delete_movie(movie_id, owner_id)
    store.close()
"""

import json
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, Float, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine

from catalog.models import Movie
from core.config import get_settings

# Fields update_movie() may write. Anything else is rejected before SQL is built.
_MUTABLE_FIELDS: frozenset[str] = frozenset({"name", "description", "year", "genres", "rating", "duration"})

# SQLite INTEGER is a signed 64-bit value; larger IDs cannot name a row.
MAX_ID = 2**63 - 1

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_movies = Table(
    "movies",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("description", Text, nullable=False),
    Column("year", Integer, nullable=False),
    Column("genres", Text, nullable=False),  # JSON array serialized as text
    Column("rating", Float, nullable=False),
    Column("duration", Integer, nullable=False),
    Column("owner_id", Integer, nullable=False, index=True),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety (per connection)."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class MovieStore:
    def __init__(self, db_url: Optional[str] = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    def create_movie(self, movie: Movie) -> int:
        """Insert a new movie and return its assigned database ID."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _movies.insert().values(
                    name=movie.name,
                    description=movie.description,
                    year=movie.year,
                    genres=json.dumps(movie.genres),
                    rating=movie.rating,
                    duration=movie.duration,
                    owner_id=movie.owner_id,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_movie(self, movie_id: int) -> Optional[Movie]:
        if not 1 <= movie_id <= MAX_ID:
            return None
        with self.engine.connect() as conn:
            row = conn.execute(_movies.select().where(_movies.c.id == movie_id)).fetchone()
        return _row_to_movie(row) if row is not None else None

    def list_movies(self) -> list[Movie]:
        """Return every movie in insertion order."""
        with self.engine.connect() as conn:
            rows = conn.execute(_movies.select().order_by(_movies.c.id)).fetchall()
        return [_row_to_movie(r) for r in rows]

    def list_movies_by_owner(self, owner_id: int) -> list[Movie]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                _movies.select().where(_movies.c.owner_id == owner_id).order_by(_movies.c.id)
            ).fetchall()
        return [_row_to_movie(r) for r in rows]

    def count_movies(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_movies)).scalar()
        return result or 0

    def update_movie(self, movie_id: int, owner_id: int, /, **fields) -> bool:
        """Update editable fields on a movie owned by owner_id.

        Accepts any subset of: name, description, year, genres, rating,
        duration. genres must be passed as list[str]; this method serializes
        it to JSON. Unknown keys (including owner_id) raise ValueError rather
        than being silently dropped.

        Returns True if a row was updated, False if the movie does not exist
        or belongs to someone else.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown or immutable movie fields: {sorted(unknown)!r}")
        if not fields:
            return False
        if "genres" in fields:
            fields["genres"] = json.dumps(fields["genres"])
        with self.engine.connect() as conn:
            result = conn.execute(
                _movies.update()
                .where((_movies.c.id == movie_id) & (_movies.c.owner_id == owner_id))
                .values(**fields)
            )
            conn.commit()
        return result.rowcount > 0

    def delete_movie(self, movie_id: int, owner_id: int) -> bool:
        """Delete a movie owned by owner_id. Returns False if nothing matched."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _movies.delete().where((_movies.c.id == movie_id) & (_movies.c.owner_id == owner_id))
            )
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_movie(row) -> Movie:
    genres: list[str] = json.loads(row.genres) if row.genres else []
    return Movie(
        id=row.id,
        name=row.name,
        description=row.description,
        year=row.year,
        genres=genres,
        rating=row.rating,
        duration=row.duration,
        owner_id=row.owner_id,
        created_at=row.created_at,
    )
