"""Persist movie metadata for the catalog."""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised when the catalog file cannot be written."""


@dataclass(frozen=True)
class Movie:
    id: str
    title: str
    genre: str
    description: str
    video_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "id": self.id,
            "title": self.title,
            "genre": self.genre,
            "description": self.description,
            "videoUrl": self.video_url,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Movie":
        return cls(
            id=str(data["id"]),
            title=data["title"],
            genre=data["genre"],
            description=data["description"],
            video_url=data.get("videoUrl"),
        )


class MovieStore(Protocol):
    """Operations the API layer needs from a catalog backend."""

    def list(self) -> List[Movie]: ...

    def get(self, movie_id: str) -> Optional[Movie]: ...

    def create(
        self,
        *,
        title: str,
        genre: str,
        description: str,
        video_url: Optional[str] = None,
    ) -> Movie: ...

    def delete(self, movie_id: str) -> bool: ...


class CatalogStore:
    """JSON-file repository holding the full, ordered movie collection.

    Every mutation rewrites the whole file. There is no locking: two
    processes writing at once race and the last write wins.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._movies = self._load()

    # Internal helpers -------------------------------------------------
    def _load(self) -> List[Movie]:
        if not self.path.exists():
            try:
                self._write([])
            except StorageError as exc:
                logger.warning("%s", exc)
            return []
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
            if not isinstance(data, list):
                raise ValueError("catalog file does not contain a JSON array")
            return [Movie.from_dict(entry) for entry in data]
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Could not read %s, starting with an empty catalog: %s", self.path, exc)
            return []

    def _write(self, movies: List[Movie]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as handle:
                json.dump([movie.to_dict() for movie in movies], handle, indent=2)
        except OSError as exc:
            raise StorageError(f"Could not save {self.path}: {exc}") from exc

    # Public API -------------------------------------------------------
    def list(self) -> List[Movie]:
        return list(self._movies)

    def get(self, movie_id: str) -> Optional[Movie]:
        for movie in self._movies:
            if movie.id == movie_id:
                return movie
        return None

    def create(
        self,
        *,
        title: str,
        genre: str,
        description: str,
        video_url: Optional[str] = None,
    ) -> Movie:
        movie = Movie(
            id=uuid.uuid4().hex,
            title=title,
            genre=genre,
            description=description,
            video_url=video_url,
        )
        movies = [*self._movies, movie]
        self._write(movies)
        self._movies = movies
        return movie

    def delete(self, movie_id: str) -> bool:
        movies = [m for m in self._movies if m.id != movie_id]
        if len(movies) == len(self._movies):
            return False
        self._write(movies)
        self._movies = movies
        return True
