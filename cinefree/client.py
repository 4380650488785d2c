"""Client-side catalog application: view state, rendering and API calls.

The client always talks to the backend. When the API cannot be reached at
startup it reports the failure and starts with an empty catalog; it never
keeps an offline copy of the collection. Only the session token is persisted
between runs.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

import requests

logger = logging.getLogger(__name__)

GENRES = ("Action", "Comedy", "Drama", "Horror")
ALL_GENRES = "all"
SECTIONS = ("home", "admin", "player")
TOKEN_STORAGE_KEY = "cinefree_token"
NOTIFICATION_SECONDS = 4.0
REQUEST_TIMEOUT = 10


class BackendUnavailable(RuntimeError):
    """Raised when the API server cannot be reached."""


class APIError(RuntimeError):
    """Raised when the API answers with an error status."""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}")


# State -----------------------------------------------------------------
@dataclass
class Notification:
    message: str
    level: str = "info"
    expires_at: float = 0.0

    def is_active(self, now: float) -> bool:
        return now < self.expires_at


@dataclass
class ViewState:
    """Everything the UI displays, owned by one :class:`ClientApp`."""

    section: str = "home"
    genre_filter: str = ALL_GENRES
    movies: List[Dict[str, Any]] = field(default_factory=list)
    selected: Optional[Dict[str, Any]] = None
    token: Optional[str] = None
    highlight_filters: bool = False
    notifications: List[Notification] = field(default_factory=list)

    @property
    def is_logged_in(self) -> bool:
        return bool(self.token)


def filter_movies(movies: List[Dict[str, Any]], genre: str) -> List[Dict[str, Any]]:
    """Return the movies whose genre equals ``genre``, keeping catalog order."""

    if genre == ALL_GENRES:
        return list(movies)
    return [movie for movie in movies if movie.get("genre") == genre]


def describe_file(path: str | Path) -> str:
    path = Path(path)
    size_mb = path.stat().st_size / 1024 / 1024
    return f"Selected: {path.name} ({size_mb:.2f} MB)"


# Rendering -------------------------------------------------------------
def _render_home(state: ViewState) -> List[str]:
    filters = " ".join(
        f"[{name}]" if name == state.genre_filter else name
        for name in (ALL_GENRES, *GENRES)
    )
    marker = ">> " if state.highlight_filters else ""
    lines = [f"{marker}Genres: {filters}"]
    visible = filter_movies(state.movies, state.genre_filter)
    if not visible:
        label = "" if state.genre_filter == ALL_GENRES else f"{state.genre_filter} "
        lines.append(f"No {label}movies available yet")
        return lines
    for movie in visible:
        lines.append(f"* {movie['title']} ({movie['genre']})")
    return lines


def _render_admin(state: ViewState) -> List[str]:
    if not state.is_logged_in:
        return ["Admin login required"]
    lines = ["Upload a movie: title, genre, description, optional video file"]
    if not state.movies:
        lines.append("No movies in the catalog")
    for movie in state.movies:
        lines.append(f"- {movie['title']} ({movie['genre']}) [delete {movie['id']}]")
    return lines


def _render_player(state: ViewState) -> List[str]:
    movie = state.selected
    if movie is None:
        return ["Nothing selected"]
    lines = [movie["title"], movie["genre"], movie["description"]]
    if movie.get("videoUrl"):
        lines.append(f"Playing: {movie['videoUrl']}")
    else:
        lines.append("Video preview not available")
        lines.append("Upload a video file in admin panel to play")
    return lines


_RENDERERS = {
    "home": _render_home,
    "admin": _render_admin,
    "player": _render_player,
}


def render(state: ViewState, now: Optional[float] = None) -> str:
    """Render the active section and any live notifications as text."""

    now = time.time() if now is None else now
    lines = [f"== {state.section} =="]
    lines.extend(_RENDERERS[state.section](state))
    for note in state.notifications:
        if note.is_active(now):
            lines.append(f"({note.level}) {note.message}")
    return "\n".join(lines)


# Persistence -----------------------------------------------------------
class TokenStorage:
    """Small JSON key/value file standing in for browser local storage."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError):
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, indent=2)

    def get_token(self) -> Optional[str]:
        return self._load().get(TOKEN_STORAGE_KEY)

    def set_token(self, token: Optional[str]) -> None:
        data = self._load()
        if token:
            data[TOKEN_STORAGE_KEY] = token
        else:
            data.pop(TOKEN_STORAGE_KEY, None)
        self._save(data)


# HTTP ------------------------------------------------------------------
class CatalogAPI:
    """Thin wrapper over the CineFree HTTP API.

    ``session`` can be any object with requests-style ``get``/``post``/
    ``delete`` methods, which lets tests pass a FastAPI ``TestClient``.
    """

    def __init__(self, base_url: str, session: Any = None, timeout: float = REQUEST_TIMEOUT) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = getattr(self.session, method)(self._url(path), timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise BackendUnavailable(f"Could not reach {self.base_url}: {exc}") from exc
        if response.status_code >= 400:
            try:
                message = response.json().get("error", "")
            except ValueError:
                message = ""
            raise APIError(response.status_code, message or f"HTTP {response.status_code}")
        return response

    @staticmethod
    def _auth(token: Optional[str]) -> Dict[str, str]:
        return {"Authorization": f"Bearer {token}"} if token else {}

    def health(self) -> bool:
        try:
            self._request("get", "/api/health")
        except (BackendUnavailable, APIError):
            return False
        return True

    def login(self, username: str, password: str) -> str:
        response = self._request("post", "/api/login", json={"username": username, "password": password})
        return response.json()["token"]

    def list_movies(self) -> List[Dict[str, Any]]:
        return self._request("get", "/api/movies").json()

    def create_movie(
        self,
        token: Optional[str],
        *,
        title: str,
        genre: str,
        description: str,
        video_path: str | Path | None = None,
    ) -> Dict[str, Any]:
        data = {"title": title, "genre": genre, "description": description}
        headers = self._auth(token)
        if video_path is None:
            return self._request("post", "/api/movies", data=data, headers=headers).json()
        video_path = Path(video_path)
        with video_path.open("rb") as handle:
            files = {"video": (video_path.name, handle, "application/octet-stream")}
            response = self._request("post", "/api/movies", data=data, files=files, headers=headers)
        return response.json()

    def delete_movie(self, token: Optional[str], movie_id: str) -> None:
        self._request("delete", f"/api/movies/{movie_id}", headers=self._auth(token))

    def media_url(self, video_url: Optional[str]) -> Optional[str]:
        if not video_url:
            return None
        return urljoin(f"{self.base_url}/", video_url.lstrip("/"))


# Application -----------------------------------------------------------
class ClientApp:
    """Root of the client: owns the view state and drives every user action."""

    def __init__(
        self,
        api: CatalogAPI,
        storage: Optional[TokenStorage] = None,
        *,
        clock=time.time,
        notification_seconds: float = NOTIFICATION_SECONDS,
    ) -> None:
        self.api = api
        self.storage = storage
        self.state = ViewState()
        self._clock = clock
        self._notification_seconds = notification_seconds

    # Helpers ----------------------------------------------------------
    def notify(self, message: str, level: str = "info") -> None:
        now = self._clock()
        self.state.notifications = [n for n in self.state.notifications if n.is_active(now)]
        self.state.notifications.append(
            Notification(message, level, expires_at=now + self._notification_seconds)
        )

    def _fail(self, action: str, exc: Exception) -> None:
        logger.warning("%s failed: %s", action, exc)
        if isinstance(exc, APIError) and exc.status_code == 401 and self.state.token:
            # Stored token expired or was signed with an old secret.
            self.state.token = None
            if self.storage is not None:
                self.storage.set_token(None)
        detail = exc.message if isinstance(exc, APIError) else str(exc)
        self.notify(f"{action} failed: {detail}", level="error")

    def render(self) -> str:
        return render(self.state, now=self._clock())

    # Actions ----------------------------------------------------------
    def start(self) -> None:
        """Restore the stored session, then load the catalog from the API."""

        if self.storage is not None:
            self.state.token = self.storage.get_token()
        if not self.api.health():
            self.state.movies = []
            self.notify("Loading movies failed: backend unavailable", level="error")
            return
        try:
            self.state.movies = self.api.list_movies()
        except (BackendUnavailable, APIError) as exc:
            self.state.movies = []
            self._fail("Loading movies", exc)

    def show_section(self, section: str) -> str:
        if section not in SECTIONS:
            raise ValueError(f"Unknown section: {section!r}")
        self.state.section = section
        self.state.highlight_filters = False
        return self.render()

    def filter(self, genre: str) -> str:
        self.state.genre_filter = genre
        return self.render()

    def start_watching(self) -> str:
        """Jump to the catalog with the genre filters highlighted."""
        self.show_section("home")
        self.state.highlight_filters = True
        return self.render()

    def login(self, username: str, password: str) -> bool:
        try:
            token = self.api.login(username, password)
        except (BackendUnavailable, APIError) as exc:
            self._fail("Login", exc)
            return False
        self.state.token = token
        if self.storage is not None:
            self.storage.set_token(token)
        self.show_section("admin")
        self.notify("Login successful!")
        return True

    def logout(self) -> None:
        self.state.token = None
        if self.storage is not None:
            self.storage.set_token(None)
        self.show_section("home")
        self.notify("Logged out successfully!")

    def upload(
        self,
        title: str,
        genre: str,
        description: str,
        video_path: str | Path | None = None,
    ) -> Optional[Dict[str, Any]]:
        if not (title.strip() and genre.strip() and description.strip()):
            self.notify("Please fill in all fields!", level="error")
            return None
        try:
            created = self.api.create_movie(
                self.state.token,
                title=title.strip(),
                genre=genre.strip(),
                description=description.strip(),
                video_path=video_path,
            )
        except (BackendUnavailable, APIError, OSError) as exc:
            self._fail("Upload", exc)
            return None
        self.state.movies.append(created)
        self.notify("Movie uploaded successfully!")
        return created

    def delete(self, movie_id: str) -> bool:
        try:
            self.api.delete_movie(self.state.token, movie_id)
        except (BackendUnavailable, APIError) as exc:
            self._fail("Delete", exc)
            return False
        self.state.movies = [m for m in self.state.movies if m["id"] != movie_id]
        if self.state.selected is not None and self.state.selected["id"] == movie_id:
            self.state.selected = None
        self.notify("Movie deleted")
        return True

    def play(self, movie_id: str) -> str:
        for movie in self.state.movies:
            if movie["id"] == movie_id:
                self.state.selected = movie
                return self.show_section("player")
        self.notify("Movie not found", level="error")
        return self.render()
