"""Runtime configuration for the CineFree backend."""

from __future__ import annotations

import logging
import os
import secrets
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parents[1]

DEFAULT_ADMIN_USERNAME = "admin"
DEFAULT_ADMIN_PASSWORD = "admin"
DEFAULT_TOKEN_MAX_AGE = 24 * 60 * 60  # one day


@dataclass
class CatalogSettings:
    """Paths, credentials and network options for one server process."""

    data_dir: Path = BASE_DIR / "data"
    upload_dir: Path = BASE_DIR / "uploads"
    static_dir: Path = BASE_DIR / "web" / "static"
    admin_username: str = DEFAULT_ADMIN_USERNAME
    admin_password: str = DEFAULT_ADMIN_PASSWORD
    secret_key: str = field(default_factory=lambda: secrets.token_urlsafe(32))
    token_max_age: int = DEFAULT_TOKEN_MAX_AGE
    host: str = "0.0.0.0"
    port: int = 3001

    @property
    def catalog_path(self) -> Path:
        return self.data_dir / "movies.json"

    def ensure_directories(self) -> None:
        for path in (self.data_dir, self.upload_dir):
            path.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_env(cls) -> "CatalogSettings":
        """Build settings from environment variables, falling back to defaults."""

        kwargs: dict = {
            "admin_username": os.getenv("CINEFREE_ADMIN_USERNAME", DEFAULT_ADMIN_USERNAME),
            "admin_password": os.getenv("CINEFREE_ADMIN_PASSWORD", DEFAULT_ADMIN_PASSWORD),
            "token_max_age": int(os.getenv("CINEFREE_TOKEN_MAX_AGE", str(DEFAULT_TOKEN_MAX_AGE))),
            "host": os.getenv("HOST", "0.0.0.0"),
            "port": int(os.getenv("PORT", "3001")),
        }
        for name, env_var in (
            ("data_dir", "CINEFREE_DATA_DIR"),
            ("upload_dir", "CINEFREE_UPLOAD_DIR"),
            ("static_dir", "CINEFREE_STATIC_DIR"),
        ):
            value = os.getenv(env_var)
            if value:
                kwargs[name] = Path(value)

        secret_key = os.getenv("CINEFREE_SECRET_KEY")
        if secret_key:
            kwargs["secret_key"] = secret_key
        else:
            logger.warning(
                "CINEFREE_SECRET_KEY is not set; issued tokens will not survive a restart."
            )

        if kwargs["admin_password"] == DEFAULT_ADMIN_PASSWORD:
            logger.warning("Using the default admin password. Set CINEFREE_ADMIN_PASSWORD.")

        return cls(**kwargs)
