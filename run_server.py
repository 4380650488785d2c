"""Launch the CineFree FastAPI server."""

from __future__ import annotations

import logging
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from cinefree.config import CatalogSettings
from cinefree.server import create_app


def _load_env_files() -> None:
    """Load environment variables from .env files if present."""

    for filename in (".env.local", ".env"):
        env_path = Path(filename)
        if env_path.exists():
            load_dotenv(env_path, override=False)


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    _load_env_files()
    settings = CatalogSettings.from_env()
    app = create_app(settings)
    logging.getLogger("cinefree").info(
        "CineFree backend running on http://localhost:%d", settings.port
    )
    uvicorn.run(app, host=settings.host, port=settings.port, reload=False)


if __name__ == "__main__":
    main()
