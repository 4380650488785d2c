"""FastAPI application exposing the CineFree catalog."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, Header, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from cinefree.auth import AuthGate, InvalidCredentials, Unauthorized
from cinefree.catalog import CatalogStore, MovieStore, StorageError
from cinefree.config import CatalogSettings
from cinefree.uploads import (
    UPLOAD_URL_PREFIX,
    MissingFieldsError,
    remove_upload,
    save_upload,
    validate_metadata,
    video_url_for,
)

logger = logging.getLogger(__name__)


class LoginRequest(BaseModel):
    username: str = Field("", description="Admin username.")
    password: str = Field("", description="Admin password.")


def create_app(settings: Optional[CatalogSettings] = None) -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = settings or CatalogSettings.from_env()
    settings.ensure_directories()
    store = CatalogStore(settings.catalog_path)
    auth = AuthGate(
        settings.admin_username,
        settings.admin_password,
        secret_key=settings.secret_key,
        max_age=settings.token_max_age,
    )
    upload_dir = settings.upload_dir
    static_dir = settings.static_dir

    app = FastAPI(title="CineFree", version="0.1.0")
    app.state.settings = settings
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.mount(UPLOAD_URL_PREFIX, StaticFiles(directory=upload_dir), name="uploads")
    if static_dir.exists():
        app.mount("/static", StaticFiles(directory=static_dir), name="static")

    # Error rendering ------------------------------------------------
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            {"error": exc.detail},
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse({"error": "Invalid request"}, status_code=400)

    @app.exception_handler(MissingFieldsError)
    async def missing_fields(request: Request, exc: MissingFieldsError) -> JSONResponse:
        return JSONResponse({"error": "Missing fields", "fields": exc.fields}, status_code=400)

    @app.exception_handler(Unauthorized)
    async def unauthorized(request: Request, exc: Unauthorized) -> JSONResponse:
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    @app.exception_handler(StorageError)
    async def storage_failure(request: Request, exc: StorageError) -> JSONResponse:
        logger.error("Storage failure on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    # Dependencies ---------------------------------------------------
    def get_store() -> MovieStore:
        return store

    def require_admin(authorization: Optional[str] = Header(None)) -> None:
        auth.authorize(authorization)

    # Routes ---------------------------------------------------------
    @app.get("/")
    async def index() -> Response:
        index_path = static_dir / "index.html"
        if not index_path.exists():
            raise HTTPException(status_code=404, detail="Front-end assets missing.")
        return FileResponse(index_path)

    @app.get("/api/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    @app.post("/api/login")
    async def login(request: Request) -> dict[str, str]:
        # A missing or malformed body is just a failed login.
        try:
            payload = LoginRequest.model_validate(await request.json())
            token = auth.login(payload.username, payload.password)
        except (ValueError, InvalidCredentials) as exc:
            raise HTTPException(status_code=401, detail="Invalid credentials") from exc
        return {"token": token}

    @app.get("/api/movies")
    async def list_movies(catalog: MovieStore = Depends(get_store)) -> list[dict]:
        return [movie.to_dict() for movie in catalog.list()]

    @app.post("/api/movies", status_code=201, dependencies=[Depends(require_admin)])
    async def create_movie(
        title: Optional[str] = Form(None),
        genre: Optional[str] = Form(None),
        description: Optional[str] = Form(None),
        video: UploadFile | None = File(None),
        catalog: MovieStore = Depends(get_store),
    ) -> dict:
        title, genre, description = validate_metadata(title, genre, description)

        video_url: Optional[str] = None
        if video is not None and video.filename:
            try:
                stored_name = await save_upload(video, upload_dir)
            except OSError as exc:
                raise StorageError(f"Could not store upload: {exc}") from exc
            video_url = video_url_for(stored_name)

        try:
            movie = catalog.create(
                title=title,
                genre=genre,
                description=description,
                video_url=video_url,
            )
        except StorageError:
            remove_upload(video_url, upload_dir)
            raise
        logger.info("Created movie %s (%s)", movie.id, movie.title)
        return movie.to_dict()

    @app.delete("/api/movies/{movie_id}", status_code=204, dependencies=[Depends(require_admin)])
    async def delete_movie(movie_id: str, catalog: MovieStore = Depends(get_store)) -> Response:
        movie = catalog.get(movie_id)
        if movie is None or not catalog.delete(movie_id):
            raise HTTPException(status_code=404, detail="Not found")

        remove_upload(movie.video_url, upload_dir)
        logger.info("Deleted movie %s", movie_id)
        return Response(status_code=204)

    return app
