from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from stylestudio.api.models import GeneratedImageIn, ProjectRequest
from stylestudio.blob import BlobClient, unique_pathname
from stylestudio.config import Settings, settings as default_settings
from stylestudio.errors import GenerationError, PersistenceError, StudioError
from stylestudio.generation import generate
from stylestudio.images import identify_image, to_data_url
from stylestudio.schemas import GenerateRequest
from stylestudio.storage import GeneratedImage, ProjectStore, build_project_store, new_id, now_iso
from stylestudio.styles import StyleCatalog

logger = logging.getLogger(__name__)

__version__ = "0.1.0"

ALLOWED_UPLOAD_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}


def _settings(request: Request) -> Settings:
    return request.app.state.settings


def _catalog(request: Request) -> StyleCatalog:
    return request.app.state.catalog


def _store(request: Request) -> ProjectStore:
    return request.app.state.project_store


def _error(status_code: int, message: str, **extra: object) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


def _to_item(item: GeneratedImageIn) -> GeneratedImage:
    return GeneratedImage(
        id=item.id or new_id("gen"),
        image_url=item.image_url,
        prompt=item.prompt,
        model=item.model,
        created_at=item.created_at or now_iso(),
        style_id=item.style_id,
        style_name=item.style_name,
        aspect_ratio=item.aspect_ratio,
        resolution=item.resolution,
    )


def create_app(app_settings: Settings | None = None) -> FastAPI:
    cfg = app_settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "stylestudio %s: persistence %s, project storage %s",
            __version__,
            "on" if cfg.persistence_enabled else "off",
            app.state.project_store.mode,
        )
        yield

    app = FastAPI(title="stylestudio", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = cfg
    app.state.catalog = StyleCatalog.load(cfg.styles_path)
    app.state.project_store = build_project_store(cfg)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        msg = first.get("msg", "Invalid request")
        return _error(400, f"{loc}: {msg}" if loc else msg)

    @app.exception_handler(StudioError)
    async def _studio_error(request: Request, exc: StudioError) -> JSONResponse:
        return _error(exc.status_code, str(exc))

    @app.get("/api/health")
    async def health(request: Request) -> dict:
        return {
            "status": "ok",
            "version": __version__,
            "projectStorage": _store(request).mode,
            "persistence": _settings(request).persistence_enabled,
        }

    @app.post("/api/generate")
    async def generate_image(request: Request) -> JSONResponse:
        try:
            body = await request.json()
        except ValueError:
            return _error(400, "Request body must be JSON")
        if not isinstance(body, dict):
            return _error(400, "Request body must be a JSON object")

        try:
            req = GenerateRequest.model_validate(body)
            resp = await generate(req, _settings(request), _catalog(request))
        except GenerationError as exc:
            return _error(
                500,
                "Generation failed. Please ensure API keys are configured.",
                details=str(exc) or exc.__class__.__name__,
            )
        except StudioError:
            raise
        except ValueError as exc:
            # pydantic.ValidationError is a ValueError
            return _error(400, f"Invalid request: {exc}")
        except Exception:
            logger.exception("Generation error")
            return _error(500, "Failed to generate image")
        return JSONResponse(resp.dump())

    @app.get("/api/styles")
    async def list_styles(
        request: Request,
        id: str | None = None,
        category: str | None = None,
        q: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> dict:
        catalog = _catalog(request)
        if id:
            style = catalog.get(id)
            if style is None:
                raise HTTPException(status_code=404, detail="Style not found")
            return style.to_dict()
        page, total = catalog.query(q=q, category=category, offset=offset, limit=limit)
        return {"styles": [s.to_dict() for s in page], "total": total, "offset": offset, "limit": limit}

    @app.post("/api/upload")
    async def upload(request: Request, file: UploadFile | None = File(default=None)) -> dict:
        cfg_ = _settings(request)
        if file is None:
            raise HTTPException(status_code=400, detail="No file provided")

        content_type = (file.content_type or "").lower()
        if content_type not in ALLOWED_UPLOAD_TYPES:
            raise HTTPException(
                status_code=400,
                detail="Invalid file type. Please upload an image (JPEG, PNG, GIF, or WebP)",
            )

        content = await file.read(cfg_.max_upload_bytes + 1)
        if len(content) > cfg_.max_upload_bytes:
            raise HTTPException(
                status_code=400,
                detail=f"File too large. Maximum size is {cfg_.max_upload_bytes // (1024 * 1024)}MB",
            )

        try:
            _, width, height = identify_image(content)
        except Exception as exc:
            raise HTTPException(status_code=400, detail="File is not a readable image") from exc

        if not cfg_.blob_read_write_token:
            return {
                "url": to_data_url(content, content_type),
                "isLocal": True,
                "message": "BLOB_READ_WRITE_TOKEN not configured. Using base64 encoding.",
                "width": width,
                "height": height,
            }

        extension = Path(file.filename or "").suffix.lstrip(".") or "png"
        pathname = unique_pathname("uploads", extension)
        blob = BlobClient(cfg_.blob_read_write_token, api_url=cfg_.blob_api_url)
        try:
            info = await blob.put(pathname, content, content_type)
        except PersistenceError as exc:
            logger.error("Upload error: %s", exc)
            raise HTTPException(status_code=500, detail="Failed to upload file") from exc

        return {
            "url": info.url,
            "filename": pathname,
            "size": len(content),
            "type": content_type,
            "width": width,
            "height": height,
        }

    @app.get("/api/projects")
    async def get_projects(request: Request, id: str | None = None) -> dict:
        store = _store(request)
        try:
            if id:
                return (await store.read_project(id)).to_dict()
            projects = await store.list_projects()
        except PersistenceError as exc:
            logger.error("Projects API error: %s", exc)
            raise HTTPException(status_code=500, detail="Failed to fetch projects") from exc
        return {"projects": [p.to_dict() for p in projects], "total": len(projects)}

    @app.post("/api/projects")
    async def save_project(request: Request, body: ProjectRequest) -> dict:
        if not body.name and body.item is None:
            raise HTTPException(status_code=400, detail="Either project name or item is required")

        store = _store(request)
        try:
            if body.item is None:
                project = await store.create_project(body.name or "")
            else:
                project = await store.add_item(_to_item(body.item), project_id=body.project_id, name=body.name)
        except PersistenceError as exc:
            logger.error("Projects API error: %s", exc)
            raise HTTPException(status_code=500, detail="Failed to create/update project") from exc
        return project.to_dict()

    @app.delete("/api/projects")
    async def delete_project(request: Request, id: str | None = None, itemId: str | None = None) -> dict:
        if not id:
            raise HTTPException(status_code=400, detail="Project ID is required")

        store = _store(request)
        try:
            if itemId:
                project = await store.delete_item(id, itemId)
                return {"success": True, "project": project.to_dict()}
            await store.delete_project(id)
        except PersistenceError as exc:
            logger.error("Projects API error: %s", exc)
            raise HTTPException(status_code=500, detail="Failed to delete project") from exc
        return {"success": True}

    return app


def main() -> None:
    import uvicorn

    logging.basicConfig(
        level=default_settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "stylestudio.api.app:create_app",
        factory=True,
        host=default_settings.server_host,
        port=default_settings.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
