import logging
import os
import re
import time
import traceback
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Annotated, Union

from fastapi import APIRouter, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException

from tileserver.classes import DziXmlResponse, TileGenerationOptions, TileResponse
from tileserver.config import Settings
from tileserver.constants import Constants
from tileserver.errors import (
    InvalidTileOptions,
    TileServerError,
    UploadRejected,
    UploadTooLarge,
)
from tileserver.models import (
    DziInfo,
    HealthCheckResponse,
    ImageListResponse,
    ImageRecord,
    MessageResponse,
    UploadResponse,
)
from tileserver.store import TileStore
from tileserver.utils.filesystem import FilesystemUtils
from tileserver.utils.identifier import IdentifierUtils

TEMPLATES_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
    "resources",
    "templates",
)

UPLOAD_CHUNK_SIZE = 1024 * 1024

TILE_SUFFIX = re.compile(r"\.(jpeg|jpg|png|webp)$")
ASCII_DIGITS = re.compile(r"\d+", re.ASCII)

tags_metadata = [
    {
        "name": "view",
        "description": "Upload and viewer test page. Always returns an HTML page.",
    },
    {
        "name": "api",
        "description": "REST API for uploading images and retrieving DZI descriptors and tiles.",
    },
]


def _parse_int_option(name: str, value: Union[str, None]) -> Union[int, None]:
    if value is None or not value.strip():
        return None

    try:
        return int(value)
    except ValueError:
        raise InvalidTileOptions(f"{name} has to be an integer!")


def _error_response(
    settings: Settings, exc: Exception, status_code: int, message: str, **extra
) -> JSONResponse:
    content = {"error": message, **extra}
    if settings.is_development:
        content["stack"] = "".join(
            traceback.format_exception(type(exc), value=exc, tb=exc.__traceback__)
        )
    return JSONResponse(content=content, status_code=status_code)


def create_app(settings: Settings, store: TileStore) -> FastAPI:
    logger = logging.getLogger(__name__)
    started_at = time.monotonic()

    app = FastAPI(
        title="DZI Tile Server",
        version=settings.version,
        openapi_tags=tags_metadata,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in settings.cors_origin.split(",")],
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )
    templates = Jinja2Templates(directory=TEMPLATES_DIR)

    api_router = APIRouter(prefix=Constants.API_PREFIX, tags=["api"])
    view_router = APIRouter(tags=["view"], default_response_class=HTMLResponse)

    FilesystemUtils.ensure_dir(settings.upload_dir)

    async def save_upload(file: UploadFile) -> tuple[str, str]:
        filename = IdentifierUtils.safe_upload_filename(file.filename)
        path = os.path.join(settings.upload_dir, filename)

        written = 0
        await file.seek(0)
        with open(path, "wb") as f:
            while chunk := await file.read(UPLOAD_CHUNK_SIZE):
                written += len(chunk)
                if written > settings.max_file_size:
                    break
                f.write(chunk)

        if written > settings.max_file_size:
            FilesystemUtils.delete_file(path)
            raise UploadTooLarge(
                f"Image size can't be bigger than {settings.max_file_size} byte!"
            )

        return path, filename

    @view_router.get("/", summary="Returns the upload and viewer test page")
    async def page_get_index(request: Request):
        return templates.TemplateResponse(
            request=request,
            name="index.html",
            context={
                "version": settings.version,
                "api_prefix": Constants.API_PREFIX,
            },
        )

    @app.get("/health", summary="Returns service health")
    async def api_get_health() -> HealthCheckResponse:
        return HealthCheckResponse(
            timestamp=datetime.now(timezone.utc),
            uptime=time.monotonic() - started_at,
        )

    @api_router.post(
        "/upload",
        summary="Uploads an image and generates its tile pyramid",
        status_code=HTTPStatus.CREATED,
    )
    async def api_upload_image(
        image: Annotated[Union[UploadFile, None], File()] = None,
        tile_size: Annotated[Union[str, None], Form(alias="tileSize")] = None,
        overlap: Annotated[Union[str, None], Form()] = None,
        format: Annotated[Union[str, None], Form()] = None,
        quality: Annotated[Union[str, None], Form()] = None,
    ) -> UploadResponse:
        if image is None or not image.filename:
            raise UploadRejected("No file uploaded")

        if image.content_type not in settings.allowed_content_types:
            raise UploadRejected(
                f"Invalid file type. Allowed: {', '.join(settings.allowed_content_types)}"
            )

        options = TileGenerationOptions(
            tile_size=_parse_int_option("tileSize", tile_size),
            overlap=_parse_int_option("overlap", overlap),
            format=format.strip().lower() if format and format.strip() else None,
            quality=_parse_int_option("quality", quality),
        )

        path, filename = await save_upload(image)
        record = await run_in_threadpool(store.generate_tiles, path, filename, options)

        return UploadResponse(
            message="Image uploaded and tiles generated successfully", data=record
        )

    @api_router.get("", summary="Lists all images with their metadata")
    async def api_list_images() -> ImageListResponse:
        images = store.list_images()
        return ImageListResponse(count=len(images), images=images)

    @api_router.get(
        "/{image_id}/metadata", summary="Returns the metadata record of an image"
    )
    async def api_get_metadata(image_id: str) -> ImageRecord:
        return store.get_metadata(image_id)

    @api_router.get(
        "/{image_id}/dzi",
        summary="Returns the DZI XML descriptor",
        response_class=DziXmlResponse,
    )
    async def api_get_dzi(image_id: str):
        return DziXmlResponse(content=store.get_dzi_descriptor(image_id))

    @api_router.get("/{image_id}/dzi.json", summary="Returns the DZI JSON descriptor")
    async def api_get_dzi_json(image_id: str) -> DziInfo:
        return store.get_dzi_json(image_id)

    @api_router.get(
        "/{image_id}/tiles/{level}/{column}/{row}",
        summary="Returns a single tile",
        response_class=TileResponse,
    )
    async def api_get_tile(image_id: str, level: int, column: int, row: str):
        row = TILE_SUFFIX.sub("", row)
        if not ASCII_DIGITS.fullmatch(row):
            raise HTTPException(
                status_code=HTTPStatus.BAD_REQUEST,
                detail="Row has to be an integer!",
            )

        return TileResponse(content=store.get_tile(image_id, level, column, int(row)))

    @api_router.delete("/{image_id}", summary="Deletes an image and all of its tiles")
    async def api_delete_image(image_id: str) -> MessageResponse:
        await run_in_threadpool(store.delete_image, image_id)
        return MessageResponse(message="Image deleted successfully")

    app.include_router(api_router)
    app.include_router(view_router)

    @app.exception_handler(TileServerError)
    async def tile_server_error_handler(request: Request, exc: TileServerError):
        if exc.status_code >= HTTPStatus.INTERNAL_SERVER_ERROR:
            logger.error(
                f"{request.method} {request.url.path} failed: {exc.message}",
                exc_info=exc,
            )
        else:
            logger.debug(f"{request.method} {request.url.path}: {exc.message}")

        return _error_response(settings, exc, exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == HTTPStatus.NOT_FOUND:
            return _error_response(
                settings,
                exc,
                exc.status_code,
                "Resource not found",
                path=request.url.path,
            )

        return _error_response(settings, exc, exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        message = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        return _error_response(settings, exc, HTTPStatus.BAD_REQUEST, message)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"{request.method} {request.url.path} failed")
        return _error_response(
            settings,
            exc,
            HTTPStatus.INTERNAL_SERVER_ERROR,
            str(exc) or "Internal Server Error",
        )

    return app
