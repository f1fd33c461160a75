from contextlib import asynccontextmanager
from typing import Optional
import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from clickcollect.config import Settings, get_settings
from clickcollect.api.v1.router import api_router
from clickcollect.core.errors import AppError
from clickcollect.services.cache_service import CacheService
from clickcollect.services.geocoding_service import GeocodingService
from clickcollect.services.session_store import SessionStore

logger = logging.getLogger(__name__)


def _error_body(message: str, code: Optional[str] = None, meta: Optional[dict] = None) -> dict:
    return {"success": False, "error": message, "code": code, "meta": meta or {}}


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application with its caches and services."""
    settings = settings or get_settings()

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Startup:
        - Build the process-wide geocode/location caches
        - Build the geocoder chain and session store on top of them

        Shutdown:
        - Drop every cached geocode and location list
        """
        logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
        cache = CacheService.from_settings(settings)
        app.state.cache = cache
        app.state.geocoder = GeocodingService.from_settings(settings, cache)
        app.state.session_store = SessionStore.from_settings(settings)
        logger.info(f"Geocoder mode: {app.state.geocoder.mode.value}")

        yield

        logger.info("Shutting down...")
        dropped = await cache.clear()
        logger.info(f"Dropped {dropped} cached entries")

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Click & collect pickup location search for Shopify storefronts.",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        """Render service errors with their own status, code and meta."""
        if exc.status >= 500:
            logger.error(f"{request.method} {request.url.path} -> {exc.code}: {exc.meta}")
        return JSONResponse(
            status_code=exc.status,
            content=_error_body(exc.message, exc.code, exc.meta),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Malformed bodies get the same envelope as service errors."""
        return JSONResponse(
            status_code=400,
            content=_error_body(
                "Invalid request body",
                "invalid_input",
                {"errors": jsonable_encoder(exc.errors())},
            ),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Last-resort handler; runs outside the CORS middleware."""
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")

        response = JSONResponse(
            status_code=500,
            content=_error_body(
                "An unexpected error occurred while processing the request",
                "internal_error",
            ),
        )

        # Add CORS headers if origin is allowed
        origin = request.headers.get("origin", "")
        if origin and (origin in settings.CORS_ORIGINS or "*" in settings.CORS_ORIGINS):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"

        return response

    @app.get("/healthz", tags=["Health"])
    async def health_check():
        """Liveness probe."""
        return {"status": "ok", "app": settings.APP_NAME, "version": settings.APP_VERSION}

    return app


app = create_app()
