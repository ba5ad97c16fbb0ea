"""FastAPI application factory."""
import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import config
from .errors import SitePilotError
from .routes import auth, settings, site_auth, sites
from .service import SitePilot

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("sitepilot.access")


def create_app(pilot: SitePilot | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="SitePilot",
        description="Static site deployment and access control",
        version="0.1.0",
    )
    app.state.pilot = pilot or SitePilot.from_config()
    app.state.started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials="*" not in config.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_request(request: Request, call_next):
        response = await call_next(request)
        access_logger.info("%s %s %s", request.method, request.url.path, response.status_code)
        return response

    @app.exception_handler(SitePilotError)
    async def sitepilot_error(request: Request, exc: SitePilotError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(RequestValidationError)
    async def bad_request(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"detail": "Invalid request"})

    # Include routers
    app.include_router(sites.router, prefix="/api", tags=["sites"])
    app.include_router(settings.router, prefix="/api", tags=["settings"])
    app.include_router(site_auth.router, prefix="/api/site-auth", tags=["site-auth"])
    app.include_router(site_auth.login_router, tags=["site-auth"])
    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/api/system")
    async def system():
        return {"status": "ok", "uptime": time.monotonic() - app.state.started_at}

    return app
