from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from app.api.routes import auth, courses, health, notifications, rooms, schedules
from app.core.config import Settings, get_settings
from app.core.exceptions import AppError
from app.core.logging import configure_logging
from app.core.middleware import RequestLoggingMiddleware, RequestSizeLimitMiddleware
from app.db.bootstrap import ensure_runtime_schema_compatibility

logger = logging.getLogger(__name__)

# (router, path below the api prefix, openapi tag)
ROUTERS = (
    (health.router, "", "health"),
    (auth.router, "/auth", "auth"),
    (courses.router, "/courses", "courses"),
    (rooms.router, "/rooms", "rooms"),
    (schedules.router, "/schedules", "schedules"),
    (notifications.router, "", "notifications"),
)


@asynccontextmanager
async def lifespan(application: FastAPI):
    ensure_runtime_schema_compatibility()
    logger.info("%s ready", application.title)
    yield
    logger.info("%s shutting down", application.title)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.debug
    log("%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message, "details": exc.details})


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    application = FastAPI(title=settings.project_name, lifespan=lifespan)
    application.add_exception_handler(AppError, app_error_handler)

    application.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_size_bytes)
    application.add_middleware(RequestLoggingMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for router, path, tag in ROUTERS:
        application.include_router(router, prefix=f"{settings.api_prefix}{path}", tags=[tag])
    return application


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run("app.main:app", host=settings.server_host, port=settings.server_port, log_config=None)


if __name__ == "__main__":
    run()
