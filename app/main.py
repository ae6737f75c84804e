import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError

from app.api.v1.analytics.router import router as analytics_router
from app.api.v1.classes.router import router as classes_router
from app.api.v1.departments.router import router as departments_router
from app.api.v1.enrollments.router import router as enrollments_router
from app.api.v1.subjects.router import router as subjects_router
from app.api.v1.users.router import router as users_router
from app.core.config import settings
from app.core.exceptions import StorageUnavailable
from app.core.logging import setup_logging

logger = logging.getLogger(__name__)


async def _storage_unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
    # Database errors that escaped a service (connection lost, timeouts) end up here
    logger.error("%s %s failed: storage unavailable: %s", request.method, request.url.path, exc)
    if not isinstance(exc, StorageUnavailable):
        exc = StorageUnavailable()
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": exc.to_detail()},
    )


def create_app() -> FastAPI:
    setup_logging(settings)
    app = FastAPI(title="Classroom Management Backend")

    # CORS: allow the dashboard frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StorageUnavailable, _storage_unavailable_handler)
    app.add_exception_handler(OperationalError, _storage_unavailable_handler)
    app.add_exception_handler(InterfaceError, _storage_unavailable_handler)

    # Routers
    app.include_router(users_router)
    app.include_router(departments_router)
    app.include_router(subjects_router)
    app.include_router(classes_router)
    app.include_router(enrollments_router)
    app.include_router(analytics_router)

    @app.get("/health", tags=["health"])
    async def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()
