#edupulse/__init__.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .core.database import init_db, close_db
from .core.errors import register_exception_handlers
from .core.logging import logger
from .middleware import RequestIDMiddleware
from .schemas import ErrorResponse
from .routes import (
    access_router,
    assistant_router,
    attendance_router,
    insights_router,
    notifications_router,
    students_router
)


ERROR_RESPONSES = {
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description="API for managing school attendance registers, analytics and AI insights",
        version=settings.VERSION,
        docs_url="/api/docs" if settings.DEBUG else None,
        redoc_url="/api/redoc" if settings.DEBUG else None,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # Include routers
    app.include_router(students_router, prefix="/api/v1/students", tags=["Students"], responses=ERROR_RESPONSES)
    app.include_router(attendance_router, prefix="/api/v1/attendance", tags=["Attendance"], responses=ERROR_RESPONSES)
    app.include_router(insights_router, prefix="/api/v1/insights", tags=["Insights"], responses=ERROR_RESPONSES)
    app.include_router(assistant_router, prefix="/api/v1/assistant", tags=["Assistant"], responses=ERROR_RESPONSES)
    app.include_router(notifications_router, prefix="/api/v1/notifications", tags=["Notifications"], responses=ERROR_RESPONSES)
    app.include_router(access_router, prefix="/api/v1/access", tags=["Access"], responses=ERROR_RESPONSES)

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok", "version": settings.VERSION}

    @app.on_event("startup")
    async def startup_event():
        await init_db()
        logger.info("Application startup completed")

    @app.on_event("shutdown")
    async def shutdown_event():
        await close_db()
        logger.info("Application shutdown completed")

    return app
