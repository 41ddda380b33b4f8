from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Depends, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from sqladmin import Admin
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from bloodnet.admin.facility_admin import CityAdmin, HospitalAdmin, BloodBankAdmin
from bloodnet.admin.inventory_admin import BloodInventoryAdmin, BloodRequestAdmin
from bloodnet.config import settings
from bloodnet.database import engine, close_db
from bloodnet.dependencies import get_db
from bloodnet.middlewares.logging_middleware import LoggingMiddleware
from bloodnet.middlewares.rate_limit_middleware import RateLimitMiddleware
from bloodnet.routes import router as api_router
from bloodnet.services.inventory_coordinator import KeyedLocks
from bloodnet.services.notification_sse import TopicBroker
from bloodnet.utils.exceptions import BloodNetError
from bloodnet.utils.logging_config import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application startup and shutdown events.
    """
    logger.info("Application starting up...")

    yield

    logger.info("Application shutting down...")
    logger.info(f"Notification broker stats at shutdown: {app.state.broker.get_stats()}")
    await close_db()


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(BloodNetError)
    async def bloodnet_error_handler(request: Request, exc: BloodNetError):
        if exc.status_code >= 500:
            logger.error(
                f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}",
                exc_info=exc.__cause__ is not None,
            )
        else:
            logger.info(
                f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}"
            )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = [
            {
                "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
                "message": error.get("msg"),
            }
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "success": False,
                "error": "validation_error",
                "message": "Request validation failed",
                "details": details,
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": "http_error", "message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )


def create_application() -> FastAPI:
    """Create the FastAPI application"""
    app = FastAPI(
        title=settings.PROJECT_NAME,
        description=settings.PROJECT_DESCRIPTION,
        version=settings.VERSION,
        docs_url=settings.DOCS_URL,
        redoc_url=None,
        lifespan=lifespan,
    )

    # Owned by the app and injected into every request
    app.state.broker = TopicBroker(queue_size=settings.SSE_QUEUE_SIZE)
    app.state.inventory_locks = KeyedLocks()

    register_exception_handlers(app)

    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.RATE_LIMIT_REQUESTS_PER_MINUTE,
        emergency_max_requests=settings.EMERGENCY_RATE_LIMIT_PER_MINUTE,
    )

    app.add_middleware(LoggingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=[
            "Content-Type",
            "Authorization",
            "Accept",
            "X-Requested-With",
            "X-Request-ID",
            "Origin",
        ],
        expose_headers=["Content-Length", "Content-Type", "X-Request-ID"],
        max_age=600,
    )

    app.include_router(api_router, prefix=settings.API_PREFIX)

    if settings.ENABLE_ADMIN:
        admin = Admin(app, engine, base_url=settings.ADMIN_PATH)
        admin.add_view(CityAdmin)
        admin.add_view(HospitalAdmin)
        admin.add_view(BloodBankAdmin)
        admin.add_view(BloodInventoryAdmin)
        admin.add_view(BloodRequestAdmin)

    def custom_openapi():
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title=app.title,
            version=app.version,
            description=app.description,
            routes=app.routes,
        )

        openapi_schema.setdefault("components", {})["securitySchemes"] = {
            "BearerAuth": {
                "type": "http",
                "scheme": "bearer",
                "bearerFormat": "JWT",
            }
        }

        public_paths = [
            f"{settings.API_PREFIX}/blood-inventory/availability",
            f"{settings.API_PREFIX}/blood-inventory/emergency",
            f"{settings.API_PREFIX}/blood-inventory/city",
            f"{settings.API_PREFIX}/notifications",
        ]

        for path_key, path_item in openapi_schema["paths"].items():
            if not path_key.startswith(settings.API_PREFIX):
                continue
            if any(path_key.startswith(p) for p in public_paths):
                continue
            for method in path_item.values():
                method.setdefault("security", []).append({"BearerAuth": []})

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi

    @app.get("/")
    def read_root():
        return {
            "status": "ok",
            "service": settings.PROJECT_NAME,
            "environment": settings.ENVIRONMENT,
        }

    @app.get("/health")
    async def health_check(db: AsyncSession = Depends(get_db)):
        """Health check with database connectivity test"""
        try:
            await db.execute(select(1))
        except SQLAlchemyError as e:
            logger.error(f"Health check failed: {e}")
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unhealthy", "database": "disconnected"},
            )
        return {"status": "healthy", "database": "connected"}

    return app


app = create_application()
