import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import models  # noqa: F401 - registers tables with Base
from .cache import Cache, CatalogCache
from .config import ALLOWED_ORIGINS, CATALOG_CACHE_TTL_SECONDS
from .database import Base, SessionLocal, engine as default_engine, make_session_factory
from .domain.appointments.locks import StaffScheduleLocks
from .domain.appointments.router import router as appointments_router
from .domain.catalog.router import router as catalog_router
from .domain.scheduling.validator import BookingValidator
from .exceptions import BookingError
from .realtime.dispatcher import NotificationDispatcher
from .realtime.registry import ConnectionRegistry
from .realtime.router import router as realtime_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=app.state.engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")
            raise

    yield
    logger.info(
        f"Application shutting down... ({app.state.registry.connection_count()} live connections)"
    )


def create_app(
    engine=None,
    cache: Optional[Cache] = None,
    validator: Optional[BookingValidator] = None,
) -> FastAPI:
    """
    Build the API.

    Args:
        engine: SQLAlchemy engine; defaults to the one configured from DATABASE_URL
        cache: Listing cache backend; defaults to Redis (fail-open)
        validator: Booking validator override (e.g. with a fixed clock)
    """
    app = FastAPI(title="Salon Booking API", version="1.0.0", lifespan=lifespan)

    app.state.engine = engine or default_engine
    app.state.session_factory = make_session_factory(engine) if engine else SessionLocal

    # Realtime core: one registry per app instance
    app.state.registry = ConnectionRegistry()
    app.state.dispatcher = NotificationDispatcher(app.state.registry)
    app.state.staff_locks = StaffScheduleLocks()
    app.state.booking_validator = validator

    cache = cache or Cache()
    app.state.services_cache = CatalogCache(cache, "services", CATALOG_CACHE_TTL_SECONDS)
    app.state.staff_cache = CatalogCache(cache, "staff", CATALOG_CACHE_TTL_SECONDS)

    _register_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["*"],
    )

    app.include_router(appointments_router)
    app.include_router(catalog_router)
    app.include_router(realtime_router)

    @app.get("/")
    def root():
        return {"message": "Salon Booking API is running"}

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(BookingError)
    async def booking_error_handler(request: Request, exc: BookingError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} - {type(exc).__name__}: {exc.detail}")
        else:
            logger.info(f"{request.method} {request.url.path} - {exc.status_code}: {exc.detail}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """
        Malformed input is a 400. Errors about the Authorization header are
        reported as 401 authentication errors instead.
        """
        for error in exc.errors():
            if error.get("loc") and "authorization" in str(error.get("loc")).lower():
                logger.warning(
                    f"Authentication failed for {request.url.path}: Missing or invalid Authorization header"
                )
                return JSONResponse(
                    status_code=401,
                    content={
                        "detail": "Not authenticated. Please provide a valid Bearer token in the Authorization header."
                    },
                )

        logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
        errors = [
            {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
            for error in exc.errors()
        ]
        return JSONResponse(status_code=400, content={"detail": errors})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"{request.method} {request.url.path} - Unhandled error: {exc}")
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app = create_app()
