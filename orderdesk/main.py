import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from orderdesk.config import settings
from orderdesk.database import Base, engine
from orderdesk.exception_handlers import register_exception_handlers
from orderdesk.middleware.logging import StructuredLoggingMiddleware, setup_structured_logging
from orderdesk.middleware.tenant import OrgContextMiddleware
from orderdesk.routes import customers, health, orders, organizations, products

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s %s (%s)", settings.app_name, settings.app_version, settings.environment)
    if settings.debug:
        # Development convenience; deployments run `alembic upgrade head`.
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created (if not existing).")
    yield
    await engine.dispose()
    logger.info("Shutting down the application...")


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Multi-tenant order lifecycle and inventory service",
        debug=settings.debug,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # Starlette middleware is LIFO: logging wraps everything, CORS answers preflights first.
    app.add_middleware(OrgContextMiddleware)
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(orders.router, prefix="/api/v1")
    app.include_router(products.router, prefix="/api/v1")
    app.include_router(customers.router, prefix="/api/v1")
    app.include_router(organizations.router, prefix="/api/v1")

    if settings.debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

    return app


setup_structured_logging(settings.log_level, json_format=settings.log_json)
app = create_app()
