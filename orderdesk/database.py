import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from orderdesk.config import settings
from orderdesk.exceptions import ConcurrencyConflict, OrderDeskError, PersistenceError

logger = logging.getLogger(__name__)

# SQLSTATEs that mean "another transaction got there first"
TRANSIENT_SQLSTATES = {"40001", "40P01", "55P03"}


def _engine_kwargs() -> dict:
    if settings.database_url.startswith("sqlite"):
        return {"echo": settings.debug}

    # Environment-based configurations
    if settings.environment == "production":
        return {
            "pool_size": 20,
            "max_overflow": 50,
            "pool_timeout": 60,
            "pool_recycle": 1800,
            "pool_pre_ping": True,
        }
    return {
        "echo": settings.debug,
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": 30,
    }


engine = create_async_engine(settings.database_url, **_engine_kwargs())

AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

Base = declarative_base()


async def get_db() -> AsyncIterator[AsyncSession]:
    async with AsyncSessionLocal() as db:
        try:
            yield db
        except Exception as e:
            logger.error(f"Database session error: {e}")
            raise
        finally:
            await db.close()


def translate_db_error(exc: SQLAlchemyError, operation: str | None = None) -> OrderDeskError:
    """
    Map a SQLAlchemy error onto the public error taxonomy.

    Lock timeouts, serialization failures, deadlocks and unique violations on
    hot rows are transient and become ConcurrencyConflict. Everything else is a
    PersistenceError whose message never exposes driver detail.
    """
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)

    if sqlstate in TRANSIENT_SQLSTATES:
        return ConcurrencyConflict(resource=operation)
    if isinstance(exc, OperationalError) and "database is locked" in str(orig or exc).lower():
        return ConcurrencyConflict(resource=operation)
    if isinstance(exc, IntegrityError) and is_unique_violation(exc):
        return ConcurrencyConflict(resource=operation)
    return PersistenceError(operation=operation)


def is_unique_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    return sqlstate == "23505" or "unique" in str(orig or exc).lower()


@asynccontextmanager
async def unit_of_work(db: AsyncSession, operation: str | None = None) -> AsyncIterator[AsyncSession]:
    """
    Run a composite mutation as one transaction.

    Commits when the block exits cleanly. On any failure the transaction is
    rolled back, so stock changes and order-row changes are never applied
    separately; storage errors are re-raised in their translated form.
    """
    try:
        yield db
        await db.commit()
    except OrderDeskError:
        await db.rollback()
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        translated = translate_db_error(exc, operation)
        if isinstance(translated, PersistenceError):
            logger.error("Persistence failure during %s", operation or "unit of work", exc_info=True)
        else:
            logger.warning("Concurrent write conflict during %s: %s", operation or "unit of work", exc)
        raise translated from exc
    except BaseException:
        await db.rollback()
        raise
