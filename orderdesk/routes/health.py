import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.config import settings
from orderdesk.database import get_db
from orderdesk.exception_handlers import error_envelope
from orderdesk.exceptions import ErrorCode

router = APIRouter(tags=["Health"])
logger = logging.getLogger(__name__)


@router.get("/health")
async def health(db: AsyncSession = Depends(get_db)):
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.error("Health check failed: database unreachable", exc_info=True)
        return error_envelope(503, ErrorCode.SERVICE_UNAVAILABLE, "Database unavailable", path="/health")
    return {"status": "ok", "app": settings.app_name, "version": settings.app_version}
