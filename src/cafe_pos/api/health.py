import logging

from fastapi import APIRouter, Depends, HTTPException
from datetime import datetime
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.deps import get_async_session

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/health", summary="Health check")
async def health_check(db: AsyncSession = Depends(get_async_session)):
    """
    Health-check: приложение живо и база отвечает.
    """
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        raise HTTPException(status_code=503, detail="Database connection failed")

    return {
        "status": "ok",
        "database": "ok",
        "timestamp": datetime.now()
    }
