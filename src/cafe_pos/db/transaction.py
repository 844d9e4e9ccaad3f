import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cafe_pos.exceptions import PersistenceError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Выполняет блок как одну транзакцию: commit при успехе,
    rollback при любой ошибке. Ошибки SQLAlchemy превращаются в PersistenceError.
    """
    try:
        yield db
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Transaction rolled back after database error")
        raise PersistenceError(details=str(exc)) from exc
    except Exception:
        await db.rollback()
        raise
