import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cafe_pos.models import AuditLog

logger = logging.getLogger(__name__)


async def record_audit(
    db: AsyncSession,
    action: str,
    user_id: Optional[int] = None,
    table_name: Optional[str] = None,
    record_id: Optional[int] = None,
    old_values: Optional[dict[str, Any]] = None,
    new_values: Optional[dict[str, Any]] = None,
) -> bool:
    """
    Пишет запись аудита отдельной транзакцией.
    Запись необязательная: ошибка логируется и не отменяет основную операцию.
    """
    try:
        db.add(
            AuditLog(
                user_id=user_id,
                action=action,
                table_name=table_name,
                record_id=record_id,
                old_values=old_values,
                new_values=new_values,
            )
        )
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Audit log write failed: action=%s record_id=%s", action, record_id)
        return False
    return True
