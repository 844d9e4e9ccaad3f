from typing import AsyncGenerator, Optional

from fastapi import Header
from sqlalchemy.ext.asyncio import AsyncSession

from cafe_pos.db.session import AsyncSessionLocal


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Одна сессия на запрос; закрывается при любом выходе из обработчика.
    Пример: async def endpoint(db: AsyncSession = Depends(get_async_session))
    """
    async with AsyncSessionLocal() as session:
        yield session


async def get_staff_user_id(
    x_staff_user_id: Optional[int] = Header(None, description="ID сотрудника, выполняющего действие"),
) -> Optional[int]:
    """
    Выдача токенов живёт вне сервиса: шлюз авторизации передаёт
    ID сотрудника в заголовке, он используется только для аудита.
    """
    return x_staff_user_id
