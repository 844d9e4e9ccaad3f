from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cafe_pos.exceptions import UnauthorizedError
from cafe_pos.models import User, VOID_ROLES


async def authenticate_admin(db: AsyncSession, username: str, password: str) -> User:
    """
    Повторно проверяет логин и пароль администратора.
    Подходит только активный пользователь с ролью owner или admin.
    """
    result = await db.execute(
        select(User).where(
            User.username == username,
            User.role.in_(list(VOID_ROLES)),
            User.is_active.is_(True),
        )
    )
    user = result.scalar_one_or_none()

    # одно и то же сообщение для неизвестного логина и неверного пароля
    if user is None or not user.check_password(password):
        raise UnauthorizedError("Invalid admin credentials")

    return user
