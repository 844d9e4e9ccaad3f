import enum
from sqlalchemy import Column, Integer, String, Boolean, DateTime, func, Enum
from werkzeug.security import check_password_hash, generate_password_hash
from ..db.base import Base


class RoleEnum(str, enum.Enum):
    owner = "owner"
    admin = "admin"
    manager = "manager"
    cashier = "cashier"


# Кто может аннулировать заказ
VOID_ROLES = {RoleEnum.owner, RoleEnum.admin}


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), nullable=False, unique=True, index=True)
    email = Column(String(100), nullable=True, unique=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(Enum(RoleEnum, name="user_role"), nullable=False, default=RoleEnum.cashier)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)
