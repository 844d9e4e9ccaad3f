import enum
from sqlalchemy import (
    Column, Integer, String, Text, Numeric, Boolean, DateTime, ForeignKey, Enum as SAEnum, func
)
from sqlalchemy.orm import relationship
from ..db.base import Base


class OrderStatusEnum(str, enum.Enum):
    pending = "pending"
    in_progress = "in_progress"
    ready = "ready"
    completed = "completed"
    voided = "voided"


class PaymentMethodEnum(str, enum.Enum):
    cash = "cash"
    gcash = "gcash"


payment_method_type = SAEnum(PaymentMethodEnum, name="payment_method")


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(20), nullable=False, unique=True)
    customer_name = Column(String(100), nullable=True)
    total_amount = Column(Numeric(10, 2), nullable=False)  # после скидки
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0)
    payment_method = Column(payment_method_type, nullable=False)
    cash_received = Column(Numeric(10, 2), nullable=False, default=0)
    change_amount = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(
        SAEnum(OrderStatusEnum, name="order_status"),
        nullable=False,
        default=OrderStatusEnum.pending,
        index=True,
    )
    is_voided = Column(Boolean, nullable=False, default=False)
    void_reason = Column(Text, nullable=True)
    voided_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    voided_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # связи
    items = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id"
    )
    transaction = relationship(
        "Transaction", back_populates="order", uselist=False, cascade="all, delete-orphan"
    )
