from pydantic import BaseModel, conint, condecimal, conlist, constr
from typing import List, Literal, Optional
from datetime import date, datetime
from decimal import Decimal

from cafe_pos.models.order import OrderStatusEnum, PaymentMethodEnum


# Статусы, которые можно выставить напрямую; voided ставится только аннулированием
ActiveStatus = Literal["pending", "in_progress", "ready", "completed"]

Money = condecimal(ge=0, max_digits=10, decimal_places=2)


class OrderItemRead(BaseModel):
    id: int
    menu_item_id: int
    menu_item_name: str | None = None
    menu_item_variant_id: Optional[int] = None
    variant_name: Optional[str] = None
    size_label: Optional[str] = None
    quantity: int
    unit_price: Decimal
    total_price: Decimal

    @classmethod
    def from_orm_with_name(cls, item):
        return cls(
            id=item.id,
            menu_item_id=item.menu_item_id,
            menu_item_name=item.menu_item.name if item.menu_item else None,
            menu_item_variant_id=item.menu_item_variant_id,
            variant_name=item.variant_name,
            size_label=item.size_label,
            quantity=item.quantity,
            unit_price=item.unit_price,
            total_price=item.total_price,
        )

    class Config:
        from_attributes = True


class OrderBase(BaseModel):
    id: int
    order_number: str
    customer_name: Optional[str] = None
    total_amount: Decimal
    discount_amount: Decimal
    cash_received: Decimal
    change_amount: Decimal
    payment_method: PaymentMethodEnum
    status: OrderStatusEnum
    is_voided: bool
    void_reason: Optional[str] = None
    voided_by: Optional[int] = None
    voided_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrderRead(OrderBase):
    items: List[OrderItemRead] = []

    @classmethod
    def from_orm_with_name(cls, order):
        base = OrderBase.model_validate(order)
        return cls(
            **base.model_dump(),
            items=[OrderItemRead.from_orm_with_name(i) for i in order.items],
        )


class OrderSummary(OrderBase):
    item_count: int = 0

    @classmethod
    def from_row(cls, order, item_count):
        base = OrderBase.model_validate(order)
        return cls(**base.model_dump(), item_count=item_count or 0)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class OrderListResponse(BaseModel):
    orders: List[OrderSummary]
    pagination: Pagination


class OrderItemCreate(BaseModel):
    menu_item_id: int
    menu_item_variant_id: Optional[int] = None
    quantity: conint(ge=1)


class OrderCreate(BaseModel):
    items: conlist(OrderItemCreate, min_length=1)
    payment_method: PaymentMethodEnum
    customer_name: Optional[constr(strip_whitespace=True, max_length=100)] = None
    # Скидка PWD/Senior считается на клиенте и приходит готовой суммой
    discount_amount: Money = Decimal("0")
    cash_received: Optional[Money] = None
    change_amount: Optional[Money] = None
    status: ActiveStatus = "pending"


class OrderStatusUpdate(BaseModel):
    status: ActiveStatus
    discount_amount: Optional[Money] = None
    cash_received: Optional[Money] = None
    change_amount: Optional[Money] = None
    payment_method: Optional[PaymentMethodEnum] = None
    total_amount: Optional[Money] = None

    class Config:
        extra = "forbid"


class OrderVoid(BaseModel):
    void_reason: constr(strip_whitespace=True, min_length=1)
    admin_username: constr(strip_whitespace=True, min_length=1)
    admin_password: constr(min_length=1)


class OrderListFilters(BaseModel):
    status: Optional[OrderStatusEnum] = None
    payment_method: Optional[PaymentMethodEnum] = None
    search: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    limit: int = 100
    offset: int = 0
