import logging
import math
import secrets
import string
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import Date, select, func, or_, exists
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from cafe_pos.config import settings
from cafe_pos.crud.audit import record_audit
from cafe_pos.crud.inventory import apply_stock_change
from cafe_pos.crud.menu import lock_menu_items
from cafe_pos.crud.user import authenticate_admin
from cafe_pos.db.transaction import atomic
from cafe_pos.exceptions import (
    AlreadyVoidedError,
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    PersistenceError,
    UnavailableError,
)
from cafe_pos.models import (
    InventoryActionEnum,
    MenuItem,
    MenuItemVariant,
    Order,
    OrderItem,
    OrderStatusEnum,
    PaymentMethodEnum,
    Transaction,
)
from cafe_pos.schemas.order import (
    OrderCreate,
    OrderItemCreate,
    OrderListFilters,
    OrderStatusUpdate,
    OrderVoid,
)

logger = logging.getLogger(__name__)

BASE36_ALPHABET = string.digits + string.ascii_uppercase
CENT = Decimal("0.01")


def generate_order_number(prefix: str = "ORD", now_ms: Optional[int] = None, rng=secrets) -> str:
    """
    Номер вида ORD-<6 младших цифр epoch-ms>-<3 случайных символа base36>.
    """
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    suffix = "".join(rng.choice(BASE36_ALPHABET) for _ in range(3))
    return f"{prefix}-{now_ms % 1_000_000:06d}-{suffix}"


def apply_discount(subtotal: Decimal, discount_amount: Optional[Decimal]) -> Decimal:
    """
    Фиксированная скидка в валюте; итог не бывает отрицательным.
    """
    total = subtotal - (discount_amount or Decimal("0"))
    return max(Decimal("0"), total).quantize(CENT)


@dataclass
class PricedLine:
    """
    Позиция корзины после проверки. Цена берётся из варианта, если он выбран,
    иначе из позиции меню, и дальше не пересчитывается.
    """

    menu_item: MenuItem
    quantity: int
    variant: Optional[MenuItemVariant] = None

    @property
    def unit_price(self) -> Decimal:
        source = self.variant if self.variant is not None else self.menu_item
        return Decimal(source.price).quantize(CENT)

    @property
    def total_price(self) -> Decimal:
        return (self.unit_price * self.quantity).quantize(CENT)

    @property
    def variant_name(self) -> Optional[str]:
        return self.variant.variant_name if self.variant is not None else None

    @property
    def size_label(self) -> Optional[str]:
        return self.variant.size_label if self.variant is not None else None


async def price_cart(db: AsyncSession, items: Sequence[OrderItemCreate]) -> List[PricedLine]:
    """
    Проверяет корзину по порядку и останавливается на первой ошибке.
    Остаток проверяется по заблокированным строкам с учётом всех строк корзины
    на одну и ту же позицию.
    """
    locked = await lock_menu_items(db, [item.menu_item_id for item in items])
    requested: dict[int, int] = {}
    lines = []

    for item in items:
        menu_item = locked.get(item.menu_item_id)
        if menu_item is None:
            raise NotFoundError(f"Menu item with ID {item.menu_item_id} not found")

        if not menu_item.is_available:
            raise UnavailableError(f'Menu item "{menu_item.name}" is not available')

        needed = requested.get(menu_item.id, 0) + item.quantity
        if menu_item.stock_quantity < needed:
            raise InsufficientStockError(
                f'Insufficient stock for "{menu_item.name}". Available: {menu_item.stock_quantity}'
            )
        requested[menu_item.id] = needed

        variant = None
        if item.menu_item_variant_id is not None:
            result = await db.execute(
                select(MenuItemVariant).where(
                    MenuItemVariant.id == item.menu_item_variant_id,
                    MenuItemVariant.menu_item_id == menu_item.id,
                )
            )
            variant = result.scalar_one_or_none()
            if variant is None:
                raise NotFoundError(f"Variant not found for item {menu_item.name}")
            if not variant.is_available:
                raise UnavailableError(f'Selected variant is not available for "{menu_item.name}"')

        lines.append(PricedLine(menu_item=menu_item, quantity=item.quantity, variant=variant))

    return lines


async def _new_order_number(db: AsyncSession) -> str:
    for _ in range(settings.ORDER_NUMBER_MAX_ATTEMPTS):
        candidate = generate_order_number(settings.ORDER_NUMBER_PREFIX)
        taken = await db.scalar(select(exists().where(Order.order_number == candidate)))
        if not taken:
            return candidate
        logger.warning("Order number %s is already taken, generating another", candidate)

    raise PersistenceError("Could not generate a unique order number")


def _is_order_number_conflict(error: PersistenceError) -> bool:
    cause = error.__cause__
    return isinstance(cause, IntegrityError) and "order_number" in str(cause.orig)


async def get_order_by_id(db: AsyncSession, order_id: int) -> Optional[Order]:
    """
    Возвращает заказ по ID с подгруженными items и menu_item.
    populate_existing перечитывает объекты, уже лежащие в сессии.
    """
    stmt = (
        select(Order)
        .where(Order.id == order_id)
        .options(selectinload(Order.items).selectinload(OrderItem.menu_item))
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return result.scalars().unique().first()


async def get_orders(db: AsyncSession, filters: OrderListFilters) -> Tuple[List[Tuple[Order, int]], int]:
    """
    Возвращает страницу заказов (новые первыми) с количеством позиций
    и общее число заказов под фильтром.
    """
    conditions = []

    if filters.status == OrderStatusEnum.voided:
        conditions.append(or_(Order.is_voided.is_(True), Order.status == OrderStatusEnum.voided))
    elif filters.status:
        conditions.append(Order.status == filters.status)
    if filters.payment_method:
        conditions.append(Order.payment_method == filters.payment_method)
    if filters.search and filters.search.strip():
        like = f"%{filters.search.strip()}%"
        conditions.append(or_(Order.order_number.ilike(like), Order.customer_name.ilike(like)))
    if filters.start_date:
        conditions.append(func.date(Order.created_at, type_=Date) >= filters.start_date)
    if filters.end_date:
        conditions.append(func.date(Order.created_at, type_=Date) <= filters.end_date)

    item_count = (
        select(func.count(OrderItem.id))
        .where(OrderItem.order_id == Order.id)
        .correlate(Order)
        .scalar_subquery()
        .label("item_count")
    )

    stmt = (
        select(Order, item_count)
        .where(*conditions)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(filters.limit)
        .offset(filters.offset)
    )
    result = await db.execute(stmt)
    rows = [(row[0], row[1]) for row in result.all()]

    total = await db.scalar(select(func.count(Order.id)).where(*conditions))
    return rows, total or 0


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


async def create_order(db: AsyncSession, order_in: OrderCreate) -> Order:
    """
    Создаёт заказ одной транзакцией: позиции, списание остатков,
    журнал движения и платёж. При любой ошибке не остаётся ничего.
    """
    attempts = settings.ORDER_NUMBER_MAX_ATTEMPTS
    for attempt in range(1, attempts + 1):
        try:
            async with atomic(db):
                order, lines = await _persist_order(db, order_in)
            break
        except (NotFoundError, UnavailableError, InsufficientStockError) as e:
            logger.warning("Order rejected: %s", e.message)
            raise
        except PersistenceError as e:
            # параллельный заказ успел занять тот же номер: вся транзакция повторяется
            if attempt == attempts or not _is_order_number_conflict(e):
                raise
            logger.warning("Order number conflict on insert, retrying (%s/%s)", attempt, attempts)

    logger.info(
        "Order %s created: %s line(s), total %s, discount %s, %s",
        order.order_number, len(lines), order.total_amount, order.discount_amount,
        order.payment_method.value,
    )
    return await get_order_by_id(db, order.id)


async def _persist_order(db: AsyncSession, order_in: OrderCreate) -> Tuple[Order, List[PricedLine]]:
    lines = await price_cart(db, order_in.items)

    subtotal = sum((line.total_price for line in lines), Decimal("0"))
    total_amount = apply_discount(subtotal, order_in.discount_amount)
    order_number = await _new_order_number(db)

    order = Order(
        order_number=order_number,
        customer_name=order_in.customer_name or None,
        total_amount=total_amount,
        discount_amount=order_in.discount_amount or Decimal("0"),
        payment_method=order_in.payment_method,
        cash_received=order_in.cash_received or Decimal("0"),
        change_amount=order_in.change_amount or Decimal("0"),
        status=OrderStatusEnum(order_in.status),
    )
    db.add(order)
    await db.flush()  # нужен order.id

    for line in lines:
        db.add(
            OrderItem(
                order_id=order.id,
                menu_item_id=line.menu_item.id,
                menu_item_variant_id=line.variant.id if line.variant is not None else None,
                variant_name=line.variant_name,
                size_label=line.size_label,
                quantity=line.quantity,
                unit_price=line.unit_price,
                total_price=line.total_price,
            )
        )
        apply_stock_change(
            db,
            line.menu_item,
            -line.quantity,
            InventoryActionEnum.sale,
            reference_order_id=order.id,
            notes=f"Sold in order {order_number}",
        )

    db.add(Transaction(order_id=order.id, amount=total_amount, payment_method=order_in.payment_method))
    return order, lines


async def update_order_status(
    db: AsyncSession,
    order_id: int,
    status_in: OrderStatusUpdate,
    actor_id: Optional[int] = None,
) -> Order:
    """
    Меняет статус и платёжные поля заказа. Остатки не трогает.
    Переходы не ограничены (pending, in_progress, ready, completed в любом порядке);
    аннулированный заказ менять нельзя.
    """
    async with atomic(db):
        order = await db.get(Order, order_id, with_for_update=True, populate_existing=True)
        if order is None:
            raise NotFoundError("Order not found")
        if order.is_voided:
            raise InvalidStateError("Cannot update status of voided order")

        update_data = status_in.model_dump(exclude_unset=True, exclude_none=True)
        old_status = order.status.value
        new_status = OrderStatusEnum(update_data.pop("status"))

        amount_changed = (
            "total_amount" in update_data and Decimal(update_data["total_amount"]) != order.total_amount
        )
        method_changed = (
            "payment_method" in update_data
            and PaymentMethodEnum(update_data["payment_method"]) != order.payment_method
        )

        for key, value in update_data.items():
            setattr(order, key, value)
        order.status = new_status

        if new_status == OrderStatusEnum.completed and (amount_changed or method_changed):
            result = await db.execute(select(Transaction).where(Transaction.order_id == order.id))
            transaction = result.scalars().first()
            if transaction is None:
                db.add(
                    Transaction(order_id=order.id, amount=order.total_amount, payment_method=order.payment_method)
                )
            else:
                transaction.amount = order.total_amount
                transaction.payment_method = order.payment_method

    logger.info("Order %s status %s -> %s", order.order_number, old_status, new_status.value)

    await record_audit(
        db,
        action="status_update",
        user_id=actor_id,
        table_name="orders",
        record_id=order_id,
        old_values={"status": old_status},
        new_values={"status": new_status.value},
    )
    return await get_order_by_id(db, order_id)


async def void_order(
    db: AsyncSession,
    order_id: int,
    void_in: OrderVoid,
    actor_id: Optional[int] = None,
) -> Order:
    """
    Аннулирует заказ после повторной проверки пароля администратора
    и возвращает на склад все списанные количества.
    """
    async with atomic(db):
        admin = await authenticate_admin(db, void_in.admin_username, void_in.admin_password)

        order = await db.get(Order, order_id, with_for_update=True, populate_existing=True)
        if order is None:
            raise NotFoundError("Order not found")
        if order.is_voided:
            raise AlreadyVoidedError("Order is already voided")

        result = await db.execute(
            select(OrderItem).where(OrderItem.order_id == order.id).order_by(OrderItem.id)
        )
        order_items = result.scalars().all()
        locked = await lock_menu_items(db, [item.menu_item_id for item in order_items])

        for item in order_items:
            apply_stock_change(
                db,
                locked[item.menu_item_id],
                item.quantity,
                InventoryActionEnum.adjustment,
                reference_order_id=order.id,
                notes=f"Stock restored from voided order {order.order_number}",
            )

        order.is_voided = True
        order.status = OrderStatusEnum.voided
        order.void_reason = void_in.void_reason
        order.voided_by = admin.id
        order.voided_at = datetime.now(timezone.utc)

    logger.info(
        "Order %s voided by %s: %s (%s line(s) restored)",
        order.order_number, admin.username, void_in.void_reason, len(order_items),
    )

    await record_audit(
        db,
        action="void_order",
        user_id=actor_id if actor_id is not None else admin.id,
        table_name="orders",
        record_id=order_id,
        new_values={"void_reason": void_in.void_reason, "voided_by": admin.id},
    )
    return await get_order_by_id(db, order_id)
