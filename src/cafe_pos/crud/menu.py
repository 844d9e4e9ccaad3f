import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from cafe_pos.crud.audit import record_audit
from cafe_pos.crud.inventory import apply_stock_change, compute_stock_change
from cafe_pos.db.transaction import atomic
from cafe_pos.exceptions import NotFoundError
from cafe_pos.models import Category, MenuItem
from cafe_pos.schemas.menu import StockUpdate, StockUpdateResult

logger = logging.getLogger(__name__)


async def lock_menu_items(db: AsyncSession, menu_item_ids: Iterable[int]) -> Dict[int, MenuItem]:
    """
    Блокирует строки позиций меню до конца транзакции.
    Блокировки берутся в порядке id, чтобы параллельные заказы не ловили deadlock.
    """
    ids = sorted(set(menu_item_ids))
    if not ids:
        return {}

    stmt = (
        select(MenuItem)
        .where(MenuItem.id.in_(ids))
        .order_by(MenuItem.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return {item.id: item for item in result.scalars().all()}


async def get_categories(db: AsyncSession) -> List[Category]:
    """
    Активные категории в порядке показа в меню.
    """
    stmt = (
        select(Category)
        .where(Category.is_active.is_(True))
        .order_by(Category.display_order, Category.name)
    )
    result = await db.execute(stmt)
    return result.scalars().all()


async def get_menu_items(
    db: AsyncSession,
    category_id: Optional[int] = None,
    include_unavailable: bool = False,
) -> List[MenuItem]:
    """
    Возвращает позиции меню с вариантами и категорией.
    По умолчанию только доступные к продаже.
    """
    stmt = (
        select(MenuItem)
        .outerjoin(MenuItem.category)
        .options(selectinload(MenuItem.variants), selectinload(MenuItem.category))
        .order_by(Category.display_order, MenuItem.name)
    )

    if not include_unavailable:
        stmt = stmt.where(MenuItem.is_available.is_(True))
    if category_id:
        stmt = stmt.where(MenuItem.category_id == category_id)

    result = await db.execute(stmt)
    return result.scalars().unique().all()


async def get_menu_item(db: AsyncSession, menu_item_id: int) -> Optional[MenuItem]:
    stmt = (
        select(MenuItem)
        .where(MenuItem.id == menu_item_id)
        .options(selectinload(MenuItem.variants), selectinload(MenuItem.category))
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return result.scalars().first()


async def adjust_stock(
    db: AsyncSession,
    menu_item_id: int,
    stock_in: StockUpdate,
    actor_id: Optional[int] = None,
) -> StockUpdateResult:
    """
    Ручное пополнение или корректировка остатка с записью в журнал.
    """
    async with atomic(db):
        locked = await lock_menu_items(db, [menu_item_id])
        menu_item = locked.get(menu_item_id)
        if menu_item is None:
            raise NotFoundError("Menu item not found")

        change, action_type = compute_stock_change(
            menu_item.stock_quantity, stock_in.action, stock_in.quantity
        )
        log = apply_stock_change(db, menu_item, change, action_type, notes=stock_in.notes)

    logger.info(
        "Stock of menu item %s changed %s -> %s (%s)",
        menu_item_id, log.previous_stock, log.new_stock, stock_in.action,
    )

    await record_audit(
        db,
        action="stock_update",
        user_id=actor_id,
        table_name="menu_items",
        record_id=menu_item_id,
        new_values={"action": stock_in.action, "quantity_change": change, "new_stock": log.new_stock},
    )

    return StockUpdateResult(
        menu_item_id=menu_item_id,
        previous_stock=log.previous_stock,
        new_stock=log.new_stock,
        quantity_change=change,
    )
