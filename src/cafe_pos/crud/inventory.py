import logging
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cafe_pos.exceptions import InsufficientStockError, ValidationError
from cafe_pos.models import InventoryLog, InventoryActionEnum, MenuItem

logger = logging.getLogger(__name__)


def apply_stock_change(
    db: AsyncSession,
    menu_item: MenuItem,
    quantity_change: int,
    action_type: InventoryActionEnum,
    reference_order_id: Optional[int] = None,
    notes: Optional[str] = None,
) -> InventoryLog:
    """
    Меняет остаток позиции и добавляет строку в журнал движения.
    Позиция должна быть заблокирована (SELECT ... FOR UPDATE) в текущей транзакции.
    """
    previous_stock = menu_item.stock_quantity
    new_stock = previous_stock + quantity_change
    if new_stock < 0:
        raise InsufficientStockError(
            f'Insufficient stock for "{menu_item.name}". Available: {previous_stock}'
        )

    menu_item.stock_quantity = new_stock
    log = InventoryLog(
        menu_item_id=menu_item.id,
        action_type=action_type,
        quantity_change=quantity_change,
        previous_stock=previous_stock,
        new_stock=new_stock,
        reference_order_id=reference_order_id,
        notes=notes,
    )
    db.add(log)
    return log


def compute_stock_change(current_stock: int, action: str, quantity: int) -> Tuple[int, InventoryActionEnum]:
    """
    Ручная корректировка остатка: set / add / subtract.
    Возвращает изменение со знаком и тип записи для журнала.
    """
    if quantity < 0:
        raise ValidationError("Quantity must be a non-negative integer")

    if action == "set":
        change = quantity - current_stock
    elif action == "add":
        change = quantity
    elif action == "subtract":
        if quantity > current_stock:
            raise InsufficientStockError("Cannot subtract more than current stock")
        change = -quantity
    else:
        raise ValidationError(f"Invalid stock action: {action}")

    # уменьшение остатка пишем как adjustment, остальное как restock
    action_type = InventoryActionEnum.adjustment if change < 0 else InventoryActionEnum.restock
    return change, action_type


async def list_inventory_logs(
    db: AsyncSession,
    menu_item_id: Optional[int] = None,
    action_type: Optional[InventoryActionEnum] = None,
    reference_order_id: Optional[int] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[InventoryLog]:
    """
    Журнал движения остатков, новые записи первыми.
    """
    stmt = select(InventoryLog).order_by(InventoryLog.created_at.desc(), InventoryLog.id.desc())

    if menu_item_id:
        stmt = stmt.where(InventoryLog.menu_item_id == menu_item_id)
    if action_type:
        stmt = stmt.where(InventoryLog.action_type == action_type)
    if reference_order_id:
        stmt = stmt.where(InventoryLog.reference_order_id == reference_order_id)

    stmt = stmt.limit(limit).offset(offset)

    result = await db.execute(stmt)
    return result.scalars().all()
