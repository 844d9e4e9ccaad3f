from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cafe_pos.crud.inventory import list_inventory_logs
from cafe_pos.db.deps import get_async_session
from cafe_pos.models.inventory_log import InventoryActionEnum
from cafe_pos.schemas.inventory import InventoryLogRead


router = APIRouter(prefix="/inventory", tags=["inventory"])


@router.get("/logs", response_model=List[InventoryLogRead])
async def list_inventory_logs_endpoint(
    menu_item_id: Optional[int] = Query(None, description="ID позиции меню"),
    action_type: Optional[InventoryActionEnum] = Query(None, description="sale, restock, adjustment"),
    reference_order_id: Optional[int] = Query(None, description="ID заказа"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Журнал движения остатков, новые записи первыми.
    """
    return await list_inventory_logs(
        db,
        menu_item_id=menu_item_id,
        action_type=action_type,
        reference_order_id=reference_order_id,
        limit=limit,
        offset=offset,
    )
