from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cafe_pos.crud.menu import adjust_stock, get_categories, get_menu_item, get_menu_items
from cafe_pos.db.deps import get_async_session, get_staff_user_id
from cafe_pos.exceptions import CafePOSError
from cafe_pos.schemas.menu import CategoryRead, MenuItemRead, StockUpdate, StockUpdateResult


router = APIRouter(prefix="/menu", tags=["menu"])


@router.get("/categories", response_model=List[CategoryRead])
async def list_categories(db: AsyncSession = Depends(get_async_session)):
    return await get_categories(db)


@router.get("/items", response_model=List[MenuItemRead])
async def list_menu_items(
    category_id: Optional[int] = Query(None, description="Фильтр по категории"),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Доступные позиции меню с вариантами (для клиентского меню и кассы).
    """
    items = await get_menu_items(db, category_id=category_id)
    return [MenuItemRead.from_orm_with_variants(i) for i in items]


@router.get("/items/{menu_item_id}", response_model=MenuItemRead)
async def get_menu_item_endpoint(menu_item_id: int, db: AsyncSession = Depends(get_async_session)):
    item = await get_menu_item(db, menu_item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Menu item not found")

    return MenuItemRead.from_orm_with_variants(item)


@router.patch("/items/{menu_item_id}/stock", response_model=StockUpdateResult)
async def update_stock_endpoint(
    menu_item_id: int,
    stock_in: StockUpdate,
    db: AsyncSession = Depends(get_async_session),
    staff_user_id: Optional[int] = Depends(get_staff_user_id),
):
    """
    Пополнение (add/set) или списание (subtract) остатка с записью в журнал.
    """
    try:
        return await adjust_stock(db, menu_item_id, stock_in, actor_id=staff_user_id)
    except CafePOSError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
