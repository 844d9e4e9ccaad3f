from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cafe_pos.config import settings
from cafe_pos.crud.order import create_order, get_order_by_id, get_orders, page_count
from cafe_pos.crud.order import update_order_status, void_order
from cafe_pos.db.deps import get_async_session, get_staff_user_id
from cafe_pos.exceptions import CafePOSError, PersistenceError
from cafe_pos.models.order import OrderStatusEnum, PaymentMethodEnum
from cafe_pos.schemas.order import (
    OrderCreate,
    OrderListFilters,
    OrderListResponse,
    OrderRead,
    OrderStatusUpdate,
    OrderSummary,
    OrderVoid,
    Pagination,
)


router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/", response_model=OrderRead, status_code=201)
async def create_order_endpoint(order_in: OrderCreate, db: AsyncSession = Depends(get_async_session)):
    """
    Создаёт заказ из корзины (клиентский QR-заказ или касса).
    """
    try:
        order = await create_order(db, order_in)
    except CafePOSError as e:
        # ошибки корзины (нет позиции, нет остатка) отдаём как 400
        status_code = e.status_code if isinstance(e, PersistenceError) else 400
        raise HTTPException(status_code=status_code, detail=e.message)

    return OrderRead.from_orm_with_name(order)


@router.get("/", response_model=OrderListResponse)
async def list_orders(
    status: Optional[OrderStatusEnum] = Query(None, description="Фильтр по статусу"),
    payment_method: Optional[PaymentMethodEnum] = Query(None, description="Способ оплаты"),
    search: Optional[str] = Query(None, description="Номер заказа или имя клиента"),
    start_date: Optional[date] = Query(None, description="Начальная дата (YYYY-MM-DD)"),
    end_date: Optional[date] = Query(None, description="Конечная дата (YYYY-MM-DD)"),
    limit: int = Query(settings.ORDERS_PAGE_LIMIT, ge=1, le=500, description="Количество записей"),
    offset: int = Query(0, ge=0, description="Смещение для пагинации"),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Возвращает список заказов с фильтрацией и пагинацией.
    Фильтр status=voided находит и заказы с флагом is_voided.
    """
    filters = OrderListFilters(
        status=status,
        payment_method=payment_method,
        search=search,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    rows, total = await get_orders(db, filters)

    return OrderListResponse(
        orders=[OrderSummary.from_row(order, item_count) for order, item_count in rows],
        pagination=Pagination(
            page=offset // limit + 1,
            limit=limit,
            total=total,
            pages=page_count(total, limit),
        ),
    )


@router.get("/{order_id}", response_model=OrderRead)
async def get_order(
    order_id: int = Path(..., description="ID заказа"),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Возвращает детализацию заказа по id.
    """
    order = await get_order_by_id(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    return OrderRead.from_orm_with_name(order)


@router.patch("/{order_id}/status", response_model=OrderRead)
async def update_order_status_endpoint(
    order_id: int,
    status_in: OrderStatusUpdate,
    db: AsyncSession = Depends(get_async_session),
    staff_user_id: Optional[int] = Depends(get_staff_user_id),
):
    """
    Смена статуса заказа. Можно передать исправленные скидку, сумму,
    наличные, сдачу и способ оплаты.
    """
    try:
        order = await update_order_status(db, order_id, status_in, actor_id=staff_user_id)
    except CafePOSError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return OrderRead.from_orm_with_name(order)


@router.post("/{order_id}/void", response_model=OrderRead)
async def void_order_endpoint(
    order_id: int,
    void_in: OrderVoid,
    db: AsyncSession = Depends(get_async_session),
    staff_user_id: Optional[int] = Depends(get_staff_user_id),
):
    """
    Аннулирование заказа с возвратом остатков. Требует логин и пароль
    владельца или администратора.
    """
    try:
        order = await void_order(db, order_id, void_in, actor_id=staff_user_id)
    except CafePOSError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return OrderRead.from_orm_with_name(order)
