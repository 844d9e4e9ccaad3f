from pydantic import BaseModel
from typing import Optional
from datetime import datetime

from cafe_pos.models.inventory_log import InventoryActionEnum


class InventoryLogRead(BaseModel):
    id: int
    menu_item_id: int
    action_type: InventoryActionEnum
    quantity_change: int
    previous_stock: int
    new_stock: int
    reference_order_id: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
