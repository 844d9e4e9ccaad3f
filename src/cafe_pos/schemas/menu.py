from pydantic import BaseModel, conint
from typing import List, Literal, Optional
from decimal import Decimal


class CategoryRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    display_order: int

    class Config:
        from_attributes = True


class VariantRead(BaseModel):
    id: int
    menu_item_id: int
    variant_name: str
    size_label: Optional[str] = None
    price: Decimal
    is_available: bool

    class Config:
        from_attributes = True


class MenuItemRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    price: Decimal
    is_available: bool
    stock_quantity: int
    low_stock_threshold: int
    is_low_stock: bool
    variants: List[VariantRead] = []

    @classmethod
    def from_orm_with_variants(cls, item):
        return cls(
            id=item.id,
            name=item.name,
            description=item.description,
            category_id=item.category_id,
            category_name=item.category.name if item.category else None,
            price=item.price,
            is_available=item.is_available,
            stock_quantity=item.stock_quantity,
            low_stock_threshold=item.low_stock_threshold,
            is_low_stock=item.stock_quantity <= item.low_stock_threshold,
            variants=[VariantRead.model_validate(v) for v in item.variants],
        )


class StockUpdate(BaseModel):
    action: Literal["set", "add", "subtract"]
    quantity: conint(ge=0)
    notes: Optional[str] = None


class StockUpdateResult(BaseModel):
    menu_item_id: int
    previous_stock: int
    new_stock: int
    quantity_change: int
