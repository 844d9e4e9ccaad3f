from sqlalchemy import Column, Integer, String, Text, Numeric, Boolean, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from ..db.base import Base


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    price = Column(Numeric(10, 2), nullable=False)  # базовая цена, вариант её перекрывает
    is_available = Column(Boolean, default=True, nullable=False, index=True)
    stock_quantity = Column(Integer, default=0, nullable=False)  # штук на складе
    low_stock_threshold = Column(Integer, default=5, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # связи
    category = relationship("Category", back_populates="menu_items")
    variants = relationship(
        "MenuItemVariant",
        back_populates="menu_item",
        cascade="all, delete-orphan",
        order_by="MenuItemVariant.price",
    )
    order_items = relationship("OrderItem", back_populates="menu_item")
    inventory_logs = relationship("InventoryLog", back_populates="menu_item")
