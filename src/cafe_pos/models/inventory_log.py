import enum
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, Enum as SAEnum, func
from sqlalchemy.orm import relationship
from ..db.base import Base


class InventoryActionEnum(str, enum.Enum):
    sale = "sale"
    restock = "restock"
    adjustment = "adjustment"


class InventoryLog(Base):
    """Журнал движения остатков. Строки только добавляются."""

    __tablename__ = "inventory_logs"

    id = Column(Integer, primary_key=True, index=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True)
    action_type = Column(SAEnum(InventoryActionEnum, name="inventory_action"), nullable=False)
    quantity_change = Column(Integer, nullable=False)  # со знаком
    previous_stock = Column(Integer, nullable=False)
    new_stock = Column(Integer, nullable=False)
    reference_order_id = Column(Integer, ForeignKey("orders.id", ondelete="SET NULL"), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    menu_item = relationship("MenuItem", back_populates="inventory_logs")
