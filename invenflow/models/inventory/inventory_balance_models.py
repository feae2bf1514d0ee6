from sqlalchemy import Column, Integer, ForeignKey, CheckConstraint
from invenflow.core.db import Base
from invenflow.models.base.mixins import TimestampMixin


class InventoryBalance(Base, TimestampMixin):
    __tablename__ = "inventory_balances"

    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), primary_key=True)
    location_id = Column(Integer, ForeignKey("inventory_locations.id", ondelete="RESTRICT"), primary_key=True)
    quantity = Column(Integer, nullable=False, default=0)

    __table_args__ = (CheckConstraint("quantity >= 0", name="ck_inventory_balance_quantity_non_negative"),)

    def __repr__(self):
        return f"<InventoryBalance product_id={self.product_id} location_id={self.location_id} qty={self.quantity}>"
