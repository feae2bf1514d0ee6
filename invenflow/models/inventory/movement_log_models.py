from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship
from invenflow.core.db import Base
from invenflow.models.enums.movement_type import MovementType


class MovementLog(Base):
    """Movement ledger. APPEND-ONLY. Never updated, never deleted."""

    __tablename__ = "movement_logs"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)
    bulk_movement_id = Column(String(36), ForeignKey("bulk_movements.id", ondelete="SET NULL"), nullable=True, index=True)
    from_location_id = Column(Integer, ForeignKey("inventory_locations.id", ondelete="SET NULL"), nullable=True, index=True)
    to_location_id = Column(Integer, ForeignKey("inventory_locations.id", ondelete="SET NULL"), nullable=True, index=True)
    from_area = Column(String(255), nullable=True)
    to_area = Column(String(255), nullable=True)
    quantity_moved = Column(Integer, nullable=False)
    from_stock_level = Column(Integer, nullable=True)
    moved_by = Column(String(255), nullable=True)
    movement_type = Column(Enum(MovementType), nullable=False, default=MovementType.manual, index=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)

    product = relationship("Product", lazy="selectin")

    __table_args__ = (
        CheckConstraint("quantity_moved > 0", name="ck_movement_log_quantity_positive"),
        Index("ix_movement_log_product_created", "product_id", "created_at"),
    )

    def __repr__(self):
        return f"<MovementLog id={self.id} product_id={self.product_id} {self.from_location_id}->{self.to_location_id} qty={self.quantity_moved} type={self.movement_type}>"
