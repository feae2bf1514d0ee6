import uuid

from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship
from invenflow.core.db import Base
from invenflow.models.base.mixins import TimestampMixin, AuditMixin
from invenflow.models.enums.bulk_movement_status import BulkMovementStatus


def _uuid() -> str:
    return str(uuid.uuid4())


class BulkMovement(Base, TimestampMixin, AuditMixin):
    """Multi-item transfer between two locations, confirmed once by a recipient holding the public token."""

    __tablename__ = "bulk_movements"

    id = Column(String(36), primary_key=True, default=_uuid)
    from_location_id = Column(Integer, ForeignKey("inventory_locations.id", ondelete="RESTRICT"), nullable=False, index=True)
    to_location_id = Column(Integer, ForeignKey("inventory_locations.id", ondelete="RESTRICT"), nullable=False, index=True)
    status = Column(Enum(BulkMovementStatus), nullable=False, default=BulkMovementStatus.pending, index=True)
    public_token = Column(String(128), nullable=False, unique=True, index=True)
    token_expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    confirmed_by = Column(String(255), nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    sender_notes = Column(Text, nullable=True)
    recipient_notes = Column(Text, nullable=True)

    from_location = relationship("InventoryLocation", foreign_keys=[from_location_id], lazy="selectin")
    to_location = relationship("InventoryLocation", foreign_keys=[to_location_id], lazy="selectin")
    items = relationship(
        "BulkMovementItem",
        back_populates="bulk_movement",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="BulkMovementItem.position",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("from_location_id != to_location_id", name="ck_bulk_movement_location_diff"),
        CheckConstraint(
            "(status = 'confirmed') = (confirmed_at IS NOT NULL)",
            name="ck_bulk_movement_confirmed_at_matches_status",
        ),
        Index("ix_bulk_movement_status_expiry", "status", "token_expires_at"),
        Index("ix_bulk_movement_location_status", "from_location_id", "to_location_id", "status"),
    )

    def __repr__(self):
        # token intentionally omitted
        return f"<BulkMovement id={self.id} {self.from_location_id}->{self.to_location_id} status={self.status}>"


class BulkMovementItem(Base):
    __tablename__ = "bulk_movement_items"

    id = Column(String(36), primary_key=True, default=_uuid)
    bulk_movement_id = Column(String(36), ForeignKey("bulk_movements.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    quantity_sent = Column(Integer, nullable=False)
    quantity_received = Column(Integer, nullable=True)  # null until confirmed

    # snapshot taken at creation
    sku = Column(String(50), nullable=True, index=True)
    product_details = Column(String(255), nullable=False)
    product_image = Column(String(500), nullable=True)
    unit = Column(String(30), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False)

    bulk_movement = relationship("BulkMovement", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity_sent >= 0", name="ck_bulk_movement_item_sent_non_negative"),
        CheckConstraint(
            "quantity_received IS NULL OR (quantity_received >= 0 AND quantity_received <= quantity_sent)",
            name="ck_bulk_movement_item_received_range",
        ),
        Index("ix_bulk_movement_item_movement_product", "bulk_movement_id", "product_id", unique=True),
    )

    def __repr__(self):
        return f"<BulkMovementItem id={self.id} product_id={self.product_id} sent={self.quantity_sent} received={self.quantity_received}>"
