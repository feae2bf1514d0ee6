from sqlalchemy import Column, Integer, String, Boolean, Enum, Index
from invenflow.core.db import Base
from invenflow.models.base.mixins import TimestampMixin, SoftDeleteMixin
from invenflow.models.enums.location_type import LocationType


class InventoryLocation(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "inventory_locations"

    id = Column(Integer, primary_key=True)
    code = Column(String(50), nullable=False, unique=True, index=True)
    name = Column(String(100), nullable=False)
    area = Column(String(255), nullable=False, index=True)
    location_type = Column(Enum(LocationType), nullable=False, default=LocationType.physical)
    is_active = Column(Boolean, default=True, nullable=False)

    __table_args__ = (Index("ix_inventory_location_active", "is_active"),)

    def __repr__(self):
        return f"<InventoryLocation id={self.id} code={self.code} active={self.is_active}>"
