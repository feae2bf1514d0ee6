from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional, List

from invenflow.models.enums.bulk_movement_status import BulkMovementStatus
from invenflow.models.enums.location_type import LocationType


class CamelSchema(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# ==============================
# INPUT SCHEMAS
# ==============================
# Quantities and item sets are checked in the service layer so that the
# error taxonomy (and its ordering) is the same for HTTP and direct callers.
class BulkMovementItemCreateSchema(CamelSchema):
    product_id: int
    quantity_sent: int


class BulkMovementCreateSchema(CamelSchema):
    from_location_id: int
    to_location_id: int
    items: List[BulkMovementItemCreateSchema]
    notes: Optional[str] = None


class BulkMovementUpdateSchema(CamelSchema):
    to_location_id: Optional[int] = None
    sender_notes: Optional[str] = None


class BulkMovementConfirmItemSchema(CamelSchema):
    item_id: str
    quantity_received: int


class BulkMovementConfirmSchema(CamelSchema):
    confirmed_by: str = ""
    notes: Optional[str] = None
    items: List[BulkMovementConfirmItemSchema]


# ==============================
# OUTPUT SCHEMAS
# ==============================
class LocationMini(CamelSchema):
    id: int
    code: str
    name: str
    area: str
    location_type: LocationType


class BulkMovementItemOutSchema(CamelSchema):
    id: str
    product_id: int
    sku: Optional[str]
    product_details: str
    product_image: Optional[str]
    unit: Optional[str]
    quantity_sent: int
    quantity_received: Optional[int]
    created_at: datetime


class BulkMovementOutSchema(CamelSchema):
    id: str
    from_location_id: int
    to_location_id: int
    from_location: LocationMini
    to_location: LocationMini

    status: BulkMovementStatus
    token_expires_at: datetime
    is_expired: bool
    public_url: str

    created_by: Optional[str]
    updated_by: Optional[str]
    confirmed_by: Optional[str]
    confirmed_at: Optional[datetime]
    cancelled_at: Optional[datetime]

    sender_notes: Optional[str]
    recipient_notes: Optional[str]

    created_at: datetime
    updated_at: Optional[datetime]

    items: List[BulkMovementItemOutSchema]


class BulkMovementListData(CamelSchema):
    items: List[BulkMovementOutSchema]
    total: int
    page: int
    page_size: int
    total_pages: int


class ExpirySweepResult(CamelSchema):
    expired_count: int
