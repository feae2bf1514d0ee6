# Recipient-facing view of a bulk movement. Carries the item snapshot only;
# no movement, product, location or user identifiers.

from datetime import datetime
from typing import Optional, List

from invenflow.models.enums.bulk_movement_status import BulkMovementStatus
from invenflow.schemas.inventory.bulk_movement_schemas import CamelSchema


class PublicLocationSchema(CamelSchema):
    name: str
    code: str
    area: str


class PublicBulkMovementItemSchema(CamelSchema):
    id: str
    sku: Optional[str]
    product_details: str
    product_image: Optional[str]
    unit: Optional[str]
    quantity_sent: int
    quantity_received: Optional[int]


class PublicBulkMovementSchema(CamelSchema):
    from_location: PublicLocationSchema
    to_location: PublicLocationSchema
    status: BulkMovementStatus
    items: List[PublicBulkMovementItemSchema]
    sender_notes: Optional[str]
    recipient_notes: Optional[str]
    created_at: datetime
    token_expires_at: datetime
    is_expired: bool
    confirmed_by: Optional[str]
    confirmed_at: Optional[datetime]
