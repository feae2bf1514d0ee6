import enum


class BulkMovementStatus(str, enum.Enum):
    pending = "pending"

    # terminal
    confirmed = "confirmed"
    expired = "expired"
    cancelled = "cancelled"
