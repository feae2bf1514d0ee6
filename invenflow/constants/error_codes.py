from enum import Enum


class ErrorCode(str, Enum):
    # ---------------- GENERIC ----------------
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    NO_CHANGES_DETECTED = "NO_CHANGES_DETECTED"

    # ---------------- INVENTORY ----------------
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    CONCURRENT_INVENTORY_UPDATE = "CONCURRENT_INVENTORY_UPDATE"

    # ---------------- BULK MOVEMENTS ----------------
    BULK_MOVEMENT_NOT_FOUND = "BULK_MOVEMENT_NOT_FOUND"
    BULK_MOVEMENT_INVALID_LOCATION = "BULK_MOVEMENT_INVALID_LOCATION"
    BULK_MOVEMENT_INVALID_PRODUCT = "BULK_MOVEMENT_INVALID_PRODUCT"
    BULK_MOVEMENT_EMPTY_ITEMS = "BULK_MOVEMENT_EMPTY_ITEMS"
    BULK_MOVEMENT_INVALID_QUANTITY = "BULK_MOVEMENT_INVALID_QUANTITY"
    BULK_MOVEMENT_ITEM_MISMATCH = "BULK_MOVEMENT_ITEM_MISMATCH"
    BULK_MOVEMENT_CONFIRMER_REQUIRED = "BULK_MOVEMENT_CONFIRMER_REQUIRED"
    BULK_MOVEMENT_CONFIRMER_TOO_LONG = "BULK_MOVEMENT_CONFIRMER_TOO_LONG"
    BULK_MOVEMENT_ALREADY_CONFIRMED = "BULK_MOVEMENT_ALREADY_CONFIRMED"
    BULK_MOVEMENT_CANCELLED = "BULK_MOVEMENT_CANCELLED"
    BULK_MOVEMENT_EXPIRED = "BULK_MOVEMENT_EXPIRED"
    BULK_MOVEMENT_INVALID_STATUS = "BULK_MOVEMENT_INVALID_STATUS"
    BULK_MOVEMENT_TOKEN_COLLISION = "BULK_MOVEMENT_TOKEN_COLLISION"
