from enum import Enum


class ActivityCode(str, Enum):
    # ---------------- BULK MOVEMENTS ----------------
    CREATE_BULK_MOVEMENT = "CREATE_BULK_MOVEMENT"
    UPDATE_BULK_MOVEMENT = "UPDATE_BULK_MOVEMENT"
    CANCEL_BULK_MOVEMENT = "CANCEL_BULK_MOVEMENT"
    CONFIRM_BULK_MOVEMENT = "CONFIRM_BULK_MOVEMENT"

    # ---------------- INVENTORY ----------------
    INVENTORY_MOVEMENT = "INVENTORY_MOVEMENT"
