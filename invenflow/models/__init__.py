# Inventory
from invenflow.models.inventory.inventory_location_models import InventoryLocation
from invenflow.models.inventory.inventory_balance_models import InventoryBalance
from invenflow.models.inventory.movement_log_models import MovementLog
from invenflow.models.inventory.bulk_movement_models import BulkMovement, BulkMovementItem

# Masters
from invenflow.models.masters.product_models import Product

# Users and audit
from invenflow.models.users.user_models import User
from invenflow.models.support.activity_models import UserActivity
