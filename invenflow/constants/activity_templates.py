from invenflow.constants.activity_codes import ActivityCode


ACTIVITY_TEMPLATES = {
    # ---------------- BULK MOVEMENTS ----------------
    ActivityCode.CREATE_BULK_MOVEMENT:
        "{actor_role} ({actor_email}) created bulk movement {target_name} "
        "with {item_count} item(s) from {from_location} to {to_location}",

    ActivityCode.UPDATE_BULK_MOVEMENT:
        "{actor_role} ({actor_email}) updated bulk movement {target_name}: {changes}",

    ActivityCode.CANCEL_BULK_MOVEMENT:
        "{actor_role} ({actor_email}) cancelled bulk movement {target_name}",

    ActivityCode.CONFIRM_BULK_MOVEMENT:
        "{actor_role} ({actor_email}) confirmed receipt of bulk movement {target_name}: "
        "{quantity_received} of {quantity_sent} unit(s) received",

    # ---------------- INVENTORY ----------------
    ActivityCode.INVENTORY_MOVEMENT:
        "{actor_role} ({actor_email}) moved {quantity} unit(s) of product {product_id} "
        "from location {from_location_id} to location {to_location_id} "
        "(ref: {reference_type}:{reference_id})",
}
