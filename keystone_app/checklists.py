import math

from flask import current_app

from keystone_app.errors import ChecklistConflict, NotFoundError, ValidationFailure
from keystone_app.templates import checklist_template_for, hint_for


def progress_percent(done, total):
    if not total:
        return 0
    # halves round up
    return int(math.floor(100 * done / total + 0.5))


def checklist_progress(checklist):
    items = checklist.items or []
    return progress_percent(sum(1 for item in items if item.get("completed")), len(items))


def serialize_checklist(checklist):
    data = checklist.to_dict()
    for item in data["items"]:
        item["hint"] = hint_for(item.get("id"))
    data["progress"] = checklist_progress(checklist)
    return data


def _require_transaction(storage, transaction_id):
    transaction = storage.get_transaction(transaction_id)
    if transaction is None:
        raise NotFoundError("Transaction not found")
    return transaction


def get_checklist(storage, transaction_id):
    """Return the checklist for a transaction, seeding it from the template once.

    The role is the transaction's type. When two callers race to create the
    first checklist, the loser re-reads the one that won.
    """
    transaction = _require_transaction(storage, transaction_id)
    role = transaction.type or "buy"
    checklist = storage.get_checklist(transaction.id, role)
    if checklist is not None:
        return checklist

    try:
        checklist = storage.create_checklist(
            transaction.id, role, checklist_template_for(role)
        )
    except ChecklistConflict:
        checklist = storage.get_checklist(transaction.id, role)
        if checklist is None:
            raise
        return checklist

    current_app.logger.info(
        "Seeded %s checklist for transaction %s (%s items)",
        role,
        transaction.id,
        len(checklist.items),
    )
    return checklist


def update_items(storage, transaction_id, changes):
    """Apply ``{item_id: completed}`` toggles and return the saved checklist."""
    checklist = get_checklist(storage, transaction_id)
    known = {item["id"] for item in checklist.items}
    missing = [item_id for item_id in changes if item_id not in known]
    if missing:
        raise NotFoundError(f"Checklist item not found: {', '.join(missing)}")

    items = []
    for item in checklist.items:
        item = dict(item)
        if item["id"] in changes:
            item["completed"] = bool(changes[item["id"]])
        items.append(item)
    return storage.save_checklist_items(checklist.id, items)


def update_item(storage, transaction_id, item_id, completed):
    if not isinstance(completed, bool):
        raise ValidationFailure(
            "Validation failed",
            details=[{"field": "completed", "message": "Must be true or false"}],
        )
    return update_items(storage, transaction_id, {item_id: completed})
