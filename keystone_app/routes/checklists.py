from flask import Blueprint, jsonify
from flask_login import login_required

from keystone_app.checklists import get_checklist, serialize_checklist, update_item, update_items
from keystone_app.pipeline import load_transaction
from keystone_app.routes import json_body, session_user
from keystone_app.schemas import ChecklistBulkPayload, ChecklistItemPayload, parse_payload
from keystone_app.storage import get_storage

checklists_bp = Blueprint("checklists", __name__, url_prefix="/api/checklists")


@checklists_bp.route("/<int:transaction_id>", methods=["GET"])
@login_required
def read_checklist(transaction_id):
    storage = get_storage()
    load_transaction(storage, session_user(), transaction_id)
    return jsonify(serialize_checklist(get_checklist(storage, transaction_id)))


@checklists_bp.route("/<int:transaction_id>", methods=["PATCH"])
@login_required
def update_checklist(transaction_id):
    storage = get_storage()
    load_transaction(storage, session_user(), transaction_id, write=True)
    payload = parse_payload(ChecklistBulkPayload, json_body())
    changes = {change.id: change.completed for change in payload.items}
    return jsonify(serialize_checklist(update_items(storage, transaction_id, changes)))


@checklists_bp.route("/<int:transaction_id>/<item_id>", methods=["PATCH"])
@login_required
def toggle_item(transaction_id, item_id):
    storage = get_storage()
    load_transaction(storage, session_user(), transaction_id, write=True)
    payload = parse_payload(ChecklistItemPayload, json_body())
    checklist = update_item(storage, transaction_id, item_id, payload.completed)
    return jsonify(serialize_checklist(checklist))
