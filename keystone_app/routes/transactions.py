from flask import Blueprint, jsonify, request
from flask_login import login_required

from keystone_app import pipeline
from keystone_app.routes import agent_required, json_body, session_user
from keystone_app.schemas import (
    ClaimPayload,
    StatusPayload,
    TransactionPayload,
    TransactionUpdatePayload,
    parse_payload,
)
from keystone_app.storage import get_storage

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api")


@transactions_bp.route("/transactions", methods=["GET"])
@login_required
def list_transactions():
    transactions = pipeline.visible_transactions(get_storage(), session_user())
    return jsonify([t.to_dict() for t in transactions])


@transactions_bp.route("/transactions/board", methods=["GET"])
@login_required
def transaction_board():
    transactions = pipeline.visible_transactions(get_storage(), session_user())
    return jsonify({"columns": pipeline.board(transactions)})


@transactions_bp.route("/transactions/table", methods=["GET"])
@login_required
def transaction_table():
    storage = get_storage()
    user = session_user()
    transactions = pipeline.visible_transactions(storage, user)
    clients = storage.list_clients(user.id) if user.is_agent else []
    rows = pipeline.table_rows(
        transactions,
        clients,
        sort=request.args.get("sort"),
        order=(request.args.get("order") or "asc").lower(),
    )
    return jsonify(rows)


@transactions_bp.route("/transactions", methods=["POST"])
@login_required
@agent_required
def create_transaction():
    payload = parse_payload(TransactionPayload, json_body())
    transaction = pipeline.create_transaction(
        get_storage(), session_user(), payload.model_dump()
    )
    return jsonify(transaction.to_dict()), 201


@transactions_bp.route("/transactions/<int:transaction_id>", methods=["GET"])
@login_required
def get_transaction(transaction_id):
    transaction = pipeline.load_transaction(get_storage(), session_user(), transaction_id)
    return jsonify(transaction.to_dict())


@transactions_bp.route("/transactions/<int:transaction_id>", methods=["PATCH"])
@login_required
def update_transaction(transaction_id):
    changes = parse_payload(TransactionUpdatePayload, json_body()).changes()
    transaction = pipeline.update_transaction(
        get_storage(), session_user(), transaction_id, changes
    )
    return jsonify(transaction.to_dict())


@transactions_bp.route("/transactions/<int:transaction_id>/status", methods=["PATCH"])
@login_required
def update_transaction_status(transaction_id):
    payload = parse_payload(StatusPayload, json_body())
    transaction = pipeline.update_status(
        get_storage(), session_user(), transaction_id, payload.status
    )
    return jsonify(transaction.to_dict())


@transactions_bp.route("/transactions/<int:transaction_id>", methods=["DELETE"])
@login_required
def delete_transaction(transaction_id):
    pipeline.delete_transaction(get_storage(), session_user(), transaction_id)
    return "", 204


@transactions_bp.route("/claim-transaction", methods=["POST"])
@login_required
def claim_transaction():
    payload = parse_payload(ClaimPayload, json_body())
    transaction = pipeline.claim_transaction(get_storage(), session_user(), payload.access_code)
    return jsonify(transaction.to_dict())
