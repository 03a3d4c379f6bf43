from flask import Blueprint, jsonify, request
from flask_login import login_required

from keystone_app import messaging
from keystone_app.errors import ValidationFailure
from keystone_app.pipeline import load_transaction
from keystone_app.routes import json_body, session_user
from keystone_app.schemas import MessagePayload, parse_payload
from keystone_app.storage import get_storage

messages_bp = Blueprint("messages", __name__, url_prefix="/api/messages")


def _thread(transaction_id):
    storage = get_storage()
    load_transaction(storage, session_user(), transaction_id)
    return jsonify([m.to_dict() for m in messaging.list_thread(storage, transaction_id)])


def _post_to_thread(transaction_id, content):
    storage = get_storage()
    user = session_user()
    load_transaction(storage, user, transaction_id)
    message = messaging.post_message(storage, user, transaction_id, content)
    return jsonify(message.to_dict()), 201


@messages_bp.route("", methods=["GET"])
@login_required
def list_messages():
    transaction_id = request.args.get("transactionId")
    if transaction_id:
        if not transaction_id.isdigit():
            raise ValidationFailure(
                "Validation failed",
                details=[{"field": "transactionId", "message": "Must be a number"}],
            )
        return _thread(int(transaction_id))
    inbox = messaging.inbox(get_storage(), session_user())
    return jsonify([m.to_dict() for m in inbox])


@messages_bp.route("/recipients", methods=["GET"])
@login_required
def list_recipients():
    users = messaging.list_recipients(get_storage(), session_user())
    return jsonify([u.to_dict() for u in users])


@messages_bp.route("/<int:transaction_id>", methods=["GET"])
@login_required
def transaction_thread(transaction_id):
    return _thread(transaction_id)


@messages_bp.route("", methods=["POST"])
@login_required
def send_message():
    payload = parse_payload(MessagePayload, json_body())
    if payload.transaction_id is not None:
        return _post_to_thread(payload.transaction_id, payload.content)
    message = messaging.send_private_message(
        get_storage(), session_user(), payload.recipient_id, payload.content
    )
    return jsonify(message.to_dict()), 201


@messages_bp.route("/<int:transaction_id>", methods=["POST"])
@login_required
def post_to_thread(transaction_id):
    body = json_body()
    if isinstance(body, dict):
        body = dict(body, transactionId=transaction_id)
        body.pop("recipientId", None)
    payload = parse_payload(MessagePayload, body)
    return _post_to_thread(transaction_id, payload.content)


@messages_bp.route("/<int:message_id>/read", methods=["PATCH"])
@login_required
def mark_read(message_id):
    message = messaging.mark_read(get_storage(), session_user(), message_id)
    return jsonify(message.to_dict())
