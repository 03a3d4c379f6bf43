from flask import Blueprint, jsonify
from flask_login import login_required

from keystone_app import contacts
from keystone_app.errors import ValidationFailure
from keystone_app.pipeline import load_transaction
from keystone_app.routes import json_body, session_user
from keystone_app.schemas import (
    ContactCandidate,
    ContactPayload,
    ContactUpdatePayload,
    parse_payload,
)
from keystone_app.storage import get_storage

contacts_bp = Blueprint("contacts", __name__, url_prefix="/api/contacts")


def _create(transaction_id, payload):
    storage = get_storage()
    load_transaction(storage, session_user(), transaction_id, write=True)
    contact = contacts.create_contact(
        storage,
        transaction_id,
        payload.model_dump(),
        resolution=payload.resolution,
        client_id=payload.client_id,
    )
    return jsonify(contact.to_dict()), 201


@contacts_bp.route("", methods=["GET"])
@login_required
def list_all_contacts():
    return jsonify(contacts.list_contacts_for_user(get_storage(), session_user()))


@contacts_bp.route("", methods=["POST"])
@login_required
def create_contact_from_body():
    payload = parse_payload(ContactPayload, json_body())
    if payload.transaction_id is None:
        raise ValidationFailure(
            "Validation failed",
            details=[{"field": "transactionId", "message": "Field required"}],
        )
    return _create(payload.transaction_id, payload)


@contacts_bp.route("/<int:transaction_id>", methods=["GET"])
@login_required
def list_contacts(transaction_id):
    storage = get_storage()
    load_transaction(storage, session_user(), transaction_id)
    return jsonify([c.to_dict() for c in contacts.list_contacts(storage, transaction_id)])


@contacts_bp.route("/<int:transaction_id>", methods=["POST"])
@login_required
def create_contact(transaction_id):
    return _create(transaction_id, parse_payload(ContactPayload, json_body()))


@contacts_bp.route("/<int:transaction_id>/check", methods=["POST"])
@login_required
def check_duplicate(transaction_id):
    storage = get_storage()
    load_transaction(storage, session_user(), transaction_id, write=True)
    candidate = parse_payload(ContactCandidate, json_body())
    duplicate = contacts.propose_contact(storage, transaction_id, candidate.model_dump())
    return jsonify({"duplicate": duplicate.to_dict() if duplicate else None})


@contacts_bp.route("/<int:transaction_id>/<int:contact_id>", methods=["PATCH"])
@login_required
def update_contact(transaction_id, contact_id):
    storage = get_storage()
    load_transaction(storage, session_user(), transaction_id, write=True)
    changes = parse_payload(ContactUpdatePayload, json_body()).changes()
    contact = contacts.update_contact(storage, transaction_id, contact_id, changes)
    return jsonify(contact.to_dict())


@contacts_bp.route("/<int:transaction_id>/<int:contact_id>", methods=["DELETE"])
@login_required
def delete_contact(transaction_id, contact_id):
    storage = get_storage()
    load_transaction(storage, session_user(), transaction_id, write=True)
    contacts.delete_contact(storage, transaction_id, contact_id)
    return "", 204
