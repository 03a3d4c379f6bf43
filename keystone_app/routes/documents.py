from flask import Blueprint, jsonify
from flask_login import login_required

from keystone_app import documents
from keystone_app.pipeline import load_transaction
from keystone_app.routes import agent_required, json_body, session_user
from keystone_app.schemas import DocumentPayload, DocumentUpdatePayload, parse_payload
from keystone_app.storage import get_storage

documents_bp = Blueprint("documents", __name__, url_prefix="/api/documents")


@documents_bp.route("", methods=["GET"])
@login_required
@agent_required
def list_agent_documents():
    return jsonify(documents.list_documents_for_agent(get_storage(), session_user().id))


@documents_bp.route("/<int:transaction_id>", methods=["GET"])
@login_required
def list_documents(transaction_id):
    storage = get_storage()
    load_transaction(storage, session_user(), transaction_id)
    docs = documents.list_documents(storage, transaction_id)
    return jsonify([doc.to_dict() for doc in docs])


@documents_bp.route("/<int:transaction_id>/board", methods=["GET"])
@login_required
def document_board(transaction_id):
    storage = get_storage()
    load_transaction(storage, session_user(), transaction_id)
    return jsonify(documents.document_board(documents.list_documents(storage, transaction_id)))


@documents_bp.route("/<int:transaction_id>/initialize", methods=["POST"])
@login_required
def initialize_documents(transaction_id):
    storage = get_storage()
    load_transaction(storage, session_user(), transaction_id, write=True)
    docs = documents.initialize_documents(storage, transaction_id)
    return jsonify([doc.to_dict() for doc in docs])


@documents_bp.route("/<int:transaction_id>", methods=["POST"])
@login_required
def add_document(transaction_id):
    storage = get_storage()
    load_transaction(storage, session_user(), transaction_id, write=True)
    payload = parse_payload(DocumentPayload, json_body())
    document = documents.add_document(
        storage,
        transaction_id,
        payload.name,
        status=payload.status,
        deadline=payload.deadline,
        deadline_time=payload.deadline_time,
        notes=payload.notes,
    )
    return jsonify(document.to_dict()), 201


@documents_bp.route("/<int:transaction_id>/<document_ref>", methods=["PATCH"])
@login_required
def update_document(transaction_id, document_ref):
    storage = get_storage()
    load_transaction(storage, session_user(), transaction_id, write=True)
    changes = parse_payload(DocumentUpdatePayload, json_body()).changes()
    if set(changes) == {"status"}:
        document = documents.set_status(storage, transaction_id, document_ref, changes["status"])
    else:
        document = documents.update_document(storage, transaction_id, document_ref, changes)
    return jsonify(document.to_dict())


@documents_bp.route("/<int:transaction_id>/<document_ref>", methods=["DELETE"])
@login_required
def delete_document(transaction_id, document_ref):
    storage = get_storage()
    load_transaction(storage, session_user(), transaction_id, write=True)
    documents.remove_document(storage, transaction_id, document_ref)
    return "", 204
