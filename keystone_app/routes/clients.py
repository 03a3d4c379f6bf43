from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

from keystone_app.client_import import extract_tabular_upload, import_clients, parse_csv_text
from keystone_app.errors import NotFoundError
from keystone_app.routes import agent_required, json_body, session_user
from keystone_app.schemas import (
    ClientImportPayload,
    ClientPayload,
    ClientUpdatePayload,
    parse_payload,
)
from keystone_app.storage import get_storage

clients_bp = Blueprint("clients", __name__, url_prefix="/api/clients")

TRUTHY = {"1", "true", "yes", "y", "on"}


def _own_client(storage, client_id):
    client = storage.get_client(client_id)
    if client is None or client.agent_id != session_user().id:
        raise NotFoundError("Client not found")
    return client


@clients_bp.route("", methods=["GET"])
@login_required
@agent_required
def list_clients():
    clients = get_storage().list_clients(session_user().id)
    return jsonify([client.to_dict() for client in clients])


@clients_bp.route("", methods=["POST"])
@login_required
@agent_required
def create_client():
    payload = parse_payload(ClientPayload, json_body())
    client = get_storage().create_client(dict(payload.model_dump(), agent_id=session_user().id))
    return jsonify(client.to_dict()), 201


@clients_bp.route("/<int:client_id>", methods=["GET"])
@login_required
@agent_required
def get_client(client_id):
    return jsonify(_own_client(get_storage(), client_id).to_dict())


@clients_bp.route("/<int:client_id>", methods=["PATCH"])
@login_required
@agent_required
def update_client(client_id):
    storage = get_storage()
    client = _own_client(storage, client_id)
    changes = parse_payload(ClientUpdatePayload, json_body()).changes()
    if changes:
        client = storage.update_client(client.id, changes)
    return jsonify(client.to_dict())


@clients_bp.route("/<int:client_id>", methods=["DELETE"])
@login_required
@agent_required
def delete_client(client_id):
    storage = get_storage()
    client = _own_client(storage, client_id)
    storage.delete_client(client.id)
    current_app.logger.info("Client %s deleted by agent %s", client.id, client.agent_id)
    return "", 204


@clients_bp.route("/import", methods=["POST"])
@login_required
@agent_required
def import_client_rows():
    upload = request.files.get("file")
    if upload is not None and upload.filename:
        skip_invalid = str(request.form.get("skipInvalid", "")).strip().lower() in TRUTHY
        header, rows = extract_tabular_upload(upload)
    else:
        payload = parse_payload(ClientImportPayload, json_body())
        skip_invalid = payload.skip_invalid
        header, rows = parse_csv_text(payload.csv_data)

    outcome = import_clients(
        get_storage(), session_user().id, header, rows, skip_invalid=skip_invalid
    )
    body = {
        "message": f"Imported {len(outcome.created)} clients",
        "clients": [client.to_dict() for client in outcome.created],
        "processedRows": outcome.processed_rows,
    }
    if outcome.row_errors:
        body["details"] = outcome.row_errors
    return jsonify(body), 201
