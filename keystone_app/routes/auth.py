from flask import Blueprint, current_app, jsonify
from flask_login import login_required
from flask_wtf.csrf import generate_csrf

from keystone_app.auth import authenticate, end_session, register_user, start_session
from keystone_app.routes import json_body, session_user
from keystone_app.schemas import LoginPayload, RegisterPayload, parse_payload
from keystone_app.storage import get_storage

auth_bp = Blueprint("auth", __name__, url_prefix="/api")


@auth_bp.route("/register", methods=["POST"])
def register():
    storage = get_storage()
    payload = parse_payload(RegisterPayload, json_body())
    user = register_user(storage, payload)
    user = start_session(storage, user)
    current_app.logger.info("Registered %s user %s", user.role, user.id)
    return jsonify(user.to_dict(include_private=True)), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    storage = get_storage()
    payload = parse_payload(LoginPayload, json_body())
    user = authenticate(storage, payload.email, payload.password)
    if user is None:
        return jsonify({"error": "Invalid email or password"}), 401
    if not user.is_active:
        return jsonify({"error": "Your account is deactivated"}), 403
    user = start_session(storage, user)
    return jsonify(user.to_dict(include_private=True))


@auth_bp.route("/logout", methods=["POST"])
def logout():
    end_session(get_storage())
    return jsonify({"message": "Logged out"})


@auth_bp.route("/user", methods=["GET"])
@login_required
def current_account():
    return jsonify(session_user().to_dict(include_private=True))


@auth_bp.route("/csrf-token", methods=["GET"])
def csrf_token():
    return jsonify({"csrfToken": generate_csrf()})
