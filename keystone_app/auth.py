import uuid

from flask import jsonify, session
from flask_login import current_user, login_user, logout_user
from werkzeug.security import check_password_hash, generate_password_hash

from keystone_app.errors import ValidationFailure
from keystone_app.storage import get_storage


def issue_session_token():
    return str(uuid.uuid4())


def issue_calendar_token():
    return uuid.uuid4().hex


def register_user(storage, payload):
    if storage.get_user_by_email(payload.email) is not None:
        raise ValidationFailure(
            "Validation failed",
            details=[{"field": "email", "message": "Email is already registered"}],
        )
    return storage.create_user(
        {
            "email": payload.email,
            "password": generate_password_hash(payload.password),
            "first_name": payload.first_name,
            "last_name": payload.last_name,
            "role": payload.role,
            "agent_id": payload.agent_id,
            "session_token": issue_session_token(),
            "calendar_token": issue_calendar_token(),
            "active": True,
        }
    )


def authenticate(storage, email, password):
    user = storage.get_user_by_email(email)
    if user is None or not check_password_hash(user.password, password or ""):
        return None
    return user


def start_session(storage, user):
    """Rotate the user's session token and bind it to this browser session."""
    user = storage.update_user(user.id, {"session_token": issue_session_token()})
    login_user(user)
    session["session_token"] = user.session_token
    session.permanent = True
    return user


def end_session(storage):
    if current_user.is_authenticated:
        # Rotating the token invalidates every cookie issued before now.
        storage.update_user(current_user.id, {"session_token": issue_session_token()})
    logout_user()
    session.pop("session_token", None)


def init_auth(app, login_manager):
    @login_manager.user_loader
    def load_user(user_id):
        try:
            user = get_storage().get_user(int(user_id))
        except (TypeError, ValueError):
            return None
        if user and not user.is_active:
            return None
        return user

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"error": "Authentication required"}), 401

    @app.before_request
    def enforce_user_session():
        if not current_user.is_authenticated:
            return

        if not current_user.is_active:
            session.pop("session_token", None)
            logout_user()
            return

        token = session.get("session_token")
        if token and token == current_user.session_token:
            return

        app.logger.info("Discarding stale session for user %s", current_user.id)
        session.pop("session_token", None)
        logout_user()
