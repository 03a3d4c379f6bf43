from functools import wraps

from flask import request
from flask_login import current_user

from keystone_app.errors import ForbiddenError


def json_body():
    return request.get_json(silent=True)


def session_user():
    """The logged-in ``UserRecord`` behind the ``current_user`` proxy."""
    return current_user._get_current_object()


def agent_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        if not session_user().is_agent:
            raise ForbiddenError("Only agents can do this")
        return view(*args, **kwargs)

    return wrapped


def register_blueprints(app):
    from keystone_app.routes.auth import auth_bp
    from keystone_app.routes.calculators import calculators_bp
    from keystone_app.routes.calendar import calendar_bp
    from keystone_app.routes.checklists import checklists_bp
    from keystone_app.routes.clients import clients_bp
    from keystone_app.routes.contacts import contacts_bp
    from keystone_app.routes.documents import documents_bp
    from keystone_app.routes.messages import messages_bp
    from keystone_app.routes.transactions import transactions_bp

    for blueprint in (
        auth_bp,
        clients_bp,
        transactions_bp,
        checklists_bp,
        documents_bp,
        contacts_bp,
        messages_bp,
        calendar_bp,
        calculators_bp,
    ):
        app.register_blueprint(blueprint)
