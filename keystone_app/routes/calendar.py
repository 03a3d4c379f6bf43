import hmac

from flask import Blueprint, Response, abort, current_app, jsonify, request
from flask_login import current_user, login_required

from keystone_app.calendar_feed import FEED_TYPES, build_ical, feed_headers, transaction_events
from keystone_app.errors import ForbiddenError
from keystone_app.pipeline import visible_transactions
from keystone_app.routes import session_user
from keystone_app.storage import get_storage

calendar_bp = Blueprint("calendar", __name__, url_prefix="/api/calendar")


@calendar_bp.route("/events", methods=["GET"])
@login_required
def list_events():
    transactions = visible_transactions(get_storage(), session_user())
    return jsonify(transaction_events(transactions))


@calendar_bp.route("/<int:user_id>/<feed_type>", methods=["GET"])
def calendar_feed(user_id, feed_type):
    """iCalendar feed for one user.

    Reachable by the user's own session, or with ``?key=<calendarToken>``
    so calendar apps can subscribe without a cookie.
    """
    if feed_type not in FEED_TYPES:
        abort(404)

    storage = get_storage()
    owner = storage.get_user(user_id)
    key = request.args.get("key")
    if current_user.is_authenticated and current_user.id == user_id:
        pass
    elif key:
        if owner is None or not owner.calendar_token or not hmac.compare_digest(
            key.encode("utf-8"), owner.calendar_token.encode("utf-8")
        ):
            raise ForbiddenError("Invalid calendar key")
    elif not current_user.is_authenticated:
        return current_app.login_manager.unauthorized()
    else:
        raise ForbiddenError("You can only read your own calendar")

    if owner is None or not owner.is_active:
        abort(404)

    events = transaction_events(visible_transactions(storage, owner))
    body = build_ical(
        events,
        calendar_name=current_app.config["CALENDAR_NAME"],
        host=request.host or "keystone",
    )
    response = Response(body, mimetype="text/calendar")
    response.headers.update(feed_headers(feed_type, user_id))
    return response
