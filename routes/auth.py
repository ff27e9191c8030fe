"""
Authentication routes.

Handles:
- /login - Sign in against the bookstore API
- /logout - Drop the session's providers and tokens
- /me - Current user (and delivery status for delivery managers)
"""

from flask import Blueprint, current_app, g, session

from core.error_messages import describe_network_error
from core.exceptions import ApiRequestError, NetworkError, ResponseParseError
from logging_config import get_logger
from .helpers import SESSION_KEY, login_required, request_data, respond, sanitize_text


# Module logger
logger = get_logger(__name__)

auth_bp = Blueprint("auth", __name__)

MAX_EMAIL_LENGTH = 254


@auth_bp.route("/login", methods=["POST"])
def login():
    """
    Sign in.

    Body: {"email": ..., "password": ...}
    """
    data = request_data()
    email = sanitize_text(data.get("email"), max_length=MAX_EMAIL_LENGTH)
    password = data.get("password") or ""

    if not email or not password:
        return respond(False, "Email and password are required.")

    registry = current_app.config.get("PROVIDER_REGISTRY")
    if registry is None:
        return respond(False, "Service unavailable. Please try again later.", status=503)

    # Replace any session this browser already had
    registry.discard(session.pop(SESSION_KEY, None))

    try:
        key, providers = registry.login(email, password)
    except NetworkError as e:
        logger.warning(f"Login failed for {email}: {e}")
        return respond(False, describe_network_error(e), status=502)
    except ResponseParseError as e:
        logger.warning(f"Login failed for {email}: {e}")
        return respond(False, e.message, status=502)
    except ApiRequestError as e:
        logger.info(f"Login rejected for {email}: {e.status_code}")
        status = 401 if e.status_code in (400, 401, 403) else e.status_code
        return respond(False, e.server_message or "Login failed", status=status)

    session.permanent = True
    session[SESSION_KEY] = key

    if providers.is_delivery_manager:
        providers.delivery_status.load_current_status()

    logger.info(f"User {email} signed in ({providers.user_type or 'unknown type'})")
    return respond(True, "Signed in successfully", user=providers.public_user())


@auth_bp.route("/logout", methods=["POST"])
def logout():
    registry = current_app.config.get("PROVIDER_REGISTRY")
    key = session.pop(SESSION_KEY, None)
    if registry is not None:
        registry.discard(key)
    return respond(True, "Signed out")


@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    providers = g.providers
    body = {"success": True, "user": providers.public_user()}
    if providers.is_delivery_manager:
        body["delivery_status"] = providers.delivery_status.snapshot.to_dict()
    return body
