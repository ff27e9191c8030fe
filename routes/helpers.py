"""
Shared helpers for route handlers.

- current_providers / login_required: look up the signed-in user's ProviderSet
- delivery_manager_required: restrict a view to delivery managers
- sanitize_text: bleach-based cleanup of free-text input
- request_data: JSON body or form fields, whichever was sent
- respond: flash the outcome and build the JSON body
- drain_messages: move pending flashes out of the session into the body
"""

from __future__ import annotations

from functools import wraps
from typing import Any, Dict, List, Optional

import bleach
from flask import current_app, flash, g, get_flashed_messages, request, session

from logging_config import get_logger
from services.session_registry import ProviderSet


# Module logger
logger = get_logger(__name__)

SESSION_KEY = "provider_key"

AUTH_REQUIRED_MESSAGE = "Authentication required. Please log in first."

DELIVERY_MANAGER_ONLY_MESSAGE = "Only delivery managers can manage deliveries."


def sanitize_text(text: Any, max_length: Optional[int] = None) -> str:
    """Sanitize user input text."""
    if text is None:
        return ""
    text = str(text).strip()
    if not text:
        return ""
    text = bleach.clean(text, tags=[], strip=True)
    if max_length and len(text) > max_length:
        text = text[:max_length]
    return text


def request_data() -> Dict[str, Any]:
    """Request body as a dict (JSON preferred, form fields otherwise)."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def current_providers() -> Optional[ProviderSet]:
    registry = current_app.config.get("PROVIDER_REGISTRY")
    if registry is None:
        logger.error("Provider registry not configured")
        return None
    return registry.get(session.get(SESSION_KEY))


def login_required(view):
    """Reject the request with 401 unless a provider set is registered for it."""

    @wraps(view)
    def wrapped(*args, **kwargs):
        providers = current_providers()
        if providers is None:
            session.pop(SESSION_KEY, None)
            return {"success": False, "error": AUTH_REQUIRED_MESSAGE}, 401
        g.providers = providers
        return view(*args, **kwargs)

    return wrapped


def delivery_manager_required(view):
    """Reject with 403 unless the signed-in user is a delivery manager (use under login_required)."""

    @wraps(view)
    def wrapped(*args, **kwargs):
        if not g.providers.is_delivery_manager:
            logger.warning(f"{g.providers.user_type or 'unknown'} user denied {request.path}")
            return respond(False, DELIVERY_MANAGER_ONLY_MESSAGE, status=403)
        return view(*args, **kwargs)

    return wrapped


def respond(success: bool, message: str, status: Optional[int] = None, **data: Any):
    """
    Flash ``message`` and return a JSON body with it.

    Args:
        success: Outcome; picks the flash category and the default status
        message: User-facing text
        status: HTTP status (200 on success, 400 otherwise by default)
        **data: Extra keys for the body
    """
    if message:
        flash(message, "success" if success else "error")
    body: Dict[str, Any] = {"success": success}
    body["message" if success else "error"] = message
    body.update(data)
    body["messages"] = drain_messages()
    return body, status or (200 if success else 400)


def drain_messages() -> List[Dict[str, str]]:
    """
    Pop every pending flash from the session.

    JSON responses carry the flashes; nothing else reads them.
    """
    return [
        {"category": category, "message": message}
        for category, message in get_flashed_messages(with_categories=True)
    ]


def query_int(name: str, default: Optional[int] = None, minimum: Optional[int] = None) -> Optional[int]:
    """Integer query argument; invalid values fall back to default."""
    raw = request.args.get(name)
    if raw in (None, ""):
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.debug(f"Ignoring invalid {name} query value: {raw!r}")
        return default
    if minimum is not None and value < minimum:
        return default
    return value
