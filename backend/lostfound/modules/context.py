from flask import current_app, g
from marshmallow import ValidationError as SchemaValidationError

from ..errors import AuthenticationRequired, ValidationError
from ..extensions import get_session_factory
from .matches.service import MatchService
from .notifications.emitter import DatabaseNotificationEmitter


def current_user_id() -> int | None:
    uid = getattr(g, "current_user_id", None)
    return int(uid) if uid is not None else None


def require_user_id() -> int:
    uid = current_user_id()
    if uid is None:
        raise AuthenticationRequired()
    return uid


def load_payload(schema, data: dict | None) -> dict:
    try:
        return schema.load(data or {})
    except SchemaValidationError as err:
        raise ValidationError("Invalid request payload", {"fields": err.messages}) from err


def get_match_service() -> MatchService:
    factory = get_session_factory()
    return MatchService(
        factory,
        DatabaseNotificationEmitter(factory),
        window_days=int(current_app.config.get("MATCH_WINDOW_DAYS", 7)),
    )
