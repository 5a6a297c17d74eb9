from flask import Blueprint, Flask, g, jsonify, request, current_app

from ...errors import LostFoundError
from ...logger import get_logger
from ...modules.items.routes import bp as items_bp
from ...modules.matches.routes import bp as matches_bp
from ...modules.notifications.routes import bp as notifications_bp

logger = get_logger(__name__)


def _handle_lostfound_error(err: LostFoundError):
    if err.status_code >= 500:
        logger.error("%s: %s %s", type(err).__name__, err.message, err.details)
    return jsonify(err.to_dict()), err.status_code


def register_api(app: Flask) -> None:
    api_v1 = Blueprint("api_v1", __name__, url_prefix="/api/v1")

    # Auth context loader. A signed bearer token always works; in development
    # (DEBUG=True) an `X-User-Id` header is accepted too for local testing.
    # The matching core trusts whatever identity ends up in g.current_user_id.
    @api_v1.before_request  # type: ignore
    def _load_current_user():
        from ...extensions import db
        from ...models.user import User  # local import to avoid circulars
        from ...security import verify_token
        uid: int | None = None
        debug_mode = bool(current_app.config.get("DEBUG"))

        auth = request.headers.get("Authorization") or ""
        if auth.lower().startswith("bearer "):
            uid = verify_token(
                auth[7:].strip(),
                secret_key=current_app.config.get("SECRET_KEY"),
                max_age=current_app.config.get("AUTH_TOKEN_MAX_AGE"),
            )
        elif debug_mode:
            raw = request.headers.get("X-User-Id") or ""
            try:
                cand = int(raw) if raw else 0
            except ValueError:
                cand = 0
            uid = cand if cand > 0 else None
        user_obj = db.session.get(User, uid) if uid is not None else None
        g.current_user = user_obj  # type: ignore[attr-defined]
        g.current_user_id = user_obj.id if user_obj is not None else None  # type: ignore[attr-defined]

    # Mount feature blueprints
    api_v1.register_blueprint(items_bp)
    api_v1.register_blueprint(matches_bp)
    api_v1.register_blueprint(notifications_bp)

    app.register_blueprint(api_v1)
    app.register_error_handler(LostFoundError, _handle_lostfound_error)
