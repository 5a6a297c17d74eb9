from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from ...errors import NotFoundError
from ...extensions import get_session_factory
from ...logger import get_logger
from ...schemas.item import FoundItemSchema, LostItemSchema
from ..context import current_user_id, get_match_service, load_payload, require_user_id
from .registry import ItemRegistry

logger = get_logger(__name__)

bp = Blueprint("items", __name__, url_prefix="/items")

_lost_schema = LostItemSchema()
_found_schema = FoundItemSchema()


async def _dispatch_matching(kind: str, item_id: int) -> int | None:
    """Start the creation path for a committed item.

    Returns the number of matches created when run inline, or None when the
    work was queued (or could not be queued; a rescan recovers those items).
    """
    if current_app.config.get("MATCHING_MODE") == "celery":
        from ...tasks.jobs.matching import match_new_item

        try:
            match_new_item.delay(kind, item_id)
        except Exception:
            logger.exception("Could not queue matching for %s item %s", kind, item_id)
        return None
    created = await get_match_service().on_item_created(
        item_id,
        kind,
        timeout=current_app.config.get("MATCHING_TIMEOUT_SECONDS"),
    )
    return len(created)


@bp.post("/lost")
async def create_lost_item():
    """Report a lost item. The reporter becomes the owner."""
    uid = require_user_id()
    data = load_payload(LostItemSchema(), request.get_json(silent=True))
    async with get_session_factory()() as session:
        item = await ItemRegistry(session).add_lost_item(owner_id=uid, **data)
        await session.commit()

    matches_created = await _dispatch_matching("lost", item.id)
    return jsonify({"item": _lost_schema.dump(item), "matchesCreated": matches_created}), 201


@bp.post("/found")
async def create_found_item():
    """Report a found item. Anonymous reports are allowed (no finder on record)."""
    data = load_payload(FoundItemSchema(), request.get_json(silent=True))
    async with get_session_factory()() as session:
        item = await ItemRegistry(session).add_found_item(finder_id=current_user_id(), **data)
        await session.commit()

    matches_created = await _dispatch_matching("found", item.id)
    return jsonify({"item": _found_schema.dump(item), "matchesCreated": matches_created}), 201


@bp.get("/lost/<int:item_id>")
async def get_lost_item(item_id: int):
    async with get_session_factory()() as session:
        item = await ItemRegistry(session).get_lost_item(item_id)
    if item is None:
        raise NotFoundError("Lost item not found", {"lostItemId": item_id})
    return jsonify({"item": _lost_schema.dump(item)})


@bp.get("/found/<int:item_id>")
async def get_found_item(item_id: int):
    async with get_session_factory()() as session:
        item = await ItemRegistry(session).get_found_item(item_id)
    if item is None:
        raise NotFoundError("Found item not found", {"foundItemId": item_id})
    return jsonify({"item": _found_schema.dump(item)})
