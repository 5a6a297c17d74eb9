from __future__ import annotations

from flask import Blueprint, jsonify, request

from ...extensions import get_session_factory
from ...models.match import Match
from ...schemas.item import FoundItemSchema, LostItemSchema
from ...schemas.match import MatchSchema, RejectMatchSchema, VerifyMatchSchema
from ..context import get_match_service, load_payload, require_user_id
from ..items.registry import ItemRegistry

bp = Blueprint("matches", __name__, url_prefix="/matches")

_match_schema = MatchSchema()
_lost_schema = LostItemSchema()
_found_schema = FoundItemSchema()


async def _items_by_id(matches: list[Match]) -> tuple[dict, dict]:
    async with get_session_factory()() as session:
        registry = ItemRegistry(session)
        lost = await registry.lost_items_by_id(m.lost_item_id for m in matches)
        found = await registry.found_items_by_id(m.found_item_id for m in matches)
    return lost, found


def _match_to_dict(m: Match, lost: dict | None = None, found: dict | None = None, user_id: int | None = None) -> dict:
    base = _match_schema.dump(m)
    if lost is not None:
        it = lost.get(m.lost_item_id)
        base["lostItem"] = _lost_schema.dump(it) if it else None
    if found is not None:
        it = found.get(m.found_item_id)
        base["foundItem"] = _found_schema.dump(it) if it else None
    if user_id is not None:
        is_owner = m.loser_id == user_id
        base["role"] = "owner" if is_owner else "finder"
        # The other party; None for an owner whose found item was reported anonymously
        base["otherUserId"] = m.finder_id if is_owner else m.loser_id
    return base


@bp.get("/me")
async def my_matches():
    """Matches where the current user is the loser (owner) or the finder."""
    uid = require_user_id()
    matches = await get_match_service().list_for_user(uid)
    lost, found = await _items_by_id(matches)
    return jsonify({"matches": [_match_to_dict(m, lost, found, uid) for m in matches]})


@bp.get("/lost/<int:lost_id>")
async def matches_for_lost_item(lost_id: int):
    uid = require_user_id()
    matches = await get_match_service().list_for_lost_item(lost_id, uid)
    _, found = await _items_by_id(matches)
    return jsonify({"matches": [_match_to_dict(m, found=found) for m in matches]})


@bp.post("/<int:match_id>/verify")
async def verify_match(match_id: int):
    uid = require_user_id()
    data = load_payload(VerifyMatchSchema(), request.get_json(silent=True))
    result = await get_match_service().verify(match_id, data.get("secret_identifier"), uid)
    body = {"verified": result.accepted, "message": result.message, "match": _match_to_dict(result.match)}
    # A wrong secret is a handled business outcome: the match is now rejected.
    return jsonify(body), (200 if result.accepted else 422)


@bp.post("/<int:match_id>/reject")
async def reject_match(match_id: int):
    uid = require_user_id()
    data = load_payload(RejectMatchSchema(), request.get_json(silent=True))
    match = await get_match_service().reject(match_id, uid, data.get("reason"))
    return jsonify({"message": "Match rejected", "match": _match_to_dict(match)})
