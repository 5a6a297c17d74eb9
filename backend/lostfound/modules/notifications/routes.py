from __future__ import annotations

from flask import Blueprint, jsonify, request, Response, stream_with_context
import json
import time
from queue import Empty

from sqlalchemy import select, update

from ...errors import NotFoundError
from ...extensions import get_session_factory
from ...models.notification import Notification
from ...models.timestamps import utcnow
from ...schemas.notification import NotificationSchema
from ..context import require_user_id
from .bus import subscribe, unsubscribe

bp = Blueprint("notifications", __name__, url_prefix="/notifications")

_schema = NotificationSchema()


@bp.get("")
async def list_notifications():
    """Current user's notifications: unread first, then newest first."""
    uid = require_user_id()
    try:
        limit = int(request.args.get("limit", 50))
    except (TypeError, ValueError):
        limit = 50
    stmt = (
        select(Notification)
        .where(Notification.user_id == uid)
        .order_by(Notification.read_at.isnot(None), Notification.created_at.desc(), Notification.id.desc())
        .limit(max(1, min(200, limit)))
    )
    async with get_session_factory()() as session:
        rows = (await session.execute(stmt)).scalars().all()
    return jsonify({"notifications": _schema.dump(rows, many=True)})


@bp.patch("/<int:notif_id>/read")
async def mark_read(notif_id: int):
    uid = require_user_id()
    async with get_session_factory()() as session:
        n = await session.get(Notification, notif_id)
        # Other users' notifications are reported as missing
        if n is None or n.user_id != uid:
            raise NotFoundError("Notification not found")
        if n.read_at is None:
            n.read_at = utcnow()
            await session.commit()
    return jsonify({"notification": _schema.dump(n)})


@bp.patch("/read-all")
async def mark_all_read():
    uid = require_user_id()
    async with get_session_factory()() as session:
        result = await session.execute(
            update(Notification)
            .where(Notification.user_id == uid, Notification.read_at.is_(None))
            .values(read_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await session.commit()
    return jsonify({"ok": True, "updated": result.rowcount})


@bp.get("/stream")
def stream_notifications():
    """Server-Sent Events stream of the current user's new notifications."""
    uid = require_user_id()
    q = subscribe(uid)

    def event_stream():
        try:
            # Initial comment to establish stream
            yield ": connected\n\n"
            while True:
                try:
                    # Keep below gunicorn's timeout to ensure periodic yields
                    evt = q.get(timeout=15)
                except Empty:
                    # Keep-alive
                    yield "event: ping\n" + f"data: {json.dumps({'ts': int(time.time())})}\n\n"
                    continue
                yield "event: notification\n" + f"data: {json.dumps(evt)}\n\n"
        finally:
            unsubscribe(uid, q)

    headers = {
        "Content-Type": "text/event-stream",
        "Cache-Control": "no-cache",
        "Connection": "keep-alive",
        "X-Accel-Buffering": "no",
    }
    return Response(stream_with_context(event_stream()), headers=headers)
