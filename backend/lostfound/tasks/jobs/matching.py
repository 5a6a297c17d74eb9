from __future__ import annotations

import asyncio

from lostfound.config import get_config
from lostfound.extensions import create_session_factory
from lostfound.logger import configure_logging
from lostfound.modules.matches.service import MatchService
from lostfound.modules.notifications.emitter import DatabaseNotificationEmitter
from lostfound.tasks.celery_app import celery_app


def _build_service() -> MatchService:
    config = get_config()
    configure_logging(config.LOG_LEVEL)
    factory = create_session_factory(config.ASYNC_DATABASE_URI)
    return MatchService(factory, DatabaseNotificationEmitter(factory), window_days=config.MATCH_WINDOW_DAYS)


@celery_app.task(name="lostfound.match_new_item")
def match_new_item(kind: str, item_id: int) -> int:
    """Creation path for one freshly committed item. Returns matches created."""
    created = asyncio.run(_build_service().on_item_created(item_id, kind))
    return len(created)


@celery_app.task(name="lostfound.rescan_matches")
def rescan_matches(kind: str | None = None) -> int:
    return asyncio.run(_build_service().rescan(kind))
