from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ...errors import DependencyError
from ...logger import get_logger
from ...models.notification import Notification
from ...schemas.notification import NotificationSchema
from . import bus

logger = get_logger(__name__)


class NotificationEmitter(Protocol):
    async def notify(
        self,
        user_id: int,
        event: str,
        title: str,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Deliver one user-facing event. Failures surface only as DependencyError."""


class DatabaseNotificationEmitter:
    """Persist in-app notifications, then push them to live SSE streams."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        publish: Callable[[int, dict], Any] = bus.publish,
    ) -> None:
        self.session_factory = session_factory
        self._publish = publish

    async def notify(self, user_id, event, title, message, metadata=None) -> None:
        try:
            async with self.session_factory() as session:
                n = Notification(
                    user_id=user_id,
                    type=event,
                    title=title,
                    message=message,
                    payload=dict(metadata or {}),
                    read_at=None,
                )
                session.add(n)
                await session.commit()
            self._publish(user_id, {"type": "notification", "notification": NotificationSchema().dump(n)})
        except Exception as exc:
            raise DependencyError(
                "Notification delivery failed",
                {"userId": user_id, "type": event, "reason": str(exc)},
            ) from exc


class NullNotificationEmitter:
    async def notify(self, user_id, event, title, message, metadata=None) -> None:
        logger.debug("Notification %s for user %s dropped (null emitter)", event, user_id)

