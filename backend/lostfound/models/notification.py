from sqlalchemy import Index

from ..extensions import db
from .enums import id_type, notification_type_enum
from .timestamps import utcnow


class Notification(db.Model):
    __tablename__ = "notifications"

    id = db.Column(id_type, primary_key=True)
    user_id = db.Column(id_type, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = db.Column(notification_type_enum, nullable=False)
    title = db.Column(db.String(200))
    message = db.Column(db.Text, nullable=False)
    # Deep-link references: matchId, lostItemId, foundItemId
    payload = db.Column(db.JSON)
    read_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_notifications_user_read", "user_id", "read_at", "created_at"),
    )

    @property
    def is_read(self) -> bool:
        return self.read_at is not None
