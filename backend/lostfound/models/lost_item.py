from sqlalchemy import Index

from ..extensions import db
from .enums import id_type, lost_status_enum
from .timestamps import utcnow


class LostItem(db.Model):
    __tablename__ = "lost_items"

    id = db.Column(id_type, primary_key=True)
    owner_id = db.Column(id_type, db.ForeignKey("users.id"), nullable=False)
    item_name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    category = db.Column(db.String(80), nullable=False)
    # Private mark known only to the owner; compared during verification, never serialized.
    secret_identifier = db.Column(db.String(255), nullable=False)
    lost_date = db.Column(db.Date)
    location = db.Column(db.String(200))
    status = db.Column(lost_status_enum, nullable=False, default="lost")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_lost_items_category_date", "category", "lost_date"),
        Index("idx_lost_items_owner", "owner_id"),
        Index("idx_lost_items_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<LostItem id={self.id} name={self.item_name!r} status={self.status}>"
