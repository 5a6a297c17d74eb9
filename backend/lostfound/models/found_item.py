from sqlalchemy import Index

from ..extensions import db
from .enums import found_status_enum, id_type
from .timestamps import utcnow


class FoundItem(db.Model):
    __tablename__ = "found_items"

    id = db.Column(id_type, primary_key=True)
    finder_id = db.Column(id_type, db.ForeignKey("users.id"), nullable=True)
    item_name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    category = db.Column(db.String(80), nullable=False)
    found_date = db.Column(db.Date)
    location = db.Column(db.String(200))
    status = db.Column(found_status_enum, nullable=False, default="found")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_found_items_category_date", "category", "found_date"),
        Index("idx_found_items_finder", "finder_id"),
        Index("idx_found_items_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<FoundItem id={self.id} name={self.item_name!r} status={self.status}>"
