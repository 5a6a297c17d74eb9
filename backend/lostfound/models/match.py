from sqlalchemy import Index, UniqueConstraint

from ..extensions import db
from .enums import id_type, match_status_enum
from .timestamps import utcnow


class Match(db.Model):
    __tablename__ = "matches"

    id = db.Column(id_type, primary_key=True)
    lost_item_id = db.Column(id_type, db.ForeignKey("lost_items.id"), nullable=False)
    found_item_id = db.Column(id_type, db.ForeignKey("found_items.id"), nullable=False)
    # Denormalized at creation: owner of the lost item and finder of the found item.
    loser_id = db.Column(id_type, db.ForeignKey("users.id"), nullable=False)
    finder_id = db.Column(id_type, db.ForeignKey("users.id"), nullable=True)
    status = db.Column(match_status_enum, nullable=False, default="pending")
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("lost_item_id", "found_item_id", name="uq_matches_lost_found"),
        Index("idx_matches_lost", "lost_item_id"),
        Index("idx_matches_found", "found_item_id"),
        Index("idx_matches_loser_finder", "loser_id", "finder_id"),
        Index("idx_matches_finder", "finder_id"),
    )

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"

    def __repr__(self) -> str:
        return f"<Match id={self.id} lost={self.lost_item_id} found={self.found_item_id} status={self.status}>"
