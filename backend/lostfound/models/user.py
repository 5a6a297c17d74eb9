from ..extensions import db
from .enums import id_type
from .timestamps import utcnow


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(id_type, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    name = db.Column(db.String(120))
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
