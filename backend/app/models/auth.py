from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z, utcnow
from .common import new_id


ROLE_ADMIN = "ADMIN"


class User(db.Model):
    """
    Back-office account.

    Role is a free string; only "ADMIN" is checked today. Admin routes
    re-read it from this table on every call instead of trusting the token.
    """
    __tablename__ = "users"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    email = db.Column(db.String(254), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    name = db.Column(db.String(255), nullable=True)
    role = db.Column(db.String(32), nullable=False, default=ROLE_ADMIN)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "createdAt": to_utc_z(self.created_at),
        }
