# backend/campus/models/access_log.py
"""Gate access history."""
from campus import db
from campus.models.base import BaseModel


class AccessLog(BaseModel):
    """One gate decision, accepted or denied."""

    __tablename__ = 'access_logs'

    # NULL when the presented QR could not be tied to a subject.
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=True, index=True)
    token_id = db.Column(db.String(36), db.ForeignKey('gate_access_tokens.id'), nullable=True)
    gate_id = db.Column(db.String(100), nullable=True, index=True)
    outcome = db.Column(db.String(16), nullable=False)
    is_allowed = db.Column(db.Boolean, nullable=False)
    reason = db.Column(db.Text, nullable=True)
    occurred_at = db.Column(db.DateTime, nullable=False, index=True)

    def __repr__(self) -> str:
        return f'<AccessLog {self.user_id} {self.outcome}>'
