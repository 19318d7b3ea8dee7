"""Base model class with common functionality."""
import uuid
from datetime import date, datetime, time
from typing import Any, Dict

from campus import db
from campus.utils.helpers import isoformat, utcnow


def new_uuid() -> str:
    return str(uuid.uuid4())


class BaseModel(db.Model):
    """Base model class with common fields and methods."""

    __abstract__ = True

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def save(self) -> 'BaseModel':
        """Save instance to database."""
        db.session.add(self)
        db.session.commit()
        return self

    def update(self, **kwargs) -> 'BaseModel':
        """Update instance with provided data."""
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)

        db.session.commit()
        return self

    def to_dict(self, exclude: list = None) -> Dict[str, Any]:
        """Convert instance to dictionary."""
        exclude = exclude or []
        result = {}

        for column in self.__table__.columns:
            key = column.name
            if key in exclude:
                continue
            value = getattr(self, key)
            if isinstance(value, datetime):
                value = isoformat(value)
            elif isinstance(value, (date, time)):
                value = value.isoformat()
            elif hasattr(value, 'value'):
                value = value.value
            result[key] = value

        return result

    @classmethod
    def get_by_id(cls, id: str) -> 'BaseModel':
        """Get instance by ID."""
        return db.session.get(cls, id)

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} {self.id}>'


class SoftDeleteMixin:
    """Rows are marked deleted instead of removed."""

    deleted_at = db.Column(db.DateTime, nullable=True, index=True)

    @classmethod
    def alive(cls):
        """Query excluding soft-deleted rows."""
        return cls.query.filter(cls.deleted_at.is_(None))

    @classmethod
    def get_alive(cls, id: str):
        return cls.alive().filter(cls.id == id).first()

    def soft_delete(self) -> None:
        self.deleted_at = utcnow()
        db.session.commit()

    def to_dict(self, exclude: list = None) -> Dict[str, Any]:
        exclude = (exclude or []) + ['deleted_at']
        return super().to_dict(exclude=exclude)
