"""Validation utilities for request payloads."""
import re
from datetime import date, datetime, time
from typing import Any, Dict, Iterable, List, Optional

from campus.utils.errors import ValidationFailedError

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'


class Validator:
    """Validation helper class."""

    @staticmethod
    def validate_email(email: str) -> bool:
        """Validate email format."""
        if not email:
            return False
        return bool(re.match(EMAIL_PATTERN, email))

    @staticmethod
    def validate_password(password: str) -> Dict[str, Any]:
        """Validate password strength."""
        errors = []

        if not password:
            errors.append("Password is required")
        elif len(password) < 8:
            errors.append("Password must be at least 8 characters long")
        elif len(password) > 128:
            errors.append("Password is too long")

        return {
            "is_valid": len(errors) == 0,
            "errors": errors
        }

    @staticmethod
    def validate_required_fields(data: Dict, required_fields: List[str]) -> Dict[str, Any]:
        """Validate required fields in data."""
        errors = []

        for field in required_fields:
            if field not in data or data[field] in (None, ''):
                errors.append(f"{field} is required")

        return {
            "is_valid": len(errors) == 0,
            "errors": errors
        }

    @staticmethod
    def require(data: Optional[Dict], *fields: str) -> Dict:
        """Raise ValidationFailedError unless every field is present."""
        if not isinstance(data, dict):
            raise ValidationFailedError("Request body must be a JSON object")
        result = Validator.validate_required_fields(data, list(fields))
        if not result['is_valid']:
            raise ValidationFailedError("Validation failed: " + "; ".join(result['errors']))
        return data

    @staticmethod
    def one_of(value: Any, choices: Iterable[str], field: str) -> str:
        choices = list(choices)
        if value not in choices:
            raise ValidationFailedError(f"{field} must be one of: {' '.join(choices)}")
        return value

    @staticmethod
    def parse_date(value: Optional[str], field: str = 'date') -> Optional[date]:
        """Parse YYYY-MM-DD, returning None for empty values."""
        if value in (None, ''):
            return None
        try:
            return datetime.strptime(value, '%Y-%m-%d').date()
        except (TypeError, ValueError):
            raise ValidationFailedError(f"invalid {field} format, use YYYY-MM-DD")

    @staticmethod
    def parse_time(value: Optional[str], field: str) -> time:
        """Parse HH:MM."""
        try:
            return datetime.strptime(value, '%H:%M').time()
        except (TypeError, ValueError):
            raise ValidationFailedError(f"invalid {field} format, use HH:MM")

    @staticmethod
    def parse_int(value: Any, field: str, default: int = None) -> Optional[int]:
        if value in (None, ''):
            return default
        if isinstance(value, bool):
            raise ValidationFailedError(f"{field} must be an integer")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValidationFailedError(f"{field} must be an integer")

    @staticmethod
    def parse_float(value: Any, field: str) -> Optional[float]:
        if value is None:
            return None
        if isinstance(value, bool):
            raise ValidationFailedError(f"{field} must be a number")
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ValidationFailedError(f"{field} must be a number")
