"""Helper functions for the application."""
import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from flask import jsonify

from campus.utils.errors import AppError, BAD_REQUEST, INTERNAL_ERROR, STATUS_CODES


def utcnow() -> datetime:
    """Current time as a naive UTC datetime, matching the stored columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    """RFC3339 rendering of a naive UTC datetime."""
    if value is None:
        return None
    return value.replace(microsecond=0).isoformat() + 'Z'


def status_to_code(status_code: int) -> str:
    code = next((c for c, s in STATUS_CODES.items() if s == status_code), None)
    if code is None:
        code = BAD_REQUEST if status_code < 500 else INTERNAL_ERROR
    return code


def handle_error(error, status_code: int):
    """Handle werkzeug/HTTP errors with the standard envelope."""
    code = status_to_code(status_code)
    message = getattr(error, 'description', None) or str(error)
    return error_response(message, status_code, code=code)


def app_error_response(error: AppError):
    """Render an AppError, redacting the underlying cause."""
    return jsonify({
        'success': False,
        'error': error.to_dict()
    }), error.status_code


def success_response(data: Any = None, message: str = None, status_code: int = 200,
                     meta: Dict = None):
    """Return consistent success response."""
    response = {'success': True}

    if data is not None:
        response['data'] = data
    if message:
        response['message'] = message
    if meta:
        response['meta'] = meta

    return jsonify(response), status_code


def error_response(message: str, status_code: int = 400, code: str = None):
    """Return consistent error response."""
    if code is None:
        code = status_to_code(status_code)
    return jsonify({
        'success': False,
        'error': {
            'code': code,
            'message': message
        }
    }), status_code


def paginated_response(items: list, page: int, per_page: int, total: int):
    """Return a success response carrying pagination metadata."""
    total_pages = math.ceil(total / per_page) if per_page else 0
    return success_response(
        data=items,
        meta={
            'page': page,
            'per_page': per_page,
            'total': total,
            'total_pages': total_pages
        }
    )
