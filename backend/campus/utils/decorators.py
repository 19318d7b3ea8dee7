# backend/campus/utils/decorators.py
"""Custom decorators for authorization."""
from collections import namedtuple
from functools import wraps

from flask_jwt_extended import get_jwt, get_jwt_identity

from campus.utils.errors import ForbiddenError

Subject = namedtuple('Subject', ['id', 'role', 'email'])


def current_subject() -> Subject:
    """Claims of the authenticated caller; call inside a jwt_required view."""
    claims = get_jwt()
    return Subject(get_jwt_identity(), claims.get('role'), claims.get('email'))


def role_required(*roles):
    """Decorator to require one of the given roles in the access ticket."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            role = get_jwt().get('role')
            if role not in roles:
                raise ForbiddenError(f"{' or '.join(roles)} access required")
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def presenter_required(f):
    """Decorator to require lecturer or staff role."""
    return role_required('lecturer', 'staff')(f)


def staff_required(f):
    """Decorator to require staff role."""
    return role_required('staff')(f)
