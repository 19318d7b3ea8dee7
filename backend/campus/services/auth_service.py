"""Authentication service: tickets, login, registration."""
from typing import Dict, Optional

from flask_jwt_extended import create_access_token, create_refresh_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError
from sqlalchemy.exc import IntegrityError

from campus import db
from campus.models.user import DETAIL_MODELS, User, UserRole
from campus.utils.decorators import Subject
from campus.utils.errors import (
    ConflictError, ForbiddenError, NotFoundError, UnauthorizedError, ValidationFailedError
)
from campus.utils.helpers import utcnow
from campus.utils.validators import Validator

# Role-specific fields that must accompany a registration.
DETAIL_REQUIRED_FIELDS = {
    UserRole.STUDENT: ('student_number', 'name'),
    UserRole.LECTURER: ('employee_number', 'name'),
    UserRole.STAFF: ('employee_number', 'name'),
}

DETAIL_OPTIONAL_FIELDS = {
    UserRole.STUDENT: ('program', 'cohort_year'),
    UserRole.LECTURER: ('program',),
    UserRole.STAFF: ('position', 'unit'),
}


class AuthService:

    @staticmethod
    def issue_access_ticket(user_id: str, role: str, email: str) -> str:
        """Short-lived ticket carrying role and email claims."""
        return create_access_token(
            identity=user_id,
            additional_claims={'role': role, 'email': email}
        )

    @staticmethod
    def issue_renewal_ticket(user_id: str) -> str:
        return create_refresh_token(identity=user_id)

    @staticmethod
    def validate(ticket: str) -> Subject:
        """Decode an access ticket; any defect is Unauthorized."""
        if not ticket:
            raise UnauthorizedError("Authorization token required")
        try:
            claims = decode_token(ticket)
        except (PyJWTError, JWTExtendedException) as e:
            raise UnauthorizedError("Invalid or expired token", e)
        if claims.get('type') != 'access':
            raise UnauthorizedError("Invalid or expired token")
        return Subject(claims.get('sub'), claims.get('role'), claims.get('email'))

    @staticmethod
    def login(email: str, password: str) -> Dict:
        """Authenticate user and return tokens."""
        if not email or not password:
            raise ValidationFailedError("Email and password are required")

        user = User.find_by_email(email)
        if not user or not user.check_password(password):
            raise UnauthorizedError("Invalid email or password")

        if not user.is_active:
            raise ForbiddenError("Account is deactivated")

        user.last_login = utcnow()
        db.session.commit()

        role = user.role.value
        return {
            'access_token': AuthService.issue_access_ticket(user.id, role, user.email),
            'refresh_token': AuthService.issue_renewal_ticket(user.id),
            'token_type': 'Bearer',
            'user': user.to_dict(detail=user.get_detail())
        }

    @staticmethod
    def refresh(user_id: str) -> Dict:
        """Exchange a renewal ticket's subject for a fresh access ticket."""
        user = User.get_alive(user_id)
        if not user or not user.is_active:
            raise UnauthorizedError("User not found or inactive")

        return {
            'access_token': AuthService.issue_access_ticket(user.id, user.role.value, user.email),
            'token_type': 'Bearer'
        }

    @staticmethod
    def register(data: Optional[Dict]) -> Dict:
        """Create a subject together with its role detail."""
        Validator.require(data, 'email', 'password', 'role')

        email = data['email'].lower().strip()
        if not Validator.validate_email(email):
            raise ValidationFailedError("Invalid email format")

        password_check = Validator.validate_password(data['password'])
        if not password_check['is_valid']:
            raise ValidationFailedError("; ".join(password_check['errors']))

        role = UserRole(Validator.one_of(data['role'], [r.value for r in UserRole], 'role'))
        Validator.require(data, *DETAIL_REQUIRED_FIELDS[role])

        if User.query.filter_by(email=email).first():
            raise ConflictError("Email already exists")

        user = User(email=email, role=role)
        user.set_password(data['password'])

        detail_fields = DETAIL_REQUIRED_FIELDS[role] + DETAIL_OPTIONAL_FIELDS[role]
        detail_data = {f: data.get(f) for f in detail_fields if data.get(f) not in (None, '')}
        if 'cohort_year' in detail_data:
            detail_data['cohort_year'] = Validator.parse_int(detail_data['cohort_year'], 'cohort_year')

        try:
            db.session.add(user)
            db.session.flush()
            detail = DETAIL_MODELS[role](user_id=user.id, **detail_data)
            db.session.add(detail)
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            raise ConflictError("Email or identity number already registered", e)

        return user.to_dict(detail=detail)

    @staticmethod
    def me(user_id: str) -> Dict:
        """Subject with its role detail."""
        user, detail = User.load_with_detail(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user.to_dict(detail=detail)
