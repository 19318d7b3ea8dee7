"""Subject model for authentication and authorization."""
from enum import Enum
from typing import Optional, Tuple

from werkzeug.security import check_password_hash, generate_password_hash

from campus import db
from campus.models.base import BaseModel, SoftDeleteMixin


def enum_column(enum_cls, **kwargs):
    """Enum column persisted by member value."""
    return db.Column(
        db.Enum(enum_cls, values_callable=lambda e: [m.value for m in e],
                name=enum_cls.__name__.lower()),
        **kwargs
    )


class UserRole(Enum):
    """User roles enumeration."""
    STUDENT = 'student'
    LECTURER = 'lecturer'
    STAFF = 'staff'


class User(SoftDeleteMixin, BaseModel):
    """A person known to the system, playing exactly one role."""

    __tablename__ = 'users'

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = enum_column(UserRole, nullable=False, default=UserRole.STUDENT)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    last_login = db.Column(db.DateTime, nullable=True)

    def set_password(self, password: str) -> None:
        """Set user password with hashing."""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        """Check if provided password matches user's password."""
        return check_password_hash(self.password_hash, password)

    @property
    def detail_model(self):
        return DETAIL_MODELS[self.role]

    def get_detail(self):
        """Resolve the role detail through its foreign key."""
        model = self.detail_model
        return model.query.filter_by(user_id=self.id).first()

    @classmethod
    def find_by_email(cls, email: str) -> Optional['User']:
        return cls.alive().filter(cls.email == email.lower().strip()).first()

    @classmethod
    def load_with_detail(cls, user_id: str) -> Tuple[Optional['User'], object]:
        """Load a subject and its role detail in one round-trip.

        Every detail table is outer-joined; the role picks which column holds
        the subject's detail.
        """
        models = list(DETAIL_MODELS.values())
        query = db.session.query(cls, *models)
        for model in models:
            query = query.outerjoin(model, model.user_id == cls.id)
        row = query.filter(cls.id == user_id, cls.deleted_at.is_(None)).first()
        if row is None:
            return None, None

        user = row[0]
        details = dict(zip(DETAIL_MODELS.keys(), row[1:]))
        return user, details[user.role]

    def to_dict(self, exclude: list = None, detail=None) -> dict:
        """Convert to dictionary excluding sensitive data."""
        exclude = (exclude or []) + ['password_hash']
        result = super().to_dict(exclude=exclude)
        if detail is not None:
            result[self.role.value] = detail.to_dict(exclude=['user_id'])
        return result

    def __repr__(self) -> str:
        return f'<User {self.email}>'


class StudentDetail(SoftDeleteMixin, BaseModel):
    """Student-specific data."""

    __tablename__ = 'student_details'

    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), unique=True, nullable=False)
    student_number = db.Column(db.String(50), unique=True, nullable=False)
    name = db.Column(db.String(255), nullable=False)
    program = db.Column(db.String(255), nullable=True)
    cohort_year = db.Column(db.Integer, nullable=True)


class LecturerDetail(SoftDeleteMixin, BaseModel):
    """Lecturer-specific data."""

    __tablename__ = 'lecturer_details'

    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), unique=True, nullable=False)
    employee_number = db.Column(db.String(50), unique=True, nullable=False)
    name = db.Column(db.String(255), nullable=False)
    program = db.Column(db.String(255), nullable=True)


class StaffDetail(SoftDeleteMixin, BaseModel):
    """Staff-specific data."""

    __tablename__ = 'staff_details'

    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), unique=True, nullable=False)
    employee_number = db.Column(db.String(50), unique=True, nullable=False)
    name = db.Column(db.String(255), nullable=False)
    position = db.Column(db.String(255), nullable=True)
    unit = db.Column(db.String(255), nullable=True)


DETAIL_MODELS = {
    UserRole.STUDENT: StudentDetail,
    UserRole.LECTURER: LecturerDetail,
    UserRole.STAFF: StaffDetail,
}
