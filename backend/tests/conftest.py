"""Shared fixtures for the backend tests."""
from datetime import datetime, time, timedelta

import pytest

from campus import create_app, db
from campus.models.schedule import Schedule
from campus.models.user import DETAIL_MODELS, User, UserRole
from campus.services.auth_service import AuthService

PASSWORD = 'password123'


class Clock:
    """Callable stand-in for utcnow that tests move by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, hour: int, minute: int = 0, days: int = 0) -> None:
        base = datetime(2024, 5, 1) + timedelta(days=days)
        self.now = base.replace(hour=hour, minute=minute)

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def app():
    """Create test app."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def clock(monkeypatch):
    """Freeze engine time at 2024-05-01 09:00 UTC."""
    clock = Clock(datetime(2024, 5, 1, 9, 0))
    monkeypatch.setattr('campus.services.attendance_service.utcnow', clock)
    monkeypatch.setattr('campus.services.gate_service.utcnow', clock)
    return clock


@pytest.fixture
def make_user(app):
    """Factory creating a user with its role detail."""
    counter = {'n': 0}

    def _make(role: str = 'student', email: str = None, active: bool = True) -> User:
        counter['n'] += 1
        n = counter['n']
        user_role = UserRole(role)
        user = User(email=email or f'{role}{n}@campus.test', role=user_role, is_active=active)
        user.set_password(PASSWORD)
        db.session.add(user)
        db.session.flush()

        number_field = 'student_number' if user_role == UserRole.STUDENT else 'employee_number'
        detail = DETAIL_MODELS[user_role](user_id=user.id, name=f'{role.title()} {n}',
                                          **{number_field: f'{role[:3].upper()}{n:04d}'})
        db.session.add(detail)
        db.session.commit()
        return user

    return _make


def auth_headers(user: User) -> dict:
    token = AuthService.issue_access_ticket(user.id, user.role.value, user.email)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def lecturer(make_user):
    return make_user('lecturer')


@pytest.fixture
def student(make_user):
    return make_user('student')


@pytest.fixture
def staff(make_user):
    return make_user('staff')


@pytest.fixture
def schedule(app, lecturer):
    schedule = Schedule(
        lecturer_id=lecturer.id,
        course_code='IF301',
        course_name='Advanced Programming',
        room='R101',
        day_of_week=3,
        date=datetime(2024, 5, 1).date(),
        start_time=time(9, 0),
        end_time=time(10, 40)
    )
    db.session.add(schedule)
    db.session.commit()
    return schedule


@pytest.fixture
def headers_for(app):
    """Bearer header for a user."""
    return auth_headers
