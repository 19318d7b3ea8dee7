"""Test authentication endpoints and ticket validation."""
import json
from datetime import timedelta

import pytest
from flask_jwt_extended import create_access_token, create_refresh_token

from campus.services.auth_service import AuthService
from campus.utils.errors import UnauthorizedError

from conftest import PASSWORD


def test_health_check(client):
    """Test auth health endpoint."""
    response = client.get('/api/v1/auth/health')
    assert response.status_code == 200
    data = json.loads(response.data)
    assert data['message'] == 'Auth service is running'


def test_register_student(client):
    response = client.post('/api/v1/auth/register', json={
        'email': 'NewUser@Campus.test',
        'password': 'password123',
        'role': 'student',
        'name': 'New User',
        'student_number': '09021282126001',
        'cohort_year': '2021'
    })

    assert response.status_code == 201
    data = json.loads(response.data)
    assert data['success'] is True
    assert data['data']['email'] == 'newuser@campus.test'
    assert data['data']['student']['student_number'] == '09021282126001'
    assert data['data']['student']['cohort_year'] == 2021
    assert 'password_hash' not in data['data']


def test_register_validation(client):
    response = client.post('/api/v1/auth/register', json={})
    assert response.status_code == 400
    assert json.loads(response.data)['error']['code'] == 'VALIDATION_FAILED'

    # Role detail fields are required
    response = client.post('/api/v1/auth/register', json={
        'email': 'someone@campus.test',
        'password': 'password123',
        'role': 'student'
    })
    assert response.status_code == 400

    response = client.post('/api/v1/auth/register', json={
        'email': 'invalid-email',
        'password': 'password123',
        'role': 'student',
        'name': 'Test User',
        'student_number': '1'
    })
    assert response.status_code == 400


def test_register_duplicate_email(client, student):
    response = client.post('/api/v1/auth/register', json={
        'email': student.email,
        'password': 'password123',
        'role': 'student',
        'name': 'Again',
        'student_number': 'X1'
    })
    assert response.status_code == 409
    assert json.loads(response.data)['error']['code'] == 'CONFLICT'


def test_register_lecturer_requires_staff(client, staff, headers_for):
    body = {
        'email': 'lect@campus.test',
        'password': 'password123',
        'role': 'lecturer',
        'name': 'Lecturer',
        'employee_number': 'E1'
    }
    response = client.post('/api/v1/auth/register', json=body)
    assert response.status_code == 403

    response = client.post('/api/v1/auth/register', json=body, headers=headers_for(staff))
    assert response.status_code == 201
    assert json.loads(response.data)['data']['role'] == 'lecturer'


def test_login_success(client, student):
    response = client.post('/api/v1/auth/login', json={
        'email': student.email,
        'password': PASSWORD
    })

    assert response.status_code == 200
    data = json.loads(response.data)
    assert data['success'] is True
    assert 'access_token' in data['data']
    assert 'refresh_token' in data['data']
    assert data['data']['user']['role'] == 'student'

    subject = AuthService.validate(data['data']['access_token'])
    assert subject.id == student.id
    assert subject.role == 'student'
    assert subject.email == student.email


def test_login_invalid_credentials(client, student):
    response = client.post('/api/v1/auth/login', json={
        'email': student.email,
        'password': 'wrongpassword'
    })
    assert response.status_code == 401
    assert json.loads(response.data)['error']['code'] == 'UNAUTHORIZED'


def test_login_inactive_user(client, make_user):
    user = make_user('student', active=False)
    response = client.post('/api/v1/auth/login', json={'email': user.email, 'password': PASSWORD})
    assert response.status_code == 403


def test_refresh(client, student):
    refresh_token = create_refresh_token(identity=student.id)
    response = client.post('/api/v1/auth/refresh',
                           headers={'Authorization': f'Bearer {refresh_token}'})
    assert response.status_code == 200
    token = json.loads(response.data)['data']['access_token']
    assert AuthService.validate(token).role == 'student'


def test_refresh_rejects_access_token(client, student, headers_for):
    response = client.post('/api/v1/auth/refresh', headers=headers_for(student))
    assert response.status_code == 401


def test_get_current_user(client, student, headers_for):
    response = client.get('/api/v1/auth/me', headers=headers_for(student))

    assert response.status_code == 200
    data = json.loads(response.data)
    assert data['data']['email'] == student.email
    assert data['data']['student']['name'].startswith('Student')


def test_missing_token(client):
    response = client.get('/api/v1/auth/me')
    assert response.status_code == 401
    data = json.loads(response.data)
    assert data['success'] is False
    assert data['error']['code'] == 'UNAUTHORIZED'


def test_validate_rejects_bad_tickets(app, student):
    expired = create_access_token(identity=student.id, expires_delta=timedelta(seconds=-1),
                                  additional_claims={'role': 'student'})
    refresh = create_refresh_token(identity=student.id)

    for ticket in (None, '', 'not-a-jwt', expired, refresh):
        with pytest.raises(UnauthorizedError):
            AuthService.validate(ticket)
