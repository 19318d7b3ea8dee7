"""Test courses, enrollments and grading."""
import json

import pytest

from campus import db
from campus.models.course import Course, Enrollment
from campus.services.course_service import letter_grade


@pytest.fixture
def course(app, lecturer):
    course = Course(code='IF301', name='Advanced Programming', credits=3, lecturer_id=lecturer.id)
    db.session.add(course)
    db.session.commit()
    return course


@pytest.fixture
def enrollment(course, student):
    enrollment = Enrollment(course_id=course.id, student_id=student.id)
    db.session.add(enrollment)
    db.session.commit()
    return enrollment


@pytest.mark.parametrize('score,expected', [
    (100, 'A'), (85, 'A'), (84.9, 'B'), (70, 'B'), (55, 'C'), (40, 'D'), (39.5, 'E'), (0, 'E')
])
def test_letter_grade(score, expected):
    assert letter_grade(score) == expected


def test_create_course(client, staff, lecturer, headers_for):
    body = {'code': 'if999', 'name': 'Thesis', 'credits': 6, 'lecturer_id': lecturer.id}
    response = client.post('/api/v1/courses', json=body, headers=headers_for(staff))
    assert response.status_code == 201
    assert json.loads(response.data)['data']['code'] == 'IF999'

    response = client.post('/api/v1/courses', json=body, headers=headers_for(staff))
    assert response.status_code == 409

    response = client.post('/api/v1/courses', json=body, headers=headers_for(lecturer))
    assert response.status_code == 403


def test_list_courses(client, course, student, headers_for):
    response = client.get('/api/v1/courses', headers=headers_for(student))
    assert [c['code'] for c in json.loads(response.data)['data']] == ['IF301']


def test_enroll_once(client, course, student, staff, headers_for):
    url = f'/api/v1/courses/{course.id}/enrollments'
    response = client.post(url, json={'student_id': student.id}, headers=headers_for(staff))
    assert response.status_code == 201

    response = client.post(url, json={'student_id': student.id}, headers=headers_for(staff))
    assert response.status_code == 409
    assert json.loads(response.data)['error']['message'] == 'Student already enrolled in this course'

    response = client.post(url, json={'student_id': staff.id}, headers=headers_for(staff))
    assert response.status_code == 404


def test_update_grade_from_score(client, enrollment, lecturer, headers_for):
    url = f'/api/v1/courses/enrollments/{enrollment.id}/grade'
    response = client.put(url, json={'score': 72.5}, headers=headers_for(lecturer))
    assert response.status_code == 200
    data = json.loads(response.data)['data']
    assert data['score'] == 72.5
    assert data['grade'] == 'B'

    response = client.put(url, json={'grade': 'A', 'notes': 'Project bonus'},
                          headers=headers_for(lecturer))
    data = json.loads(response.data)['data']
    assert data['grade'] == 'A'
    assert data['score'] == 72.5


@pytest.mark.parametrize('body', [{'score': 101}, {'score': -1}, {'grade': 'F'}, {}])
def test_update_grade_validation(client, enrollment, lecturer, headers_for, body):
    url = f'/api/v1/courses/enrollments/{enrollment.id}/grade'
    response = client.put(url, json=body, headers=headers_for(lecturer))
    assert response.status_code == 400
    assert db.session.get(Enrollment, enrollment.id).score is None


def test_update_grade_ownership(client, enrollment, make_user, student, headers_for):
    url = f'/api/v1/courses/enrollments/{enrollment.id}/grade'
    response = client.put(url, json={'score': 90}, headers=headers_for(make_user('lecturer')))
    assert response.status_code == 403

    response = client.put(url, json={'score': 90}, headers=headers_for(student))
    assert response.status_code == 403
