"""Test schedule management."""
import json
from datetime import date

from campus.models.schedule import Schedule
from campus.services.schedule_service import weekday_of

BODY = {
    'course_code': 'IF302',
    'course_name': 'Databases',
    'room': 'R202',
    'date': '2024-05-06',
    'start_time': '10:00',
    'end_time': '11:40'
}


def test_weekday_numbering():
    assert weekday_of(date(2024, 5, 5)) == 0
    assert weekday_of(date(2024, 5, 6)) == 1
    assert weekday_of(date(2024, 5, 11)) == 6


def test_lecturer_creates_own_schedule(client, lecturer, headers_for):
    response = client.post('/api/v1/schedules', json=BODY, headers=headers_for(lecturer))
    assert response.status_code == 201
    data = json.loads(response.data)['data']
    assert data['lecturer_id'] == lecturer.id
    assert data['day_of_week'] == 1
    assert data['start_time'] == '10:00:00'


def test_lecturer_cannot_create_for_others(client, lecturer, make_user, headers_for):
    other = make_user('lecturer')
    response = client.post('/api/v1/schedules', json={**BODY, 'lecturer_id': other.id},
                           headers=headers_for(lecturer))
    assert response.status_code == 403


def test_staff_must_name_lecturer(client, staff, lecturer, headers_for):
    response = client.post('/api/v1/schedules', json=BODY, headers=headers_for(staff))
    assert response.status_code == 400

    response = client.post('/api/v1/schedules', json={**BODY, 'lecturer_id': staff.id},
                           headers=headers_for(staff))
    assert response.status_code == 404

    response = client.post('/api/v1/schedules', json={**BODY, 'lecturer_id': lecturer.id},
                           headers=headers_for(staff))
    assert response.status_code == 201


def test_students_cannot_create(client, student, headers_for):
    response = client.post('/api/v1/schedules', json=BODY, headers=headers_for(student))
    assert response.status_code == 403


def test_schedule_validation(client, lecturer, headers_for):
    response = client.post('/api/v1/schedules', json={**BODY, 'day_of_week': 7},
                           headers=headers_for(lecturer))
    assert response.status_code == 400
    assert json.loads(response.data)['error']['message'] == 'day_of_week must be between 0 and 6'

    response = client.post('/api/v1/schedules', json={**BODY, 'end_time': '10:00'},
                           headers=headers_for(lecturer))
    assert response.status_code == 400
    assert json.loads(response.data)['error']['message'] == 'end_time must be after start_time'

    response = client.post('/api/v1/schedules', json={**BODY, 'start_time': '25:00'},
                           headers=headers_for(lecturer))
    assert response.status_code == 400

    response = client.post('/api/v1/schedules', json={'room': 'R1'}, headers=headers_for(lecturer))
    assert response.status_code == 400
    assert Schedule.query.count() == 0


def test_list_and_filter(client, lecturer, schedule, make_user, student, headers_for):
    other = make_user('lecturer')
    client.post('/api/v1/schedules', json=BODY, headers=headers_for(other))

    response = client.get('/api/v1/schedules', headers=headers_for(student))
    assert len(json.loads(response.data)['data']) == 2

    response = client.get('/api/v1/schedules?my_schedules=true', headers=headers_for(lecturer))
    data = json.loads(response.data)['data']
    assert [s['id'] for s in data] == [schedule.id]

    response = client.get('/api/v1/schedules?day_of_week=1', headers=headers_for(student))
    assert [s['lecturer_id'] for s in json.loads(response.data)['data']] == [other.id]

    response = client.get('/api/v1/schedules?date=2024-05-01', headers=headers_for(student))
    assert len(json.loads(response.data)['data']) == 1


def test_update_schedule(client, lecturer, schedule, headers_for):
    response = client.put(f'/api/v1/schedules/{schedule.id}', json={'date': '2024-05-04', 'room': 'Lab'},
                          headers=headers_for(lecturer))
    assert response.status_code == 200
    data = json.loads(response.data)['data']
    assert data['room'] == 'Lab'
    assert data['day_of_week'] == 6

    response = client.put(f'/api/v1/schedules/{schedule.id}', json={'end_time': '08:00'},
                          headers=headers_for(lecturer))
    assert response.status_code == 400


def test_update_requires_ownership(client, schedule, make_user, staff, headers_for):
    other = make_user('lecturer')
    response = client.put(f'/api/v1/schedules/{schedule.id}', json={'room': 'X'},
                          headers=headers_for(other))
    assert response.status_code == 403

    response = client.put(f'/api/v1/schedules/{schedule.id}', json={'room': 'X'},
                          headers=headers_for(staff))
    assert response.status_code == 200


def test_soft_delete(client, lecturer, schedule, student, headers_for):
    response = client.delete(f'/api/v1/schedules/{schedule.id}', headers=headers_for(lecturer))
    assert response.status_code == 200

    response = client.get(f'/api/v1/schedules/{schedule.id}', headers=headers_for(student))
    assert response.status_code == 404

    response = client.get('/api/v1/schedules', headers=headers_for(student))
    assert json.loads(response.data)['data'] == []

    # The row is kept for attendance history.
    assert Schedule.get_by_id(schedule.id).deleted_at is not None
