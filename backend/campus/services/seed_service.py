# File: backend/campus/services/seed_service.py
"""Database seeding service for test data."""
import logging
import random
from datetime import time, timedelta

from campus import db
from campus.models.course import Course, Enrollment
from campus.models.schedule import Schedule
from campus.models.user import LecturerDetail, StaffDetail, StudentDetail, User, UserRole
from campus.services.schedule_service import weekday_of
from campus.utils.helpers import utcnow

logger = logging.getLogger(__name__)

DEFAULT_PASSWORD = 'password123'


class SeedService:
    """Service to seed database with test data; running it twice is a no-op."""

    @staticmethod
    def seed_all():
        """Seed all test data."""
        if User.query.first() is not None:
            logger.info("Database already has users, skipping seed")
            return
        SeedService.seed_staff()
        lecturers = SeedService.seed_lecturers()
        students = SeedService.seed_students()
        courses = SeedService.seed_courses(lecturers, students)
        SeedService.seed_schedules(courses)
        db.session.commit()

    @staticmethod
    def _user(email: str, role: UserRole) -> User:
        user = User(email=email, role=role)
        user.set_password(DEFAULT_PASSWORD)
        db.session.add(user)
        db.session.flush()
        return user

    @staticmethod
    def seed_staff():
        staff = SeedService._user('admin@campus.local', UserRole.STAFF)
        db.session.add(StaffDetail(user_id=staff.id, employee_number='STF001',
                                   name='Campus Administrator', position='Administrator',
                                   unit='Academic Affairs'))
        logger.info("Created staff admin@campus.local")

    @staticmethod
    def seed_lecturers():
        """Seed test lecturers."""
        lecturers_data = [
            ('Dr. Rina Putri', 'rina.putri'),
            ('Dr. Budi Santoso', 'budi.santoso'),
            ('Dr. Sari Wulandari', 'sari.wulandari'),
        ]

        lecturers = []
        for idx, (name, username) in enumerate(lecturers_data, start=1):
            lecturer = SeedService._user(f"{username}@campus.local", UserRole.LECTURER)
            db.session.add(LecturerDetail(user_id=lecturer.id, employee_number=f'LEC{idx:03d}',
                                          name=name, program='Informatics'))
            lecturers.append(lecturer)

        logger.info(f"Created {len(lecturers)} lecturers")
        return lecturers

    @staticmethod
    def seed_students(count: int = 20):
        """Seed test students."""
        first_names = ['Andi', 'Dewi', 'Fajar', 'Indah', 'Joko', 'Lestari', 'Putra', 'Ratna']
        last_names = ['Pratama', 'Saputra', 'Hidayat', 'Kusuma', 'Nugroho']

        students = []
        for i in range(1, count + 1):
            student = SeedService._user(f"student{i:03d}@campus.local", UserRole.STUDENT)
            db.session.add(StudentDetail(
                user_id=student.id,
                student_number=f'0902{2021 + i % 4}{i:04d}',
                name=f"{random.choice(first_names)} {random.choice(last_names)}",
                program='Informatics',
                cohort_year=2021 + i % 4
            ))
            students.append(student)

        logger.info(f"Created {len(students)} students")
        return students

    @staticmethod
    def seed_courses(lecturers, students):
        subjects = [
            ('IF301', 'Advanced Programming'),
            ('IF302', 'Databases'),
            ('IF401', 'Distributed Systems'),
        ]

        courses = []
        for (code, name), lecturer in zip(subjects, lecturers):
            course = Course(code=code, name=name, credits=3, lecturer_id=lecturer.id)
            db.session.add(course)
            db.session.flush()
            for student in students:
                db.session.add(Enrollment(course_id=course.id, student_id=student.id))
            courses.append(course)

        logger.info(f"Created {len(courses)} courses")
        return courses

    @staticmethod
    def seed_schedules(courses, days: int = 5):
        """One meeting per course per day for the coming days."""
        today = utcnow().date()
        for offset in range(days):
            day = today + timedelta(days=offset)
            for idx, course in enumerate(courses):
                start_hour = 8 + idx * 2
                db.session.add(Schedule(
                    course_id=course.id,
                    course_code=course.code,
                    course_name=course.name,
                    lecturer_id=course.lecturer_id,
                    room=f"R{101 + idx}",
                    day_of_week=weekday_of(day),
                    date=day,
                    start_time=time(start_hour, 0),
                    end_time=time(start_hour + 1, 40)
                ))

        logger.info(f"Created {days * len(courses)} schedules")
