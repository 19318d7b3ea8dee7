"""Base configuration shared by every environment."""
import os
from datetime import timedelta
from urllib.parse import quote


def database_url() -> str:
    """DATABASE_URL, or a PostgreSQL URL assembled from DATABASE_* parts."""
    url = os.getenv('DATABASE_URL')
    if url:
        return url
    if os.getenv('DATABASE_HOST'):
        return 'postgresql://{user}:{password}@{host}:{port}/{name}'.format(
            user=quote(os.getenv('DATABASE_USER', 'postgres')),
            password=quote(os.getenv('DATABASE_PASSWORD', '')),
            host=os.getenv('DATABASE_HOST'),
            port=os.getenv('DATABASE_PORT', '5432'),
            name=os.getenv('DATABASE_NAME', 'campus'),
        )
    return 'sqlite:///campus_dev.db'


def rabbitmq_url() -> str:
    return 'amqp://{user}:{password}@{host}:{port}/{vhost}'.format(
        user=quote(os.getenv('RABBITMQ_USER', 'guest')),
        password=quote(os.getenv('RABBITMQ_PASSWORD', 'guest')),
        host=os.getenv('RABBITMQ_HOST', 'localhost'),
        port=os.getenv('RABBITMQ_PORT', '5672'),
        vhost=quote(os.getenv('RABBITMQ_VHOST', '/'), safe=''),
    )


class Config:
    """Base configuration."""
    SECRET_KEY = os.getenv('SECRET_KEY') or 'dev-secret-key-change-in-production'
    SQLALCHEMY_DATABASE_URI = database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False

    PORT = int(os.getenv('PORT', '5000'))
    SERVICE_NAME = 'campus'

    # JWT Configuration
    JWT_SECRET_KEY = os.getenv('JWT_SECRET') or 'jwt-secret-key-change-in-production'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=15)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=7)
    JWT_ALGORITHM = 'HS256'

    # CORS
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*').split(',')

    # Rate Limiting
    RATELIMIT_STORAGE_URI = os.getenv('REDIS_URL') or 'memory://'
    RATELIMIT_DEFAULT = "200 per day;50 per hour"

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
    LOG_FILE = 'logs/app.log'

    # Attendance
    QR_MAX_DURATION_MINUTES = 240
    GATE_TAP_WINDOW_HOURS = float(os.getenv('GATE_TAP_WINDOW_HOURS', '12'))
    # Shared secret gate devices send as X-Gate-Key; unset accepts any caller.
    GATE_DEVICE_KEY = os.getenv('GATE_DEVICE_KEY')

    # Message broker
    BROKER_ENABLED = os.getenv('BROKER_ENABLED', 'true').lower() == 'true'
    RABBITMQ_URL = os.getenv('RABBITMQ_URL') or rabbitmq_url()
    RABBITMQ_CONNECT_ATTEMPTS = 5
    RABBITMQ_CONNECT_BACKOFF_SECONDS = 2.0
    SHUTDOWN_TIMEOUT_SECONDS = 5.0

    # Gateway routing table
    BACKEND_URL = os.getenv('BACKEND_URL', 'http://localhost:5000')
    AUTH_SERVICE_URL = os.getenv('AUTH_SERVICE_URL', BACKEND_URL)
    USER_SERVICE_URL = os.getenv('USER_SERVICE_URL', BACKEND_URL)
    ATTENDANCE_SERVICE_URL = os.getenv('ATTENDANCE_SERVICE_URL', BACKEND_URL)
    SCHEDULE_SERVICE_URL = os.getenv('SCHEDULE_SERVICE_URL', BACKEND_URL)
    QR_SERVICE_URL = os.getenv('QR_SERVICE_URL', BACKEND_URL)
    COURSE_SERVICE_URL = os.getenv('COURSE_SERVICE_URL', BACKEND_URL)
    ACCESS_SERVICE_URL = os.getenv('ACCESS_SERVICE_URL', BACKEND_URL)
    GATEWAY_UPSTREAM_TIMEOUT = float(os.getenv('GATEWAY_UPSTREAM_TIMEOUT', '30'))

    # Pagination
    DEFAULT_PAGE_SIZE = 20
    MAX_PAGE_SIZE = 100
