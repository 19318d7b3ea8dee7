"""Testing configuration."""
from datetime import timedelta

from .base import Config


class TestingConfig(Config):
    """Testing configuration class."""
    DEBUG = False
    TESTING = True
    SECRET_KEY = 'test-secret-key'

    # Database (in-memory SQLite for testing)
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'

    # JWT Configuration
    JWT_SECRET_KEY = 'test-jwt-secret-with-enough-length-for-hs256'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=5)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(hours=1)

    # Rate Limiting (disabled for testing)
    RATELIMIT_ENABLED = False
    RATELIMIT_STORAGE_URI = 'memory://'

    # No broker in tests; a fake connection is injected where needed
    BROKER_ENABLED = False
    RABBITMQ_CONNECT_BACKOFF_SECONDS = 0

    BACKEND_URL = 'http://backend.test'
    AUTH_SERVICE_URL = USER_SERVICE_URL = ATTENDANCE_SERVICE_URL = BACKEND_URL
    SCHEDULE_SERVICE_URL = QR_SERVICE_URL = COURSE_SERVICE_URL = ACCESS_SERVICE_URL = BACKEND_URL
    GATEWAY_UPSTREAM_TIMEOUT = 2

    GATE_DEVICE_KEY = 'test-gate-key'

    LOG_LEVEL = 'WARNING'
