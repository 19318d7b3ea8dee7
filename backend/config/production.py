"""Production configuration."""
import os

from .base import Config


class ProductionConfig(Config):
    """Production configuration class."""
    DEBUG = False
    TESTING = False
    SECRET_KEY = os.getenv('SECRET_KEY')  # Must be set in production
    JWT_SECRET_KEY = os.getenv('JWT_SECRET')

    # 25 open connections at most, recycled every 5 minutes
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': 5,
        'max_overflow': 20,
        'pool_recycle': 300,
        'pool_pre_ping': True,
    }

    RATELIMIT_STORAGE_URI = os.getenv('REDIS_URL') or 'memory://'
    RATELIMIT_DEFAULT = "50 per hour"

    LOG_FILE = '/app/logs/app.log'
