"""Development configuration."""
import os

from .base import Config


class DevelopmentConfig(Config):
    """Development configuration class."""
    DEBUG = True
    TESTING = False

    # Run without RabbitMQ unless a broker host is configured
    BROKER_ENABLED = Config.BROKER_ENABLED and bool(os.getenv('RABBITMQ_HOST'))
