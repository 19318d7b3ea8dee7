"""WSGI configuration for production deployment.

    gunicorn wsgi:app            # backend API
    APP_ROLE=gateway gunicorn wsgi:gateway_app    # edge gateway
"""
import os

from dotenv import load_dotenv

load_dotenv()

from campus import create_app, create_gateway_app  # noqa: E402

if os.getenv('APP_ROLE', 'backend') == 'gateway':
    gateway_app = create_gateway_app(os.getenv('FLASK_ENV', 'production'))
else:
    app = create_app(os.getenv('FLASK_ENV', 'production'))
