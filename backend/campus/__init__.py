# File: backend/campus/__init__.py
"""Campus operations backend - Application Factory."""
import atexit
import logging
import os

from flask import Flask, jsonify
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

from campus.services.messaging import EventBus

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(key_func=get_remote_address)
event_bus = EventBus()

VERSION = '1.0.0'


def create_app(config_name: str = None) -> Flask:
    """Application factory pattern."""
    app = Flask(__name__)

    # Load configuration
    from config import get_config
    app.config.from_object(get_config(config_name))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)

    # Configure CORS
    CORS(app, origins=app.config.get('CORS_ORIGINS', ["*"]))

    setup_logging(app)
    setup_event_bus(app)
    register_blueprints(app)
    register_error_handlers(app)
    setup_database(app)
    register_commands(app)

    @app.route('/health')
    def health_check():
        return jsonify({
            'status': 'healthy',
            'service': 'Campus Backend',
            'version': VERSION,
            'broker': 'connected' if event_bus.enabled else 'disabled'
        })

    return app


def create_gateway_app(config_name: str = None) -> Flask:
    """Edge gateway: authenticates and forwards to the backend services."""
    app = Flask(__name__)

    from config import get_config
    app.config.from_object(get_config(config_name))
    app.config['SERVICE_NAME'] = 'gateway'

    jwt.init_app(app)
    limiter.init_app(app)
    CORS(app, origins=app.config.get('CORS_ORIGINS', ["*"]))

    setup_logging(app)
    setup_event_bus(app)

    from campus.api.gateway import gateway_bp
    app.register_blueprint(gateway_bp, url_prefix='/api/v1')

    register_error_handlers(app)

    @app.route('/health')
    def health_check():
        return jsonify({
            'status': 'healthy',
            'service': 'Campus Gateway',
            'version': VERSION
        })

    return app


def register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""
    from flask_swagger_ui import get_swaggerui_blueprint

    from campus.api.attendance import attendance_bp
    from campus.api.auth import auth_bp
    from campus.api.courses import courses_bp
    from campus.api.qr import qr_bp
    from campus.api.schedules import schedules_bp
    from campus.utils.swagger import generate_swagger_spec

    app.register_blueprint(auth_bp, url_prefix='/api/v1/auth')
    app.register_blueprint(attendance_bp, url_prefix='/api/v1/attendance')
    app.register_blueprint(qr_bp, url_prefix='/api/v1/qr')
    app.register_blueprint(schedules_bp, url_prefix='/api/v1/schedules')
    app.register_blueprint(courses_bp, url_prefix='/api/v1/courses')

    # Swagger UI
    SWAGGER_URL = '/api/docs'
    API_URL = '/api/swagger.json'

    @app.route(API_URL)
    def swagger_spec():
        """Serve Swagger/OpenAPI specification."""
        return jsonify(generate_swagger_spec())

    swaggerui_bp = get_swaggerui_blueprint(
        SWAGGER_URL,
        API_URL,
        config={'app_name': "Campus Backend API"}
    )
    app.register_blueprint(swaggerui_bp, url_prefix=SWAGGER_URL)


def rollback_session(app: Flask) -> None:
    if 'sqlalchemy' in app.extensions:
        db.session.rollback()


def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from werkzeug.exceptions import HTTPException

    from campus.utils.errors import AppError, INTERNAL_ERROR
    from campus.utils.helpers import app_error_response, error_response, handle_error

    @app.errorhandler(AppError)
    def handle_app_error(error):
        rollback_session(app)
        if error.code == INTERNAL_ERROR:
            app.logger.error(f"Internal error: {error}")
        return app_error_response(error)

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        return handle_error(e, e.code)

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        rollback_session(app)
        app.logger.exception(f"Unhandled error: {e}")
        return error_response("internal server error", 500, code=INTERNAL_ERROR)

    # JWT error handlers
    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return error_response('Token has expired', 401)

    @jwt.invalid_token_loader
    def invalid_token_callback(error):
        return error_response('Invalid token', 401)

    @jwt.unauthorized_loader
    def missing_token_callback(error):
        return error_response('Authorization token required', 401)


def setup_logging(app: Flask) -> None:
    """Setup application logging."""
    level = getattr(logging, app.config.get('LOG_LEVEL', 'INFO'), logging.INFO)
    app.logger.setLevel(level)
    logging.getLogger('campus').setLevel(level)

    if not app.debug and not app.testing:
        log_file = app.config.get('LOG_FILE', 'logs/app.log')
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(level)
        app.logger.addHandler(file_handler)
        logging.getLogger('campus').addHandler(file_handler)

        app.logger.info(f"{app.config.get('SERVICE_NAME', 'campus')} startup")


def setup_event_bus(app: Flask) -> None:
    """Connect to RabbitMQ; an unreachable broker is fatal when enabled."""
    from campus.utils.errors import InternalError

    try:
        event_bus.init_app(app)
    except InternalError as e:
        app.logger.critical(f"Message broker unavailable: {e}")
        raise SystemExit(1)

    if event_bus.enabled:
        atexit.register(event_bus.close)


def setup_database(app: Flask) -> None:
    """Make sure every model is registered with the metadata."""
    with app.app_context():
        from campus.models import (  # noqa: F401
            User, StudentDetail, LecturerDetail, StaffDetail,
            Course, Enrollment, Schedule,
            AttendanceSession, AttendanceRecord, GateAccessToken, AccessLog
        )


def register_commands(app: Flask) -> None:
    """Register CLI commands."""
    import click

    @app.cli.command()
    @click.option('--drop', is_flag=True, help='Drop existing tables')
    def init_db(drop):
        """Initialize the database."""
        if drop:
            db.drop_all()
            click.echo('Dropped all tables.')

        db.create_all()
        click.echo('Created all tables.')

    @app.cli.command()
    def seed_db():
        """Seed database with test data."""
        from campus.services.seed_service import SeedService

        SeedService.seed_all()
        click.echo('Database seeded successfully!')

    @app.cli.command()
    @click.option('--email', prompt='Staff email')
    @click.option('--name', prompt='Staff name')
    @click.option('--employee-number', prompt='Employee number')
    @click.password_option()
    def create_staff(email, name, employee_number, password):
        """Create a staff user."""
        from campus.services.auth_service import AuthService
        from campus.utils.errors import AppError

        try:
            user = AuthService.register({
                'email': email,
                'password': password,
                'role': 'staff',
                'name': name,
                'employee_number': employee_number
            })
        except AppError as e:
            raise click.ClickException(e.message)
        click.echo(f"Staff user created: {user['email']}")

    @app.cli.command()
    @click.option('--queue', default='audit_queue', show_default=True,
                  type=click.Choice(['audit_queue', 'request_queue', 'notification_queue']))
    @click.option('--tag', default=None, help='Consumer tag (defaults to <queue>-consumer)')
    def consume_events(queue, tag):
        """Drain a durable queue, logging every event."""
        logger = logging.getLogger('campus.consumer')

        def handle(message):
            logger.info(f"{queue}: {message}")

        click.echo(f'Consuming {queue}, press Ctrl+C to stop.')
        try:
            event_bus.start_consumer(queue, tag or f'{queue}-consumer', handle)
        except KeyboardInterrupt:
            click.echo('Stopped.')
