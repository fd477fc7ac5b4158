import logging
import os

from flask import Flask, jsonify
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from .config import config
from .models import db
from .auth import login_manager
from .notifier import EventNotifier
from .bracket_engine import BracketEngine
from .directory import UserDirectory
from .room_coordinator import RoomCoordinator
from .schemas import describe_errors
from shared.errors import BanroomError


def create_app(config_name: str = None) -> Flask:
    """Application factory for the banroom API."""
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config.get(config_name, config['default']))

    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)

    # Initialize services
    notifier = EventNotifier.from_url(app.config.get('REDIS_URL'))
    bracket_engine = BracketEngine(notifier=notifier)
    directory = UserDirectory(max_team_size=app.config['MAX_TEAM_SIZE'])
    rooms = RoomCoordinator(
        bracket_engine=bracket_engine,
        directory=directory,
        notifier=notifier,
        map_pool=app.config['MAP_POOL'],
        side_choices=app.config['SIDE_CHOICES'],
        manager_roles=app.config['ROOM_MANAGER_ROLES'],
        code_attempts=app.config['ROOM_CODE_ATTEMPTS']
    )

    # Create tables
    with app.app_context():
        db.create_all()

    # Store services on app for access in routes
    app.notifier = notifier
    app.bracket_engine = bracket_engine
    app.directory = directory
    app.rooms = rooms

    register_error_handlers(app)
    register_blueprints(app)
    register_health_routes(app)

    app.logger.info(f"banroom started with '{config_name}' config")
    return app


def configure_logging(app: Flask):
    level = app.config.get('LOG_LEVEL', 'INFO')
    app.logger.setLevel(level)
    logging.getLogger('banroom').setLevel(level)


def register_blueprints(app: Flask):
    from .routes import auth, bracket, profile, room, team

    app.register_blueprint(auth.bp)
    app.register_blueprint(team.bp)
    app.register_blueprint(profile.bp)
    app.register_blueprint(bracket.bp)
    app.register_blueprint(room.bp)


def register_error_handlers(app: Flask):
    """Render every failure as JSON with a machine readable kind."""

    @app.errorhandler(BanroomError)
    def handle_domain_error(error: BanroomError):
        db.session.rollback()
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        return jsonify({
            'error': 'Invalid request body',
            'kind': 'Validation',
            'family': 'Validation',
            'details': describe_errors(error)
        }), 400

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error: SQLAlchemyError):
        db.session.rollback()
        app.logger.error(f"Database error: {error}")
        return jsonify({'error': 'Server error', 'kind': 'ServerError'}), 500

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        return jsonify({'error': error.description, 'kind': error.name}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        db.session.rollback()
        app.logger.exception(f"Unhandled error: {error}")
        return jsonify({'error': 'Server error', 'kind': 'ServerError'}), 500


def register_health_routes(app: Flask):

    @app.route('/')
    def index():
        return jsonify({'msg': 'API is running'})

    @app.route('/health')
    def health_check():
        """Health check endpoint."""
        try:
            db.session.execute(db.text('SELECT 1'))
            db_ok = True
        except SQLAlchemyError:
            db_ok = False

        redis_ok = app.notifier.ping() if app.notifier.enabled else None

        healthy = db_ok and redis_ok is not False
        return jsonify({
            'status': 'healthy' if healthy else 'unhealthy',
            'database': 'connected' if db_ok else 'disconnected',
            'redis': 'disabled' if redis_ok is None else ('connected' if redis_ok else 'disconnected')
        }), 200 if healthy else 503
