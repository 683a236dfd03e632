"""
ShipRewards loyalty platform
Flask application factory
"""
import os
import logging
from flask import Flask
from flask_cors import CORS
from .extensions import db, migrate
from .config import get_config, validate_config
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(config_name: str = None) -> Flask:
    """
    Application factory for creating Flask app instances.

    Args:
        config_name: Configuration environment (development, production, testing)

    Returns:
        Configured Flask application
    """
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    # Setup logging before anything else
    setup_logging()

    validate_config(config_name)

    app = Flask(__name__)
    app.config.from_object(get_config(config_name))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    CORS(
        app,
        origins=app.config['CORS_ORIGINS'],
        supports_credentials=True,
        allow_headers=['Content-Type', 'Authorization', 'X-Role', 'X-User-Id']
    )

    # Register blueprints
    register_blueprints(app)

    # Register CLI commands
    from .commands import init_app as init_commands
    init_commands(app)

    # Background engine runs (production or ENABLE_SCHEDULER=true)
    from .utils.scheduler import init_scheduler
    init_scheduler(app)

    # Register error handlers
    register_error_handlers(app)

    # Health check endpoint
    @app.route('/health')
    def health_check():
        return {'status': 'healthy', 'service': 'shiprewards'}

    logger.info(f'ShipRewards app created ({config_name})')
    return app


def register_blueprints(app: Flask) -> None:
    """Register all API blueprints."""
    # Admin API
    from .api.rewards_engine import rewards_engine_bp
    from .api.program_config import program_config_bp
    from .api.transactions import transactions_bp

    # Customer API
    from .api.rewards import rewards_bp

    app.register_blueprint(rewards_engine_bp)
    app.register_blueprint(program_config_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(rewards_bp)


def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from .utils.errors import error_response, internal_error, not_found, ErrorCode
    from .utils.exceptions import RewardsError

    @app.errorhandler(RewardsError)
    def handle_rewards_error(error):
        return error_response(error.message, error.code, error.status_code)

    @app.errorhandler(400)
    def handle_bad_request(error):
        return error_response('Bad request', ErrorCode.INVALID_REQUEST, 400)

    @app.errorhandler(404)
    def handle_not_found(error):
        return not_found('Not found')

    @app.errorhandler(500)
    def handle_internal_error(error):
        return internal_error()
