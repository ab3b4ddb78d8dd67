"""
Flask Application Factory

This module implements the application factory pattern for creating
Flask application instances with different configurations.
"""

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from laundry.config import config
from laundry.extensions import db, migrate, login_manager
from laundry.domain.errors import ConsistencyFailure, LaundryError
import os


def create_app(config_name='default', overrides=None):
    """
    Application factory function

    Args:
        config_name (str): Configuration name ('development', 'production', 'testing')
        overrides (dict): Extra settings applied after the config class (tests, scripts)

    Returns:
        Flask: Configured Flask application instance
    """

    config_name = (config_name or 'default').lower()

    app = Flask(__name__)

    # Instantiate the config object so @property values (like
    # ProductionConfig.SQLALCHEMY_DATABASE_URI) are evaluated.
    cfg = config.get(config_name) or config['default']
    cfg_obj = cfg() if isinstance(cfg, type) else cfg
    app.config.from_object(cfg_obj)
    if overrides:
        app.config.update(overrides)

    # Production: enforced via environment variable (fail fast).
    # Elsewhere: generate an ephemeral key so sessions work out of the box.
    if config_name == 'production':
        if not app.config.get('SECRET_KEY'):
            app.logger.error('Production requires SECRET_KEY to be set via environment variable')
            raise RuntimeError('Missing SECRET_KEY in production')
        if not app.config.get('APP_KEY'):
            app.logger.warning('APP_KEY is not set; order codes are derived from SECRET_KEY.')

        db_uri = app.config.get('SQLALCHEMY_DATABASE_URI')
        if not db_uri:
            app.logger.error('Production requires DATABASE_URL (SQLALCHEMY_DATABASE_URI) to be set')
            raise RuntimeError('Missing DATABASE_URL in production')
        if db_uri.strip().startswith('sqlite:'):
            # Row locks (SELECT ... FOR UPDATE) are a no-op on SQLite.
            app.logger.error('Production requires PostgreSQL (DATABASE_URL must not be sqlite): %s', db_uri)
            raise RuntimeError('SQLite not allowed in production')
    elif not app.config.get('SECRET_KEY'):
        app.config['SECRET_KEY'] = os.urandom(32).hex()
        app.logger.warning('SECRET_KEY was missing; generated an ephemeral key for this process.')

    if not app.config.get('APP_KEY'):
        app.config['APP_KEY'] = app.config['SECRET_KEY']

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    # Models must be imported for the user loader and migrations metadata.
    from laundry import models  # noqa: F401

    register_blueprints(app)
    register_error_handlers(app)
    register_shell_context(app)
    register_cli_commands(app)

    @app.teardown_appcontext
    def _cleanup_appcontext(exc):
        """Ensure scoped sessions are removed when the app context ends."""
        db.session.remove()
        return None

    return app


def register_blueprints(app):
    """Register Flask blueprints"""

    from laundry.routes.health import health_bp
    from laundry.routes.orders import orders_bp

    app.register_blueprint(health_bp)  # No prefix - accessible at /health
    app.register_blueprint(orders_bp)


def register_error_handlers(app):
    """Every error leaves the API as JSON ``{"message": ...}``"""

    @app.errorhandler(LaundryError)
    def laundry_error(error):
        if isinstance(error, ConsistencyFailure):
            app.logger.exception('Consistency failure: %s', error)
        else:
            app.logger.info('%s: %s', type(error).__name__, error)
        db.session.rollback()
        return jsonify({'message': error.public_message}), error.status_code

    @app.errorhandler(HTTPException)
    def http_error(error):
        return jsonify({'message': error.description}), error.code

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'message': 'Authentication required.'}), 401

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors"""
        app.logger.exception('Unhandled exception (500): %s', error)
        db.session.rollback()
        return jsonify({'message': 'Internal server error.'}), 500


def register_shell_context(app):
    """Register shell context for Flask CLI"""

    @app.shell_context_processor
    def make_shell_context():
        """Make database models available in Flask shell"""
        from laundry.models import Command, Invoice, Merchant, Order, Package, ServiceAddon, User
        return {
            'db': db,
            'User': User,
            'Merchant': Merchant,
            'Package': Package,
            'ServiceAddon': ServiceAddon,
            'Command': Command,
            'Order': Order,
            'Invoice': Invoice,
        }


def register_cli_commands(app):
    """Register custom Flask CLI commands."""
    from laundry.cli import materialize_commands_command, seed_catalog_command

    app.cli.add_command(materialize_commands_command)
    app.cli.add_command(seed_catalog_command)
