"""
Flask Extensions Module

This module initializes all Flask extensions used in the application.
Extensions are initialized here and then attached to the app in the factory.
"""

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager


# Initialize extensions
# These will be attached to the app in create_app()
db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()

# The order API is JSON-only: unauthenticated calls get a 401 instead of a
# redirect to a login page (login screens live outside this service).
login_manager.login_view = None
login_manager.session_protection = 'strong'
