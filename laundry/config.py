"""
Configuration Module for the laundry order backend

This module defines configuration classes for different environments:
- DevelopmentConfig: Local development with SQLite
- ProductionConfig: Production deployment with PostgreSQL
- TestingConfig: Automated testing configuration
"""

import os
import sys
from pathlib import Path


class Config:
    """Base configuration with common settings"""

    # Secret key for session management.
    # DO NOT provide an insecure default here; the app factory generates an
    # ephemeral key outside production and refuses to start without one in it.
    SECRET_KEY = os.environ.get('SECRET_KEY')

    # Stable application secret used only to derive the short human-facing
    # order code. Falls back to SECRET_KEY in the factory when unset.
    APP_KEY = os.environ.get('APP_KEY')

    # Database configuration
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    # Billing
    OPERATING_COUNTRY = os.environ.get('OPERATING_COUNTRY', 'BJ')

    # Subscriptions are materialized in at most this many weekly batches.
    MAX_COMMAND_EXECUTIONS = 4
    SUBSCRIPTION_DELIVERY_DELAY_HOURS = int(os.environ.get('SUBSCRIPTION_DELIVERY_DELAY_HOURS', 48))

    # One-off (standalone) orders
    STANDALONE_MERCHANT_KG_COST = os.environ.get('STANDALONE_MERCHANT_KG_COST', '300')
    STANDALONE_DELIVERY_COST = os.environ.get('STANDALONE_DELIVERY_COST', '500')

    # The JSON API is consumed by mobile clients; no CSRF tokens there.
    WTF_CSRF_ENABLED = False

    SESSION_COOKIE_SECURE = False
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'


class DevelopmentConfig(Config):
    """Development environment configuration"""

    DEBUG = True
    TESTING = False

    # IMPORTANT (Windows): SQLAlchemy sqlite URLs must use forward slashes.
    _project_root = Path(__file__).resolve().parent.parent
    _default_db_path = (_project_root / 'laundry.db').resolve()

    _env_db_url = os.environ.get('DATABASE_URL')
    if _env_db_url and _env_db_url.strip().startswith('sqlite:'):
        _env_db_url = _env_db_url.replace('\\', '/')

    SQLALCHEMY_DATABASE_URI = _env_db_url or f"sqlite:///{_default_db_path.as_posix()}"

    SQLALCHEMY_ECHO = False


class ProductionConfig(Config):
    """Production environment configuration"""

    DEBUG = False
    TESTING = False

    @property
    def SQLALCHEMY_DATABASE_URI(self):
        """
        Production database URI, evaluated when the config object is loaded.

        - Managed platforms provide DATABASE_URL with a postgres:// prefix,
          SQLAlchemy requires postgresql://
        - SSL is required for managed PostgreSQL
        """
        db_uri = os.environ.get('DATABASE_URL')

        if not db_uri:
            print('FATAL: DATABASE_URL not set in environment', file=sys.stderr)
            return None

        if db_uri.startswith('postgres://'):
            db_uri = 'postgresql://' + db_uri[len('postgres://'):]

        if db_uri.startswith('postgresql://') and 'sslmode=' not in db_uri:
            separator = '&' if '?' in db_uri else '?'
            db_uri = f"{db_uri}{separator}sslmode=require"

        return db_uri

    SQLALCHEMY_ECHO = False
    SESSION_COOKIE_SECURE = True


class TestingConfig(Config):
    """Testing environment configuration"""

    TESTING = True
    DEBUG = True

    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SECRET_KEY = 'test-secret-key'
    APP_KEY = 'test-app-key'


# Configuration dictionary for easy access
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
