"""
Health check endpoints used by the hosting platform and uptime monitors.
"""

from flask import Blueprint, jsonify, current_app
from laundry.extensions import db
from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime
import os


health_bp = Blueprint('health', __name__)

REQUIRED_TABLES = {'users', 'commands', 'orders', 'invoices', 'payment_accounts'}


@health_bp.route('/health')
def health_check():
    """Lightweight probe; does not touch the database."""
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.utcnow().isoformat(),
        'service': 'laundry-orders',
    }), 200


@health_bp.route('/health/ready')
def readiness_check():
    """
    Readiness check including database connectivity.

    Returns 200 OK only if the database answers and the order tables exist.
    """
    checks = {
        'application': 'healthy',
        'database': 'unknown',
        'timestamp': datetime.utcnow().isoformat(),
    }

    status_code = 200

    try:
        db.session.execute(text('SELECT 1'))
        db.session.commit()
        checks['database'] = 'healthy'
    except SQLAlchemyError as exc:
        checks['database'] = 'unhealthy'
        checks['database_error'] = str(exc)
        status_code = 503
        current_app.logger.error('Database health check failed: %s', exc, exc_info=True)
        db.session.rollback()

    if checks['database'] == 'healthy':
        tables = set(inspect(db.engine).get_table_names())
        missing = REQUIRED_TABLES - tables
        if missing:
            checks['schema'] = 'incomplete'
            checks['missing_tables'] = sorted(missing)
            status_code = 503
        else:
            checks['schema'] = 'complete'

    checks['overall'] = 'healthy' if status_code == 200 else 'unhealthy'

    return jsonify(checks), status_code


@health_bp.route('/health/live')
def liveness_check():
    """Liveness probe for container orchestration."""
    return jsonify({
        'status': 'alive',
        'pid': os.getpid(),
        'timestamp': datetime.utcnow().isoformat(),
    }), 200
