"""
WSGI Entry Point for the laundry order backend

This module serves as the entry point for WSGI servers (like Gunicorn)
to run the Flask application in production environments.

All environment variables must be set BEFORE this module is imported.
"""

import os
import sys

from dotenv import load_dotenv

# Load .env ONLY for local development. In production, environment variables
# must be provided by the platform. Never rely on a committed file.
if os.environ.get('FLASK_ENV', '').lower() != 'production' and os.environ.get('FLASK_CONFIG', '').lower() != 'production':
    load_dotenv(override=False)

from laundry import create_app  # noqa: E402

# Local/dev defaults to development; production platforms must set
# FLASK_ENV/FLASK_CONFIG=production explicitly.
config_name = (os.getenv('FLASK_CONFIG') or os.getenv('FLASK_ENV') or 'development').lower()

print(f'Initializing Flask application with config: {config_name}', file=sys.stderr)

if config_name == 'production':
    required_vars = {
        'SECRET_KEY': 'Required for session encryption',
        'APP_KEY': 'Required to derive stable order codes',
        'DATABASE_URL': 'Required for PostgreSQL connection',
    }

    missing_vars = [
        f"  {var_name}: {description}"
        for var_name, description in required_vars.items()
        if not os.getenv(var_name)
    ]

    if missing_vars:
        print(
            'DEPLOYMENT FAILED: Missing required environment variables\n' + '\n'.join(missing_vars),
            file=sys.stderr,
        )
        raise RuntimeError('Missing required environment variables in production')

app = create_app(config_name)
