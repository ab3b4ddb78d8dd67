"""Test configuration and fixtures."""

import os
import pytest
import tempfile
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from flask import g
from flask_login import FlaskLoginClient

from laundry import create_app
from laundry.domain.enums import CommandStatus, CommandType, UserRole
from laundry.extensions import db as _db
from laundry.models import Command, Merchant, Package, PaymentAccount, ServiceAddon, User


@pytest.fixture
def app():
    """Create application for testing."""
    db_fd, db_path = tempfile.mkstemp(suffix='.db')

    app = create_app('testing', {
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}',
        'SECRET_KEY': 'test-secret-key',
        'APP_KEY': 'test-app-key',
        'WTF_CSRF_ENABLED': False,
        # FlaskLoginClient does not set the session identifier checked by
        # "strong" protection.
        'SESSION_PROTECTION': None,
    })
    app.test_client_class = FlaskLoginClient

    # The app context below stays pushed for the whole test, so Flask reuses
    # its ``g`` across test-client requests; drop the user Flask-Login cached
    # there so each request loads the user from its own session.
    @app.before_request
    def _reset_cached_login_user():
        g.pop('_login_user', None)

    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()

    os.close(db_fd)
    Path(db_path).unlink(missing_ok=True)


@pytest.fixture
def client(app):
    """Test client for making anonymous requests."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """CLI test runner."""
    return app.test_cli_runner()


@pytest.fixture
def db(app):
    """Database fixture."""
    return _db


@pytest.fixture
def catalog(db):
    """Packages, addons and the default payment account."""
    items = {
        'single': Package(code='LESSIVE_CELIBATAIRE', name='Single person', amount=Decimal('4000'), kg=Decimal('8')),
        'standalone': Package(code='LESSIVE_UNIQUE', name='Single wash', amount=Decimal('5000'), kg=Decimal('10')),
        'shipping': ServiceAddon(
            key='SHIPPING', code='SHIPPING_DEFAULT', name='Standard delivery', price=Decimal('0'),
            value={'merchantCost': 0, 'timeDurationApprox': 48},
        ),
        'shipping_fast': ServiceAddon(
            key='SHIPPING', code='SHIPPING_FAST', name='Express delivery', price=Decimal('50'),
            value={'merchantCost': 20, 'timeDurationApprox': 24},
        ),
        'ironing': ServiceAddon(
            key='REPASSAGE', code='REPASSAGE', name='Ironing', price=Decimal('100'),
            value={'merchantCost': 50},
        ),
        'account': PaymentAccount(label='Mobile money BJ', country='BJ', is_default=True),
    }
    db.session.add_all(items.values())
    db.session.commit()
    return items


@pytest.fixture
def customer(db):
    user = User(email='customer@example.com', firstname='Ada', lastname='Client', role=UserRole.CLIENT)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def merchant(db):
    shop = Merchant(name='Clean & Co')
    db.session.add(shop)
    db.session.commit()
    return shop


@pytest.fixture
def cleaner(db, merchant):
    user = User(email='cleaner@example.com', firstname='Bo', lastname='Washer', role=UserRole.CLEANER,
                merchant_id=merchant.id)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def make_command(db, catalog, customer):
    """Factory for subscription commands priced from the ``single`` package."""

    def _make(
        addons=('shipping',),
        order_min_price=None,
        command_kg='32',
        command_spent_kg='0',
        picking_days_times=None,
        command_start_at=datetime(2024, 1, 1),
        total_execution=0,
        status=CommandStatus.ACTIVE,
        merchant_kg_unit_cost='300',
    ):
        selected = [catalog[name] for name in addons]
        if order_min_price is None:
            kg_price = Decimal('500') + sum((a.price for a in selected), Decimal('0'))
            order_min_price = kg_price * Decimal('8')
        command = Command(
            user_id=customer.id,
            package_id=catalog['single'].id,
            command_type=CommandType.SUBSCRIPTION,
            description='Single person subscription',
            order_min_price=Decimal(str(order_min_price)),
            merchant_kg_unit_cost=Decimal(merchant_kg_unit_cost),
            delivery_per_day_cost=Decimal('500'),
            command_kg=Decimal(command_kg),
            command_spent_kg=Decimal(command_spent_kg),
            picking_days_times=picking_days_times if picking_days_times is not None else [
                [1, ['08:00', '10:00']],
                [4, ['14:00', '16:00']],
            ],
            command_start_at=command_start_at,
            total_execution=total_execution,
            status=status,
        )
        command.addons = selected
        db.session.add(command)
        db.session.commit()
        return command

    return _make


@pytest.fixture
def login_client(app):
    """Test client authenticated as ``user``."""

    def _client(user):
        return app.test_client(user=user)

    return _client


@pytest.fixture
def make_order(db, make_command):
    """Factory for one CREATED subscription order, generated the way the materializer does it."""
    from laundry.domain.scheduler import Pickup
    from laundry.services.materializer import create_next_order

    def _make(command=None, pickup_date=datetime(2024, 1, 4), **command_kwargs):
        command = command or make_command(**command_kwargs)
        pickup = Pickup(date=pickup_date, weekday=4, hours=('14:00', '16:00'))
        order = create_next_order(db.session, command, pickup, 1, 1)
        db.session.commit()
        return order

    return _make
