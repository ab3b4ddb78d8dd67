from decimal import Decimal

import click
from flask import current_app
from flask.cli import with_appcontext

from laundry.domain.addons import REPASSAGE, SHIPPING
from laundry.extensions import db
from laundry.models import Package, PaymentAccount, ServiceAddon
from laundry.services.materializer import materialize_due_commands


PACKAGES = [
    {'code': 'LESSIVE_UNIQUE', 'name': 'Single wash', 'amount': '3000', 'kg': '5'},
    {'code': 'LESSIVE_CELIBATAIRE', 'name': 'Single person', 'amount': '4000', 'kg': '8'},
    {'code': 'LESSIVE_COUPLE', 'name': 'Couple', 'amount': '6000', 'kg': '12'},
    {'code': 'LESSIVE_FAMILLE', 'name': 'Family', 'amount': '9000', 'kg': '20'},
]

ADDONS = [
    {
        'key': SHIPPING, 'code': 'SHIPPING_DEFAULT', 'name': 'Standard delivery (48h)', 'price': '0',
        'value': {'merchantCost': 0, 'timeDurationApprox': 48},
    },
    {
        'key': SHIPPING, 'code': 'SHIPPING_FAST', 'name': 'Express delivery (24h)', 'price': '50',
        'value': {'merchantCost': 25, 'timeDurationApprox': 24},
    },
    {
        'key': REPASSAGE, 'code': 'REPASSAGE', 'name': 'Ironing', 'price': '100',
        'value': {'merchantCost': 50},
    },
]


@click.command('materialize-commands')
@click.option('--command-id', 'command_ids', type=int, multiple=True, help='Only materialize these commands')
@with_appcontext
def materialize_commands_command(command_ids) -> None:
    """Generate the pending weekly orders of active subscriptions."""
    report = materialize_due_commands(db.session, list(command_ids) or None)
    click.echo(
        f"Materialized {report['processed']} command(s), created {report['orders']} order(s)."
    )
    if report['failed']:
        click.echo(f"Failed commands: {', '.join(str(c) for c in report['failed'])}", err=True)
        raise SystemExit(1)


@click.command('seed-catalog')
@with_appcontext
def seed_catalog_command() -> None:
    """Seed the package and addon catalogs and the default payment account."""
    created_count = 0
    for data in PACKAGES:
        if not Package.query.filter_by(code=data['code']).first():
            db.session.add(Package(
                code=data['code'],
                name=data['name'],
                amount=Decimal(data['amount']),
                kg=Decimal(data['kg']),
            ))
            created_count += 1

    for data in ADDONS:
        if not ServiceAddon.query.filter_by(code=data['code']).first():
            db.session.add(ServiceAddon(**dict(data, price=Decimal(data['price']))))
            created_count += 1

    country = current_app.config.get('OPERATING_COUNTRY', 'BJ')
    if not PaymentAccount.query.filter_by(country=country, is_default=True).first():
        db.session.add(PaymentAccount(label=f'Mobile money {country}', country=country, is_default=True))
        created_count += 1

    db.session.commit()
    click.echo(f"Seeded {created_count} catalog entries.")
