from datetime import datetime
from decimal import Decimal

import pytest

from laundry.domain.enums import CommandStatus, OrderStatus
from laundry.domain.errors import ValidationError
from laundry.models import Command, Order
from laundry.services.materializer import materialize_due_commands, materialize_next_batches
from laundry.utils.transactions import transaction


def orders_of(command_id):
    return (
        Order.query.filter_by(command_id=command_id)
        .order_by(Order.command_execution_index, Order.order_execution_index)
        .all()
    )


def test_materializes_four_weekly_batches(db, make_command):
    # Starts on Monday 2024-01-01; pickups on Mondays and Thursdays.
    command = make_command()

    with transaction(db.session) as tx:
        created = materialize_next_batches(tx, command.id)

    assert len(created) == 8
    command = db.session.get(Command, command.id)
    assert command.total_execution == 4

    orders = orders_of(command.id)
    assert [(o.command_execution_index, o.order_execution_index) for o in orders] == [
        (1, 1), (1, 2), (2, 1), (2, 2), (3, 1), (3, 2), (4, 1), (4, 2),
    ]
    assert [o.execution_date for o in orders] == [
        datetime(2024, 1, 8), datetime(2024, 1, 4),
        datetime(2024, 1, 15), datetime(2024, 1, 11),
        datetime(2024, 1, 22), datetime(2024, 1, 18),
        datetime(2024, 1, 29), datetime(2024, 1, 25),
    ]
    assert orders[0].picking_hours == ['08:00', '10:00']
    assert orders[0].delivery_date == datetime(2024, 1, 10, 10, 0)


def test_materialized_orders_are_priced(db, make_command):
    command = make_command(addons=('shipping', 'ironing'))

    with transaction(db.session) as tx:
        materialize_next_batches(tx, command.id)

    orders = orders_of(command.id)
    assert {o.status for o in orders} == {OrderStatus.CREATED}
    assert len({o.order_code for o in orders}) == len(orders)
    for order in orders:
        assert order.customer_order_initial_price == Decimal('4800')
        assert order.customer_order_kg_price * order.capacity_kg == Decimal('4800')
        assert order.merchant_kg_cost == Decimal('300')
        assert order.delivery_type == 'SHIPPING_DEFAULT'
        assert [entry['kind'] for entry in order.addons] == ['SHIPPING', 'REPASSAGE']


def test_bounded_at_four_executions(db, make_command):
    command = make_command(total_execution=4)

    with transaction(db.session) as tx:
        created = materialize_next_batches(tx, command.id)

    assert created == []
    assert db.session.get(Command, command.id).total_execution == 4
    assert orders_of(command.id) == []


def test_resumes_after_last_batch(db, make_command):
    command = make_command(total_execution=2)

    with transaction(db.session) as tx:
        created = materialize_next_batches(tx, command.id)

    assert [(o.command_execution_index, o.order_execution_index) for o in created] == [(3, 1), (3, 2), (4, 1), (4, 2)]
    assert db.session.get(Command, command.id).total_execution == 4

    with transaction(db.session) as tx:
        assert materialize_next_batches(tx, command.id) == []


def test_cursor_continues_from_latest_order(db, make_command, make_order):
    command = make_command()
    make_order(command=command, pickup_date=datetime(2024, 2, 1))

    with transaction(db.session) as tx:
        created = materialize_next_batches(tx, command.id)

    assert min(o.execution_date for o in created) > datetime(2024, 2, 1)


def test_missing_pickup_rules(db, make_command):
    command = make_command(picking_days_times=[])

    with pytest.raises(ValidationError):
        with transaction(db.session) as tx:
            materialize_next_batches(tx, command.id)

    assert db.session.get(Command, command.id).total_execution == 0


def test_missing_start_date(db, make_command):
    command = make_command(command_start_at=None)

    with pytest.raises(ValidationError):
        with transaction(db.session) as tx:
            materialize_next_batches(tx, command.id)


def test_price_mismatch_creates_nothing(db, make_command):
    command = make_command(order_min_price='4500')

    with pytest.raises(ValidationError):
        with transaction(db.session) as tx:
            materialize_next_batches(tx, command.id)

    assert db.session.get(Command, command.id).total_execution == 0
    assert orders_of(command.id) == []


def test_one_failing_command_does_not_block_the_others(db, make_command):
    broken = make_command(order_min_price='4500')
    healthy = make_command()
    inactive = make_command(status=CommandStatus.PENDING)

    report = materialize_due_commands(db.session)

    assert report['processed'] == 1
    assert report['orders'] == 8
    assert report['failed'] == [broken.id]
    assert len(orders_of(healthy.id)) == 8
    assert orders_of(broken.id) == []
    assert orders_of(inactive.id) == []
    assert db.session.get(Command, broken.id).total_execution == 0


def test_broken_addon_does_not_block_the_others(db, make_command):
    from laundry.models import ServiceAddon

    bad_shipping = ServiceAddon(
        key='SHIPPING', code='SHIPPING_BROKEN', name='Broken delivery', price=Decimal('0'),
        value={'merchantCost': 0, 'timeDurationApprox': '48h'},
    )
    db.session.add(bad_shipping)
    broken = make_command(addons=())
    broken.addons = [bad_shipping]
    db.session.commit()
    healthy = make_command()

    report = materialize_due_commands(db.session, [broken.id, healthy.id])

    assert report['failed'] == [broken.id]
    assert report['processed'] == 1
    assert len(orders_of(healthy.id)) == 8
    assert orders_of(broken.id) == []
    assert db.session.get(Command, broken.id).total_execution == 0


def test_start_date_pickup_is_not_materialized(db, make_command):
    # 2024-01-01 is a Monday and Monday is a pickup day.
    command = make_command(command_start_at=datetime(2024, 1, 1))

    with transaction(db.session) as tx:
        created = materialize_next_batches(tx, command.id)

    dates = sorted(o.execution_date for o in created)
    assert datetime(2024, 1, 1) not in dates
    assert dates[0] == datetime(2024, 1, 4)
    assert dates[-1] == datetime(2024, 1, 29)


def test_cli_materializes_commands(runner, make_command):
    command = make_command()

    result = runner.invoke(args=['materialize-commands', '--command-id', str(command.id)])

    assert result.exit_code == 0, result.output
    assert 'created 8 order(s)' in result.output


def test_cli_seeds_catalog(runner, db):
    from laundry.models import Package, PaymentAccount, ServiceAddon

    result = runner.invoke(args=['seed-catalog'])
    assert result.exit_code == 0, result.output
    assert Package.query.count() == 4
    assert ServiceAddon.query.count() == 3
    assert PaymentAccount.query.filter_by(country='BJ', is_default=True).count() == 1

    runner.invoke(args=['seed-catalog'])
    assert Package.query.count() == 4
