"""
Database Models for the laundry order backend

This module defines all database models using SQLAlchemy ORM.
Models include User, Merchant, the package/addon catalogs, PaymentAccount,
Command (subscription), Order and Invoice.
"""

from datetime import datetime
from decimal import Decimal

from flask_login import UserMixin
from sqlalchemy import inspect as sa_inspect

from laundry.domain.addons import SelectedAddon, dump_addon_costs, load_addon_costs
from laundry.domain.enums import (
    CommandStatus,
    CommandType,
    InvoiceStatus,
    OrderStatus,
    UserRole,
)
from laundry.domain.pricing import Allowance, CommandTerms, OrderTerms, PackageTerms
from laundry.domain.scheduler import parse_pickup_rules
from laundry.extensions import db, login_manager


Money = db.Numeric(14, 2)
KgPrice = db.Numeric(14, 4)
Weight = db.Numeric(10, 3)


command_addons = db.Table(
    'command_addons',
    db.Column('command_id', db.Integer, db.ForeignKey('commands.id', ondelete='CASCADE'), primary_key=True),
    db.Column('addon_id', db.Integer, db.ForeignKey('service_addons.id', ondelete='CASCADE'), primary_key=True),
    db.Index('ix_command_addons_command_id', 'command_id'),
)


@login_manager.user_loader
def load_user(user_id):
    """Load user by ID for Flask-Login"""
    if user_id is None:
        return None
    return db.session.get(User, int(user_id))


def _iso(value):
    return value.isoformat() if value is not None else None


def _str(value):
    return str(value) if value is not None else None


class User(UserMixin, db.Model):
    """Customer, cleaner (merchant staff) or admin account"""

    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, index=True)
    firstname = db.Column(db.String(120))
    lastname = db.Column(db.String(120))
    phone = db.Column(db.String(40))
    role = db.Column(db.String(20), nullable=False, default=UserRole.CLIENT)
    merchant_id = db.Column(db.Integer, db.ForeignKey('merchants.id', ondelete='SET NULL'))
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    merchant = db.relationship('Merchant', backref=db.backref('staff', lazy='dynamic'))

    @property
    def is_cleaner(self):
        return self.role == UserRole.CLEANER and self.merchant_id is not None

    @property
    def is_admin(self):
        return self.role == UserRole.ADMIN

    def __repr__(self):
        return f'<User {self.id} {self.role}>'


class Merchant(db.Model):
    """Laundry partner washing the orders"""

    __tablename__ = 'merchants'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False, unique=True)
    phone = db.Column(db.String(40))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<Merchant {self.name}>'


class Package(db.Model):
    """Catalog entry: a laundry package of ``kg`` kilograms sold for ``amount``"""

    __tablename__ = 'packages'

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(60), unique=True, nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    amount = db.Column(Money, nullable=False)
    kg = db.Column(Weight, nullable=False)

    def terms(self) -> PackageTerms:
        return PackageTerms(amount=Decimal(self.amount), kg=Decimal(self.kg), code=self.code, name=self.name)

    def __repr__(self):
        return f'<Package {self.code}>'


class ServiceAddon(db.Model):
    """Catalog entry for an optional service (shipping speed, ironing)"""

    __tablename__ = 'service_addons'

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(40), nullable=False, index=True)
    code = db.Column(db.String(60), unique=True, nullable=False, index=True)
    name = db.Column(db.String(200))
    price = db.Column(Money, nullable=False, default=0)
    # {"merchantCost": ..., "timeDurationApprox": ...}
    value = db.Column(db.JSON, nullable=False, default=dict)

    def selection(self) -> SelectedAddon:
        return SelectedAddon.from_catalog(self.key, self.code, self.price, self.value)

    def __repr__(self):
        return f'<ServiceAddon {self.code}>'


class PaymentAccount(db.Model):
    """Account customers pay invoices into"""

    __tablename__ = 'payment_accounts'

    id = db.Column(db.Integer, primary_key=True)
    label = db.Column(db.String(120), nullable=False)
    country = db.Column(db.String(2), nullable=False, index=True)
    is_default = db.Column(db.Boolean, nullable=False, default=False)

    def __repr__(self):
        return f'<PaymentAccount {self.label} {self.country}>'


class Command(db.Model):
    """A subscription (or recurring contract) that generates orders"""

    __tablename__ = 'commands'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    package_id = db.Column(db.Integer, db.ForeignKey('packages.id'), nullable=False)
    command_type = db.Column(db.String(20), nullable=False, default=CommandType.SUBSCRIPTION)
    description = db.Column(db.String(255))

    # Contract prices and costs
    order_min_price = db.Column(Money, nullable=False)
    merchant_kg_unit_cost = db.Column(Money, nullable=False)
    delivery_per_day_cost = db.Column(Money, nullable=False)

    # Weight allowance
    command_kg = db.Column(Weight, nullable=False, default=0)
    command_spent_kg = db.Column(Weight, nullable=False, default=0)

    # [[weekday, ["HH:MM", "HH:MM"]], ...]
    picking_days_times = db.Column(db.JSON, nullable=False, default=list)
    command_start_at = db.Column(db.DateTime)
    start_at = db.Column(db.DateTime)
    end_at = db.Column(db.DateTime)

    total_execution = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(20), nullable=False, default=CommandStatus.PENDING, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship('User', backref=db.backref('commands', lazy='dynamic'))
    package = db.relationship('Package')
    addons = db.relationship('ServiceAddon', secondary=command_addons, lazy='selectin', order_by='ServiceAddon.id')
    orders = db.relationship('Order', back_populates='command', lazy='dynamic')

    def terms(self) -> CommandTerms:
        return CommandTerms(
            order_min_price=Decimal(self.order_min_price),
            merchant_kg_unit_cost=Decimal(self.merchant_kg_unit_cost),
            delivery_per_day_cost=Decimal(self.delivery_per_day_cost),
        )

    def allowance(self) -> Allowance:
        return Allowance(command_kg=Decimal(self.command_kg or 0), spent_kg=Decimal(self.command_spent_kg or 0))

    def pickup_rules(self):
        return parse_pickup_rules(self.picking_days_times)

    def __repr__(self):
        return f'<Command {self.id} {self.command_type}>'


class Invoice(db.Model):
    """Billable record correlated to an order through ``(user_id, meta)``"""

    __tablename__ = 'invoices'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    meta = db.Column(db.String(120), index=True)
    amount = db.Column(db.String(40), nullable=False)
    margin = db.Column(Money, nullable=False, default=0)
    status = db.Column(db.String(20), nullable=False, default=InvoiceStatus.CREATED, index=True)
    invoice_type = db.Column(db.String(40), nullable=False)
    payment_account_id = db.Column(db.Integer, db.ForeignKey('payment_accounts.id'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.Index('ix_invoices_user_meta_status', 'user_id', 'meta', 'status'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'meta': self.meta,
            'amount': self.amount,
            'margin': _str(self.margin),
            'status': self.status,
            'invoiceType': self.invoice_type,
            'paymentAccountId': self.payment_account_id,
            'createdAt': _iso(self.created_at),
        }

    def __repr__(self):
        return f'<Invoice {self.id} {self.meta} {self.status}>'


class Order(db.Model):
    """One unit of laundry work delivered by one merchant"""

    __tablename__ = 'orders'

    id = db.Column(db.Integer, primary_key=True)
    # Short human-facing reference derived from the id (see utils.order_codes)
    order_code = db.Column(db.String(12), index=True)

    command_id = db.Column(db.Integer, db.ForeignKey('commands.id'), index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    package_id = db.Column(db.Integer, db.ForeignKey('packages.id'))
    merchant_id = db.Column(db.Integer, db.ForeignKey('merchants.id'), index=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey('invoices.id', ondelete='SET NULL'))

    title = db.Column(db.String(255))
    order_type = db.Column(db.String(20), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=OrderStatus.CREATED, index=True)
    merchant_payment_status = db.Column(db.String(20))

    # Schedule
    execution_date = db.Column(db.DateTime, nullable=False)
    execution_duration = db.Column(db.Integer)
    delivery_date = db.Column(db.DateTime)
    picking_hours = db.Column(db.JSON)
    delivery_type = db.Column(db.String(60))
    command_execution_index = db.Column(db.Integer, nullable=False, default=1)
    order_execution_index = db.Column(db.Integer, nullable=False, default=1)

    # Weight
    capacity_kg = db.Column(Weight, nullable=False, default=0)
    user_kg = db.Column(Weight)

    # Costs
    delivery_cost = db.Column(Money, nullable=False, default=0)
    merchant_kg_cost = db.Column(Money, nullable=False, default=0)
    merchant_total_cost = db.Column(Money)
    total_cost = db.Column(Money)
    margin = db.Column(Money)

    # Customer prices
    customer_order_kg_price = db.Column(KgPrice, nullable=False, default=0)
    customer_order_initial_price = db.Column(Money, nullable=False, default=0)
    customer_order_final_price = db.Column(Money, nullable=False, default=0)
    customer_fees_to_pay = db.Column(Money)

    # Per-order merchant cost breakdown, see domain.addons
    addons = db.Column(db.JSON, nullable=False, default=list)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    command = db.relationship('Command', back_populates='orders')
    customer = db.relationship('User', backref=db.backref('orders', lazy='dynamic'))
    package = db.relationship('Package')
    merchant = db.relationship('Merchant')
    invoice = db.relationship('Invoice')

    __table_args__ = (
        db.Index('ix_orders_command_execution', 'command_id', 'command_execution_index', 'order_execution_index'),
    )

    def terms(self) -> OrderTerms:
        return OrderTerms(
            has_command=self.command_id is not None,
            merchant_kg_cost=Decimal(self.merchant_kg_cost),
            customer_order_kg_price=Decimal(self.customer_order_kg_price),
            delivery_cost=Decimal(self.delivery_cost),
            addons=tuple(load_addon_costs(self.addons)),
        )

    def apply_evaluation(self, evaluation) -> None:
        """Copy the priced fields of a weight evaluation onto this order."""
        self.user_kg = evaluation.user_kg
        self.merchant_total_cost = evaluation.merchant_total_cost
        self.customer_order_final_price = evaluation.customer_order_final_price
        self.customer_fees_to_pay = evaluation.customer_fees_to_pay
        self.total_cost = evaluation.total_cost
        self.margin = evaluation.margin
        self.addons = dump_addon_costs(evaluation.addons)

    def detached_copy(self) -> 'Order':
        """Transient copy of the column values, never added to a session."""
        values = {attr.key: getattr(self, attr.key) for attr in sa_inspect(Order).column_attrs}
        return Order(**values)

    def to_dict(self, include_invoice: bool = True):
        data = {
            'id': self.id,
            'orderId': self.order_code,
            'commandId': self.command_id,
            'userId': self.user_id,
            'packageId': self.package_id,
            'merchantId': self.merchant_id,
            'invoiceId': self.invoice_id,
            'title': self.title,
            'orderType': self.order_type,
            'status': self.status,
            'merchantPaymentStatus': self.merchant_payment_status,
            'executionDate': _iso(self.execution_date),
            'executionDuration': self.execution_duration,
            'deliveryDate': _iso(self.delivery_date),
            'pickingHours': self.picking_hours,
            'deliveryType': self.delivery_type,
            'commandExecutionIndex': self.command_execution_index,
            'orderExecutionIndex': self.order_execution_index,
            'capacityKg': _str(self.capacity_kg),
            'userKg': _str(self.user_kg),
            'deliveryCost': _str(self.delivery_cost),
            'merchantKgCost': _str(self.merchant_kg_cost),
            'merchantTotalCost': _str(self.merchant_total_cost),
            'totalCost': _str(self.total_cost),
            'margin': _str(self.margin),
            'customerOrderKgPrice': _str(self.customer_order_kg_price),
            'customerOrderInitialPrice': _str(self.customer_order_initial_price),
            'customerOrderFinalPrice': _str(self.customer_order_final_price),
            'customerFeesToPay': _str(self.customer_fees_to_pay),
            'addons': self.addons,
        }
        if include_invoice:
            invoice = db.session.get(Invoice, self.invoice_id) if self.invoice_id else None
            data['invoice'] = invoice.to_dict() if invoice else None
        return data

    def __repr__(self):
        return f'<Order {self.id} {self.order_code} {self.status}>'
