"""
Order endpoints for customers and merchants (JSON).

Each mutating call runs in exactly one transaction; errors raised by the
services are turned into JSON responses by the handlers registered in the
application factory.
"""

from functools import wraps

from flask import Blueprint, abort, jsonify
from flask_login import current_user, login_required

from laundry.extensions import db
from laundry.forms import EvaluateOrderForm, OrderActionForm, form_errors
from laundry.services.orders import (
    confirm_reception,
    evaluate_order,
    get_order,
    list_order_history,
    submit_order_action,
)
from laundry.utils.transactions import transaction


orders_bp = Blueprint('orders', __name__)


def cleaner_required(f):
    """Decorator restricting an endpoint to merchant staff"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated or not current_user.is_cleaner:
            abort(403)
        return f(*args, **kwargs)

    return decorated_function


def _invalid(form):
    return jsonify({'message': 'Invalid request.', 'errors': form_errors(form)}), 422


@orders_bp.route('/orders')
@login_required
def order_history():
    orders = list_order_history(db.session, current_user)
    return jsonify({'orders': [order.to_dict() for order in orders]})


@orders_bp.route('/orders/<int:order_id>')
@login_required
def order_detail(order_id):
    order = get_order(db.session, order_id, current_user)
    return jsonify(order.to_dict())


@orders_bp.route('/orders/<int:order_id>/delivered', methods=['POST'])
@login_required
def order_delivered(order_id):
    """Customer confirms the order was handed back to them."""
    with transaction(db.session) as tx:
        order = confirm_reception(tx, order_id, current_user.id)
        payload = order.to_dict()
    return jsonify(payload)


@orders_bp.route('/merchant/order/accept', methods=['POST'])
@login_required
@cleaner_required
def merchant_accept_order():
    """Merchant weighs an order. With ``preview`` nothing is saved."""
    form = EvaluateOrderForm()
    if not form.validate_on_submit():
        return _invalid(form)

    if form.preview.data:
        quote = evaluate_order(db.session, form.orderId.data, form.kg.data, current_user.merchant_id, preview=True)
        # Nothing was written; end the read-only transaction.
        db.session.rollback()
        return jsonify(quote.to_dict(include_invoice=False))

    with transaction(db.session) as tx:
        order = evaluate_order(tx, form.orderId.data, form.kg.data, current_user.merchant_id)
        payload = order.to_dict()
    return jsonify(payload)


@orders_bp.route('/merchant/order/submit', methods=['POST'])
@login_required
@cleaner_required
def merchant_submit_order():
    form = OrderActionForm()
    if not form.validate_on_submit():
        return _invalid(form)

    with transaction(db.session) as tx:
        order = submit_order_action(tx, form.orderId.data, form.action.data, current_user.merchant_id)
        payload = order.to_dict()
    return jsonify(payload)
