"""
WTForms form classes for the order API

The API is consumed as JSON: Flask-WTF reads ``request.get_json()`` into the
form data when the request carries a JSON body. Field names follow the JSON
contract (``orderId``). The existence checks below run before the service
transaction; the services re-read the rows with a lock and raise NotFoundError
if they changed in between.
"""

from flask_wtf import FlaskForm
from wtforms import BooleanField, IntegerField, SelectField, StringField
from wtforms.validators import DataRequired, InputRequired, Length, ValidationError

from laundry.domain.enums import MerchantAction
from laundry.extensions import db
from laundry.models import Order
from laundry.utils.order_codes import normalize_order_code


class EvaluateOrderForm(FlaskForm):
    """Merchant reports the weight of an order (optionally as a preview)"""

    orderId = StringField('Order reference', validators=[
        DataRequired(message='orderId is required'),
        Length(max=12, message='orderId must be 12 characters or less'),
    ])
    # Kept as given: the pricing engine parses it to an exact Decimal and
    # rejects zero or negative weights itself.
    kg = StringField('Weight (kg)')
    preview = BooleanField('Preview only')

    def validate_orderId(self, field):
        code = normalize_order_code(str(field.data))
        exists = db.session.query(Order.id).filter(Order.order_code == code).first()
        if exists is None:
            raise ValidationError('Order not found.')

    def validate_kg(self, field):
        if field.data is None or str(field.data).strip() == '':
            raise ValidationError('kg is required')


class OrderActionForm(FlaskForm):
    """Merchant marks an order as washed or rejects it"""

    orderId = IntegerField('Order', validators=[
        InputRequired(message='orderId is required'),
    ])
    action = SelectField('Action', choices=[(a, a) for a in MerchantAction.ALL], validators=[
        DataRequired(message='action is required'),
    ])

    def validate_orderId(self, field):
        exists = db.session.query(Order.id).filter(Order.id == field.data).first()
        if exists is None:
            raise ValidationError('Order not found.')


def form_errors(form):
    """Flatten WTForms errors to ``{field: first message}``."""
    return {name: messages[0] for name, messages in form.errors.items() if messages}
