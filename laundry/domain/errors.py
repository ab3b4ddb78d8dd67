"""Error taxonomy shared by the pricing engine and the order services.

Each error carries a short ``public_message`` that is safe to return to API
callers; anything else (raw amounts, ids) stays in ``str(exc)`` for the logs.
"""

from __future__ import annotations


class LaundryError(Exception):
    status_code = 400
    public_message = 'An error occurred while processing the order. Please try again.'

    def __init__(self, message: str | None = None, *, public_message: str | None = None):
        super().__init__(message or self.public_message)
        if public_message is not None:
            self.public_message = public_message


class NotFoundError(LaundryError):
    """The referenced entity does not exist or does not match the status/owner filter."""

    status_code = 404
    public_message = 'Order not found.'


class ValidationError(LaundryError):
    """Invalid input or a business-rule violation. The message is shown verbatim."""

    status_code = 422

    def __init__(self, message: str):
        super().__init__(message, public_message=message)


class ConsistencyFailure(LaundryError):
    """An invariant the system is supposed to guarantee does not hold."""

    status_code = 500
    public_message = 'The order data is inconsistent. Please contact support.'
