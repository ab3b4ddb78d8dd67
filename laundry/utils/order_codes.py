import hashlib

from flask import current_app


ORDER_CODE_LENGTH = 6


def derive_order_code(secret: str, order_id: int) -> str:
    """Short uppercase reference shown to customers and merchants.

    Not a security token: it only has to be stable and hard to guess by
    incrementing ids.
    """
    digest = hashlib.sha256(f'{secret}{order_id}'.encode('utf-8')).hexdigest()
    return digest[:ORDER_CODE_LENGTH].upper()


def normalize_order_code(raw: str | None) -> str:
    return (raw or '').strip().replace('#', '').upper()


def app_secret() -> str:
    return current_app.config.get('APP_KEY') or current_app.config['SECRET_KEY']
