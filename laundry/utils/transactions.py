"""Explicit transaction boundaries.

Service functions never commit on their own: they receive the session of the
transaction they run in. Callers open that transaction with :func:`transaction`
so a failure anywhere inside rolls back every entity touched.
"""

from contextlib import contextmanager

from laundry.extensions import db


@contextmanager
def transaction(session=None):
    session = session or db.session
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
