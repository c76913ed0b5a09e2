# Overview: Service-layer operations for sequences; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Sequence

BUSINESS_ID_SEQUENCE = "businessId"


def next_sequence(name: str) -> int:
    """
    Atomically allocate the next value of a named counter.

    The increment is a single UPDATE ... SET value = value + 1, so two
    callers can never observe the same value. On first use the row is
    inserted starting at 1; if a concurrent caller inserted it first the
    insert is abandoned (savepoint) and the increment retried.

    Participates in the caller's transaction (no commit).
    """
    if not name:
        raise ValueError("sequence name is required")

    stmt = (
        update(Sequence)
        .where(Sequence.name == name)
        .values(value=Sequence.value + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if not result.rowcount:
        try:
            with db.session.begin_nested():
                db.session.add(Sequence(name=name, value=1))
            return 1
        except IntegrityError:
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise

    return db.session.query(Sequence.value).filter(Sequence.name == name).scalar()
