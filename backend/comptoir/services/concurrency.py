# Overview: Transaction and locking helpers shared by multi-table writes.

from __future__ import annotations

from contextlib import contextmanager

from ..extensions import db


def lock_for_update(query):
    """SELECT ... FOR UPDATE on the query. A no-op on SQLite."""
    return query.with_for_update()


@contextmanager
def atomic():
    """
    Commit everything done inside the block, or roll all of it back.

    No retry: the original exception propagates to the caller after rollback.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
