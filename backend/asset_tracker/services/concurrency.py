# Overview: Transaction and locking helpers shared by the write services.

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import ConflictError, StoreError, TrackerError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    Callers that may already hold the row in the identity map chain
    .populate_existing() so the locked read replaces cached attributes.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    Correctness on SQLite comes from the conditional UPDATEs and unique
    constraints the services rely on.
    """
    return query.with_for_update()


def run_atomic(func):
    """
    Execute func as a single unit of work.

    Commits when func returns; rolls back everything func wrote when it
    raises. Domain errors propagate unchanged, optimistic-lock conflicts
    become ConflictError and any other store failure becomes StoreError.
    Nothing is retried here; retrying is the caller's decision.
    """
    try:
        result = func()
        db.session.commit()
        return result
    except TrackerError:
        db.session.rollback()
        raise
    except StaleDataError as exc:
        db.session.rollback()
        raise ConflictError("Record was modified concurrently, please retry", kind="CONCURRENT_UPDATE") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Store operation failed")
        raise StoreError("Store operation failed") from exc
