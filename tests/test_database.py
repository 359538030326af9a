import sqlite3

import pytest
from sqlalchemy.exc import IntegrityError

from database import classify_integrity_error, transaction
from errors import UniqueViolation, ForeignKeyViolation, IntegrityViolation


class DriverError(Exception):
    pass


def wrap(orig):
    return IntegrityError("INSERT ...", {}, orig)


def test_sqlite_error_names():
    unique = sqlite3.IntegrityError("UNIQUE constraint failed: categories.category_name")
    unique.sqlite_errorname = "SQLITE_CONSTRAINT_UNIQUE"
    fk = sqlite3.IntegrityError("FOREIGN KEY constraint failed")
    fk.sqlite_errorname = "SQLITE_CONSTRAINT_FOREIGNKEY"

    assert isinstance(classify_integrity_error(wrap(unique)), UniqueViolation)
    assert isinstance(classify_integrity_error(wrap(fk)), ForeignKeyViolation)


def test_postgres_codes():
    err = DriverError("duplicate key value")
    err.pgcode = "23505"
    assert isinstance(classify_integrity_error(wrap(err)), UniqueViolation)
    err.pgcode = "23503"
    assert isinstance(classify_integrity_error(wrap(err)), ForeignKeyViolation)


def test_mysql_errno():
    assert isinstance(classify_integrity_error(wrap(DriverError(1062, "Duplicate entry"))), UniqueViolation)
    assert isinstance(classify_integrity_error(wrap(DriverError(1451, "Cannot delete"))), ForeignKeyViolation)


def test_message_fallback_and_unknown():
    assert isinstance(
        classify_integrity_error(wrap(DriverError("UNIQUE constraint failed: user.email"))), UniqueViolation
    )
    other = classify_integrity_error(wrap(DriverError("NOT NULL constraint failed: orders.total_amount")))
    assert type(other) is IntegrityViolation


def test_transaction_rolls_back_and_reraises():
    class FakeSession:
        committed = rolled_back = False

        def commit(self):
            self.committed = True

        def rollback(self):
            self.rolled_back = True

    db = FakeSession()
    with pytest.raises(RuntimeError):
        with transaction(db):
            raise RuntimeError("boom")
    assert db.rolled_back and not db.committed

    db = FakeSession()
    with transaction(db):
        pass
    assert db.committed and not db.rolled_back
