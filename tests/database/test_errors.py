"""Constraint classification tests.

classify_integrity_error must recognise SQLite messages and PostgreSQL
SQLSTATE codes without the caller matching error strings.
"""
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError

from database.errors import (
    ConstraintKind, InternalError, NotFoundError, UnauthorizedError,
    ValidationError, classify_integrity_error,
)


def _integrity_error(orig):
    return IntegrityError("INSERT ...", {}, orig)


class TestSqliteClassification:
    """Messages raised by the sqlite3 driver."""

    @pytest.mark.parametrize("message, kind, column", [
        ("UNIQUE constraint failed: customers.email", ConstraintKind.UNIQUE, "email"),
        ("NOT NULL constraint failed: vehicles.plate", ConstraintKind.NOT_NULL, "plate"),
        ("FOREIGN KEY constraint failed", ConstraintKind.FOREIGN_KEY, None),
    ])
    def test_classifies_message(self, message, kind, column):
        violation = classify_integrity_error(_integrity_error(Exception(message)))
        assert violation.kind == kind
        assert violation.column == column

    def test_check_constraint_name(self):
        violation = classify_integrity_error(_integrity_error(
            Exception("CHECK constraint failed: ck_payments_amount_paid")
        ))
        assert violation.kind == ConstraintKind.CHECK
        assert violation.constraint == "ck_payments_amount_paid"

    def test_unknown_message(self):
        violation = classify_integrity_error(_integrity_error(Exception("disk I/O error")))
        assert violation.kind == ConstraintKind.UNKNOWN


class TestPostgresClassification:
    """Driver errors carrying SQLSTATE and diagnostics."""

    def _pg_error(self, sqlstate, column=None, constraint=None):
        diag = SimpleNamespace(column_name=column, constraint_name=constraint)
        return SimpleNamespace(sqlstate=sqlstate, diag=diag)

    def test_unique_violation(self):
        violation = classify_integrity_error(_integrity_error(
            self._pg_error("23505", constraint="customers_email_key")
        ))
        assert violation.kind == ConstraintKind.UNIQUE
        assert violation.constraint == "customers_email_key"

    def test_foreign_key_violation(self):
        violation = classify_integrity_error(_integrity_error(self._pg_error("23503")))
        assert violation.kind == ConstraintKind.FOREIGN_KEY

    def test_not_null_violation(self):
        violation = classify_integrity_error(_integrity_error(
            self._pg_error("23502", column="model")
        ))
        assert violation.kind == ConstraintKind.NOT_NULL
        assert violation.column == "model"

    def test_check_violation(self):
        violation = classify_integrity_error(_integrity_error(
            self._pg_error("23514", constraint="ck_inventory_parts_quantity")
        ))
        assert violation.kind == ConstraintKind.CHECK


class TestErrorHierarchy:
    """Status codes carried by domain errors."""

    @pytest.mark.parametrize("error_cls, status", [
        (ValidationError, 400),
        (UnauthorizedError, 401),
        (NotFoundError, 404),
        (InternalError, 500),
    ])
    def test_status_codes(self, error_cls, status):
        error = error_cls("falhou", detail="x")
        assert error.status_code == status
        assert error.message == "falhou"
        assert error.detail == "x"
