"""Bounded retry helper used for storage calls and stock restoration."""

import sqlite3

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from stock_kernel.db.engine import is_transient_error
from stock_kernel.utils.retry import RetryExhaustedError, retry_call


class Transient(Exception):
    pass


class Fatal(Exception):
    pass


def _flaky(failures: int, exc_type=Transient):
    calls = {"n": 0}

    def fn():
        calls["n"] += 1
        if calls["n"] <= failures:
            raise exc_type(f"failure {calls['n']}")
        return "ok"

    return fn, calls


class TestRetryCall:

    def test_returns_first_success(self):
        fn, calls = _flaky(0)
        assert retry_call(fn, operation="op", attempts=3, retry_on=(Transient,)) == "ok"
        assert calls["n"] == 1

    def test_retries_until_success(self):
        fn, calls = _flaky(2)
        sleeps = []

        result = retry_call(
            fn,
            operation="op",
            attempts=3,
            retry_on=(Transient,),
            backoff_seconds=0.1,
            sleep=sleeps.append,
        )

        assert result == "ok"
        assert calls["n"] == 3
        assert sleeps == pytest.approx([0.1, 0.2])

    def test_exhaustion_keeps_last_error(self):
        fn, calls = _flaky(5)

        with pytest.raises(RetryExhaustedError) as exc_info:
            retry_call(fn, operation="restore", attempts=3, retry_on=(Transient,), backoff_seconds=0)

        assert calls["n"] == 3
        assert exc_info.value.attempts == 3
        assert exc_info.value.operation == "restore"
        assert str(exc_info.value.last_error) == "failure 3"

    def test_non_retryable_error_propagates_immediately(self):
        fn, calls = _flaky(1, exc_type=Fatal)

        with pytest.raises(Fatal):
            retry_call(fn, operation="op", attempts=5, retry_on=(Transient,))

        assert calls["n"] == 1

    def test_zero_attempts_rejected(self):
        with pytest.raises(ValueError):
            retry_call(lambda: None, operation="op", attempts=0, retry_on=(Transient,))

    def test_retries_are_logged(self, captured_logs):
        fn, _ = _flaky(1)
        retry_call(fn, operation="increment", attempts=2, retry_on=(Transient,), backoff_seconds=0)

        retries = [r for r in captured_logs() if r["message"] == "storage_call_retry"]
        assert len(retries) == 1
        assert retries[0]["operation"] == "increment"
        assert retries[0]["attempt"] == 1
        assert retries[0]["level"] == "WARNING"

    def test_should_retry_filters_retryable_types(self):
        fn, calls = _flaky(3)

        with pytest.raises(Transient):
            retry_call(
                fn,
                operation="op",
                attempts=5,
                retry_on=(Transient,),
                should_retry=lambda exc: False,
            )

        assert calls["n"] == 1


class _PgError(Exception):
    def __init__(self, pgcode):
        super().__init__(pgcode)
        self.pgcode = pgcode


def _operational(orig, connection_invalidated=False) -> OperationalError:
    return OperationalError("UPDATE products", {}, orig, connection_invalidated=connection_invalidated)


class TestTransientErrorClassification:

    @pytest.mark.parametrize("pgcode", ["40001", "40P01", "55P03"])
    def test_postgres_rollback_codes_are_transient(self, pgcode):
        assert is_transient_error(_operational(_PgError(pgcode)))

    def test_other_postgres_codes_are_not(self):
        assert not is_transient_error(_operational(_PgError("08006")))

    def test_sqlite_lock_timeout_is_transient(self):
        assert is_transient_error(_operational(sqlite3.OperationalError("database is locked")))

    def test_dropped_connection_is_not_transient(self):
        exc = _operational(sqlite3.OperationalError("database is locked"), connection_invalidated=True)
        assert not is_transient_error(exc)

    def test_unknown_driver_error_is_not_transient(self):
        assert not is_transient_error(_operational(Exception("server closed the connection")))

    def test_non_operational_errors_are_not_transient(self):
        assert not is_transient_error(IntegrityError("INSERT", {}, Exception("dup")))
        assert not is_transient_error(ValueError("x"))
