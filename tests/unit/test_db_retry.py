from __future__ import annotations

import pytest
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from app.utils.db_retry import classify_db_failure, execute_with_retry


class _DriverError(Exception):
  def __init__(self, message: str, sqlstate: str | None = None) -> None:
    super().__init__(message)
    self.sqlstate = sqlstate


def _dbapi_error(sqlstate: str) -> DBAPIError:
  return DBAPIError("UPDATE usage", {}, _DriverError("driver failure", sqlstate))


def test_serialization_conflicts_and_deadlocks_are_retryable() -> None:
  assert classify_db_failure(_dbapi_error("40001")).category == "serialization_conflict"
  assert classify_db_failure(_dbapi_error("40P01")).retryable is True


def test_integrity_and_schema_errors_are_permanent() -> None:
  integrity = IntegrityError("INSERT", {}, _DriverError("duplicate key", "23505"))
  assert classify_db_failure(integrity).category == "integrity_error"
  assert classify_db_failure(_dbapi_error("42P01")).retryable is False


def test_connectivity_errors_are_retryable() -> None:
  error = OperationalError("SELECT 1", {}, _DriverError("connection reset by peer"))
  assert classify_db_failure(error).category == "connectivity_error"


def test_plain_exceptions_are_not_retryable() -> None:
  assert classify_db_failure(RuntimeError("boom")).retryable is False


@pytest.mark.anyio
async def test_execute_with_retry_replays_transient_failures() -> None:
  attempts = 0

  async def _write() -> str:
    nonlocal attempts
    attempts += 1
    if attempts < 3:
      raise _dbapi_error("40001")
    return "ok"

  result = await execute_with_retry(operation_name="test", func=_write, initial_backoff_ms=1, jitter=False)

  assert result == "ok"
  assert attempts == 3


@pytest.mark.anyio
async def test_execute_with_retry_raises_permanent_failures_immediately() -> None:
  attempts = 0

  async def _write() -> None:
    nonlocal attempts
    attempts += 1
    raise RuntimeError("constraint missing")

  with pytest.raises(RuntimeError):
    await execute_with_retry(operation_name="test", func=_write, initial_backoff_ms=1, jitter=False)
  assert attempts == 1
