"""Retry helper for short database writes that can hit transient Postgres failures."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

T = TypeVar("T")
logger = logging.getLogger(__name__)

# SQLSTATE codes that indicate the transaction lost a race and can be replayed as-is.
_RETRYABLE_SQLSTATES = {"40001": "serialization_conflict", "40P01": "deadlock"}
_CONNECTIVITY_MARKERS = ("connection", "timeout", "reset", "network", "broken pipe", "lost connection")


@dataclass(frozen=True)
class DBFailureClassification:
  """Classification result for a database failure."""

  retryable: bool
  category: str
  sqlstate: str | None


def _extract_sqlstate(exc: BaseException) -> str | None:
  """Extract the Postgres SQLSTATE from a wrapped driver error."""
  if not isinstance(exc, DBAPIError):
    return None
  orig = getattr(exc, "orig", None)
  # asyncpg exposes `sqlstate`; psycopg exposes `pgcode`.
  for attr in ("sqlstate", "pgcode"):
    value = getattr(orig, attr, None)
    if value:
      return str(value)
  return None


def classify_db_failure(exc: BaseException) -> DBFailureClassification:
  """Classify a database failure as retryable (transient) or permanent."""
  sqlstate = _extract_sqlstate(exc)
  if sqlstate in _RETRYABLE_SQLSTATES:
    return DBFailureClassification(retryable=True, category=_RETRYABLE_SQLSTATES[sqlstate], sqlstate=sqlstate)

  if isinstance(exc, IntegrityError) or (sqlstate and sqlstate.startswith("23")):
    return DBFailureClassification(retryable=False, category="integrity_error", sqlstate=sqlstate)

  if sqlstate and sqlstate[:2] in {"42", "28"}:
    return DBFailureClassification(retryable=False, category="schema_or_permission_error", sqlstate=sqlstate)

  if isinstance(exc, OperationalError):
    message = str(exc).lower()
    if any(marker in message for marker in _CONNECTIVITY_MARKERS):
      return DBFailureClassification(retryable=True, category="connectivity_error", sqlstate=sqlstate)
    return DBFailureClassification(retryable=False, category="operational_error_unknown", sqlstate=sqlstate)

  return DBFailureClassification(retryable=False, category=f"unknown_error:{type(exc).__name__}", sqlstate=sqlstate)


async def execute_with_retry(*, operation_name: str, func: Callable[[], Awaitable[T]], max_attempts: int = 3, initial_backoff_ms: int = 100, max_backoff_ms: int = 2000, jitter: bool = True) -> T:
  """
  Run an idempotent-per-attempt database operation, replaying it on transient failures.

  How/Why:
    - Each attempt must open its own transaction so a replay starts clean.
    - Permanent failures (integrity, schema, programming errors) are raised immediately.
  """
  attempt = 0
  while True:
    attempt += 1
    try:
      result = await func()
      if attempt > 1:
        logger.info("DB operation succeeded after retry: operation=%s attempt=%d/%d", operation_name, attempt, max_attempts)
      return result
    except Exception as exc:
      classification = classify_db_failure(exc)
      logger.warning("DB operation failed: operation=%s attempt=%d/%d category=%s sqlstate=%s retryable=%s", operation_name, attempt, max_attempts, classification.category, classification.sqlstate or "none", classification.retryable)
      if not classification.retryable or attempt >= max_attempts:
        raise

      backoff_ms = min(initial_backoff_ms * (2 ** (attempt - 1)), max_backoff_ms)
      if jitter:
        # +/-25% spread so concurrent writers do not replay in lockstep.
        backoff_ms += random.uniform(-backoff_ms * 0.25, backoff_ms * 0.25)
      await asyncio.sleep(backoff_ms / 1000.0)
