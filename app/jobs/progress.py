"""Progress arithmetic for variant loops."""

from __future__ import annotations

MAX_IN_FLIGHT_PROGRESS = 99


def variant_progress(index: int, total: int) -> int:
  """Return round(index / total * 100) with halves rounded up, as an int in 0..100."""
  if total <= 0:
    raise ValueError("total must be positive")
  if index < 0 or index > total:
    raise ValueError("index must be within 0..total")
  # Integer form of floor(100*index/total + 0.5) avoids float and banker's rounding.
  return (200 * index + total) // (2 * total)


def in_flight_progress(index: int, total: int) -> int:
  """Progress while a job is still processing; 100 is reserved for terminal states."""
  return min(variant_progress(index, total), MAX_IN_FLIGHT_PROGRESS)
