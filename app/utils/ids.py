"""Identifier utilities."""

from __future__ import annotations

import secrets
import string
import uuid


def generate_job_id() -> str:
  """Return a new job identifier."""
  return str(uuid.uuid4())


def generate_nanoid(size: int = 12) -> str:
  """Return a short non-sequential id suitable for storage object names."""
  alphabet = string.ascii_lowercase + string.digits
  return "".join(secrets.choice(alphabet) for _ in range(size))
