"""Dotenv loading for local studio runs."""

from __future__ import annotations

import os
from collections.abc import Iterable, Iterator
from pathlib import Path

_ENV_FILE_VAR = "STUDIO_ENV_FILE"
_QUOTES = {'"', "'"}


def default_env_path() -> Path:
  """Resolve the dotenv file, honoring STUDIO_ENV_FILE before the repo root .env."""
  explicit = os.getenv(_ENV_FILE_VAR)
  if explicit:
    return Path(explicit).expanduser()

  return Path(__file__).resolve().parents[2] / ".env"


def parse_env_lines(lines: Iterable[str]) -> Iterator[tuple[str, str]]:
  """Yield key/value pairs from dotenv lines, skipping comments and malformed entries."""
  for raw_line in lines:
    line = raw_line.strip()
    if not line or line.startswith("#"):
      continue

    # Shell-style exports are accepted so the same file can be sourced.
    line = line.removeprefix("export ").lstrip()
    key, sep, value = line.partition("=")
    key = key.strip()
    if not sep or not key:
      continue

    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in _QUOTES:
      value = value[1:-1]

    yield key, value


def load_env_file(path: Path, *, override: bool = False) -> list[str]:
  """Export dotenv values into os.environ and return the keys that were applied.

  Real environment variables win unless override is set, so deployed containers
  are never reconfigured by a stray file.
  """
  if not path.is_file():
    return []

  applied: list[str] = []
  for key, value in parse_env_lines(path.read_text(encoding="utf-8").splitlines()):
    if not override and key in os.environ:
      continue

    os.environ[key] = value
    applied.append(key)

  return applied
