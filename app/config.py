"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from app.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

_TASK_PROVIDERS = {"inprocess", "gcp"}


@dataclass(frozen=True)
class Settings:
  """Typed settings for the thumbnail studio service."""

  environment: str
  allowed_origins: tuple[str, ...]
  debug: bool
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  pg_dsn: str | None
  pg_connect_timeout: int
  asset_bucket: str
  gcs_storage_host: str | None
  gcp_project_id: str | None
  gemini_api_key: str | None
  gemini_image_model: str
  generation_max_attempts: int
  generation_base_delay_seconds: float
  grant_iterations_limit: int
  max_assets_per_class: int
  catalog_cache_ttl_seconds: int
  task_service_provider: str
  cloud_tasks_queue_path: str | None
  base_url: str | None
  task_secret: str | None
  firebase_project_id: str | None
  firebase_service_account_json_path: str | None


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    raise ValueError("STUDIO_ALLOWED_ORIGINS must be set to one or more origins.")

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("STUDIO_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("STUDIO_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("STUDIO_ENV", "development").lower()

  # Toggle verbose error output and diagnostics in non-production environments.
  debug = _parse_bool(os.getenv("STUDIO_DEBUG"))

  log_max_bytes = _positive_int("STUDIO_LOG_MAX_BYTES", "5242880")  # 5MB default

  log_backup_count = int(os.getenv("STUDIO_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("STUDIO_LOG_BACKUP_COUNT must be zero or a positive integer.")

  # Allow opt-in logging of 4xx HTTPExceptions for diagnostics.
  log_http_4xx = _parse_bool(os.getenv("STUDIO_LOG_HTTP_4XX"))

  generation_max_attempts = _positive_int("STUDIO_GENERATION_MAX_ATTEMPTS", "3")
  generation_base_delay_seconds = float(os.getenv("STUDIO_GENERATION_BASE_DELAY_SECONDS", "2"))
  if generation_base_delay_seconds < 0:
    raise ValueError("STUDIO_GENERATION_BASE_DELAY_SECONDS must not be negative.")

  # Grants always reset monthly; only the allowance is configurable.
  grant_iterations_limit = _positive_int("STUDIO_GRANT_ITERATIONS_LIMIT", "10")
  max_assets_per_class = _positive_int("STUDIO_MAX_ASSETS_PER_CLASS", "4")
  catalog_cache_ttl_seconds = _positive_int("STUDIO_CATALOG_CACHE_TTL_SECONDS", "300")

  task_service_provider = os.getenv("STUDIO_TASK_SERVICE_PROVIDER", "inprocess").strip().lower()
  if task_service_provider not in _TASK_PROVIDERS:
    raise ValueError(f"STUDIO_TASK_SERVICE_PROVIDER must be one of {sorted(_TASK_PROVIDERS)}.")

  return Settings(
    environment=environment,
    allowed_origins=_parse_origins(os.getenv("STUDIO_ALLOWED_ORIGINS")),
    debug=debug,
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=log_http_4xx,
    pg_dsn=os.getenv("STUDIO_PG_DSN") or os.getenv("DATABASE_URL"),
    pg_connect_timeout=_positive_int("STUDIO_PG_CONNECT_TIMEOUT", "5"),
    asset_bucket=os.getenv("STUDIO_ASSET_BUCKET", "studio-assets"),
    gcs_storage_host=_optional_str(os.getenv("GCS_STORAGE_HOST")),
    gcp_project_id=_optional_str(os.getenv("GCP_PROJECT_ID")),
    gemini_api_key=_optional_str(os.getenv("GEMINI_API_KEY")),
    gemini_image_model=(os.getenv("STUDIO_GEMINI_IMAGE_MODEL") or "gemini-2.5-flash-image").strip(),
    generation_max_attempts=generation_max_attempts,
    generation_base_delay_seconds=generation_base_delay_seconds,
    grant_iterations_limit=grant_iterations_limit,
    max_assets_per_class=max_assets_per_class,
    catalog_cache_ttl_seconds=catalog_cache_ttl_seconds,
    task_service_provider=task_service_provider,
    cloud_tasks_queue_path=_optional_str(os.getenv("STUDIO_CLOUD_TASKS_QUEUE_PATH")),
    base_url=_optional_str(os.getenv("STUDIO_BASE_URL")),
    task_secret=_optional_str(os.getenv("STUDIO_TASK_SECRET")),
    firebase_project_id=_optional_str(os.getenv("FIREBASE_PROJECT_ID")),
    firebase_service_account_json_path=_optional_str(os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON_PATH")),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring web-runtime configuration like CORS."""
  # Keep database configuration isolated so migrations don't require unrelated env vars.
  debug = _parse_bool(os.getenv("STUDIO_DEBUG"))
  pg_connect_timeout = _positive_int("STUDIO_PG_CONNECT_TIMEOUT", "5")
  pg_dsn = os.getenv("STUDIO_PG_DSN") or os.getenv("DATABASE_URL")

  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value
