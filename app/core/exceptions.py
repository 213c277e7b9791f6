import logging
from typing import Any

from app.ai.providers.base import GenerationError
from app.config import get_settings
from app.core.json import StudioJSONResponse
from app.services.assets import RegenerationInProgressError
from app.services.quotas import QuotaExceededError
from app.services.storage_client import StorageError
from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError

logger = logging.getLogger("uvicorn.error")


def _coerce_json_safe(value: Any) -> Any:
  """Convert unsupported values into JSON-safe primitives for error responses."""
  if value is None or isinstance(value, bool | int | float | str):
    return value
  if isinstance(value, dict):
    return {str(key): _coerce_json_safe(item) for key, item in value.items()}
  if isinstance(value, list | tuple | set):
    return [_coerce_json_safe(item) for item in value]
  if isinstance(value, BaseException):
    error_message = str(value)
    if error_message:
      return f"{type(value).__name__}: {error_message}"
    return type(value).__name__
  return str(value)


def _request_id(request: Request) -> str | None:
  return getattr(request.state, "request_id", None)


def _error_payload(detail: Any, *, request_id: str | None = None) -> dict[str, Any]:
  """Build a safe error payload that avoids leaking internal details to clients."""
  payload: dict[str, Any] = {"detail": detail}
  # Attach a request id so support can correlate client reports to server logs.
  if request_id:
    payload["requestId"] = request_id
  return payload


def _sanitize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
  """Return validation errors without raw input payloads."""
  sanitized: list[dict[str, Any]] = []
  for error in errors:
    scrubbed = {key: value for key, value in error.items() if key != "input"}
    if "ctx" in scrubbed and isinstance(scrubbed["ctx"], dict):
      scrubbed_ctx = dict(scrubbed["ctx"])
      scrubbed_ctx.pop("input", None)
      scrubbed["ctx"] = scrubbed_ctx

    sanitized.append(_coerce_json_safe(scrubbed))

  return sanitized


async def global_exception_handler(request: Request, exc: Exception) -> StudioJSONResponse:
  """Global exception handler to catch unhandled errors."""
  request_id = _request_id(request)
  logger.error("Global exception request_id=%s path=%s error_type=%s", request_id, request.url.path, type(exc).__name__, exc_info=True)
  return StudioJSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_payload("Internal Server Error", request_id=request_id))


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> StudioJSONResponse:
  """Log request validation errors for debugging without leaking payloads."""
  request_id = _request_id(request)
  sanitized_errors = _sanitize_validation_errors(exc.errors())
  logger.warning("Request validation failed request_id=%s path=%s method=%s errors=%s", request_id, request.url.path, request.method, sanitized_errors)
  return StudioJSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=_error_payload(sanitized_errors, request_id=request_id))


async def http_exception_handler(request: Request, exc: HTTPException) -> StudioJSONResponse:
  """Handle FastAPI HTTPExceptions while avoiding leaking internal diagnostics."""
  request_id = _request_id(request)
  if exc.status_code >= 500:
    logger.error("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.detail, exc_info=True)
    return StudioJSONResponse(status_code=exc.status_code, content=_error_payload("Internal Server Error", request_id=request_id))

  if get_settings().log_http_4xx:
    logger.warning("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.detail)

  return StudioJSONResponse(status_code=exc.status_code, content=_error_payload(exc.detail, request_id=request_id), headers=exc.headers)


async def quota_exceeded_exception_handler(request: Request, exc: QuotaExceededError) -> StudioJSONResponse:
  """Return the denial details clients need to render an upgrade prompt."""
  decision = exc.decision
  limit = decision.limit
  content: dict[str, Any] = {
    "error": "QUOTA_EXCEEDED",
    "reason": decision.reason,
    "requiresUpgrade": decision.requires_upgrade,
    "remaining": 0,
    "usage": {"iterationsUsed": decision.usage.iterations_used, "assetsGenerated": decision.usage.assets_generated},
    "limit": None if limit is None else {"maxIterations": limit.max_iterations, "isUnlimited": limit.is_unlimited, "resetsMonthly": limit.resets_monthly, "source": limit.source},
    "hasGrant": decision.has_grant,
  }
  request_id = _request_id(request)
  if request_id:
    content["requestId"] = request_id
  return StudioJSONResponse(status_code=status.HTTP_403_FORBIDDEN, content=content)


async def not_found_exception_handler(request: Request, exc: LookupError) -> StudioJSONResponse:
  """Map missing or foreign jobs and assets to 404 without revealing which."""
  return StudioJSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=_error_payload("Not found", request_id=_request_id(request)))


async def regeneration_conflict_exception_handler(request: Request, exc: RegenerationInProgressError) -> StudioJSONResponse:
  return StudioJSONResponse(status_code=status.HTTP_409_CONFLICT, content={**_error_payload(str(exc), request_id=_request_id(request)), "jobId": exc.job_id})


async def value_error_exception_handler(request: Request, exc: ValueError) -> StudioJSONResponse:
  request_id = _request_id(request)
  logger.warning("Invalid request request_id=%s path=%s error=%s", request_id, request.url.path, exc)
  return StudioJSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=_error_payload(str(exc), request_id=request_id))


async def upstream_exception_handler(request: Request, exc: Exception) -> StudioJSONResponse:
  """Report image-provider and storage failures on synchronous paths as a bad gateway."""
  request_id = _request_id(request)
  logger.error("Upstream failure request_id=%s path=%s error_type=%s", request_id, request.url.path, type(exc).__name__, exc_info=True)
  return StudioJSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content=_error_payload("Upstream service failed", request_id=request_id))


UPSTREAM_ERRORS: tuple[type[Exception], ...] = (GenerationError, StorageError)
