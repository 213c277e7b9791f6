from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import assets, catalog, jobs, subjects, tasks, usage
from app.config import get_settings
from app.core.exceptions import (
  UPSTREAM_ERRORS,
  global_exception_handler,
  http_exception_handler,
  not_found_exception_handler,
  quota_exceeded_exception_handler,
  regeneration_conflict_exception_handler,
  request_validation_exception_handler,
  upstream_exception_handler,
  value_error_exception_handler,
)
from app.core.json import StudioJSONResponse
from app.core.lifespan import lifespan
from app.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from app.jobs.orchestrator import JobNotFoundError
from app.services.assets import AssetNotFoundError, RegenerationInProgressError
from app.services.quotas import QuotaExceededError, UserNotFoundError

settings = get_settings()

app = FastAPI(default_response_class=StudioJSONResponse, lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)

app.add_middleware(CORSMiddleware, allow_origins=settings.allowed_origins, allow_credentials=True, allow_methods=["GET", "POST", "DELETE", "OPTIONS"], allow_headers=["content-type", "authorization"], expose_headers=["content-length", "x-request-id"])


# Add exception handlers
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
app.add_exception_handler(QuotaExceededError, quota_exceeded_exception_handler)
app.add_exception_handler(RegenerationInProgressError, regeneration_conflict_exception_handler)
for not_found_error in (AssetNotFoundError, JobNotFoundError, UserNotFoundError):
  app.add_exception_handler(not_found_error, not_found_exception_handler)
app.add_exception_handler(ValueError, value_error_exception_handler)
for upstream_error in UPSTREAM_ERRORS:
  app.add_exception_handler(upstream_error, upstream_exception_handler)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok", "version": "0.1.0"}


app.include_router(subjects.router, prefix="/v1/subjects", tags=["subjects"])
app.include_router(assets.router, prefix="/v1/assets", tags=["assets"])
app.include_router(jobs.router, prefix="/v1/jobs", tags=["jobs"])
app.include_router(usage.router, prefix="/v1/usage", tags=["usage"])
app.include_router(catalog.router, prefix="/v1/catalog", tags=["catalog"])
app.include_router(tasks.router, prefix="/internal", tags=["tasks"])
