import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from app.config import get_settings
from app.core.database import dispose_engine
from app.core.firebase import initialize_firebase
from app.core.logging import initialize_logging
from app.services.jobs import build_generation_service
from app.services.storage_client import StorageClient
from app.services.tasks.inprocess import InProcessEnqueuer
from fastapi import FastAPI

_SHUTDOWN_DRAIN_SECONDS = 30.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging, auth, and the generation service; drain in-process jobs on shutdown."""
  settings = get_settings()
  logger = logging.getLogger("app.core.lifespan")

  initialize_logging(settings)
  logger.info("Startup environment=%s task_provider=%s", settings.environment, settings.task_service_provider)
  initialize_firebase()

  bundle = build_generation_service(settings)
  app.state.generation_service = bundle.service
  app.state.task_enqueuer = bundle.enqueuer

  if isinstance(bundle.storage, StorageClient):
    try:
      await bundle.storage.ensure_bucket()
      logger.info("Asset bucket ensured: %s", bundle.storage.bucket_name)
    except Exception as exc:  # noqa: BLE001
      logger.warning("Failed to ensure asset bucket at startup: %s", exc)

  try:
    yield
  finally:
    if isinstance(bundle.enqueuer, InProcessEnqueuer) and bundle.enqueuer.pending:
      logger.info("Waiting for %d in-process jobs before shutdown", bundle.enqueuer.pending)
      await bundle.enqueuer.drain(timeout=_SHUTDOWN_DRAIN_SECONDS)
    await dispose_engine()
    logger.info("Shutdown complete.")
