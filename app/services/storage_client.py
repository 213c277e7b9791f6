"""Object storage for generated assets and reference images."""

from __future__ import annotations

import io
import os
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import quote, urlparse, urlunparse

from google.api_core import exceptions as gcs_exceptions
from google.auth.credentials import AnonymousCredentials
from google.cloud import storage
from PIL import Image, UnidentifiedImageError
from starlette.concurrency import run_in_threadpool

from app.config import Settings


class StorageError(RuntimeError):
  """Raised when an object storage call fails."""


@dataclass(frozen=True)
class UploadMetadata:
  """Naming context for an uploaded asset."""

  user_id: str
  subject_id: str
  output_class: str
  object_name: str


@dataclass(frozen=True)
class StoredObject:
  """Result of a successful upload."""

  ref: str
  url: str
  secure_url: str
  bytes: int
  width: int | None
  height: int | None
  format: str | None


class AssetStorage(Protocol):
  """Contract the services use for storing image payloads."""

  async def upload(self, data: bytes, metadata: UploadMetadata) -> StoredObject:
    """Store the payload and return its reference and public URLs."""

  async def download(self, ref: str) -> bytes:
    """Return the payload stored under ref."""

  async def delete(self, ref: str) -> None:
    """Delete the payload stored under ref."""


class StorageClient:
  """Thin wrapper over GCS and emulator access for asset upload/download."""

  def __init__(self, settings: Settings) -> None:
    self._bucket_name = settings.asset_bucket
    self._storage_host = settings.gcs_storage_host
    # Ensure emulator endpoint is visible to the SDK in local development.
    if self._storage_host:
      emulator_endpoint = _normalize_emulator_endpoint(self._storage_host)
      os.environ["STORAGE_EMULATOR_HOST"] = emulator_endpoint
      self._public_base = f"{emulator_endpoint}/{self._bucket_name}"
      self._client = storage.Client(project=settings.gcp_project_id or "local-dev", credentials=AnonymousCredentials(), client_options={"api_endpoint": emulator_endpoint})
    else:
      self._public_base = f"https://storage.googleapis.com/{self._bucket_name}"
      self._client = storage.Client(project=settings.gcp_project_id)

  @property
  def bucket_name(self) -> str:
    """Return the bucket that holds asset objects."""
    return self._bucket_name

  async def ensure_bucket(self) -> None:
    """Create the bucket when missing in local/dev flows."""
    # Keep production startup side-effect free; only auto-create in emulator mode.
    if not self._storage_host:
      return
    bucket = self._client.bucket(self._bucket_name)

    def _create_if_missing() -> None:
      if not bucket.exists(client=self._client):
        self._client.create_bucket(bucket)

    await run_in_threadpool(_create_if_missing)

  async def upload(self, data: bytes, metadata: UploadMetadata) -> StoredObject:
    """Convert the payload to WebP and upload it with cache directives."""
    try:
      webp_bytes, width, height = await run_in_threadpool(convert_to_webp, data)
    except (UnidentifiedImageError, OSError, ValueError) as exc:
      raise StorageError(f"Generated payload is not a readable image: {exc}") from exc

    blob = self._client.bucket(self._bucket_name).blob(metadata.object_name)
    blob.cache_control = "public, max-age=31536000"
    blob.content_type = "image/webp"
    blob.metadata = {"user_id": metadata.user_id, "subject_id": metadata.subject_id, "output_class": metadata.output_class}
    try:
      await run_in_threadpool(blob.upload_from_string, webp_bytes, "image/webp")
    except gcs_exceptions.GoogleAPIError as exc:
      raise StorageError(f"Upload failed for {metadata.object_name}: {exc}") from exc

    secure_url = f"{self._public_base}/{quote(metadata.object_name)}"
    url = secure_url.replace("https://", "http://", 1)
    return StoredObject(ref=metadata.object_name, url=url, secure_url=secure_url, bytes=len(webp_bytes), width=width, height=height, format="webp")

  async def download(self, ref: str) -> bytes:
    """Download object bytes."""
    blob = self._client.bucket(self._bucket_name).blob(ref)
    try:
      return await run_in_threadpool(blob.download_as_bytes)
    except gcs_exceptions.GoogleAPIError as exc:
      raise StorageError(f"Download failed for {ref}: {exc}") from exc

  async def delete(self, ref: str) -> None:
    """Delete an object; a missing object counts as deleted."""
    blob = self._client.bucket(self._bucket_name).blob(ref)
    try:
      await run_in_threadpool(blob.delete)
    except gcs_exceptions.NotFound:
      return
    except gcs_exceptions.GoogleAPIError as exc:
      raise StorageError(f"Delete failed for {ref}: {exc}") from exc


def build_storage_client(settings: Settings) -> StorageClient:
  """Create a storage client instance with environment-aware credentials."""
  return StorageClient(settings)


def convert_to_webp(image_bytes: bytes) -> tuple[bytes, int, int]:
  """Convert provider image bytes into a WebP payload and report its dimensions."""
  image = Image.open(io.BytesIO(image_bytes))
  # Convert palette and CMYK images first to avoid mode-related encoder errors.
  converted = image.convert("RGBA") if image.mode not in {"RGB", "RGBA"} else image
  output = io.BytesIO()
  converted.save(output, format="WEBP", quality=90, method=6)
  return output.getvalue(), converted.width, converted.height


def _normalize_emulator_endpoint(raw_endpoint: str) -> str:
  """Normalize emulator endpoint so the SDK receives scheme+host+port only."""
  parsed = urlparse(raw_endpoint)
  if not parsed.scheme or not parsed.netloc:
    return raw_endpoint.rstrip("/")
  return urlunparse((parsed.scheme, parsed.netloc, "", "", "", "")).rstrip("/")
