from __future__ import annotations

import uuid

import pytest

from app.services.references import ReferenceInputUnavailableError
from app.storage.catalog_repo import ReferenceImageRecord


def _reference(user_id: uuid.UUID, ref_id: int, storage) -> ReferenceImageRecord:
  ref = f"refs/{ref_id}.png"
  storage.objects[ref] = f"face-{ref_id}".encode()
  return ReferenceImageRecord(id=ref_id, user_id=user_id, storage_ref=ref, secure_url=f"https://storage.test/{ref}", mime_type="image/jpeg")


@pytest.mark.anyio
async def test_no_reference_ids_resolve_to_nothing(references) -> None:
  assert await references.resolve_images(uuid.uuid4(), []) == []


@pytest.mark.anyio
async def test_reference_images_are_downloaded(references, reference_repo, storage, user_id) -> None:
  reference_repo.images.extend([_reference(user_id, 1, storage), _reference(user_id, 2, storage)])

  inputs = await references.resolve_images(user_id, [1, 2])

  assert [item.data for item in inputs] == [b"face-1", b"face-2"]
  assert {item.mime_type for item in inputs} == {"image/jpeg"}


@pytest.mark.anyio
async def test_partially_missing_references_abort(references, reference_repo, storage, user_id) -> None:
  reference_repo.images.append(_reference(user_id, 1, storage))

  with pytest.raises(ReferenceInputUnavailableError, match=r"\[3\]"):
    await references.resolve_images(user_id, [1, 3])


@pytest.mark.anyio
async def test_other_users_references_are_not_visible(references, reference_repo, storage, user_id) -> None:
  reference_repo.images.append(_reference(uuid.uuid4(), 1, storage))

  with pytest.raises(ReferenceInputUnavailableError):
    await references.resolve_images(user_id, [1])


@pytest.mark.anyio
async def test_download_failure_aborts(references, reference_repo, storage, user_id) -> None:
  reference_repo.images.append(_reference(user_id, 1, storage))
  storage.fail_downloads = True

  with pytest.raises(ReferenceInputUnavailableError, match="Failed to fetch reference image 1"):
    await references.resolve_images(user_id, [1])


@pytest.mark.anyio
async def test_anchor_prefers_the_explicit_value(references, reference_repo, user_id) -> None:
  reference_repo.anchors[user_id] = "- Hair: black"

  assert await references.resolve_anchor(user_id, "  - Hair: red  ") == "- Hair: red"
  assert await references.resolve_anchor(user_id, "   ") == "- Hair: black"
  assert await references.resolve_anchor(uuid.uuid4(), None) is None
