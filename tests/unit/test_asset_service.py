from __future__ import annotations

import uuid

import pytest

from app.ai.providers.base import PermanentGenerationError
from app.jobs.models import GenerationRequest, VariantSpec
from app.services.assets import AssetNotFoundError, RegenerationInProgressError
from app.services.quotas import QuotaExceededError

VARIANT = VariantSpec(key="cinematic_drama", description="High contrast")


async def _create(asset_service, user_id, *, index: int, subject_id: str = "video-1", output_class: str = "16:9"):
  return await asset_service.create_from_job(user_id=user_id, subject_id=subject_id, output_class=output_class, variant=VARIANT, index=index, image=b"png-bytes", topic="Topic")


@pytest.mark.anyio
async def test_first_variant_is_selected_when_subject_has_no_selection(asset_service, assets_repo, storage, user_id) -> None:
  first = await _create(asset_service, user_id, index=0)
  second = await _create(asset_service, user_id, index=1)

  assert first.is_selected is True
  assert second.is_selected is False
  assert (first.generation_order, second.generation_order) == (1, 2)
  assert first.version == 1
  assert first.storage_ref in storage.objects


@pytest.mark.anyio
async def test_first_variant_does_not_steal_an_existing_selection(asset_service, assets_repo, seed_asset, user_id) -> None:
  existing = await seed_asset(select=True)

  created = await _create(asset_service, user_id, index=0)

  assert created.is_selected is False
  assert [asset.id for asset in assets_repo.selected("video-1")] == [existing.id]


@pytest.mark.anyio
async def test_failed_insert_removes_the_uploaded_payload(asset_service, assets_repo, storage, user_id) -> None:
  assets_repo.fail_inserts = True

  with pytest.raises(RuntimeError):
    await _create(asset_service, user_id, index=0)

  assert storage.objects == {}
  assert len(storage.deleted) == 1


@pytest.mark.anyio
async def test_retention_keeps_the_newest_assets_per_output_class(asset_service, assets_repo, seed_asset, user_id) -> None:
  seeded = [await seed_asset(order=order) for order in range(1, 5)]
  other_class = await seed_asset(output_class="9:16")

  created = await _create(asset_service, user_id, index=0)

  remaining = await assets_repo.list_for_subject(user_id, "video-1", output_class="16:9")
  assert len(remaining) == 4
  assert seeded[0].id not in {asset.id for asset in remaining}
  assert created.id in {asset.id for asset in remaining}
  assert other_class.id in assets_repo.rows


@pytest.mark.anyio
async def test_refine_creates_a_child_version_without_touching_the_parent(asset_service, assets_repo, generator, seed_asset, user_id) -> None:
  parent = await seed_asset(select=True)

  child = await asset_service.refine(parent.id, user_id, "  make the text bigger ")

  assert child.version == parent.version + 1
  assert child.parent_asset_id == parent.id
  assert child.refinement_instruction == "make the text bigger"
  assert child.is_selected is False
  assert (child.subject_id, child.output_class, child.style_key, child.generation_order) == (parent.subject_id, parent.output_class, parent.style_key, parent.generation_order)
  assert assets_repo.rows[parent.id] == parent
  assert generator.edits == ["make the text bigger"]


@pytest.mark.anyio
async def test_refine_rejects_empty_instructions(asset_service, seed_asset, user_id) -> None:
  parent = await seed_asset()

  with pytest.raises(ValueError):
    await asset_service.refine(parent.id, user_id, "   ")


@pytest.mark.anyio
async def test_refine_failure_creates_nothing(asset_service, assets_repo, generator, seed_asset, user_id) -> None:
  parent = await seed_asset()
  generator.script = [PermanentGenerationError("edit refused")]

  with pytest.raises(PermanentGenerationError):
    await asset_service.refine(parent.id, user_id, "add fire")

  assert list(assets_repo.rows) == [parent.id]


@pytest.mark.anyio
async def test_refine_of_foreign_asset_is_not_found(asset_service, seed_asset) -> None:
  parent = await seed_asset()

  with pytest.raises(AssetNotFoundError):
    await asset_service.refine(parent.id, uuid.uuid4(), "add fire")


@pytest.mark.anyio
async def test_select_leaves_exactly_one_selected_asset(asset_service, assets_repo, seed_asset, user_id) -> None:
  first = await seed_asset(select=True)
  second = await seed_asset(order=2)

  await asset_service.select(second.id, user_id)

  assert [asset.id for asset in assets_repo.selected("video-1")] == [second.id]
  assert assets_repo.rows[first.id].is_selected is False


@pytest.mark.anyio
async def test_deleting_the_selected_asset_promotes_the_newest_remaining(asset_service, assets_repo, storage, seed_asset, user_id) -> None:
  selected = await seed_asset(select=True)
  await seed_asset(order=2)
  newest = await seed_asset(order=3)

  promoted = await asset_service.delete(selected.id, user_id)

  assert promoted == newest.id
  assert [asset.id for asset in assets_repo.selected("video-1")] == [newest.id]
  assert selected.storage_ref in storage.deleted


@pytest.mark.anyio
async def test_deleting_an_unselected_asset_keeps_the_selection(asset_service, assets_repo, seed_asset, user_id) -> None:
  selected = await seed_asset(select=True)
  other = await seed_asset(order=2)

  promoted = await asset_service.delete(other.id, user_id)

  assert promoted is None
  assert [asset.id for asset in assets_repo.selected("video-1")] == [selected.id]


@pytest.mark.anyio
async def test_storage_failure_does_not_block_delete(asset_service, assets_repo, storage, seed_asset, user_id) -> None:
  asset = await seed_asset()
  storage.fail_deletes = True

  await asset_service.delete(asset.id, user_id)

  assert asset.id not in assets_repo.rows


@pytest.mark.anyio
async def test_delete_of_missing_asset_is_not_found(asset_service, user_id) -> None:
  with pytest.raises(AssetNotFoundError):
    await asset_service.delete(999, user_id)


@pytest.mark.anyio
async def test_list_assets_only_returns_the_callers_assets(asset_service, seed_asset, user_id) -> None:
  mine = await seed_asset()
  await seed_asset(owner=uuid.uuid4())

  assets = await asset_service.list_assets("video-1", user_id)

  assert [asset.id for asset in assets] == [mine.id]


def _regen_request(output_class: str = "16:9") -> GenerationRequest:
  return GenerationRequest(subject_id="video-1", output_class=output_class, variant_specs=[VARIANT], topic="Topic")


@pytest.mark.anyio
async def test_regenerate_denied_by_quota_deletes_nothing(asset_service, assets_repo, quota, quota_repo, ledger, orchestrator, jobs_repo, seed_asset, user_id) -> None:
  quota_repo.tiers[user_id] = "free"
  await ledger.increment(user_id, "16:9", iteration_delta=1, asset_delta=4)
  existing = await seed_asset(select=True)

  with pytest.raises(QuotaExceededError) as excinfo:
    await asset_service.regenerate(user_id, _regen_request(), quota=quota, jobs=jobs_repo, submitter=orchestrator)

  assert excinfo.value.decision.requires_upgrade is True
  assert existing.id in assets_repo.rows
  assert jobs_repo.records == {}


@pytest.mark.anyio
async def test_regenerate_replaces_only_the_requested_output_class(asset_service, assets_repo, storage, quota, orchestrator, jobs_repo, seed_asset, user_id) -> None:
  landscape = await seed_asset(select=True)
  portrait = await seed_asset(output_class="9:16")

  job_id = await asset_service.regenerate(user_id, _regen_request(), quota=quota, jobs=jobs_repo, submitter=orchestrator)

  assert landscape.id not in assets_repo.rows
  assert portrait.id in assets_repo.rows
  assert landscape.storage_ref in storage.deleted
  assert jobs_repo.records[job_id].status == "pending"
  # The cleared selection moves to the surviving portrait asset.
  assert [asset.id for asset in assets_repo.selected("video-1")] == [portrait.id]

  await orchestrator.process_job(job_id)
  (fresh,) = await assets_repo.list_for_subject(user_id, "video-1", output_class="16:9")
  assert fresh.is_selected is False
  assert [asset.id for asset in assets_repo.selected("video-1")] == [portrait.id]


@pytest.mark.anyio
async def test_regenerate_of_the_only_output_class_selects_the_new_batch(asset_service, assets_repo, quota, orchestrator, jobs_repo, seed_asset, user_id) -> None:
  await seed_asset(select=True)

  job_id = await asset_service.regenerate(user_id, _regen_request(), quota=quota, jobs=jobs_repo, submitter=orchestrator)
  assert assets_repo.selected("video-1") == []

  await orchestrator.process_job(job_id)
  (fresh,) = await assets_repo.list_for_subject(user_id, "video-1", output_class="16:9")
  assert fresh.is_selected is True


@pytest.mark.anyio
async def test_regenerate_keeps_a_selection_when_the_new_batch_fails(asset_service, assets_repo, generator, quota, orchestrator, jobs_repo, seed_asset, user_id) -> None:
  await seed_asset(select=True)
  portrait = await seed_asset(output_class="9:16")
  generator.script = [PermanentGenerationError("safety block")]

  job_id = await asset_service.regenerate(user_id, _regen_request(), quota=quota, jobs=jobs_repo, submitter=orchestrator)
  await orchestrator.process_job(job_id)

  assert jobs_repo.records[job_id].status == "failed"
  assert [asset.id for asset in assets_repo.selected("video-1")] == [portrait.id]


@pytest.mark.anyio
async def test_regenerate_is_rejected_while_a_job_is_running(asset_service, assets_repo, quota, orchestrator, jobs_repo, seed_asset, user_id) -> None:
  existing = await seed_asset()
  running = await orchestrator.submit(user_id, _regen_request())

  with pytest.raises(RegenerationInProgressError) as excinfo:
    await asset_service.regenerate(user_id, _regen_request(), quota=quota, jobs=jobs_repo, submitter=orchestrator)

  assert excinfo.value.job_id == running
  assert existing.id in assets_repo.rows


@pytest.mark.anyio
async def test_regenerate_continues_when_payload_deletes_fail(asset_service, assets_repo, storage, quota, orchestrator, jobs_repo, seed_asset, user_id) -> None:
  existing = await seed_asset()
  storage.fail_deletes = True

  job_id = await asset_service.regenerate(user_id, _regen_request(), quota=quota, jobs=jobs_repo, submitter=orchestrator)

  assert existing.id not in assets_repo.rows
  assert job_id in jobs_repo.records


OTHER_USER = uuid.UUID("0b7e4d2a-91c3-4f6e-8a5d-2c1b3e4f5a60")


@pytest.mark.anyio
async def test_first_variant_is_selected_even_when_another_user_has_a_selection_on_the_same_subject(asset_service, assets_repo, seed_asset, user_id) -> None:
  theirs = await seed_asset(select=True, owner=OTHER_USER)

  mine = await _create(asset_service, user_id, index=0)

  assert mine.is_selected is True
  assert [asset.id for asset in assets_repo.selected("video-1", owner=OTHER_USER)] == [theirs.id]


@pytest.mark.anyio
async def test_retention_never_prunes_another_users_assets(asset_service, assets_repo, storage, seed_asset, user_id) -> None:
  theirs = [await seed_asset(order=order, owner=OTHER_USER) for order in range(1, 5)]

  await _create(asset_service, user_id, index=0)

  assert all(asset.id in assets_repo.rows for asset in theirs)
  assert storage.deleted == []


@pytest.mark.anyio
async def test_select_leaves_another_users_selection_alone(asset_service, assets_repo, seed_asset, user_id) -> None:
  theirs = await seed_asset(select=True, owner=OTHER_USER)
  mine = await seed_asset()

  await asset_service.select(mine.id, user_id)

  assert [asset.id for asset in assets_repo.selected("video-1", owner=OTHER_USER)] == [theirs.id]
  assert [asset.id for asset in assets_repo.selected("video-1", owner=user_id)] == [mine.id]


@pytest.mark.anyio
async def test_deleting_a_selection_never_promotes_another_users_asset(asset_service, assets_repo, seed_asset, user_id) -> None:
  theirs = await seed_asset(owner=OTHER_USER)
  mine = await seed_asset(select=True)

  promoted = await asset_service.delete(mine.id, user_id)

  assert promoted is None
  assert assets_repo.rows[theirs.id].is_selected is False


@pytest.mark.anyio
async def test_regenerate_only_clears_the_callers_assets(asset_service, assets_repo, storage, quota, orchestrator, jobs_repo, seed_asset, user_id) -> None:
  theirs = await seed_asset(select=True, owner=OTHER_USER)
  mine = await seed_asset(select=True)

  await asset_service.regenerate(user_id, _regen_request(), quota=quota, jobs=jobs_repo, submitter=orchestrator)

  assert mine.id not in assets_repo.rows
  assert assets_repo.rows[theirs.id].is_selected is True
  assert theirs.storage_ref in storage.objects
  assert theirs.storage_ref not in storage.deleted
