from __future__ import annotations

import pytest

from app.services.jobs import GenerationOptions
from app.services.quotas import QuotaExceededError
from app.storage.catalog_repo import StyleRecord


@pytest.mark.anyio
async def test_explicit_styles_beyond_the_retention_bound_are_rejected(generation_service) -> None:
  options = GenerationOptions(subject_id="video-1", output_class="16:9", style_keys=["cinematic_drama"] * 5)

  with pytest.raises(ValueError, match="At most 4 styles"):
    await generation_service.build_request(options)


@pytest.mark.anyio
async def test_default_styles_are_truncated_to_the_retention_bound(generation_service, catalog_repo) -> None:
  catalog_repo.catalog.styles.extend([StyleRecord(key="retro_wave", name="Retro Wave", description="Synth grid.", display_order=5), StyleRecord(key="noir", name="Noir", description="Monochrome.", display_order=6)])

  request = await generation_service.build_request(GenerationOptions(subject_id="video-1", output_class="16:9"))

  assert [spec.key for spec in request.variant_specs] == ["cinematic_drama", "hyper_vibrant", "clean_studio", "gritty_mystery"]


@pytest.mark.anyio
async def test_a_full_batch_keeps_every_asset_it_generated(generation_service, orchestrator, jobs_repo, assets_repo, seed_asset, user_id) -> None:
  older = [await seed_asset(order=order) for order in range(1, 5)]
  request = await generation_service.build_request(GenerationOptions(subject_id="video-1", output_class="16:9", topic="Topic"))

  job_id = await generation_service.submit_generation(user_id, request)
  await orchestrator.process_job(job_id)

  record = jobs_repo.records[job_id]
  view = await generation_service.get_job_status(job_id, user_id)
  assert len(record.generated_asset_ids) == 4
  assert [asset.id for asset in view.assets] == record.generated_asset_ids
  assert view.assets[0].is_selected is True
  assert not any(asset.id in assets_repo.rows for asset in older)


@pytest.mark.anyio
async def test_concurrent_submissions_can_overshoot_the_limit_by_one_batch(generation_service, orchestrator, quota_repo, ledger, user_id) -> None:
  """Both submissions pass against the same zero-usage snapshot; each completed job is still charged."""
  quota_repo.tiers[user_id] = "free"
  request = await generation_service.build_request(GenerationOptions(subject_id="video-1", output_class="16:9", style_keys=["cinematic_drama"], topic="Topic"))

  first = await generation_service.submit_generation(user_id, request)
  second = await generation_service.submit_generation(user_id, request)
  await orchestrator.process_job(first)
  await orchestrator.process_job(second)

  usage = await ledger.read(user_id, "16:9", month_only=False)
  assert usage.iterations_used == 2
  assert usage.assets_generated == 2
  with pytest.raises(QuotaExceededError):
    await generation_service.submit_generation(user_id, request)
