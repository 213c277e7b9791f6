"""Storage interfaces for tier limits, admin grants, and user tiers."""

from __future__ import annotations

import datetime
import uuid
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class TierLimitRecord:
  """Configured allowance for one subscription tier and output class."""

  subscription_tier: str
  output_class: str
  max_iterations: int
  is_unlimited: bool
  resets_monthly: bool


@dataclass(frozen=True)
class AdminGrantRecord:
  """Administrative grant overriding the user's tier."""

  id: int
  user_id: uuid.UUID
  grant_type: str
  is_active: bool
  expires_at: datetime.datetime | None
  created_at: datetime.datetime


class QuotaRepository(Protocol):
  """Repository contract for admission-control lookups."""

  async def get_user_tier(self, user_id: uuid.UUID) -> str | None:
    """Return the user's subscription tier, or None when the user does not exist."""

  async def get_tier_limit(self, tier: str, output_class: str) -> TierLimitRecord | None:
    """Return the limit row for (tier, output class)."""

  async def get_active_grant(self, user_id: uuid.UUID, *, now: datetime.datetime) -> AdminGrantRecord | None:
    """Return the newest active, unexpired grant for the user."""
