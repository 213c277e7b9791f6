"""Admission control for generation requests: admin grants, tier limits, and usage."""

from __future__ import annotations

import datetime
import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Literal

from app.services.usage_ledger import Clock, UsageLedger, period_bounds, utc_now
from app.storage.quota_repo import AdminGrantRecord, QuotaRepository
from app.storage.usage_repo import UsageTotals

logger = logging.getLogger(__name__)

OUTPUT_CLASSES: tuple[str, ...] = ("16:9", "9:16")
LimitSource = Literal["grant", "tier"]


class UserNotFoundError(LookupError):
  """Raised when a usage summary is requested for an unknown user."""


@dataclass(frozen=True)
class EffectiveLimit:
  """The limit that applies to one (user, output class) pair."""

  max_iterations: int
  is_unlimited: bool
  resets_monthly: bool
  source: LimitSource


@dataclass(frozen=True)
class QuotaDecision:
  """Outcome of an admission check."""

  allowed: bool
  reason: str | None = None
  usage: UsageTotals = field(default_factory=UsageTotals)
  limit: EffectiveLimit | None = None
  requires_upgrade: bool = False
  has_grant: bool = False
  grant_type: str | None = None

  @property
  def remaining(self) -> int | None:
    """Iterations left in the current window; None when unlimited or unknown."""
    if self.limit is None or self.limit.is_unlimited:
      return None
    return max(self.limit.max_iterations - self.usage.iterations_used, 0)


class QuotaExceededError(RuntimeError):
  """Raised when a generation request is denied by admission control."""

  def __init__(self, decision: QuotaDecision) -> None:
    super().__init__(decision.reason or "Generation limit reached")
    self.decision = decision


@dataclass(frozen=True)
class OutputClassUsage:
  used: int
  assets_generated: int
  limit: int | None
  remaining: int | None
  is_unlimited: bool
  resets_monthly: bool


@dataclass(frozen=True)
class UsageSummary:
  """Per output class usage for display."""

  subscription_tier: str
  has_grant: bool
  grant_type: str | None
  period_start: datetime.date
  period_end: datetime.date
  by_output_class: dict[str, OutputClassUsage]


class QuotaResolver:
  """Decide whether a user may start another generation batch."""

  def __init__(self, repo: QuotaRepository, ledger: UsageLedger, *, grant_iterations_limit: int = 10, clock: Clock = utc_now) -> None:
    self._repo = repo
    self._ledger = ledger
    self._grant_iterations_limit = grant_iterations_limit
    self._clock = clock

  async def check_quota(self, user_id: uuid.UUID, output_class: str) -> QuotaDecision:
    """
    Resolve the effective limit and compare it with recorded usage.

    How/Why:
      - An active grant replaces the tier limit and always resets monthly.
      - Any failure while resolving admits the request; admission must not block on infrastructure errors.
    """
    try:
      return await self._resolve(user_id, output_class)
    except Exception as exc:  # noqa: BLE001
      logger.error("Quota resolution failed; admitting request user_id=%s output_class=%s", user_id, output_class, exc_info=True)
      return QuotaDecision(allowed=True, reason=f"Quota check unavailable ({type(exc).__name__}); request admitted")

  async def require_quota(self, user_id: uuid.UUID, output_class: str) -> QuotaDecision:
    """Run check_quota and raise QuotaExceededError on denial."""
    decision = await self.check_quota(user_id, output_class)
    if not decision.allowed:
      logger.info("Quota denied user_id=%s output_class=%s reason=%s", user_id, output_class, decision.reason)
      raise QuotaExceededError(decision)
    return decision

  async def usage_summary(self, user_id: uuid.UUID, output_classes: Iterable[str] = OUTPUT_CLASSES) -> UsageSummary:
    """Return used / limit / remaining for each output class."""
    tier = await self._repo.get_user_tier(user_id)
    if tier is None:
      raise UserNotFoundError(str(user_id))
    grant = await self._repo.get_active_grant(user_id, now=self._clock())
    period_start, period_end = period_bounds(self._clock())

    by_class: dict[str, OutputClassUsage] = {}
    for output_class in output_classes:
      limit = await self._effective_limit(tier, output_class, grant)
      if limit is None:
        # Unconfigured tier rows admit nothing.
        usage = await self._ledger.read(user_id, output_class, month_only=True)
        by_class[output_class] = OutputClassUsage(used=usage.iterations_used, assets_generated=usage.assets_generated, limit=0, remaining=0, is_unlimited=False, resets_monthly=True)
        continue
      usage = await self._ledger.read(user_id, output_class, month_only=limit.resets_monthly)
      if limit.is_unlimited:
        by_class[output_class] = OutputClassUsage(used=usage.iterations_used, assets_generated=usage.assets_generated, limit=None, remaining=None, is_unlimited=True, resets_monthly=limit.resets_monthly)
        continue
      remaining = max(limit.max_iterations - usage.iterations_used, 0)
      by_class[output_class] = OutputClassUsage(used=usage.iterations_used, assets_generated=usage.assets_generated, limit=limit.max_iterations, remaining=remaining, is_unlimited=False, resets_monthly=limit.resets_monthly)

    return UsageSummary(subscription_tier=tier, has_grant=grant is not None, grant_type=grant.grant_type if grant else None, period_start=period_start, period_end=period_end, by_output_class=by_class)

  async def _resolve(self, user_id: uuid.UUID, output_class: str) -> QuotaDecision:
    grant = await self._repo.get_active_grant(user_id, now=self._clock())
    if grant is not None:
      limit = EffectiveLimit(max_iterations=self._grant_iterations_limit, is_unlimited=False, resets_monthly=True, source="grant")
      usage = await self._ledger.read(user_id, output_class, month_only=True)
      if usage.iterations_used < limit.max_iterations:
        return QuotaDecision(allowed=True, usage=usage, limit=limit, has_grant=True, grant_type=grant.grant_type)
      reason = f"You have used all {limit.max_iterations} generations included in your {grant.grant_type} access for {output_class} this month. Contact support to extend it."
      return QuotaDecision(allowed=False, reason=reason, usage=usage, limit=limit, requires_upgrade=False, has_grant=True, grant_type=grant.grant_type)

    tier = await self._repo.get_user_tier(user_id)
    if tier is None:
      return QuotaDecision(allowed=False, reason="User not found")

    limit = await self._effective_limit(tier, output_class, None)
    if limit is None:
      return QuotaDecision(allowed=False, reason="Subscription tier limits not configured")
    if limit.is_unlimited:
      return QuotaDecision(allowed=True, limit=limit)

    usage = await self._ledger.read(user_id, output_class, month_only=limit.resets_monthly)
    if usage.iterations_used < limit.max_iterations:
      return QuotaDecision(allowed=True, usage=usage, limit=limit)

    window = "this month" if limit.resets_monthly else "on your plan"
    reason = f"You have reached the {tier} plan limit of {limit.max_iterations} {output_class} generations {window}. Upgrade to generate more."
    return QuotaDecision(allowed=False, reason=reason, usage=usage, limit=limit, requires_upgrade=True)

  async def _effective_limit(self, tier: str, output_class: str, grant: AdminGrantRecord | None) -> EffectiveLimit | None:
    if grant is not None:
      return EffectiveLimit(max_iterations=self._grant_iterations_limit, is_unlimited=False, resets_monthly=True, source="grant")
    row = await self._repo.get_tier_limit(tier, output_class)
    if row is None:
      return None
    return EffectiveLimit(max_iterations=row.max_iterations, is_unlimited=row.is_unlimited, resets_monthly=row.resets_monthly, source="tier")
