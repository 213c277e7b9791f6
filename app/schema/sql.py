from __future__ import annotations

import datetime
import uuid

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.schema.assets import AssetExpression, AssetStyle, CharacterProfile, ContentCategory, GeneratedAsset, ReferenceImage  # noqa: F401
from app.schema.jobs import AssetGenerationJob  # noqa: F401
from app.schema.quotas import AdminGrant, AssetTierLimit, AssetUsagePeriod  # noqa: F401


class User(Base):
  __tablename__ = "users"

  id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
  firebase_uid: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
  email: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
  full_name: Mapped[str | None] = mapped_column(String, nullable=True)
  subscription_tier: Mapped[str] = mapped_column(String, nullable=False, default="free", server_default="free")
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
