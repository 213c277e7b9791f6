"""Schema package exports."""

from .assets import AssetExpression, AssetStyle, CharacterProfile, ContentCategory, GeneratedAsset, ReferenceImage
from .jobs import AssetGenerationJob
from .quotas import AdminGrant, AssetTierLimit, AssetUsagePeriod
from .sql import User

__all__ = ["AdminGrant", "AssetExpression", "AssetGenerationJob", "AssetStyle", "AssetTierLimit", "AssetUsagePeriod", "CharacterProfile", "ContentCategory", "GeneratedAsset", "ReferenceImage", "User"]
