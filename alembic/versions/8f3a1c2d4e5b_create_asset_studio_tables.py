"""create asset studio tables

Revision ID: 8f3a1c2d4e5b
Revises:
Create Date: 2026-10-18 09:12:41.503217

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "8f3a1c2d4e5b"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_OUTPUT_CLASSES = ("16:9", "9:16")

# (tier, max_iterations, is_unlimited, resets_monthly); free is a lifetime allowance.
_TIER_LIMITS = (
  ("free", 1, False, False),
  ("basic", 3, False, True),
  ("premium", 10, False, True),
  ("creator", 25, False, True),
  ("enterprise", 0, True, False),
)

_STYLES = (
  ("cinematic_drama", "Cinematic Drama", "High contrast, deep shadows, moody movie-poster aesthetics, dramatic rim lighting, lens flares.", 1),
  ("hyper_vibrant", "Hyper-Vibrant Pop", "Maximum saturation, neon accents, energetic particles, bright and eye-catching YouTube-style colors.", 2),
  ("clean_studio", "Clean & Studio", "Solid bold background, minimal clutter, sharp edges, studio-lit professional aesthetics, 3D typography.", 3),
  ("gritty_mystery", "Gritty & Mystery", "Raw textures, desaturated environment, single intense glowing focal point, heavy atmosphere, smoke/fog.", 4),
)

_EXPRESSIONS = (
  ("shock", "Shocking/Expose", "Wide-eyed disbelief", "Raised eyebrows, open mouth, tense forehead", "Widened, staring directly at viewer", 3, 1),
  ("excitement", "Exciting/Hype", "Ecstatic joy", "Huge smile, raised cheeks, visible teeth", "Bright, energetic, possibly looking up", 2, 2),
  ("fear", "Scary/Horror", "Genuine fear", "Pale complexion, furrowed brow, grimace", "Wide, pupils dilated, looking off-frame", 3, 3),
  ("concern", "Controversial/Drama", "Intense concern", "Frown, pursed lips, one raised eyebrow", "Narrowed, skeptical, side-eye optional", 2, 4),
  ("amazement", "Educational/Mind-blown", "Amazed realization", '"Aha" expression, slight smile, raised brows', "Wide but focused, enlightened look", 2, 5),
  ("sorrow", "Sad/Emotional", "Empathetic sorrow", "Downturned mouth, soft eyes, slight frown", "Glistening, compassionate, looking down", 1, 6),
  ("anger", "Angry/Rant", "Controlled fury", "Clenched jaw, flared nostrils, hard stare", "Intense, locked on viewer, brows lowered", 3, 7),
  ("confusion", "Confused/Mystery", "Puzzled curiosity", "Head tilt, squinted eyes, quirked mouth", "Searching, uncertain, one eye more closed", 2, 8),
  ("triumph", "Triumphant/Success", "Proud confidence", "Smirk or broad smile, chin up, relaxed face", "Direct, assured, slight squint of satisfaction", 2, 9),
  ("urgency", "Urgent/Breaking", "Alert intensity", "Serious expression, focused, slightly forward", "Locked on viewer, conveying importance", 3, 10),
)

_CATEGORIES = (
  ("entertainment", "Entertainment/Reaction", 1),
  ("educational", "Educational/Tutorial", 2),
  ("news", "News/Commentary", 3),
  ("lifestyle", "Lifestyle/Vlog", 4),
  ("drama", "Drama/Controversy", 5),
  ("review", "Review/Comparison", 6),
)


def _timestamp(name: str) -> sa.Column:
  return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False)


def upgrade() -> None:
  """Upgrade schema."""
  op.create_table(
    "users",
    sa.Column("id", sa.Uuid(), nullable=False),
    sa.Column("firebase_uid", sa.String(), nullable=False),
    sa.Column("email", sa.String(), nullable=False),
    sa.Column("full_name", sa.String(), nullable=True),
    sa.Column("subscription_tier", sa.String(), server_default="free", nullable=False),
    _timestamp("created_at"),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index("ix_users_firebase_uid", "users", ["firebase_uid"], unique=True)
  op.create_index("ix_users_email", "users", ["email"], unique=True)

  op.create_table(
    "asset_tier_limits",
    sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
    sa.Column("subscription_tier", sa.String(), nullable=False),
    sa.Column("output_class", sa.String(), nullable=False),
    sa.Column("max_iterations", sa.Integer(), nullable=False),
    sa.Column("is_unlimited", sa.Boolean(), server_default="false", nullable=False),
    sa.Column("resets_monthly", sa.Boolean(), server_default="true", nullable=False),
    _timestamp("created_at"),
    sa.PrimaryKeyConstraint("id"),
    sa.UniqueConstraint("subscription_tier", "output_class", name="ux_asset_tier_limits_tier_class"),
  )
  op.create_index("ix_asset_tier_limits_subscription_tier", "asset_tier_limits", ["subscription_tier"])

  op.create_table(
    "admin_grants",
    sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
    sa.Column("user_id", sa.Uuid(), nullable=False),
    sa.Column("grant_type", sa.String(), nullable=False),
    sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
    sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
    _timestamp("created_at"),
    sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index("ix_admin_grants_user_id", "admin_grants", ["user_id"])

  op.create_table(
    "asset_usage_periods",
    sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
    sa.Column("user_id", sa.Uuid(), nullable=False),
    sa.Column("output_class", sa.String(), nullable=False),
    sa.Column("period_start", sa.Date(), nullable=False),
    sa.Column("period_end", sa.Date(), nullable=False),
    sa.Column("iterations_used", sa.Integer(), server_default="0", nullable=False),
    sa.Column("assets_generated", sa.Integer(), server_default="0", nullable=False),
    _timestamp("created_at"),
    _timestamp("updated_at"),
    sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    sa.PrimaryKeyConstraint("id"),
    sa.UniqueConstraint("user_id", "output_class", "period_start", name="ux_asset_usage_periods_user_class_period"),
  )
  op.create_index("ix_asset_usage_periods_user_id", "asset_usage_periods", ["user_id"])

  op.create_table(
    "asset_generation_jobs",
    sa.Column("job_id", sa.String(), nullable=False),
    sa.Column("user_id", sa.Uuid(), nullable=False),
    sa.Column("subject_id", sa.String(), nullable=False),
    sa.Column("output_class", sa.String(), nullable=False),
    sa.Column("status", sa.String(), server_default="pending", nullable=False),
    sa.Column("progress", sa.Integer(), server_default="0", nullable=False),
    sa.Column("current_variant", sa.String(), nullable=True),
    sa.Column("generated_asset_ids", postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'[]'::jsonb"), nullable=False),
    sa.Column("errors", postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'[]'::jsonb"), nullable=False),
    sa.Column("request_json", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    _timestamp("created_at"),
    sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    _timestamp("updated_at"),
    sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    sa.PrimaryKeyConstraint("job_id"),
  )
  op.create_index("ix_asset_generation_jobs_user_id", "asset_generation_jobs", ["user_id"])
  op.create_index("ix_asset_generation_jobs_subject_id", "asset_generation_jobs", ["subject_id"])
  op.create_index("ix_asset_generation_jobs_active_key", "asset_generation_jobs", ["user_id", "subject_id", "output_class"], postgresql_where=sa.text("status IN ('pending', 'processing')"))

  op.create_table(
    "generated_assets",
    sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
    sa.Column("subject_id", sa.String(), nullable=False),
    sa.Column("user_id", sa.Uuid(), nullable=False),
    sa.Column("output_class", sa.String(), nullable=False),
    sa.Column("style_key", sa.String(), nullable=False),
    sa.Column("generation_order", sa.Integer(), nullable=False),
    sa.Column("version", sa.Integer(), server_default="1", nullable=False),
    sa.Column("parent_asset_id", sa.BigInteger(), nullable=True),
    sa.Column("refinement_instruction", sa.Text(), nullable=True),
    sa.Column("is_selected", sa.Boolean(), server_default="false", nullable=False),
    sa.Column("storage_ref", sa.String(), nullable=False),
    sa.Column("url", sa.String(), nullable=False),
    sa.Column("secure_url", sa.String(), nullable=False),
    sa.Column("byte_size", sa.Integer(), nullable=True),
    sa.Column("width", sa.Integer(), nullable=True),
    sa.Column("height", sa.Integer(), nullable=True),
    sa.Column("format", sa.String(), nullable=True),
    sa.Column("topic", sa.Text(), nullable=True),
    _timestamp("created_at"),
    sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    sa.ForeignKeyConstraint(["parent_asset_id"], ["generated_assets.id"], ondelete="SET NULL"),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index("ix_generated_assets_subject_id", "generated_assets", ["subject_id"])
  op.create_index("ix_generated_assets_user_id", "generated_assets", ["user_id"])
  op.create_index("ix_generated_assets_subject_class", "generated_assets", ["user_id", "subject_id", "output_class"])
  op.create_index("ux_generated_assets_selected_subject", "generated_assets", ["user_id", "subject_id"], unique=True, postgresql_where=sa.text("is_selected"))

  op.create_table(
    "reference_images",
    sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
    sa.Column("user_id", sa.Uuid(), nullable=False),
    sa.Column("storage_ref", sa.String(), nullable=False),
    sa.Column("secure_url", sa.String(), nullable=False),
    sa.Column("mime_type", sa.String(), server_default="image/png", nullable=False),
    sa.Column("display_name", sa.String(), nullable=True),
    sa.Column("is_default", sa.Boolean(), server_default="false", nullable=False),
    _timestamp("created_at"),
    sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index("ix_reference_images_user_id", "reference_images", ["user_id"])

  op.create_table(
    "character_profiles",
    sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
    sa.Column("user_id", sa.Uuid(), nullable=False),
    sa.Column("profile_name", sa.String(), nullable=False),
    sa.Column("anchor_text", sa.Text(), nullable=False),
    sa.Column("is_default", sa.Boolean(), server_default="false", nullable=False),
    sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
    _timestamp("created_at"),
    sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index("ix_character_profiles_user_id", "character_profiles", ["user_id"])

  styles = op.create_table(
    "asset_styles",
    sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
    sa.Column("key", sa.String(), nullable=False),
    sa.Column("name", sa.String(), nullable=False),
    sa.Column("description", sa.Text(), nullable=False),
    sa.Column("display_order", sa.Integer(), nullable=False),
    sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
    sa.PrimaryKeyConstraint("id"),
    sa.UniqueConstraint("key"),
  )
  expressions = op.create_table(
    "asset_expressions",
    sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
    sa.Column("key", sa.String(), nullable=False),
    sa.Column("name", sa.String(), nullable=False),
    sa.Column("primary_emotion", sa.String(), nullable=False),
    sa.Column("face_details", sa.Text(), nullable=False),
    sa.Column("eye_details", sa.Text(), nullable=False),
    sa.Column("intensity", sa.Integer(), nullable=False),
    sa.Column("display_order", sa.Integer(), nullable=False),
    sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
    sa.PrimaryKeyConstraint("id"),
    sa.UniqueConstraint("key"),
  )
  categories = op.create_table(
    "asset_content_categories",
    sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
    sa.Column("key", sa.String(), nullable=False),
    sa.Column("name", sa.String(), nullable=False),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("display_order", sa.Integer(), nullable=False),
    sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
    sa.PrimaryKeyConstraint("id"),
    sa.UniqueConstraint("key"),
  )

  tier_limits = sa.table(
    "asset_tier_limits",
    sa.column("subscription_tier", sa.String()),
    sa.column("output_class", sa.String()),
    sa.column("max_iterations", sa.Integer()),
    sa.column("is_unlimited", sa.Boolean()),
    sa.column("resets_monthly", sa.Boolean()),
  )
  op.bulk_insert(
    tier_limits,
    [
      {"subscription_tier": tier, "output_class": output_class, "max_iterations": max_iterations, "is_unlimited": is_unlimited, "resets_monthly": resets_monthly}
      for tier, max_iterations, is_unlimited, resets_monthly in _TIER_LIMITS
      for output_class in _OUTPUT_CLASSES
    ],
  )
  op.bulk_insert(styles, [{"key": key, "name": name, "description": description, "display_order": order} for key, name, description, order in _STYLES])
  op.bulk_insert(
    expressions,
    [
      {"key": key, "name": name, "primary_emotion": emotion, "face_details": face, "eye_details": eyes, "intensity": intensity, "display_order": order}
      for key, name, emotion, face, eyes, intensity, order in _EXPRESSIONS
    ],
  )
  op.bulk_insert(categories, [{"key": key, "name": name, "display_order": order} for key, name, order in _CATEGORIES])


def downgrade() -> None:
  """Downgrade schema."""
  for table in (
    "asset_content_categories",
    "asset_expressions",
    "asset_styles",
    "character_profiles",
    "reference_images",
    "generated_assets",
    "asset_generation_jobs",
    "asset_usage_periods",
    "admin_grants",
    "asset_tier_limits",
    "users",
  ):
    op.drop_table(table)
