from __future__ import annotations

from app.ai.prompts import DEFAULT_CHARACTER_ANCHOR, PromptInputs, background_style, build_generation_prompt, visual_hook
from app.storage.catalog_repo import ExpressionRecord


def _inputs(**overrides: object) -> PromptInputs:
  values: dict[str, object] = {"topic": "How I Got Rich", "output_class": "16:9", "style_description": "High contrast, deep shadows."}
  values.update(overrides)
  return PromptInputs(**values)  # type: ignore[arg-type]


def test_prompt_is_deterministic() -> None:
  assert build_generation_prompt(_inputs()) == build_generation_prompt(_inputs())


def test_orientation_follows_output_class() -> None:
  assert "landscape (16:9)" in build_generation_prompt(_inputs())
  portrait = build_generation_prompt(_inputs(output_class="9:16"))
  assert "portrait (9:16)" in portrait
  assert "Aspect Ratio: 9:16." in portrait


def test_sub_topic_controls_typography_rules() -> None:
  without = build_generation_prompt(_inputs())
  with_sub = build_generation_prompt(_inputs(sub_topic="In 30 Days"))

  assert "Sub-Topic: NONE" in without
  assert 'Sub-Topic: "In 30 Days"' in with_sub
  assert "VISUAL SEPARATION" in with_sub
  assert "VISUAL SEPARATION" not in without


def test_blank_sub_topic_counts_as_missing() -> None:
  assert "Sub-Topic: NONE" in build_generation_prompt(_inputs(sub_topic="   "))


def test_character_anchor_defaults_when_absent() -> None:
  assert DEFAULT_CHARACTER_ANCHOR in build_generation_prompt(_inputs())
  custom = build_generation_prompt(_inputs(character_anchor="- Hair: short red curls"))
  assert "- Hair: short red curls" in custom
  assert DEFAULT_CHARACTER_ANCHOR not in custom


def test_expression_details_are_rendered() -> None:
  expression = ExpressionRecord(key="shock", name="Shocking/Expose", primary_emotion="Wide-eyed disbelief", face_details="Raised eyebrows", eye_details="Widened", intensity=4, display_order=1)

  prompt = build_generation_prompt(_inputs(expression=expression))

  assert "Expression Type: Shocking/Expose" in prompt
  assert "Intensity: Level 4" in prompt


def test_background_matches_topic_then_category() -> None:
  assert background_style("Money Secrets", None).startswith("Lush green")
  assert background_style("Weekly recap", "news").startswith("High-alert caution yellow")
  assert background_style("Cooking pasta", None).startswith("A custom dynamic color palette")


def test_visual_hook_falls_back_to_default() -> None:
  assert "sledgehammer" in visual_hook("Why Everything Will Break")
  assert visual_hook("Cooking pasta").startswith("A high-contrast, glowing symbolic element")
