"""Deterministic prompt construction for thumbnail variants."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from app.storage.catalog_repo import ExpressionRecord

DEFAULT_CHARACTER_ANCHOR: Final[str] = """CHARACTER ANCHOR ATTRIBUTES (Do not deviate):
- Race: Match exactly from reference images
- Age: Match exactly from reference images
- Face shape: Match exactly from reference images
- Eyes: Match exactly from reference images, including any glasses
- Hair: Match exactly from reference images
- Skin tone: Match exactly from reference images
- Distinguishing features: Match ALL distinguishing features from reference images exactly
- CRITICAL: The generated person MUST be identical to the person in the reference images"""

# (topic keywords, category keywords, background palette); first match wins.
_BACKGROUNDS: Final[tuple[tuple[tuple[str, ...], tuple[str, ...], str], ...]] = (
  (("money", "rich", "wealth", "broke"), (), "Lush green and vibrant gold color palette. Textures of cash, gold leaf, or high-end architectural gradients."),
  (("horror", "scary", "mystery", "ghost"), (), "Deep purple, midnight black, and eerie fog. Cold, desaturated tones with a single piercing accent color like neon green or crimson."),
  (("tech", "ai", "phone", "future"), (), "Electric cyan, deep navy, and holographic glass textures. Digital circuit patterns or data-stream bokeh."),
  (("nature", "ocean", "earth", "world"), (), "Vibrant forest greens, cerulean blues, and earthy browns. Organic textures and natural lens flares."),
  (("exposed", "truth", "news"), ("news",), "High-alert caution yellow and deep charcoal gray. Industrial textures, newspaper halftone patterns, or glowing orange embers."),
  (("break", "destroy", "rage", "war"), (), "High-energy collision background. Shattered glass, volcanic orange fire, and dark obsidian smoke."),
)
_DEFAULT_BACKGROUND: Final[str] = "A custom dynamic color palette derived from the emotional hook of the topic. Avoid repetitive red/blue splits. Use complementary high-contrast colors."

_HOOKS: Final[tuple[tuple[tuple[str, ...], str], ...]] = (
  (("break", "end", "destroy"), "A giant heavy sledgehammer smashing through a symbolic object with sparks and debris flying."),
  (("expose", "truth", "secret"), "Bright cinematic flares and glowing particles emerging from a dark void, revealing hidden elements."),
  (("curse", "spirit", "dark"), "Swirling cosmic energy with split themes of hellish fire (red/orange) and celestial ice (blue/cyan)."),
  (("money", "rich", "gold"), "Floating golden coins, bars, and luxury textures with high-end bokeh."),
)
_DEFAULT_HOOK: Final[str] = "A high-contrast, glowing symbolic element that represents the central hook of the topic, placed strategically to lead the eye."


@dataclass(frozen=True)
class PromptInputs:
  """Subject metadata and variant context for one prompt."""

  topic: str
  output_class: str
  style_description: str
  sub_topic: str | None = None
  category_key: str | None = None
  expression: ExpressionRecord | None = None
  character_anchor: str | None = None


def background_style(topic: str, category_key: str | None) -> str:
  """Pick a background palette by substring match on topic and category keywords."""
  lowered = (topic or "").lower()
  category = (category_key or "").lower()
  for keywords, category_keywords, palette in _BACKGROUNDS:
    if any(word in lowered for word in keywords) or any(word in category for word in category_keywords):
      return palette
  return _DEFAULT_BACKGROUND


def visual_hook(topic: str) -> str:
  lowered = (topic or "").lower()
  for keywords, hook in _HOOKS:
    if any(word in lowered for word in keywords):
      return hook
  return _DEFAULT_HOOK


def _orientation(output_class: str) -> tuple[str, str]:
  if output_class == "16:9":
    return (
      "landscape (16:9)",
      "Subject (Head + Shoulders) occupies 50% of the frame, positioned to one side (Rule of Thirds). TYPOGRAPHY LAYOUT: Place the text on the opposite side of the character or centered.",
    )
  return (
    "portrait (9:16)",
    "Subject (Head + Shoulders) occupies the middle-to-bottom half of the frame. TYPOGRAPHY LAYOUT: Place the text at the top or center-top area. Ensure vertical balance.",
  )


def _expression_block(expression: ExpressionRecord | None) -> str:
  if expression is None:
    return "EXPRESSION MAPPING:\nExpression Type: Natural, engaged, camera-aware.\nIntensity: Level 3 (expressive but natural)."
  return (
    "EXPRESSION MAPPING:\n"
    f"Expression Type: {expression.name}\n"
    f"Primary: {expression.primary_emotion}\n"
    f"Face Details: {expression.face_details}\n"
    f"Eyes: {expression.eye_details}\n"
    f'Intensity: Level {expression.intensity} (YouTube "Face" style - expressive but natural).'
  )


def build_generation_prompt(inputs: PromptInputs) -> str:
  """Build the full generation prompt; identical inputs always yield identical text."""
  orientation, composition = _orientation(inputs.output_class)
  has_sub_topic = bool(inputs.sub_topic and inputs.sub_topic.strip())
  anchor = f"CHARACTER ANCHOR ATTRIBUTES (Do not deviate):\n{inputs.character_anchor}" if inputs.character_anchor else DEFAULT_CHARACTER_ANCHOR

  if has_sub_topic:
    content = f'CONTENT:\n- Main Topic: "{inputs.topic}"\n- Sub-Topic: "{inputs.sub_topic}"'
    typography = (
      "COMPOSITION & TYPOGRAPHY:\n"
      f"- {composition}\n"
      "- MAIN TOPIC TEXT: Bold, high-impact 3D typography (Chrome, Gold, or White with thick borders).\n"
      "- SUB-TOPIC TEXT: High-readability sans-serif text placed directly below the main topic.\n"
      "- VISUAL SEPARATION: Include a glowing, cinematic horizontal line (divider) between the Main Topic and the Sub-Topic.\n"
      "- TEXT MUST BE SPELLED CORRECTLY - double-check every letter matches the provided topic exactly."
    )
    text_rule = "- Every word in the image must come directly from the topic/subtopic - no exceptions"
    sub_topic_check = "3. Is the Sub-Topic text spelled exactly as provided?"
  else:
    content = f'CONTENT:\n- Main Topic: "{inputs.topic}"\n- Sub-Topic: NONE - DO NOT ADD ANY SUBTITLE TEXT'
    typography = (
      "COMPOSITION & TYPOGRAPHY:\n"
      f"- {composition}\n"
      "- MAIN TOPIC TEXT ONLY: Bold, high-impact 3D typography (Chrome, Gold, or White with thick borders).\n"
      "- NO SUBTITLE: There is no sub-topic, so DO NOT add any subtitle, tagline, quote, or secondary text whatsoever.\n"
      "- DO NOT INVENT TEXT: Only render the Main Topic text. Nothing else.\n"
      "- TEXT MUST BE SPELLED CORRECTLY - double-check every letter matches the provided topic exactly."
    )
    text_rule = "- The ONLY text allowed is the Main Topic - absolutely NO other text"
    sub_topic_check = "3. Is there ANY subtitle or secondary text? (If yes, REMOVE IT - only Main Topic allowed)"

  sections = [
    "SYSTEM ROLE: Expert YouTube Thumbnail Designer creating PHOTOREALISTIC thumbnails.",
    f"TASK: Generate a high-CTR, viral-style thumbnail in {orientation} orientation.",
    "",
    "CRITICAL TEXT RULES (MANDATORY - READ CAREFULLY):",
    f"- ONLY include text that EXACTLY matches the Main Topic{' and Sub-Topic' if has_sub_topic else ''} provided below",
    "- DO NOT add any additional text, words, labels, watermarks, or captions",
    "- DO NOT invent, modify, abbreviate, or misspell any words",
    "- If you cannot render text clearly and correctly, OMIT IT ENTIRELY rather than rendering it incorrectly",
    text_rule,
    "",
    "REALISM REQUIREMENTS (MANDATORY):",
    "- The person MUST look like a real photograph, NOT digital art, CGI, or illustration",
    "- Use the reference images to match EXACT facial features, skin texture, and natural lighting",
    "- Skin should have natural texture, pores, and subtle imperfections",
    "",
    content,
    "",
    "CHARACTER CONSISTENCY (MANDATORY):",
    "Use the likeness from the provided reference images.",
    anchor,
    "",
    _expression_block(inputs.expression),
    "",
    typography,
    "",
    f"VISUAL HOOK: {visual_hook(inputs.topic)}",
    "",
    f"STYLE VARIATION: {inputs.style_description}",
    "",
    "BACKGROUND STYLE:",
    f"- {background_style(inputs.topic, inputs.category_key)}",
    "- Use cinematic depth, energetic particles, sparks, or relevant environmental bokeh.",
    "- Ensure the background colors complement the character's clothing and lighting.",
    "",
    "LIGHTING:",
    "- Dramatic 3/4 lighting on face. Strong rim light matching the background's primary accent color.",
    "- EYES: Enhanced catchlights and intense focus.",
    "",
    "VIRAL STYLE MODIFIERS:",
    "- Professional photography with cinematic color grading.",
    "- Hyper-saturated colors while maintaining skin tone accuracy. Extremely high contrast.",
    f"- Aspect Ratio: {inputs.output_class}.",
    "",
    "FINAL CHECKLIST:",
    "1. Does the person look photorealistic (not AI-generated)?",
    "2. Is the Main Topic text spelled exactly as provided?",
    sub_topic_check,
    "4. Is there any extra text that wasn't provided? (If yes, remove it)",
    "5. Does the person match the reference images?",
  ]
  return "\n".join(sections)
