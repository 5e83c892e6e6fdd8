"""Image prompt construction for story illustrations."""

from typing import Optional


IMAGE_PROMPT_PREAMBLE = "Create a warm, nostalgic, vintage-style illustration for this memory: "
IMAGE_PROMPT_STYLE = (
    "Style: warm colors, soft lighting, emotional, heartwarming, "
    "vintage photography aesthetic, detailed, high quality."
)
NARRATIVE_EXCERPT_CHARS = 200


def build_image_prompt(narrative: Optional[str], title: Optional[str]) -> str:
    """Build the illustration prompt from the story title and narrative start.

    The narrative contributes its first 200 characters, followed by "..."
    when it was longer. The same inputs always give the same prompt.

    Example:
        >>> build_image_prompt("We baked bread.", "Grandma's Kitchen")
        "Create a warm, nostalgic, vintage-style illustration for this memory: Grandma's Kitchen. We baked bread.. Style: ..."
    """
    narrative = (narrative or "").strip()
    if len(narrative) > NARRATIVE_EXCERPT_CHARS:
        excerpt = narrative[:NARRATIVE_EXCERPT_CHARS] + "..."
    else:
        excerpt = narrative

    return f"{IMAGE_PROMPT_PREAMBLE}{(title or '').strip()}. {excerpt}. {IMAGE_PROMPT_STYLE}"
