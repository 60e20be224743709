"""Prompt builders and request options for tabletop image generation."""

from __future__ import annotations

from collections.abc import Sequence

IMAGE_SIZES: dict[str, str] = {
    "small": "256x256",
    "medium": "512x512",
    "large": "1024x1024",
    "wide": "1792x1024",
    "tall": "1024x1792",
}
IMAGE_QUALITIES: tuple[str, ...] = ("standard", "hd", "low", "medium", "high")
IMAGE_STYLES: tuple[str, ...] = ("vivid", "natural")

ART_STYLES: dict[str, str] = {
    "fantasy": "high fantasy art style, magical, detailed illustration",
    "realistic": "realistic digital painting, photorealistic, detailed",
    "sketch": "pencil sketch style, hand-drawn, artistic",
}

MOODS: dict[str, str] = {
    "dramatic": "dramatic lighting, epic composition, intense atmosphere",
    "peaceful": "serene atmosphere, soft lighting, tranquil scene",
    "mysterious": "dark atmosphere, foggy, enigmatic, shadows",
    "action": "dynamic composition, motion blur, intense action",
}

LIGHTING: dict[str, str] = {
    "torchlit": "warm torchlight, flickering shadows, orange glow",
    "moonlight": "soft moonlight, silver tones, night atmosphere",
    "daylight": "bright daylight, clear skies, natural lighting",
    "candlelight": "soft candlelight, intimate atmosphere, warm tones",
    "magical": "magical glow, ethereal light, mystical atmosphere",
}


def build_infographic_prompt(
    description: str,
    *,
    style: str = "fantasy",
    mood: str = "dramatic",
    elements: Sequence[str] = (),
) -> str:
    """Compose an infographic prompt; unknown style or mood fall back to the defaults."""

    parts = [
        f"{ART_STYLES.get(style, ART_STYLES['fantasy'])}, {MOODS.get(mood, MOODS['dramatic'])}.",
        f"Scene: {description}.",
    ]
    if elements:
        parts.append(f"Include: {', '.join(elements)}.")
    parts.append("RPG tabletop game illustration, high quality, detailed.")
    return " ".join(parts)


def build_scene_prompt(
    description: str,
    *,
    location: str = "",
    lighting: str = "",
    characters: Sequence[str] = (),
) -> str:
    """Compose a scene illustration prompt; unknown lighting is passed through verbatim."""

    parts = [
        "Fantasy RPG scene illustration, high fantasy art style, detailed.",
        f"Scene: {description}.",
    ]
    if location:
        parts.append(f"Location: {location}.")
    if lighting:
        parts.append(f"Lighting: {LIGHTING.get(lighting, lighting)}.")
    if characters:
        parts.append(f"Characters: {', '.join(characters)}.")
    parts.append("Cinematic composition, tabletop RPG game art.")
    return " ".join(parts)
