"""Lookup tables keyed by preset name.

Unknown keys resolve here, once: an empty style suffix, 1080p, a static camera.
"""
from __future__ import annotations

from schemas import CameraState, CameraWork

STYLE_PROMPTS: dict[str, str] = {
    "anime":         "anime style, cel shaded, vibrant colors, clean lines",
    "pixar":         "3D Pixar style, soft lighting, expressive characters",
    "comic-book":    "comic book style, bold outlines, halftone dots",
    "watercolor":    "watercolor painting, soft edges, flowing colors",
    "oil-painting":  "oil painting, thick brushstrokes, rich textures",
    "cyberpunk":     "cyberpunk aesthetic, neon lights, dark atmosphere",
    "noir":          "film noir style, high contrast, dramatic shadows",
    "retro-cartoon": "1930s cartoon style, rubber hose animation",
    "realistic":     "photorealistic, detailed textures, natural lighting",
    "minimalist":    "minimalist design, simple shapes, limited palette",
    "custom":        "",
}

RESOLUTIONS: dict[str, tuple[int, int]] = {
    "720p":          (1280, 720),
    "1080p":         (1920, 1080),
    "4k":            (3840, 2160),
    "portrait-1080": (1080, 1920),
    "square-1080":   (1080, 1080),
}
DEFAULT_RESOLUTION = "1080p"

# movement -> (start overrides, end overrides, easing)
CAMERA_MOVES: dict[str, tuple[dict, dict, str]] = {
    "static":     ({}, {}, "linear"),
    "pan-left":   ({}, {"x": 0.3}, "ease-in-out"),
    "pan-right":  ({}, {"x": -0.3}, "ease-in-out"),
    "pan-up":     ({}, {"y": 0.2}, "ease-in-out"),
    "pan-down":   ({}, {"y": -0.2}, "ease-in-out"),
    "zoom-in":    ({}, {"zoom": 1.5}, "ease-in-out"),
    "zoom-out":   ({"zoom": 1.5}, {}, "ease-in-out"),
    "dolly-in":   ({}, {"zoom": 1.25}, "ease-in"),
    "dolly-out":  ({"zoom": 1.25}, {}, "ease-out"),
    "ken-burns":  ({}, {"x": 0.2, "zoom": 1.3}, "ease-in-out"),
    "shake":      ({}, {"x": 0.05, "y": 0.05, "rotation": 2}, "linear"),
    "rotate":     ({}, {"rotation": 360}, "ease-in-out"),
    "crane-up":   ({"zoom": 1.1}, {"y": 0.2, "zoom": 1.1}, "ease-in-out"),
    "crane-down": ({"zoom": 1.1}, {"y": -0.2, "zoom": 1.1}, "ease-in-out"),
    "tracking":   ({"x": -0.15}, {"x": 0.15}, "linear"),
}


def style_prompt(style: str) -> str:
    return STYLE_PROMPTS.get(style, "")


def resolution_size(resolution: str) -> tuple[int, int]:
    return RESOLUTIONS.get(resolution, RESOLUTIONS[DEFAULT_RESOLUTION])


def camera_work_for(movement: str) -> CameraWork:
    """Build start/end camera states for a named movement."""
    if movement not in CAMERA_MOVES:
        movement = "static"
    start, end, easing = CAMERA_MOVES[movement]
    return CameraWork(
        movement=movement,
        start_state=CameraState(**start),
        end_state=CameraState(**end),
        easing=easing,
    )
