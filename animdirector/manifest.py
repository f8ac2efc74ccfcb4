"""Frame manifest builder: deduplicate frame requirements and assign generation batches."""
from __future__ import annotations

import logging
import re

from schemas import DirectorSettings, FrameCategory, FrameManifest, ManifestFrame, Shot, UNIQUE_CATEGORY

from .config import FALLBACK_CATEGORY, GENERATION_BATCH_SIZE, MIN_PLAUSIBLE_UNIQUE
from .similarity import find_reusable

log = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[\s_]+")


def canonical_category(label: str | None) -> str:
    """Normalise a reuse-category label so near-duplicates share one bucket.

    "Backgrounds", "background" and "back_ground " all differ only by case,
    separators or a plain trailing plural, and map to the same key.
    """
    name = _SEPARATORS.sub("-", (label or "").strip().lower()).strip("-")
    if len(name) > 3 and name.endswith("s") and not name.endswith("ss"):
        name = name[:-1]
    if not name or name == UNIQUE_CATEGORY:
        return FALLBACK_CATEGORY
    return name


def build_manifest(
    shots: list[Shot],
    reuse_aggression: float,
    batch_size: int = GENERATION_BATCH_SIZE,
) -> FrameManifest:
    """Collect every frame requirement into deduplicated ManifestFrames.

    Reusable requirements are matched against earlier frames in their own
    category; a match above *reuse_aggression* is reused instead of being
    generated again. Non-reusable requirements always get their own frame
    in the ``unique`` category.
    """
    buckets: dict[str, list[ManifestFrame]] = {}

    for shot in shots:
        for req in shot.frame_requirements:
            category = canonical_category(req.reuse_category) if req.is_reusable else UNIQUE_CATEGORY
            frames = buckets.setdefault(category, [])

            existing = find_reusable(req.prompt, frames, reuse_aggression) if req.is_reusable else None
            if existing is not None:
                existing.used_in_shots.append(shot.id)
                existing.requirement_ids.append(req.id)
                log.debug("Requirement %s reuses frame %s (%s)", req.id, existing.id, category)
                continue

            frames.append(ManifestFrame(
                id=req.id,
                prompt=req.prompt,
                category=category,
                used_in_shots=[shot.id],
                requirement_ids=[req.id],
            ))

    categories = [
        FrameCategory(
            id=category_id,
            name=category_id.replace("-", " ").capitalize(),
            count=len(frames),
            is_reusable=category_id != UNIQUE_CATEGORY,
            frames=frames,
        )
        for category_id, frames in buckets.items()
    ]

    # Reusable frames first, then unique ones
    generation_order: list[str] = []
    ordered = [c for c in categories if c.is_reusable] + [c for c in categories if not c.is_reusable]
    for category in ordered:
        for frame in category.frames:
            frame.generation_batch = len(generation_order) // batch_size
            generation_order.append(frame.id)

    all_frames = [f for c in categories for f in c.frames]
    total_output = sum(shot.duration for shot in shots)

    manifest = FrameManifest(
        total_unique=len(all_frames),
        total_reused=sum(max(0, len(f.used_in_shots) - 1) for f in all_frames),
        total_with_camera=total_output,
        total_output=total_output,
        categories=categories,
        generation_order=generation_order,
    )
    log.info(
        "Manifest: %d unique frames (%d reuses) across %d categories for %d output frames",
        manifest.total_unique, manifest.total_reused, len(categories), manifest.total_output,
    )
    return manifest


def validate_plan(manifest: FrameManifest, settings: DirectorSettings) -> list[str]:
    """Non-fatal budget and consistency warnings for a manifest."""
    warnings: list[str] = []

    if manifest.total_unique > settings.max_unique_frames:
        warnings.append(
            f"Plan requires {manifest.total_unique} unique frames, "
            f"but budget is {settings.max_unique_frames}"
        )

    if manifest.total_unique < MIN_PLAUSIBLE_UNIQUE:
        warnings.append("Very few unique frames - animation may feel repetitive")

    return warnings
