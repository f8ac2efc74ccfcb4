"""Windowed, fault-isolated generation of every frame in a manifest."""
from __future__ import annotations

import asyncio
import logging
from typing import Callable

from schemas import FrameManifest, ManifestFrame

from .config import INTER_BATCH_DELAY
from .imagegen import ImageService

log = logging.getLogger(__name__)


class GenerationCancelled(Exception):
    """Raised when generation is cancelled; carries the partially updated manifest."""

    def __init__(self, manifest: FrameManifest):
        super().__init__("Frame generation cancelled by user.")
        self.manifest = manifest


async def _generate_one(
    frame: ManifestFrame,
    service: ImageService,
    prompt: str,
    reference_image: str | None,
) -> None:
    frame.status = "generating"
    try:
        frame.url = await service.generate(prompt, reference_image)
        frame.status = "complete"
        frame.error = None
    except Exception as e:
        frame.status = "error"
        frame.error = str(e) or type(e).__name__
        log.error("Frame %s failed: %s", frame.id, frame.error)


async def generate_frames(
    manifest: FrameManifest,
    service: ImageService,
    reference_image: str | None = None,
    on_frame_complete: Callable[[ManifestFrame], None] | None = None,
    parallel_generations: int = 4,
    batch_delay: float = INTER_BATCH_DELAY,
    progress_cb: Callable[[float], None] | None = None,
    cancel_event: asyncio.Event | None = None,
    style_suffix: str = "",
) -> FrameManifest:
    """Generate all pending frames in windows of *parallel_generations*.

    Returns an updated copy of *manifest*; the argument is left untouched.
    Frames already ``complete`` are skipped, so passing the result back in
    retries only the failures. A single frame failing is recorded on that
    frame and never aborts its window or later windows.
    """
    if parallel_generations < 1:
        raise ValueError("parallel_generations must be at least 1")

    manifest = manifest.model_copy(deep=True)
    frames = manifest.frames_by_id()
    order = [frames[frame_id] for frame_id in manifest.generation_order if frame_id in frames]
    pending = [f for f in order if f.status != "complete"]

    total = len(order)
    settled = total - len(pending)
    report = progress_cb or (lambda pct: None)

    def _cancelled() -> bool:
        return cancel_event is not None and cancel_event.is_set()

    async def _run(frame: ManifestFrame) -> None:
        nonlocal settled
        prompt = f"{frame.prompt}. {style_suffix}" if style_suffix else frame.prompt
        await _generate_one(frame, service, prompt, reference_image)
        settled += 1
        report(settled / total * 100)
        if on_frame_complete is not None:
            on_frame_complete(frame.model_copy())

    windows = [pending[i:i + parallel_generations] for i in range(0, len(pending), parallel_generations)]
    log.info(
        "Generating %d frame(s) in %d window(s) of %d (%d already complete)",
        len(pending), len(windows), parallel_generations, total - len(pending),
    )

    for n, window in enumerate(windows):
        if _cancelled():
            raise GenerationCancelled(manifest)

        await asyncio.gather(*(_run(frame) for frame in window))

        if n < len(windows) - 1:
            if _cancelled():
                raise GenerationCancelled(manifest)
            await asyncio.sleep(batch_delay)

    if total and not pending:
        report(100.0)

    failed = manifest.count_status("error")
    log.info("Generation finished: %d complete, %d failed", manifest.count_status("complete"), failed)
    return manifest
