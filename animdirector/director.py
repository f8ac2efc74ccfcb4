"""Animation director: brief -> plan -> frames -> video, with plan lifecycle tracking."""
from __future__ import annotations

import asyncio
import logging
import math
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError

from schemas import Brief, DirectorSettings, FollowUpQuestion, ManifestFrame, Plan
from schemas.production_plan import PlanStatus

from .audiosync import build_audio_sync
from .compositor import Compositor
from .config import COST_PER_FRAME, MINUTES_PER_WINDOW, Config
from .content import ContentService, get_content_service
from .export import FrameSink
from .imagegen import ImageService, get_image_service
from .manifest import build_manifest, validate_plan
from .orchestrator import GenerationCancelled, generate_frames
from .planner import StoryPlanner
from .presets import resolution_size, style_prompt

log = logging.getLogger(__name__)


class DirectorError(Exception):
    """Base class for fatal production errors."""


class InvalidBriefError(DirectorError):
    pass


class GenerationFailedError(DirectorError):
    pass


class ExportError(DirectorError):
    pass


class PlanStateError(DirectorError):
    """Operation not allowed in the plan's current status."""


TRANSITIONS: dict[str, set[str]] = {
    "draft": {"approved", "generating"},
    "approved": {"generating"},
    "generating": {"composing"},
    "composing": {"exporting"},
    "exporting": {"complete"},
    "complete": set(),
    "error": set(),
}


def can_transition(current: str, target: str) -> bool:
    return target == "error" or target in TRANSITIONS.get(current, set())


def estimate_cost(total_unique: int) -> float:
    return round(total_unique * COST_PER_FRAME, 4)


def estimate_minutes(total_unique: int, parallel_generations: int) -> float:
    return math.ceil(total_unique / parallel_generations) * MINUTES_PER_WINDOW


class AnimationDirector:
    """Caller-facing production facade.

    Owns the single mutable Plan. Every stage hands the plan to the next
    stage as a copy and takes back the result, so callers only ever see
    snapshots via ``get_plan()``.

    Callbacks:
        progress_cb(stage, percent): coarse progress for a UI.
        log_cb(message): human-readable progress lines.
    """

    def __init__(
        self,
        settings: DirectorSettings | None = None,
        config: Config | None = None,
        content_service: ContentService | None = None,
        image_service: ImageService | None = None,
        progress_cb: Callable[[str, float], None] | None = None,
        log_cb: Callable[[str], None] | None = None,
        use_placeholders: bool = False,
    ):
        self.config = config or Config.load()
        self._settings = settings or DirectorSettings()
        self.progress_cb = progress_cb or (lambda stage, pct: None)
        self.log_cb = log_cb or (lambda msg: None)
        self.use_placeholders = use_placeholders

        if content_service is None and not use_placeholders:
            content_service = get_content_service(self.config)
        self.content_service = content_service
        self.image_service = image_service or get_image_service(self.config, use_placeholders)

        self.planner = StoryPlanner(self.content_service, progress_cb=self.log_cb)
        self._brief: Brief | None = None
        self._plan: Plan | None = None
        self._cancelled = asyncio.Event()

    # -- snapshots ---------------------------------------------------------

    def get_plan(self) -> Plan | None:
        return self._plan.model_copy(deep=True) if self._plan is not None else None

    def get_config(self) -> DirectorSettings:
        return self._settings.model_copy(deep=True)

    def cancel(self) -> None:
        """Stop generation/export at the next window or frame. Final for this director."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    # -- lifecycle ---------------------------------------------------------

    def _transition(self, target: PlanStatus) -> None:
        if self._plan is None:
            raise PlanStateError(f"No plan to move to {target!r}; create a production plan first.")
        current = self._plan.status
        if not can_transition(current, target):
            raise PlanStateError(f"Cannot move plan from {current!r} to {target!r}")
        log.info("Plan %s: %s -> %s", self._plan.id, current, target)
        self._plan.status = target

    def _fail(self, error: DirectorError) -> DirectorError:
        """Mark the plan as errored and hand back the exception for raising."""
        if self._plan is not None:
            self._plan.status = "error"
            self._plan.error = str(error)
        log.error("%s: %s", type(error).__name__, error)
        self.log_cb(f"❌ {error}")
        return error

    # -- stages ------------------------------------------------------------

    async def analyze_brief(self, prompt: str) -> list[FollowUpQuestion]:
        """Clarifying questions for a brief (default set when no service answers)."""
        self.progress_cb("analyzing", 0)
        self.log_cb("🔍 Analyzing brief...")
        questions = await asyncio.to_thread(self.planner.analyze_brief, prompt)
        self.progress_cb("analyzing", 100)
        return questions

    def _coerce_brief(self, brief: Brief | dict[str, Any]) -> Brief:
        if isinstance(brief, Brief):
            return brief
        data = dict(brief)
        data.setdefault("settings", self._settings)
        try:
            return Brief.model_validate(data)
        except ValidationError as e:
            self._plan = Plan(status="error", synopsis=str(data.get("prompt", "") or ""))
            raise self._fail(InvalidBriefError(f"Invalid brief: {e.errors()[0]['msg']}")) from e

    async def create_production_plan(self, brief: Brief | dict[str, Any]) -> Plan:
        """Plan acts, scenes and shots, then build the frame manifest. Status ends at ``draft``."""
        brief = self._coerce_brief(brief)
        self._brief = brief
        self._settings = brief.settings
        settings = brief.settings
        total_frames = settings.total_frames

        if total_frames <= 0:
            self._plan = Plan(status="error", synopsis=brief.prompt)
            raise self._fail(InvalidBriefError(
                f"Duration {settings.target_duration}s at {settings.fps} fps yields no frames"
            ))

        self.progress_cb("planning", 0)
        self.log_cb("📝 Planning story structure...")

        audio_sync = build_audio_sync(settings)
        if audio_sync is not None:
            self.log_cb(f"  🎵 Audio sync: {len(audio_sync.beats)} beats, {len(audio_sync.sections)} sections")

        outline = await asyncio.to_thread(self.planner.plan, brief, total_frames, audio_sync)
        self.progress_cb("planning", 60)

        self.log_cb("🧩 Building frame manifest...")
        manifest = build_manifest(outline.shots, settings.reuse_aggression)
        warnings = validate_plan(manifest, settings)
        if outline.used_fallback:
            warnings.append("Planning service unavailable for part of the plan; default structure used")

        self._plan = Plan(
            title=outline.title,
            synopsis=outline.synopsis,
            total_duration=total_frames,
            estimated_cost=estimate_cost(manifest.total_unique),
            estimated_time=estimate_minutes(manifest.total_unique, settings.parallel_generations),
            acts=outline.acts,
            scenes=outline.scenes,
            shots=outline.shots,
            frame_manifest=manifest,
            audio_sync=audio_sync,
            warnings=warnings,
        )

        for warning in warnings:
            self.log_cb(f"  ⚠ {warning}")
        self.log_cb(
            f"  Plan {self._plan.id}: {len(outline.shots)} shots, "
            f"{manifest.total_unique} unique frames ({manifest.total_reused} reused), "
            f"~${self._plan.estimated_cost:.2f}, ~{self._plan.estimated_time:g} min"
        )
        self.progress_cb("planning", 100)
        return self.get_plan()

    def approve_plan(self) -> Plan:
        self._transition("approved")
        self.log_cb("✅ Plan approved")
        return self.get_plan()

    async def generate_all_frames(
        self,
        reference_image: str | None = None,
        on_frame_complete: Callable[[ManifestFrame], None] | None = None,
    ) -> Plan:
        """Generate every pending frame. Status moves generating -> composing.

        Raises GenerationFailedError (plan status ``error``) when not a single
        frame succeeded, and GenerationCancelled after ``cancel()``.
        """
        self._transition("generating")
        plan = self._plan
        settings = self._settings
        if reference_image is None and self._brief is not None and self._brief.source_images:
            reference_image = self._brief.source_images[0]

        total = plan.frame_manifest.total_unique
        self.log_cb(f"🎨 Generating {total} frames, {settings.parallel_generations} at a time...")
        self.progress_cb("generating", 0)

        try:
            manifest = await generate_frames(
                plan.frame_manifest,
                self.image_service,
                reference_image=reference_image,
                on_frame_complete=on_frame_complete,
                parallel_generations=settings.parallel_generations,
                progress_cb=lambda pct: self.progress_cb("generating", pct),
                cancel_event=self._cancelled,
                style_suffix=style_prompt(settings.style),
            )
        except GenerationCancelled as e:
            plan.frame_manifest = e.manifest
            plan.status = "error"
            plan.error = str(e)
            self.log_cb("⛔ Generation cancelled")
            raise
        except Exception as e:
            raise self._fail(GenerationFailedError(f"Frame generation failed: {e}")) from e

        plan.frame_manifest = manifest
        complete = manifest.count_status("complete")
        failed = manifest.count_status("error")

        if total and complete == 0:
            raise self._fail(GenerationFailedError(f"All {total} frame generations failed"))

        if failed:
            plan.warnings.append(f"{failed} of {total} frames failed to generate")

        self._transition("composing")
        self.log_cb(f"  Generated {complete}/{total} frames ({failed} failed)")
        self.progress_cb("generating", 100)
        return self.get_plan()

    async def export_video(self, sink: FrameSink) -> Path:
        """Composite every output frame and stream it into *sink*. Status moves exporting -> complete."""
        self._transition("exporting")
        plan = self._plan
        settings = self._settings
        width, height = resolution_size(settings.resolution)
        compositor = Compositor(plan.model_copy(deep=True), width, height)

        self.log_cb(f"🎬 Compositing {plan.total_duration} frames at {width}x{height}, {settings.fps} fps...")
        self.progress_cb("exporting", 0)

        try:
            output = await asyncio.to_thread(self._write_frames, compositor, sink, settings.fps)
        except Exception as e:
            raise self._fail(ExportError(f"Export failed: {e}")) from e

        if output is None:
            plan.status = "error"
            plan.error = "Export cancelled by user."
            self.log_cb("⛔ Export cancelled")
            raise GenerationCancelled(plan.frame_manifest.model_copy(deep=True))

        self._transition("complete")
        self.progress_cb("exporting", 100)
        self.log_cb(f"✅ Video saved to {output}")
        return output

    def _write_frames(self, compositor: Compositor, sink: FrameSink, fps: int) -> Path | None:
        """Render into *sink*. Returns None when cancelled; the sink is aborted then, and on any error."""
        total = compositor.total_frames
        sink.open(compositor.width, compositor.height, fps)
        try:
            for index, image in compositor.render_all(self._cancelled):
                sink.write(image)
                if total:
                    self.progress_cb("exporting", (index + 1) / total * 100)
            if self._cancelled.is_set():
                sink.abort()
                return None
            return sink.close()
        except BaseException:
            sink.abort()
            raise

    async def produce(self, brief: Brief | dict[str, Any], sink: FrameSink) -> Path:
        """Run plan -> generate -> export end to end."""
        await self.create_production_plan(brief)
        await self.generate_all_frames()
        return await self.export_video(sink)
