"""Story and shot planning.

Turns a brief into acts -> scenes -> shots. Creative content comes from the
structured-content service; whenever that service is missing, fails, or
replies with something that does not validate, a fixed deterministic
layout is used instead:

  * three acts at 25 / 50 / 25 % of the timeline
  * ten equal shots per act, alternating establishing / action,
    the first three reusable
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Callable

from schemas import (
    Act,
    AudioSyncPlan,
    Brief,
    FollowUpQuestion,
    FrameRequirement,
    Scene,
    Shot,
    ShotProposal,
    StructureProposal,
)
from schemas.proposals import QUESTION_LIST, SHOT_LIST

from .config import (
    FALLBACK_ACT_SPLIT,
    FALLBACK_CATEGORY,
    FALLBACK_REUSABLE_SHOTS,
    FALLBACK_SHOTS_PER_ACT,
)
from .content import ContentDecodeError, ContentService, decode_json
from .presets import camera_work_for

log = logging.getLogger(__name__)

REUSABLE_PRIORITY = 10
DEFAULT_PRIORITY = 5


@dataclass
class StoryOutline:
    title: str
    synopsis: str
    acts: list[Act] = field(default_factory=list)
    scenes: list[Scene] = field(default_factory=list)
    shots: list[Shot] = field(default_factory=list)
    used_fallback: bool = False


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

_QUESTIONS_TEMPLATE = """You are an animation director. Analyze this animation request and identify what additional information would help create a better animation.

User Request: "{prompt}"

Generate 3-5 follow-up questions to clarify:
1. Story details (characters, setting, plot points)
2. Visual style preferences
3. Pacing and mood
4. Any specific scenes or moments they want

Respond with ONLY a JSON array:
[
  {{"id": "q1", "question": "Question text", "type": "text|choice|slider|toggle",
    "options": ["opt1", "opt2"], "category": "story|style|technical|audio", "required": true}}
]"""

_STRUCTURE_TEMPLATE = """You are a story director. Create a story structure for this animation:

Request: "{prompt}"
Additional Info: {answers}
Duration: {total_frames} frames at {fps} fps ({seconds:g} seconds)
Style: {style}
Cinematography: {cinematography}
{audio}
Create a 3-act structure with title and synopsis. The act duration percentages
must add up to 100. Respond with ONLY this JSON:
{{
  "title": "Animation Title",
  "synopsis": "Brief description",
  "acts": [
    {{"name": "Act 1 - Setup", "description": "What happens", "mood": "curious",
      "pacing": "slow|medium|fast", "duration_percent": 25}}
  ]
}}"""

_SHOTS_TEMPLATE = """You are a cinematographer. Plan specific shots for this animation act:

Animation: "{prompt}"
Act: "{act_name}" - {act_description}
Mood: {mood}, pacing: {pacing}
Style: {style}
Cinematography Style: {cinematography}
Duration: {frames} frames ({fps} frames = 1 second)

For each shot, specify:
- type: establishing, action, reaction, dialogue, montage, hold, transition, title-card
- camera: static, pan-left, pan-right, pan-up, pan-down, zoom-in, zoom-out, dolly-in,
  dolly-out, ken-burns, shake, rotate, crane-up, crane-down, tracking
- duration in frames
- whether the frame can be reused elsewhere, and a short reuse category
  (e.g. "background", "idle", "walk") for reusable frames

Respond with ONLY a JSON array of shots:
[
  {{"type": "establishing", "description": "Wide shot of location", "camera": "ken-burns",
    "duration": 48, "is_reusable": true, "reuse_category": "background"}}
]"""

DEFAULT_QUESTIONS = [
    FollowUpQuestion(
        id="characters",
        question="Describe the main character(s) in detail",
        type="text",
        category="story",
        required=True,
    ),
    FollowUpQuestion(
        id="mood",
        question="What mood should the animation convey?",
        type="choice",
        options=["Happy/Upbeat", "Dramatic/Intense", "Peaceful/Calm", "Mysterious", "Comedic", "Emotional"],
        category="style",
        required=True,
    ),
    FollowUpQuestion(
        id="keyMoments",
        question="Describe 2-3 key moments you want to see",
        type="text",
        category="story",
        required=False,
    ),
    FollowUpQuestion(
        id="pacing",
        question="Preferred pacing",
        type="choice",
        options=["Fast & Energetic", "Medium & Balanced", "Slow & Contemplative"],
        category="technical",
        required=True,
    ),
]


# ---------------------------------------------------------------------------
# Frame arithmetic
# ---------------------------------------------------------------------------

def partition_acts(proposals: list, total_frames: int) -> list[Act] | None:
    """Convert duration percentages into contiguous frame ranges.

    Each act gets floor(total * pct / 100) frames; the last act ends at
    *total_frames*. Returns None when any act would come out empty.
    """
    acts: list[Act] = []
    current = 0
    for i, proposal in enumerate(proposals):
        if i == len(proposals) - 1:
            end = total_frames
        else:
            end = current + int(total_frames * proposal.duration_percent / 100)
        if end <= current:
            return None
        acts.append(Act(
            id=f"act-{i}",
            name=proposal.name,
            description=proposal.description,
            mood=proposal.mood,
            pacing=proposal.pacing,
            start_frame=current,
            end_frame=end,
        ))
        current = end
    return acts


def fit_durations(durations: list[int], span: int) -> list[int]:
    """Rescale shot durations so they fill *span* frames exactly.

    Every shot keeps at least one frame; surplus shots beyond *span* are
    dropped. Durations that already sum to *span* come back unchanged.
    """
    durations = durations[:span]
    total = sum(durations)
    if not durations or total <= 0:
        return []

    fitted: list[int] = []
    start = 0
    cumulative = 0
    for i, duration in enumerate(durations):
        cumulative += duration
        remaining = len(durations) - i - 1
        end = span * cumulative // total
        end = max(end, start + 1)
        end = min(end, span - remaining)
        fitted.append(end - start)
        start = end
    return fitted


def fallback_acts(total_frames: int, fps: int, audio_sync: AudioSyncPlan | None = None) -> list[Act]:
    first, second, _ = FALLBACK_ACT_SPLIT
    bounds = [0, int(total_frames * first), int(total_frames * (first + second)), total_frames]
    layout = [
        ("Beginning", "Setup", "neutral", "medium"),
        ("Middle", "Development", "rising", "medium"),
        ("End", "Resolution", "resolved", "slow"),
    ]

    acts = []
    for i, (name, description, mood, pacing) in enumerate(layout):
        start, end = bounds[i], bounds[i + 1]
        if audio_sync is not None:
            section = audio_sync.section_at((start + end) / 2 / fps)
            if section is not None:
                pacing = section.suggested_pacing
        acts.append(Act(
            id=f"act-{i}",
            name=name,
            description=description,
            mood=mood,
            pacing=pacing,
            start_frame=start,
            end_frame=end,
        ))
    return acts


def fallback_shot_proposals(act: Act, prompt: str) -> list[ShotProposal]:
    """Ten equal shots (fewer for very short acts), alternating establishing / action."""
    span = act.end_frame - act.start_frame
    count = min(FALLBACK_SHOTS_PER_ACT, span)
    if count == 0:
        return []

    base = span // count
    proposals = []
    for i in range(count):
        shot_type = "establishing" if i % 2 == 0 else "action"
        duration = base if i < count - 1 else span - base * (count - 1)
        reusable = i < FALLBACK_REUSABLE_SHOTS
        proposals.append(ShotProposal(
            type=shot_type,
            description=f"{prompt}, {act.name.lower()}, {shot_type} shot",
            camera="ken-burns" if shot_type == "establishing" else "static",
            duration=duration,
            is_reusable=reusable,
            reuse_category=FALLBACK_CATEGORY if reusable else None,
        ))
    return proposals


# ---------------------------------------------------------------------------
# Planner
# ---------------------------------------------------------------------------

class StoryPlanner:
    """Expands a brief into acts, scenes and shots."""

    def __init__(
        self,
        service: ContentService | None = None,
        progress_cb: Callable[[str], None] | None = None,
    ):
        self.service = service
        self.progress_cb = progress_cb or (lambda msg: None)

    def _ask(self, prompt: str, schema):
        """Call the service and strictly decode the reply; None means 'use the fallback'."""
        if self.service is None:
            return None
        try:
            raw = self.service.propose(prompt)
            log.debug("Planning service raw response:\n%s", raw)
            return decode_json(raw, schema)
        except ContentDecodeError as e:
            log.warning("Planning service returned unusable output: %s", e)
        except Exception as e:
            log.warning("Planning service call failed: %s", e)
        return None

    def analyze_brief(self, prompt: str) -> list[FollowUpQuestion]:
        """Clarifying questions for a brief, or the default set."""
        questions = self._ask(_QUESTIONS_TEMPLATE.format(prompt=prompt), QUESTION_LIST)
        if questions is None:
            self.progress_cb("  ⚠ Using default follow-up questions")
            return [q.model_copy() for q in DEFAULT_QUESTIONS]
        return list(questions)

    def plan(
        self,
        brief: Brief,
        total_frames: int,
        audio_sync: AudioSyncPlan | None = None,
    ) -> StoryOutline:
        settings = brief.settings
        used_fallback = False

        structure = self._ask(self._structure_prompt(brief, total_frames, audio_sync), StructureProposal)
        acts = partition_acts(structure.acts, total_frames) if structure is not None else None

        if acts is None:
            self.progress_cb("  ⚠ Story structure unavailable — using default 3-act layout")
            title, synopsis = "Animated Story", brief.prompt
            acts = fallback_acts(total_frames, settings.fps, audio_sync)
            used_fallback = True
        else:
            title, synopsis = structure.title, structure.synopsis or brief.prompt
            self.progress_cb(f"  Story: {title} ({len(acts)} acts)")

        scenes: list[Scene] = []
        shots: list[Shot] = []

        for act in acts:
            span = act.end_frame - act.start_frame
            if span <= 0:
                continue

            proposals = self._ask(self._shots_prompt(brief, act), SHOT_LIST)
            if proposals is None:
                self.progress_cb(f"  ⚠ Shot list for {act.name!r} unavailable — using default shots")
                proposals = fallback_shot_proposals(act, brief.prompt)
                used_fallback = True

            scene = Scene(
                id=f"scene-{len(scenes)}",
                act_id=act.id,
                name=act.name,
                description=act.description,
                mood=act.mood,
                start_frame=act.start_frame,
                end_frame=act.end_frame,
            )

            durations = fit_durations([p.duration for p in proposals], span)
            if sum(p.duration for p in proposals[:len(durations)]) != span:
                log.info("Rescaled %d proposed shots to fit %s (%d frames)", len(durations), act.id, span)

            current = act.start_frame
            for proposal, duration in zip(proposals, durations):
                shot = self._make_shot(proposal, len(shots), scene.id, current, duration)
                scene.shot_ids.append(shot.id)
                shots.append(shot)
                current += duration

            scenes.append(scene)
            self.progress_cb(f"  {act.name}: {len(scene.shot_ids)} shots, frames {act.start_frame}-{act.end_frame}")

        return StoryOutline(
            title=title,
            synopsis=synopsis,
            acts=acts,
            scenes=scenes,
            shots=shots,
            used_fallback=used_fallback,
        )

    @staticmethod
    def _make_shot(proposal: ShotProposal, index: int, scene_id: str, start: int, duration: int) -> Shot:
        return Shot(
            id=f"shot-{index}",
            scene_id=scene_id,
            type=proposal.type,
            description=proposal.description,
            start_frame=start,
            end_frame=start + duration,
            frame_requirements=[FrameRequirement(
                id=f"frame-{index}",
                prompt=proposal.description,
                is_reusable=proposal.is_reusable,
                reuse_category=proposal.reuse_category,
                priority=REUSABLE_PRIORITY if proposal.is_reusable else DEFAULT_PRIORITY,
            )],
            camera_work=camera_work_for(proposal.camera),
        )

    @staticmethod
    def _structure_prompt(brief: Brief, total_frames: int, audio_sync: AudioSyncPlan | None) -> str:
        settings = brief.settings
        audio = ""
        if audio_sync is not None:
            sections = ", ".join(
                f"{s.name} {s.start_time:g}-{s.end_time:g}s ({s.energy} energy)" for s in audio_sync.sections
            )
            audio = f"Music sections: {sections}\n"
        return _STRUCTURE_TEMPLATE.format(
            prompt=brief.prompt,
            answers=json.dumps(brief.follow_up_answers),
            total_frames=total_frames,
            fps=settings.fps,
            seconds=settings.target_duration,
            style=settings.style,
            cinematography=settings.cinematography,
            audio=audio,
        )

    @staticmethod
    def _shots_prompt(brief: Brief, act: Act) -> str:
        settings = brief.settings
        return _SHOTS_TEMPLATE.format(
            prompt=brief.prompt,
            act_name=act.name,
            act_description=act.description,
            mood=act.mood,
            pacing=act.pacing,
            style=settings.style,
            cinematography=settings.cinematography,
            frames=act.end_frame - act.start_frame,
            fps=settings.fps,
        )
