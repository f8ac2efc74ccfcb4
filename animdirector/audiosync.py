"""Beat and energy-section layout for an optional soundtrack."""
from __future__ import annotations

import math

from schemas import AudioSection, AudioSyncPlan, BeatMarker, DirectorSettings

BEATS_PER_MEASURE = 4


def build_audio_sync(settings: DirectorSettings) -> AudioSyncPlan | None:
    """Lay out beats and Intro/Main/Outro sections, or None without audio input.

    Explicit beat timestamps win over a BPM grid.
    """
    if not (settings.audio_file or settings.audio_bpm or settings.audio_beats):
        return None

    duration = float(settings.target_duration)

    if settings.audio_beats:
        times = sorted(t for t in settings.audio_beats if 0 <= t < duration)
    elif settings.audio_bpm:
        interval = 60.0 / settings.audio_bpm
        count = math.ceil(duration / interval)
        times = [i * interval for i in range(count) if i * interval < duration]
    else:
        times = []

    beats = []
    for i, t in enumerate(times):
        downbeat = i % BEATS_PER_MEASURE == 0
        beats.append(BeatMarker(
            time=t,
            frame=math.floor(t * settings.fps),
            type="downbeat" if downbeat else "beat",
            intensity=1.0 if downbeat else 0.7,
        ))

    return AudioSyncPlan(
        duration=duration,
        bpm=settings.audio_bpm,
        beats=beats,
        sections=[
            AudioSection(name="Intro", start_time=0, end_time=duration * 0.25,
                         energy="low", suggested_pacing="slow"),
            AudioSection(name="Main", start_time=duration * 0.25, end_time=duration * 0.75,
                         energy="high", suggested_pacing="fast"),
            AudioSection(name="Outro", start_time=duration * 0.75, end_time=duration,
                         energy="medium", suggested_pacing="medium"),
        ],
    )
