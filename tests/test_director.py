import asyncio
import math

import pytest

from animdirector.audiosync import build_audio_sync
from animdirector.director import (
    AnimationDirector, ExportError, GenerationFailedError, InvalidBriefError, PlanStateError, can_transition,
)
from animdirector.orchestrator import GenerationCancelled
from schemas import Brief, DirectorSettings
from conftest import FakeImageService, MemorySink


def _settings(**overrides):
    values = dict(target_duration=10, fps=24, resolution="720p")
    values.update(overrides)
    return DirectorSettings(**values)


def _director(config, image_service, **kwargs):
    return AnimationDirector(settings=_settings(), config=config, image_service=image_service, **kwargs)


def _run(coro):
    return asyncio.run(coro)


def test_end_to_end_ten_seconds(config, image_service, sink):
    stages = []
    director = _director(config, image_service, progress_cb=lambda stage, pct: stages.append(stage))

    output = _run(director.produce({"prompt": "a fox who keeps a lighthouse"}, sink))

    plan = director.get_plan()
    assert output == "memory://sink"
    assert plan.status == "complete"
    assert plan.total_duration == 240
    assert sum(s.duration for s in plan.shots) == 240
    assert plan.frame_manifest.total_output == 240
    assert sink.count == 240
    assert sink.opened == (1280, 720, 24)
    assert sink.sizes == {(1280, 720)}
    assert sink.closed
    assert len(image_service.calls) == plan.frame_manifest.total_unique
    assert stages.index("planning") < stages.index("generating") < stages.index("exporting")


def test_plan_estimates_and_fallback_warning(config, image_service):
    director = _director(config, image_service)
    plan = _run(director.create_production_plan(Brief(prompt="a fox", settings=_settings(parallel_generations=4))))

    unique = plan.frame_manifest.total_unique
    assert plan.status == "draft"
    assert plan.estimated_cost == pytest.approx(unique * 0.002)
    assert plan.estimated_time == math.ceil(unique / 4) * 0.5
    assert any("default structure" in w for w in plan.warnings)
    # three reusable fallback shots per act collapse onto shared frames
    assert plan.frame_manifest.total_reused > 0


def test_blank_prompt_is_fatal(config, image_service):
    director = _director(config, image_service)
    with pytest.raises(InvalidBriefError):
        _run(director.create_production_plan({"prompt": "   "}))
    plan = director.get_plan()
    assert plan.status == "error"
    assert plan.error


def test_lifecycle_transitions():
    assert can_transition("draft", "approved")
    assert can_transition("draft", "generating")
    assert can_transition("approved", "generating")
    assert can_transition("exporting", "complete")
    assert can_transition("complete", "error")
    assert not can_transition("draft", "complete")
    assert not can_transition("approved", "approved")
    assert not can_transition("error", "draft")


def test_out_of_order_calls_raise(config, image_service, sink):
    director = _director(config, image_service)
    with pytest.raises(PlanStateError):
        director.approve_plan()

    _run(director.create_production_plan({"prompt": "a fox"}))
    with pytest.raises(PlanStateError):
        _run(director.export_video(sink))

    director.approve_plan()
    with pytest.raises(PlanStateError):
        director.approve_plan()
    assert director.get_plan().status == "approved"


def test_partial_failures_are_warnings(config, tmp_path):
    # fallback descriptions end with the shot type
    service = FakeImageService(tmp_path, fail_marker="action shot")
    director = _director(config, service)
    _run(director.create_production_plan({"prompt": "a fox"}))
    plan = _run(director.generate_all_frames())

    failed = plan.frame_manifest.count_status("error")
    assert failed > 0
    assert plan.status == "composing"
    assert any(f"{failed} of" in w for w in plan.warnings)


def test_all_failures_are_fatal(config, tmp_path):
    director = _director(config, FakeImageService(tmp_path, fail_marker="a fox"))
    _run(director.create_production_plan({"prompt": "a fox"}))
    with pytest.raises(GenerationFailedError):
        _run(director.generate_all_frames())
    assert director.get_plan().status == "error"


def test_cancel_leaves_frames_pending(config, image_service):
    director = _director(config, image_service)
    _run(director.create_production_plan({"prompt": "a fox"}))
    director.cancel()
    with pytest.raises(GenerationCancelled):
        _run(director.generate_all_frames())
    plan = director.get_plan()
    assert plan.status == "error"
    assert plan.frame_manifest.count_status("pending") == plan.frame_manifest.total_unique
    assert image_service.calls == []


def test_sink_failure_is_export_error(config, image_service):
    director = _director(config, image_service)
    _run(director.create_production_plan({"prompt": "a fox"}))
    _run(director.generate_all_frames())
    sink = MemorySink(fail_at=3)
    with pytest.raises(ExportError):
        _run(director.export_video(sink))
    assert director.get_plan().status == "error"
    assert sink.aborted
    assert not sink.closed


def test_snapshots_are_copies(config, image_service):
    director = _director(config, image_service)
    _run(director.create_production_plan({"prompt": "a fox"}))

    snapshot = director.get_plan()
    snapshot.status = "complete"
    snapshot.shots.clear()
    assert director.get_plan().status == "draft"
    assert director.get_plan().shots

    assert director.get_config() == _settings()


def test_brief_settings_become_active_config(config, image_service):
    director = _director(config, image_service)
    plan = _run(director.create_production_plan(Brief(prompt="a fox", settings=_settings(target_duration=2, fps=12))))
    assert plan.total_duration == 24
    assert director.get_config().fps == 12


def test_reference_image_defaults_to_first_source_image(config, image_service):
    director = _director(config, image_service)
    _run(director.create_production_plan({"prompt": "a fox", "source_images": ["ref.png"]}))
    _run(director.generate_all_frames())
    assert {ref for _, ref in image_service.calls} == {"ref.png"}


def test_style_prompt_is_appended(config, image_service):
    director = _director(config, image_service)
    _run(director.create_production_plan({"prompt": "a fox"}))
    _run(director.generate_all_frames())
    assert all(prompt.endswith("anime style, cel shaded, vibrant colors, clean lines") for prompt, _ in image_service.calls)


def test_analyze_brief_without_service(config, image_service):
    questions = _run(_director(config, image_service).analyze_brief("a fox"))
    assert len(questions) == 4
    assert questions[0].id == "characters"


def test_audio_sync_from_bpm():
    sync = build_audio_sync(DirectorSettings(target_duration=4, fps=24, audio_bpm=120))
    assert len(sync.beats) == 8
    assert [b.type for b in sync.beats[:5]] == ["downbeat", "beat", "beat", "beat", "downbeat"]
    assert sync.beats[1].frame == 12
    assert [s.name for s in sync.sections] == ["Intro", "Main", "Outro"]
    assert sync.section_at(2).suggested_pacing == "fast"
    assert build_audio_sync(DirectorSettings()) is None


def test_audio_sync_biases_fallback_pacing(config, image_service):
    director = _director(config, image_service)
    plan = _run(director.create_production_plan(Brief(prompt="a fox", settings=_settings(audio_bpm=100))))
    assert plan.audio_sync is not None
    assert [a.pacing for a in plan.acts] == ["slow", "fast", "medium"]


def test_frame_callback_error_fails_the_plan(config, image_service):
    def on_frame_complete(frame):
        raise ValueError("ui went away")

    director = _director(config, image_service)
    _run(director.create_production_plan({"prompt": "a fox"}))
    with pytest.raises(GenerationFailedError, match="ui went away"):
        _run(director.generate_all_frames(on_frame_complete=on_frame_complete))
    plan = director.get_plan()
    assert plan.status == "error"
    assert "ui went away" in plan.error


def test_cancel_during_export_aborts_sink(config, image_service, sink):
    director = None

    def progress(stage, pct):
        if stage == "exporting" and pct >= 10:
            director.cancel()

    director = _director(config, image_service, progress_cb=progress)
    _run(director.create_production_plan({"prompt": "a fox"}))
    _run(director.generate_all_frames())
    with pytest.raises(GenerationCancelled):
        _run(director.export_video(sink))
    assert sink.aborted
    assert not sink.closed
    assert 0 < sink.count < 240
    assert director.get_plan().status == "error"
