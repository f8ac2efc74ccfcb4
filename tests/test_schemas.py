import pytest
from pydantic import ValidationError

from schemas import (
    Brief, DirectorSettings, FrameManifest, Plan, ShotProposal, StructureProposal, Transitions,
)
from schemas.proposals import SHOT_LIST
from conftest import make_shot


def test_settings_defaults():
    settings = DirectorSettings()
    assert settings.style == "anime"
    assert settings.fps == 24
    assert settings.target_duration == 30
    assert settings.max_unique_frames == 120
    assert settings.parallel_generations == 4
    assert settings.reuse_aggression == 0.7
    assert settings.total_frames == 720


def test_settings_reject_out_of_range():
    with pytest.raises(ValidationError):
        DirectorSettings(reuse_aggression=1.5)
    with pytest.raises(ValidationError):
        DirectorSettings(fps=0)
    with pytest.raises(ValidationError):
        DirectorSettings(style="claymation")


def test_brief_prompt_is_stripped_and_required():
    assert Brief(prompt="  a fox  ").prompt == "a fox"
    with pytest.raises(ValidationError):
        Brief(prompt="   ")


def test_brief_is_frozen():
    brief = Brief(prompt="a fox")
    with pytest.raises(ValidationError):
        brief.prompt = "a wolf"


def test_shot_needs_non_empty_range():
    with pytest.raises(ValidationError):
        make_shot(0, 10, 10, "empty")
    assert make_shot(0, 10, 34, "ok").duration == 24


def test_transitions_accept_in_alias():
    t = Transitions.model_validate({"in": "fade", "out": "dissolve"})
    assert t.in_ == "fade"
    assert t.model_dump(by_alias=True) == {"in": "fade", "out": "dissolve"}


def test_structure_proposal_rejects_overfull_percentages():
    with pytest.raises(ValidationError):
        StructureProposal(title="t", acts=[
            {"name": "a", "duration_percent": 60},
            {"name": "b", "duration_percent": 60},
        ])


def test_structure_proposal_accepts_camel_case():
    s = StructureProposal.model_validate({"title": "t", "acts": [{"name": "a", "durationPercent": 100}]})
    assert s.acts[0].duration_percent == 100


def test_shot_proposal_unknown_camera_is_static():
    p = ShotProposal(type="action", description="d", camera="Whip-Pan", duration=12)
    assert p.camera == "static"
    assert ShotProposal(type="action", description="d", camera="Zoom-In", duration=12).camera == "zoom-in"


def test_shot_list_rejects_empty_and_bad_types():
    with pytest.raises(ValidationError):
        SHOT_LIST.validate_json("[]")
    with pytest.raises(ValidationError):
        SHOT_LIST.validate_json('[{"type": "explosion", "description": "x", "duration": 4}]')


def test_plan_json_round_trip():
    plan = Plan(title="Fox", total_duration=48, shots=[make_shot(0, 0, 48, "fox")])
    restored = Plan.model_validate_json(plan.model_dump_json(by_alias=True))
    assert restored == plan
    assert restored.status == "draft"
    assert isinstance(restored.frame_manifest, FrameManifest)
