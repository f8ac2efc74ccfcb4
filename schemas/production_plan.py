import time

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import List, Literal, Optional

from .audio_sync import AudioSyncPlan, Pacing
from .frame_manifest import FrameManifest

PlanStatus = Literal["draft", "approved", "generating", "composing", "exporting", "complete", "error"]

ShotType = Literal[
    "establishing", "action", "reaction", "dialogue", "montage", "hold", "transition", "title-card",
]

CameraMovement = Literal[
    "static",
    "pan-left", "pan-right", "pan-up", "pan-down",
    "zoom-in", "zoom-out",
    "dolly-in", "dolly-out",
    "ken-burns",
    "shake",
    "rotate",
    "crane-up", "crane-down",
    "tracking",
]

Easing = Literal["linear", "ease-in", "ease-out", "ease-in-out"]

TransitionType = Literal["cut", "fade", "dissolve", "wipe-left", "wipe-right", "zoom-blur", "flash", "iris"]


class CameraState(BaseModel):
    x: float = 0.0
    y: float = 0.0
    zoom: float = 1.0
    rotation: float = Field(0.0, description="Degrees")


class CameraWork(BaseModel):
    movement: CameraMovement = "static"
    start_state: CameraState = Field(default_factory=CameraState)
    end_state: CameraState = Field(default_factory=CameraState)
    easing: Easing = "ease-in-out"


class Transitions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    in_: TransitionType = Field("cut", alias="in")
    out: TransitionType = "cut"


class FrameRequirement(BaseModel):
    """A request for one generated still image."""
    id: str
    prompt: str
    is_reusable: bool = False
    reuse_category: Optional[str] = None
    priority: int = 5


class Shot(BaseModel):
    id: str
    scene_id: str
    type: ShotType
    description: str = ""
    start_frame: int = Field(..., ge=0)
    end_frame: int
    frame_requirements: List[FrameRequirement] = Field(..., min_length=1)
    camera_work: CameraWork = Field(default_factory=CameraWork)
    transitions: Transitions = Field(default_factory=Transitions)

    @model_validator(mode="after")
    def _non_empty_range(self) -> "Shot":
        if self.end_frame <= self.start_frame:
            raise ValueError(f"shot {self.id} has empty range [{self.start_frame}, {self.end_frame})")
        return self

    @property
    def duration(self) -> int:
        return self.end_frame - self.start_frame


class Scene(BaseModel):
    id: str
    act_id: str
    name: str
    description: str = ""
    location: Optional[str] = None
    time_of_day: Optional[str] = None
    mood: str = "neutral"
    start_frame: int
    end_frame: int
    shot_ids: List[str] = Field(default_factory=list)


class Act(BaseModel):
    id: str
    name: str
    description: str = ""
    mood: str = "neutral"
    pacing: Pacing = "medium"
    start_frame: int
    end_frame: int


class Plan(BaseModel):
    """Full production plan derived from a brief. Plain data, safe to store as JSON."""
    id: str = Field(default_factory=lambda: f"plan-{int(time.time() * 1000)}")
    title: str = ""
    synopsis: str = ""
    total_duration: int = Field(0, description="Output frames")
    estimated_cost: float = Field(0.0, description="USD")
    estimated_time: float = Field(0.0, description="Minutes")
    acts: List[Act] = Field(default_factory=list)
    scenes: List[Scene] = Field(default_factory=list)
    shots: List[Shot] = Field(default_factory=list)
    frame_manifest: FrameManifest = Field(default_factory=FrameManifest)
    audio_sync: Optional[AudioSyncPlan] = None
    status: PlanStatus = "draft"
    warnings: List[str] = Field(default_factory=list)
    error: Optional[str] = None
    created_at: float = Field(default_factory=time.time)
