"""Shapes the planning service must return. Anything that does not validate is rejected whole."""
from pydantic import AliasChoices, BaseModel, Field, TypeAdapter, field_validator, model_validator
from typing import Annotated, List, Optional, get_args

from .audio_sync import Pacing
from .brief import FollowUpQuestion
from .production_plan import CameraMovement, ShotType

_MOVEMENTS = set(get_args(CameraMovement))


class ActProposal(BaseModel):
    name: str
    description: str = ""
    mood: str = "neutral"
    pacing: Pacing = "medium"
    duration_percent: float = Field(
        ..., gt=0, le=100,
        validation_alias=AliasChoices("duration_percent", "durationPercent"),
    )


class StructureProposal(BaseModel):
    title: str
    synopsis: str = ""
    acts: List[ActProposal] = Field(..., min_length=1, max_length=6)

    @model_validator(mode="after")
    def _percentages_fit(self) -> "StructureProposal":
        total = sum(act.duration_percent for act in self.acts)
        if total > 100.5:
            raise ValueError(f"act durations add up to {total:.1f}%")
        return self


class ShotProposal(BaseModel):
    type: ShotType
    description: str
    camera: str = "static"
    duration: int = Field(..., gt=0, description="Frames")
    is_reusable: bool = Field(False, validation_alias=AliasChoices("is_reusable", "isReusable"))
    reuse_category: Optional[str] = Field(None, validation_alias=AliasChoices("reuse_category", "reuseCategory"))

    @field_validator("camera", mode="before")
    @classmethod
    def _known_movement(cls, value: object) -> str:
        # Unknown movements become a static camera here, nowhere else.
        name = str(value or "").strip().lower()
        return name if name in _MOVEMENTS else "static"


SHOT_LIST = TypeAdapter(Annotated[List[ShotProposal], Field(min_length=1)])
QUESTION_LIST = TypeAdapter(Annotated[List[FollowUpQuestion], Field(min_length=1, max_length=8)])
