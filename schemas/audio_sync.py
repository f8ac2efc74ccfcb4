from pydantic import BaseModel, Field
from typing import List, Literal, Optional

Pacing = Literal["slow", "medium", "fast"]


class BeatMarker(BaseModel):
    time: float = Field(..., ge=0, description="Seconds from the start of the track")
    frame: int = Field(..., ge=0, description="Output frame the beat lands on")
    type: Literal["beat", "downbeat", "accent"] = "beat"
    intensity: float = Field(default=0.7, ge=0.0, le=1.0)


class AudioSection(BaseModel):
    name: str
    start_time: float
    end_time: float
    energy: Literal["low", "medium", "high"] = "medium"
    suggested_pacing: Pacing = "medium"


class AudioSyncPlan(BaseModel):
    """Beat and energy layout of the soundtrack, used to bias planner pacing."""
    duration: float
    bpm: Optional[float] = None
    beats: List[BeatMarker] = Field(default_factory=list)
    sections: List[AudioSection] = Field(default_factory=list)

    def section_at(self, time: float) -> Optional[AudioSection]:
        for section in self.sections:
            if section.start_time <= time < section.end_time:
                return section
        return None
