from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Dict, List, Literal, Optional, Union

StylePreset = Literal[
    "anime", "pixar", "comic-book", "watercolor", "oil-painting", "cyberpunk",
    "noir", "retro-cartoon", "realistic", "minimalist", "custom",
]

CinematographyStyle = Literal[
    "documentary", "action", "dramatic", "comedy", "music-video", "storybook", "experimental",
]

Resolution = Literal["720p", "1080p", "4k", "portrait-1080", "square-1080"]


class DirectorSettings(BaseModel):
    """Production configuration carried by a brief. Frozen once planning starts."""
    model_config = ConfigDict(frozen=True)

    style: StylePreset = "anime"
    cinematography: CinematographyStyle = "dramatic"
    resolution: Resolution = "1080p"
    fps: int = Field(default=24, gt=0, le=120)
    target_duration: float = Field(default=30, gt=0, description="Target duration in seconds")
    max_unique_frames: int = Field(default=120, ge=1, description="Budget for unique generated frames")
    parallel_generations: int = Field(default=4, ge=1, description="Concurrent generation calls per window")
    reuse_aggression: float = Field(default=0.7, ge=0.0, le=1.0, description="Similarity a frame must exceed to be reused")
    audio_file: Optional[str] = None
    audio_bpm: Optional[float] = Field(default=None, gt=0)
    audio_beats: List[float] = Field(default_factory=list, description="Beat timestamps in seconds")

    @property
    def total_frames(self) -> int:
        return int(self.target_duration * self.fps)


class Brief(BaseModel):
    """The user's request: free text plus clarifying answers and configuration."""
    model_config = ConfigDict(frozen=True)

    prompt: str = Field(..., description="Natural-language creative brief")
    follow_up_answers: Dict[str, str] = Field(default_factory=dict)
    source_images: List[str] = Field(default_factory=list, description="Reference image paths or URLs")
    settings: DirectorSettings = Field(default_factory=DirectorSettings)

    @field_validator("prompt")
    @classmethod
    def _prompt_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("prompt must not be blank")
        return value.strip()


class FollowUpQuestion(BaseModel):
    id: str
    question: str
    type: Literal["text", "choice", "slider", "toggle"] = "text"
    options: List[str] = Field(default_factory=list)
    default: Optional[Union[str, float, bool]] = None
    required: bool = False
    category: Literal["story", "style", "technical", "audio"] = "story"
