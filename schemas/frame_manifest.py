from pydantic import BaseModel, Field
from typing import Dict, Iterator, List, Literal, Optional

FrameStatus = Literal["pending", "generating", "complete", "error"]

UNIQUE_CATEGORY = "unique"


class ManifestFrame(BaseModel):
    """One unit of generation work, backing one or more frame requirements."""
    id: str
    prompt: str
    category: str
    used_in_shots: List[str] = Field(default_factory=list)
    requirement_ids: List[str] = Field(default_factory=list, description="Frame requirements this frame satisfies")
    generation_batch: int = 0
    status: FrameStatus = "pending"
    url: Optional[str] = Field(None, description="Path or URL of the generated image")
    error: Optional[str] = None


class FrameCategory(BaseModel):
    id: str
    name: str
    count: int = 0
    is_reusable: bool = True
    frames: List[ManifestFrame] = Field(default_factory=list)


class FrameManifest(BaseModel):
    """Deduplicated generation work for a plan, in batch-assigned order."""
    total_unique: int = 0
    total_reused: int = 0
    total_with_camera: int = Field(0, description="Output frames stretched from stills by camera motion")
    total_output: int = 0
    categories: List[FrameCategory] = Field(default_factory=list)
    generation_order: List[str] = Field(default_factory=list)

    def all_frames(self) -> Iterator[ManifestFrame]:
        for category in self.categories:
            yield from category.frames

    def frames_by_id(self) -> Dict[str, ManifestFrame]:
        return {frame.id: frame for frame in self.all_frames()}

    def get_frame(self, frame_id: str) -> Optional[ManifestFrame]:
        return self.frames_by_id().get(frame_id)

    def frame_for_requirement(self, requirement_id: str) -> Optional[ManifestFrame]:
        for frame in self.all_frames():
            if requirement_id in frame.requirement_ids:
                return frame
        return None

    def count_status(self, status: FrameStatus) -> int:
        return sum(1 for frame in self.all_frames() if frame.status == status)
