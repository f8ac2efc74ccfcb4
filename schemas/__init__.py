from .brief import Brief, DirectorSettings, FollowUpQuestion
from .audio_sync import AudioSyncPlan, AudioSection, BeatMarker
from .frame_manifest import FrameManifest, FrameCategory, ManifestFrame, UNIQUE_CATEGORY
from .production_plan import (
    Act, CameraState, CameraWork, FrameRequirement, Plan, Scene, Shot, Transitions,
)
from .proposals import ActProposal, ShotProposal, StructureProposal

__all__ = [
    "Brief", "DirectorSettings", "FollowUpQuestion",
    "AudioSyncPlan", "AudioSection", "BeatMarker",
    "FrameManifest", "FrameCategory", "ManifestFrame", "UNIQUE_CATEGORY",
    "Act", "CameraState", "CameraWork", "FrameRequirement", "Plan", "Scene", "Shot", "Transitions",
    "ActProposal", "ShotProposal", "StructureProposal",
]
