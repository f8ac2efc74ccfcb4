"""Pydantic request/response models for the AnimDirector Web API."""
from __future__ import annotations

from typing import Literal
from pydantic import BaseModel, Field

from schemas import DirectorSettings


class BriefRequest(BaseModel):
    prompt: str = ""
    follow_up_answers: dict[str, str] = Field(default_factory=dict)
    source_images: list[str] = Field(default_factory=list)
    settings: DirectorSettings = Field(default_factory=DirectorSettings)
    use_test_mode: bool = False  # placeholder images, no API calls
    plan_only: bool = False      # stop after planning

    def to_brief(self) -> dict:
        return self.model_dump(include={"prompt", "follow_up_answers", "source_images", "settings"})


class JobStatus(BaseModel):
    job_id: str
    state: Literal["queued", "running", "done", "cancelled", "failed"]
    stage: str | None = None
    progress: float = 0.0
    plan_status: str | None = None
    started_at: float | None = None
    finished_at: float | None = None
    output_path: str | None = None
    error: str | None = None


class ConfigPayload(BaseModel):
    hf_token: str = ""
    gemini_api_key: str = ""
    output_dir: str = "output"
    content_model: str = ""
    hf_content_model: str = ""
    image_model: str = ""


class OutputFile(BaseModel):
    name: str
    path: str
    size_bytes: int
    created_at: float
