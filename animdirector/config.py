"""Settings and API key management."""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_DIR = Path.home() / ".animdirector"
CONFIG_FILE = CONFIG_DIR / "config.json"

# Planning (structured-content) models
GEMINI_CONTENT_MODEL = "gemini-2.0-flash"
HF_CONTENT_MODEL = "meta-llama/Llama-3.1-8B-Instruct"

# Image generation
# FLUX.1-schnell: free tier, fast, no gating (FLUX.1-dev requires HF Pro)
PRIMARY_IMAGE_MODEL = "black-forest-labs/FLUX.1-schnell"
FALLBACK_IMAGE_MODEL = "stabilityai/stable-diffusion-xl-base-1.0"

# API image dimensions, within free-tier inference limits.
# The compositor scales stills up to the output resolution.
API_IMAGE_WIDTH = 1024
API_IMAGE_HEIGHT = 576

# Frame manifest
GENERATION_BATCH_SIZE = 12   # frames per manifest batch
MIN_PLAUSIBLE_UNIQUE = 10    # fewer unique frames than this gets a warning

# Orchestrator
INTER_BATCH_DELAY = 0.3  # seconds between generation windows

# Planner fallback
FALLBACK_ACT_SPLIT = (0.25, 0.5, 0.25)
FALLBACK_SHOTS_PER_ACT = 10
FALLBACK_REUSABLE_SHOTS = 3
FALLBACK_CATEGORY = "general"

# Estimates
COST_PER_FRAME = 0.002       # USD per generated still
MINUTES_PER_WINDOW = 0.5

# Retry
MAX_RETRIES = 3
RETRY_DELAY = 5  # seconds


@dataclass
class Config:
    hf_token: str = ""
    gemini_api_key: str = ""
    output_dir: Path = field(default_factory=lambda: Path("output"))
    content_model: str = GEMINI_CONTENT_MODEL
    hf_content_model: str = HF_CONTENT_MODEL
    image_model: str = PRIMARY_IMAGE_MODEL

    @classmethod
    def load(cls) -> "Config":
        """Load config from env vars then config file."""
        cfg = cls()

        # Env var takes priority
        token = os.environ.get("HF_TOKEN", "")
        gemini_key = os.environ.get("GEMINI_API_KEY", "")

        # Fall back to config file
        if CONFIG_FILE.exists():
            try:
                data = json.loads(CONFIG_FILE.read_text(encoding="utf-8-sig"))
                if not token:
                    token = data.get("hf_token", "")
                if not gemini_key:
                    gemini_key = data.get("gemini_api_key", "")
                if out := data.get("output_dir"):
                    cfg.output_dir = Path(out)
                if cm := data.get("content_model"):
                    cfg.content_model = cm
                if hm := data.get("hf_content_model"):
                    cfg.hf_content_model = hm
                if im := data.get("image_model"):
                    cfg.image_model = im
            except (json.JSONDecodeError, OSError):
                pass

        cfg.hf_token = token
        cfg.gemini_api_key = gemini_key
        return cfg

    def save(self) -> None:
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        data = {
            "hf_token": self.hf_token,
            "gemini_api_key": self.gemini_api_key,
            "output_dir": str(self.output_dir),
            "content_model": self.content_model,
            "hf_content_model": self.hf_content_model,
            "image_model": self.image_model,
        }
        CONFIG_FILE.write_text(json.dumps(data, indent=2))
