"""Config read/write routes."""
from __future__ import annotations

from pathlib import Path

from litestar import get, post

from animdirector.config import Config
from webui.backend.models import ConfigPayload


@get("/api/config")
async def get_config() -> ConfigPayload:
    cfg = Config.load()
    return ConfigPayload(
        # Mask secret keys, showing only the first and last 4 chars
        hf_token=_mask(cfg.hf_token),
        gemini_api_key=_mask(cfg.gemini_api_key),
        output_dir=str(cfg.output_dir),
        content_model=cfg.content_model,
        hf_content_model=cfg.hf_content_model,
        image_model=cfg.image_model,
    )


@post("/api/config")
async def save_config(data: ConfigPayload) -> dict:
    cfg = Config.load()
    # Only update secrets if the user sent a non-masked value
    if data.hf_token and "…" not in data.hf_token:
        cfg.hf_token = data.hf_token
    if data.gemini_api_key and "…" not in data.gemini_api_key:
        cfg.gemini_api_key = data.gemini_api_key
    cfg.output_dir = Path(data.output_dir)
    if data.content_model:
        cfg.content_model = data.content_model
    if data.hf_content_model:
        cfg.hf_content_model = data.hf_content_model
    if data.image_model:
        cfg.image_model = data.image_model
    cfg.save()
    return {"ok": True}


def _mask(value: str) -> str:
    if not value:
        return ""
    return value[:4] + "…" + value[-4:] if len(value) > 8 else "…"
