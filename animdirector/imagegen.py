"""Still-image generation services: HuggingFace with retry and fallback, or local placeholders."""
from __future__ import annotations

import asyncio
import colorsys
import hashlib
import io
import logging
import uuid
from pathlib import Path
from typing import Protocol

from PIL import Image

from .config import (
    API_IMAGE_HEIGHT,
    API_IMAGE_WIDTH,
    FALLBACK_IMAGE_MODEL,
    MAX_RETRIES,
    RETRY_DELAY,
    Config,
)

log = logging.getLogger(__name__)


class ImageService(Protocol):
    async def generate(self, prompt: str, reference_image: str | None = None) -> str:
        """Generate one still and return its path or URL. Raises on failure."""
        ...


def _call_hf_image(
    prompt: str,
    model: str,
    token: str,
    reference_image: str | None = None,
    width: int = API_IMAGE_WIDTH,
    height: int = API_IMAGE_HEIGHT,
) -> bytes:
    """Call HF Inference API for text-to-image (image-to-image with a reference). Returns PNG bytes."""
    from huggingface_hub import InferenceClient

    client = InferenceClient(model=model, token=token)
    if reference_image:
        img: Image.Image = client.image_to_image(reference_image, prompt=prompt)
    else:
        img = client.text_to_image(
            prompt,
            width=width,
            height=height,
        )
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


class HFImageService:
    """Tries the configured model first, then FALLBACK_IMAGE_MODEL, MAX_RETRIES times each."""

    def __init__(
        self,
        config: Config,
        output_dir: Path | None = None,
        max_retries: int = MAX_RETRIES,
        retry_delay: float = RETRY_DELAY,
    ):
        self.token = config.hf_token
        self.models = [config.image_model]
        if FALLBACK_IMAGE_MODEL not in self.models:
            self.models.append(FALLBACK_IMAGE_MODEL)
        self.output_dir = Path(output_dir or Path(config.output_dir) / "frames")
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    async def generate(self, prompt: str, reference_image: str | None = None) -> str:
        output_path = self.output_dir / f"frame_{uuid.uuid4().hex[:12]}.png"

        for model in self.models:
            for attempt in range(1, self.max_retries + 1):
                try:
                    log.info("Generating image with %s (attempt %d)", model, attempt)
                    img_bytes = await asyncio.to_thread(
                        _call_hf_image,
                        prompt=prompt,
                        model=model,
                        token=self.token,
                        reference_image=reference_image,
                    )
                    output_path.parent.mkdir(parents=True, exist_ok=True)
                    output_path.write_bytes(img_bytes)
                    log.info("Saved image to %s", output_path)
                    return str(output_path)

                except Exception as e:
                    log.warning("Image gen failed (%s attempt %d): %s", model, attempt, e)
                    if attempt < self.max_retries:
                        await asyncio.sleep(self.retry_delay)

            log.warning("All retries exhausted for %s", model)

        raise RuntimeError(f"Image generation failed for all models. Prompt: {prompt[:80]}...")


def generate_placeholder_image(
    prompt: str,
    output_path: Path,
    width: int = API_IMAGE_WIDTH,
    height: int = API_IMAGE_HEIGHT,
) -> Path:
    """Draw a simple placeholder image (no API needed). Hue is derived from the prompt."""
    from PIL import ImageDraw, ImageFont

    digest = hashlib.md5(prompt.encode("utf-8")).digest()
    hue = digest[0] / 255
    r, g, b = (int(c * 255) for c in colorsys.hls_to_rgb(hue, 0.18, 0.5))
    img = Image.new("RGB", (width, height), color=(r, g, b))
    draw = ImageDraw.Draw(img)

    # Off-centre disc so camera motion is visible
    cr, cg, cb = (int(c * 255) for c in colorsys.hls_to_rgb(hue, 0.55, 0.7))
    radius = min(width, height) // 5
    cx, cy = width // 2 - radius, height // 2 - radius // 2
    draw.ellipse([cx - radius, cy - radius, cx + radius, cy + radius], fill=(cr, cg, cb))

    try:
        font = ImageFont.truetype("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf", 24)
    except OSError:
        font = ImageFont.load_default()

    # Simple word wrap
    words = prompt.split()
    lines: list[str] = []
    current = ""
    for w in words:
        test = f"{current} {w}".strip()
        bbox = draw.textbbox((0, 0), test, font=font)
        if bbox[2] > width - 80 and current:
            lines.append(current)
            current = w
        else:
            current = test
    if current:
        lines.append(current)

    y = height - 40 - len(lines) * 32
    for line in lines[-4:]:
        bbox = draw.textbbox((0, 0), line, font=font)
        x = (width - bbox[2]) // 2
        draw.text((x + 2, y + 2), line, fill=(0, 0, 0), font=font)
        draw.text((x, y), line, fill=(220, 220, 255), font=font)
        y += 32

    output_path.parent.mkdir(parents=True, exist_ok=True)
    img.save(output_path, "PNG")
    return output_path


class PlaceholderImageService:
    """Offline stand-in for the generation service, used in test mode."""

    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir)

    async def generate(self, prompt: str, reference_image: str | None = None) -> str:
        output_path = self.output_dir / f"placeholder_{uuid.uuid4().hex[:12]}.png"
        await asyncio.to_thread(generate_placeholder_image, prompt, output_path)
        return str(output_path)


def get_image_service(config: Config, use_placeholders: bool = False) -> ImageService:
    frames_dir = Path(config.output_dir) / "frames"
    if use_placeholders or not config.hf_token:
        return PlaceholderImageService(frames_dir)
    return HFImageService(config, frames_dir)
