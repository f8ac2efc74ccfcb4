"""Camera/timeline compositor: renders every output frame from the generated stills."""
from __future__ import annotations

import bisect
import io
import logging
import math
from typing import Iterator

import requests
from PIL import Image, ImageDraw

from schemas import CameraState, ManifestFrame, Plan, Shot

log = logging.getLogger(__name__)

PLACEHOLDER_COLOR = (24, 24, 32)
DOWNLOAD_TIMEOUT = 30


def ease(p: float, name: str) -> float:
    """Map linear progress *p* in [0, 1] through a named easing curve. Unknown names are linear."""
    if name == "ease-in":
        return p * p
    if name == "ease-out":
        return 1 - (1 - p) * (1 - p)
    if name == "ease-in-out":
        return 2 * p * p if p < 0.5 else 1 - (-2 * p + 2) ** 2 / 2
    return p


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def camera_state_at(shot: Shot, frame: int) -> CameraState:
    """Interpolated camera state for absolute *frame* inside *shot*."""
    p = (frame - shot.start_frame) / shot.duration
    t = ease(min(max(p, 0.0), 1.0), shot.camera_work.easing)
    start, end = shot.camera_work.start_state, shot.camera_work.end_state
    return CameraState(
        x=lerp(start.x, end.x, t),
        y=lerp(start.y, end.y, t),
        zoom=lerp(start.zoom, end.zoom, t),
        rotation=lerp(start.rotation, end.rotation, t),
    )


def affine_coefficients(state: CameraState, width: int, height: int) -> tuple[float, ...]:
    """Inverse affine matrix for PIL's Image.transform.

    Forward mapping: translate to centre, rotate, scale by zoom, then
    translate back offset by the pan (x * width, y * height). PIL wants the
    output -> source mapping, so this returns the inverse.
    """
    theta = math.radians(state.rotation)
    zoom = state.zoom if state.zoom > 0 else 1e-6
    cos, sin = math.cos(theta), math.sin(theta)
    cx, cy = width / 2, height / 2
    px, py = state.x * width, state.y * height

    a, b = cos / zoom, sin / zoom
    d, e = -sin / zoom, cos / zoom
    c = -(a * cx + b * cy) + cx - px
    f = -(d * cx + e * cy) + cy - py
    return (a, b, c, d, e, f)


class Compositor:
    """Renders output frames of a plan at a fixed resolution.

    Source stills are loaded lazily and cached per manifest frame id. A
    missing, failed or unreadable still renders as a placeholder instead
    of raising.
    """

    def __init__(self, plan: Plan, width: int, height: int):
        self.plan = plan
        self.width = width
        self.height = height
        self._shots = sorted(plan.shots, key=lambda s: s.start_frame)
        self._starts = [s.start_frame for s in self._shots]
        self._by_requirement: dict[str, ManifestFrame] = {}
        for frame in plan.frame_manifest.all_frames():
            for req_id in frame.requirement_ids or [frame.id]:
                self._by_requirement.setdefault(req_id, frame)
        self._cache: dict[str, Image.Image] = {}

    @property
    def total_frames(self) -> int:
        return self.plan.total_duration

    def shot_at(self, frame: int) -> Shot | None:
        i = bisect.bisect_right(self._starts, frame) - 1
        if i < 0:
            return None
        shot = self._shots[i]
        return shot if frame < shot.end_frame else None

    def source_for(self, shot: Shot) -> ManifestFrame | None:
        req = shot.frame_requirements[0]
        frame = self._by_requirement.get(req.id)
        if frame is not None:
            return frame
        for candidate in self.plan.frame_manifest.all_frames():
            if shot.id in candidate.used_in_shots:
                return candidate
        return None

    def placeholder(self, label: str = "") -> Image.Image:
        img = Image.new("RGB", (self.width, self.height), color=PLACEHOLDER_COLOR)
        if label:
            draw = ImageDraw.Draw(img)
            draw.text((16, self.height - 32), label, fill=(140, 140, 160))
        return img

    def _load(self, frame: ManifestFrame) -> Image.Image | None:
        if frame.id in self._cache:
            return self._cache[frame.id]

        if frame.status != "complete" or not frame.url:
            return None

        try:
            if frame.url.startswith(("http://", "https://")):
                resp = requests.get(frame.url, timeout=DOWNLOAD_TIMEOUT)
                resp.raise_for_status()
                img = Image.open(io.BytesIO(resp.content))
            else:
                img = Image.open(frame.url)
            img = img.convert("RGB").resize((self.width, self.height), Image.LANCZOS)
        except (OSError, requests.RequestException) as e:
            log.warning("Could not load image for frame %s (%s): %s", frame.id, frame.url, e)
            return None

        self._cache[frame.id] = img
        return img

    def render_frame(self, index: int) -> Image.Image:
        shot = self.shot_at(index)
        if shot is None:
            return self.placeholder()

        source = self.source_for(shot)
        img = self._load(source) if source is not None else None
        if img is None:
            return self.placeholder(shot.id)

        state = camera_state_at(shot, index)
        return img.transform(
            (self.width, self.height),
            Image.AFFINE,
            affine_coefficients(state, self.width, self.height),
            resample=Image.BICUBIC,
        )

    def render_all(self, cancel_event=None) -> Iterator[tuple[int, Image.Image]]:
        """Yield (index, image) for every output frame in order; stops early once *cancel_event* is set."""
        for index in range(self.total_frames):
            if cancel_event is not None and cancel_event.is_set():
                log.info("Rendering stopped at frame %d", index)
                return
            yield index, self.render_frame(index)
