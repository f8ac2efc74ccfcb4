import asyncio

import pytest
from PIL import Image

from animdirector.config import Config
from schemas import CameraWork, FrameRequirement, Shot


class ScriptedContentService:
    """Replies by matching a marker phrase in the prompt."""

    def __init__(self, replies):
        self.replies = replies
        self.prompts = []

    def propose(self, prompt):
        self.prompts.append(prompt)
        for marker, reply in self.replies.items():
            if marker in prompt:
                if isinstance(reply, Exception):
                    raise reply
                return reply
        raise RuntimeError("no scripted reply")


class FakeImageService:
    """Writes a small solid PNG per call; prompts containing a fail marker raise."""

    def __init__(self, out_dir, fail_marker=None, fail_once=False, color=(200, 30, 30)):
        self.out_dir = out_dir
        self.fail_marker = fail_marker
        self.fail_once = fail_once
        self.color = color
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def generate(self, prompt, reference_image=None):
        self.calls.append((prompt, reference_image))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if self.fail_marker and self.fail_marker in prompt:
                if self.fail_once:
                    self.fail_marker = None
                raise RuntimeError("model overloaded")
            path = self.out_dir / f"img_{len(self.calls)}.png"
            Image.new("RGB", (64, 36), self.color).save(path)
            return str(path)
        finally:
            self.in_flight -= 1


class MemorySink:
    def __init__(self, fail_at=None):
        self.opened = None
        self.count = 0
        self.sizes = set()
        self.closed = False
        self.aborted = False
        self.fail_at = fail_at

    def open(self, width, height, fps):
        self.opened = (width, height, fps)

    def write(self, frame):
        if self.fail_at is not None and self.count == self.fail_at:
            raise OSError("disk full")
        self.sizes.add(frame.size)
        self.count += 1

    def close(self):
        self.closed = True
        return "memory://sink"

    def abort(self):
        self.aborted = True


def make_shot(index, start, end, prompt, reusable=False, category=None, camera=None):
    return Shot(
        id=f"shot-{index}",
        scene_id="scene-0",
        type="establishing",
        start_frame=start,
        end_frame=end,
        frame_requirements=[FrameRequirement(
            id=f"frame-{index}",
            prompt=prompt,
            is_reusable=reusable,
            reuse_category=category,
        )],
        camera_work=camera or CameraWork(),
    )


@pytest.fixture
def config(tmp_path):
    return Config(output_dir=tmp_path / "output")


@pytest.fixture
def image_service(tmp_path):
    return FakeImageService(tmp_path)


@pytest.fixture
def sink():
    return MemorySink()
