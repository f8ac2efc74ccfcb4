"""Frame sinks: encode composited frames to an MP4 via ffmpeg, or dump a PNG sequence."""
from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Protocol

from PIL import Image

log = logging.getLogger(__name__)


class FrameSink(Protocol):
    def open(self, width: int, height: int, fps: int) -> None:
        ...

    def write(self, frame: Image.Image) -> None:
        ...

    def close(self) -> Path:
        """Finish writing and return the output location."""
        ...

    def abort(self) -> None:
        """Stop writing and discard partial output. Safe to call more than once."""
        ...


def _check_ffmpeg() -> None:
    if not shutil.which("ffmpeg"):
        raise RuntimeError("ffmpeg not found in PATH. Please install ffmpeg.")


class FFmpegSink:
    """Streams raw RGB frames into ffmpeg's stdin and encodes H.264.

    When *audio_path* points at an existing file it is muxed in and the
    output is cut to the shorter of the two streams.
    """

    def __init__(self, output_path: Path, audio_path: str | None = None, crf: int = 18):
        self.output_path = Path(output_path)
        self.audio_path = Path(audio_path) if audio_path and Path(audio_path).exists() else None
        self.crf = crf
        self._proc: subprocess.Popen | None = None
        self._size: tuple[int, int] | None = None

    def open(self, width: int, height: int, fps: int) -> None:
        _check_ffmpeg()
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self._size = (width, height)

        cmd = [
            "ffmpeg", "-y",
            "-f", "rawvideo",
            "-pix_fmt", "rgb24",
            "-s", f"{width}x{height}",
            "-r", str(fps),
            "-i", "-",
        ]
        if self.audio_path:
            cmd += ["-i", str(self.audio_path), "-c:a", "aac", "-b:a", "192k", "-shortest"]
        cmd += [
            "-c:v", "libx264",
            "-preset", "medium",
            "-crf", str(self.crf),
            "-pix_fmt", "yuv420p",
            str(self.output_path),
        ]
        log.info("Starting ffmpeg: %s", " ".join(cmd))
        self._proc = subprocess.Popen(cmd, stdin=subprocess.PIPE, stdout=subprocess.DEVNULL, stderr=subprocess.PIPE)

    def write(self, frame: Image.Image) -> None:
        if self._proc is None or self._proc.stdin is None:
            raise RuntimeError("FFmpegSink.write() called before open()")
        if frame.size != self._size:
            frame = frame.resize(self._size)
        try:
            self._proc.stdin.write(frame.convert("RGB").tobytes())
        except BrokenPipeError as e:
            stderr = self._proc.stderr.read().decode(errors="replace")[-500:] if self._proc.stderr else ""
            raise RuntimeError(f"ffmpeg exited early: {stderr}") from e

    def close(self) -> Path:
        if self._proc is None:
            raise RuntimeError("FFmpegSink.close() called before open()")
        _, stderr = self._proc.communicate(timeout=600)
        if self._proc.returncode != 0:
            msg = stderr.decode(errors="replace")[-500:] if stderr else ""
            raise RuntimeError(f"ffmpeg failed (exit {self._proc.returncode}): {msg}")
        log.info("Video written to %s", self.output_path)
        return self.output_path

    def abort(self) -> None:
        # communicate() closes stdin and tolerates the broken pipe after kill()
        if self._proc is not None and self._proc.returncode is None:
            self._proc.kill()
            self._proc.communicate()
        if self.output_path.exists():
            self.output_path.unlink()
            log.info("Removed partial video %s", self.output_path)


class PNGSequenceSink:
    """Writes frame_00000.png, frame_00001.png, ... into a directory."""

    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir)
        self.count = 0

    def open(self, width: int, height: int, fps: int) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.count = 0

    def write(self, frame: Image.Image) -> None:
        frame.save(self.output_dir / f"frame_{self.count:05d}.png", "PNG")
        self.count += 1

    def close(self) -> Path:
        log.info("Wrote %d frames to %s", self.count, self.output_dir)
        return self.output_dir

    def abort(self) -> None:
        # frames already on disk are kept for inspection
        log.info("PNG sequence stopped after %d frames in %s", self.count, self.output_dir)
