"""Headless entry point: python -m animdirector.main --prompt "..." [options]."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import get_args

from schemas.brief import Resolution, StylePreset

if sys.platform == 'win32':
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

log = logging.getLogger(__name__)


def _setup_logging() -> None:
    log_dir = Path.home() / ".animdirector"
    log_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=str(log_dir / "animdirector.log"),
        level=logging.DEBUG,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="animdirector", description="Plan and render an animation from a brief.")
    parser.add_argument("--prompt", required=True, help="Creative brief")
    parser.add_argument("--duration", type=float, default=30, help="Target duration in seconds")
    parser.add_argument("--fps", type=int, default=24)
    parser.add_argument("--style", default="anime", choices=get_args(StylePreset))
    parser.add_argument("--resolution", default="1080p", choices=get_args(Resolution))
    parser.add_argument("--bpm", type=float, default=None, help="Soundtrack tempo for beat sync")
    parser.add_argument("--audio", default=None, help="Soundtrack file muxed into the video")
    parser.add_argument("--reference", default=None, help="Reference image for consistent characters")
    parser.add_argument("--test", action="store_true", help="Placeholder images, no network")
    parser.add_argument("--plan-only", action="store_true", help="Stop after planning and save the plan")
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace, use_placeholders: bool) -> Path:
    from schemas import DirectorSettings
    from utils import RunManager

    from .config import Config
    from .director import AnimationDirector
    from .export import FFmpegSink

    config = Config.load()
    settings = DirectorSettings(
        style=args.style,
        resolution=args.resolution,
        fps=args.fps,
        target_duration=args.duration,
        audio_bpm=args.bpm,
        audio_file=args.audio,
    )
    brief = dict(
        prompt=args.prompt,
        settings=settings,
        source_images=[args.reference] if args.reference else [],
    )

    def progress(stage: str, pct: float) -> None:
        log.debug("%s %.0f%%", stage, pct)

    director = AnimationDirector(
        settings=settings,
        config=config,
        progress_cb=progress,
        log_cb=print,
        use_placeholders=use_placeholders,
    )

    runs = RunManager(Path(config.output_dir) / "runs")
    run_dir = runs.create_run()

    plan = await director.create_production_plan(brief)
    runs.save_plan(run_dir, plan)
    if args.plan_only:
        return run_dir / RunManager.PLAN_FILE

    director.approve_plan()
    try:
        await director.generate_all_frames()
        output = await director.export_video(FFmpegSink(run_dir / "animation.mp4", audio_path=args.audio))
    finally:
        runs.save_plan(run_dir, director.get_plan())
    return output


def run_headless(args: argparse.Namespace) -> None:
    """Run the director without a UI, printing progress to stdout."""
    from .config import Config
    from .director import DirectorError
    from .orchestrator import GenerationCancelled
    from pydantic import ValidationError

    use_placeholders = args.test
    config = Config.load()
    if not config.hf_token and not use_placeholders:
        print("⚠  No HF_TOKEN found — frames will be placeholder images.")

    try:
        output = asyncio.run(_run(args, use_placeholders))
        print(f"\n✅ Output: {output}")
    except (KeyboardInterrupt, GenerationCancelled):
        print("Cancelled.")
        sys.exit(1)
    except (DirectorError, ValidationError) as e:
        print(f"Error: {e}")
        sys.exit(1)


def main(argv: list[str] | None = None) -> None:
    _setup_logging()
    run_headless(_parse_args(sys.argv[1:] if argv is None else argv))


if __name__ == "__main__":
    main()
