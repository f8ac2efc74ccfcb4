"""Job lifecycle management: submit, cancel, poll, SSE streaming."""
from __future__ import annotations

import asyncio
import logging
import threading
import time
import uuid
from pathlib import Path
from typing import AsyncIterator

from animdirector.config import Config
from animdirector.director import AnimationDirector
from animdirector.export import FFmpegSink
from animdirector.orchestrator import GenerationCancelled
from schemas import Plan
from utils import RunManager

from .models import BriefRequest, JobStatus

log = logging.getLogger(__name__)


class JobManager:
    def __init__(self, config_loader=Config.load) -> None:
        self._jobs: dict[str, dict] = {}
        self._queues: dict[str, asyncio.Queue] = {}
        self._loop: asyncio.AbstractEventLoop | None = None
        self._config_loader = config_loader

    def set_event_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def submit(self, request: BriefRequest) -> str:
        """Start a job in a background thread. Returns the job_id immediately."""
        job_id = str(uuid.uuid4())[:8]
        queue: asyncio.Queue = asyncio.Queue()
        self._queues[job_id] = queue
        self._jobs[job_id] = {
            "state": "queued",
            "stage": None,
            "progress": 0.0,
            "started_at": None,
            "finished_at": None,
            "output": None,
            "error": None,
            "_director": None,
            "_cancel_requested": False,
        }

        loop = self._loop or asyncio.get_event_loop()

        def _push(msg: dict) -> None:
            loop.call_soon_threadsafe(queue.put_nowait, msg)

        thread = threading.Thread(
            target=self._run_job,
            args=(job_id, request, _push),
            daemon=True,
        )
        thread.start()
        return job_id

    def cancel(self, job_id: str) -> None:
        """Cancel a job. Before its director exists the request is held and applied on creation."""
        job = self._jobs.get(job_id)
        if not job:
            return
        job["_cancel_requested"] = True
        director = job.get("_director")
        if director is not None:
            director.cancel()

    def status(self, job_id: str) -> JobStatus | None:
        job = self._jobs.get(job_id)
        if not job:
            return None
        plan = self.plan(job_id)
        return JobStatus(
            job_id=job_id,
            state=job["state"],
            stage=job["stage"],
            progress=job["progress"],
            plan_status=plan.status if plan is not None else None,
            started_at=job["started_at"],
            finished_at=job["finished_at"],
            output_path=job["output"],
            error=job["error"],
        )

    def plan(self, job_id: str) -> Plan | None:
        job = self._jobs.get(job_id)
        director = job.get("_director") if job else None
        return director.get_plan() if director is not None else None

    async def stream(self, job_id: str) -> AsyncIterator[dict]:
        """Async generator: yields SSE message dicts until the job finishes."""
        queue = self._queues.get(job_id)
        if queue is None:
            return
        while True:
            msg = await queue.get()
            yield msg
            if msg.get("type") == "status":
                break

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _run_job(self, job_id: str, request: BriefRequest, push_raw) -> None:
        job = self._jobs[job_id]
        if job["_cancel_requested"]:
            log.info("Job %s cancelled before start", job_id)
            job["state"] = "cancelled"
            job["finished_at"] = time.time()
            push_raw({"type": "status", "state": "cancelled"})
            return
        job["state"] = "running"
        job["started_at"] = time.time()

        def _log(text: str) -> None:
            push_raw({"type": "log", "text": text, "ts": time.time()})

        def _progress(stage: str, pct: float) -> None:
            job["stage"] = stage
            job["progress"] = pct
            push_raw({"type": "progress", "stage": stage, "percent": round(pct, 1), "ts": time.time()})

        try:
            output = asyncio.run(self._run_director(job_id, job, request, _progress, _log))

            job["state"] = "done"
            job["output"] = str(output) if output else None
            job["finished_at"] = time.time()
            push_raw({"type": "status", "state": "done", "output": job["output"]})

        except GenerationCancelled:
            log.info("Job %s cancelled", job_id)
            job["state"] = "cancelled"
            job["finished_at"] = time.time()
            push_raw({"type": "status", "state": "cancelled"})

        except Exception as exc:
            log.exception("Job %s failed", job_id)
            job["state"] = "failed"
            job["error"] = str(exc)
            job["finished_at"] = time.time()
            push_raw({"type": "status", "state": "failed", "error": str(exc)})

    async def _run_director(self, job_id: str, job: dict, request: BriefRequest, progress_cb, log_cb) -> Path | None:
        config = self._config_loader()
        director = AnimationDirector(
            settings=request.settings,
            config=config,
            progress_cb=progress_cb,
            log_cb=log_cb,
            use_placeholders=request.use_test_mode,
        )
        job["_director"] = director
        if job["_cancel_requested"]:
            director.cancel()

        runs = RunManager(Path(config.output_dir) / "runs")
        run_dir = runs.create_run(job_id)

        plan = await director.create_production_plan(request.to_brief())
        runs.save_plan(run_dir, plan)
        if director.cancelled:
            raise GenerationCancelled(plan.frame_manifest)
        if request.plan_only:
            return run_dir / RunManager.PLAN_FILE

        try:
            await director.generate_all_frames()
            sink = FFmpegSink(run_dir / "animation.mp4", audio_path=request.settings.audio_file)
            return await director.export_video(sink)
        finally:
            runs.save_plan(run_dir, director.get_plan())


# Singleton
job_manager = JobManager()
