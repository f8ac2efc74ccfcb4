import asyncio
import threading
from pathlib import Path

from litestar.testing import TestClient

from animdirector.config import Config
from webui.backend.app import app
from webui.backend.job_manager import JobManager
from webui.backend.models import BriefRequest


def _collect(manager, request):
    async def main():
        manager.set_event_loop(asyncio.get_running_loop())
        job_id = manager.submit(request)
        messages = [msg async for msg in manager.stream(job_id)]
        return job_id, messages

    return asyncio.run(main())


def test_plan_only_job(tmp_path):
    manager = JobManager(config_loader=lambda: Config(output_dir=tmp_path))
    job_id, messages = _collect(manager, BriefRequest(prompt="a fox", use_test_mode=True, plan_only=True))

    assert messages[-1]["type"] == "status"
    assert messages[-1]["state"] == "done"
    assert Path(messages[-1]["output"]).exists()
    assert any(m["type"] == "progress" and m["stage"] == "planning" for m in messages)
    assert any(m["type"] == "log" for m in messages)

    status = manager.status(job_id)
    assert status.state == "done"
    assert status.plan_status == "draft"
    assert manager.plan(job_id).total_duration == 720


def test_blank_prompt_job_fails(tmp_path):
    manager = JobManager(config_loader=lambda: Config(output_dir=tmp_path))
    job_id, messages = _collect(manager, BriefRequest(prompt="", use_test_mode=True, plan_only=True))
    assert messages[-1]["state"] == "failed"
    assert "Invalid brief" in messages[-1]["error"]
    assert manager.status(job_id).plan_status == "error"


def test_cancel_before_director_exists(tmp_path):
    release = threading.Event()

    def slow_config():
        release.wait(timeout=10)
        return Config(output_dir=tmp_path)

    manager = JobManager(config_loader=slow_config)

    async def main():
        manager.set_event_loop(asyncio.get_running_loop())
        job_id = manager.submit(BriefRequest(prompt="a fox", use_test_mode=True, plan_only=True))
        manager.cancel(job_id)
        release.set()
        return job_id, [msg async for msg in manager.stream(job_id)]

    job_id, messages = asyncio.run(main())
    assert messages[-1] == {"type": "status", "state": "cancelled"}
    assert manager.status(job_id).state == "cancelled"


def test_unknown_job_is_404():
    with TestClient(app=app) as client:
        assert client.get("/api/jobs/nope").status_code == 404
        assert client.get("/api/jobs/nope/plan").status_code == 404
        assert client.post("/api/jobs/nope/cancel").status_code == 404
