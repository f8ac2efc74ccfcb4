"""Job submit / status / cancel / plan routes."""
from __future__ import annotations

from litestar import get, post
from litestar.exceptions import NotFoundException

from schemas import Plan
from webui.backend.job_manager import job_manager
from webui.backend.models import BriefRequest, JobStatus


@post("/api/jobs")
async def create_job(data: BriefRequest) -> dict:
    job_id = job_manager.submit(data)
    return {"job_id": job_id}


@get("/api/jobs/{job_id:str}")
async def get_job(job_id: str) -> JobStatus:
    status = job_manager.status(job_id)
    if status is None:
        raise NotFoundException(f"Job {job_id!r} not found")
    return status


@get("/api/jobs/{job_id:str}/plan")
async def get_job_plan(job_id: str) -> Plan:
    plan = job_manager.plan(job_id)
    if plan is None:
        raise NotFoundException(f"No plan yet for job {job_id!r}")
    return plan


@post("/api/jobs/{job_id:str}/cancel")
async def cancel_job(job_id: str) -> dict:
    if job_manager.status(job_id) is None:
        raise NotFoundException(f"Job {job_id!r} not found")
    job_manager.cancel(job_id)
    return {"ok": True, "job_id": job_id}
