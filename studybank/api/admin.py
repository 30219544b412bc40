from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from typing import Optional
from rq.exceptions import NoSuchJobError
from rq.job import Job
from studybank.api.deps import get_store
from studybank.core.auth import require_roles, TokenData
from studybank.core.config import settings
from studybank.core.errors import NotFoundError
from studybank.core.store import RecordStore
from studybank.models.schemas import AdminStats, SubjectPage
from studybank.services import stats
from studybank.jobs.queue import queue, redis
from studybank.jobs.sweep_job import sweep_orphans_job

router = APIRouter(dependencies=[Depends(require_roles("admin"))])

@router.get("/stats", response_model=AdminStats)
def admin_stats(store: RecordStore = Depends(get_store)):
    return stats.admin_stats(store)

@router.get("/subjects", response_model=SubjectPage)
def subject_page(page: int = Query(1, ge=1), user: TokenData = Depends(require_roles("admin")),
                 store: RecordStore = Depends(get_store)):
    return stats.subject_page(store, user.sub, page, settings.SUBJECTS_PAGE_SIZE)

class StartSweep(BaseModel):
    grace_minutes: Optional[int] = None
    dry_run: bool = False

@router.post("/orphans/sweep")
def start_sweep(payload: StartSweep):
    grace = payload.grace_minutes if payload.grace_minutes is not None else settings.ORPHAN_GRACE_MINUTES
    job = queue.enqueue(sweep_orphans_job, grace, payload.dry_run, job_timeout=600)
    return {"job_id": job.get_id(), "grace_minutes": grace}

class SweepStatus(BaseModel):
    state: str
    swept: int = 0
    dry_run: bool = False
    result: dict | None = None

@router.get("/orphans/sweep/status", response_model=SweepStatus)
def sweep_status(job_id: str):
    try:
        job = Job.fetch(job_id, connection=redis)
    except NoSuchJobError:
        raise NotFoundError(f"Sweep job {job_id} not found") from None
    meta = job.meta or {}
    state = meta.get("state") or job.get_status()
    return SweepStatus(
        state=str(state),
        swept=int(meta.get("swept") or 0),
        dry_run=bool(meta.get("dry_run")),
        result=job.return_value() if state == "done" else None,
    )
