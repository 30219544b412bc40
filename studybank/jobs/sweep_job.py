import logging
from datetime import timedelta
from rq import get_current_job
from studybank.core.database import SessionLocal
from studybank.core.store import RecordStore
from studybank.models.orm import utcnow
from studybank.services.ingestion import sweep_orphan_questions

logger = logging.getLogger(__name__)

def _meta(**kw):
    job = get_current_job()
    if job is not None:
        job.meta.update(kw); job.save_meta()

def sweep_orphans_job(grace_minutes: int, dry_run: bool = False, session_factory=SessionLocal):
    """Remove questions whose options insert never landed, once they are older than the grace period."""
    _meta(state="running", swept=0, dry_run=dry_run)
    cutoff = utcnow() - timedelta(minutes=grace_minutes)
    db = session_factory()
    try:
        ids = sweep_orphan_questions(RecordStore(db), cutoff, dry_run=dry_run)
    except Exception as e:
        logger.error(f"Orphan sweep failed: {e}")
        _meta(state="failed", error=str(e))
        raise
    finally:
        db.close()
    result = {"swept": len(ids), "question_ids": ids, "dry_run": dry_run, "cutoff": cutoff.isoformat()}
    _meta(state="done", swept=len(ids))
    return result
