from fastapi import APIRouter, Depends, Query
from typing import List, Optional
from studybank.api.deps import get_store
from studybank.core.auth import current_user_id
from studybank.core.config import settings
from studybank.core.store import RecordStore
from studybank.models.schemas import PerformanceStats, RecentSession, SubjectStat
from studybank.services import sessions, stats

router = APIRouter()

@router.get("/performance", response_model=PerformanceStats)
def performance(user_id: Optional[str] = Depends(current_user_id), store: RecordStore = Depends(get_store)):
    return sessions.performance_stats(store, user_id)

@router.get("/recent-sessions", response_model=List[RecentSession])
def recent(limit: Optional[int] = Query(None, ge=1, le=50), user_id: Optional[str] = Depends(current_user_id),
           store: RecordStore = Depends(get_store)):
    return sessions.recent_sessions(store, user_id, limit or settings.RECENT_SESSIONS_LIMIT)

@router.get("/subjects", response_model=List[SubjectStat])
def subjects(user_id: Optional[str] = Depends(current_user_id), store: RecordStore = Depends(get_store)):
    return stats.subject_stats(store, user_id)
