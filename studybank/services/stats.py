"""
Dashboard figures: per-subject statistics for a user and admin-wide totals.

Only completed sessions count; an open session has no score yet.
"""
import logging
from collections import defaultdict
from typing import Dict, List, Optional

from studybank.core.errors import AuthError
from studybank.core.store import RecordStore
from studybank.models.orm import Answer, Question, QuizSession, Subject
from studybank.models.schemas import AdminStats, SubjectPage, SubjectStat
from studybank.services.sessions import COMPLETED

logger = logging.getLogger(__name__)


def subject_stats(store: RecordStore, user_id: Optional[str]) -> List[SubjectStat]:
    """Per-subject question count plus the user's completed sessions and their mean accuracy."""
    if not user_id:
        raise AuthError("User is not authenticated")
    sessions = store.select_many(QuizSession, {"user_id": user_id}, COMPLETED)
    by_subject: Dict[str, List[float]] = defaultdict(list)
    for s in sessions:
        total = s.total_questions or 0
        by_subject[s.subject_id].append((s.score or 0) / total * 100 if total else 0.0)
    out = []
    for subj in store.select_many(Subject, order_by=(Subject.name,)):
        accs = by_subject.get(subj.id, [])
        out.append(SubjectStat(
            id=subj.id, name=subj.name,
            question_count=store.count(Question, {"subject_id": subj.id}),
            session_count=len(accs),
            average_accuracy=round(sum(accs) / len(accs), 2) if accs else 0.0,
        ))
    return out


def subject_page(store: RecordStore, user_id: Optional[str], page: int = 1, page_size: int = 3) -> SubjectPage:
    stats = subject_stats(store, user_id)
    page = max(page, 1)
    start = (page - 1) * page_size
    return SubjectPage(items=stats[start:start + page_size], total=len(stats), page=page, page_size=page_size)


def admin_stats(store: RecordStore) -> AdminStats:
    users = set(store.distinct(QuizSession, "user_id")) | set(store.distinct(Answer, "user_id"))
    return AdminStats(
        total_users=len(users),
        total_subjects=store.count(Subject),
        total_questions=store.count(Question),
    )
