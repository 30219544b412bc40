"""
Quiz session lifecycle.

A session is Open from ``start`` until ``finish`` writes ``completed_at``,
``score`` and ``total_questions``. Sessions that are never finished stay Open
and are left out of every completed-session figure.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import joinedload

from studybank.core.errors import AuthError, NotFoundError, ValidationError
from studybank.core.store import RecordStore
from studybank.models.orm import QuizSession, utcnow
from studybank.models.schemas import PerformanceStats, RecentSession

logger = logging.getLogger(__name__)

COMPLETED = QuizSession.completed_at.is_not(None)


def start(store: RecordStore, user_id: Optional[str], subject_id: str) -> str:
    if not user_id:
        raise AuthError("User is not authenticated")
    session_id = store.insert(QuizSession, {"user_id": user_id, "subject_id": subject_id})
    logger.info(f"Session {session_id} opened for user {user_id} on subject {subject_id}")
    return session_id


def finish(store: RecordStore, user_id: Optional[str], session_id: str, score: int, total_questions: int) -> None:
    """Close one of the user's sessions. Not idempotent: a second call overwrites the first close."""
    if not user_id:
        raise AuthError("User is not authenticated")
    if total_questions < 0 or not 0 <= score <= total_questions:
        raise ValidationError(f"Invalid score {score} of {total_questions}")
    touched = store.update(QuizSession, session_id, {
        "completed_at": utcnow(), "score": score, "total_questions": total_questions,
    }, {"user_id": user_id})
    if not touched:
        raise NotFoundError(f"Session {session_id} not found")
    logger.info(f"Session {session_id} closed with {score}/{total_questions}")


def get(store: RecordStore, session_id: str) -> QuizSession:
    row = store.select_one(QuizSession, {"id": session_id})
    if row is None:
        raise NotFoundError(f"Session {session_id} not found")
    return row


def accuracy(score: int, total: int) -> int:
    return round(score / total * 100) if total > 0 else 0


def performance_stats(store: RecordStore, user_id: Optional[str]) -> PerformanceStats:
    if not user_id:
        raise AuthError("User is not authenticated")
    rows = store.select_many(QuizSession, {"user_id": user_id}, COMPLETED)
    return PerformanceStats(
        total_sessions=len(rows),
        total_questions_answered=sum(r.total_questions or 0 for r in rows),
    )


def recent_sessions(store: RecordStore, user_id: Optional[str], limit: int = 5) -> List[RecentSession]:
    if not user_id:
        raise AuthError("User is not authenticated")
    rows = store.select_many(
        QuizSession, {"user_id": user_id}, COMPLETED,
        order_by=(QuizSession.completed_at.desc(),), limit=limit,
        options=(joinedload(QuizSession.subject),),
    )
    return [
        RecentSession(
            id=r.id, subject_id=r.subject_id, subject_name=r.subject.name if r.subject else None,
            completed_at=r.completed_at, score=r.score or 0, total_questions=r.total_questions or 0,
            accuracy=accuracy(r.score or 0, r.total_questions or 0),
        )
        for r in rows
    ]
