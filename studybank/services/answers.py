"""
Answer recording and post-hoc error classification.

Answers are an append-only log owned by the user who gave them. Recording
is soft-failing so a store outage never blocks a practice run; everything
else raises.
"""
import logging
from typing import Optional

from studybank.core.errors import AuthError, NotFoundError, PersistenceError, ValidationError
from studybank.core.store import RecordStore
from studybank.models.orm import Answer, ErrorType, QuizSession

logger = logging.getLogger(__name__)


def record(store: RecordStore, user_id: Optional[str], question_id: str, selected_option_id: str,
           is_correct: bool, session_id: str) -> Optional[str]:
    """Append one answer to one of the user's sessions.

    Store failures are logged and reported as None so practice can go on. A
    session that does not exist or belongs to someone else is a NotFoundError.
    """
    if not user_id:
        raise AuthError("User is not authenticated")
    try:
        session = store.select_one(QuizSession, {"id": session_id, "user_id": user_id})
        if session is not None:
            return store.insert(Answer, {
                "user_id": user_id,
                "question_id": question_id,
                "selected_option_id": selected_option_id,
                "is_correct": is_correct,
                "session_id": session_id,
            })
    except PersistenceError as e:
        logger.error(f"Answer to question {question_id} in session {session_id} not recorded: {e}")
        return None
    raise NotFoundError(f"Session {session_id} not found")


def classify(store: RecordStore, user_id: Optional[str], answer_id: str, error_type: ErrorType | str) -> None:
    if not user_id:
        raise AuthError("User is not authenticated")
    try:
        kind = ErrorType(error_type)
    except ValueError:
        raise ValidationError(f"Unknown error type {error_type!r}") from None
    # callers classify once, right after a wrong answer; nothing here checks either condition
    if not store.update(Answer, answer_id, {"error_type": kind.value}, {"user_id": user_id}):
        raise NotFoundError(f"Answer {answer_id} not found")
    logger.info(f"Answer {answer_id} classified as {kind.value}")
