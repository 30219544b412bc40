"""
Review aggregation.

The review screen is a view over the incorrect-answer log: every read folds
the raw rows into one entry per question, nothing is stored.
"""
import logging
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import joinedload, selectinload

from studybank.core.errors import AuthError, PersistenceError, ValidationError
from studybank.core.store import RecordStore
from studybank.models.orm import Answer, ErrorType, Question
from studybank.models.schemas import OptionOut, ReviewEntry, ReviewReport

logger = logging.getLogger(__name__)

UNCLASSIFIED = "unclassified"
ALL = "all"


def severity(pct: int) -> str:
    if pct < 20:
        return "low"
    if pct < 40:
        return "medium"
    return "high"


def _pct(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return max(0, min(100, round(part / whole * 100)))


def _incorrect_answers(store: RecordStore, user_id: str, subject_id: Optional[str], error_type: Optional[str]) -> List[Answer]:
    clauses = []
    filters = {"user_id": user_id, "is_correct": False}
    if subject_id:
        clauses.append(Answer.question_id.in_(select(Question.id).where(Question.subject_id == subject_id)))
    if error_type and error_type != ALL:
        if error_type == UNCLASSIFIED:
            filters["error_type"] = None
        else:
            try:
                filters["error_type"] = ErrorType(error_type).value
            except ValueError:
                raise ValidationError(f"Unknown error type filter {error_type!r}") from None
    # newest first, id as tie-break: the fold below depends on it
    return store.select_many(
        Answer, filters, *clauses,
        order_by=(Answer.created_at.desc(), Answer.id.desc()),
        options=(
            joinedload(Answer.question).joinedload(Question.subject),
            joinedload(Answer.question).joinedload(Question.topic),
            joinedload(Answer.question).selectinload(Question.options),
        ),
    )


def fold(answers: List[Answer]) -> List[ReviewEntry]:
    """Fold newest-first incorrect answers into one entry per question.

    The first answer seen for a question seeds the entry, so it is the most
    recent one; every answer adds to the count and to the set of error types.
    """
    entries: Dict[str, ReviewEntry] = {}
    for a in answers:
        q = a.question
        if q is None:
            continue
        entry = entries.get(q.id)
        if entry is None:
            entry = entries[q.id] = ReviewEntry(
                question_id=q.id, statement=q.statement, explanation=q.explanation,
                subject_id=q.subject_id,
                subject_name=q.subject.name if q.subject else "N/A",
                topic_name=q.topic.name if q.topic else "N/A",
                banca=q.banca, ano=q.ano, orgao=q.orgao, cargo=q.cargo,
                options=[OptionOut(id=o.id, option_text=o.option_text, is_correct=o.is_correct) for o in q.options],
                last_answered_at=a.created_at, last_selected_option_id=a.selected_option_id,
            )
        entry.error_count += 1
        if a.error_type:
            entry.error_types.add(ErrorType(a.error_type))
    return list(entries.values())


def build_review(store: RecordStore, user_id: Optional[str], subject_id: Optional[str] = None,
                 error_type: Optional[str] = None) -> ReviewReport:
    if not user_id:
        raise AuthError("User is not authenticated")
    answers = _incorrect_answers(store, user_id, subject_id, error_type)
    entries = fold(answers)

    grouped: Dict[str, List[ReviewEntry]] = {}
    for e in entries:
        grouped.setdefault(e.subject_name, []).append(e)

    total = len(entries)
    knowledge = sum(1 for e in entries if ErrorType.KNOWLEDGE in e.error_types)
    attention = sum(1 for e in entries if ErrorType.ATTENTION in e.error_types)
    try:
        total_answers = store.count(Answer, {"user_id": user_id})
    except PersistenceError as e:
        logger.error(f"Counting answers for user {user_id} failed, error rate shown as 0: {e}")
        total_answers = 0

    error_rate = _pct(total, total_answers)
    knowledge_rate = _pct(knowledge, len(answers)) if total else 0
    attention_rate = _pct(attention, len(answers)) if total else 0
    return ReviewReport(
        entries=entries, grouped_by_subject=grouped,
        total_to_review=total, knowledge_count=knowledge, attention_count=attention,
        total_incorrect_answers=len(answers), total_answers=total_answers,
        error_rate=error_rate, error_severity=severity(error_rate),
        knowledge_rate=knowledge_rate, knowledge_severity=severity(knowledge_rate),
        attention_rate=attention_rate, attention_severity=severity(attention_rate),
    )


def remove_from_review(store: RecordStore, user_id: Optional[str], question_id: str) -> int:
    """Stop tracking a question as a mistake: drops every incorrect answer the user gave to it."""
    if not user_id:
        raise AuthError("User is not authenticated")
    removed = store.delete(Answer, {"user_id": user_id, "question_id": question_id, "is_correct": False})
    logger.info(f"Removed question {question_id} from review of user {user_id} ({removed} answers)")
    return removed
