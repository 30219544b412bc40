"""
Question ingestion: single and batch creation, full-replacement updates, deletes,
and the read paths that hand questions to authors and to the practice flow.

The store offers no transaction across entities, so a question row can outlive
a failed options insert. Such orphans are never used in practice (they fail the
option invariants) and are removed by the reconciliation sweep.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import joinedload, selectinload

from studybank.core.errors import NotFoundError, PersistenceError, ValidationError
from studybank.core.store import RecordStore
from studybank.models.orm import Option, Question, Subject
from studybank.models.schemas import (
    BatchPayload, BatchResult, OptionOut, PracticeSet, QuestionOut, QuestionPage, QuestionPayload,
)
from studybank.services import taxonomy

logger = logging.getLogger(__name__)

MIN_OPTIONS = 2


def option_rows(texts: Sequence[str], correct_index: int, drop_blank: bool = False) -> List[Dict[str, Any]]:
    """Turn an ordered option list into option rows with exactly one correct flag.

    ``correct_index`` always refers to the position in ``texts``. With
    ``drop_blank`` the blank entries are removed first and the correct flag
    follows its option to the shifted position; otherwise a blank entry is an
    error.
    """
    kept = [(i, t) for i, t in enumerate(texts) if t is not None and t.strip()]
    if not drop_blank and len(kept) != len(texts):
        raise ValidationError("Options must not be blank")
    if len(kept) < MIN_OPTIONS:
        raise ValidationError(f"A question needs at least {MIN_OPTIONS} non-blank options, got {len(kept)}")
    if correct_index not in {i for i, _ in kept}:
        raise ValidationError(f"Correct option index {correct_index} does not point at a non-blank option")
    return [
        {"option_text": text, "is_correct": i == correct_index, "position": pos}
        for pos, (i, text) in enumerate(kept)
    ]


def _question_fields(subject_id: str, topic_id: Optional[str], statement: str, meta: Any, **extra: Any) -> Dict[str, Any]:
    return {
        "subject_id": subject_id,
        "topic_id": topic_id,
        "statement": statement,
        "banca": meta.banca,
        "ano": meta.ano,
        "orgao": meta.orgao,
        "cargo": meta.cargo,
        **extra,
    }


def _attach(question_id: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [{**r, "question_id": question_id} for r in rows]


def create_question(store: RecordStore, payload: QuestionPayload) -> str:
    rows = option_rows(payload.options, payload.correct_option_index)
    subject_id, topic_id = taxonomy.resolve(store, payload.subject_name, payload.topic_name)
    question_id = store.insert(Question, _question_fields(
        subject_id, topic_id, payload.statement, payload,
        explanation=payload.explanation, tips=payload.tips,
    ))
    try:
        store.insert_many(Option, _attach(question_id, rows))
    except PersistenceError:
        logger.error(f"Options insert failed; question {question_id} is left without options")
        raise
    logger.info(f"Created question {question_id} with {len(rows)} options in subject {subject_id}")
    return question_id


def create_batch(store: RecordStore, payload: BatchPayload) -> BatchResult:
    """Create many questions under one subject/topic, best effort.

    Each question is written independently; a failure is logged and skipped so
    it never blocks the rest of the batch. Callers must read the counts.
    """
    subject_id, topic_id = taxonomy.resolve(store, payload.subject_name, payload.topic_name)
    created = 0
    for n, q in enumerate(payload.questions):
        try:
            rows = option_rows(q.options, q.correct_option_index, drop_blank=True)
        except ValidationError as e:
            logger.warning(f"Batch item {n} skipped: {e}")
            continue
        try:
            question_id = store.insert(Question, _question_fields(
                subject_id, topic_id, q.statement, payload, explanation=q.explanation, tips=q.tips,
            ))
        except PersistenceError as e:
            logger.error(f"Batch item {n} skipped, question insert failed: {e}")
            continue
        try:
            store.insert_many(Option, _attach(question_id, rows))
        except PersistenceError as e:
            logger.error(f"Batch item {n}: options insert failed for question {question_id}: {e}")
            continue
        created += 1
    result = BatchResult(created_count=created, total_attempted=len(payload.questions))
    logger.info(f"Batch into subject {subject_id}: {result.created_count}/{result.total_attempted} created")
    return result


def update_question(store: RecordStore, question_id: str, payload: QuestionPayload) -> None:
    """Rewrite a question and replace its whole option list."""
    rows = option_rows(payload.options, payload.correct_option_index)
    if store.select_one(Question, {"id": question_id}) is None:
        raise NotFoundError(f"Question {question_id} not found")
    subject_id, topic_id = taxonomy.resolve(store, payload.subject_name, payload.topic_name)
    store.update(Question, question_id, _question_fields(
        subject_id, topic_id, payload.statement, payload,
        explanation=payload.explanation, tips=payload.tips,
    ))
    store.delete(Option, {"question_id": question_id})
    store.insert_many(Option, _attach(question_id, rows))
    logger.info(f"Updated question {question_id}, options replaced ({len(rows)})")


def delete_question(store: RecordStore, question_id: str) -> None:
    if not store.delete(Question, {"id": question_id}):
        raise NotFoundError(f"Question {question_id} not found")
    logger.info(f"Deleted question {question_id}")


def delete_subject(store: RecordStore, subject_id: str) -> None:
    if not store.delete(Subject, {"id": subject_id}):
        raise NotFoundError(f"Subject {subject_id} not found")
    logger.info(f"Deleted subject {subject_id}")


def is_usable(question: Question) -> bool:
    opts = question.options
    return len(opts) >= MIN_OPTIONS and sum(1 for o in opts if o.is_correct) == 1


def question_out(q: Question) -> QuestionOut:
    return QuestionOut(
        id=q.id, subject_id=q.subject_id, topic_id=q.topic_id,
        subject_name=q.subject.name if q.subject else None,
        topic_name=q.topic.name if q.topic else None,
        statement=q.statement, explanation=q.explanation, tips=q.tips,
        banca=q.banca, ano=q.ano, orgao=q.orgao, cargo=q.cargo, created_at=q.created_at,
        options=[OptionOut(id=o.id, option_text=o.option_text, is_correct=o.is_correct) for o in q.options],
    )


_LOAD = (joinedload(Question.subject), joinedload(Question.topic), selectinload(Question.options))


def list_questions(store: RecordStore, page: int = 1, page_size: int = 6) -> QuestionPage:
    page = max(page, 1)
    total = store.count(Question)
    rows = store.select_many(
        Question, order_by=(Question.created_at.desc(),),
        offset=(page - 1) * page_size, limit=page_size, options=_LOAD,
    )
    return QuestionPage(items=[question_out(q) for q in rows], total=total, page=page, page_size=page_size)


def load_practice_set(store: RecordStore, subject_id: str) -> PracticeSet:
    subject = store.select_one(Subject, {"id": subject_id})
    if subject is None:
        raise NotFoundError(f"Subject {subject_id} not found")
    rows = store.select_many(Question, {"subject_id": subject_id}, order_by=(Question.created_at,), options=_LOAD)
    usable = [question_out(q) for q in rows if is_usable(q)]
    if len(usable) < len(rows):
        logger.warning(f"Subject {subject_id}: {len(rows) - len(usable)} questions left out of practice (bad options)")
    return PracticeSet(subject_id=subject.id, subject_name=subject.name, questions=usable)


def sweep_orphan_questions(store: RecordStore, older_than: datetime, dry_run: bool = False) -> List[str]:
    """Delete questions created before ``older_than`` that have no options at all."""
    orphans = store.select_many(
        Question, None, ~Question.options.any(), Question.created_at < older_than,
        order_by=(Question.created_at,),
    )
    ids = [q.id for q in orphans]
    if ids and not dry_run:
        store.delete(Question, None, Question.id.in_(ids))
    logger.info(f"Orphan sweep: {len(ids)} question(s) without options{' (dry run)' if dry_run else ' deleted'}")
    return ids
