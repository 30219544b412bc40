"""
Study notebook: highlights taken from questions and free-form notes, per subject.
"""
import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import joinedload

from studybank.core.errors import AuthError, NotFoundError, ValidationError
from studybank.core.store import RecordStore
from studybank.models.orm import EntryType, NotebookEntry
from studybank.models.schemas import NotebookEntryOut, NotebookView

logger = logging.getLogger(__name__)


def _require(user_id: Optional[str]) -> str:
    if not user_id:
        raise AuthError("User is not authenticated")
    return user_id


def _insert(store: RecordStore, user_id: str, subject_id: str, content: str, entry_type: EntryType,
            question_id: Optional[str] = None) -> str:
    if not subject_id or not (content or "").strip():
        raise ValidationError("Subject and content are required")
    return store.insert(NotebookEntry, {
        "user_id": user_id, "subject_id": subject_id, "content": content,
        "entry_type": entry_type.value, "source_question_id": question_id,
    })


def create_highlight(store: RecordStore, user_id: Optional[str], question_id: str, subject_id: str, text: str) -> str:
    return _insert(store, _require(user_id), subject_id, text.strip() if text else text, EntryType.HIGHLIGHT, question_id)


def create_note(store: RecordStore, user_id: Optional[str], subject_id: str, content: str) -> str:
    return _insert(store, _require(user_id), subject_id, content, EntryType.USER_NOTE)


def delete_entry(store: RecordStore, user_id: Optional[str], entry_id: str) -> None:
    if not store.delete(NotebookEntry, {"id": entry_id, "user_id": _require(user_id)}):
        raise NotFoundError(f"Notebook entry {entry_id} not found")
    logger.info(f"Deleted notebook entry {entry_id}")


def list_notebook(store: RecordStore, user_id: Optional[str]) -> NotebookView:
    rows = store.select_many(
        NotebookEntry, {"user_id": _require(user_id)},
        order_by=(NotebookEntry.created_at.desc(),),
        options=(joinedload(NotebookEntry.subject), joinedload(NotebookEntry.source_question)),
    )
    entries = [
        NotebookEntryOut(
            id=r.id, subject_id=r.subject_id, subject_name=r.subject.name if r.subject else "N/A",
            content=r.content, entry_type=EntryType(r.entry_type), source_question_id=r.source_question_id,
            source_statement=r.source_question.statement if r.source_question else None,
            created_at=r.created_at,
        )
        for r in rows
    ]
    grouped: Dict[str, List[NotebookEntryOut]] = {}
    for e in entries:
        grouped.setdefault(e.subject_name, []).append(e)
    return NotebookView(
        entries=entries, grouped_by_subject=grouped, total_entries=len(entries),
        highlights_count=sum(1 for e in entries if e.entry_type is EntryType.HIGHLIGHT),
        notes_count=sum(1 for e in entries if e.entry_type is EntryType.USER_NOTE),
    )
