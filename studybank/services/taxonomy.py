"""
Taxonomy resolution: subject and topic names to ids, created on first use.
"""
import logging
from typing import Optional, Tuple

from sqlalchemy import func

from studybank.core.errors import ValidationError
from studybank.core.store import RecordStore
from studybank.models.orm import Subject, Topic

logger = logging.getLogger(__name__)


def _clean(name: Optional[str]) -> str:
    return (name or "").strip()


def resolve(store: RecordStore, subject_name: str, topic_name: Optional[str] = None) -> Tuple[str, Optional[str]]:
    """Find or create the (subject, topic) pair by case-insensitive name.

    Nothing is cached between calls; the store is the only source of truth, so a
    retry after a partial failure finds the rows created the first time.
    """
    s_name = _clean(subject_name)
    if not s_name:
        raise ValidationError("Subject name is required")
    subject = store.select_one(Subject, None, func.lower(Subject.name) == s_name.lower())
    subject_id = subject.id if subject else store.insert(Subject, {"name": s_name})
    if not subject:
        logger.info(f"Created subject {subject_id} ({s_name!r})")

    t_name = _clean(topic_name)
    if not t_name:
        return subject_id, None
    topic = store.select_one(Topic, {"subject_id": subject_id}, func.lower(Topic.name) == t_name.lower())
    if topic:
        return subject_id, topic.id
    topic_id = store.insert(Topic, {"name": t_name, "subject_id": subject_id})
    logger.info(f"Created topic {topic_id} ({t_name!r}) under subject {subject_id}")
    return subject_id, topic_id
