from datetime import datetime, timezone
from typing import Annotated, Dict, List, Optional, Set
from pydantic import AfterValidator, BaseModel, Field
from studybank.models.orm import ErrorType, EntryType

def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive values for timezone-aware columns; they are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

UTCDateTime = Annotated[datetime, AfterValidator(_as_utc)]

# ========== Authoring ==========

class QuestionPayload(BaseModel):
    subject_name: str = Field(min_length=1)
    topic_name: Optional[str] = None
    statement: str = Field(min_length=1)
    explanation: Optional[str] = None
    tips: Optional[str] = None
    banca: Optional[str] = None
    ano: Optional[int] = None
    orgao: Optional[str] = None
    cargo: Optional[str] = None
    options: List[str]
    correct_option_index: int

class BatchQuestion(BaseModel):
    statement: str
    explanation: Optional[str] = None
    tips: Optional[str] = None
    options: List[str]
    correct_option_index: int

class BatchShared(BaseModel):
    subject_name: str = Field(min_length=1)
    topic_name: Optional[str] = None
    banca: Optional[str] = None
    ano: Optional[int] = None
    orgao: Optional[str] = None
    cargo: Optional[str] = None

class BatchPayload(BatchShared):
    questions: List[BatchQuestion]

class BatchResult(BaseModel):
    created_count: int
    total_attempted: int

class TaxonomyRef(BaseModel):
    subject_id: str
    topic_id: Optional[str] = None

class OptionOut(BaseModel):
    id: str
    option_text: str
    is_correct: bool

class QuestionOut(BaseModel):
    id: str
    subject_id: str
    topic_id: Optional[str] = None
    subject_name: Optional[str] = None
    topic_name: Optional[str] = None
    statement: str
    explanation: Optional[str] = None
    tips: Optional[str] = None
    banca: Optional[str] = None
    ano: Optional[int] = None
    orgao: Optional[str] = None
    cargo: Optional[str] = None
    created_at: Optional[UTCDateTime] = None
    options: List[OptionOut] = []

class QuestionPage(BaseModel):
    items: List[QuestionOut]
    total: int
    page: int
    page_size: int

class PracticeSet(BaseModel):
    subject_id: str
    subject_name: str
    questions: List[QuestionOut]

# ========== Review ==========

class ReviewEntry(BaseModel):
    question_id: str
    statement: str
    explanation: Optional[str] = None
    subject_id: str
    subject_name: str
    topic_name: str
    banca: Optional[str] = None
    ano: Optional[int] = None
    orgao: Optional[str] = None
    cargo: Optional[str] = None
    options: List[OptionOut] = []
    error_count: int = 0
    error_types: Set[ErrorType] = set()
    last_answered_at: UTCDateTime
    last_selected_option_id: Optional[str] = None

class ReviewReport(BaseModel):
    entries: List[ReviewEntry]
    grouped_by_subject: Dict[str, List[ReviewEntry]]
    total_to_review: int
    knowledge_count: int
    attention_count: int
    total_incorrect_answers: int
    total_answers: int
    error_rate: int
    error_severity: str
    knowledge_rate: int
    knowledge_severity: str
    attention_rate: int
    attention_severity: str

# ========== Sessions & dashboard ==========

class SessionOut(BaseModel):
    session_id: str
    completed_at: UTCDateTime
    score: int
    total_questions: int

class PerformanceStats(BaseModel):
    total_sessions: int
    total_questions_answered: int

class RecentSession(BaseModel):
    id: str
    subject_id: str
    subject_name: Optional[str] = None
    completed_at: UTCDateTime
    score: int
    total_questions: int
    accuracy: int

class SubjectStat(BaseModel):
    id: str
    name: str
    question_count: int
    session_count: int
    average_accuracy: float

class SubjectPage(BaseModel):
    items: List[SubjectStat]
    total: int
    page: int
    page_size: int

class AdminStats(BaseModel):
    total_users: int
    total_subjects: int
    total_questions: int

# ========== Notebook ==========

class NotebookEntryOut(BaseModel):
    id: str
    subject_id: str
    subject_name: str
    content: str
    entry_type: EntryType
    source_question_id: Optional[str] = None
    source_statement: Optional[str] = None
    created_at: UTCDateTime

class NotebookView(BaseModel):
    entries: List[NotebookEntryOut]
    grouped_by_subject: Dict[str, List[NotebookEntryOut]]
    total_entries: int
    highlights_count: int
    notes_count: int
