import enum
import uuid
from datetime import datetime, timezone
from typing import Optional, List
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, Text, Boolean, ForeignKey, DateTime, Index

def _uuid() -> str: return str(uuid.uuid4())
def utcnow() -> datetime: return datetime.now(timezone.utc)

class ErrorType(str, enum.Enum):
    ATTENTION = "attention"
    KNOWLEDGE = "knowledge"

class EntryType(str, enum.Enum):
    HIGHLIGHT = "highlight"
    USER_NOTE = "user_note"

class Base(DeclarativeBase): pass

# ========== Content Models ==========

class Subject(Base):
    __tablename__ = "subjects"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    topics: Mapped[List["Topic"]] = relationship(back_populates="subject", passive_deletes=True)

class Topic(Base):
    __tablename__ = "topics"
    __table_args__ = (Index("idx_topics_subject", "subject_id"),)
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    subject_id: Mapped[str] = mapped_column(String(36), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False)
    subject: Mapped["Subject"] = relationship(back_populates="topics")

class Question(Base):
    __tablename__ = "questions"
    __table_args__ = (
        Index("idx_questions_subject", "subject_id"),
        Index("idx_questions_created_at", "created_at"),
    )
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    subject_id: Mapped[str] = mapped_column(String(36), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False)
    topic_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("topics.id", ondelete="CASCADE"))
    statement: Mapped[str] = mapped_column(Text, nullable=False)
    explanation: Mapped[Optional[str]] = mapped_column(Text)
    tips: Mapped[Optional[str]] = mapped_column(Text)
    # exam metadata: examining board, year, hiring body, position
    banca: Mapped[Optional[str]] = mapped_column(String(255))
    ano: Mapped[Optional[int]] = mapped_column(Integer)
    orgao: Mapped[Optional[str]] = mapped_column(String(255))
    cargo: Mapped[Optional[str]] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    subject: Mapped["Subject"] = relationship()
    topic: Mapped[Optional["Topic"]] = relationship()
    options: Mapped[List["Option"]] = relationship(back_populates="question", passive_deletes=True, order_by="Option.position")

class Option(Base):
    __tablename__ = "options"
    __table_args__ = (Index("idx_options_question", "question_id"),)
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    question_id: Mapped[str] = mapped_column(String(36), ForeignKey("questions.id", ondelete="CASCADE"), nullable=False)
    option_text: Mapped[str] = mapped_column(Text, nullable=False)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    question: Mapped["Question"] = relationship(back_populates="options")

# ========== Delivery Models ==========

class QuizSession(Base):
    __tablename__ = "quiz_sessions"
    __table_args__ = (
        Index("idx_qs_user", "user_id"),
        Index("idx_qs_completed", "completed_at"),
    )
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    subject_id: Mapped[str] = mapped_column(String(36), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    score: Mapped[Optional[int]] = mapped_column(Integer)
    total_questions: Mapped[Optional[int]] = mapped_column(Integer)
    subject: Mapped["Subject"] = relationship()

class Answer(Base):
    __tablename__ = "answers"
    __table_args__ = (
        Index("idx_answers_user", "user_id"),
        Index("idx_answers_question", "question_id"),
        Index("idx_answers_created", "created_at"),
    )
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    question_id: Mapped[str] = mapped_column(String(36), ForeignKey("questions.id", ondelete="CASCADE"), nullable=False)
    # options are replaced wholesale when a question is edited
    selected_option_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("options.id", ondelete="SET NULL"))
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    session_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("quiz_sessions.id", ondelete="CASCADE"))
    error_type: Mapped[Optional[str]] = mapped_column(String(20))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    question: Mapped["Question"] = relationship()

class NotebookEntry(Base):
    __tablename__ = "notebook_entries"
    __table_args__ = (Index("idx_nb_user", "user_id"),)
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    subject_id: Mapped[str] = mapped_column(String(36), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    entry_type: Mapped[str] = mapped_column(String(20), nullable=False)
    source_question_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("questions.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    subject: Mapped["Subject"] = relationship()
    source_question: Mapped[Optional["Question"]] = relationship()
