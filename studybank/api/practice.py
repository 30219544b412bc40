from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from typing import Optional
from studybank.api.deps import get_store, require_user
from studybank.core.auth import current_user_id
from studybank.core.store import RecordStore
from studybank.models.orm import ErrorType
from studybank.models.schemas import PracticeSet, SessionOut
from studybank.services import answers, ingestion, sessions

router = APIRouter()

class SessionStart(BaseModel):
    subject_id: str

class SessionFinish(BaseModel):
    score: int = Field(ge=0)
    total_questions: int = Field(ge=0)

class AnswerSubmit(BaseModel):
    question_id: str
    selected_option_id: str
    is_correct: bool
    session_id: str

class AnswerRecorded(BaseModel):
    answer_id: Optional[str] = None
    recorded: bool

class Classify(BaseModel):
    error_type: ErrorType

@router.get("/{subject_id}", response_model=PracticeSet)
def practice_set(subject_id: str, _: str = Depends(require_user), store: RecordStore = Depends(get_store)):
    return ingestion.load_practice_set(store, subject_id)

@router.post("/sessions", status_code=status.HTTP_201_CREATED)
def start_session(payload: SessionStart, user_id: Optional[str] = Depends(current_user_id),
                  store: RecordStore = Depends(get_store)):
    return {"session_id": sessions.start(store, user_id, payload.subject_id)}

@router.post("/sessions/{session_id}/finish", response_model=SessionOut)
def finish_session(session_id: str, payload: SessionFinish, user_id: Optional[str] = Depends(current_user_id),
                   store: RecordStore = Depends(get_store)):
    sessions.finish(store, user_id, session_id, payload.score, payload.total_questions)
    s = sessions.get(store, session_id)
    return SessionOut(session_id=s.id, completed_at=s.completed_at, score=s.score, total_questions=s.total_questions)

@router.post("/answers", response_model=AnswerRecorded)
def record_answer(payload: AnswerSubmit, user_id: Optional[str] = Depends(current_user_id),
                  store: RecordStore = Depends(get_store)):
    answer_id = answers.record(store, user_id, payload.question_id, payload.selected_option_id,
                               payload.is_correct, payload.session_id)
    return AnswerRecorded(answer_id=answer_id, recorded=answer_id is not None)

@router.post("/answers/{answer_id}/classify", status_code=status.HTTP_204_NO_CONTENT)
def classify_answer(answer_id: str, payload: Classify, user_id: Optional[str] = Depends(current_user_id),
                    store: RecordStore = Depends(get_store)):
    answers.classify(store, user_id, answer_id, payload.error_type)
