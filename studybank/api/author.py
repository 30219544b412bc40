from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from typing import Optional
from studybank.api.deps import get_store
from studybank.core.auth import require_roles
from studybank.core.config import settings
from studybank.core.store import RecordStore
from studybank.models.schemas import BatchPayload, BatchResult, QuestionPage, QuestionPayload, TaxonomyRef
from studybank.services import ingestion, taxonomy

router = APIRouter(dependencies=[Depends(require_roles("author", "admin"))])

class ResolveIn(BaseModel):
    subject_name: str
    topic_name: Optional[str] = None

@router.post("/taxonomy/resolve", response_model=TaxonomyRef)
def resolve_taxonomy(payload: ResolveIn, store: RecordStore = Depends(get_store)):
    subject_id, topic_id = taxonomy.resolve(store, payload.subject_name, payload.topic_name)
    return TaxonomyRef(subject_id=subject_id, topic_id=topic_id)

@router.get("/questions", response_model=QuestionPage)
def list_questions(page: int = Query(1, ge=1), page_size: Optional[int] = Query(None, ge=1, le=100),
                   store: RecordStore = Depends(get_store)):
    return ingestion.list_questions(store, page, page_size or settings.QUESTIONS_PAGE_SIZE)

@router.post("/questions", status_code=status.HTTP_201_CREATED)
def create_question(payload: QuestionPayload, store: RecordStore = Depends(get_store)):
    return {"question_id": ingestion.create_question(store, payload)}

@router.post("/questions/batch", response_model=BatchResult)
def create_batch(payload: BatchPayload, store: RecordStore = Depends(get_store)):
    # partial success is still 200: the counts carry the outcome
    return ingestion.create_batch(store, payload)

@router.put("/questions/{question_id}")
def update_question(question_id: str, payload: QuestionPayload, store: RecordStore = Depends(get_store)):
    ingestion.update_question(store, question_id, payload)
    return {"question_id": question_id}

@router.delete("/questions/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_question(question_id: str, store: RecordStore = Depends(get_store)):
    ingestion.delete_question(store, question_id)

@router.delete("/subjects/{subject_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_subject(subject_id: str, store: RecordStore = Depends(get_store)):
    ingestion.delete_subject(store, subject_id)
