from fastapi import APIRouter, Depends, Query
from typing import Optional
from studybank.api.deps import get_store
from studybank.core.auth import current_user_id
from studybank.core.store import RecordStore
from studybank.models.schemas import ReviewReport
from studybank.services import review

router = APIRouter()

@router.get("", response_model=ReviewReport)
def get_review(subject_id: Optional[str] = Query(None), error_type: Optional[str] = Query(None),
               user_id: Optional[str] = Depends(current_user_id), store: RecordStore = Depends(get_store)):
    return review.build_review(store, user_id, subject_id=subject_id, error_type=error_type)

@router.delete("/{question_id}")
def remove_from_review(question_id: str, user_id: Optional[str] = Depends(current_user_id),
                       store: RecordStore = Depends(get_store)):
    return {"removed": review.remove_from_review(store, user_id, question_id)}
