from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from typing import Optional
from studybank.api.deps import get_store
from studybank.core.auth import current_user_id
from studybank.core.store import RecordStore
from studybank.models.schemas import NotebookView
from studybank.services import notebook

router = APIRouter()

class HighlightIn(BaseModel):
    question_id: str
    subject_id: str
    text: str

class NoteIn(BaseModel):
    subject_id: str
    content: str

@router.get("", response_model=NotebookView)
def get_notebook(user_id: Optional[str] = Depends(current_user_id), store: RecordStore = Depends(get_store)):
    return notebook.list_notebook(store, user_id)

@router.post("/highlights", status_code=status.HTTP_201_CREATED)
def create_highlight(payload: HighlightIn, user_id: Optional[str] = Depends(current_user_id),
                     store: RecordStore = Depends(get_store)):
    return {"entry_id": notebook.create_highlight(store, user_id, payload.question_id, payload.subject_id, payload.text)}

@router.post("/notes", status_code=status.HTTP_201_CREATED)
def create_note(payload: NoteIn, user_id: Optional[str] = Depends(current_user_id),
                store: RecordStore = Depends(get_store)):
    return {"entry_id": notebook.create_note(store, user_id, payload.subject_id, payload.content)}

@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_entry(entry_id: str, user_id: Optional[str] = Depends(current_user_id),
                 store: RecordStore = Depends(get_store)):
    notebook.delete_entry(store, user_id, entry_id)
