from fastapi import Depends
from sqlalchemy.orm import Session
from typing import Optional
from studybank.core.auth import current_user_id
from studybank.core.database import get_db
from studybank.core.errors import AuthError
from studybank.core.store import RecordStore

def get_store(db: Session = Depends(get_db)) -> RecordStore:
    return RecordStore(db)

def require_user(user_id: Optional[str] = Depends(current_user_id)) -> str:
    """For routes whose service takes no identity but still need a signed-in caller."""
    if not user_id:
        raise AuthError("User is not authenticated")
    return user_id
