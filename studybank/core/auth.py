from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel
from typing import List, Optional
import jwt
import logging
from datetime import datetime, timedelta, timezone
from studybank.core.config import settings

logger = logging.getLogger(__name__)

class TokenData(BaseModel):
    sub: str
    roles: List[str]

bearer = HTTPBearer(auto_error=False)

def create_token(user_id: str, roles: List[str], ttl_minutes: int | None = None) -> str:
    now = datetime.now(timezone.utc)
    ttl = ttl_minutes if ttl_minutes is not None else settings.ACCESS_TOKEN_EXPIRE_MINUTES
    payload = {"sub": user_id, "roles": roles, "iat": int(now.timestamp()), "exp": int((now + timedelta(minutes=ttl)).timestamp())}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def decode_token(token: str) -> Optional[TokenData]:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.PyJWTError as e:
        logger.info(f"Rejected bearer token: {e}")
        return None
    return TokenData(sub=payload["sub"], roles=payload.get("roles", []))

def get_optional_user(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer)) -> Optional[TokenData]:
    """Identity collaborator: the current user, or None when the request carries no valid token."""
    if creds is None:
        return None
    return decode_token(creds.credentials)

def current_user_id(user: Optional[TokenData] = Depends(get_optional_user)) -> Optional[str]:
    return user.sub if user else None

def get_current_user(user: Optional[TokenData] = Depends(get_optional_user)) -> TokenData:
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    return user

def require_roles(*required: str):
    def checker(user: TokenData = Depends(get_current_user)):
        roles = set(user.roles)
        if not roles.intersection(set(required)):
            raise HTTPException(status_code=403, detail="Insufficient role")
        return user
    return checker
