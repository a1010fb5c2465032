from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import jwt
from typing import Optional
from .core_settings import get_settings

ADMIN = "admin"

@dataclass(frozen=True)
class Principal:
    """Authenticated caller, resolved once per request and passed into services."""
    user_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN

def create_access_token(subject: str, role: str = "student", expires_minutes: Optional[int] = None) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    minutes = expires_minutes if expires_minutes is not None else settings.ACCESS_TOKEN_MINUTES
    payload = {"sub": subject, "role": role, "iat": now, "exp": now + timedelta(minutes=minutes)}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)

def decode_access_token(token: str) -> Optional[Principal]:
    settings = get_settings()
    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except jwt.PyJWTError:
        return None
    if not claims.get("sub"):
        return None
    return Principal(user_id=str(claims["sub"]), role=str(claims.get("role") or "student"))
