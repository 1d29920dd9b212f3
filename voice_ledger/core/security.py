"""JWT helpers for identities issued by the external identity provider."""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from voice_ledger.core.config import SecuritySettings

security = HTTPBearer()


@dataclass(frozen=True, slots=True)
class CurrentUser:
    user_id: str
    role: str = "user"

    def is_admin(self, settings: SecuritySettings) -> bool:
        return self.role in settings.admin_roles


def create_access_token(
    settings: SecuritySettings,
    user_id: str,
    role: str = "user",
    expires_delta: Optional[timedelta] = None,
) -> str:
    expire_delta = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    payload = {
        "sub": user_id,
        "role": role,
        "exp": datetime.now(timezone.utc) + expire_delta,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(settings: SecuritySettings, token: str) -> CurrentUser:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Could not validate credentials") from exc

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Could not validate credentials")
    return CurrentUser(user_id=str(user_id), role=payload.get("role") or "user")


def _security_settings(request: Request) -> SecuritySettings:
    return request.app.state.container.settings.security


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentUser:
    return decode_access_token(_security_settings(request), credentials.credentials)


async def get_current_admin(
    request: Request,
    user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    if not user.is_admin(_security_settings(request)):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Administrator role required")
    return user
