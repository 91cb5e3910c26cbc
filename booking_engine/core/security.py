"""
Identity collaborator: turns a bearer JWT into an authenticated Principal.

Account storage and password handling live outside this service; tokens are
minted by the identity provider. `create_access_token` exists for tooling and tests.
"""

import enum
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from booking_engine.core.clock import utc_now
from booking_engine.core.config import get_settings

_bearer = HTTPBearer(auto_error=False)


class Role(str, enum.Enum):
    ADMIN = "admin"
    ORGANIZER = "organizer"
    CLIENT = "client"


@dataclass(frozen=True)
class Principal:
    user_id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def can_manage(self, owner_id: int) -> bool:
        return self.is_admin or self.user_id == owner_id


def create_access_token(user_id: int, role: Role = Role.CLIENT,
                        expires_delta: Optional[timedelta] = None) -> str:
    settings = get_settings()
    expire = utc_now() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {"sub": str(user_id), "role": Role(role).value, "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Principal:
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return Principal(user_id=int(payload["sub"]), role=Role(payload.get("role", Role.CLIENT.value)))
    except (jwt.PyJWTError, KeyError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> Principal:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return decode_access_token(credentials.credentials)
