# painel/core/auth.py

from fastapi import Depends
from pydantic import BaseModel

from painel.core.config import settings
from painel.core.errors import AuthenticationRequired, AuthorizationDenied
from painel.core.jwt import decode_access_token
from painel.core.oauth2 import oauth2_scheme


class CurrentUser(BaseModel):
    id: str
    email: str | None = None
    role: str = "user"
    permissions: dict = {}

    @property
    def is_admin(self) -> bool:
        return self.role == settings.ADMIN_ROLE


def get_current_user(token: str | None = Depends(oauth2_scheme)) -> CurrentUser:
    if not token:
        raise AuthenticationRequired("Unauthorized")

    payload = decode_access_token(token)

    if payload is None:
        raise AuthenticationRequired("Invalid or expired token")

    user_id = payload.get("sub")

    if user_id is None:
        raise AuthenticationRequired("Invalid token payload")

    return CurrentUser(
        id=str(user_id),
        email=payload.get("email"),
        role=payload.get("role") or "user",
        permissions=payload.get("permissions") or {},
    )


def get_admin_user(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    # Configuration writes are restricted to the admin role
    if not current_user.is_admin:
        raise AuthorizationDenied("Admin privileges required")
    return current_user
