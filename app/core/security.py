from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError

from app.core.config import settings
from app.core.organization import get_organization_id

bearer = HTTPBearer(auto_error=False)

JWT_TTL_MIN = 30


@dataclass
class Principal:
    """The acting organization member, as asserted by the identity provider.

    Membership and authorization decisions happen upstream; this service only
    needs to know who is acting.
    """

    member_id: str | None = None
    username: str = "anonymous"
    organization_id: str = "default"
    roles: list[str] = field(default_factory=list)

    @property
    def is_authenticated(self) -> bool:
        return self.member_id is not None

    def has_role(self, role: str) -> bool:
        return role in (self.roles or [])


def _anonymous() -> Principal:
    return Principal(member_id=None, username="anonymous", organization_id=get_organization_id(), roles=[])


def create_access_token(
    member_id: str,
    *,
    username: str | None = None,
    organization_id: str | None = None,
    roles: list[str] | None = None,
    ttl_minutes: int = JWT_TTL_MIN,
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "iss": settings.iam_issuer,
        "aud": settings.iam_audience,
        "jti": secrets.token_urlsafe(16),
        "sub": member_id,
        "org": organization_id or get_organization_id(),
        "name": username or member_id,
        "roles": list(roles or []),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=ttl_minutes)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_alg)


def get_principal(creds: HTTPAuthorizationCredentials | None = Depends(bearer)) -> Principal:
    if not creds or not creds.credentials:
        return _anonymous()
    try:
        payload = jwt.decode(
            creds.credentials,
            settings.jwt_secret,
            algorithms=[settings.jwt_alg],
            audience=settings.iam_audience,
            issuer=settings.iam_issuer,
        )
    except JWTError:
        return _anonymous()

    member_id = payload.get("sub")
    if not member_id:
        return _anonymous()
    return Principal(
        member_id=str(member_id),
        username=str(payload.get("name") or member_id),
        organization_id=str(payload.get("org") or get_organization_id()),
        roles=[str(r) for r in (payload.get("roles") or [])],
    )


def require_member(principal: Principal = Depends(get_principal)) -> Principal:
    if not principal.is_authenticated:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return principal


def require_roles(*required: str):
    def _dep(principal: Principal = Depends(require_member)) -> Principal:
        missing = [r for r in required if not principal.has_role(r)]
        if missing:
            raise HTTPException(status_code=403, detail={"error": "missing_roles", "missing": sorted(missing)})
        return principal

    return _dep
