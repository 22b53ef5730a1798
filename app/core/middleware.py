from __future__ import annotations
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from app.core.organization import organization_scope

ORGANIZATION_HEADER = "X-Org-Id"


class OrganizationMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        with organization_scope(request.headers.get(ORGANIZATION_HEADER)):
            return await call_next(request)
