"""Request-scoped organization id.

Audit rows, outbox events and new clients are stamped with the organization
of the request that created them. Outside a request it is "default".
"""
from __future__ import annotations

import contextvars
from contextlib import contextmanager
from typing import Iterator

DEFAULT_ORGANIZATION = "default"

_current: contextvars.ContextVar[str] = contextvars.ContextVar("organization_id", default=DEFAULT_ORGANIZATION)


def get_organization_id() -> str:
    return _current.get()


@contextmanager
def organization_scope(organization_id: str | None) -> Iterator[str]:
    """Bind the organization for the duration of the block, then restore the previous one."""
    value = (organization_id or "").strip() or DEFAULT_ORGANIZATION
    token = _current.set(value)
    try:
        yield value
    finally:
        _current.reset(token)
