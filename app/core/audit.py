from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy.orm import Session

from app.db.models.audit import AuditLog
from app.core.organization import get_organization_id

logger = logging.getLogger(__name__)


def audit(
    db: Session,
    *,
    actor: str | None,
    action: str,
    entity_type: str,
    entity_id: str | None = None,
    payload: dict | None = None,
    success: bool = True,
    organization_id: str | None = None,
) -> AuditLog:
    """Add an append-only audit record to the caller's transaction.

    Keep payload JSON-serializable. The row is flushed, not committed.
    """
    safe_payload: dict[str, Any] = payload or {}
    try:
        # Ensure it can roundtrip to JSON (avoids runtime errors on commit)
        json.dumps(safe_payload)
    except (TypeError, ValueError):
        logger.warning("audit payload for %s is not JSON-serializable", action)
        safe_payload = {"_payload_error": "non_json", "_payload_repr": repr(payload)}

    row = AuditLog(
        organization_id=organization_id or get_organization_id(),
        actor=actor or "system",
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        success=success,
        payload=safe_payload,
    )
    db.add(row)
    db.flush()
    return row
