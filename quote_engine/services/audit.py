import json
import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from quote_engine import models

logger = logging.getLogger("quote_engine.audit")


def audit_event(
    action: str,
    user_id: Optional[str],
    payload: Dict[str, Any],
    *,
    db: Session,
    subject_id: str | None = None,
    idempotency_key: str | None = None,
    request_id: str | None = None,
) -> Optional[int]:
    """
    Persist an audit event in its own commit.

    Audit is best effort: a failed write is logged and rolled back, never raised.
    Returns the audit log id when available.
    """
    try:
        if idempotency_key:
            existing = (
                db.query(models.AuditLog)
                .filter(models.AuditLog.idempotency_key == idempotency_key)
                .first()
            )
            if existing is not None:
                return existing.id

        log = models.AuditLog(
            action=action,
            user_id=user_id,
            subject_id=subject_id,
            payload_json=json.dumps(payload or {}, default=str, sort_keys=True),
            idempotency_key=idempotency_key,
            request_id=request_id,
        )
        db.add(log)
        db.commit()
        return log.id
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "audit_write_failed",
            extra={"action": action, "subject_id": subject_id, "request_id": request_id},
        )
        return None
