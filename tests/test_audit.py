import json

from quote_engine import models
from quote_engine.services.audit import audit_event


def test_audit_event_is_idempotent_per_key(db_session):
    first = audit_event(
        "price_quote.created",
        "user-1",
        {"quote_id": "q-1", "version_number": 1},
        db=db_session,
        subject_id="q-1",
        idempotency_key="price_quote:q-1:v1:created",
        request_id="req-1",
    )
    second = audit_event(
        "price_quote.created",
        "user-1",
        {"quote_id": "q-1", "version_number": 1},
        db=db_session,
        subject_id="q-1",
        idempotency_key="price_quote:q-1:v1:created",
    )

    assert first is not None
    assert first == second
    rows = db_session.query(models.AuditLog).all()
    assert len(rows) == 1
    assert rows[0].request_id == "req-1"
    assert json.loads(rows[0].payload_json) == {"quote_id": "q-1", "version_number": 1}
