from __future__ import annotations

import logging
import uuid
from dataclasses import fields
from datetime import date, datetime
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from quote_engine import models
from quote_engine.services.audit import audit_event
from quote_engine.services.child_collections import ChildCollectionReplacer
from quote_engine.services.price_quote_errors import (
    PriceQuoteError,
    QuoteConcurrencyError,
    QuoteNotFoundError,
    QuotePartialWriteError,
    QuotePersistenceError,
    QuoteValidationError,
)
from quote_engine.services.quote_aggregator import (
    AdditionalCostData,
    QuoteCalculatedOutputs,
    QuoteCalculation,
    QuoteInputs,
    calculate_quote,
    merge_quote_inputs,
)

logger = logging.getLogger("quote_engine.price_quotes")

PREVIEW_QUOTE_NAME = "Preview Quote"
PREVIEW_DEAL_ID = "temp-deal-id"
PREVIEW_VERSION_NUMBER = 0

ADDITIONAL_COSTS_REPLACER: ChildCollectionReplacer[models.QuoteAdditionalCost] = (
    ChildCollectionReplacer(
        models.QuoteAdditionalCost, parent_key="price_quote_id", label="additional costs"
    )
)
INVOICE_SCHEDULE_REPLACER: ChildCollectionReplacer[models.QuoteInvoiceScheduleEntry] = (
    ChildCollectionReplacer(
        models.QuoteInvoiceScheduleEntry,
        parent_key="price_quote_id",
        label="invoice schedule entries",
    )
)


def _utc_now() -> datetime:
    return datetime.utcnow()


def _coerce_costs(
    additional_costs: Optional[Iterable[Any]], *, operation: str, quote_id: str | None = None
) -> List[AdditionalCostData]:
    """Accept dataclasses, mappings or objects with `description`/`amount`."""

    out: List[AdditionalCostData] = []
    for i, item in enumerate(additional_costs or ()):
        if isinstance(item, AdditionalCostData):
            out.append(item)
            continue
        if isinstance(item, Mapping):
            description, amount = item.get("description"), item.get("amount")
        else:
            description = getattr(item, "description", None)
            amount = getattr(item, "amount", None)
        if not isinstance(description, str) or not description.strip():
            raise QuoteValidationError(
                f"additional_costs[{i}].description is required",
                operation=operation,
                quote_id=quote_id,
            )
        out.append(AdditionalCostData(description=description, amount=amount))
    return out


def _apply_calculation(quote: models.PriceQuote, calc: QuoteCalculation) -> None:
    for name, value in calc.inputs.as_dict().items():
        setattr(quote, name, value)
    for name, value in calc.outputs.as_dict().items():
        setattr(quote, name, value)


def _cost_rows(calc: QuoteCalculation, now: datetime) -> List[dict[str, Any]]:
    return [
        {
            "description": c.description,
            "amount": float(c.amount),
            "created_at": now,
            "updated_at": now,
        }
        for c in calc.additional_costs
    ]


def _schedule_rows(calc: QuoteCalculation, now: datetime) -> List[dict[str, Any]]:
    return [
        {
            "entry_type": e.entry_type,
            "due_date": e.due_date,
            "amount_due": e.amount_due,
            "description": e.description,
            "created_at": now,
            "updated_at": now,
        }
        for e in calc.invoice_schedule
    ]


def _audit_payload(quote: models.PriceQuote) -> dict[str, Any]:
    return {
        "quote_id": quote.id,
        "deal_id": quote.deal_id,
        "version_number": quote.version_number,
        "inputs": QuoteInputs.from_record(quote).as_dict(),
        "outputs": {f.name: getattr(quote, f.name) for f in fields(QuoteCalculatedOutputs)},
        "additional_costs": len(quote.additional_costs),
        "invoice_schedule_entries": len(quote.invoice_schedule_entries),
    }


def _audit(
    *,
    db: Session,
    quote: models.PriceQuote,
    action: str,
    owner_id: str | None,
    request_id: str | None,
) -> None:
    audit_event(
        f"price_quote.{action}",
        owner_id,
        _audit_payload(quote),
        db=db,
        subject_id=quote.id,
        idempotency_key=f"price_quote:{quote.id}:v{quote.version_number}:{action}",
        request_id=request_id,
    )


def _persistence_failed(
    db: Session,
    exc: SQLAlchemyError,
    *,
    operation: str,
    quote_id: str | None = None,
    message: str | None = None,
) -> QuotePersistenceError:
    """Roll back and wrap a storage error with its operation context."""

    db.rollback()
    logger.error(
        "price_quote_persistence_failed",
        extra={"operation": operation, "quote_id": quote_id, "error": str(exc)},
    )
    message = message or f"failed to {operation} price quote"
    return QuotePersistenceError(
        f"{message}: {exc.__class__.__name__}",
        operation=operation,
        quote_id=quote_id,
    )


def _is_sqlite(db: Session) -> bool:
    dialect_name = getattr(getattr(getattr(db, "bind", None), "dialect", None), "name", None)
    return str(dialect_name or "").lower() == "sqlite"


def _load_for_update(db: Session, quote_id: str) -> models.PriceQuote | None:
    if _is_sqlite(db):
        return db.get(models.PriceQuote, quote_id)
    return (
        db.query(models.PriceQuote)
        .filter(models.PriceQuote.id == quote_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def get_price_quote(*, db: Session, quote_id: str) -> models.PriceQuote | None:
    try:
        return db.get(models.PriceQuote, quote_id)
    except SQLAlchemyError as e:
        raise _persistence_failed(db, e, operation="get", quote_id=quote_id) from e


def list_price_quotes_for_deal(*, db: Session, deal_id: str) -> list[models.PriceQuote]:
    try:
        return (
            db.query(models.PriceQuote)
            .filter(models.PriceQuote.deal_id == deal_id)
            .order_by(models.PriceQuote.created_at.desc(), models.PriceQuote.id.desc())
            .all()
        )
    except SQLAlchemyError as e:
        raise _persistence_failed(
            db, e, operation="list", message=f"failed to list price quotes for deal {deal_id}"
        ) from e


def create_price_quote(
    *,
    db: Session,
    deal_id: str,
    owner_id: str,
    changes: Mapping[str, Any],
    additional_costs: Optional[Sequence[Any]] = None,
    reference_date: date | None = None,
    now: datetime | None = None,
    request_id: str | None = None,
) -> models.PriceQuote:
    """Calculate and persist a new quote with its costs and invoice schedule.

    The quote row and both child collections commit together or not at all.
    """

    now = now or _utc_now()
    costs = _coerce_costs(additional_costs, operation="create")
    inputs = merge_quote_inputs(QuoteInputs(), changes, operation="create")
    calc = calculate_quote(
        inputs,
        costs,
        reference_date=reference_date or now.date(),
        operation="create",
    )

    quote_id = str(uuid.uuid4())
    quote = models.PriceQuote(
        id=quote_id,
        deal_id=deal_id,
        user_id=owner_id,
        created_at=now,
        updated_at=now,
    )
    _apply_calculation(quote, calc)

    try:
        db.add(quote)
        db.flush()
        ADDITIONAL_COSTS_REPLACER.replace_all(
            db, quote_id, _cost_rows(calc, now), operation="create"
        )
        INVOICE_SCHEDULE_REPLACER.replace_all(
            db, quote_id, _schedule_rows(calc, now), operation="create"
        )
        db.commit()
    except QuotePartialWriteError as e:
        db.rollback()
        logger.error(
            "price_quote_persistence_failed",
            extra={"operation": "create", "quote_id": quote_id, "error": str(e)},
        )
        raise
    except SQLAlchemyError as e:
        raise _persistence_failed(db, e, operation="create") from e

    try:
        db.refresh(quote)
    except SQLAlchemyError as e:
        raise _persistence_failed(
            db,
            e,
            operation="create",
            quote_id=quote_id,
            message="price quote was saved but could not be read back",
        ) from e

    _audit(db=db, quote=quote, action="created", owner_id=owner_id, request_id=request_id)
    logger.info(
        "price_quote_created",
        extra={
            "quote_id": quote_id,
            "deal_id": deal_id,
            "version_number": quote.version_number,
            "escalation_status": quote.escalation_status,
            "request_id": request_id,
        },
    )
    return quote


def update_price_quote(
    *,
    db: Session,
    quote_id: str,
    owner_id: str,
    changes: Mapping[str, Any],
    additional_costs: Optional[Sequence[Any]] = None,
    expected_version: int | None = None,
    reference_date: date | None = None,
    now: datetime | None = None,
    request_id: str | None = None,
) -> models.PriceQuote:
    """Patch a quote, recalculate everything and replace both child collections.

    Fields absent from `changes` keep their stored value; present fields win
    even when falsy or None. `additional_costs` replaces the stored costs
    wholesale, and None means "no costs". The write is guarded by the row's
    `version_number`: a concurrent commit makes this raise
    `QuoteConcurrencyError` and nothing is written.
    """

    now = now or _utc_now()
    try:
        quote = _load_for_update(db, quote_id)
        if quote is None:
            raise QuoteNotFoundError("price quote not found", operation="update", quote_id=quote_id)

        if expected_version is not None and quote.version_number != expected_version:
            raise QuoteConcurrencyError(
                f"price quote is at version {quote.version_number}, expected {expected_version}",
                operation="update",
                quote_id=quote_id,
            )

        costs = _coerce_costs(additional_costs, operation="update", quote_id=quote_id)
        inputs = merge_quote_inputs(
            QuoteInputs.from_record(quote), changes, operation="update", quote_id=quote_id
        )
        calc = calculate_quote(
            inputs,
            costs,
            reference_date=reference_date or now.date(),
            operation="update",
            quote_id=quote_id,
        )

        _apply_calculation(quote, calc)
        quote.updated_at = now
        # Every update writes the row, so the version always moves.
        flag_modified(quote, "updated_at")
        # Flush the parent first so a stale version fails before children are touched.
        db.flush()
        ADDITIONAL_COSTS_REPLACER.replace_all(
            db, quote_id, _cost_rows(calc, now), operation="update"
        )
        INVOICE_SCHEDULE_REPLACER.replace_all(
            db, quote_id, _schedule_rows(calc, now), operation="update"
        )
        db.commit()
    except StaleDataError as e:
        db.rollback()
        logger.warning(
            "price_quote_update_conflict",
            extra={"quote_id": quote_id, "request_id": request_id},
        )
        raise QuoteConcurrencyError(
            "price quote was modified concurrently", operation="update", quote_id=quote_id
        ) from e
    except PriceQuoteError as e:
        db.rollback()
        if isinstance(e, QuotePersistenceError):
            logger.error(
                "price_quote_persistence_failed",
                extra={"operation": "update", "quote_id": quote_id, "error": str(e)},
            )
        elif isinstance(e, QuoteConcurrencyError):
            logger.warning(
                "price_quote_update_conflict",
                extra={"quote_id": quote_id, "request_id": request_id},
            )
        raise
    except SQLAlchemyError as e:
        raise _persistence_failed(db, e, operation="update", quote_id=quote_id) from e

    try:
        db.refresh(quote)
    except SQLAlchemyError as e:
        raise _persistence_failed(
            db,
            e,
            operation="update",
            quote_id=quote_id,
            message="price quote was saved but could not be read back",
        ) from e

    _audit(db=db, quote=quote, action="updated", owner_id=owner_id, request_id=request_id)
    logger.info(
        "price_quote_updated",
        extra={
            "quote_id": quote_id,
            "version_number": quote.version_number,
            "escalation_status": quote.escalation_status,
            "request_id": request_id,
        },
    )
    return quote


def delete_price_quote(
    *,
    db: Session,
    quote_id: str,
    owner_id: str | None = None,
    request_id: str | None = None,
) -> bool:
    try:
        quote = db.get(models.PriceQuote, quote_id)
        if quote is None:
            raise QuoteNotFoundError(
                "price quote not found", operation="delete", quote_id=quote_id
            )

        payload = _audit_payload(quote)
        version_number = quote.version_number
        db.delete(quote)
        db.commit()
    except SQLAlchemyError as e:
        raise _persistence_failed(db, e, operation="delete", quote_id=quote_id) from e

    audit_event(
        "price_quote.deleted",
        owner_id,
        payload,
        db=db,
        subject_id=quote_id,
        idempotency_key=f"price_quote:{quote_id}:v{version_number}:deleted",
        request_id=request_id,
    )
    logger.info("price_quote_deleted", extra={"quote_id": quote_id, "request_id": request_id})
    return True


def preview_price_quote(
    *,
    owner_id: str,
    changes: Mapping[str, Any],
    additional_costs: Optional[Sequence[Any]] = None,
    deal_id: str | None = None,
    reference_date: date | None = None,
    now: datetime | None = None,
) -> models.PriceQuote:
    """Run the full calculation without touching the database.

    Returns a transient `PriceQuote` shaped exactly like a persisted one,
    with placeholder identifiers and version 0.
    """

    now = now or _utc_now()
    costs = _coerce_costs(additional_costs, operation="preview")
    inputs = merge_quote_inputs(QuoteInputs(), changes, operation="preview")
    if inputs.name is None:
        inputs = merge_quote_inputs(inputs, {"name": PREVIEW_QUOTE_NAME}, operation="preview")
    calc = calculate_quote(
        inputs,
        costs,
        reference_date=reference_date or now.date(),
        operation="preview",
    )

    preview_id = f"preview-{uuid.uuid4().hex}"
    quote = models.PriceQuote(
        id=preview_id,
        deal_id=deal_id or PREVIEW_DEAL_ID,
        user_id=owner_id,
        version_number=PREVIEW_VERSION_NUMBER,
        created_at=now,
        updated_at=now,
    )
    _apply_calculation(quote, calc)
    quote.additional_costs = [
        models.QuoteAdditionalCost(
            id=f"temp-ac-{i}", price_quote_id=preview_id, position=i, **row
        )
        for i, row in enumerate(_cost_rows(calc, now))
    ]
    quote.invoice_schedule_entries = [
        models.QuoteInvoiceScheduleEntry(
            id=f"temp-is-{i}", price_quote_id=preview_id, position=i, **row
        )
        for i, row in enumerate(_schedule_rows(calc, now))
    ]
    return quote
