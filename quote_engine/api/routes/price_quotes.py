from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from quote_engine import models
from quote_engine.api.deps import CurrentUser, get_current_user
from quote_engine.core.observability import request_id_for
from quote_engine.database import get_db
from quote_engine.schemas.price_quotes import (
    PriceQuoteCreate,
    PriceQuoteListRead,
    PriceQuotePreview,
    PriceQuoteRead,
    PriceQuoteUpdate,
)
from quote_engine.services.price_quote_errors import (
    PriceQuoteError,
    QuoteConcurrencyError,
    QuoteNotFoundError,
    QuotePersistenceError,
    QuoteValidationError,
)
from quote_engine.services.price_quote_service import (
    create_price_quote,
    delete_price_quote,
    get_price_quote,
    list_price_quotes_for_deal,
    preview_price_quote,
    update_price_quote,
)

router = APIRouter(tags=["price-quotes"])

_DB_DEP = Depends(get_db)
_USER_DEP = Depends(get_current_user)


def _to_read_model(quote: models.PriceQuote) -> PriceQuoteRead:
    return PriceQuoteRead.model_validate(quote)


def status_code_for(exc: PriceQuoteError) -> int:
    if isinstance(exc, QuoteNotFoundError):
        return 404
    if isinstance(exc, QuoteConcurrencyError):
        return 409
    if isinstance(exc, QuoteValidationError):
        return 422
    if isinstance(exc, QuotePersistenceError):
        return 503
    return 400


def _http_error(exc: PriceQuoteError) -> HTTPException:
    return HTTPException(status_code=status_code_for(exc), detail=exc.to_detail())


def _costs(payload) -> list[dict] | None:
    if payload.additional_costs is None:
        return None
    return [c.model_dump() for c in payload.additional_costs]


@router.get("/deals/{deal_id}/price-quotes", response_model=PriceQuoteListRead)
def list_deal_price_quotes(
    deal_id: str,
    db: Session = _DB_DEP,
    user: CurrentUser = _USER_DEP,
):
    try:
        items = list_price_quotes_for_deal(db=db, deal_id=deal_id)
    except PriceQuoteError as e:
        raise _http_error(e) from e
    return PriceQuoteListRead(items=[_to_read_model(q) for q in items])


@router.post(
    "/deals/{deal_id}/price-quotes",
    response_model=PriceQuoteRead,
    status_code=status.HTTP_201_CREATED,
)
def create_deal_price_quote(
    deal_id: str,
    payload: PriceQuoteCreate,
    request: Request,
    db: Session = _DB_DEP,
    user: CurrentUser = _USER_DEP,
):
    try:
        quote = create_price_quote(
            db=db,
            deal_id=deal_id,
            owner_id=user.id,
            changes=payload.quote_changes(),
            additional_costs=_costs(payload),
            request_id=request_id_for(request),
        )
    except PriceQuoteError as e:
        raise _http_error(e) from e
    return _to_read_model(quote)


@router.post("/price-quotes/preview", response_model=PriceQuoteRead)
def preview_quote(
    payload: PriceQuotePreview,
    deal_id: str | None = Query(None),
    user: CurrentUser = _USER_DEP,
):
    try:
        quote = preview_price_quote(
            owner_id=user.id,
            deal_id=deal_id,
            changes=payload.quote_changes(),
            additional_costs=_costs(payload),
        )
    except PriceQuoteError as e:
        raise _http_error(e) from e
    return _to_read_model(quote)


@router.get("/price-quotes/{quote_id}", response_model=PriceQuoteRead)
def get_quote(
    quote_id: str,
    db: Session = _DB_DEP,
    user: CurrentUser = _USER_DEP,
):
    try:
        quote = get_price_quote(db=db, quote_id=quote_id)
    except PriceQuoteError as e:
        raise _http_error(e) from e
    if quote is None:
        raise _http_error(
            QuoteNotFoundError("price quote not found", operation="get", quote_id=quote_id)
        )
    return _to_read_model(quote)


@router.patch("/price-quotes/{quote_id}", response_model=PriceQuoteRead)
def update_quote(
    quote_id: str,
    payload: PriceQuoteUpdate,
    request: Request,
    db: Session = _DB_DEP,
    user: CurrentUser = _USER_DEP,
):
    try:
        quote = update_price_quote(
            db=db,
            quote_id=quote_id,
            owner_id=user.id,
            changes=payload.quote_changes(),
            additional_costs=_costs(payload),
            expected_version=payload.expected_version,
            request_id=request_id_for(request),
        )
    except PriceQuoteError as e:
        raise _http_error(e) from e
    return _to_read_model(quote)


@router.delete("/price-quotes/{quote_id}", response_model=bool)
def delete_quote(
    quote_id: str,
    request: Request,
    db: Session = _DB_DEP,
    user: CurrentUser = _USER_DEP,
):
    try:
        return delete_price_quote(
            db=db,
            quote_id=quote_id,
            owner_id=user.id,
            request_id=request_id_for(request),
        )
    except PriceQuoteError as e:
        raise _http_error(e) from e
