from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fabnest.shared.auth import CurrentUser, get_user, require_admin
from fabnest.shared.db import get_db
from fabnest.shared.http import ok
from fabnest.shared.schemas import clamp_page
from fabnest.orders.api import order_out
from fabnest.quotes.models import QuoteRequest
from fabnest.quotes.schemas import (
    QuoteRequestCreate, QuoteRequestUpdate, QuoteRequestOut, QuoteRequestList, CreateOrderFromQuote,
)
from fabnest.quotes import service
from fabnest.quotes.conversion import convert_quote_to_order

router = APIRouter(prefix="/quote-requests", tags=["Quote requests"])

def quote_out(q: QuoteRequest, user: CurrentUser) -> QuoteRequestOut:
    out = QuoteRequestOut.model_validate(q)
    # only admins get the raw model download link
    if not user.is_admin:
        out.custom_file.file.download_url = None
    return out

@router.post("", status_code=201)
def create_quote_request(
    payload: QuoteRequestCreate, user: CurrentUser = Depends(get_user), db: Session = Depends(get_db)
):
    q = service.create_quote_request(db, user, payload.custom_file_id)
    return ok(quoteRequest=quote_out(q, user))

@router.get("")
def list_quote_requests(
    status: str | None = Query(None),
    limit: int | None = Query(None),
    offset: int | None = Query(None),
    user: CurrentUser = Depends(get_user),
    db: Session = Depends(get_db),
):
    limit, offset = clamp_page(limit, offset)
    items, total = service.list_quote_requests(db, user, status, limit, offset)
    return QuoteRequestList(items=[quote_out(q, user) for q in items], total=total, limit=limit, offset=offset)

@router.get("/{quote_id}")
def get_quote_request(quote_id: str, user: CurrentUser = Depends(get_user), db: Session = Depends(get_db)):
    return ok(quoteRequest=quote_out(service.get_quote_request(db, user, quote_id), user))

@router.put("/{quote_id}")
def update_quote_request(
    quote_id: str,
    payload: QuoteRequestUpdate,
    admin: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    q = service.update_quote_request(db, admin, quote_id, payload)
    return ok(quoteRequest=quote_out(q, admin))

@router.delete("/{quote_id}")
def delete_quote_request(quote_id: str, admin: CurrentUser = Depends(require_admin), db: Session = Depends(get_db)):
    service.delete_quote_request(db, quote_id)
    return ok(message="Quote request deleted successfully")

@router.post("/{quote_id}/create-order", status_code=201)
def create_order_from_quote(
    quote_id: str,
    payload: CreateOrderFromQuote | None = None,
    user: CurrentUser = Depends(get_user),
    db: Session = Depends(get_db),
):
    payload = payload or CreateOrderFromQuote()
    order = convert_quote_to_order(db, user, quote_id, shipping=payload.shipping, tax=payload.tax)
    return ok(order=order_out(order, user))
