"""Quote workflow: custom print files and the price-quote lifecycle.

    pending --price--> quoted --create-order--> accepted
       |                 |  ^
       |                 +--+ re-quote
       +----> rejected <-+

accepted and rejected are terminal. Only order conversion
(``fabnest.quotes.conversion``) moves a quote to accepted.
"""
import logging
from datetime import datetime, timezone
from typing import Tuple, List

from sqlalchemy import select, func, desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fabnest.auth.models import User
from fabnest.files.models import File, FILE_TYPE_MODEL
from fabnest.notifications.email import PIEmail, send_pi_email
from fabnest.quotes.models import (
    CustomOrderFile, QuoteRequest,
    QUOTE_PENDING, QUOTE_QUOTED, QUOTE_ACCEPTED, QUOTE_STATUSES, QUOTE_TERMINAL,
)
from fabnest.quotes.schemas import QuoteRequestUpdate
from fabnest.shared.auth import CurrentUser
from fabnest.shared.errors import Conflict, Forbidden, NotFound, ValidationFailed

logger = logging.getLogger(__name__)

DUPLICATE_QUOTE = "Quote request already exists for this file"

def create_custom_file(
    db: Session, user: CurrentUser, file_id: str, material: str, quality: str, notes: str | None = None
) -> CustomOrderFile:
    f = db.get(File, file_id)
    if not f:
        raise NotFound("File not found")
    if f.file_type != FILE_TYPE_MODEL:
        raise ValidationFailed("File must be a 3D model")
    if f.uploaded_by and f.uploaded_by != user.sub and not user.is_admin:
        raise Forbidden("Unauthorized to use this file")
    cf = CustomOrderFile(
        user_id=user.sub,
        file_id=file_id,
        material=material.strip(),
        quality=quality.strip(),
        notes=(notes or "").strip() or None,
        status="pending",
    )
    db.add(cf)
    db.commit()
    db.refresh(cf)
    return cf

def get_custom_file(db: Session, user: CurrentUser, custom_file_id: str) -> CustomOrderFile:
    cf = db.get(CustomOrderFile, custom_file_id)
    if not cf:
        raise NotFound("Custom file not found")
    if cf.user_id != user.sub and not user.is_admin:
        raise Forbidden("Unauthorized to use this file")
    return cf

def create_quote_request(db: Session, user: CurrentUser, custom_file_id: str) -> QuoteRequest:
    cf = get_custom_file(db, user, custom_file_id)
    existing = db.scalars(select(QuoteRequest).where(QuoteRequest.custom_file_id == cf.id)).first()
    if existing:
        raise Conflict(DUPLICATE_QUOTE)
    q = QuoteRequest(user_id=user.sub, custom_file_id=cf.id, status=QUOTE_PENDING)
    db.add(q)
    try:
        db.commit()
    except IntegrityError:
        # lost a race with a concurrent request for the same file
        db.rollback()
        raise Conflict(DUPLICATE_QUOTE)
    db.refresh(q)
    logger.info("Quote request %s created for custom file %s", q.id, cf.id)
    return q

def get_quote_request(db: Session, user: CurrentUser, quote_id: str) -> QuoteRequest:
    q = db.get(QuoteRequest, quote_id)
    if not q:
        raise NotFound("Quote request not found")
    if q.user_id != user.sub and not user.is_admin:
        raise Forbidden("Forbidden")
    return q

def list_quote_requests(
    db: Session, user: CurrentUser, status: str | None, limit: int, offset: int
) -> Tuple[List[QuoteRequest], int]:
    stmt = select(QuoteRequest)
    count = select(func.count()).select_from(QuoteRequest)
    if not user.is_admin:
        stmt = stmt.where(QuoteRequest.user_id == user.sub)
        count = count.where(QuoteRequest.user_id == user.sub)
    if status:
        stmt = stmt.where(QuoteRequest.status == status)
        count = count.where(QuoteRequest.status == status)
    stmt = stmt.order_by(desc(QuoteRequest.created_at)).limit(limit).offset(offset)
    return list(db.scalars(stmt).unique().all()), db.scalar(count) or 0

def _check_status(current: str, target: str, price_after: float | None) -> None:
    """Raise unless an admin may move a quote from current to target."""
    if target not in QUOTE_STATUSES:
        raise ValidationFailed(f"status must be one of: {', '.join(QUOTE_STATUSES)}")
    if target == current:
        return
    if target == QUOTE_ACCEPTED:
        raise Conflict("A quote is accepted only by creating an order from it")
    if target == QUOTE_PENDING:
        raise Conflict(f"Cannot move a {current} quote back to pending")
    if target == QUOTE_QUOTED and price_after is None:
        raise ValidationFailed("Cannot mark as quoted without a requested price")

def update_quote_request(
    db: Session, admin: CurrentUser, quote_id: str, payload: QuoteRequestUpdate
) -> QuoteRequest:
    """
    Admin update: price, notes, status and optionally send the PI e-mail.

    All validation happens before any change. The price/status change is
    committed before the e-mail goes out, so a failed delivery never undoes it.
    """
    q = db.get(QuoteRequest, quote_id)
    if not q:
        raise NotFound("Quote request not found")
    if q.status in QUOTE_TERMINAL:
        raise Conflict(f"Quote request is already {q.status}")

    price_after = payload.requested_price if payload.requested_price is not None else q.requested_price

    notes = None
    if payload.admin_notes is not None:
        notes = payload.admin_notes.strip()
        if not notes:
            raise ValidationFailed("adminNotes must be at least 1 characters")
    if payload.send_pi and price_after is None:
        raise ValidationFailed("Cannot send PI without a requested price. Please set a price first.")
    status_after = QUOTE_QUOTED if payload.requested_price is not None else q.status
    if payload.status is not None:
        _check_status(status_after, payload.status, price_after)
        status_after = payload.status

    if payload.requested_price is not None:
        new_price = round(payload.requested_price, 2)
        if new_price != q.requested_price:
            # the previous PI quoted another price
            q.pi_sent = False
            q.pi_sent_at = None
        q.requested_price = new_price
        q.quoted_at = datetime.now(timezone.utc)
        q.admin_id = admin.sub
    if notes is not None:
        q.admin_notes = notes
    q.status = status_after
    if payload.send_pi:
        q.admin_id = admin.sub
        q.admin_name = _admin_display_name(db, admin)
    db.commit()
    db.refresh(q)
    logger.info("Quote request %s updated by %s: status=%s price=%s", q.id, admin.sub, q.status, q.requested_price)

    if payload.send_pi:
        _send_pi(db, q)
    return q

def _admin_display_name(db: Session, admin: CurrentUser) -> str:
    row = db.get(User, admin.sub)
    return (row.name if row and row.name else None) or admin.email or admin.sub

def _send_pi(db: Session, q: QuoteRequest) -> None:
    """Attempt the PI e-mail and record the outcome; never raises."""
    customer = db.get(User, q.user_id)
    cf = q.custom_file
    q.pi_send_attempted = True
    try:
        if not customer:
            raise LookupError(f"customer {q.user_id} no longer exists")
        send_pi_email(PIEmail(
            to=customer.email,
            customer_name=customer.name or "Customer",
            quote_request_id=q.id,
            file_name=cf.file.filename,
            material=cf.material,
            quality=cf.quality,
            price=q.requested_price,
            admin_notes=q.admin_notes,
            admin_name=q.admin_name,
        ))
    except Exception as e:
        logger.error("Failed to send PI e-mail for quote %s: %s", q.id, e)
        q.pi_last_error = str(e)[:1000]
    else:
        q.pi_sent = True
        q.pi_sent_at = datetime.now(timezone.utc)
        q.pi_last_error = None
    db.commit()
    db.refresh(q)

def delete_quote_request(db: Session, quote_id: str) -> None:
    q = db.get(QuoteRequest, quote_id)
    if not q:
        raise NotFound("Quote request not found")
    db.delete(q)
    db.commit()
    logger.info("Quote request %s deleted", quote_id)
