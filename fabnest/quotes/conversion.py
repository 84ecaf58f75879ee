"""One-time conversion of a quoted QuoteRequest into an Order."""
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fabnest.orders.models import Order, OrderItem
from fabnest.quotes.models import CustomOrderFile, QuoteRequest, QUOTE_QUOTED, QUOTE_ACCEPTED
from fabnest.shared.auth import CurrentUser
from fabnest.shared.errors import Conflict, Forbidden, NotFound, ValidationFailed

logger = logging.getLogger(__name__)

ALREADY_ORDERED = "An order has already been created for this quote request"

def _locked(db: Session, model, row_id: str):
    # FOR UPDATE where supported (no-op on SQLite); reload so a stale identity-map copy is not trusted
    stmt = (
        select(model)
        .where(model.id == row_id)
        .with_for_update(of=model)
        .execution_options(populate_existing=True)
    )
    return db.scalars(stmt).unique().first()

def link_custom_file(db: Session, custom_file_id: str, order_item_id: str) -> bool:
    """Point a custom file at its order item unless another order claimed it first."""
    res = db.execute(
        update(CustomOrderFile)
        .where(CustomOrderFile.id == custom_file_id, CustomOrderFile.order_item_id.is_(None))
        .values(order_item_id=order_item_id)
        .execution_options(synchronize_session=False)
    )
    return res.rowcount == 1

def convert_quote_to_order(
    db: Session, user: CurrentUser, quote_id: str, shipping: float = 0.0, tax: float = 0.0
) -> Order:
    """
    Create the order for a quoted request and mark the quote accepted.

    Preconditions are checked in order: quote exists, caller owns it, it is
    not accepted yet, it is quoted with a price, its custom file is not on an
    order item already. Order, item, the custom-file link and the quote
    status are committed together. The link is a conditional UPDATE, so a
    concurrent conversion that passed the same checks gets the same Conflict
    as the explicit one.
    """
    q = _locked(db, QuoteRequest, quote_id)
    if not q:
        raise NotFound("Quote request not found")
    if q.user_id != user.sub:
        raise Forbidden("Unauthorized")
    if q.status == QUOTE_ACCEPTED:
        raise Conflict(ALREADY_ORDERED)
    if q.status != QUOTE_QUOTED or q.requested_price is None:
        raise ValidationFailed("Quote request must be quoted with a price before creating an order")
    cf = _locked(db, CustomOrderFile, q.custom_file_id)
    if cf.order_item_id:
        raise Conflict(ALREADY_ORDERED)
    if shipping < 0 or tax < 0:
        raise ValidationFailed("shipping and tax must be non-negative")

    subtotal = q.requested_price
    order = Order(
        user_id=user.sub,
        status="pending",
        subtotal=subtotal,
        shipping=shipping,
        tax=tax,
        total=round(subtotal + shipping + tax, 2),
    )
    item = OrderItem(
        position=0,
        product_id=None,
        product_name=cf.file.filename,
        material=cf.material,
        color=None,
        size="custom",
        quantity=1,
        unit_price=subtotal,
        total_price=subtotal,
        is_custom=True,
    )
    order.items.append(item)
    db.add(order)
    db.flush()
    if not link_custom_file(db, cf.id, item.id):
        db.rollback()
        logger.warning("Duplicate conversion of quote %s lost the race", quote_id)
        raise Conflict(ALREADY_ORDERED)
    q.status = QUOTE_ACCEPTED
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Duplicate conversion of quote %s rejected by constraint", quote_id)
        raise Conflict(ALREADY_ORDERED)
    db.refresh(order)
    logger.info("Quote %s converted to order %s (total %.2f)", quote_id, order.id, order.total)
    return order
