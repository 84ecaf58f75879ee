import logging
from typing import List, Tuple

from sqlalchemy import select, func, desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fabnest.catalog.models import Product
from fabnest.files.service import release_files, remove_released
from fabnest.orders.models import Order, OrderItem, ORDER_STATUSES, ORDER_CANCELLED
from fabnest.orders.schemas import OrderCreate, OrderUpdate
from fabnest.quotes.models import CustomOrderFile
from fabnest.quotes.conversion import link_custom_file
from fabnest.shared.auth import CurrentUser
from fabnest.shared.errors import Conflict, Forbidden, NotFound, ValidationFailed

logger = logging.getLogger(__name__)

def _check_custom_file(db: Session, user: CurrentUser, idx: int, custom_file_id: str) -> CustomOrderFile:
    cf = db.get(CustomOrderFile, custom_file_id)
    if not cf:
        raise NotFound(f"Item {idx}: Custom file not found")
    if cf.user_id != user.sub and not user.is_admin:
        raise Forbidden(f"Item {idx}: Unauthorized to use this custom file")
    if cf.order_item_id:
        raise Conflict(f"Item {idx}: Custom file has already been ordered")
    return cf

def create_order(db: Session, user: CurrentUser, payload: OrderCreate) -> Order:
    """Validate every item first, then insert the order and its items in one transaction."""
    linked: dict[int, CustomOrderFile] = {}
    for i, it in enumerate(payload.items):
        if it.product_id and not db.get(Product, it.product_id):
            raise ValidationFailed(f"Item {i + 1}: Product with ID {it.product_id} not found")
        if it.custom_file_id:
            if any(cf.id == it.custom_file_id for cf in linked.values()):
                raise Conflict(f"Item {i + 1}: Custom file listed twice")
            linked[i] = _check_custom_file(db, user, i + 1, it.custom_file_id)

    order = Order(
        user_id=user.sub,
        status="pending",
        subtotal=payload.subtotal,
        shipping=payload.shipping,
        tax=payload.tax,
        total=payload.total,
    )
    for i, it in enumerate(payload.items):
        order.items.append(OrderItem(
            position=i,
            product_id=it.product_id or None,
            product_name=it.product_name.strip(),
            material=it.material.strip(),
            color=(it.color or "").strip() or None,
            size=it.size.strip(),
            quantity=it.quantity,
            unit_price=it.unit_price,
            total_price=it.total_price,
            is_custom=it.is_custom or bool(it.custom_file_id),
        ))
    db.add(order)
    try:
        db.flush()
        for i, cf in linked.items():
            if not link_custom_file(db, cf.id, order.items[i].id):
                raise Conflict(f"Item {i + 1}: Custom file has already been ordered")
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("Custom file has already been ordered")
    except Conflict:
        db.rollback()
        raise
    db.refresh(order)
    logger.info("Order %s created by %s with %d item(s)", order.id, user.sub, len(order.items))
    return order

def list_orders(
    db: Session, user: CurrentUser, status: str | None, limit: int, offset: int
) -> Tuple[List[Order], int]:
    stmt = select(Order)
    count = select(func.count()).select_from(Order)
    # Regular users can only see their own orders
    if not user.is_admin:
        stmt = stmt.where(Order.user_id == user.sub)
        count = count.where(Order.user_id == user.sub)
    if status:
        stmt = stmt.where(Order.status == status)
        count = count.where(Order.status == status)
    stmt = stmt.order_by(desc(Order.created_at)).limit(limit).offset(offset)
    return list(db.scalars(stmt).all()), db.scalar(count) or 0

def get_order(db: Session, user: CurrentUser, order_id: str) -> Order:
    order = db.get(Order, order_id)
    if not order:
        raise NotFound("Order not found")
    if order.user_id != user.sub and not user.is_admin:
        raise Forbidden("Forbidden")
    return order

def update_order(db: Session, user: CurrentUser, order_id: str, payload: OrderUpdate) -> Order:
    order = get_order(db, user, order_id)
    if payload.status is not None:
        if not user.is_admin and payload.status != ORDER_CANCELLED:
            raise Forbidden("You can only cancel orders")
        if payload.status not in ORDER_STATUSES:
            raise ValidationFailed(f"status must be one of: {', '.join(ORDER_STATUSES)}")

    fields = payload.model_fields_set
    tracking = None
    if user.is_admin and "tracking_number" in fields:
        tracking = (payload.tracking_number or "").strip() or None
        if tracking and len(tracking) > 100:
            raise ValidationFailed("trackingNumber must be at most 100 characters")

    if payload.status is not None:
        order.status = payload.status
    # tracking details are admin-only; silently ignored for customers
    if user.is_admin and "tracking_number" in fields:
        order.tracking_number = tracking
    if user.is_admin and "estimated_delivery" in fields:
        order.estimated_delivery = payload.estimated_delivery
    db.commit()
    db.refresh(order)
    logger.info("Order %s updated by %s: status=%s", order.id, user.sub, order.status)
    return order

def drop_orders(db: Session, orders: List[Order]) -> List[str]:
    """
    Mark orders, their items and their custom files for deletion without committing.
    Returns the File ids the caller must hand to release_files.
    """
    file_ids: List[str] = []
    for order in orders:
        for item in order.items:
            cf = item.custom_file
            if cf:
                file_ids.append(cf.file_id)
                db.delete(cf)  # quote request goes with it
        db.delete(order)
    return file_ids

def delete_orders(db: Session, orders: List[Order]) -> int:
    """
    Delete orders and release the custom files attached to their items.
    File rows are dropped in the same transaction when nothing else references
    them; their bytes are removed after commit, best effort.
    """
    paths = release_files(db, drop_orders(db, orders))
    db.commit()
    remove_released(paths)
    return len(orders)

def delete_order(db: Session, order_id: str) -> None:
    order = db.get(Order, order_id)
    if not order:
        raise NotFound("Order not found")
    delete_orders(db, [order])
    logger.info("Order %s deleted", order_id)
