from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fabnest.shared.auth import CurrentUser, get_user, require_admin
from fabnest.shared.db import get_db
from fabnest.shared.http import ok
from fabnest.shared.schemas import clamp_page
from fabnest.orders.models import Order
from fabnest.orders.schemas import OrderCreate, OrderUpdate, OrderOut, OrderList
from fabnest.orders import service

router = APIRouter(prefix="/orders", tags=["Orders"])

def order_out(order: Order, user: CurrentUser) -> OrderOut:
    out = OrderOut.model_validate(order)
    if not user.is_admin:
        for item in out.items:
            if item.custom_file:
                item.custom_file.file.download_url = None
    return out

@router.post("", status_code=201)
def create_order(payload: OrderCreate, user: CurrentUser = Depends(get_user), db: Session = Depends(get_db)):
    order = service.create_order(db, user, payload)
    return ok(order=order_out(order, user))

@router.get("")
def list_orders(
    status: str | None = Query(None),
    limit: int | None = Query(None),
    offset: int | None = Query(None),
    user: CurrentUser = Depends(get_user),
    db: Session = Depends(get_db),
):
    limit, offset = clamp_page(limit, offset)
    items, total = service.list_orders(db, user, status, limit, offset)
    return OrderList(items=[order_out(o, user) for o in items], total=total, limit=limit, offset=offset)

@router.get("/{order_id}")
def get_order(order_id: str, user: CurrentUser = Depends(get_user), db: Session = Depends(get_db)):
    return ok(order=order_out(service.get_order(db, user, order_id), user))

@router.put("/{order_id}")
def update_order(
    order_id: str, payload: OrderUpdate, user: CurrentUser = Depends(get_user), db: Session = Depends(get_db)
):
    order = service.update_order(db, user, order_id, payload)
    return ok(order=order_out(order, user))

@router.delete("/{order_id}")
def delete_order(order_id: str, admin: CurrentUser = Depends(require_admin), db: Session = Depends(get_db)):
    service.delete_order(db, order_id)
    return ok(message="Order deleted successfully")
