"""Back-office user management with last-admin protection."""
import logging
from typing import List, Tuple

from sqlalchemy import select, func, desc
from sqlalchemy.orm import Session

from fabnest.auth.models import User
from fabnest.auth.schemas import UserUpdate
from fabnest.auth.service import find_by_email, hash_password, normalize_email
from fabnest.orders.models import Order
from fabnest.orders.service import drop_orders
from fabnest.quotes.models import CustomOrderFile
from fabnest.files.service import release_files, remove_released
from fabnest.shared.auth import CurrentUser, ROLE_ADMIN, ROLE_USER
from fabnest.shared.errors import Conflict, NotFound

logger = logging.getLogger(__name__)

def _admin_count(db: Session) -> int:
    return db.scalar(select(func.count()).select_from(User).where(User.role == ROLE_ADMIN)) or 0

def _get(db: Session, user_id: str) -> User:
    u = db.get(User, user_id)
    if not u:
        raise NotFound("User not found")
    return u

def list_users(db: Session, limit: int, offset: int) -> Tuple[List[User], int]:
    rows = db.scalars(select(User).order_by(desc(User.created_at)).limit(limit).offset(offset)).all()
    return list(rows), db.scalar(select(func.count()).select_from(User)) or 0

def update_user(db: Session, admin: CurrentUser, user_id: str, payload: UserUpdate) -> User:
    u = _get(db, user_id)
    if payload.role == ROLE_USER and u.role == ROLE_ADMIN:
        if u.id == admin.sub:
            raise Conflict("Cannot remove your own admin role")
        if _admin_count(db) <= 1:
            raise Conflict("Cannot remove admin role from the last admin user")
    if payload.email is not None:
        email = normalize_email(payload.email)
        taken = find_by_email(db, email)
        if taken and taken.id != u.id:
            raise Conflict("Email already registered")
        u.email = email
    if payload.name is not None:
        u.name = payload.name.strip()
    if payload.password is not None:
        u.password_hash = hash_password(payload.password)
    if payload.role is not None and payload.role != u.role:
        logger.info("Admin %s changed role of %s: %s -> %s", admin.sub, u.id, u.role, payload.role)
        u.role = payload.role
    db.commit()
    db.refresh(u)
    return u

def delete_user(db: Session, admin: CurrentUser, user_id: str) -> None:
    """Delete a user with their orders and leftover custom files in one transaction."""
    u = _get(db, user_id)
    if u.id == admin.sub:
        raise Conflict("Cannot delete your own account")
    if u.role == ROLE_ADMIN and _admin_count(db) <= 1:
        raise Conflict("Cannot delete the last admin user")

    orders = list(db.scalars(select(Order).where(Order.user_id == u.id)).all())
    file_ids = drop_orders(db, orders)
    db.flush()

    # custom files never ordered (quotes still open or rejected)
    leftovers = list(db.scalars(select(CustomOrderFile).where(CustomOrderFile.user_id == u.id)).all())
    file_ids += [cf.file_id for cf in leftovers]
    for cf in leftovers:
        db.delete(cf)
    db.delete(u)
    paths = release_files(db, file_ids)
    db.commit()
    remove_released(paths)
    logger.info("User %s deleted by %s (%d order(s))", user_id, admin.sub, len(orders))
