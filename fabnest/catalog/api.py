from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fabnest.shared.auth import CurrentUser, require_admin
from fabnest.shared.db import get_db
from fabnest.shared.http import ok
from fabnest.catalog.schemas import (
    ProductCreate, ProductUpdate, ProductOut, GalleryItemCreate, GalleryItemOut,
)
from fabnest.catalog import service

products_router = APIRouter(prefix="/products", tags=["Products"])
gallery_router = APIRouter(prefix="/gallery", tags=["Gallery"])

@products_router.get("")
def list_products(category: str | None = Query(None), db: Session = Depends(get_db)):
    return {"items": [ProductOut.model_validate(p) for p in service.list_products(db, category)]}

@products_router.get("/{product_id}")
def get_product(product_id: str, db: Session = Depends(get_db)):
    return ProductOut.model_validate(service.get_product(db, product_id))

@products_router.post("", status_code=201)
def create_product(payload: ProductCreate, admin: CurrentUser = Depends(require_admin), db: Session = Depends(get_db)):
    return ok(product=ProductOut.model_validate(service.create_product(db, payload)))

@products_router.put("/{product_id}")
def update_product(
    product_id: str, payload: ProductUpdate, admin: CurrentUser = Depends(require_admin), db: Session = Depends(get_db)
):
    return ok(product=ProductOut.model_validate(service.update_product(db, product_id, payload)))

@products_router.delete("/{product_id}")
def delete_product(product_id: str, admin: CurrentUser = Depends(require_admin), db: Session = Depends(get_db)):
    service.delete_product(db, product_id)
    return ok(message="Product deleted successfully")

@gallery_router.get("")
def list_gallery(category: str | None = Query(None), db: Session = Depends(get_db)):
    return {"items": [GalleryItemOut.model_validate(g) for g in service.list_gallery(db, category)]}

@gallery_router.get("/{item_id}")
def get_gallery_item(item_id: str, db: Session = Depends(get_db)):
    return GalleryItemOut.model_validate(service.get_gallery_item(db, item_id))

@gallery_router.post("", status_code=201)
def create_gallery_item(
    payload: GalleryItemCreate, admin: CurrentUser = Depends(require_admin), db: Session = Depends(get_db)
):
    return ok(item=GalleryItemOut.model_validate(service.create_gallery_item(db, payload)))

@gallery_router.delete("/{item_id}")
def delete_gallery_item(item_id: str, admin: CurrentUser = Depends(require_admin), db: Session = Depends(get_db)):
    service.delete_gallery_item(db, item_id)
    return ok(message="Gallery item deleted successfully")
