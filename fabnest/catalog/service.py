import logging
from typing import List

from sqlalchemy import select, desc
from sqlalchemy.orm import Session

from fabnest.catalog.models import Product, ProductImage, GalleryItem, GalleryImage
from fabnest.catalog.schemas import ProductCreate, ProductUpdate, GalleryItemCreate
from fabnest.files.models import File, FILE_TYPE_IMAGE
from fabnest.files.service import release_files, remove_released
from fabnest.shared.errors import NotFound, ValidationFailed

logger = logging.getLogger(__name__)

def _image_file(db: Session, file_id: str) -> File:
    f = db.get(File, file_id)
    if not f:
        raise ValidationFailed(f"Image file {file_id} not found")
    if f.file_type != FILE_TYPE_IMAGE:
        raise ValidationFailed(f"File {file_id} is not an image")
    return f

# --- products ---

def list_products(db: Session, category: str | None = None) -> List[Product]:
    stmt = select(Product)
    if category:
        stmt = stmt.where(Product.category == category)
    return list(db.scalars(stmt.order_by(desc(Product.created_at))).all())

def get_product(db: Session, product_id: str) -> Product:
    p = db.get(Product, product_id)
    if not p:
        raise NotFound("Product not found")
    return p

def create_product(db: Session, payload: ProductCreate) -> Product:
    files = [_image_file(db, fid) for fid in payload.image_file_ids]
    p = Product(
        name=payload.name.strip(),
        description=payload.description.strip(),
        base_price=payload.base_price,
        category=payload.category.strip(),
        print_time=payload.print_time,
    )
    p.tags = payload.tags
    for i, f in enumerate(files):
        p.images.append(ProductImage(file_id=f.id, is_primary=(i == 0), position=i))
    db.add(p)
    db.commit()
    db.refresh(p)
    return p

def update_product(db: Session, product_id: str, payload: ProductUpdate) -> Product:
    p = get_product(db, product_id)
    if payload.image_file_id:
        _image_file(db, payload.image_file_id)
    if payload.name is not None:
        p.name = payload.name.strip()
    if payload.description is not None:
        p.description = payload.description.strip()
    if payload.base_price is not None:
        p.base_price = payload.base_price
    if payload.category is not None:
        p.category = payload.category.strip()
    if payload.tags is not None:
        p.tags = payload.tags
    if "print_time" in payload.model_fields_set:
        p.print_time = payload.print_time or None
    if payload.image_file_id:
        # the given image becomes the only primary one
        existing = None
        for img in p.images:
            img.is_primary = False
            if img.file_id == payload.image_file_id:
                existing = img
        if existing:
            existing.is_primary = True
        else:
            p.images.append(ProductImage(file_id=payload.image_file_id, is_primary=True, position=0))
    db.commit()
    db.refresh(p)
    return p

def delete_product(db: Session, product_id: str) -> None:
    p = get_product(db, product_id)
    file_ids = [img.file_id for img in p.images]
    db.delete(p)
    paths = release_files(db, file_ids)
    db.commit()
    remove_released(paths)
    logger.info("Product %s deleted, %d image file(s) released", product_id, len(paths))

# --- gallery ---

def list_gallery(db: Session, category: str | None = None) -> List[GalleryItem]:
    stmt = select(GalleryItem)
    if category:
        stmt = stmt.where(GalleryItem.category == category)
    return list(db.scalars(stmt.order_by(desc(GalleryItem.created_at))).all())

def get_gallery_item(db: Session, item_id: str) -> GalleryItem:
    g = db.get(GalleryItem, item_id)
    if not g:
        raise NotFound("Gallery item not found")
    return g

def create_gallery_item(db: Session, payload: GalleryItemCreate) -> GalleryItem:
    files = [_image_file(db, fid) for fid in payload.image_file_ids]
    g = GalleryItem(
        title=payload.title.strip(),
        description=payload.description.strip(),
        category=(payload.category or "").strip() or None,
    )
    for i, f in enumerate(files):
        g.images.append(GalleryImage(file_id=f.id, position=i))
    db.add(g)
    db.commit()
    db.refresh(g)
    return g

def delete_gallery_item(db: Session, item_id: str) -> None:
    g = get_gallery_item(db, item_id)
    file_ids = [img.file_id for img in g.images]
    db.delete(g)
    paths = release_files(db, file_ids)
    db.commit()
    remove_released(paths)
    logger.info("Gallery item %s deleted, %d image file(s) released", item_id, len(paths))
