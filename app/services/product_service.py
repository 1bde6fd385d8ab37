from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.models import Product
from app.models.schemas import ProductCreate, ProductRead, ProductUpdate

logger = logging.getLogger(__name__)


class ProductNotFoundError(LookupError):
    def __init__(self, product_id: int) -> None:
        super().__init__(f"Product {product_id} not found")
        self.product_id = product_id


def _get_or_raise(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if product is None:
        raise ProductNotFoundError(product_id)
    return product


def list_products(db: Session) -> list[ProductRead]:
    rows = db.execute(select(Product).order_by(Product.id)).scalars().all()
    return [ProductRead.model_validate(row) for row in rows]


def get_product(db: Session, product_id: int) -> ProductRead | None:
    product = db.get(Product, product_id)
    if product is None:
        return None
    return ProductRead.model_validate(product)


def create_product(db: Session, data: ProductCreate) -> ProductRead:
    product = Product(name=data.name, description=data.description, price=data.price)
    db.add(product)
    db.commit()
    db.refresh(product)
    logger.info("Created product %s", product.id)
    return ProductRead.model_validate(product)


def update_product(db: Session, product_id: int, data: ProductUpdate) -> ProductRead:
    if data.id != product_id:
        raise ValueError("Product id in body does not match the URL")

    product = _get_or_raise(db, product_id)
    product.name = data.name
    product.description = data.description
    product.price = data.price
    db.commit()
    db.refresh(product)
    return ProductRead.model_validate(product)


def delete_product(db: Session, product_id: int) -> None:
    product = _get_or_raise(db, product_id)
    db.delete(product)
    db.commit()
    logger.info("Deleted product %s", product_id)
