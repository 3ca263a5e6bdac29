# catalog_service/repository.py

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from .models import Product
from .schemas import ProductFilters

logger = logging.getLogger(__name__)


class ProductRepository:
    """SQLAlchemy-backed product persistence. Soft deletes only."""

    def __init__(self, db: Session):
        self.db = db

    def find_all(self, filters: ProductFilters) -> List[Product]:
        query = self.db.query(Product)
        if not filters.include_deleted:
            query = query.filter(Product.is_deleted.is_(False))
        if filters.search:
            search_pattern = f"%{filters.search}%"
            query = query.filter(
                (Product.name.ilike(search_pattern))
                | (Product.description.ilike(search_pattern))
            )
        if filters.in_stock is not None:
            query = query.filter(Product.in_stock.is_(filters.in_stock))
        if filters.min_price is not None:
            query = query.filter(Product.price >= filters.min_price)
        if filters.max_price is not None:
            query = query.filter(Product.price <= filters.max_price)
        return (
            query.order_by(Product.id.asc())
            .offset(filters.skip)
            .limit(filters.limit)
            .all()
        )

    def find_by_id(self, product_id: int) -> Optional[Product]:
        return self.db.query(Product).filter(Product.id == product_id).first()

    def create(self, fields: Dict[str, Any]) -> Product:
        db_product = Product(**fields)
        try:
            self.db.add(db_product)
            self.db.commit()
            self.db.refresh(db_product)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Product Service: Error creating product: {e}", exc_info=True)
            raise
        return db_product

    def update(self, product_id: int, patch: Dict[str, Any]) -> Product:
        db_product = self.find_by_id(product_id)
        if db_product is None:
            raise LookupError(f"Product {product_id} does not exist")

        for key, value in patch.items():
            setattr(db_product, key, value)
        try:
            self.db.add(db_product)
            self.db.commit()
            self.db.refresh(db_product)
        except Exception as e:
            self.db.rollback()
            logger.error(
                f"Product Service: Error updating product {product_id}: {e}", exc_info=True
            )
            raise
        return db_product

    def soft_delete(self, product_id: int) -> None:
        self.update(product_id, {"is_deleted": True})
