# catalog_service/service.py

import asyncio
import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from starlette.concurrency import run_in_threadpool

from .models import Product
from .repository import ProductRepository
from .schemas import ProductCreate, ProductFilters, ProductUpdate
from .storage import ObjectStore, key_from_url

logger = logging.getLogger(__name__)

PUBLIC_FIELDS = [
    column.name for column in Product.__table__.columns if column.name != "is_deleted"
]


def _not_found(product_id: int) -> HTTPException:
    logger.warning(f"Product Service: Product with ID {product_id} not found.")
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")


def to_public_dict(product: Product) -> Dict[str, Any]:
    """Column values of ``product`` minus the internal soft-delete flag."""
    return {field: getattr(product, field) for field in PUBLIC_FIELDS}


class ProductService:
    """
    Sequences repository and object-store calls for the product lifecycle.

    Every product handed back is a plain dict without ``is_deleted``. When the
    stored image can be signed, ``image_url`` holds the signed URL. Otherwise the
    key is removed altogether.
    """

    def __init__(self, repository: ProductRepository, object_store: ObjectStore):
        self.repository = repository
        self.object_store = object_store

    async def _resolve_image(self, product: Product) -> Dict[str, Any]:
        data = to_public_dict(product)
        if not data.get("image_url"):
            data.pop("image_url", None)
            return data

        try:
            signed_url = await self.object_store.get_signed_url(
                key_from_url(data["image_url"])
            )
        except Exception as e:
            logger.warning(
                f"Product Service: Could not resolve image for product {product.id}: {e}"
            )
            signed_url = None

        if signed_url:
            data["image_url"] = signed_url
        else:
            del data["image_url"]
        return data

    async def _get_active(self, product_id: int) -> Product:
        product = await run_in_threadpool(self.repository.find_by_id, product_id)
        if product is None or product.is_deleted:
            raise _not_found(product_id)
        return product

    async def find_all(self, filters: Optional[ProductFilters] = None) -> List[Dict[str, Any]]:
        filters = filters or ProductFilters()
        products = await run_in_threadpool(self.repository.find_all, filters)
        logger.info(f"Product Service: Retrieved {len(products)} products.")
        return list(await asyncio.gather(*(self._resolve_image(p) for p in products)))

    async def find_by_id(self, product_id: int) -> Dict[str, Any]:
        product = await self._get_active(product_id)
        return await self._resolve_image(product)

    async def create(self, product_in: ProductCreate) -> Dict[str, Any]:
        fields = product_in.model_dump()
        if fields["stock_quantity"] == 0:
            fields["in_stock"] = False

        product = await run_in_threadpool(self.repository.create, fields)
        logger.info(
            f"Product Service: Product '{product.name}' (ID: {product.id}) created successfully."
        )
        data = to_public_dict(product)
        if not data.get("image_url"):
            data.pop("image_url", None)
        return data

    async def update(self, product_id: int, patch: ProductUpdate) -> Dict[str, Any]:
        product = await run_in_threadpool(self.repository.find_by_id, product_id)
        if product is None:
            raise _not_found(product_id)
        if product.is_deleted:
            logger.warning(
                f"Product Service: Attempted to update deleted product {product_id}."
            )
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot update a deleted product",
            )

        update_data = patch.model_dump(exclude_unset=True)
        # Explicit nulls for non-nullable columns are ignored.
        for field in ("name", "price", "stock_quantity", "in_stock"):
            if update_data.get(field, 0) is None:
                del update_data[field]
        if "stock_quantity" in update_data:
            update_data["in_stock"] = update_data["stock_quantity"] > 0

        updated = await run_in_threadpool(self.repository.update, product_id, update_data)
        logger.info(f"Product Service: Product {product_id} updated successfully.")
        return await self._resolve_image(updated)

    async def remove(self, product_id: int) -> None:
        await self._get_active(product_id)
        await run_in_threadpool(self.repository.soft_delete, product_id)
        logger.info(f"Product Service: Product {product_id} soft-deleted.")

    async def _delete_quietly(self, key: Optional[str]) -> None:
        if not key:
            return
        try:
            await self.object_store.delete_file(key)
        except Exception as e:
            logger.warning(f"Product Service: Could not delete image '{key}': {e}")

    async def upload_image(
        self, product_id: int, data: Optional[bytes], content_type: Optional[str]
    ) -> Dict[str, Any]:
        product = await self._get_active(product_id)

        if not data:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="No file provided"
            )
        if not (content_type or "").startswith("image/"):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="File must be an image"
            )

        try:
            if product.image_url:
                await self._delete_quietly(key_from_url(product.image_url))

            image_url = await self.object_store.upload_product_image(data, product_id)
            try:
                updated = await run_in_threadpool(
                    self.repository.update, product_id, {"image_url": image_url}
                )
            except Exception:
                await self._delete_quietly(key_from_url(image_url))
                raise

            logger.info(f"Product Service: Image uploaded for product {product_id}.")
            return await self._resolve_image(updated)
        except Exception as e:
            logger.error(
                f"Product Service: Error uploading image for product {product_id}: {e}",
                exc_info=True,
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Could not upload image.",
            )
