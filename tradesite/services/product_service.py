# tradesite/services/product_service.py
import logging
from typing import Any, Dict, List, Tuple

from fastapi import HTTPException

from tradesite.core.errors import NotFoundError, StorageError, ValidationError
from tradesite.db.storage import ShardStore
from tradesite.models.product import Product

logger = logging.getLogger(__name__)


async def get_all_products(storage: ShardStore) -> List[Product]:
    return await storage.list_products()


async def get_product_by_id(storage: ShardStore, product_id: str) -> Product:
    product = await storage.get_product(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


async def upsert_product(storage: ShardStore, product: Product) -> Tuple[Product, bool]:
    try:
        return await storage.upsert_product(product)
    except StorageError as e:
        logger.error("Error upserting product %s: %s", product.id, e)
        raise HTTPException(status_code=500, detail="Failed to upsert product")


async def upsert_products_batch(storage: ShardStore, products: List[Product]) -> List[Product]:
    try:
        return await storage.upsert_products(products)
    except StorageError as e:
        logger.error("Error upserting %d products: %s", len(products), e)
        raise HTTPException(status_code=500, detail="Failed to upsert products")


async def update_product(storage: ShardStore, product_id: str, fields: Dict[str, Any]) -> Product:
    try:
        return await storage.update_product(product_id, fields)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Product not found")
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors)


async def delete_product(storage: ShardStore, product_id: str) -> None:
    try:
        await storage.delete_product(product_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Product not found")
    except StorageError as e:
        logger.error("Error deleting product %s: %s", product_id, e)
        raise HTTPException(status_code=500, detail="Failed to delete product")
