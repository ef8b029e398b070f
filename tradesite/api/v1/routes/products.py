# tradesite/api/v1/routes/products.py
from typing import List

from fastapi import APIRouter, Depends, Response, status

from tradesite.db.database import get_storage
from tradesite.db.storage import ShardStore
from tradesite.models.product import Product, ProductUpdate
from tradesite.services.product_service import (
    delete_product,
    get_all_products,
    get_product_by_id,
    update_product,
    upsert_product,
    upsert_products_batch,
)

router = APIRouter()


@router.get("", response_model=List[Product])
async def list_products(storage: ShardStore = Depends(get_storage)):
    return await get_all_products(storage)


@router.post("/batch")
async def add_products_batch(products: List[Product], storage: ShardStore = Depends(get_storage)):
    stored = await upsert_products_batch(storage, products)
    return {"success": True, "count": len(stored)}


@router.get("/{product_id}", response_model=Product)
async def get_product(product_id: str, storage: ShardStore = Depends(get_storage)):
    return await get_product_by_id(storage, product_id)


@router.post("", response_model=Product)
async def add_product(product: Product, response: Response, storage: ShardStore = Depends(get_storage)):
    stored, created = await upsert_product(storage, product)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return stored


@router.patch("/{product_id}", response_model=Product)
async def patch_product(
    product_id: str, updates: ProductUpdate, storage: ShardStore = Depends(get_storage)
):
    return await update_product(storage, product_id, updates.model_dump(mode="json", exclude_unset=True))


@router.delete("/{product_id}")
async def remove_product(product_id: str, storage: ShardStore = Depends(get_storage)):
    await delete_product(storage, product_id)
    return {"success": True}
