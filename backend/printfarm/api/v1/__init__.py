"""API version 1 routers."""

from fastapi import APIRouter

from printfarm.api.v1.catalog import router as catalog_router
from printfarm.api.v1.items import router as items_router
from printfarm.api.v1.orders import router as orders_router
from printfarm.api.v1.products import router as products_router

api_router = APIRouter()
api_router.include_router(items_router)
api_router.include_router(orders_router)
api_router.include_router(products_router)
api_router.include_router(catalog_router)

__all__ = ["api_router"]
