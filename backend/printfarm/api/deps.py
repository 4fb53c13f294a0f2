"""
FastAPI dependencies for service injection.

The EntityStore is created by the application lifespan and kept on
``app.state``; services are constructed per request around it.
"""

from typing import Annotated

from fastapi import Depends, Request

from printfarm.core.config import Settings, get_settings
from printfarm.database.store import EntityStore
from printfarm.services.catalog.service import CatalogService
from printfarm.services.orders.service import OrderEntryService
from printfarm.services.workflow.engine import WorkflowEngine


def get_store(request: Request) -> EntityStore:
    """Return the application's entity store."""
    return request.app.state.store


def get_workflow_engine(
    store: Annotated[EntityStore, Depends(get_store)],
) -> WorkflowEngine:
    return WorkflowEngine(store)


def get_order_service(
    store: Annotated[EntityStore, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> OrderEntryService:
    return OrderEntryService(store, settings)


def get_catalog_service(
    store: Annotated[EntityStore, Depends(get_store)],
) -> CatalogService:
    return CatalogService(store)


Store = Annotated[EntityStore, Depends(get_store)]
Engine = Annotated[WorkflowEngine, Depends(get_workflow_engine)]
OrderEntry = Annotated[OrderEntryService, Depends(get_order_service)]
Catalog = Annotated[CatalogService, Depends(get_catalog_service)]
