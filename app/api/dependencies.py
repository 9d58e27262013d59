# app/api/dependencies.py
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.resources import ResourceRegistry, get_registry
from app.core.store import SessionStore
from app.models.resource import ResourceConfig


async def get_store(db: AsyncSession = Depends(get_db)) -> SessionStore:
    """Store adapter over the request's database session"""
    return SessionStore(db)


async def get_resource_config(
        resource: str,
        registry: ResourceRegistry = Depends(get_registry),
) -> ResourceConfig:
    """Resolve the {resource} path parameter; unknown keys stop the request here"""
    return registry.resolve(resource)
