from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends

from embedlam.api.v1.schemas.metadata import ProviderRead, ValueTypeRead
from embedlam.core.schemas.distance import ValueType
from embedlam.dependencies import get_block_feed_service

if TYPE_CHECKING:
    from embedlam.core.services.block_feed_service import BlockFeedService

router = APIRouter()


@router.get("/providers", response_model=list[ProviderRead])
async def list_providers(service: BlockFeedService = Depends(get_block_feed_service)):
    """Return the registered embedding providers in display order."""
    return [ProviderRead.model_validate(p) for p in service.registry.describe()]


@router.get("/value-types", response_model=list[ValueTypeRead])
async def list_value_types() -> list[ValueTypeRead]:
    return [ValueTypeRead(value=t.value, label=t.label) for t in ValueType]
