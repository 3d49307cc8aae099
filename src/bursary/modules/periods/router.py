"""
Portal Configuration Router

Public endpoint:
- GET /config/portal - Active period, window state, and upload limits
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bursary.core.database import get_db
from bursary.modules.periods import service
from bursary.modules.periods.schemas import PortalConfigResponse

router = APIRouter()


@router.get("/portal", response_model=PortalConfigResponse, summary="Portal Configuration")
async def get_portal_config(db: AsyncSession = Depends(get_db)) -> PortalConfigResponse:
    return PortalConfigResponse.model_validate(await service.get_portal_config(db), from_attributes=True)
