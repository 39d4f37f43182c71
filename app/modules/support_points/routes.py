from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.support_points.schemas import SupportPointCreate, SupportPointResponse
from app.modules.support_points.service import SupportPointService
from app.core.dependencies import get_current_user_id
from supabase import Client
from typing import List, Dict, Optional

router = APIRouter(prefix="/support-points", tags=["support_points"])


def get_support_point_service(supabase: Client = Depends(get_supabase)) -> SupportPointService:
    return SupportPointService(supabase)


@router.get("", response_model=List[SupportPointResponse])
async def list_support_points(
    search: Optional[str] = None,
    type: Optional[str] = None,
    service: SupportPointService = Depends(get_support_point_service)
):
    """Active support points; type "all" disables the type filter"""
    return service.list_points(search=search, point_type=type)


@router.post("", response_model=SupportPointResponse, status_code=201)
async def register_support_point(
    point_data: SupportPointCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: SupportPointService = Depends(get_support_point_service)
):
    return service.register_point(point_data, user_data["id"])


@router.get("/{point_id}", response_model=SupportPointResponse)
async def get_support_point(
    point_id: str,
    service: SupportPointService = Depends(get_support_point_service)
):
    return service.get_point(point_id)
