from fastapi import APIRouter, Depends, Query
from app.database.supabase_client import get_supabase
from app.modules.sos.schemas import (
    SOSCreate, SOSResponse, SOSFeedItem, ActiveSOSResponse, RequestHistoryResponse,
    RecentActivityResponse, RouteInfoResponse, STATUS_ACTIVE
)
from app.modules.sos.service import SOSService, to_sos_response
from app.modules.help_offers.service import HelpOfferService
from app.modules.maps.routes import get_maps_service
from app.modules.maps.service import GoongMapsService
from app.modules.realtime.hub import manager
from app.modules.realtime.schemas import ChangeEvent
from app.core.dependencies import get_current_user_id
from supabase import Client
from typing import List, Dict
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sos", tags=["sos"])


def get_sos_service(supabase: Client = Depends(get_supabase)) -> SOSService:
    return SOSService(supabase)


def get_help_offer_service(supabase: Client = Depends(get_supabase)) -> HelpOfferService:
    return HelpOfferService(supabase)


@router.post("", response_model=SOSResponse, status_code=201)
async def create_sos(
    sos_data: SOSCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: SOSService = Depends(get_sos_service)
):
    """Broadcast a new SOS request"""
    sos = service.create_sos(sos_data, user_data["id"])
    await manager.publish(ChangeEvent(
        table="sos_requests", event="INSERT", new=sos.model_dump(mode="json")
    ))
    return sos


@router.get("", response_model=List[SOSFeedItem])
async def list_sos(
    user_data: Dict = Depends(get_current_user_id),
    service: SOSService = Depends(get_sos_service)
):
    """Open SOS requests for the map"""
    return service.list_open()


@router.get("/active", response_model=ActiveSOSResponse)
async def get_my_active_sos(
    user_data: Dict = Depends(get_current_user_id),
    service: SOSService = Depends(get_sos_service),
    offer_service: HelpOfferService = Depends(get_help_offer_service)
):
    """The caller's open SOS with its pending offers"""
    row = service.get_open_sos_for_user(user_data["id"])
    if not row:
        return ActiveSOSResponse()
    return ActiveSOSResponse(
        sos=to_sos_response(row),
        offers=offer_service.list_pending(row["id"])
    )


@router.get("/history/requests", response_model=RequestHistoryResponse)
async def get_request_history(
    user_data: Dict = Depends(get_current_user_id),
    service: SOSService = Depends(get_sos_service),
    offer_service: HelpOfferService = Depends(get_help_offer_service)
):
    """Every SOS the caller raised, with pending offers for the active ones"""
    requests = service.request_history(user_data["id"])
    active_ids = [sos.id for sos in requests if sos.status == STATUS_ACTIVE]
    return RequestHistoryResponse(
        requests=requests,
        offers=offer_service.list_pending_grouped(active_ids)
    )


@router.get("/history/help", response_model=List[SOSResponse])
async def get_help_history(
    user_data: Dict = Depends(get_current_user_id),
    service: SOSService = Depends(get_sos_service)
):
    return service.help_history(user_data["id"])


@router.get("/recent", response_model=RecentActivityResponse)
async def get_recent_activity(
    user_data: Dict = Depends(get_current_user_id),
    service: SOSService = Depends(get_sos_service)
):
    """Latest requests and helps for the home screen"""
    return service.recent_activity(user_data["id"])


@router.get("/{sos_id}", response_model=SOSResponse)
async def get_sos(
    sos_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: SOSService = Depends(get_sos_service)
):
    return service.get_sos(sos_id)


@router.post("/{sos_id}/cancel", response_model=SOSResponse)
async def cancel_sos(
    sos_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: SOSService = Depends(get_sos_service)
):
    """Withdraw an SOS that has not been accepted yet"""
    change = service.cancel_sos(sos_id, user_data["id"])
    await manager.publish(ChangeEvent(
        table="sos_requests", event="UPDATE", new=change["new"], old=change["old"]
    ))
    return to_sos_response(change["new"])


@router.post("/{sos_id}/complete", response_model=SOSResponse)
async def complete_sos(
    sos_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: SOSService = Depends(get_sos_service)
):
    """Mark an in-progress SOS as resolved"""
    change = service.complete_sos(sos_id, user_data["id"])
    await manager.publish(ChangeEvent(
        table="sos_requests", event="UPDATE", new=change["new"], old=change["old"]
    ))
    return to_sos_response(change["new"])


@router.get("/{sos_id}/route", response_model=RouteInfoResponse)
async def get_route(
    sos_id: str,
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    user_data: Dict = Depends(get_current_user_id),
    service: SOSService = Depends(get_sos_service),
    maps_service: GoongMapsService = Depends(get_maps_service)
):
    """Distance and travel time from the helper to the SOS"""
    return service.route_info(sos_id, user_data["id"], latitude, longitude, maps_service)
