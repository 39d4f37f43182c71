from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.help_offers.schemas import HelpOfferCreate, HelpOfferResponse, OfferDecisionResponse
from app.modules.help_offers.service import HelpOfferService
from app.modules.sos.schemas import STATUS_ACTIVE, STATUS_HELPING
from app.modules.realtime.hub import manager
from app.modules.realtime.schemas import ChangeEvent
from app.core.dependencies import get_current_user_id, get_current_profile, require_sos_owner
from supabase import Client
from typing import List, Dict

router = APIRouter(tags=["help_offers"])


def get_help_offer_service(supabase: Client = Depends(get_supabase)) -> HelpOfferService:
    return HelpOfferService(supabase)


@router.post("/sos/{sos_id}/offers", response_model=HelpOfferResponse, status_code=201)
async def create_offer(
    sos_id: str,
    offer_data: HelpOfferCreate,
    profile: Dict = Depends(get_current_profile),
    service: HelpOfferService = Depends(get_help_offer_service)
):
    """Offer to help with an active SOS (volunteer mode required)"""
    offer = service.create_offer(sos_id, profile, offer_data)
    await manager.publish(ChangeEvent(
        table="help_offers", event="INSERT", new=offer.model_dump(mode="json")
    ))
    return offer


@router.get("/sos/{sos_id}/offers", response_model=List[HelpOfferResponse])
async def list_offers(
    sos_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: HelpOfferService = Depends(get_help_offer_service)
):
    """Pending offers on the caller's SOS"""
    require_sos_owner(service.sos_service.get_sos_row(sos_id), user_data["id"])
    return service.list_pending(sos_id)


@router.post("/offers/{offer_id}/accept", response_model=OfferDecisionResponse)
async def accept_offer(
    offer_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: HelpOfferService = Depends(get_help_offer_service)
):
    """Accept one offer; the SOS moves to helping and the remaining offers are rejected"""
    decision = service.accept_offer(offer_id, user_data["id"])
    await manager.publish(ChangeEvent(
        table="sos_requests",
        event="UPDATE",
        new={
            "id": decision.sos_request_id,
            "user_id": decision.requester_id,
            "helper_id": decision.offer.volunteer_id,
            "status": STATUS_HELPING,
        },
        old={"id": decision.sos_request_id, "status": STATUS_ACTIVE},
    ))
    await manager.publish(ChangeEvent(
        table="help_offers", event="UPDATE", new=decision.offer.model_dump(mode="json")
    ))
    return decision


@router.post("/offers/{offer_id}/reject", response_model=OfferDecisionResponse)
async def reject_offer(
    offer_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: HelpOfferService = Depends(get_help_offer_service)
):
    """Decline a single pending offer"""
    decision = service.reject_offer(offer_id, user_data["id"])
    await manager.publish(ChangeEvent(
        table="help_offers", event="UPDATE", new=decision.offer.model_dump(mode="json")
    ))
    return decision
