from supabase import Client
from app.modules.help_offers.schemas import (
    HelpOfferCreate, HelpOfferResponse, OfferDecisionResponse,
    OFFER_PENDING, OFFER_ACCEPTED, OFFER_REJECTED
)
from app.modules.sos.schemas import STATUS_ACTIVE, STATUS_HELPING
from app.modules.sos.service import SOSService
from app.core.dependencies import require_sos_owner
from app.database.supabase_client import is_unique_violation
from typing import List, Dict, Any, Tuple
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

OFFER_SELECT = "*, profiles!help_offers_volunteer_id_fkey(name)"


def to_offer_response(row: Dict[str, Any]) -> HelpOfferResponse:
    data = {k: v for k, v in row.items() if k != "profiles"}
    embedded = row.get("profiles")
    data["volunteer_name"] = embedded.get("name") if isinstance(embedded, dict) else None
    return HelpOfferResponse(**data)


class HelpOfferService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.sos_service = SOSService(supabase)

    def create_offer(self, sos_id: str, profile: Dict[str, Any], offer_data: HelpOfferCreate) -> HelpOfferResponse:
        """Volunteer proposes to help with an active SOS"""
        if not profile.get("is_volunteer_ready"):
            raise HTTPException(status_code=403, detail="Enable volunteer mode to offer help")

        sos = self.sos_service.get_sos_row(sos_id)
        if sos.get("user_id") == profile["id"]:
            raise HTTPException(status_code=400, detail="You cannot offer help on your own SOS request")
        if sos.get("status") != STATUS_ACTIVE:
            raise HTTPException(status_code=409, detail="This SOS request is no longer accepting offers")

        try:
            result = self.supabase.table("help_offers").insert({
                "sos_request_id": sos_id,
                "volunteer_id": profile["id"],
                "status": OFFER_PENDING,
                "message": offer_data.message,
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create help offer")

            logger.info("Volunteer %s offered help on SOS %s", profile["id"], sos_id)
            row = result.data[0]
            row.setdefault("profiles", {"name": profile.get("name")})
            return to_offer_response(row)
        except HTTPException:
            raise
        except Exception as e:
            if is_unique_violation(e):
                raise HTTPException(status_code=409, detail="You have already offered help on this request")
            logger.error(f"Error creating help offer: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def list_pending(self, sos_id: str) -> List[HelpOfferResponse]:
        try:
            result = self.supabase.table("help_offers")\
                .select(OFFER_SELECT)\
                .eq("sos_request_id", sos_id)\
                .eq("status", OFFER_PENDING)\
                .order("created_at")\
                .execute()
            return [to_offer_response(row) for row in (result.data or [])]
        except Exception as e:
            logger.error(f"Error fetching help offers: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def list_pending_grouped(self, sos_ids: List[str]) -> Dict[str, List[HelpOfferResponse]]:
        """Pending offers keyed by SOS id; every requested id is present"""
        grouped: Dict[str, List[HelpOfferResponse]] = {sos_id: [] for sos_id in sos_ids}
        if not sos_ids:
            return grouped
        try:
            result = self.supabase.table("help_offers")\
                .select(OFFER_SELECT)\
                .in_("sos_request_id", sos_ids)\
                .eq("status", OFFER_PENDING)\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching help offers: {e}")
            raise HTTPException(status_code=500, detail=str(e))

        for row in result.data or []:
            if row.get("sos_request_id") in grouped:
                grouped[row["sos_request_id"]].append(to_offer_response(row))
        return grouped

    def get_offer_row(self, offer_id: str) -> Dict[str, Any]:
        try:
            result = self.supabase.table("help_offers")\
                .select(OFFER_SELECT)\
                .eq("id", offer_id)\
                .maybe_single()\
                .execute()

            if not result or not result.data:
                raise HTTPException(status_code=404, detail="Help offer not found")

            return result.data
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def _pending_offer_for_owner(self, offer_id: str, user_id: str) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        offer = self.get_offer_row(offer_id)
        sos = require_sos_owner(self.sos_service.get_sos_row(offer["sos_request_id"]), user_id)
        if offer.get("status") != OFFER_PENDING:
            raise HTTPException(status_code=409, detail="This help offer has already been answered")
        return offer, sos

    def _restore_pending(self, offer_id: str) -> None:
        try:
            self.supabase.table("help_offers")\
                .update({"status": OFFER_PENDING})\
                .eq("id", offer_id)\
                .eq("status", OFFER_ACCEPTED)\
                .execute()
        except Exception as e:
            logger.error(f"Error restoring help offer {offer_id}: {e}")

    def accept_offer(
self, offer_id: str, user_id: str) -> OfferDecisionResponse:
        """Requester accepts one offer: SOS goes to helping and every other pending offer is rejected"""
        offer, sos = self._pending_offer_for_owner(offer_id, user_id)
        sos_id = offer["sos_request_id"]

        # Conditional on status=active, so a second accept loses with 409
        self.sos_service.assign_helper(sos_id, offer["volunteer_id"])

        try:
            accepted = self.supabase.table("help_offers")\
                .update({"status": OFFER_ACCEPTED})\
                .eq("id", offer_id)\
                .execute()

            rejected = self.supabase.table("help_offers")\
                .update({"status": OFFER_REJECTED})\
                .eq("sos_request_id", sos_id)\
                .neq("id", offer_id)\
                .eq("status", OFFER_PENDING)\
                .execute()
        except Exception as e:
            logger.error(f"Error accepting help offer {offer_id}: {e}")
            self._restore_pending(offer_id)
            self.sos_service.release_helper(sos_id, offer["volunteer_id"])
            raise HTTPException(status_code=500, detail=str(e))

        row = accepted.data[0] if accepted.data else {**offer, "status": OFFER_ACCEPTED}
        row.setdefault("profiles", offer.get("profiles"))
        logger.info("Offer %s accepted for SOS %s", offer_id, sos_id)
        return OfferDecisionResponse(
            offer=to_offer_response(row),
            sos_request_id=sos_id,
            requester_id=sos["user_id"],
            sos_status=STATUS_HELPING,
            rejected_count=len(rejected.data or []),
        )

    def reject_offer(self, offer_id: str, user_id: str) -> OfferDecisionResponse:
        """Requester declines a single pending offer"""
        offer, sos = self._pending_offer_for_owner(offer_id, user_id)
        try:
            result = self.supabase.table("help_offers")\
                .update({"status": OFFER_REJECTED})\
                .eq("id", offer_id)\
                .eq("status", OFFER_PENDING)\
                .execute()
        except Exception as e:
            logger.error(f"Error rejecting help offer {offer_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

        if not result.data:
            raise HTTPException(status_code=409, detail="This help offer has already been answered")

        row = result.data[0]
        row.setdefault("profiles", offer.get("profiles"))
        return OfferDecisionResponse(
            offer=to_offer_response(row),
            sos_request_id=offer["sos_request_id"],
            requester_id=sos["user_id"],
            sos_status=sos.get("status") or STATUS_ACTIVE,
        )
