from fastapi import APIRouter, Depends, Query
from app.config.settings import settings
from app.modules.maps.schemas import (
    MapsConfigResponse, AutocompleteResponse, PlaceLocation, ReverseGeocodeResponse
)
from app.modules.maps.service import GoongMapsService
from app.core.dependencies import get_current_user_id
from typing import Dict

router = APIRouter(prefix="/maps", tags=["maps"])


def get_maps_service() -> GoongMapsService:
    return GoongMapsService(
        api_key=settings.goong_api_key,
        maps_api_key=settings.goong_maps_api_key,
    )


@router.get("/config", response_model=MapsConfigResponse)
async def get_maps_config(
    service: GoongMapsService = Depends(get_maps_service)
):
    """Map-tile key for the client map widget"""
    return service.get_config()


@router.get("/autocomplete", response_model=AutocompleteResponse)
async def autocomplete(
    input: str = Query(..., min_length=1),
    user_data: Dict = Depends(get_current_user_id),
    service: GoongMapsService = Depends(get_maps_service)
):
    return AutocompleteResponse(predictions=service.autocomplete(input))


@router.get("/place/{place_id}", response_model=PlaceLocation)
async def get_place(
    place_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: GoongMapsService = Depends(get_maps_service)
):
    """Coordinates and address of a selected suggestion"""
    return service.place_detail(place_id)


@router.get("/reverse-geocode", response_model=ReverseGeocodeResponse)
async def reverse_geocode(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    user_data: Dict = Depends(get_current_user_id),
    service: GoongMapsService = Depends(get_maps_service)
):
    return service.reverse_geocode(latitude, longitude)
