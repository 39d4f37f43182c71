from pydantic import BaseModel
from typing import Optional, List


class MapsConfigResponse(BaseModel):
    maps_api_key: str


class PlacePrediction(BaseModel):
    place_id: str
    description: str
    main_text: Optional[str] = None
    secondary_text: Optional[str] = None


class PlaceLocation(BaseModel):
    lat: float
    lng: float
    address: Optional[str] = None


class ReverseGeocodeResponse(BaseModel):
    latitude: float
    longitude: float
    address: str


class AutocompleteResponse(BaseModel):
    predictions: List[PlacePrediction]
