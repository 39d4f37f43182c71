"""
Goong REST client (https://rsapi.goong.io): autocomplete, place detail,
reverse geocoding and distance matrix. The services key stays on the server;
only the map-tile key is handed to clients.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests
from fastapi import HTTPException
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from app.config.settings import settings
from app.modules.maps.schemas import (
    MapsConfigResponse, PlacePrediction, PlaceLocation, ReverseGeocodeResponse
)

logger = logging.getLogger(__name__)

AUTOCOMPLETE_RADIUS_M = 50000
CURRENT_LOCATION_LABEL = "Vị trí hiện tại"

_SESSION: Optional[requests.Session] = None


def get_http_session() -> requests.Session:
    # Module-level session with keep-alive and light retries
    global _SESSION
    if _SESSION is not None:
        return _SESSION
    s = requests.Session()
    retry = Retry(total=2, backoff_factor=0.3, status_forcelist=(429, 500, 502, 503, 504))
    adapter = HTTPAdapter(max_retries=retry, pool_connections=4, pool_maxsize=8)
    s.mount("http://", adapter)
    s.mount("https://", adapter)
    _SESSION = s
    return s


class GoongMapsService:
    def __init__(
        self,
        api_key: Optional[str] = None,
        maps_api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = api_key
        self.maps_api_key = maps_api_key
        self.session = session or get_http_session()
        self.base_url = (base_url or settings.goong_base_url).rstrip("/")
        self.timeout = timeout or settings.goong_timeout_seconds

    def _require_key(self) -> str:
        if not self.api_key:
            raise HTTPException(status_code=503, detail="Maps service is not configured")
        return self.api_key

    def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        params = {**params, "api_key": self._require_key()}
        response = self.session.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
        response.raise_for_status()
        return response.json() or {}

    def get_config(self) -> MapsConfigResponse:
        if not self.maps_api_key:
            raise HTTPException(status_code=503, detail="Maps API key is not configured")
        return MapsConfigResponse(maps_api_key=self.maps_api_key)

    def autocomplete(self, text: str) -> List[PlacePrediction]:
        """Place suggestions biased towards the default location"""
        if not text or not text.strip():
            return []
        try:
            data = self._get("/Place/AutoComplete", {
                "input": text.strip(),
                "location": f"{settings.default_latitude},{settings.default_longitude}",
                "radius": AUTOCOMPLETE_RADIUS_M,
            })
        except HTTPException:
            raise
        except (requests.RequestException, ValueError) as e:
            logger.error("Goong autocomplete failed: %s", e)
            raise HTTPException(status_code=502, detail="Place search is unavailable")

        predictions = []
        for item in data.get("predictions") or []:
            formatting = item.get("structured_formatting") or {}
            predictions.append(PlacePrediction(
                place_id=item.get("place_id", ""),
                description=item.get("description", ""),
                main_text=formatting.get("main_text"),
                secondary_text=formatting.get("secondary_text"),
            ))
        return predictions

    def place_detail(self, place_id: str) -> PlaceLocation:
        try:
            data = self._get("/Place/Detail", {"place_id": place_id})
        except HTTPException:
            raise
        except (requests.RequestException, ValueError) as e:
            logger.error("Goong place detail failed for %s: %s", place_id, e)
            raise HTTPException(status_code=502, detail="Place lookup is unavailable")

        result = data.get("result") or {}
        geometry = result.get("geometry") or {}
        location = geometry.get("location")
        if not location:
            raise HTTPException(status_code=404, detail="Place not found")
        return PlaceLocation(
            lat=location["lat"],
            lng=location["lng"],
            address=result.get("formatted_address") or result.get("name"),
        )

    def reverse_geocode(self, latitude: float, longitude: float) -> ReverseGeocodeResponse:
        """Formatted address for a coordinate, or a generic label when none is found"""
        address = CURRENT_LOCATION_LABEL
        try:
            data = self._get("/Geocode", {"latlng": f"{latitude},{longitude}"})
            results = data.get("results") or []
            if results and results[0].get("formatted_address"):
                address = results[0]["formatted_address"]
        except HTTPException:
            raise
        except (requests.RequestException, ValueError) as e:
            logger.warning("Goong reverse geocode failed for %s,%s: %s", latitude, longitude, e)
        return ReverseGeocodeResponse(latitude=latitude, longitude=longitude, address=address)

    def distance_matrix(self, origin: Tuple[float, float], destination: Tuple[float, float]) -> Optional[Dict[str, str]]:
        """Driving distance/duration text, None when Goong has no answer"""
        if not self.api_key:
            logger.warning("Goong API key missing, skipping distance lookup")
            return None
        try:
            data = self._get("/DistanceMatrix", {
                "origins": f"{origin[0]},{origin[1]}",
                "destinations": f"{destination[0]},{destination[1]}",
                "vehicle": "car",
            })
        except (requests.RequestException, ValueError) as e:
            logger.error("Goong distance matrix failed: %s", e)
            return None

        rows = data.get("rows") or []
        elements = rows[0].get("elements") if rows else None
        if not elements or elements[0].get("status") != "OK":
            return None
        element = elements[0]
        distance = (element.get("distance") or {}).get("text")
        duration = (element.get("duration") or {}).get("text")
        if not distance or not duration:
            return None
        return {"distance": distance, "duration": duration}
