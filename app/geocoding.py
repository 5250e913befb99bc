"""Google Maps Geocoding API client"""
import logging
from dataclasses import dataclass

import requests

from app_errors import BadRequestError

logger = logging.getLogger(__name__)

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float


class Geocoder:

    def __init__(self, api_key: str, timeout: float = 5, session: requests.Session = None) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def geocode(self, street: str, city: str, state: str) -> Coordinates:
        """Resolve a street address to its latitude and longitude.

        Raises BadRequestError when Google cannot place the address. Transport
        failures propagate as requests.RequestException.
        """
        address = f"{street} {city} {state}"
        response = self.session.get(
            GEOCODE_URL,
            params={"address": address, "key": self.api_key},
            timeout=self.timeout,
        )
        response.raise_for_status()
        data = response.json()

        results = data.get("results") or []
        if data.get("status") != "OK" or not results:
            logger.info("Geocoding failed for %r: %s", address, data.get("status"))
            raise BadRequestError(f"Address not found: {address}")

        location = results[0]["geometry"]["location"]
        return Coordinates(lat=location["lat"], lng=location["lng"])
