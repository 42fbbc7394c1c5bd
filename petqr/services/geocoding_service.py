# petqr/services/geocoding_service.py
import logging
from typing import Optional, Tuple

import requests
from flask import Flask


class GeocodingService:
    """
    Reverse geocoding through a Nominatim-compatible endpoint.

    Lookups never raise: any HTTP or payload problem degrades to
    (None, None) so the finder still gets the contact details.
    """

    def __init__(self, url: str = "https://nominatim.openstreetmap.org/reverse",
                 timeout: float = 5.0, user_agent: str = "petqr/1.0", session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.user_agent = user_agent
        self.session = session or requests.Session()

    def init_app(self, app: Flask):
        self.url = app.config['GEOCODING_URL']
        self.timeout = app.config['GEOCODING_TIMEOUT']
        self.user_agent = app.config['GEOCODING_USER_AGENT']

    def reverse(self, latitude: float, longitude: float) -> Tuple[Optional[str], Optional[str]]:
        """Return (city, country) for a coordinate pair."""
        try:
            response = self.session.get(
                self.url,
                params={"format": "json", "lat": latitude, "lon": longitude},
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            logging.warning(f"Reverse geocoding failed for ({latitude}, {longitude}): {e}")
            return None, None

        address = payload.get("address") if isinstance(payload, dict) else None
        if not isinstance(address, dict):
            logging.warning(f"Reverse geocoding returned no address for ({latitude}, {longitude})")
            return None, None

        city = address.get("city") or address.get("town") or address.get("village")
        return city, address.get("country")
