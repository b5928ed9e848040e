"""Address geocoding through the maps API."""

import logging
from typing import Dict, Optional

import httpx

from wizard.config import settings

logger = logging.getLogger(__name__)


class GeocodingClient:
    """Resolves free-text addresses to coordinates."""

    def __init__(self, api_key: str = None, url: str = None):
        """Initialize with the configured maps key."""
        self.api_key = api_key if api_key is not None else settings.MAPS_API_KEY
        self.url = url or settings.GEOCODING_URL

    def geocode(self, address: str) -> Optional[Dict[str, float]]:
        """
        Look up an address.

        Returns:
            {'lat': ..., 'lng': ...} or None when unavailable. Failures are
            logged and never raised.
        """
        if not self.api_key:
            logger.info("MAPS_API_KEY not set, skipping geocoding")
            return None

        try:
            with httpx.Client(timeout=10.0) as client:
                response = client.get(self.url, params={"address": address, "key": self.api_key})
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Geocoding failed for '{address}': {e}", exc_info=True)
            return None

        results = data.get("results") or []
        if data.get("status") != "OK" or not results:
            logger.warning(f"No geocoding result for '{address}' (status: {data.get('status')})")
            return None

        try:
            location = results[0]["geometry"]["location"]
            return {"lat": float(location["lat"]), "lng": float(location["lng"])}
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Malformed geocoding result for '{address}': {e}")
            return None
