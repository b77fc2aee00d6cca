"""
Geokodning: fritext till koordinater, med en cache som lever hela processen
"""

import logging
import threading
import time
import requests
from typing import Callable, Dict, Optional

from config import (
    NOMINATIM_BASE_URL,
    MAPBOX_BASE_URL,
    GEOCODE_TIMEOUT,
    NOMINATIM_DELAY,
    USER_AGENT,
)
from models import GeocodeResult

logger = logging.getLogger(__name__)


class NominatimGeocoder:
    """Geokodning via OpenStreetMap Nominatim"""

    def __init__(
        self,
        base_url: str = NOMINATIM_BASE_URL,
        delay: float = NOMINATIM_DELAY,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.base_url = base_url
        self.delay = delay
        self.sleep = sleep

    def resolve(self, query: str) -> Optional[GeocodeResult]:
        """
        Geokoda en adress till koordinater

        Args:
            query: Adress att geokoda

        Returns:
            GeocodeResult eller None om platsen inte hittades
        """
        params = {
            "q": query,
            "format": "json",
            "limit": 1
        }
        headers = {"User-Agent": USER_AGENT}
        try:
            response = requests.get(
                f"{self.base_url}/search", params=params, headers=headers, timeout=GEOCODE_TIMEOUT
            )
        except requests.RequestException as e:
            logger.warning("Geokodningsfel: %s", e)
            return None
        finally:
            self.sleep(self.delay)  # Rate limiting för Nominatim

        if response.status_code != 200:
            logger.warning("Nominatim svarade %s för %r", response.status_code, query)
            return None

        try:
            data = response.json()
            if not data:
                return None
            first = data[0]
            return GeocodeResult(
                lat=float(first["lat"]),
                lon=float(first["lon"]),
                display_name=first.get("display_name", query)
            )
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Kunde inte tolka Nominatim-svar: %s", e)
            return None


class MapboxGeocoder:
    """Geokodning via Mapbox, kräver token"""

    def __init__(self, token: str, base_url: str = MAPBOX_BASE_URL):
        self.token = token
        self.base_url = base_url

    def resolve(self, query: str) -> Optional[GeocodeResult]:
        params = {
            "q": query,
            "access_token": self.token,
            "limit": 1
        }
        try:
            response = requests.get(f"{self.base_url}/forward", params=params, timeout=GEOCODE_TIMEOUT)
        except requests.RequestException as e:
            logger.warning("Geokodningsfel: %s", e)
            return None

        if response.status_code != 200:
            logger.warning("Mapbox svarade %s för %r", response.status_code, query)
            return None

        try:
            features = response.json().get("features")
            if not features:
                return None
            lon, lat = features[0]["geometry"]["coordinates"][:2]
            properties = features[0].get("properties", {})
            return GeocodeResult(
                lat=float(lat),
                lon=float(lon),
                display_name=properties.get("full_address") or properties.get("name") or query
            )
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Kunde inte tolka Mapbox-svar: %s", e)
            return None


def normalize_query(query: str) -> str:
    return query.strip().lower()


class GeocodeCache:
    """
    Cache framför en geokodare, delad mellan sökningar.

    Bara lyckade uppslag sparas och inget tas bort. Samtidiga uppslag av
    samma nyckel väntar på varandra, så geokodaren anropas högst en gång
    per nyckel.
    """

    def __init__(self, resolver):
        self.resolver = resolver
        self._entries: Dict[str, GeocodeResult] = {}
        self._lock = threading.Lock()
        # nyckel -> [lås, antal väntande]; finns bara medan ett uppslag pågår
        self._in_flight: Dict[str, list] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _acquire(self, key: str) -> list:
        with self._lock:
            entry = self._in_flight.get(key)
            if entry is None:
                entry = self._in_flight[key] = [threading.Lock(), 0]
            entry[1] += 1
            return entry

    def _release(self, key: str, entry: list) -> None:
        with self._lock:
            entry[1] -= 1
            if entry[1] == 0:
                del self._in_flight[key]

    def get(self, query: str) -> Optional[GeocodeResult]:
        key = normalize_query(query)
        if not key:
            return None

        cached = self._entries.get(key)
        if cached is not None:
            return cached

        entry = self._acquire(key)
        try:
            with entry[0]:
                cached = self._entries.get(key)
                if cached is not None:
                    return cached

                result = self.resolver.resolve(query.strip())
                if result is None:
                    logger.info("Hittade ingen plats för %r", key)
                    return None

                with self._lock:
                    self._entries[key] = result
                return result
        finally:
            self._release(key, entry)
