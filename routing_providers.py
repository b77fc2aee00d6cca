"""
Routing-providers: ORS och GraphHopper

Varje provider gör en waypoint-lista till en verklig rutt, eller returnerar
ett OracleFailure. Inga undantag lämnar providern vid nätverks- eller
svarsfel.
"""

import logging
import requests
from typing import List

from config import ORS_BASE_URL, GRAPHHOPPER_BASE_URL, REQUEST_TIMEOUT
from models import (
    Coordinate,
    OracleFailure,
    OracleResult,
    Profile,
    RouteCandidate,
    TurnInstruction,
)
from utils import calculate_distance_from_points

logger = logging.getLogger(__name__)

HTTP_TOO_MANY_REQUESTS = 429


class RoutingProvider:
    """Basklass för routing-providers"""

    name = "base"

    def route(self, waypoints: List[Coordinate], profile: Profile) -> OracleResult:
        raise NotImplementedError

    def _check_status(self, response: requests.Response):
        """Returnerar ett OracleFailure för allt som inte är 200, annars None"""
        if response.status_code == HTTP_TOO_MANY_REQUESTS:
            logger.warning("%s: rate limit (429)", self.name)
            return OracleFailure.RATE_LIMITED
        if response.status_code != 200:
            logger.warning("%s svarade %s", self.name, response.status_code)
            return OracleFailure.UNAVAILABLE
        return None


class OpenRouteServiceProvider(RoutingProvider):
    """OpenRouteService routing provider"""

    name = "ORS"
    PROFILES = {Profile.FOOT: "foot-walking", Profile.HIKE: "foot-hiking"}

    def __init__(self, api_key: str, base_url: str = ORS_BASE_URL, timeout: float = REQUEST_TIMEOUT):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout

    def route(self, waypoints: List[Coordinate], profile: Profile) -> OracleResult:
        """Hämta rutt från OpenRouteService"""

        url = f"{self.base_url}/v2/directions/{self.PROFILES[profile]}/geojson"
        headers = {
            "Authorization": self.api_key,
            "Content-Type": "application/json"
        }
        body = {
            "coordinates": [[p.lon, p.lat] for p in waypoints],
            "instructions": True
        }

        try:
            response = requests.post(url, json=body, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("ORS fel: %s", e)
            return OracleFailure.UNAVAILABLE

        failure = self._check_status(response)
        if failure is not None:
            return failure

        try:
            return self._parse_ors_response(response.json())
        except (ValueError, KeyError, TypeError, IndexError) as e:
            logger.warning("Kunde inte tolka ORS-svar: %s", e)
            return OracleFailure.MALFORMED

    def _parse_ors_response(self, data: dict) -> OracleResult:
        """Parsa ORS-respons till RouteCandidate"""

        if not data.get("features"):
            return OracleFailure.MALFORMED

        feature = data["features"][0]
        properties = feature.get("properties", {})
        coordinates = [
            Coordinate(lat=coord[1], lon=coord[0])
            for coord in feature["geometry"]["coordinates"]
            if len(coord) >= 2
        ]

        summary = properties.get("summary", {})
        distance = summary.get("distance", 0)
        if not distance:
            distance = calculate_distance_from_points(coordinates)
        if distance <= 0:
            return OracleFailure.MALFORMED

        instructions = []
        for segment in properties.get("segments", []):
            for step in segment.get("steps", []):
                name = step.get("name")
                instructions.append(TurnInstruction(
                    text=step.get("instruction", ""),
                    distance_meters=step.get("distance", 0.0),
                    street_name=name if name and name != "-" else None
                ))

        return RouteCandidate(
            coordinates=tuple(coordinates),
            distance_km=distance / 1000,
            duration_sec=summary.get("duration", 0.0),
            instructions=tuple(instructions),
            provider=self.name
        )


class GraphHopperProvider(RoutingProvider):
    """GraphHopper routing provider"""

    name = "GraphHopper"
    PROFILES = {Profile.FOOT: "foot", Profile.HIKE: "hike"}

    def __init__(
        self,
        api_key: str,
        base_url: str = GRAPHHOPPER_BASE_URL,
        timeout: float = REQUEST_TIMEOUT,
        locale: str = "sv"
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.locale = locale

    def route(self, waypoints: List[Coordinate], profile: Profile) -> OracleResult:
        """Hämta rutt från GraphHopper"""

        url = f"{self.base_url}/route"
        params = {
            "key": self.api_key,
            "point": [f"{p.lat},{p.lon}" for p in waypoints],
            "profile": self.PROFILES[profile],
            "points_encoded": "false",
            "instructions": "true",
            "locale": self.locale
        }

        try:
            response = requests.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("GraphHopper fel: %s", e)
            return OracleFailure.UNAVAILABLE

        failure = self._check_status(response)
        if failure is not None:
            return failure

        try:
            return self._parse_graphhopper_response(response.json())
        except (ValueError, KeyError, TypeError, IndexError) as e:
            logger.warning("Kunde inte tolka GraphHopper-svar: %s", e)
            return OracleFailure.MALFORMED

    def _parse_graphhopper_response(self, data: dict) -> OracleResult:
        """Parsa GraphHopper-respons till RouteCandidate"""

        if not data.get("paths"):
            return OracleFailure.MALFORMED

        path = data["paths"][0]
        # GraphHopper format: [lon, lat, elevation]
        coordinates = [
            Coordinate(lat=coord[1], lon=coord[0])
            for coord in path["points"]["coordinates"]
            if len(coord) >= 2
        ]

        distance = path.get("distance", 0)
        if not distance:
            distance = calculate_distance_from_points(coordinates)
        if distance <= 0:
            return OracleFailure.MALFORMED

        instructions = [
            TurnInstruction(
                text=item.get("text", ""),
                distance_meters=item.get("distance", 0.0),
                street_name=item.get("street_name") or None
            )
            for item in path.get("instructions", [])
        ]

        # GraphHopper ger tid i millisekunder
        return RouteCandidate(
            coordinates=tuple(coordinates),
            distance_km=distance / 1000,
            duration_sec=path.get("time", 0) / 1000,
            instructions=tuple(instructions),
            provider=self.name
        )
