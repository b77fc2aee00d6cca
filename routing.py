"""
Huvudsaklig routing-modul som kopplar ihop providers och sökningen
"""

import logging
import random
import threading
from typing import Mapping, Optional

from config import SearchSettings
from models import Coordinate, SearchOutcome, SearchParameters
from routing_providers import GraphHopperProvider, OpenRouteServiceProvider, RoutingProvider
from search import AdaptiveSearchController

logger = logging.getLogger(__name__)

PROVIDERS = ("auto", "ors", "graphhopper")


class ConfigurationError(Exception):
    """Ingen användbar API-nyckel för vald provider"""


def create_provider(provider: str, secrets: Mapping[str, str]) -> RoutingProvider:
    """
    Välj routing-provider utifrån inställning och tillgängliga nycklar

    Args:
        provider: "auto", "ors" eller "graphhopper"
        secrets: API-nycklar, t.ex. st.secrets

    Returns:
        RoutingProvider
    """
    if provider not in PROVIDERS:
        raise ValueError(f"Okänd provider: {provider}")

    if provider == "auto":
        # Använd GraphHopper om tillgänglig, annars ORS
        if "GRAPHHOPPER_API_KEY" in secrets:
            provider = "graphhopper"
        elif "ORS_API_KEY" in secrets:
            provider = "ors"
        else:
            raise ConfigurationError("Ingen API-nyckel konfigurerad!")

    if provider == "graphhopper":
        if "GRAPHHOPPER_API_KEY" not in secrets:
            raise ConfigurationError("GRAPHHOPPER_API_KEY saknas")
        return GraphHopperProvider(secrets["GRAPHHOPPER_API_KEY"])

    if "ORS_API_KEY" not in secrets:
        raise ConfigurationError("ORS_API_KEY saknas")
    return OpenRouteServiceProvider(secrets["ORS_API_KEY"])


def find_route(
    origin: Coordinate,
    params: SearchParameters,
    secrets: Mapping[str, str],
    provider: str = "auto",
    seed: Optional[int] = None,
    settings: Optional[SearchSettings] = None,
    cancel: Optional[threading.Event] = None,
) -> SearchOutcome:
    """
    Sök en rutt med måldistansen från origin

    Args:
        origin: Startpunkt
        params: Sökparametrar
        secrets: API-nycklar
        provider: "auto", "ors" eller "graphhopper"
        seed: Seed för variation, samma seed ger samma förslag
        settings: Sökparametrar, standardvärden om None
        cancel: Event som avbryter sökningen

    Returns:
        Accepted, FallbackAccepted eller Failed
    """
    oracle = create_provider(provider, secrets)
    logger.info(
        "Söker %s-rutt på %s km via %s", params.route_type.value, params.target_km, oracle.name
    )
    controller = AdaptiveSearchController(oracle, settings=settings, rng=random.Random(seed))
    return controller.search(origin, params, cancel=cancel)
