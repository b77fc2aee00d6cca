"""
Datamodeller för ruttsökningen
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union


class Profile(Enum):
    """Färdsätt som skickas till routing-tjänsten"""
    FOOT = "foot"
    HIKE = "hike"


class RouteType(Enum):
    LOOP = "loop"
    POINT_TO_POINT = "point-to-point"


class OracleFailure(Enum):
    """Stängd uppräkning av fel från routing-tjänsten"""
    UNAVAILABLE = "unavailable"
    RATE_LIMITED = "rate_limited"
    MALFORMED = "malformed"


class FailureReason(Enum):
    INVALID_PARAMETERS = "invalid_parameters"
    RATE_LIMITED = "rate_limited"
    NO_ACCEPTABLE_ROUTE = "no_acceptable_route"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Coordinate:
    """En punkt i grader"""
    lat: float
    lon: float


@dataclass(frozen=True)
class TurnInstruction:
    """En vägbeskrivning från routing-tjänsten"""
    text: str
    distance_meters: float
    street_name: Optional[str] = None


@dataclass(frozen=True)
class RouteCandidate:
    """En verklig rutt som routing-tjänsten returnerat, oföränderlig"""
    coordinates: Tuple[Coordinate, ...]
    distance_km: float
    duration_sec: float
    instructions: Tuple[TurnInstruction, ...] = ()
    provider: str = "ORS"  # Vilket API som användes

    def __post_init__(self):
        object.__setattr__(self, "coordinates", tuple(self.coordinates))
        object.__setattr__(self, "instructions", tuple(self.instructions))


@dataclass(frozen=True)
class SearchParameters:
    """Vad användaren bett om; origin kan sättas separat vid sökning"""
    target_km: float
    profile: Profile = Profile.FOOT
    route_type: RouteType = RouteType.LOOP
    origin: Optional[Coordinate] = None


@dataclass(frozen=True)
class ScoredCandidate:
    candidate: RouteCandidate
    score: float


@dataclass
class SearchState:
    """Tillstånd för en enda sökning, kastas när sökningen returnerar"""
    attempt_index: int = 0
    radius_km: float = 0.0
    best: Optional[ScoredCandidate] = None
    rate_limited: bool = False
    oracle_calls: int = 0


@dataclass(frozen=True)
class GeocodeResult:
    lat: float
    lon: float
    display_name: str

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lon)


@dataclass(frozen=True)
class Accepted:
    """Rutten klarade den stegvisa toleransen"""
    candidate: RouteCandidate
    attempts: int


@dataclass(frozen=True)
class FallbackAccepted:
    """Bästa rutten efter alla försök, inom reservtoleransen"""
    candidate: RouteCandidate
    attempts: int


@dataclass(frozen=True)
class Failed:
    reason: FailureReason
    attempts: int = 0
    message: str = ""

    @property
    def retry_later(self) -> bool:
        """Sant när felet beror på tjänsten och inte på indata"""
        return self.reason is FailureReason.RATE_LIMITED


OracleResult = Union[RouteCandidate, OracleFailure]
SearchOutcome = Union[Accepted, FallbackAccepted, Failed]
