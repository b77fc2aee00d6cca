"""
Konfiguration och konstanter för ruttsökningen
"""

from dataclasses import dataclass, field
from typing import List, Tuple

# Standardvärden
DEFAULT_DISTANCE = 5.0
DEFAULT_PACE = "5:30"
DEFAULT_CENTER = [59.3293, 18.0686]  # Stockholm

# API URLs
ORS_BASE_URL = "https://api.openrouteservice.org"
GRAPHHOPPER_BASE_URL = "https://graphhopper.com/api/1"
NOMINATIM_BASE_URL = "https://nominatim.openstreetmap.org"
MAPBOX_BASE_URL = "https://api.mapbox.com/search/geocode/v6"

REQUEST_TIMEOUT = 30  # sekunder
GEOCODE_TIMEOUT = 10
NOMINATIM_DELAY = 1.0  # Nominatim tillåter max 1 anrop/sekund
USER_AGENT = "LoopRouteFinder/1.0"

LOG_LEVEL = "INFO"

# Måldistans klampas alltid innan något skickas till routing-tjänsten
TARGET_KM_MIN = 1.0
TARGET_KM_MAX = 60.0

# Loop-sökning
MAX_ROUTE_ATTEMPTS = 10
LOOP_TWO_WAYPOINT_MAX_KM = 8.0
LOOP_FAN_DEG = 120.0
LOOP_JITTER_DEG = 25.0
RADIUS_MIN_KM = 0.3
RADIUS_MAX_KM = 15.0

# (max måldistans km, radiefaktor, bail-over-andel)
RADIUS_TIERS = [
    (8.0, 0.22, 0.40),
    (20.0, 0.32, 0.35),
    (float("inf"), 0.40, 0.30),
]

# Tolerans per tredjedel av försöken, får aldrig öka
STAGED_TOLERANCES = (0.18, 0.12, 0.08)
FALLBACK_TOLERANCE = 0.22

RADIUS_GROW = 1.18
RADIUS_SHRINK = 0.86
DAMP_SLOPE = 0.4
DAMP_MIN = 0.75

# Point-to-point-sökning
P2P_BEARINGS = [float(b) for b in range(0, 360, 30)]
P2P_MULTIPLIERS = [0.7, 0.85, 1.0, 1.15, 1.3]
P2P_JITTER_DEG = 10.0
P2P_TOLERANCE = 0.10

# Paus mellan anrop mot routing-tjänsten
PACING_DELAY_SEC = 0.15


@dataclass(frozen=True)
class SearchSettings:
    """Justerbara parametrar för den adaptiva sökningen"""
    target_km_min: float = TARGET_KM_MIN
    target_km_max: float = TARGET_KM_MAX
    max_attempts: int = MAX_ROUTE_ATTEMPTS
    two_waypoint_max_km: float = LOOP_TWO_WAYPOINT_MAX_KM
    fan_deg: float = LOOP_FAN_DEG
    loop_jitter_deg: float = LOOP_JITTER_DEG
    radius_min_km: float = RADIUS_MIN_KM
    radius_max_km: float = RADIUS_MAX_KM
    radius_tiers: List[Tuple[float, float, float]] = field(default_factory=lambda: list(RADIUS_TIERS))
    staged_tolerances: Tuple[float, ...] = STAGED_TOLERANCES
    fallback_tolerance: float = FALLBACK_TOLERANCE
    radius_grow: float = RADIUS_GROW
    radius_shrink: float = RADIUS_SHRINK
    damp_slope: float = DAMP_SLOPE
    damp_min: float = DAMP_MIN
    p2p_bearings: List[float] = field(default_factory=lambda: list(P2P_BEARINGS))
    p2p_multipliers: List[float] = field(default_factory=lambda: list(P2P_MULTIPLIERS))
    p2p_jitter_deg: float = P2P_JITTER_DEG
    p2p_tolerance: float = P2P_TOLERANCE
    pacing_delay_sec: float = PACING_DELAY_SEC
