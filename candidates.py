"""
Förslagsgeneratorer: vilka waypoints som skickas till routing-tjänsten
"""

import random
from typing import List, Tuple

from config import SearchSettings
from models import Coordinate, RouteCandidate, SearchParameters, SearchState
from scoring import deviation_ratio
from utils import destination_point


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class CandidateStrategy:
    """Basklass för förslagsstrategier"""

    def __init__(self, settings: SearchSettings, rng: random.Random):
        self.settings = settings
        self.rng = rng

    @property
    def max_attempts(self) -> int:
        raise NotImplementedError

    def initial_state(self, params: SearchParameters) -> SearchState:
        return SearchState()

    def propose(self, params: SearchParameters, state: SearchState) -> List[Coordinate]:
        raise NotImplementedError

    def tolerance(self, attempt_index: int) -> float:
        raise NotImplementedError

    def should_discard(self, candidate: RouteCandidate, target_km: float) -> bool:
        return False

    def adapt(self, state: SearchState, candidate: RouteCandidate, target_km: float) -> None:
        pass


class LoopStrategy(CandidateStrategy):
    """
    Loop: waypoints runt start på en radie som justeras efter varje försök.

    Radien börjar från en storleksberoende andel av måldistansen, växer när
    rutten blev för kort och krymper när den blev för lång.
    """

    @property
    def max_attempts(self) -> int:
        return self.settings.max_attempts

    def _tier(self, target_km: float) -> Tuple[float, float, float]:
        for tier in self.settings.radius_tiers:
            if target_km <= tier[0]:
                return tier
        return self.settings.radius_tiers[-1]

    def num_waypoints(self, target_km: float) -> int:
        return 2 if target_km <= self.settings.two_waypoint_max_km else 3

    def initial_radius(self, target_km: float) -> float:
        _, factor, _ = self._tier(target_km)
        return _clamp(target_km * factor, self.settings.radius_min_km, self.settings.radius_max_km)

    def bail_over_km(self, target_km: float) -> float:
        """Över denna distans kastas rutten utan poängsättning"""
        _, _, bail_over = self._tier(target_km)
        return target_km * (1 + bail_over)

    def initial_state(self, params: SearchParameters) -> SearchState:
        return SearchState(radius_km=self.initial_radius(params.target_km))

    def propose(self, params: SearchParameters, state: SearchState) -> List[Coordinate]:
        origin = params.origin
        count = self.num_waypoints(params.target_km)
        base_angle = state.attempt_index * 360.0 / self.max_attempts
        step = self.settings.fan_deg / count
        jitter = self.settings.loop_jitter_deg

        waypoints = [origin]
        for i in range(count):
            offset = (i - (count - 1) / 2) * step
            bearing = (base_angle + offset + self.rng.uniform(-jitter, jitter)) % 360
            waypoints.append(destination_point(origin, bearing, state.radius_km))
        waypoints.append(origin)
        return waypoints

    def tolerance(self, attempt_index: int) -> float:
        # Första, mellersta och sista tredjedelen av försöken
        stages = self.settings.staged_tolerances
        stage = min(len(stages) - 1, attempt_index * len(stages) // self.max_attempts)
        return stages[stage]

    def should_discard(self, candidate: RouteCandidate, target_km: float) -> bool:
        return candidate.distance_km > self.bail_over_km(target_km)

    def adapt(self, state: SearchState, candidate: RouteCandidate, target_km: float) -> None:
        ratio_off = deviation_ratio(candidate.distance_km, target_km)
        if candidate.distance_km < target_km:
            factor = self.settings.radius_grow
        else:
            factor = self.settings.radius_shrink

        # Stora fel ger mildare korrigering så att radien inte pendlar
        damp = _clamp(1 - ratio_off * self.settings.damp_slope, self.settings.damp_min, 1.0)
        step = 1 + (factor - 1) * damp
        state.radius_km = _clamp(
            state.radius_km * step, self.settings.radius_min_km, self.settings.radius_max_km
        )


class PointToPointStrategy(CandidateStrategy):
    """
    Point-to-point: går igenom ett fast rutnät av bäringar och
    distansmultiplar, utan återkoppling mellan försöken.
    """

    @property
    def max_attempts(self) -> int:
        return len(self.settings.p2p_bearings) * len(self.settings.p2p_multipliers)

    def grid_point(self, attempt_index: int) -> Tuple[float, float]:
        """(bäring, multiplikator) för ett försök; bäringen är den yttre loopen"""
        multipliers = self.settings.p2p_multipliers
        bearing = self.settings.p2p_bearings[attempt_index // len(multipliers)]
        return bearing, multipliers[attempt_index % len(multipliers)]

    def propose(self, params: SearchParameters, state: SearchState) -> List[Coordinate]:
        bearing, multiplier = self.grid_point(state.attempt_index)
        jitter = self.settings.p2p_jitter_deg
        bearing = (bearing + self.rng.uniform(-jitter, jitter)) % 360
        destination = destination_point(params.origin, bearing, params.target_km * multiplier)
        return [params.origin, destination]

    def tolerance(self, attempt_index: int) -> float:
        return self.settings.p2p_tolerance
