"""
Adaptiv ruttsökning som matchar måldistansen

Styrloopen föreslår waypoints, frågar routing-tjänsten, poängsätter svaret,
justerar strategin och avgör om rutten godtas, om sökningen fortsätter eller
om den avbryts.
"""

import logging
import math
import random
import threading
import time
from dataclasses import replace
from typing import Callable, Optional

from candidates import CandidateStrategy, LoopStrategy, PointToPointStrategy
from config import SearchSettings
from models import (
    Accepted,
    Coordinate,
    FallbackAccepted,
    Failed,
    FailureReason,
    OracleFailure,
    RouteType,
    ScoredCandidate,
    SearchOutcome,
    SearchParameters,
    SearchState,
)
from routing_providers import RoutingProvider
from scoring import deviation_ratio, score_route
from utils import validate_coordinates

logger = logging.getLogger(__name__)


class PacingPolicy:
    """Fast paus mellan försök, för att inte trigga tjänstens rate limit"""

    def __init__(self, delay_sec: float):
        self.delay_sec = delay_sec

    def delay(self, attempt_index: int) -> float:
        return self.delay_sec


def clamp_target_km(target_km: float, settings: SearchSettings) -> float:
    return max(settings.target_km_min, min(settings.target_km_max, target_km))


class AdaptiveSearchController:
    """
    Kör en sökning i taget, med strikt sekventiella anrop.

    Args:
        oracle: Routing-tjänst som gör waypoints till en verklig rutt
        settings: Justerbara sökparametrar
        rng: Slumpkälla för jitter, seedad i tester
        pacing: Paus mellan försök
        sleep: Funktion som väntar, time.sleep som standard
    """

    def __init__(
        self,
        oracle: RoutingProvider,
        settings: Optional[SearchSettings] = None,
        rng: Optional[random.Random] = None,
        pacing: Optional[PacingPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.oracle = oracle
        self.settings = settings or SearchSettings()
        self.rng = rng or random.Random()
        self.pacing = pacing or PacingPolicy(self.settings.pacing_delay_sec)
        self.sleep = sleep

    def _strategy_for(self, route_type: RouteType) -> CandidateStrategy:
        if route_type is RouteType.POINT_TO_POINT:
            return PointToPointStrategy(self.settings, self.rng)
        return LoopStrategy(self.settings, self.rng)

    def _validate(self, origin: Optional[Coordinate], params: SearchParameters) -> Optional[str]:
        if origin is None:
            return "Startpunkt saknas"
        if not validate_coordinates(origin.lat, origin.lon):
            return f"Ogiltig startpunkt: {origin.lat}, {origin.lon}"
        target = params.target_km
        if target is None or not isinstance(target, (int, float)):
            return "Måldistans saknas"
        if not math.isfinite(target) or target <= 0:
            return f"Måldistansen måste vara positiv, fick {target}"
        return None

    def search(
        self,
        origin: Optional[Coordinate],
        params: SearchParameters,
        cancel: Optional[threading.Event] = None,
    ) -> SearchOutcome:
        """
        Sök en rutt vars längd matchar måldistansen

        Args:
            origin: Upplöst startpunkt; faller tillbaka på params.origin
            params: Sökparametrar
            cancel: Avbryter sökningen före nästa anrop när den sätts

        Returns:
            Accepted, FallbackAccepted eller Failed
        """
        origin = origin or params.origin
        error = self._validate(origin, params)
        if error:
            logger.info("Ogiltiga parametrar: %s", error)
            return Failed(FailureReason.INVALID_PARAMETERS, 0, error)

        target_km = clamp_target_km(float(params.target_km), self.settings)
        if target_km != params.target_km:
            logger.info("Måldistans %.2f km klampad till %.2f km", params.target_km, target_km)
        params = replace(params, origin=origin, target_km=target_km)

        strategy = self._strategy_for(params.route_type)
        state = strategy.initial_state(params)

        for attempt in range(strategy.max_attempts):
            if attempt > 0:
                self.sleep(self.pacing.delay(attempt))

            # Närmast före anropet, även efter pausen
            if cancel is not None and cancel.is_set():
                logger.info("Sökningen avbröts efter %d anrop", state.oracle_calls)
                return Failed(FailureReason.CANCELLED, state.oracle_calls, "Sökningen avbröts")

            state.attempt_index = attempt
            waypoints = strategy.propose(params, state)
            result = self.oracle.route(waypoints, params.profile)
            state.oracle_calls += 1

            if result is OracleFailure.RATE_LIMITED:
                state.rate_limited = True
                logger.warning("Rate limit vid försök %d, avbryter", attempt + 1)
                return Failed(
                    FailureReason.RATE_LIMITED,
                    state.oracle_calls,
                    "Routing-tjänsten begränsar anropen, försök igen senare",
                )

            if isinstance(result, OracleFailure):
                logger.warning("Försök %d gav inget svar (%s)", attempt + 1, result.value)
                continue

            if strategy.should_discard(result, target_km):
                logger.debug(
                    "Försök %d: %.2f km ligger över taket, kastas", attempt + 1, result.distance_km
                )
                continue

            scored = ScoredCandidate(result, score_route(result, target_km))
            if state.best is None or scored.score < state.best.score:
                state.best = scored

            ratio = deviation_ratio(result.distance_km, target_km)
            logger.debug(
                "Försök %d: %.2f km (%+.1f%%), poäng %.1f",
                attempt + 1,
                result.distance_km,
                (result.distance_km - target_km) / target_km * 100,
                scored.score,
            )

            if ratio <= strategy.tolerance(attempt):
                logger.info("Rutt godkänd efter %d försök: %.2f km", state.oracle_calls, result.distance_km)
                return Accepted(result, state.oracle_calls)

            strategy.adapt(state, result, target_km)

        return self._fallback(state, target_km)

    def _fallback(self, state: SearchState, target_km: float) -> SearchOutcome:
        best = state.best
        if best is not None and deviation_ratio(best.candidate.distance_km, target_km) <= self.settings.fallback_tolerance:
            logger.info(
                "Ingen rutt inom tolerans, använder bästa: %.2f km", best.candidate.distance_km
            )
            return FallbackAccepted(best.candidate, state.oracle_calls)

        logger.info("Ingen godtagbar rutt efter %d anrop", state.oracle_calls)
        return Failed(
            FailureReason.NO_ACCEPTABLE_ROUTE,
            state.oracle_calls,
            "Kunde inte hitta en rutt med rätt längd, prova en annan distans eller startpunkt",
        )
