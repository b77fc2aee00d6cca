"""
Poängsättning av rutter: distansavvikelse och hur krånglig rutten är
"""

import re
from typing import List, Tuple
from models import RouteCandidate, TurnInstruction

DISTANCE_WEIGHT = 120.0
TURN_WEIGHT = 2.2
UTURN_WEIGHT = 12.0

# Engelska och svenska instruktioner (GraphHopper locale "sv")
TURN_PATTERN = re.compile(r"\b(turn|keep|u-?turn|sväng|håll|u-?sväng)\b", re.IGNORECASE)
UTURN_PATTERN = re.compile(r"\b(u-?turn|u-?sväng|vänd)\b", re.IGNORECASE)


def deviation_ratio(actual_km: float, target_km: float) -> float:
    """|actual - target| / target"""
    return abs(actual_km - target_km) / target_km


def count_turns(instructions: List[TurnInstruction]) -> Tuple[int, int]:
    """
    Räkna sväng- och u-svängsinstruktioner

    Args:
        instructions: Vägbeskrivningar från routing-tjänsten

    Returns:
        (antal svängar, antal u-svängar); u-svängar räknas även som svängar
    """
    turns = 0
    uturns = 0
    for instruction in instructions:
        text = instruction.text or ""
        is_uturn = bool(UTURN_PATTERN.search(text))
        if is_uturn or TURN_PATTERN.search(text):
            turns += 1
        if is_uturn:
            uturns += 1
    return turns, uturns


def score_route(candidate: RouteCandidate, target_km: float) -> float:
    """
    Jämförbar kvalitetspoäng för en rutt, lägre är bättre

    Distansfelet dominerar; u-svängar straffas hårdast av
    sträckningssignalerna eftersom de tyder på en rutt som vänder tillbaka.

    Args:
        candidate: Rutt från routing-tjänsten
        target_km: Måldistans i km (redan klampad)

    Returns:
        Poäng >= 0
    """
    turns, uturns = count_turns(candidate.instructions)
    return (
        DISTANCE_WEIGHT * deviation_ratio(candidate.distance_km, target_km)
        + TURN_WEIGHT * turns
        + UTURN_WEIGHT * uturns
    )
