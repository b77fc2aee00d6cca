"""
Hjälpfunktioner: geodesi, formattering och GPX-export
"""

import math
import gpxpy
import gpxpy.gpx
from typing import List
from models import Coordinate, RouteCandidate

# Jordens radie i km
EARTH_RADIUS_KM = 6371.0


def destination_point(origin: Coordinate, bearing_deg: float, distance_km: float) -> Coordinate:
    """
    Beräkna punkten man når från origin med given bäring och distans

    Args:
        origin: Startpunkt
        bearing_deg: Bäring i grader medurs från norr
        distance_km: Distans längs storcirkeln i km

    Returns:
        Destinationspunkt
    """
    lat1 = math.radians(origin.lat)
    lon1 = math.radians(origin.lon)
    brng = math.radians(bearing_deg)
    delta = distance_km / EARTH_RADIUS_KM

    lat2 = math.asin(
        math.sin(lat1) * math.cos(delta) + math.cos(lat1) * math.sin(delta) * math.cos(brng)
    )
    lon2 = lon1 + math.atan2(
        math.sin(brng) * math.sin(delta) * math.cos(lat1),
        math.cos(delta) - math.sin(lat1) * math.sin(lat2)
    )

    lon2_deg = (math.degrees(lon2) + 540) % 360 - 180
    return Coordinate(lat=math.degrees(lat2), lon=lon2_deg)


def calculate_bearing(point1: Coordinate, point2: Coordinate) -> float:
    """
    Beräkna bäring mellan två punkter

    Args:
        point1: Startpunkt
        point2: Slutpunkt

    Returns:
        Bäring i grader (0-360)
    """
    lat1, lon1 = math.radians(point1.lat), math.radians(point1.lon)
    lat2, lon2 = math.radians(point2.lat), math.radians(point2.lon)

    dlon = lon2 - lon1

    y = math.sin(dlon) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(dlon)

    bearing = math.degrees(math.atan2(y, x))
    return (bearing + 360) % 360


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    lat1, lon1 = math.radians(a.lat), math.radians(a.lon)
    lat2, lon2 = math.radians(b.lat), math.radians(b.lon)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


def calculate_distance_from_points(points: List[Coordinate]) -> float:
    """
    Beräkna total distans från en lista av punkter (Haversine formula)

    Args:
        points: Lista med Coordinate

    Returns:
        Total distans i meter
    """
    if len(points) < 2:
        return 0.0

    return sum(haversine_km(points[i], points[i + 1]) for i in range(len(points) - 1)) * 1000


def get_compass_direction(bearing: float) -> str:
    """
    Konvertera bäring till kompassriktning

    Args:
        bearing: Bäring i grader

    Returns:
        Kompassriktning (N, NE, E, etc.)
    """
    directions = ["N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
                  "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW"]
    index = int((bearing % 360 + 11.25) / 22.5) % 16
    return directions[index]


def describe_direction(origin: Coordinate, candidate: RouteCandidate) -> str:
    """
    Riktningstips för en rutt: mot slutpunkten, eller för en loop mot
    den punkt som ligger längst bort från start
    """
    if not candidate.coordinates:
        return ""

    end = candidate.coordinates[-1]
    if haversine_km(origin, end) < 0.05:
        end = max(candidate.coordinates, key=lambda p: haversine_km(origin, p))
        if haversine_km(origin, end) < 0.05:
            return ""

    return get_compass_direction(calculate_bearing(origin, end))


def validate_coordinates(lat: float, lon: float) -> bool:
    """
    Validera att koordinater är giltiga

    Args:
        lat: Latitud
        lon: Longitud

    Returns:
        True om koordinaterna är giltiga
    """
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return False
    return -90 <= lat <= 90 and -180 <= lon <= 180


def parse_pace(pace_str: str) -> float:
    """
    Konvertera tempo-sträng till minuter per km

    Args:
        pace_str: Tempo som "5:30"

    Returns:
        Minuter per km
    """
    try:
        parts = pace_str.split(":")
        if len(parts) == 2:
            return int(parts[0]) + int(parts[1]) / 60
    except (AttributeError, ValueError):
        pass
    return 5.5  # Default


def format_time(minutes: float) -> str:
    """
    Formatera tid från minuter till sträng

    Args:
        minutes: Antal minuter

    Returns:
        Formaterad tidssträng (HH:MM:SS eller MM:SS)
    """
    total_seconds = int(round(minutes * 60))
    hours, rest = divmod(total_seconds, 3600)
    mins, secs = divmod(rest, 60)

    if hours > 0:
        return f"{hours:02d}:{mins:02d}:{secs:02d}"
    return f"{mins:02d}:{secs:02d}"


def create_gpx(candidate: RouteCandidate, name: str = "Löprunda") -> str:
    """
    Skapa GPX-fil från en rutt

    Args:
        candidate: Rutten som ska exporteras
        name: Namn på rutten

    Returns:
        GPX som sträng
    """
    gpx = gpxpy.gpx.GPX()

    gpx.creator = "Löparruttplanerare"
    gpx.description = f"Genererad rutt på {candidate.distance_km:.2f} km"

    gpx_track = gpxpy.gpx.GPXTrack()
    gpx_track.name = name
    gpx_track.type = "running"
    gpx.tracks.append(gpx_track)

    gpx_segment = gpxpy.gpx.GPXTrackSegment()
    gpx_track.segments.append(gpx_segment)

    for point in candidate.coordinates:
        gpx_segment.points.append(gpxpy.gpx.GPXTrackPoint(point.lat, point.lon))

    if candidate.duration_sec > 0:
        gpx_track.description = f"Uppskattad tid: {format_time(candidate.duration_sec / 60)} ({candidate.provider})"

    return gpx.to_xml()
