"""
GPS spoofing heuristic for attendance events.

Two consecutive clock events imply a travel speed. A speed no ground traveller
can reach means one of the two positions was faked. The result is a flag for
admins to review, never a rejection: a false positive must stay auditable
instead of blocking someone's attendance.
"""
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from app.core.config import settings
from app.core.timeutils import as_utc

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class GeoSample:
    latitude: float
    longitude: float
    timestamp: datetime


@dataclass(frozen=True)
class MovementAssessment:
    distance_km: float
    elapsed_hours: float
    speed_kmh: Optional[float]
    is_suspicious: bool


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates, in kilometres."""
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) *
         math.sin(delta_lon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def assess_movement(
    previous: GeoSample,
    current: GeoSample,
    threshold_kmh: Optional[float] = None,
    min_elapsed_hours: Optional[float] = None,
) -> MovementAssessment:
    """
    Compare two samples and decide whether the implied speed is plausible.

    Samples closer together than ``min_elapsed_hours`` are treated as a
    duplicate submission (network retry) and never flagged.
    """
    if threshold_kmh is None:
        threshold_kmh = settings.attendance.speed_threshold_kmh
    if min_elapsed_hours is None:
        min_elapsed_hours = settings.attendance.min_elapsed_hours

    distance = haversine_km(previous.latitude, previous.longitude, current.latitude, current.longitude)
    elapsed = abs((as_utc(current.timestamp) - as_utc(previous.timestamp)).total_seconds()) / 3600.0

    if elapsed < min_elapsed_hours:
        return MovementAssessment(distance, elapsed, None, False)

    speed = distance / elapsed
    return MovementAssessment(distance, elapsed, speed, speed > threshold_kmh)
