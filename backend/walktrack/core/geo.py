import math

from walktrack.core.constants import EARTH_RADIUS_M
from walktrack.schemas.walk import Coordinate


def distance_between_degrees(lat1, lon1, lat2, lon2) -> float:
    """Return great-circle distance in meters between two WGS84 points.

    Uses the standard haversine formula on a spherical earth; this is what
    consumer GPS stacks use for short per-sample distances, so summing the
    segments of a walk tracks the distance actually covered.

    Inputs are not range-checked: out-of-range degrees are simply treated
    as angles (e.g. longitude 370 behaves as 10), and a NaN in any input
    yields NaN.
    """
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    # Clamp guards against a > 1 from rounding on near-antipodal points
    if a > 1.0:
        a = 1.0
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def distance_between(a, b) -> float:
    """Distance in meters between two Coordinates."""
    return distance_between_degrees(a.latitude, a.longitude, b.latitude, b.longitude)


def path_distance(path) -> float:
    """Sum of segment distances over consecutive points of a path."""
    total = 0.0
    for prev, cur in zip(path, path[1:]):
        total += distance_between(prev, cur)
    return total


def destination_point(start, bearing_deg: float, distance_m: float):
    """Point reached by travelling `distance_m` from `start` on a bearing.

    Bearing is degrees clockwise from north. Used to synthesize walks.
    """
    delta = distance_m / EARTH_RADIUS_M
    theta = math.radians(bearing_deg)
    phi1 = math.radians(start.latitude)
    lambda1 = math.radians(start.longitude)

    phi2 = math.asin(
        math.sin(phi1) * math.cos(delta) + math.cos(phi1) * math.sin(delta) * math.cos(theta)
    )
    lambda2 = lambda1 + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(phi1),
        math.cos(delta) - math.sin(phi1) * math.sin(phi2),
    )
    lon = (math.degrees(lambda2) + 540) % 360 - 180
    return Coordinate(latitude=math.degrees(phi2), longitude=lon)
