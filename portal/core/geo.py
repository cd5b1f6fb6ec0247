from math import asin, cos, radians, sin, sqrt

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE = 111.0


def haversine(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in km between two points."""
    lat1, lon1, lat2, lon2 = map(radians, (lat1, lon1, lat2, lon2))
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * asin(sqrt(a))


def bounding_box(lat: float, lng: float, radius_km: float) -> tuple[float, float]:
    """Rough (lat_delta, lng_delta) in degrees covering ``radius_km`` around a point.

    Used as a cheap SQL prefilter before the exact haversine check.
    """
    lat_delta = radius_km / KM_PER_DEGREE
    cos_lat = cos(radians(lat))
    # Near the poles longitude degrees shrink to nothing; take the whole range.
    lng_delta = 180.0 if cos_lat < 1e-6 else min(180.0, radius_km / (KM_PER_DEGREE * cos_lat))
    return lat_delta, lng_delta


def longitude_ranges(lng: float, lng_delta: float) -> list[tuple[float, float]]:
    """``lng ± lng_delta`` as inclusive (low, high) ranges inside [-180, 180].

    A box crossing the antimeridian is split into one range on each side.
    """
    if lng_delta >= 180.0:
        return [(-180.0, 180.0)]
    low, high = lng - lng_delta, lng + lng_delta
    if low < -180.0:
        return [(low + 360.0, 180.0), (-180.0, high)]
    if high > 180.0:
        return [(low, 180.0), (-180.0, high - 360.0)]
    return [(low, high)]
