"""
Great-circle distance between items and a viewer, and proximity ranking.
"""

import math

from ..exceptions import InvalidCoordinateError

EARTH_RADIUS_KM = 6371


def validate_coordinates(latitude, longitude):
    """
    Coerce a latitude/longitude pair to floats.

    Raises:
        InvalidCoordinateError: If either value is missing, non-numeric,
            non-finite or outside its range
    """
    try:
        latitude = float(latitude)
        longitude = float(longitude)
    except (TypeError, ValueError):
        raise InvalidCoordinateError('Latitude and longitude must be numbers.')

    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        raise InvalidCoordinateError('Latitude and longitude must be finite numbers.')

    if not -90 <= latitude <= 90:
        raise InvalidCoordinateError(f'Latitude {latitude} is outside [-90, 90].')

    if not -180 <= longitude <= 180:
        raise InvalidCoordinateError(f'Longitude {longitude} is outside [-180, 180].')

    return latitude, longitude


def distance_km(lat1, lon1, lat2, lon2):
    """
    Haversine distance in kilometres.

    Symmetric in its two points and zero for identical points.
    """
    lat1, lon1 = validate_coordinates(lat1, lon1)
    lat2, lon2 = validate_coordinates(lat2, lon2)

    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    # Float error can push a above 1 for antipodal points
    a = min(1.0, a)
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def format_distance(km):
    """
    Human readable distance label.

    >>> format_distance(0.35)
    '350m away'
    >>> format_distance(2.43)
    '2.4km away'
    >>> format_distance(15.2)
    '15km away'
    """
    if km < 1:
        return f'{round(km * 1000)}m away'
    if km < 10:
        return f'{km:.1f}km away'
    return f'{round(km)}km away'


def rank_by_distance(items, latitude, longitude, max_distance_km=None):
    """
    Order items by distance from the given point.

    Args:
        items: Iterable of objects with ``latitude`` / ``longitude`` attributes
        latitude, longitude: The viewer's position
        max_distance_km: Optional radius; items farther away, or without
            coordinates, are dropped when it is given

    Returns:
        list: ``(item, distance_km or None)`` pairs, nearest first. Items
        without coordinates sort last in their original order.
    """
    latitude, longitude = validate_coordinates(latitude, longitude)

    if max_distance_km is not None:
        try:
            max_distance_km = float(max_distance_km)
        except (TypeError, ValueError):
            raise InvalidCoordinateError('Radius must be a number.', code='invalid_radius')
        if not math.isfinite(max_distance_km) or max_distance_km < 0:
            raise InvalidCoordinateError('Radius must be a non-negative number.', code='invalid_radius')

    located = []
    unlocated = []
    for item in items:
        if item.latitude is None or item.longitude is None:
            if max_distance_km is None:
                unlocated.append((item, None))
            continue

        distance = distance_km(latitude, longitude, item.latitude, item.longitude)
        if max_distance_km is not None and distance > max_distance_km:
            continue
        located.append((item, distance))

    located.sort(key=lambda pair: pair[1])
    return located + unlocated
