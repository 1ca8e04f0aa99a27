"""
Great-Circle Distance
======================

Haversine distance between lat/lng points, used to test whether a
supplier or route endpoint falls inside a disruption region.
"""

import numpy as np

EARTH_RADIUS_KM = 6371.0


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Haversine great-circle distance in kilometers.

    NaN inputs propagate to a NaN result; validating coordinates is the
    caller's job.
    """
    phi1, phi2 = np.radians(lat1), np.radians(lat2)
    d_phi = np.radians(lat2 - lat1)
    d_lambda = np.radians(lon2 - lon1)

    a = (
        np.sin(d_phi / 2) ** 2
        + np.cos(phi1) * np.cos(phi2) * np.sin(d_lambda / 2) ** 2
    )
    # Clip guards against a > 1 from float rounding on antipodal points
    c = 2 * np.arctan2(np.sqrt(np.clip(a, 0.0, 1.0)), np.sqrt(np.clip(1 - a, 0.0, 1.0)))
    return float(EARTH_RADIUS_KM * c)


def within_radius(lat: float, lng: float, center_lat: float, center_lng: float,
                  radius_km: float) -> bool:
    """
    True if (lat, lng) lies inside or on the circle around the center.

    A zero radius encloses nothing, not even the center point.
    """
    if radius_km <= 0:
        return False
    return distance_km(center_lat, center_lng, lat, lng) <= radius_km
