import numpy as np

# Mean Earth radius, same convention as the common Go/JS geo libraries.
EARTH_RADIUS_KM = 6371.0


def haversine_distance(lat1: np.ndarray, lon1: np.ndarray, lat2: np.ndarray, lon2: np.ndarray) -> np.ndarray:
    """
    Vectorized haversine distance calculation between arrays of coordinates.
    Returns distances in kilometers.
    """
    lat1_rad = np.radians(lat1)
    lon1_rad = np.radians(lon1)
    lat2_rad = np.radians(lat2)
    lon2_rad = np.radians(lon2)

    dlat = lat2_rad - lat1_rad
    dlon = lon2_rad - lon1_rad

    a = np.sin(dlat / 2) ** 2 + np.cos(lat1_rad) * np.cos(lat2_rad) * np.sin(dlon / 2) ** 2
    # rounding can push `a` slightly above 1 near antipodal points
    a = np.clip(a, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def great_circle_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometers between two (lat, lon) points given in degrees."""
    return float(haversine_distance(lat1, lon1, lat2, lon2))


def pairwise_distance_matrix(latitudes, longitudes) -> np.ndarray:
    """
    Symmetric n x n matrix of great-circle distances in kilometers.
    Entry [i, j] is the distance between point i and point j; the diagonal is zero.
    """
    lat = np.asarray(latitudes, dtype="float64")
    lon = np.asarray(longitudes, dtype="float64")

    return haversine_distance(lat[:, np.newaxis], lon[:, np.newaxis], lat[np.newaxis, :], lon[np.newaxis, :])
