"""Spatial tests for occurrence records.

The three tests follow the contract of the CoordinateCleaner tests
``cc_cen``/``cc_inst``, ``cc_urb`` and ``cc_outl``:

- proximity: flagged when within a radius (meters) of a reference point,
  measured as great-circle distance;
- urban overlay: flagged when inside an urban-area polygon;
- outliers: flagged when the mean distance to the other records of the same
  taxon is far outside the interquartile range of those mean distances.

All tests take latitude and longitude arrays and return a Boolean Series
where True means the record passes. Records with missing or out-of-range
coordinates are not tested and get null.
"""

import logging
import warnings
from collections import defaultdict
from typing import Hashable, Iterable, Sequence

import numpy as np
import polars as pl
import shapely
from sklearn.metrics.pairwise import haversine_distances
from sklearn.neighbors import BallTree

from occurrence_flagging.constants import EARTH_RADIUS_M

logger = logging.getLogger(__name__)

OUTLIER_METHODS = ("quantile",)


def _coordinates(
    lat: Sequence[float] | np.ndarray, lng: Sequence[float] | np.ndarray
) -> tuple[np.ndarray, np.ndarray]:
    """Stack coordinates into an (n, 2) lat/lng array and a validity mask."""
    lat_arr = np.asarray(lat, dtype=np.float64)
    lng_arr = np.asarray(lng, dtype=np.float64)
    points = np.column_stack([lat_arr, lng_arr])
    valid = (
        np.isfinite(points).all(axis=1)
        & (np.abs(lat_arr) <= 90)
        & (np.abs(lng_arr) <= 180)
    )
    return points, valid


def _to_series(name: str, passes: np.ndarray, valid: np.ndarray) -> pl.Series:
    return pl.Series(
        name,
        [bool(p) if v else None for p, v in zip(passes, valid)],
        dtype=pl.Boolean,
    )


class ProximityIndex:
    """Reference points (e.g. centroids, institutions) indexed for radius queries."""

    def __init__(self, points: np.ndarray):
        """
        Args:
            points: (n, 2) array of [latitude, longitude] in degrees.
        """
        points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
        points = points[np.isfinite(points).all(axis=1)]
        self.size = len(points)
        self._tree = BallTree(np.radians(points), metric="haversine") if self.size else None

    def __len__(self) -> int:
        return self.size

    def within(self, points: np.ndarray, radius_m: float) -> np.ndarray:
        """Whether each [lat, lng] point lies within radius_m of any reference point."""
        if self._tree is None or len(points) == 0:
            return np.zeros(len(points), dtype=bool)
        counts = self._tree.query_radius(
            np.radians(points), r=radius_m / EARTH_RADIUS_M, count_only=True
        )
        return np.asarray(counts) > 0


def flag_proximity(
    lat: Sequence[float] | np.ndarray,
    lng: Sequence[float] | np.ndarray,
    reference: ProximityIndex,
    radius_m: float,
    name: str,
) -> pl.Series:
    """Flag records within radius_m of a reference point."""
    points, valid = _coordinates(lat, lng)
    passes = np.ones(len(points), dtype=bool)
    if valid.any():
        passes[valid] = ~reference.within(points[valid], radius_m)
    return _to_series(name, passes, valid)


def flag_centroid_institution(
    lat: Sequence[float] | np.ndarray,
    lng: Sequence[float] | np.ndarray,
    centroids: ProximityIndex,
    institutions: ProximityIndex,
    centroid_radius_m: float,
    institution_radius_m: float,
) -> tuple[pl.Series, pl.Series]:
    """Returns the ``.cen`` and ``.inst`` flags."""
    cen = flag_proximity(lat, lng, centroids, centroid_radius_m, ".cen")
    inst = flag_proximity(lat, lng, institutions, institution_radius_m, ".inst")
    return cen, inst


def flag_urban_overlay(
    lat: Sequence[float] | np.ndarray,
    lng: Sequence[float] | np.ndarray,
    urban_areas: shapely.STRtree,
) -> pl.Series:
    """Returns the ``.urb`` flag: False when a record lies inside an urban-area polygon."""
    points, valid = _coordinates(lat, lng)
    passes = np.ones(len(points), dtype=bool)
    valid_index = np.flatnonzero(valid)
    if len(valid_index):
        geometries = shapely.points(points[valid_index, 1], points[valid_index, 0])
        point_index, _ = urban_areas.query(geometries, predicate="within")
        passes[valid_index[np.unique(point_index)]] = False
    return _to_series(".urb", passes, valid)


def _quantile_outliers(points: np.ndarray, multiplier: float) -> np.ndarray:
    # Pairwise great-circle distances in km; zero distances (the point itself
    # and exact duplicates) do not count towards the mean
    distances = haversine_distances(np.radians(points)) * EARTH_RADIUS_M / 1000
    distances[distances == 0] = np.nan
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", category=RuntimeWarning)
        mean_distances = np.nanmean(distances, axis=1)
        q1, q3 = np.nanquantile(mean_distances, [0.25, 0.75])
    iqr = q3 - q1
    return (mean_distances < q1 - iqr * multiplier) | (
        mean_distances > q3 + iqr * multiplier
    )


def flag_outliers(
    lat: Sequence[float] | np.ndarray,
    lng: Sequence[float] | np.ndarray,
    groups: Iterable[Hashable],
    method: str = "quantile",
    multiplier: float = 4.0,
    min_occurrences: int = 7,
) -> pl.Series:
    """
    Returns the ``.outl`` flag.

    Records are grouped (usually by accepted taxon name) and each group is
    tested against its own point cloud. Groups with fewer than
    min_occurrences records with valid coordinates are not tested and pass.
    """
    if method not in OUTLIER_METHODS:
        raise ValueError(
            f"Unsupported outlier method {method!r}, expected one of {OUTLIER_METHODS}"
        )

    points, valid = _coordinates(lat, lng)
    passes = np.ones(len(points), dtype=bool)

    members: dict[Hashable, list[int]] = defaultdict(list)
    for i, (group, is_valid) in enumerate(zip(groups, valid)):
        if is_valid:
            members[group].append(i)

    for group, index in members.items():
        if len(index) < min_occurrences:
            logger.debug(
                f"Skipping outlier test for {group}: {len(index)} records "
                f"(minimum {min_occurrences})"
            )
            continue
        outliers = _quantile_outliers(points[index], multiplier)
        passes[index] = ~outliers

    return _to_series(".outl", passes, valid)
