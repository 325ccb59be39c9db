"""Boundary polygons and reference points shared by every taxon of a run."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import geopandas
import numpy as np
import polars as pl
import shapely

from occurrence_flagging.exceptions import BoundaryLayerError
from occurrence_flagging.geospatial import ProximityIndex
from occurrence_flagging.logging import log_action

logger = logging.getLogger(__name__)

WGS84 = "EPSG:4326"
# World Cylindrical Equal Area, used to compute polygon centroids
EQUAL_AREA = "EPSG:6933"


def read_polygon_layer(path: Union[str, Path]) -> geopandas.GeoDataFrame:
    """Read a polygon layer and normalize it to WGS84.

    Args:
        path: Path to any vector file readable by geopandas (e.g. a shapefile).

    Returns:
        The layer in EPSG:4326.

    Raises:
        BoundaryLayerError: If the file is missing or holds no geometry.
    """
    path = Path(path)
    if not path.exists():
        raise BoundaryLayerError(f"Boundary layer not found: {path}")

    gdf = geopandas.read_file(path)
    if len(gdf) == 0 or gdf.geometry.is_empty.all():
        raise BoundaryLayerError(f"Boundary layer has no geometry: {path}")

    if gdf.crs is None:
        logger.warning(f"{path} has no CRS, assuming WGS84 ({WGS84})")
        gdf = gdf.set_crs(WGS84)
    elif gdf.crs.to_epsg() != 4326:
        logger.info(f"Reprojecting {path} from {gdf.crs} to {WGS84}")
        gdf = gdf.to_crs(WGS84)

    return gdf


def read_reference_points(
    path: Union[str, Path],
    lat_col: str = "decimalLatitude",
    lng_col: str = "decimalLongitude",
) -> np.ndarray:
    """Read a CSV of reference points into an (n, 2) array of [lat, lng]."""
    path = Path(path)
    if not path.exists():
        raise BoundaryLayerError(f"Reference points not found: {path}")

    df = pl.read_csv(path, infer_schema=False, null_values=["NA", ""])
    missing = [col for col in (lat_col, lng_col) if col not in df.columns]
    if missing:
        raise BoundaryLayerError(f"{path} is missing columns: {', '.join(missing)}")

    return (
        df.select(
            pl.col(lat_col).cast(pl.Float64, strict=False),
            pl.col(lng_col).cast(pl.Float64, strict=False),
        )
        .drop_nulls()
        .to_numpy()
    )


def polygon_centroids(gdf: geopandas.GeoDataFrame) -> np.ndarray:
    """Centroids of each polygon as an (n, 2) array of [lat, lng]."""
    centroids = gdf.to_crs(EQUAL_AREA).geometry.centroid.to_crs(WGS84)
    return np.column_stack([centroids.y.to_numpy(), centroids.x.to_numpy()])


@dataclass
class BoundaryLayers:
    """Layers consumed read-only by the spatial tests."""

    urban_areas: shapely.STRtree
    centroids: ProximityIndex
    institutions: ProximityIndex

    @classmethod
    def build(
        cls,
        urban_polygons: geopandas.GeoDataFrame,
        centroid_points: np.ndarray,
        institution_points: np.ndarray,
    ) -> "BoundaryLayers":
        geometries = urban_polygons.geometry
        geometries = geometries[geometries.notna() & ~geometries.is_empty]
        return cls(
            urban_areas=shapely.STRtree(geometries.to_numpy()),
            centroids=ProximityIndex(centroid_points),
            institutions=ProximityIndex(institution_points),
        )

    @classmethod
    def load(
        cls,
        countries_path: Union[str, Path],
        urban_areas_path: Union[str, Path],
        institutions_path: Union[str, Path],
        centroids_path: Optional[Union[str, Path]] = None,
        provinces_path: Optional[Union[str, Path]] = None,
    ) -> "BoundaryLayers":
        """Load all layers once per batch run.

        Country and province centroids come from centroids_path when given,
        otherwise from the centroids of the world country polygons together
        with those of the province (first-level administrative) polygons.

        Raises:
            BoundaryLayerError: If neither centroids_path nor provinces_path
                is given, or a layer is missing or empty.
        """
        if centroids_path is None and provinces_path is None:
            raise BoundaryLayerError(
                "Province centroids are required: give a centroids CSV or a provinces layer"
            )

        countries = log_action(
            "loading world countries", lambda: read_polygon_layer(countries_path)
        )
        urban_polygons = log_action(
            "loading urban areas", lambda: read_polygon_layer(urban_areas_path)
        )

        if centroids_path is not None:
            centroid_points = log_action(
                "loading centroids", lambda: read_reference_points(centroids_path)
            )
        else:
            provinces = log_action(
                "loading provinces", lambda: read_polygon_layer(provinces_path)
            )
            centroid_points = np.concatenate(
                [polygon_centroids(countries), polygon_centroids(provinces)]
            )
        logger.info(f"Using {len(centroid_points)} centroid reference points")

        institution_points = log_action(
            "loading institutions", lambda: read_reference_points(institutions_path)
        )
        if len(institution_points) == 0:
            raise BoundaryLayerError(
                f"No institution coordinates found in {institutions_path}"
            )
        logger.info(f"Using {len(institution_points)} institution reference points")

        return cls.build(urban_polygons, centroid_points, institution_points)
