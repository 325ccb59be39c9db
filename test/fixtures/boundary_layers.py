import geopandas
import numpy as np
import shapely

from occurrence_flagging.boundary_layers import BoundaryLayers

# Chicago, roughly
URBAN_BOX = (-87.9, 41.6, -87.5, 42.1)

# [lat, lng]
CENTROID_POINTS = np.array(
    [
        [39.83, -98.58],  # contiguous US
        [40.0, -89.5],  # an Illinois-sized province
    ]
)
INSTITUTION_POINTS = np.array(
    [
        [38.6128, -90.2594],  # Missouri Botanical Garden
        [41.8166, -88.0690],  # The Morton Arboretum
    ]
)


def mock_urban_areas_gdf() -> geopandas.GeoDataFrame:
    return geopandas.GeoDataFrame(
        {"name": ["Chicago"]},
        geometry=[shapely.box(*URBAN_BOX)],
        crs="EPSG:4326",
    )


def mock_boundary_layers() -> BoundaryLayers:
    """Creates BoundaryLayers with one urban polygon, two centroids and two institutions."""
    return BoundaryLayers.build(mock_urban_areas_gdf(), CENTROID_POINTS, INSTITUTION_POINTS)
