# Copyright (c) 2025 GeoCarto developers
#
# This file is part of the GeoCarto project.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
#
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Small synthetic example datasets, used in the documentation and the tests."""

from __future__ import annotations

import geopandas as gpd
import numpy as np
from rasterio.transform import from_origin
from shapely.geometry import LineString, Polygon

import geocarto as gc

# All example datasets are defined on the same 6x6 grid of 0.5 degree cells
_TRANSFORM = from_origin(-1.5, 1.5, 0.5, 0.5)
_CRS = "EPSG:4326"

GRAIN_CATEGORIES = {0: "clay", 1: "silt", 2: "sand"}

available = ["elev", "grain", "study_area", "sample_points", "transect"]


def elev() -> gc.Raster:
    """
    Elevation raster: 6x6 cells of 0.5 degree, with values from 1 to 36 by rows from the upper-left corner.

    :returns: Single-band raster named "elev", with extent (-1.5, -1.5, 1.5, 1.5) in EPSG:4326.
    """
    data = np.arange(1, 37, dtype="int32").reshape(6, 6)
    return gc.Raster.from_array(data, transform=_TRANSFORM, crs=_CRS, names=["elev"])


def grain(seed: int = 0) -> gc.Raster:
    """
    Categorical raster of soil grain sizes, on the same grid as elev().

    :param seed: Seed of the random generator drawing the categories.

    :returns: Single-band raster named "grain", with categories clay, silt and sand.
    """
    rng = np.random.default_rng(seed)
    data = rng.integers(0, len(GRAIN_CATEGORIES), size=(6, 6)).astype("uint8")
    return gc.Raster.from_array(data, transform=_TRANSFORM, crs=_CRS, names=["grain"], categories=GRAIN_CATEGORIES)


def study_area() -> gc.Vector:
    """
    Two polygon regions overlapping the grid of elev(), with a name, a land cover and an area index.
    """
    gdf = gpd.GeoDataFrame(
        {
            "name": ["north", "south"],
            "landcover": ["forest", "grassland"],
            "index": [2.5, 7.0],
        },
        geometry=[
            Polygon([(-1.2, 0.1), (0.9, 0.1), (1.3, 1.2), (-0.8, 1.3)]),
            Polygon([(-1.0, -1.3), (1.1, -1.1), (0.6, -0.1), (-0.7, -0.3)]),
        ],
        crs=_CRS,
    )
    return gc.Vector(gdf)


def sample_points(n: int = 10, seed: int = 0) -> gc.Vector:
    """
    Random points inside the extent of elev(), with an integer "count" attribute.

    :param n: Number of points.
    :param seed: Seed of the random generator.
    """
    rng = np.random.default_rng(seed)
    # Keep a small margin so that no point falls exactly on the grid edges
    x = rng.uniform(-1.45, 1.45, n)
    y = rng.uniform(-1.45, 1.45, n)
    counts = rng.integers(1, 10, n)
    gdf = gpd.GeoDataFrame({"count": counts.astype("int64")}, geometry=gpd.points_from_xy(x, y), crs=_CRS)
    return gc.Vector(gdf)


def transect() -> gc.Vector:
    """Line crossing the grid of elev() from its lower-left to its upper-right part."""
    gdf = gpd.GeoDataFrame(
        {"name": ["transect"]},
        geometry=[LineString([(-1.3, -1.2), (0.1, 0.2), (1.3, 1.1)])],
        crs=_CRS,
    )
    return gc.Vector(gdf)
