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

"""Functionalities for vectorization of rasters: to points, contour lines and polygons."""

from __future__ import annotations

import logging
from typing import Any, Iterable

import geopandas as gpd
import numpy as np
import shapely
from rasterio.features import shapes
from shapely.geometry import LineString, MultiLineString
from skimage import measure

import geocarto as gc
from geocarto._typing import NDArrayBool, NDArrayNum


def _check_band(source_raster: gc.Raster, band: int) -> None:
    if not 1 <= band <= source_raster.count:
        raise ValueError(f"Band must be between 1 and {source_raster.count}, got {band}.")


def _to_labels(source_raster: gc.Raster, values: NDArrayNum) -> Any:
    """Convert values to category labels for categorical rasters."""

    if not source_raster.is_categorical:
        return values
    labels = source_raster.categories
    return [labels.get(int(v), v) if np.isfinite(v) else None for v in values]


#############
# 1/ POINTS
#############


def _raster_to_points(source_raster: gc.Raster, skip_nodata: bool = True) -> gc.Vector:
    """Convert a raster to points at cell centres. See Raster.to_points() for details."""

    xx, yy = source_raster.coords(grid=True)
    band_data = source_raster._data.astype(float).filled(np.nan).reshape(source_raster.count, -1)

    if skip_nodata:
        # Only cells masked in all bands are skipped
        keep = ~np.all(np.ma.getmaskarray(source_raster._data), axis=0).ravel()
    else:
        keep = np.ones(xx.size, dtype=bool)

    gdf = gpd.GeoDataFrame(
        {name: _to_labels(source_raster, band_data[b, keep]) for b, name in enumerate(source_raster.names)},
        geometry=gpd.points_from_xy(xx.ravel()[keep], yy.ravel()[keep]),
        crs=source_raster.crs,
    )
    logging.debug("Converted raster to %d points.", len(gdf))

    return gc.Vector(gdf)


###############
# 2/ CONTOURS
###############


def _contour(
    source_raster: gc.Raster,
    levels: Iterable[float] | None = None,
    n: int = 10,
    band: int = 1,
) -> gc.Vector:
    """Trace contour lines of a raster. See Raster.contour() for details."""

    from geocarto.mapping.classification import pretty

    _check_band(source_raster, band)

    arr = source_raster._data[band - 1].astype(float)
    valid = ~np.ma.getmaskarray(arr)
    if not valid.any():
        raise ValueError("Cannot trace contours of a raster without valid values.")

    vmin, vmax = float(arr.min()), float(arr.max())
    if levels is None:
        levels = [lvl for lvl in pretty(vmin, vmax, n) if vmin < lvl < vmax]
    levels = sorted(float(lvl) for lvl in levels)

    # Masked cells break contours, their value is only used to fill the array
    image = arr.filled(vmin)

    out_levels, out_geoms = [], []
    for level in levels:
        lines = []
        for contour in measure.find_contours(image, level, mask=valid):
            if len(contour) < 2:
                continue
            # Contours are traced on cell indexes, which are converted to cell centre coordinates
            x, y = source_raster.ij2xy(contour[:, 0], contour[:, 1])
            lines.append(LineString(np.column_stack([x, y])))
        if len(lines) == 0:
            continue
        out_levels.append(level)
        out_geoms.append(lines[0] if len(lines) == 1 else MultiLineString(lines))

    logging.debug("Traced contours at %d levels out of %d.", len(out_levels), len(levels))

    gdf = gpd.GeoDataFrame({"level": out_levels}, geometry=out_geoms, crs=source_raster.crs)

    return gc.Vector(gdf)


###############
# 3/ POLYGONS
###############


def _selection(source_raster: gc.Raster, target_values: Any, band: int) -> NDArrayBool:
    """Select cells of a band by target values."""

    data = source_raster._data[band - 1]
    valid = ~np.ma.getmaskarray(data)
    arr = np.ma.getdata(data)

    # Mask a unique value set by a number
    if isinstance(target_values, (int, float, np.integer, np.floating)):
        sel = arr == target_values
        msg = f"no pixel with in_value {target_values}"

    # Mask values within boundaries set by a tuple
    elif isinstance(target_values, tuple):
        if len(target_values) != 2:
            raise ValueError("A tuple of target values must define an interval (low, high).")
        sel = (arr > target_values[0]) & (arr < target_values[1])
        msg = f"no pixel with in_value between {target_values[0]} and {target_values[1]}"

    # Mask specific values set by a sequence
    elif isinstance(target_values, (list, np.ndarray)):
        sel = np.isin(arr, np.array(target_values))
        msg = "no pixel with in_value " + ", ".join(map("{}".format, target_values))

    # Mask all valid values
    elif isinstance(target_values, str) and target_values == "all":
        sel = np.ones(arr.shape, dtype=bool)
        msg = "no valid pixel"

    else:
        raise ValueError("target_values must be 'all', a number, a tuple or a sequence")

    sel = sel & valid
    if not sel.any():
        raise ValueError(msg)

    return sel


def _value_codes(arr: NDArrayNum, sel: NDArrayBool) -> tuple[NDArrayNum, NDArrayNum]:
    """
    Encode the selected values of an array as int32 codes of its unique values.

    Rasterio only polygonizes 8 to 32-bit data, so values are merged on their codes and read back at full precision.

    :return: Code array (-1 outside the selection) and unique values indexed by code.
    """
    uniques, inverse = np.unique(arr[sel], return_inverse=True)
    codes = np.full(arr.shape, -1, dtype=np.int32)
    codes[sel] = inverse.ravel()
    return codes, uniques


def _polygonize(
    source_raster: gc.Raster,
    target_values: Any = "all",
    dissolve: bool = False,
    band: int = 1,
) -> gc.Vector:
    """Polygonize a raster. See Raster.polygonize() for details."""

    _check_band(source_raster, band)
    sel = _selection(source_raster, target_values, band)
    name = source_raster.names[band - 1]
    arr = np.ma.getdata(source_raster._data[band - 1])

    if dissolve:
        # Connected cells of equal value are merged by rasterio
        codes, uniques = _value_codes(arr, sel)
        results = [
            {"properties": {"code": int(v)}, "geometry": s}
            for s, v in shapes(codes, mask=sel, transform=source_raster.transform, connectivity=4)
        ]
        gdf = gpd.GeoDataFrame.from_features(results, crs=source_raster.crs)
        values = uniques[gdf["code"].to_numpy(dtype=int)]
        geoms = gdf.geometry.to_numpy()
    else:
        # One square polygon per selected cell
        rows, cols = np.nonzero(sel)
        xmin, ymax = source_raster.ij2xy(rows, cols, offset="ul")
        xmax, ymin = source_raster.ij2xy(rows, cols, offset="lr")
        geoms = shapely.box(np.minimum(xmin, xmax), np.minimum(ymin, ymax), np.maximum(xmin, xmax), np.maximum(ymin, ymax))
        values = arr[rows, cols]

    if source_raster.is_categorical:
        column = _to_labels(source_raster, values)
    elif np.issubdtype(np.dtype(source_raster.dtype), np.integer) or source_raster.is_mask:
        column = values.astype(int)
    else:
        column = values

    gdf = gpd.GeoDataFrame({name: column}, geometry=gpd.GeoSeries(geoms), crs=source_raster.crs)
    logging.debug("Polygonized raster into %d polygons (dissolve=%s).", len(gdf), dissolve)

    return gc.Vector(gdf)
