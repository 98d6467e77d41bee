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

"""Functionalities at the interface of rasters and vectors: masking and extraction."""

from __future__ import annotations

import logging
import warnings
from typing import Any, Callable, Literal

import geopandas as gpd
import numpy as np
import pandas as pd
import shapely
from rasterio.crs import CRS
from scipy.ndimage import binary_dilation, distance_transform_edt, map_coordinates

import geocarto as gc
from geocarto._typing import ArrayLike, NDArrayBool, NDArrayNum
from geocarto.exceptions import InvalidGeometryError
from geocarto.interface.rasterization import _cells_per_feature, _make_dtype
from geocarto.raster.georeferencing import _cast_nodata, _outside_image
from geocarto.vector.vector import _geometry_family

_SUMMARY_FUNS: dict[str, Callable[[NDArrayNum], float]] = {
    "mean": np.mean,
    "min": np.min,
    "max": np.max,
    "sum": np.sum,
    "median": np.median,
    "std": lambda v: float(np.std(v, ddof=1)) if v.size > 1 else np.nan,
    "count": lambda v: float(v.size),
}


def _vector_in_raster_crs(source_raster: gc.Raster, vector: gc.Vector) -> gpd.GeoDataFrame:
    """Get the geodataframe of a vector in the CRS of a raster, a vector without CRS being assumed to share it."""

    gdf = vector.ds
    if source_raster.crs is not None and gdf.crs is not None and not CRS.from_user_input(gdf.crs) == source_raster.crs:
        logging.debug("Reprojecting vector to the raster CRS.")
        gdf = gdf.to_crs(source_raster.crs)
    return gdf


def _selection_mask(
    source_raster: gc.Raster, gdf: gpd.GeoDataFrame, touches: bool = False
) -> tuple[NDArrayBool, list[NDArrayNum]]:
    """Get the mask of cells selected by any geometry, and the flat indexes of cells per geometry."""

    cells = _cells_per_feature(
        list(gdf.geometry), out_shape=source_raster.shape, transform=source_raster.transform, touches=touches
    )
    selected = np.zeros(source_raster.shape, dtype=bool)
    if len(cells) > 0:
        selected.flat[np.concatenate(cells)] = True
    return selected, cells


##############
# 1/ MASKING
##############


def _mask(
    source_raster: gc.Raster,
    vector: gc.Vector,
    inverse: bool = False,
    updatevalue: int | float | None = None,
    touches: bool = False,
) -> gc.Raster:
    """Mask raster by vector geometries. See details in Raster.mask()."""

    gdf = _vector_in_raster_crs(source_raster, vector)
    if _geometry_family(vector.geom_type) == "point":
        raise InvalidGeometryError("Masking requires line or polygon geometries, got points.")

    selected, _ = _selection_mask(source_raster, gdf, touches=touches)
    outside = selected if inverse else ~selected

    if updatevalue is None:
        data = source_raster._data.copy()
        data[:, outside] = np.ma.masked
        nodata = source_raster.nodata
    else:
        dtype = _make_dtype(source_raster._data.dtype, updatevalue)
        data = source_raster._data.astype(dtype)
        data[:, outside] = updatevalue
        nodata = _cast_nodata(dtype, source_raster.nodata)

    # A fractional update value is not a category code
    categories = source_raster.categories
    if updatevalue is not None and np.isfinite(updatevalue) and not float(updatevalue).is_integer():
        categories = None

    return gc.Raster.from_array(
        data=data,
        transform=source_raster.transform,
        crs=source_raster.crs,
        nodata=nodata,
        names=source_raster.names,
        categories=categories,
    )


#################
# 2/ EXTRACTION
#################


def _map_coordinates_nodata_propag(values: NDArrayNum, indices: tuple[NDArrayNum, NDArrayNum]) -> NDArrayNum:
    """
    Perform bilinear map_coordinates with nodata spreading to the neighbouring cells.

    For input arguments, see scipy.ndimage.map_coordinates.
    """

    # We compute the mask and dilate it by one cell to spread nodatas
    mask_nan = ~np.isfinite(values)
    new_mask = binary_dilation(mask_nan, iterations=1).astype("uint8")

    # We replace all NaN values by nearest neighbours to minimize interpolation errors near NaNs
    if mask_nan.any() and not mask_nan.all():
        ind = distance_transform_edt(mask_nan, return_distances=False, return_indices=True)
        values = values[tuple(ind)]

    rmask = map_coordinates(new_mask, indices, order=0, mode="nearest", prefilter=False)
    rpoints = map_coordinates(values, indices, order=1, mode="nearest")
    rpoints[rmask.astype(bool)] = np.nan

    return rpoints


def _sample_xy(
    source_raster: gc.Raster,
    x: ArrayLike,
    y: ArrayLike,
    method: Literal["simple", "bilinear"] = "simple",
) -> NDArrayNum:
    """
    Sample raster values at point coordinates.

    :return: Array of shape (points, bands), NaN for points outside the raster or on masked cells.
    """
    x = np.atleast_1d(np.asarray(x, dtype=float))
    y = np.atleast_1d(np.asarray(y, dtype=float))

    values = np.full((x.size, source_raster.count), np.nan)
    if x.size == 0:
        return values

    i, j = source_raster.xy2ij(x, y)
    inside = ~_outside_image(i, j, shape=source_raster.shape)

    band_data = source_raster._data.astype(float).filled(np.nan)

    if method == "simple":
        values[inside, :] = band_data[:, i[inside], j[inside]].T
    elif method == "bilinear":
        # Fractional indexes relative to the cell centres
        cols, rows = ~source_raster.transform * (x[inside], y[inside])
        indices = (np.asarray(rows) - 0.5, np.asarray(cols) - 0.5)
        for b in range(source_raster.count):
            values[inside, b] = _map_coordinates_nodata_propag(band_data[b], indices)
    else:
        raise ValueError(f"Sampling method must be 'simple' or 'bilinear', got {method!r}.")

    return values


def _values_frame(source_raster: gc.Raster, ids: NDArrayNum, values: NDArrayNum) -> pd.DataFrame:
    """Build a dataframe of extracted values, with category labels for categorical rasters."""

    df = pd.DataFrame({"ID": np.asarray(ids, dtype=int)})
    for b, name in enumerate(source_raster.names):
        col = values[:, b]
        if source_raster.is_categorical:
            labels = source_raster.categories
            df[name] = pd.Series([labels.get(int(v), v) if np.isfinite(v) else np.nan for v in col], dtype=object)
        else:
            df[name] = col
    return df


def _extract_points(
    source_raster: gc.Raster,
    gdf: gpd.GeoDataFrame,
    method: Literal["simple", "bilinear"] = "simple",
) -> pd.DataFrame:
    """Extract raster values at points. See details in Raster.extract()."""

    coords, index = shapely.get_coordinates(np.asarray(gdf.geometry), return_index=True)
    values = _sample_xy(source_raster, coords[:, 0], coords[:, 1], method=method)

    return _values_frame(source_raster, ids=index + 1, values=values)


def _extract_lines(
    source_raster: gc.Raster,
    gdf: gpd.GeoDataFrame,
    along: bool = True,
    spacing: float | None = None,
    method: Literal["simple", "bilinear"] = "simple",
    fun: str | Callable[[NDArrayNum], float] | None = None,
    na_rm: bool = True,
) -> pd.DataFrame | gpd.GeoDataFrame:
    """
    Extract raster values along lines. See details in Raster.extract().

    With ``along``, lines are sampled every ``spacing`` from their start, including their end point.
    Otherwise, all cells touched by the lines are extracted.
    """

    if not along:
        return _extract_cells(source_raster, gdf, fun=fun, touches=True, na_rm=na_rm)

    if spacing is None:
        spacing = min(source_raster.res)
    if spacing <= 0:
        raise ValueError(f"Spacing must be strictly positive, got {spacing}.")

    ids, distances, points = [], [], []
    for k, line in enumerate(gdf.geometry):
        dist = np.arange(0, line.length, spacing)
        if len(dist) == 0 or dist[-1] < line.length:
            dist = np.append(dist, line.length)
        ids.append(np.full(len(dist), k + 1))
        distances.append(dist)
        points.append(shapely.line_interpolate_point(line, dist))

    ids_arr = np.concatenate(ids) if ids else np.array([], dtype=int)
    dist_arr = np.concatenate(distances) if distances else np.array([])
    pts = np.concatenate(points) if points else np.array([], dtype=object)

    values = _sample_xy(source_raster, shapely.get_x(pts), shapely.get_y(pts), method=method)
    df = _values_frame(source_raster, ids=ids_arr, values=values)
    df.insert(1, "distance", dist_arr)

    return gpd.GeoDataFrame(df, geometry=gpd.GeoSeries(pts, crs=gdf.crs), crs=gdf.crs)


def _summarize(values: NDArrayNum, fun: str | Callable[[NDArrayNum], float], na_rm: bool) -> float:
    """Summarize an array of values, with NaN for masked values."""

    if na_rm:
        values = values[np.isfinite(values)]
    if callable(fun):
        return fun(values)
    if values.size == 0:
        return 0.0 if fun == "count" else np.nan
    if fun != "count" and not np.all(np.isfinite(values)):
        return np.nan
    return _SUMMARY_FUNS[fun](values)


def _extract_cells(
    source_raster: gc.Raster,
    gdf: gpd.GeoDataFrame,
    fun: str | Callable[[NDArrayNum], float] | None = None,
    touches: bool = False,
    na_rm: bool = True,
) -> pd.DataFrame:
    """Extract raster values of the cells selected by each geometry, optionally summarized per geometry."""

    if fun is not None and not callable(fun) and fun != "table" and fun not in _SUMMARY_FUNS:
        raise ValueError(
            f"Summary function must be one of {list(_SUMMARY_FUNS) + ['table']} or a callable, got {fun!r}."
        )

    cells = _cells_per_feature(
        list(gdf.geometry), out_shape=source_raster.shape, transform=source_raster.transform, touches=touches
    )
    n_features = len(cells)
    ids = np.repeat(np.arange(1, n_features + 1), [len(c) for c in cells])
    flat_cells = np.concatenate(cells) if n_features > 0 else np.array([], dtype=np.int64)

    band_data = source_raster._data.astype(float).filled(np.nan).reshape(source_raster.count, -1)
    values = band_data[:, flat_cells].T

    empty = [k + 1 for k, c in enumerate(cells) if len(c) == 0]
    if empty:
        warnings.warn(f"No raster cell selected by features with ID {empty}.")

    if fun is None:
        return _values_frame(source_raster, ids=ids, values=values)

    all_ids = pd.Index(np.arange(1, n_features + 1), name="ID")

    if fun == "table":
        # Counts of each valid value of the first band, per feature
        df = pd.DataFrame({"ID": ids, "value": values[:, 0]}).dropna()
        if df.empty:
            return pd.DataFrame({"ID": all_ids.to_numpy()})
        table = pd.crosstab(df["ID"], df["value"]).reindex(all_ids, fill_value=0)
        if source_raster.is_categorical:
            labels = source_raster.categories
            table.columns = [labels.get(int(v), v) for v in table.columns]
        else:
            table.columns = [int(v) if float(v).is_integer() else v for v in table.columns]
        table.columns.name = None
        return table.reset_index()

    df = pd.DataFrame(values, columns=source_raster.names)
    df.insert(0, "ID", ids)
    summary = df.groupby("ID")[source_raster.names].agg(lambda s: _summarize(s.to_numpy(), fun, na_rm))
    summary = summary.reindex(all_ids)
    if fun == "count":
        summary = summary.fillna(0).astype(int)

    return summary.reset_index()


def _extract(
    source_raster: gc.Raster,
    vector: gc.Vector | tuple[ArrayLike, ArrayLike],
    fun: str | Callable[[NDArrayNum], float] | None = None,
    method: Literal["simple", "bilinear"] = "simple",
    along: bool = False,
    spacing: float | None = None,
    touches: bool = False,
    na_rm: bool = True,
    bind: bool = False,
) -> pd.DataFrame | gc.Vector:
    """Extract raster values at vector geometries. See details in Raster.extract()."""

    # Coordinates passed directly
    if isinstance(vector, tuple):
        x, y = vector
        x = np.atleast_1d(np.asarray(x, dtype=float))
        y = np.atleast_1d(np.asarray(y, dtype=float))
        values = _sample_xy(source_raster, x, y, method=method)
        return _values_frame(source_raster, ids=np.arange(1, x.size + 1), values=values)

    if not isinstance(vector, gc.Vector):
        raise TypeError("Extraction locations must be a Vector or a tuple of X and Y coordinates.")

    gdf = _vector_in_raster_crs(source_raster, vector)
    family = _geometry_family(vector.geom_type)
    logging.debug("Extracting raster values at %d %s features.", len(gdf), family)

    out: Any
    if family == "point":
        out = _extract_points(source_raster, gdf, method=method)
    elif family == "line":
        out = _extract_lines(source_raster, gdf, along=along, spacing=spacing, method=method, fun=fun, na_rm=na_rm)
        if isinstance(out, gpd.GeoDataFrame):
            return gc.Vector(out)
    else:
        out = _extract_cells(source_raster, gdf, fun=fun, touches=touches, na_rm=na_rm)

    if not bind:
        return out

    # Binding needs exactly one row per feature, in order
    if len(out) != len(gdf) or not np.array_equal(out["ID"].to_numpy(), np.arange(1, len(gdf) + 1)):
        raise ValueError("Values can only be bound to the vector when there is one extracted row per feature.")

    bound = vector.ds.reset_index(drop=True).copy()
    for col in out.columns:
        if col != "ID":
            bound[col] = out[col].to_numpy()
    return gc.Vector(bound)
