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

"""Functionalities for rasterization of vectors."""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Sequence

import geopandas as gpd
import numpy as np
import pandas as pd
import rasterio as rio
from rasterio import features
from rasterio.crs import CRS
from shapely.geometry.base import BaseGeometry

from geocarto._config import config
from geocarto._typing import DTypeLike, NDArrayBool, NDArrayNum
from geocarto.exceptions import IgnoredGridWarning, InvalidBoundsError, InvalidGridError
from geocarto.raster.georeferencing import (
    _default_nodata,
    _grid_from_bounds_res,
    _outside_image,
    _snap_bounds,
    _xy2ij,
)
from geocarto.vector.vector import _geometry_family

if TYPE_CHECKING:
    from geocarto.raster.raster import Raster

_AGG_FUNS = ("last", "first", "sum", "mean", "min", "max", "count")


def _check_match_grid(
    gdf: gpd.GeoDataFrame,
    ref: Raster | None,
    res: float | tuple[float, float] | None,
    bounds: tuple[float, float, float, float] | None,
    shape: tuple[int, int] | None,
    crs: CRS | int | str | None,
) -> tuple[tuple[int, int], rio.Affine, CRS | None]:
    """
    Check and normalize the definition of an output grid for a vector.

    The grid can be defined the following ways:
    1. If a reference raster is provided, match its grid (CRS, bounds and shape),
    2. Otherwise, a resolution or a shape must be provided, with bounds defaulting to the vector bounds and CRS
        defaulting to the vector CRS.

    :param gdf: Source geodataframe.
    :param ref: Reference raster to match.
    :param res: Resolution of destination grid, in units of destination CRS (mutually exclusive with shape).
    :param bounds: Bounding box (xmin, ymin, xmax, ymax) of destination grid, in units of destination CRS.
    :param shape: Shape of destination grid (rows, columns).
    :param crs: Coordinate reference system of destination grid.

    :return: Shape, transform and CRS of the grid.
    """

    if ref is not None:
        if crs is not None:
            raise InvalidGridError("Either 'ref' or 'crs' must be provided, not both.")
        if not hasattr(ref, "transform") or not hasattr(ref, "shape"):
            raise InvalidGridError(f"Cannot interpret reference grid from object of type {type(ref).__name__!r}.")

        used = [name for name, arg in {"res": res, "bounds": bounds, "shape": shape}.items() if arg is not None]
        if used:
            warnings.warn(
                category=IgnoredGridWarning,
                message=f"Reference raster already defines a complete grid, ignoring inputs {', '.join(used)}.",
            )

        logging.debug("Match grid input: using reference raster grid.")
        return ref.shape, ref.transform, ref.crs

    if res is None and shape is None:
        raise InvalidGridError("Either a reference raster 'ref', a resolution 'res' or a shape 'shape' must be passed.")

    dst_crs = CRS.from_user_input(crs) if crs is not None else (CRS.from_user_input(gdf.crs) if gdf.crs is not None else None)

    if bounds is None:
        logging.debug("Match grid input: no bounds defined, fallback on vector bounds.")
        if dst_crs is not None and gdf.crs is not None and not dst_crs == CRS.from_user_input(gdf.crs):
            bounds = tuple(gdf.to_crs(dst_crs).total_bounds)
        else:
            bounds = tuple(gdf.total_bounds)

    dst_shape, dst_transform = _grid_from_bounds_res(bounds=bounds, res=res, shape=shape)

    return dst_shape, dst_transform, dst_crs


@dataclass(frozen=True)
class _BurnSpec:
    """
    Normalized rasterization inputs.

    :param geoms: Vector geometries in output CRS.
    :param values: Per-geometry burn values, or None to burn presence.
    :param categories: Labels of integer-coded values, if the burned field is categorical.
    """

    geoms: NDArrayNum
    values: NDArrayNum | None
    categories: dict[int, str] | None


def _normalize_burn_values(gdf: gpd.GeoDataFrame, field: str | None) -> _BurnSpec:
    """
    Normalize burn values into per-geometry values, encoding non-numeric fields as categories.

    Features with empty geometries or missing field values are not burned.
    """

    valid = ~(gdf.geometry.isna() | gdf.geometry.is_empty)

    if field is None:
        return _BurnSpec(geoms=np.asarray(gdf.geometry[valid], dtype=object), values=None, categories=None)

    if field not in gdf.columns:
        raise ValueError(f"Field {field!r} not found in vector attributes {list(gdf.columns)}.")

    column = gdf[field]
    valid &= ~column.isna()
    column = column[valid]

    categories = None
    if pd.api.types.is_bool_dtype(column):
        values = column.to_numpy().astype(np.uint8)
    elif pd.api.types.is_numeric_dtype(column):
        values = column.to_numpy()
    else:
        # Categorical or string attributes are burned as integer codes
        cat = pd.Categorical(column)
        values = cat.codes.astype(np.int32)
        categories = {i: str(c) for i, c in enumerate(cat.categories)}

    return _BurnSpec(geoms=np.asarray(gdf.geometry[valid], dtype=object), values=values, categories=categories)


def _make_dtype(dtype: DTypeLike, background: int | float | None) -> np.dtype:
    """Promote the dtype of burned values to hold the background value."""

    dtype = np.dtype(dtype)
    if background is None:
        return dtype
    if isinstance(background, (float, np.floating)) and not float(background).is_integer():
        return dtype if np.issubdtype(dtype, np.floating) else np.dtype("float64")
    return np.promote_types(dtype, np.min_scalar_type(int(background)))


def _rasterio_rasterize_burn(
    geom: BaseGeometry,
    out_shape: tuple[int, int],
    transform: rio.Affine,
    all_touched: bool = False,
) -> NDArrayBool:
    """
    Call rasterio.features.rasterize to get the cells selected by a single geometry.

    :param geom: Shapely geometry.
    :param out_shape: Output shape (rows, cols).
    :param transform: Affine transform for the output grid.
    :param all_touched: Rasterio rasterize option.
    """
    burned = features.rasterize(
        shapes=[(geom, 1)],
        out_shape=out_shape,
        transform=transform,
        fill=0,
        all_touched=all_touched,
        dtype="uint8",
    )
    return burned.astype(bool)


def _cells_per_feature(
    geoms: Sequence[BaseGeometry],
    out_shape: tuple[int, int],
    transform: rio.Affine,
    touches: bool = False,
) -> list[NDArrayNum]:
    """
    Get the flat indexes of grid cells selected by each geometry.

    Points select the cell containing them. Lines and polygons select the cells whose centre is inside them (GDAL
    line burning for lines), or all the cells they touch if ``touches`` is True. Each geometry is burned on its own
    within the window of cells covering its bounds.

    :param geoms: Geometries, in the CRS of the grid.
    :param out_shape: Shape of the grid (rows, cols).
    :param transform: Transform of the grid.
    :param touches: Whether lines and polygons select all cells they touch.

    :return: List of arrays of flat cell indexes, one per geometry.
    """

    cells = []
    for geom in geoms:
        if geom is None or geom.is_empty:
            cells.append(np.array([], dtype=np.int64))
            continue

        if geom.geom_type in ("Point", "MultiPoint"):
            parts = getattr(geom, "geoms", [geom])
            x = np.array([p.x for p in parts])
            y = np.array([p.y for p in parts])
            i, j = _xy2ij(x, y, transform=transform, shape=out_shape)
            inside = ~_outside_image(i, j, shape=out_shape)
            cells.append(np.ravel_multi_index((i[inside], j[inside]), out_shape).astype(np.int64))
            continue

        try:
            row0, row1, col0, col1 = _snap_bounds(transform, out_shape, geom.bounds, snap="out")
        except InvalidBoundsError:
            # Geometry does not overlap the grid
            cells.append(np.array([], dtype=np.int64))
            continue

        win_transform = transform * rio.Affine.translation(col0, row0)
        burned = _rasterio_rasterize_burn(
            geom, out_shape=(row1 - row0, col1 - col0), transform=win_transform, all_touched=touches
        )
        rows, cols = np.nonzero(burned)
        cells.append(np.ravel_multi_index((rows + row0, cols + col0), out_shape).astype(np.int64))

    return cells


def _resolve_touches(touches: bool | None, family: str) -> bool:
    """Default touch rule: all touched cells for lines, configuration value for polygons."""

    if touches is not None:
        return bool(touches)
    if family == "line":
        return True
    if family == "polygon":
        return bool(config["rasterize_touches"])
    return False


def _aggregate_cells(
    cells: list[NDArrayNum],
    values: NDArrayNum | None,
    fun: str | Callable[[NDArrayNum], Any],
) -> pd.Series:
    """
    Aggregate the values burned by all features per cell, in the order of features.

    :return: Series of aggregated values indexed by flat cell index.
    """

    feature_idx = np.repeat(np.arange(len(cells)), [len(c) for c in cells])
    flat_cells = np.concatenate(cells) if len(cells) > 0 else np.array([], dtype=np.int64)

    if values is None or fun == "count":
        burn_values = np.ones(len(flat_cells), dtype=np.int32)
    else:
        burn_values = np.asarray(values)[feature_idx]

    df = pd.DataFrame({"cell": flat_cells, "value": burn_values})
    grouped = df.groupby("cell", sort=True)["value"]

    if callable(fun):
        return grouped.agg(lambda s: fun(s.to_numpy()))
    if fun == "count":
        return grouped.size()
    return grouped.agg(fun)


def _rasterize(
    gdf: gpd.GeoDataFrame,
    ref: Raster | None = None,
    field: str | None = None,
    fun: str | Callable[[NDArrayNum], Any] = "last",
    background: int | float | None = None,
    touches: bool | None = None,
    res: float | tuple[float, float] | None = None,
    bounds: tuple[float, float, float, float] | None = None,
    shape: tuple[int, int] | None = None,
    crs: CRS | int | str | None = None,
) -> Raster:
    """Rasterize vector features. See details in Vector.rasterize()."""

    from geocarto.raster.raster import Raster

    if not callable(fun) and fun not in _AGG_FUNS:
        raise ValueError(f"Aggregation function must be one of {_AGG_FUNS} or a callable, got {fun!r}.")

    # Compute output grid
    out_shape, out_transform, out_crs = _check_match_grid(
        gdf=gdf, ref=ref, res=res, bounds=bounds, shape=shape, crs=crs
    )

    # Reproject vector into output CRS if needed
    if out_crs is not None and gdf.crs is not None and not CRS.from_user_input(gdf.crs) == out_crs:
        gdf = gdf.to_crs(out_crs)

    burn = _normalize_burn_values(gdf=gdf, field=field)
    family = _geometry_family({g.geom_type for g in burn.geoms})
    all_touched = _resolve_touches(touches, family)

    if burn.categories is not None and (callable(fun) or fun in ("sum", "mean")):
        raise ValueError(f"Cannot aggregate categorical field {field!r} with function {fun!r}.")

    logging.debug(
        "Rasterizing %d %s features on grid of shape %s (touches=%s, fun=%s).",
        len(burn.geoms),
        family,
        out_shape,
        all_touched,
        fun if not callable(fun) else getattr(fun, "__name__", repr(fun)),
    )

    cells = _cells_per_feature(burn.geoms, out_shape=out_shape, transform=out_transform, touches=all_touched)
    per_cell = _aggregate_cells(cells, values=burn.values, fun=fun)

    # Output data type depends on the aggregation
    if fun == "count":
        dtype = np.dtype("int32")
    elif burn.values is None:
        dtype = np.dtype("uint8")
    elif callable(fun) or fun == "mean":
        dtype = np.dtype("float64")
    elif fun == "sum" and np.issubdtype(np.asarray(burn.values).dtype, np.integer):
        dtype = np.dtype("int64")
    else:
        dtype = np.asarray(burn.values).dtype
    dtype = _make_dtype(dtype, background)

    # Unburned cells are either filled with the background, or masked as nodata
    if background is None:
        nodata = np.nan if np.issubdtype(dtype, np.floating) else _default_nodata(dtype)
        out = np.full(out_shape, nodata, dtype=dtype)
    else:
        nodata = None
        out = np.full(out_shape, background, dtype=dtype)

    burned = np.zeros(out_shape, dtype=bool)
    if len(per_cell) > 0:
        out.flat[per_cell.index.to_numpy()] = per_cell.to_numpy().astype(dtype)
        burned.flat[per_cell.index.to_numpy()] = True
    else:
        warnings.warn("No cell of the output grid was selected by the vector features.")

    data = np.ma.masked_array(out, mask=~burned if background is None else np.zeros(out_shape, dtype=bool))
    name = field if field is not None else ("count" if fun == "count" else "layer")
    categories = burn.categories if fun != "count" else None

    return Raster.from_array(
        data=data, transform=out_transform, crs=out_crs, nodata=nodata, names=[name], categories=categories
    )


def _create_mask(
    gdf: gpd.GeoDataFrame,
    ref: Raster | None = None,
    touches: bool | None = None,
    res: float | tuple[float, float] | None = None,
    bounds: tuple[float, float, float, float] | None = None,
    shape: tuple[int, int] | None = None,
    crs: CRS | int | str | None = None,
) -> tuple[NDArrayBool, rio.Affine, CRS | None]:
    """
    Create a boolean mask of the cells selected by any vector feature. See details in Vector.create_mask().

    :return: Mask array, transform and CRS of the grid.
    """

    out_shape, out_transform, out_crs = _check_match_grid(
        gdf=gdf, ref=ref, res=res, bounds=bounds, shape=shape, crs=crs
    )

    if out_crs is not None and gdf.crs is not None and not CRS.from_user_input(gdf.crs) == out_crs:
        gdf = gdf.to_crs(out_crs)

    geoms = gdf.geometry[~(gdf.geometry.isna() | gdf.geometry.is_empty)]
    mask = np.zeros(out_shape, dtype=bool)
    if len(geoms) == 0:
        return mask, out_transform, out_crs

    family = _geometry_family(set(geoms.geom_type))
    cells = _cells_per_feature(
        list(geoms), out_shape=out_shape, transform=out_transform, touches=_resolve_touches(touches, family)
    )
    mask.flat[np.concatenate(cells)] = True

    return mask, out_transform, out_crs
