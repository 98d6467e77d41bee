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

"""
Functions for manipulating georeferencing of the raster objects.
"""

from __future__ import annotations

import logging
import math
import warnings
from typing import Literal

import numpy as np
import rasterio as rio
from affine import Affine

from geocarto._config import config
from geocarto._typing import ArrayLike, DTypeLike, NDArrayNum
from geocarto.exceptions import InvalidBoundsError, InvalidGridError

# Fractional pixel positions are rounded to this number of decimals before flooring, to avoid a coordinate lying
# exactly on a cell edge being attributed to the previous cell because of floating point errors
_INDEX_DECIMALS = 9

_OFFSETS = {"center": (0.5, 0.5), "ul": (0.0, 0.0), "ur": (1.0, 0.0), "ll": (0.0, 1.0), "lr": (1.0, 1.0)}


def _ij2xy(
    i: ArrayLike,
    j: ArrayLike,
    transform: Affine,
    offset: Literal["center", "ul", "ur", "ll", "lr"] = "center",
) -> tuple[NDArrayNum, NDArrayNum]:
    """See description of Raster.ij2xy."""

    if offset not in _OFFSETS:
        raise ValueError(f"Offset must be one of {list(_OFFSETS)}, got {offset!r}.")

    dj, di = _OFFSETS[offset]
    x, y = transform * (np.asarray(j, dtype=float) + dj, np.asarray(i, dtype=float) + di)

    return np.asarray(x), np.asarray(y)


def _xy2ij(
    x: ArrayLike,
    y: ArrayLike,
    transform: Affine,
    shape: tuple[int, int] | None = None,
) -> tuple[NDArrayNum, NDArrayNum]:
    """
    See description of Raster.xy2ij.

    If a shape is passed, coordinates lying exactly on the right or bottom edge of the grid are attributed to the
    last column or row, instead of falling outside the grid.
    """

    x = np.atleast_1d(np.asarray(x, dtype=float))
    y = np.atleast_1d(np.asarray(y, dtype=float))

    cols, rows = ~transform * (x, y)
    cols = np.round(np.asarray(cols, dtype=float), _INDEX_DECIMALS)
    rows = np.round(np.asarray(rows, dtype=float), _INDEX_DECIMALS)

    i = np.floor(rows).astype(int)
    j = np.floor(cols).astype(int)

    if shape is not None:
        i[rows == shape[0]] = shape[0] - 1
        j[cols == shape[1]] = shape[1] - 1

    return i, j


def _coords(
    transform: Affine,
    shape: tuple[int, int],
    grid: bool = True,
    offset: Literal["center", "ul", "ur", "ll", "lr"] = "center",
) -> tuple[NDArrayNum, NDArrayNum]:
    """See description of Raster.coords."""

    xx, _ = _ij2xy(i=np.zeros(shape[1]), j=np.arange(shape[1]), transform=transform, offset=offset)
    _, yy = _ij2xy(i=np.arange(shape[0]), j=np.zeros(shape[0]), transform=transform, offset=offset)

    # If grid is True, return coordinate grids
    if grid:
        meshgrid = tuple(np.meshgrid(xx, yy))
        return meshgrid  # type: ignore
    else:
        return xx, yy


def _outside_image(i: ArrayLike, j: ArrayLike, shape: tuple[int, int]) -> NDArrayNum:
    """Boolean array of indexes falling outside a grid of given shape."""

    i = np.asarray(i)
    j = np.asarray(j)
    return (i < 0) | (j < 0) | (i >= shape[0]) | (j >= shape[1])


def _res(transform: Affine) -> tuple[float, float]:
    """See description of Raster.res"""

    return transform[0], abs(transform[4])


def _bounds(transform: Affine, shape: tuple[int, int]) -> rio.coords.BoundingBox:
    """See description of Raster.bounds."""

    return rio.coords.BoundingBox(*rio.transform.array_bounds(height=shape[0], width=shape[1], transform=transform))


def _snap_bounds(
    transform: Affine,
    shape: tuple[int, int],
    bounds: tuple[float, float, float, float],
    snap: Literal["out", "in", "near"] = "out",
) -> tuple[int, int, int, int]:
    """
    Find the window of a grid covering given bounds, snapped on the grid cells.

    With "out", all cells intersecting the bounds are kept; with "in", only cells entirely inside; with "near", bounds
    are rounded to the nearest cell edge. The window is clipped to the grid.

    :return: Row start, row stop, column start and column stop of the window.
    """

    left, bottom, right, top = bounds
    c0, r0 = ~transform * (left, top)
    c1, r1 = ~transform * (right, bottom)
    c0, c1 = sorted((round(c0, _INDEX_DECIMALS), round(c1, _INDEX_DECIMALS)))
    r0, r1 = sorted((round(r0, _INDEX_DECIMALS), round(r1, _INDEX_DECIMALS)))

    if snap == "out":
        # Degenerate bounds (point or straight line) still touch one cell
        col_start, col_stop = math.floor(c0), max(math.ceil(c1), math.floor(c0) + 1)
        row_start, row_stop = math.floor(r0), max(math.ceil(r1), math.floor(r0) + 1)
    elif snap == "in":
        col_start, col_stop = math.ceil(c0), math.floor(c1)
        row_start, row_stop = math.ceil(r0), math.floor(r1)
    elif snap == "near":
        col_start, col_stop = round(c0), round(c1)
        row_start, row_stop = round(r0), round(r1)
    else:
        raise ValueError(f"Snap must be one of 'out', 'in' or 'near', got {snap!r}.")

    # Clip to the grid
    col_start, col_stop = max(col_start, 0), min(col_stop, shape[1])
    row_start, row_stop = max(row_start, 0), min(row_stop, shape[0])

    if col_stop <= col_start or row_stop <= row_start:
        raise InvalidBoundsError(f"Bounds {tuple(bounds)} do not overlap any cell of the raster grid.")

    logging.debug(
        "Snapped bounds %s to rows %d-%d and columns %d-%d.", tuple(bounds), row_start, row_stop, col_start, col_stop
    )

    return row_start, row_stop, col_start, col_stop


def _grid_from_bounds_res(
    bounds: tuple[float, float, float, float],
    res: float | tuple[float, float] | None = None,
    shape: tuple[int, int] | None = None,
) -> tuple[tuple[int, int], Affine]:
    """
    Derive a grid shape and transform from bounds and either a resolution or a shape.

    When the bounds are not a multiple of the resolution, the resolution is kept and the grid is extended on the
    right and bottom sides.
    """

    left, bottom, right, top = bounds
    if right < left or top < bottom:
        raise InvalidBoundsError(f"Bounds must be ordered as (left, bottom, right, top), got {tuple(bounds)}.")

    if res is not None and shape is not None:
        raise InvalidGridError("Only one of 'res' or 'shape' can be passed to define a grid.")

    if res is not None:
        if isinstance(res, (tuple, list)):
            xres, yres = res
        else:
            xres = yres = res
        if xres <= 0 or yres <= 0:
            raise InvalidGridError(f"Resolution must be strictly positive, got {res}.")

        width = (right - left) / xres
        height = (top - bottom) / yres
        if not (np.isclose(width, round(width)) and np.isclose(height, round(height))):
            if config["warn_bounds_rounding"]:
                warnings.warn("Bounds not a multiple of the resolution, extending the grid to the right and bottom.")
            width, height = math.ceil(width), math.ceil(height)
        width, height = max(int(round(width)), 1), max(int(round(height)), 1)

    elif shape is not None:
        height, width = shape
        if right == left or top == bottom:
            raise InvalidBoundsError("Bounds must have a non-zero extent to derive a grid from a shape.")
        xres = (right - left) / width
        yres = (top - bottom) / height

    else:
        raise InvalidGridError("Either 'res' or 'shape' must be passed to define a grid from bounds.")

    transform = rio.transform.from_origin(left, top, xres, yres)

    return (height, width), transform


# Function to set the default nodata values for any given dtype
# Similar to GDAL for int types, but without absurdly long nodata values for floats.
# For unsigned types, the maximum value is chosen (with a max of 99999).
# For signed types, the minimum value is chosen (with a min of -99999).
def _default_nodata(dtype: DTypeLike) -> int:
    """
    Set the default nodata value for any given dtype, when this is not provided.
    """
    default_nodata_lookup = {
        "uint8": 255,
        "int8": -128,
        "uint16": 65535,
        "int16": -32768,
        "uint32": 99999,
        "int32": -99999,
        "uint64": 99999,
        "int64": -99999,
        "float16": -99999,
        "float32": -99999,
        "float64": -99999,
    }
    # Check argument dtype is as expected
    if not isinstance(dtype, (str, np.dtype, type)):
        raise TypeError(f"dtype {dtype} not understood.")

    dtype = np.dtype(dtype).name

    if dtype in default_nodata_lookup.keys():
        return default_nodata_lookup[dtype]
    else:
        raise NotImplementedError(f"No default nodata value set for dtype {dtype}.")


def _cast_nodata(out_dtype: DTypeLike, nodata: int | float | None) -> int | float | None:
    """
    Cast nodata value for output data type to default nodata if incompatible.

    :param out_dtype: Dtype of output array.
    :param nodata: Nodata value.

    :return: Cast nodata value.
    """

    if np.dtype(out_dtype) == bool:
        return None
    if nodata is not None and not rio.dtypes.can_cast_dtype(nodata, out_dtype):
        nodata = _default_nodata(out_dtype)

    return nodata
