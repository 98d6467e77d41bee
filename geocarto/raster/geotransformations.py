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
Functionalities for geotransformations of raster objects.
"""

from __future__ import annotations

from typing import Iterable, Literal

import affine
import numpy as np

import geocarto as gc
from geocarto._typing import MArrayNum
from geocarto.exceptions import InvalidBoundsError
from geocarto.raster.georeferencing import _snap_bounds


def _crop(
    source_raster: gc.Raster,
    crop_geom: gc.Raster | gc.Vector | Iterable[float],
    snap: Literal["out", "in", "near"] = "out",
) -> tuple[MArrayNum, affine.Affine]:
    """Crop raster. See details in Raster.crop()."""

    if isinstance(crop_geom, (gc.Raster, gc.Vector)):
        # For another Vector or Raster, we reproject the bounding box in the same CRS as the source
        if source_raster.crs is not None and crop_geom.crs is not None:
            xmin, ymin, xmax, ymax = crop_geom.get_bounds_projected(out_crs=source_raster.crs)
        else:
            xmin, ymin, xmax, ymax = crop_geom.bounds
    elif isinstance(crop_geom, (list, tuple, np.ndarray)):
        if len(crop_geom) != 4:
            raise ValueError("Crop coordinates must be a sequence of 4 values [xmin, ymin, xmax, ymax].")
        xmin, ymin, xmax, ymax = (float(c) for c in crop_geom)
    else:
        raise ValueError("crop_geom must be a Raster, Vector, or list of coordinates.")

    if xmax < xmin or ymax < ymin:
        raise InvalidBoundsError(
            f"Crop coordinates must be ordered as [xmin, ymin, xmax, ymax], got {[xmin, ymin, xmax, ymax]}."
        )

    # Finding the window of cells covering the requested bounds, cropped to image shape
    rowmin, rowmax, colmin, colmax = _snap_bounds(
        transform=source_raster.transform, shape=source_raster.shape, bounds=(xmin, ymin, xmax, ymax), snap=snap
    )

    crop_img = source_raster._data[:, rowmin:rowmax, colmin:colmax].copy()
    tfm = source_raster.transform * affine.Affine.translation(colmin, rowmin)

    return crop_img, tfm
