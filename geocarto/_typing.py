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

"""Typing aliases shared by rasters, vectors and maps."""

from __future__ import annotations

from typing import Any, Union

import numpy as np
from numpy.typing import ArrayLike, DTypeLike, NDArray

__all__ = ["ArrayLike", "DTypeLike", "NDArrayNum", "NDArrayBool", "MArrayNum"]

# Numerical (float or int) arrays, and boolean masks
NDArrayNum = NDArray[Union[np.floating[Any], np.integer[Any]]]
NDArrayBool = NDArray[np.bool_]

# Band values of a raster, with nodata cells masked
MArrayNum = np.ma.masked_array[Any, np.dtype[Union[np.floating[Any], np.integer[Any]]]]
