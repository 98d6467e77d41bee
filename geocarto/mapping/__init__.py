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
Thematic map making: classification of values, and a grammar of map layers rendered with Matplotlib.
"""

from geocarto.mapping.classification import Classification, classify, get_palette, pretty  # noqa
from geocarto.mapping.layers import (  # noqa
    borders,
    compass,
    dots,
    facets,
    fill,
    grid,
    layout,
    lines,
    polygons,
    raster,
    scale_bar,
    shape,
    text,
)
from geocarto.mapping.composition import MapSpec  # noqa isort:skip
from geocarto.mapping.interactive import to_leaflet  # noqa isort:skip

__all__ = [
    "Classification",
    "classify",
    "get_palette",
    "pretty",
    "MapSpec",
    "shape",
    "fill",
    "borders",
    "polygons",
    "lines",
    "dots",
    "raster",
    "text",
    "layout",
    "compass",
    "scale_bar",
    "facets",
    "grid",
    "to_leaflet",
]
