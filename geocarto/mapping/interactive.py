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

"""Interactive maps with ipyleaflet."""

from __future__ import annotations

import base64
import io
import logging
import math
from typing import Any

import matplotlib.pyplot as plt
from pyproj import CRS, Transformer

import geocarto as gc
from geocarto._misc import import_optional
from geocarto.mapping import render
from geocarto.mapping.composition import MapSpec

_WGS84 = CRS.from_epsg(4326)

# Column holding the colour of each feature in the layers sent to the map
_COLOUR_COLUMN = "_colour"


def _to_wgs84_bounds(bounds: Any, crs: CRS | None) -> tuple[float, float, float, float]:
    if crs is None or CRS.from_user_input(crs) == _WGS84:
        return tuple(bounds)
    transformer = Transformer.from_crs(crs, _WGS84, always_xy=True)
    return transformer.transform_bounds(*bounds)


def _png_data_url(rgba: Any) -> str:
    """Encode an RGBA image as a PNG data URL."""
    buffer = io.BytesIO()
    plt.imsave(buffer, rgba, format="png")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


def _vector_style(kind: str, params: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    """Get the leaflet style and point style of a vector layer, without the mapped colour."""

    alpha = params.get("alpha", 1.0)
    if kind in ("fill", "polygons"):
        border = params.get("border_col", "none") if kind == "polygons" else "none"
        style = {"color": border, "weight": params.get("lwd", 0) if kind == "polygons" else 0, "fillOpacity": alpha}
        return style, {}
    if kind in ("borders", "lines"):
        return {"weight": params["lwd"], "opacity": alpha, "fillOpacity": 0}, {}
    point_style = {"radius": max(2.0, math.sqrt(params["size"]) / 2), "weight": 0.5, "fillOpacity": alpha}
    return {}, point_style


def to_leaflet(map_spec: MapSpec, basemap: bool = True) -> Any:
    """
    Convert a map to an interactive ipyleaflet map.

    Vector layers are added as GeoData layers, and raster layers as image overlays. Colours are classified as on the
    static map. Facets, insets and map furniture are not converted, and a layer drawing several attributes shows
    only the first.

    :param map_spec: Map to convert.
    :param basemap: Whether to add an OpenStreetMap basemap.

    :returns: ipyleaflet Map.
    """
    ipyleaflet = import_optional("ipyleaflet", extra_name="interactive")

    single_map = map_spec.copy()
    single_map.facets = None
    objs = single_map._prepared_objects()
    panel = single_map._panels(objs)[0]
    mappers, entries = single_map._mappers(objs, [panel])

    west, south, east, north = _to_wgs84_bounds(objs[0].bounds, single_map.crs)
    width = max(east - west, north - south, 1e-6)
    zoom = int(min(max(round(math.log2(360 / width)), 1), 18))
    m = ipyleaflet.Map(center=((south + north) / 2, (west + east) / 2), zoom=zoom, scroll_wheel_zoom=True)
    if not basemap:
        m.clear_layers()

    for gi, (group, obj) in enumerate(zip(single_map.groups, objs)):
        name = group.shape.name
        for li, layer in enumerate(group.layers):
            col = panel.cols.get((gi, li), single_map._default_col(obj, layer))
            mapper = mappers.get((gi, li))
            layer_name = name or (col if isinstance(col, str) and mapper is not None else layer.kind)

            if isinstance(obj, gc.Raster):
                if layer.kind != "raster":
                    raise ValueError(f"A '{layer.kind}' layer cannot draw a raster shape, use raster().")
                rgba = render.raster_rgba(obj, col, mapper)
                rgba[..., 3] *= layer.params.get("alpha", 1.0)
                w, s, e, n = _to_wgs84_bounds(obj.bounds, obj.crs)
                m.add(ipyleaflet.ImageOverlay(url=_png_data_url(rgba), bounds=((s, w), (n, e)), name=layer_name))
                continue

            if layer.kind == "text":
                logging.debug("Text layers are not converted to interactive maps.")
                continue
            if layer.kind == "raster":
                raise ValueError("A 'raster' layer can only draw a raster shape.")

            gdf = obj.ds if obj.crs is None else obj.ds.to_crs(_WGS84)
            gdf = gdf.copy()
            gdf[_COLOUR_COLUMN] = col if mapper is None else mapper.hex(gdf[col])
            if layer.kind == "dots" and obj.geom_family != "point":
                gdf = gdf.set_geometry(gdf.representative_point())

            style, point_style = _vector_style(layer.kind, layer.params)
            colour_key = "color" if layer.kind in ("borders", "lines") else "fillColor"

            def style_callback(feature: dict[str, Any], key: str = colour_key) -> dict[str, Any]:
                return {key: feature["properties"][_COLOUR_COLUMN]}

            m.add(
                ipyleaflet.GeoData(
                    geo_dataframe=gdf,
                    name=layer_name,
                    style=style,
                    point_style=point_style,
                    hover_style={"fillOpacity": 1.0},
                    style_callback=style_callback,
                )
            )

    for entry in entries:
        if entry.is_continuous or len(entry.labels) == 0:
            continue
        legend = dict(zip(entry.labels, entry.colours))
        m.add(ipyleaflet.LegendControl(legend, title=entry.title or "Legend", position="bottomright"))

    m.add(ipyleaflet.LayersControl(position="topright"))
    logging.debug("Converted map to an interactive map with %d layer(s).", len(m.layers))

    return m
