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
Drawing helpers of the map grammar: colour mapping, legends and map furniture.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Sequence

import matplotlib
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib import patches
from matplotlib.colors import LinearSegmentedColormap, Normalize, is_color_like, to_hex, to_rgba
from matplotlib.lines import Line2D
from pyproj import CRS

from geocarto._config import config
from geocarto.mapping.classification import _assign, classify, get_palette, pretty

_QUALITATIVE_PALETTE = "tab10"

_H_POSITIONS = {"left": 0.05, "center": 0.5, "right": 0.95}
_V_POSITIONS = {"bottom": 0.05, "center": 0.5, "top": 0.95}


@dataclass
class _LegendEntry:
    """Legend of a mapped attribute: classes with colours, or a continuous colour scale."""

    title: str | None
    kind: str
    labels: list[str]
    colours: list[str]
    missing_colour: str | None = None
    cmap: matplotlib.colors.Colormap | None = None
    norm: Normalize | None = None

    @property
    def is_continuous(self) -> bool:
        return self.cmap is not None


class _ColourMapper:
    """
    Map values to colours through a classification and a palette.

    The classification is computed once on reference values, so that values of different panels or frames are
    coloured consistently.
    """

    def __init__(
        self,
        values: pd.Series | np.ndarray,
        palette: str | Sequence[str] | None = None,
        style: str | None = None,
        n: int | None = None,
        breaks: Sequence[float] | None = None,
        labels: Sequence[str] | None = None,
        missing_colour: str = "lightgrey",
    ):
        self.classification = classify(values, style=style, n=n, breaks=breaks, labels=labels)
        self.missing_colour = missing_colour
        self.cmap = None
        self.norm = None

        cls = self.classification
        if cls.is_continuous:
            if palette is None or isinstance(palette, str):
                self.cmap = matplotlib.colormaps[palette or config["default_palette"]]
            else:
                self.cmap = LinearSegmentedColormap.from_list("palette", list(palette))
            self.norm = Normalize(vmin=cls.breaks[0], vmax=cls.breaks[-1])
            self.colours: list[str] = []
        else:
            if palette is None and cls.style == "cat":
                palette = _QUALITATIVE_PALETTE
            self.colours = get_palette(palette, cls.n_classes)

    def rgba(self, values: pd.Series | np.ndarray) -> np.ndarray:
        """Get RGBA colours of values, with the missing colour for missing or out-of-range values."""

        cls = self.classification
        missing = np.array(to_rgba(self.missing_colour))

        if cls.is_continuous:
            x = np.asarray(values, dtype=float)
            out = self.cmap(self.norm(np.where(np.isfinite(x), x, 0.0)))
            out[~np.isfinite(x)] = missing
            return out

        if cls.style == "cat":
            classes = np.asarray(pd.Categorical(np.asarray(values, dtype=object), categories=cls.categories).codes)
        else:
            classes = _assign(np.asarray(values, dtype=float), cls.breaks)

        # The last row of the table is the missing colour, indexed by -1
        table = np.array([to_rgba(c) for c in self.colours] + [tuple(missing)])
        return table[classes]

    def hex(self, values: pd.Series | np.ndarray) -> list[str]:
        return [to_hex(c, keep_alpha=False) for c in self.rgba(values)]

    def legend(self, title: str | None, kind: str, has_missing: bool) -> _LegendEntry:
        cls = self.classification
        return _LegendEntry(
            title=title,
            kind=kind,
            labels=list(cls.labels),
            colours=list(self.colours),
            missing_colour=self.missing_colour if has_missing else None,
            cmap=self.cmap,
            norm=self.norm,
        )


def _is_fixed_colour(col: Any, columns: Sequence[str]) -> bool:
    """Whether a colour argument is a fixed colour rather than an attribute name."""
    return isinstance(col, str) and col not in columns and is_color_like(col)


##########
# Legends
##########


def _legend_handles(entry: _LegendEntry) -> list[Any]:
    """Build matplotlib handles for a classed legend."""

    labels = list(entry.labels)
    colours = list(entry.colours)
    if entry.missing_colour is not None:
        labels.append("Missing")
        colours.append(entry.missing_colour)

    handles = []
    for label, colour in zip(labels, colours):
        if entry.kind == "lines":
            handles.append(Line2D([0], [0], color=colour, lw=2, label=label))
        elif entry.kind == "dots":
            handles.append(
                Line2D([0], [0], marker="o", color="none", markerfacecolor=colour, markeredgecolor="none", ms=8,
                       label=label)
            )
        else:
            handles.append(patches.Patch(facecolor=colour, edgecolor="black", linewidth=0.5, label=label))
    return handles


def draw_legends(
    fig: matplotlib.figure.Figure,
    axes: Sequence[matplotlib.axes.Axes],
    entries: Sequence[_LegendEntry],
    position: Any = "right",
    colorbars: bool = True,
    classes: bool = True,
) -> None:
    """
    Draw legends next to (outside) or inside the map axes.

    Continuous legends are drawn as colorbars, classed legends as matplotlib legends.

    :param colorbars: Whether to draw the continuous legends.
    :param classes: Whether to draw the classed legends.
    """
    ax = axes[-1]
    outside = position in ("right", "bottom")

    offset = 0.0
    for entry in entries:
        if entry.is_continuous:
            if not colorbars:
                continue
            mappable = matplotlib.cm.ScalarMappable(norm=entry.norm, cmap=entry.cmap)
            orientation = "horizontal" if position == "bottom" else "vertical"
            cbar = fig.colorbar(mappable, ax=list(axes), orientation=orientation, shrink=0.6, pad=0.03)
            if entry.title is not None:
                cbar.set_label(entry.title)
            continue

        if not classes:
            continue
        handles = _legend_handles(entry)
        if outside and position == "right":
            leg = ax.legend(
                handles=handles, title=entry.title, loc="upper left", bbox_to_anchor=(1.02, 1.0 - offset),
                fontsize=8, title_fontsize=9, frameon=False,
            )
            offset += 0.08 * (len(handles) + 2)
        elif outside:
            leg = ax.legend(
                handles=handles, title=entry.title, loc="upper center", bbox_to_anchor=(0.5, -0.05 - offset),
                ncol=min(len(handles), 5), fontsize=8, title_fontsize=9, frameon=False,
            )
            offset += 0.12
        else:
            leg = ax.legend(handles=handles, title=entry.title, loc=position, fontsize=8, title_fontsize=9)
        # Keep previous legends of the same axes
        ax.add_artist(leg)


#################
# Map furniture
#################


def _position(position: Any) -> tuple[float, float]:
    """Convert a position to axes fraction coordinates."""

    if isinstance(position, str):
        position = (position, "bottom") if position in _H_POSITIONS else ("center", position)
    h, v = position
    x = _H_POSITIONS[h] if isinstance(h, str) else float(h)
    y = _V_POSITIONS[v] if isinstance(v, str) else float(v)
    return x, y


def add_north_arrow(ax: matplotlib.axes.Axes, position: Any = ("right", "top"), size: float = 0.08) -> None:
    """Add a north arrow to map axes, at a position in axes fraction."""

    x, y = _position(position)
    # Keep the arrow inside the axes
    y = min(max(y, size + 0.05), 0.97)
    ax.annotate(
        "N",
        xy=(x, y),
        xytext=(x, y - size),
        xycoords="axes fraction",
        textcoords="axes fraction",
        ha="center",
        va="center",
        fontsize=10,
        fontweight="bold",
        arrowprops=dict(facecolor="black", edgecolor="black", width=3, headwidth=9),
        zorder=10,
    )


def _metres_per_unit(crs: CRS | None, latitude: float) -> float | None:
    """Length of one map unit in metres, None if unknown."""

    if crs is None:
        return None
    crs = CRS.from_user_input(crs)
    if crs.is_geographic:
        return 111_320.0 * math.cos(math.radians(latitude))
    factor = crs.axis_info[0].unit_conversion_factor if crs.axis_info else None
    return factor


def add_scalebar(
    ax: matplotlib.axes.Axes,
    crs: CRS | None,
    position: Any = ("left", "bottom"),
    breaks: Sequence[float] | None = None,
) -> None:
    """
    Add a scale bar to map axes, alternating black and white segments between breaks.

    Distances are in kilometres when the map unit is known (geographic or metric), in map units otherwise.
    """

    xmin, xmax = ax.get_xlim()
    ymin, ymax = ax.get_ylim()
    metres = _metres_per_unit(crs, latitude=(ymin + ymax) / 2)

    if metres is None or metres == 0:
        unit, per_unit = "", 1.0
    else:
        unit, per_unit = "km", metres / 1000

    width = (xmax - xmin) * per_unit
    if breaks is None:
        candidates = pretty(0, width / 4, 2)
        breaks = [b for b in candidates if b <= width / 3] or [0, width / 4]
    breaks = sorted(float(b) for b in breaks)
    if breaks[0] != 0:
        breaks = [0.0] + breaks

    x0, y0 = _position(position)
    x0 = min(x0, 0.9)
    x_start = xmin + x0 * (xmax - xmin)
    y_start = ymin + max(y0, 0.04) * (ymax - ymin)
    height = 0.015 * (ymax - ymin)

    for k in range(len(breaks) - 1):
        left = x_start + breaks[k] / per_unit
        seg = (breaks[k + 1] - breaks[k]) / per_unit
        ax.add_patch(
            patches.Rectangle(
                (left, y_start), seg, height, facecolor="black" if k % 2 == 0 else "white", edgecolor="black",
                linewidth=0.5, zorder=10,
            )
        )
    for k, b in enumerate(breaks):
        label = f"{b:g}" + (f" {unit}" if unit and k == len(breaks) - 1 else "")
        ax.text(x_start + b / per_unit, y_start + 1.5 * height, label, ha="center", va="bottom", fontsize=7, zorder=10)


def add_grid(ax: matplotlib.axes.Axes, n: int, col: str, lwd: float, alpha: float, labels: bool) -> None:
    """Add graticule lines at round coordinates of the current extent."""

    xmin, xmax = ax.get_xlim()
    ymin, ymax = ax.get_ylim()
    xticks = [x for x in pretty(xmin, xmax, n) if xmin <= x <= xmax]
    yticks = [y for y in pretty(ymin, ymax, n) if ymin <= y <= ymax]

    for x in xticks:
        ax.axvline(x, color=col, linewidth=lwd, alpha=alpha, zorder=0.5)
    for y in yticks:
        ax.axhline(y, color=col, linewidth=lwd, alpha=alpha, zorder=0.5)

    if labels:
        ax.set_xticks(xticks)
        ax.set_yticks(yticks)
        ax.tick_params(labelsize=7)


def style_axes(ax: matplotlib.axes.Axes, frame: bool, bg_color: str | None) -> None:
    """Remove coordinate ticks, and set the frame and background."""

    ax.set_xticks([])
    ax.set_yticks([])
    ax.set_aspect("equal")
    for spine in ax.spines.values():
        spine.set_visible(frame)
        spine.set_linewidth(0.5)
    if bg_color is not None:
        ax.set_facecolor(bg_color)


def close(fig: matplotlib.figure.Figure) -> None:
    plt.close(fig)


##################
# Layer drawing
##################


def draw_vector_layer(
    ax: matplotlib.axes.Axes,
    gdf: Any,
    family: str,
    kind: str,
    params: dict[str, Any],
    col: Any,
    mapper: _ColourMapper | None,
    zorder: float,
) -> None:
    """
    Draw a layer of vector features on map axes.

    :param gdf: GeoDataFrame of the features to draw, in the map CRS.
    :param family: Geometry family of the features ("point", "line" or "polygon").
    :param kind: Layer kind.
    :param params: Layer parameters.
    :param col: Fixed colour, or attribute name mapped through the colour mapper.
    :param mapper: Colour mapper of the attribute, None for a fixed colour.
    :param zorder: Drawing order of the layer.
    """

    if kind in ("fill", "polygons") and family != "polygon":
        raise ValueError(f"A '{kind}' layer can only draw polygons, got {family} geometries.")
    if kind in ("borders", "lines") and family == "point":
        raise ValueError(f"A '{kind}' layer cannot draw points.")
    if kind == "raster":
        raise ValueError("A 'raster' layer can only draw a raster shape.")
    if len(gdf) == 0:
        return

    alpha = params.get("alpha", 1.0)

    if kind == "text":
        pts = gdf.representative_point()
        for pt, value in zip(pts, gdf[params["label"]]):
            ax.annotate(
                str(value), (pt.x, pt.y), ha="center", va="center", fontsize=params["size"], color=params["col"],
                zorder=zorder,
            )
        return

    colours = col if mapper is None else mapper.hex(gdf[col])

    if kind == "fill":
        gdf.plot(ax=ax, color=colours, edgecolor="none", alpha=alpha, zorder=zorder)
    elif kind == "polygons":
        gdf.plot(
            ax=ax, facecolor=colours, edgecolor=params["border_col"], linewidth=params["lwd"], alpha=alpha,
            zorder=zorder,
        )
    elif kind in ("borders", "lines"):
        target = gdf.boundary if family == "polygon" else gdf.geometry
        target.plot(ax=ax, color=colours, linewidth=params["lwd"], linestyle=params["lty"], alpha=alpha, zorder=zorder)
    else:
        # Lines and polygons are drawn as dots at their representative point
        pts = gdf.geometry if family == "point" and (gdf.geom_type == "Point").all() else gdf.representative_point()
        ax.scatter(pts.x, pts.y, c=colours, s=params["size"], marker=params["shape"], alpha=alpha, zorder=zorder)


def draw_raster_layer(
    ax: matplotlib.axes.Axes,
    source_raster: Any,
    band_name: str,
    params: dict[str, Any],
    mapper: _ColourMapper,
    zorder: float,
) -> None:
    """
    Draw a raster band on map axes, masked cells being transparent.

    :param source_raster: Raster to draw, in the map CRS.
    :param band_name: Name of the band to draw.
    :param params: Layer parameters.
    :param mapper: Colour mapper of the band values.
    :param zorder: Drawing order of the layer.
    """

    rgba = raster_rgba(source_raster, band_name, mapper)
    rgba[..., 3] *= params.get("alpha", 1.0)

    left, bottom, right, top = source_raster.bounds
    ax.imshow(rgba, extent=(left, right, bottom, top), origin="upper", interpolation="nearest", zorder=zorder)


def _category_labels(categories: dict[int, str], values: np.ndarray) -> np.ndarray:
    """Get the label of each category code, None for non-finite or unknown codes."""
    values = np.asarray(values, dtype=float)
    return np.array([categories.get(int(v)) if np.isfinite(v) else None for v in values], dtype=object)


def raster_values(source_raster: Any, band_name: str) -> pd.Series:
    """Get the valid values of a raster band, as category labels for categorical rasters."""

    if band_name not in source_raster.names:
        raise ValueError(f"Band {band_name!r} not found in raster bands {source_raster.names}.")
    band = source_raster._data[source_raster.names.index(band_name)]
    values = band.compressed()

    if source_raster.is_categorical:
        codes = sorted(source_raster.categories)
        labels = [source_raster.categories[c] for c in codes]
        return pd.Series(
            pd.Categorical(_category_labels(source_raster.categories, values), categories=labels)
        )
    return pd.Series(values.astype(float))


def raster_rgba(source_raster: Any, band_name: str, mapper: _ColourMapper) -> np.ndarray:
    """Get the RGBA image of a raster band, masked cells being transparent."""

    band = source_raster._data[source_raster.names.index(band_name)]
    mask = np.ma.getmaskarray(band)
    arr = np.ma.getdata(band)

    if source_raster.is_categorical:
        flat = _category_labels(source_raster.categories, arr.ravel())
    else:
        flat = arr.ravel().astype(float)

    rgba = mapper.rgba(flat).reshape(arr.shape + (4,))
    rgba[mask] = 0.0
    return rgba
