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
Elements of the map grammar, composed with "+" into a map.

A map starts with a shape (raster or vector), followed by the layers drawing that shape. Several shapes can be
stacked, and non-shape elements (layout, compass, scale bar, facets, grid) apply to the whole map.

Example:

    >>> import geocarto as gc
    >>> from geocarto import mapping as gm
    >>> m = gm.shape(gc.examples.elev()) + gm.raster(style="cont") + gm.shape(gc.examples.study_area()) + gm.borders()
    >>> fig = m.plot()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Sequence, Union

import geocarto as gc

if TYPE_CHECKING:
    from geocarto.mapping.composition import MapSpec

LAYER_KINDS = ("fill", "borders", "polygons", "lines", "dots", "raster", "text")

Position = Union[str, Sequence[str], Sequence[float]]


class _Element:
    """Base class of map elements, which can be added to form a map."""

    def __add__(self, other: Any) -> MapSpec:
        from geocarto.mapping.composition import MapSpec

        return MapSpec() + self + other


@dataclass
class Shape(_Element):
    """Raster or vector object drawn by the following layers."""

    obj: gc.Raster | gc.Vector
    name: str | None = None


@dataclass
class Layer(_Element):
    """Layer drawing the last shape of a map."""

    kind: str
    params: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.kind not in LAYER_KINDS:
            raise ValueError(f"Layer kind must be one of {LAYER_KINDS}, got {self.kind!r}.")


@dataclass
class Layout(_Element):
    title: str | None = None
    legend_position: Position = "right"
    legend_show: bool = True
    frame: bool = True
    bg_color: str | None = None
    inner_margins: float = 0.02
    missing_color: str = "lightgrey"


@dataclass
class Compass(_Element):
    position: Position = ("right", "top")
    size: float = 0.08


@dataclass
class ScaleBar(_Element):
    position: Position = ("left", "bottom")
    breaks: Sequence[float] | None = None


@dataclass
class Facets(_Element):
    by: str
    ncol: int | None = None
    nrow: int | None = None
    free_coords: bool = False


@dataclass
class Grid(_Element):
    n: int = 5
    col: str = "grey"
    lwd: float = 0.5
    alpha: float = 0.5
    labels: bool = True


######################
# Builder functions
######################


def shape(obj: gc.Raster | gc.Vector, name: str | None = None) -> MapSpec:
    """
    Start a group of layers drawing a raster or vector.

    :param obj: Raster or Vector to draw.
    :param name: Name of the shape, used in interactive maps.
    """
    from geocarto.mapping.composition import MapSpec

    if not isinstance(obj, (gc.Raster, gc.Vector)):
        raise TypeError(f"A shape must be a Raster or a Vector, got {type(obj).__name__}.")

    return MapSpec() + Shape(obj=obj, name=name)


def fill(
    col: str | Sequence[str] = "#d9d9d9",
    palette: str | Sequence[str] | None = None,
    style: str | None = None,
    n: int | None = None,
    breaks: Sequence[float] | None = None,
    labels: Sequence[str] | None = None,
    alpha: float = 1.0,
    title: str | None = None,
) -> Layer:
    """
    Fill polygons with a fixed colour, or with colours mapped from an attribute.

    :param col: Fixed colour, attribute name, or list of attribute names (one panel per attribute).
    :param palette: Colormap name or list of colours for mapped attributes.
    :param style: Classification style of mapped attributes, see mapping.classify().
    :param n: Number of classes.
    :param breaks: Class breaks, for the "fixed" style.
    :param labels: Class labels.
    :param alpha: Transparency.
    :param title: Legend title, defaults to the attribute name.
    """
    return Layer(
        "fill",
        dict(col=col, palette=palette, style=style, n=n, breaks=breaks, labels=labels, alpha=alpha, title=title),
    )


def borders(col: str = "black", lwd: float = 1.0, lty: str = "solid", alpha: float = 1.0) -> Layer:
    """
    Draw polygon borders, or lines.

    :param col: Border colour.
    :param lwd: Line width.
    :param lty: Line style, any matplotlib linestyle.
    :param alpha: Transparency.
    """
    return Layer("borders", dict(col=col, lwd=lwd, lty=lty, alpha=alpha))


def polygons(
    col: str | Sequence[str] = "#d9d9d9",
    border_col: str = "black",
    lwd: float = 1.0,
    palette: str | Sequence[str] | None = None,
    style: str | None = None,
    n: int | None = None,
    breaks: Sequence[float] | None = None,
    labels: Sequence[str] | None = None,
    alpha: float = 1.0,
    title: str | None = None,
) -> Layer:
    """
    Draw polygons with both fill and borders. See fill() and borders() for a description of the arguments.
    """
    return Layer(
        "polygons",
        dict(
            col=col,
            border_col=border_col,
            lwd=lwd,
            palette=palette,
            style=style,
            n=n,
            breaks=breaks,
            labels=labels,
            alpha=alpha,
            title=title,
        ),
    )


def lines(
    col: str | Sequence[str] = "black",
    lwd: float = 1.0,
    lty: str = "solid",
    palette: str | Sequence[str] | None = None,
    style: str | None = None,
    n: int | None = None,
    breaks: Sequence[float] | None = None,
    labels: Sequence[str] | None = None,
    alpha: float = 1.0,
    title: str | None = None,
) -> Layer:
    """
    Draw lines with a fixed colour, or with colours mapped from an attribute.

    See fill() for a description of the colour arguments.

    :param lwd: Line width.
    :param lty: Line style, any matplotlib linestyle.
    """
    return Layer(
        "lines",
        dict(
            col=col, lwd=lwd, lty=lty, palette=palette, style=style, n=n, breaks=breaks, labels=labels, alpha=alpha,
            title=title,
        ),
    )


def dots(
    col: str | Sequence[str] = "black",
    size: float = 20,
    shape: str = "o",
    palette: str | Sequence[str] | None = None,
    style: str | None = None,
    n: int | None = None,
    breaks: Sequence[float] | None = None,
    labels: Sequence[str] | None = None,
    alpha: float = 1.0,
    title: str | None = None,
) -> Layer:
    """
    Draw points (or the representative points of lines and polygons).

    See fill() for a description of the colour arguments.

    :param size: Marker size, in points squared.
    :param shape: Marker, any matplotlib marker.
    """
    return Layer(
        "dots",
        dict(
            col=col, size=size, shape=shape, palette=palette, style=style, n=n, breaks=breaks, labels=labels,
            alpha=alpha, title=title,
        ),
    )


def raster(
    col: str | Sequence[str] | None = None,
    palette: str | Sequence[str] | None = None,
    style: str | None = None,
    n: int | None = None,
    breaks: Sequence[float] | None = None,
    labels: Sequence[str] | None = None,
    alpha: float = 1.0,
    title: str | None = None,
) -> Layer:
    """
    Draw a raster, with colours mapped from its values. Categorical rasters are drawn with one colour per category.

    :param col: Band name, or list of band names (one panel per band). Defaults to the first band.

    See fill() for a description of the other arguments.
    """
    return Layer(
        "raster",
        dict(col=col, palette=palette, style=style, n=n, breaks=breaks, labels=labels, alpha=alpha, title=title),
    )


def text(label: str, size: float = 8, col: str = "black") -> Layer:
    """
    Write an attribute as text at the representative point of each feature.

    :param label: Attribute name.
    :param size: Font size.
    :param col: Text colour.
    """
    return Layer("text", dict(label=label, size=size, col=col))


def layout(
    title: str | None = None,
    legend_position: Position = "right",
    legend_show: bool = True,
    frame: bool = True,
    bg_color: str | None = None,
    inner_margins: float = 0.02,
    missing_color: str = "lightgrey",
) -> Layout:
    """
    Set the layout of the map.

    :param title: Map title.
    :param legend_position: "right" or "bottom" to draw legends outside the map, or a matplotlib legend location
        (e.g., "lower left") to draw them inside.
    :param legend_show: Whether to draw legends.
    :param frame: Whether to draw a frame around the map.
    :param bg_color: Background colour of the map.
    :param inner_margins: Margins around the extent of the first shape, as a fraction of its size.
    :param missing_color: Colour of features with missing or out-of-range values.
    """
    return Layout(
        title=title,
        legend_position=legend_position,
        legend_show=legend_show,
        frame=frame,
        bg_color=bg_color,
        inner_margins=inner_margins,
        missing_color=missing_color,
    )


def compass(position: Position = ("right", "top"), size: float = 0.08) -> Compass:
    """
    Add a north arrow.

    :param position: Horizontal and vertical position ("left", "center", "right" and "bottom", "center", "top"), or
        coordinates in axes fraction.
    :param size: Length of the arrow, in axes fraction.
    """
    return Compass(position=position, size=size)


def scale_bar(position: Position = ("left", "bottom"), breaks: Sequence[float] | None = None) -> ScaleBar:
    """
    Add a scale bar.

    :param position: Horizontal and vertical position, or coordinates in axes fraction.
    :param breaks: Distances of the bar ticks, in kilometres for geographic or metric coordinates, otherwise in
        map units. Defaults to round distances covering about a quarter of the map width.
    """
    return ScaleBar(position=position, breaks=breaks)


def facets(by: str, ncol: int | None = None, nrow: int | None = None, free_coords: bool = False) -> Facets:
    """
    Draw one panel per unique value of an attribute, or per raster band with by="band".

    :param by: Attribute name, or "band".
    :param ncol: Number of panel columns.
    :param nrow: Number of panel rows.
    :param free_coords: Whether each panel is zoomed on its own features, or all panels share the extent.
    """
    return Facets(by=by, ncol=ncol, nrow=nrow, free_coords=free_coords)


def grid(n: int = 5, col: str = "grey", lwd: float = 0.5, alpha: float = 0.5, labels: bool = True) -> Grid:
    """
    Add graticule lines at round coordinates.

    :param n: Approximate number of lines in each direction.
    :param col: Line colour.
    :param lwd: Line width.
    :param alpha: Transparency.
    :param labels: Whether to label the coordinates.
    """
    return Grid(n=n, col=col, lwd=lwd, alpha=alpha, labels=labels)
