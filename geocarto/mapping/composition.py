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
Module for MapSpec class, the composition of map elements rendered with Matplotlib.
"""

from __future__ import annotations

import logging
import math
import pathlib
from dataclasses import dataclass, field, replace
from typing import Any, Sequence

import matplotlib
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib import animation, patches
from pyproj import CRS, Transformer

import geocarto as gc
from geocarto.mapping import render
from geocarto.mapping.layers import (
    Compass,
    Facets,
    Grid,
    Layer,
    Layout,
    Position,
    ScaleBar,
    Shape,
)
from geocarto.mapping.render import _ColourMapper, _is_fixed_colour, _LegendEntry

# Layer kinds colouring features from an attribute
_MAPPED_KINDS = ("fill", "polygons", "lines", "dots", "borders", "raster")


@dataclass
class _Group:
    """A shape and the layers drawing it."""

    shape: Shape
    layers: list[Layer] = field(default_factory=list)


@dataclass
class _Inset:
    map_spec: MapSpec
    position: Position
    size: float
    outline: bool


@dataclass
class _Panel:
    """
    A map panel: a facet, an animation frame, or the whole map.

    :param title: Title of the panel.
    :param masks: Selected features of vector groups, by group index.
    :param cols: Attribute or band drawn by layers, by (group index, layer index).
    """

    title: str | None = None
    masks: dict[int, np.ndarray] = field(default_factory=dict)
    cols: dict[tuple[int, int], str] = field(default_factory=dict)


class MapSpec:
    """
    A thematic map, composed of shapes drawn by layers and of map-wide elements (layout, compass, scale bar, facets,
    grid and insets).

    Maps are built by adding elements with "+", which never modifies the maps being added.
    """

    def __init__(self) -> None:
        self.groups: list[_Group] = []
        self.layout = Layout()
        self.compass: Compass | None = None
        self.scale_bar: ScaleBar | None = None
        self.facets: Facets | None = None
        self.grid: Grid | None = None
        self.insets: list[_Inset] = []

    def __repr__(self) -> str:
        shapes = ", ".join(type(g.shape.obj).__name__ + "[" + ", ".join(la.kind for la in g.layers) + "]"
                           for g in self.groups)
        return f"MapSpec(shapes=[{shapes}])"

    def copy(self) -> MapSpec:
        """Copy the map, the drawn rasters and vectors being shared."""
        new_map = MapSpec()
        new_map.groups = [_Group(shape=g.shape, layers=list(g.layers)) for g in self.groups]
        new_map.layout = self.layout
        new_map.compass = self.compass
        new_map.scale_bar = self.scale_bar
        new_map.facets = self.facets
        new_map.grid = self.grid
        new_map.insets = list(self.insets)
        return new_map

    def __add__(self, other: Any) -> MapSpec:
        new_map = self.copy()

        if isinstance(other, MapSpec):
            new_map.groups.extend(_Group(shape=g.shape, layers=list(g.layers)) for g in other.groups)
            if other.layout != Layout():
                new_map.layout = other.layout
            for attr in ("compass", "scale_bar", "facets", "grid"):
                if getattr(other, attr) is not None:
                    setattr(new_map, attr, getattr(other, attr))
            new_map.insets.extend(other.insets)
        elif isinstance(other, Shape):
            new_map.groups.append(_Group(shape=other))
        elif isinstance(other, Layer):
            if len(new_map.groups) == 0:
                raise ValueError(f"A '{other.kind}' layer must follow a shape, add a shape() first.")
            new_map.groups[-1].layers.append(other)
        elif isinstance(other, Layout):
            new_map.layout = other
        elif isinstance(other, Compass):
            new_map.compass = other
        elif isinstance(other, ScaleBar):
            new_map.scale_bar = other
        elif isinstance(other, Facets):
            new_map.facets = other
        elif isinstance(other, Grid):
            new_map.grid = other
        else:
            raise TypeError(f"Cannot add an object of type {type(other).__name__} to a map.")

        return new_map

    @property
    def crs(self) -> CRS | None:
        """CRS of the map, that of its first shape."""
        if len(self.groups) == 0:
            return None
        return self.groups[0].shape.obj.crs

    def inset(
        self,
        other: MapSpec,
        position: Position = ("right", "bottom"),
        size: float = 0.3,
        outline: bool = True,
    ) -> MapSpec:
        """
        Add an inset map drawn on top of the main map, such as an overview map.

        :param other: Map to draw in the inset.
        :param position: Horizontal and vertical position of the inset ("left", "center", "right" and "bottom",
            "center", "top"), or coordinates of its centre in axes fraction.
        :param size: Size of the inset, as a fraction of the main map axes.
        :param outline: Whether to outline the extent of the main map on the inset map.

        :returns: New map with the inset.
        """
        if not isinstance(other, MapSpec):
            raise TypeError("The inset map must be a MapSpec.")
        if not 0 < size < 1:
            raise ValueError(f"Inset size must be between 0 and 1, got {size}.")

        new_map = self.copy()
        new_map.insets.append(_Inset(map_spec=other, position=position, size=size, outline=outline))
        return new_map

    ##############
    # Preparation
    ##############

    def _prepared_objects(self) -> list[gc.Raster | gc.Vector]:
        """Get the shapes of the map, vectors being reprojected to the map CRS."""

        if len(self.groups) == 0:
            raise ValueError("A map needs at least one shape, add a shape() first.")

        map_crs = self.crs
        objs = []
        for group in self.groups:
            obj = group.shape.obj
            if map_crs is not None and obj.crs is not None and obj.crs != map_crs:
                if isinstance(obj, gc.Raster):
                    raise ValueError(
                        "Rasters must share the CRS of the first shape of the map, reproject them beforehand."
                    )
                logging.debug("Reprojecting vector shape to the map CRS %s.", map_crs)
                obj = obj.reproject(crs=map_crs)
            objs.append(obj)
        return objs

    @staticmethod
    def _default_col(obj: gc.Raster | gc.Vector, layer: Layer) -> Any:
        """Column drawn by a layer without panel override."""
        col = layer.params.get("col")
        if isinstance(obj, gc.Raster) and layer.kind == "raster" and col is None:
            return obj.names[0]
        return col

    def _split(self, objs: list[gc.Raster | gc.Vector], by: str) -> list[_Panel]:
        """Split the map into panels, per unique value of an attribute or per raster band."""

        if by == "band":
            for gi, obj in enumerate(objs):
                if isinstance(obj, gc.Raster):
                    break
            else:
                raise ValueError("Splitting by 'band' requires a raster shape.")
            panels = []
            for name in obj.names:
                cols = {(gi, li): name for li, layer in enumerate(self.groups[gi].layers) if layer.kind == "raster"}
                panels.append(_Panel(title=name, cols=cols))
            return panels

        with_col = [gi for gi, obj in enumerate(objs) if isinstance(obj, gc.Vector) and by in obj.columns]
        if len(with_col) == 0:
            raise ValueError(f"No vector shape of the map has an attribute {by!r}.")

        values = objs[with_col[0]].ds[by].dropna().unique()
        try:
            values = sorted(values)
        except TypeError:
            values = list(values)

        return [
            _Panel(title=str(value), masks={gi: (objs[gi].ds[by] == value).to_numpy() for gi in with_col})
            for value in values
        ]

    def _panels(self, objs: list[gc.Raster | gc.Vector]) -> list[_Panel]:
        """Get the panels of the map: facets, one per attribute of a layer, or a single panel."""

        multi_cols = [
            (gi, li, layer.params["col"])
            for gi, group in enumerate(self.groups)
            for li, layer in enumerate(group.layers)
            if isinstance(layer.params.get("col"), (list, tuple))
        ]

        if self.facets is not None:
            if len(multi_cols) > 0:
                raise ValueError("Layers with several attributes cannot be combined with facets.")
            return self._split(objs, self.facets.by)

        if len(multi_cols) > 1:
            raise ValueError("Only one layer of a map can draw several attributes.")
        if len(multi_cols) == 1:
            gi, li, cols = multi_cols[0]
            return [_Panel(title=str(c), cols={(gi, li): c}) for c in cols]

        return [_Panel()]

    def _mappers(
        self, objs: list[gc.Raster | gc.Vector], panels: list[_Panel]
    ) -> tuple[dict[tuple[int, int], _ColourMapper], list[_LegendEntry]]:
        """
        Build the colour mapper of each layer drawing an attribute, on all values drawn by the layer so that panels
        share colours.
        """

        mappers: dict[tuple[int, int], _ColourMapper] = {}
        entries: list[_LegendEntry] = []

        for gi, (group, obj) in enumerate(zip(self.groups, objs)):
            for li, layer in enumerate(group.layers):
                if layer.kind not in _MAPPED_KINDS:
                    continue
                default = self._default_col(obj, layer)
                cols = list(dict.fromkeys(p.cols.get((gi, li), default) for p in panels))

                if isinstance(obj, gc.Raster):
                    if layer.kind != "raster":
                        continue
                    values = pd.concat([render.raster_values(obj, c) for c in cols], ignore_index=True)
                else:
                    if layer.kind == "raster" or all(_is_fixed_colour(c, obj.columns) for c in cols):
                        continue
                    missing = [c for c in cols if c not in obj.columns]
                    if len(missing) > 0:
                        raise ValueError(f"Attribute(s) {missing} not found in vector columns {list(obj.columns)}.")
                    values = pd.concat([obj.ds[c] for c in cols], ignore_index=True)

                params = layer.params
                mapper = _ColourMapper(
                    values,
                    palette=params.get("palette"),
                    style=params.get("style"),
                    n=params.get("n"),
                    breaks=params.get("breaks"),
                    labels=params.get("labels"),
                    missing_colour=self.layout.missing_color,
                )
                mappers[(gi, li)] = mapper

                title = params.get("title")
                if title is None and len(cols) == 1:
                    title = str(cols[0])
                has_missing = bool(np.any(mapper.classification.classes == -1))
                entries.append(mapper.legend(title=title, kind=layer.kind, has_missing=has_missing))

        return mappers, entries

    ############
    # Drawing
    ############

    def _extent(
        self, objs: list[gc.Raster | gc.Vector], panel: _Panel | None = None
    ) -> tuple[float, float, float, float]:
        """Get the extent (xmin, xmax, ymin, ymax) of the map or of a panel, with inner margins."""

        xmin, ymin, xmax, ymax = objs[0].bounds
        if panel is not None and len(panel.masks) > 0:
            selected = [objs[gi].ds[mask] for gi, mask in panel.masks.items() if mask.any()]
            if len(selected) > 0:
                bounds = np.array([gdf.total_bounds for gdf in selected])
                xmin, ymin = bounds[:, 0].min(), bounds[:, 1].min()
                xmax, ymax = bounds[:, 2].max(), bounds[:, 3].max()

        margin = self.layout.inner_margins
        dx, dy = xmax - xmin, ymax - ymin
        pad_x = dx * margin if dx > 0 else (dy * margin if dy > 0 else 0.5)
        pad_y = dy * margin if dy > 0 else pad_x
        return xmin - pad_x, xmax + pad_x, ymin - pad_y, ymax + pad_y

    def _draw_panel(
        self,
        ax: matplotlib.axes.Axes,
        objs: list[gc.Raster | gc.Vector],
        panel: _Panel,
        mappers: dict[tuple[int, int], _ColourMapper],
        free_coords: bool = False,
    ) -> None:
        """Draw the layers and the furniture of a panel on map axes."""

        zorder = 1.0
        for gi, (group, obj) in enumerate(zip(self.groups, objs)):
            for li, layer in enumerate(group.layers):
                col = panel.cols.get((gi, li), self._default_col(obj, layer))
                mapper = mappers.get((gi, li))
                if isinstance(obj, gc.Raster):
                    if layer.kind != "raster":
                        raise ValueError(f"A '{layer.kind}' layer cannot draw a raster shape, use raster().")
                    render.draw_raster_layer(ax, obj, col, layer.params, mapper, zorder)
                else:
                    gdf = obj.ds if gi not in panel.masks else obj.ds[panel.masks[gi]]
                    render.draw_vector_layer(ax, gdf, obj.geom_family, layer.kind, layer.params, col, mapper, zorder)
                zorder += 1

        extent = self._extent(objs, panel if free_coords else None)
        ax.set_xlim(extent[0], extent[1])
        ax.set_ylim(extent[2], extent[3])
        render.style_axes(ax, frame=self.layout.frame, bg_color=self.layout.bg_color)

        if self.grid is not None:
            g = self.grid
            render.add_grid(ax, n=g.n, col=g.col, lwd=g.lwd, alpha=g.alpha, labels=g.labels)
        if self.compass is not None:
            render.add_north_arrow(ax, position=self.compass.position, size=self.compass.size)
        if self.scale_bar is not None:
            render.add_scalebar(ax, crs=self.crs, position=self.scale_bar.position, breaks=self.scale_bar.breaks)

    def _draw_inset(self, ax: matplotlib.axes.Axes, inset: _Inset, main_extent: Sequence[float]) -> None:
        x0, y0 = render._position(inset.position)
        # Keep the inset inside the main axes
        x0 = min(max(x0 - inset.size / 2, 0.0), 1 - inset.size)
        y0 = min(max(y0 - inset.size / 2, 0.0), 1 - inset.size)
        sub_ax = ax.inset_axes((x0, y0, inset.size, inset.size))
        sub_ax.set_zorder(20)

        bg_color = inset.map_spec.layout.bg_color or "white"
        other = _with_layout(inset.map_spec, title=None, legend_show=False, bg_color=bg_color)
        other._render(sub_ax)

        if inset.outline:
            xmin, xmax, ymin, ymax = main_extent
            if self.crs is not None and other.crs is not None and self.crs != other.crs:
                transformer = Transformer.from_crs(self.crs, other.crs, always_xy=True)
                xmin, ymin, xmax, ymax = transformer.transform_bounds(xmin, ymin, xmax, ymax)
            sub_ax.add_patch(
                patches.Rectangle(
                    (xmin, ymin), xmax - xmin, ymax - ymin, fill=False, edgecolor="red", linewidth=1.5, zorder=30
                )
            )

    def _render(
        self, ax: matplotlib.axes.Axes | None = None, figsize: tuple[float, float] | None = None
    ) -> matplotlib.figure.Figure:
        objs = self._prepared_objects()
        panels = self._panels(objs)
        mappers, entries = self._mappers(objs, panels)

        if ax is not None:
            if len(panels) > 1:
                raise ValueError("A map with several panels cannot be drawn on a single axes.")
            fig = ax.figure
            axes = [ax]
        else:
            ncol = self.facets.ncol if self.facets is not None and self.facets.ncol is not None else None
            nrow = self.facets.nrow if self.facets is not None and self.facets.nrow is not None else None
            if ncol is None and nrow is None:
                ncol = math.ceil(math.sqrt(len(panels)))
            if ncol is None:
                ncol = math.ceil(len(panels) / nrow)
            if nrow is None:
                nrow = math.ceil(len(panels) / ncol)
            if nrow * ncol < len(panels):
                raise ValueError(f"A grid of {nrow}x{ncol} panels cannot hold {len(panels)} panels.")

            if figsize is None:
                figsize = (4.0 * ncol + 1.5, 4.0 * nrow)
            fig, grid_axes = plt.subplots(nrow, ncol, figsize=figsize, squeeze=False)
            flat_axes = list(grid_axes.ravel())
            for extra_ax in flat_axes[len(panels):]:
                extra_ax.set_axis_off()
            axes = flat_axes[: len(panels)]

        free_coords = self.facets is not None and self.facets.free_coords
        for panel, panel_ax in zip(panels, axes):
            self._draw_panel(panel_ax, objs, panel, mappers, free_coords=free_coords)
            if len(panels) > 1:
                panel_ax.set_title(panel.title, fontsize=10)

        if self.layout.title is not None:
            if len(panels) > 1:
                fig.suptitle(self.layout.title)
            else:
                axes[0].set_title(self.layout.title)

        if self.layout.legend_show and len(entries) > 0:
            render.draw_legends(fig, axes, entries, position=self.layout.legend_position)

        main_extent = self._extent(objs)
        for inset in self.insets:
            self._draw_inset(axes[0], inset, main_extent)

        return fig

    def plot(
        self, ax: matplotlib.axes.Axes | None = None, figsize: tuple[float, float] | None = None
    ) -> matplotlib.figure.Figure:
        """
        Render the map with Matplotlib.

        :param ax: Axes to draw the map on, for maps with a single panel. Defaults to a new figure.
        :param figsize: Size of the new figure, in inches.

        :returns: Figure of the map.
        """
        fig = self._render(ax=ax, figsize=figsize)
        logging.debug("Rendered map with %d shape(s).", len(self.groups))
        return fig

    def save(self, path: str | pathlib.Path, dpi: int = 150, figsize: tuple[float, float] | None = None) -> None:
        """
        Render the map and save it to an image file, the format being deduced from the file extension.

        :param path: Output file.
        :param dpi: Resolution of the image, in dots per inch.
        :param figsize: Size of the figure, in inches.
        """
        fig = self._render(figsize=figsize)
        fig.savefig(path, dpi=dpi, bbox_inches="tight")
        render.close(fig)
        logging.info("Saved map to %s.", path)

    def animate(
        self,
        along: str,
        interval: int = 500,
        path: str | pathlib.Path | None = None,
        figsize: tuple[float, float] | None = None,
    ) -> animation.FuncAnimation:
        """
        Animate the map with one frame per unique value of an attribute, or per raster band with along="band".

        Colours are classified on all values, so that frames are comparable.

        :param along: Attribute name, or "band".
        :param interval: Delay between frames, in milliseconds.
        :param path: File to save the animation to (e.g., a GIF), with the Pillow writer.
        :param figsize: Size of the figure, in inches.

        :returns: Animation of the map.
        """
        if interval <= 0:
            raise ValueError(f"Interval must be strictly positive, got {interval}.")

        objs = self._prepared_objects()
        frames = self._split(objs, along)
        mappers, entries = self._mappers(objs, frames)

        fig, ax = plt.subplots(figsize=figsize)
        show_legend = self.layout.legend_show and len(entries) > 0
        if show_legend:
            # Colorbars live on their own axes and are drawn once
            render.draw_legends(fig, [ax], entries, position=self.layout.legend_position, classes=False)

        def update(k: int) -> list[Any]:
            ax.clear()
            frame = frames[k]
            self._draw_panel(ax, objs, frame, mappers)
            title = f"{along} = {frame.title}" if along != "band" else frame.title
            if self.layout.title is not None:
                title = f"{self.layout.title}\n{title}"
            ax.set_title(title)
            if show_legend:
                render.draw_legends(fig, [ax], entries, position=self.layout.legend_position, colorbars=False)
            return list(ax.get_children())

        anim = animation.FuncAnimation(fig, update, frames=len(frames), interval=interval, repeat=True)

        if path is not None:
            anim.save(path, writer="pillow", fps=max(1, round(1000 / interval)))
            logging.info("Saved animation of %d frames to %s.", len(frames), path)

        return anim


def _with_layout(map_spec: MapSpec, **kwargs: Any) -> MapSpec:
    """Copy a map with some layout parameters changed."""
    new_map = map_spec.copy()
    new_map.layout = replace(map_spec.layout, **kwargs)
    return new_map
