"""Test the composition of maps with the layer grammar, and their rendering."""

from __future__ import annotations

import pathlib

import geopandas as gpd
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest
from matplotlib import animation
from matplotlib.legend import Legend
from shapely.geometry import box

import geocarto as gc
from geocarto import mapping as gm
from geocarto.mapping.layers import Layer
from geocarto.mapping.render import _ColourMapper


def _legend_texts(ax: plt.Axes) -> list[str]:
    legend = ax.get_legend()
    return [t.get_text() for t in legend.get_texts()]


class TestComposition:

    elev = gc.examples.elev()
    area = gc.examples.study_area()

    def test_add(self) -> None:
        """Elements are added into a new map, without modifying the maps being added."""

        m = gm.shape(self.elev) + gm.raster()
        assert isinstance(m, gm.MapSpec)
        assert len(m.groups) == 1
        assert [layer.kind for layer in m.groups[0].layers] == ["raster"]

        m2 = m + gm.shape(self.area) + gm.borders() + gm.compass() + gm.layout(title="Map")
        assert len(m2.groups) == 2
        assert m2.compass is not None
        assert m2.layout.title == "Map"
        assert len(m.groups) == 1
        assert m.compass is None
        assert len(m.groups[0].layers) == 1

        # Maps can be added together
        m3 = m + (gm.shape(self.area) + gm.fill("index"))
        assert len(m3.groups) == 2
        assert m3.crs == self.elev.crs

    def test_add_errors(self) -> None:

        with pytest.raises(ValueError, match="must follow a shape"):
            gm.borders() + gm.shape(self.area)
        with pytest.raises(TypeError, match="Cannot add an object of type int"):
            gm.shape(self.area) + 1
        with pytest.raises(TypeError, match="A shape must be a Raster or a Vector"):
            gm.shape(self.area.ds)  # type: ignore
        with pytest.raises(ValueError, match="Layer kind must be one of"):
            Layer("hexagons")

    def test_plot_raster(self) -> None:

        fig = (gm.shape(self.elev) + gm.raster()).plot()
        ax = fig.axes[0]
        assert len(ax.images) == 1

        # Default classification of the values into pretty classes
        texts = _legend_texts(ax)
        assert texts[0] == "0 to 5"
        assert len(texts) == 8

    def test_plot_raster_continuous(self) -> None:

        fig = (gm.shape(self.elev) + gm.raster(style="cont", palette="magma", title="Elevation")).plot()
        # The colorbar has its own axes
        assert len(fig.axes) == 2
        assert fig.axes[0].get_legend() is None

    def test_plot_categorical_raster(self) -> None:
        """Categories are in the order of their codes, with one colour per category."""

        fig = (gm.shape(gc.examples.grain()) + gm.raster()).plot()
        assert _legend_texts(fig.axes[0]) == ["clay", "silt", "sand"]

    def test_plot_categorical_raster_with_nan(self) -> None:
        """A categorical raster masked with NaN is drawn with its NaN cells transparent."""

        grain = gc.examples.grain().mask(self.area, updatevalue=np.nan)
        assert grain.is_categorical
        assert grain.get_mask()[0, 0]

        fig = (gm.shape(grain) + gm.raster()).plot()
        assert _legend_texts(fig.axes[0]) == ["clay", "silt", "sand"]
        image = fig.axes[0].images[0].get_array()
        assert image[0, 0, 3] == 0

        counts = grain.value_counts()
        assert set(counts.index).issubset({"clay", "silt", "sand"})
        assert counts.sum() == np.count_nonzero(~grain.get_mask())

    def test_plot_masked_raster(self) -> None:
        """Masked cells are transparent."""

        r = self.elev.copy()
        r.data[0, 0] = np.ma.masked
        fig = (gm.shape(r) + gm.raster(style="cont")).plot()
        image = fig.axes[0].images[0].get_array()
        assert image[0, 0, 3] == 0
        assert image[1, 1, 3] == 1

    def test_plot_vectors(self) -> None:

        points = gc.examples.sample_points()
        m = (
            gm.shape(self.area)
            + gm.polygons(col="name", palette="Set2")
            + gm.text("name")
            + gm.shape(gc.examples.transect())
            + gm.lines(col="red", lwd=2)
            + gm.shape(points)
            + gm.dots(col="count", style="equal", n=3)
        )
        fig = m.plot()
        ax = fig.axes[0]

        # Both mapped attributes have a legend
        legends = {id(c) for c in ax.get_children() if isinstance(c, Legend)}
        assert len(legends) == 2
        assert {"north", "south"}.issubset({t.get_text() for t in ax.texts})

    def test_plot_missing_values(self) -> None:

        area = self.area.copy()
        area.ds.loc[1, "index"] = np.nan
        fig = (gm.shape(area) + gm.fill("index", style="fixed", breaks=[0, 5, 10])).plot()
        texts = _legend_texts(fig.axes[0])
        assert texts == ["0 to 5", "5 to 10", "Missing"]

        mapper = _ColourMapper(pd.Series([1.0, np.nan, 3.0]), missing_colour="lightgrey")
        assert mapper.hex([1.0, np.nan, 3.0])[1] == "#d3d3d3"

    def test_plot_layer_errors(self) -> None:

        with pytest.raises(ValueError, match="cannot draw points"):
            (gm.shape(gc.examples.sample_points()) + gm.lines()).plot()
        with pytest.raises(ValueError, match="can only draw polygons"):
            (gm.shape(gc.examples.transect()) + gm.fill()).plot()
        with pytest.raises(ValueError, match="cannot draw a raster shape"):
            (gm.shape(self.elev) + gm.fill()).plot()
        with pytest.raises(ValueError, match="not found in vector columns"):
            (gm.shape(self.area) + gm.fill("elevation")).plot()
        with pytest.raises(ValueError, match="at least one shape"):
            gm.MapSpec().plot()

    def test_crs(self) -> None:
        """Vectors are reprojected to the CRS of the first shape, rasters must share it."""

        area_merc = self.area.reproject(crs=3857)
        fig = (gm.shape(self.elev) + gm.raster() + gm.shape(area_merc) + gm.borders()).plot()
        xmin, xmax = fig.axes[0].get_xlim()
        assert -2 < xmin < -1.5 and 1.5 < xmax < 2

        square = gc.Vector(gpd.GeoDataFrame(geometry=[box(0, 0, 100000, 100000)], crs=3857))
        with pytest.raises(ValueError, match="Rasters must share the CRS"):
            (gm.shape(square) + gm.fill() + gm.shape(self.elev) + gm.raster()).plot()

    def test_furniture(self) -> None:

        m = gm.shape(self.area) + gm.fill() + gm.compass() + gm.scale_bar() + gm.grid(labels=True)
        ax = m.plot().axes[0]
        texts = [t.get_text() for t in ax.texts]

        assert "N" in texts
        # Geographic coordinates have a scale in kilometres
        assert any(t.endswith("km") for t in texts)
        assert len(ax.lines) > 0
        assert len(ax.get_xticks()) > 0

    def test_layout(self) -> None:

        m = gm.shape(self.area) + gm.fill("index") + gm.layout(title="Index", legend_show=False, frame=False)
        ax = m.plot().axes[0]
        assert ax.get_title() == "Index"
        assert ax.get_legend() is None
        assert not ax.spines["left"].get_visible()

        m = gm.shape(self.area) + gm.fill("index") + gm.layout(legend_position="lower left", bg_color="lightblue")
        ax = m.plot().axes[0]
        assert ax.get_legend() is not None

    def test_facets(self) -> None:

        m = gm.shape(self.area) + gm.polygons("landcover") + gm.facets("name")
        fig = m.plot()
        assert [ax.get_title() for ax in fig.axes[:2]] == ["north", "south"]

        # Free coordinates zoom on each panel
        fig = (m + gm.facets("name", free_coords=True)).plot()
        assert fig.axes[0].get_ylim()[0] > 0

        with pytest.raises(ValueError, match="No vector shape of the map has an attribute"):
            (m + gm.facets("region")).plot()

    def test_facets_bands(self) -> None:

        data = np.stack([self.elev.data, self.elev.data * 2])
        r = gc.Raster.from_array(data, transform=self.elev.transform, crs=self.elev.crs, names=["t0", "t1"])

        fig = (gm.shape(r) + gm.raster() + gm.facets("band", ncol=1)).plot()
        titles = [ax.get_title() for ax in fig.axes if ax.get_title()]
        assert titles == ["t0", "t1"]

        # Several attributes drawn by the same layer
        fig = (gm.shape(r) + gm.raster(col=["t1", "t0"])).plot()
        titles = [ax.get_title() for ax in fig.axes if ax.get_title()]
        assert titles == ["t1", "t0"]

        with pytest.raises(ValueError, match="cannot be combined with facets"):
            (gm.shape(r) + gm.raster(col=["t1", "t0"]) + gm.facets("band")).plot()
        with pytest.raises(ValueError, match="single axes"):
            _, ax = plt.subplots()
            (gm.shape(r) + gm.raster(col=["t1", "t0"])).plot(ax=ax)

    def test_plot_on_axes(self) -> None:

        fig, ax = plt.subplots()
        out = (gm.shape(self.area) + gm.borders()).plot(ax=ax)
        assert out is fig
        assert len(ax.collections) > 0

    def test_inset(self) -> None:

        overview = gm.shape(self.elev) + gm.raster(style="cont")
        m = (gm.shape(self.area) + gm.borders()).inset(overview, position=("left", "top"), size=0.25)
        assert len(m.insets) == 1

        fig = m.plot()
        assert len(fig.axes[0].child_axes) == 1

        with pytest.raises(TypeError, match="must be a MapSpec"):
            m.inset(self.elev)  # type: ignore
        with pytest.raises(ValueError, match="between 0 and 1"):
            m.inset(overview, size=1.5)

    def test_save(self, tmp_path: pathlib.Path) -> None:

        path = tmp_path / "map.png"
        (gm.shape(self.elev) + gm.raster() + gm.layout(title="Elevation")).save(path, dpi=50)
        assert path.exists()
        # The figure is closed after saving
        assert len(plt.get_fignums()) == 0

    def test_animate(self, tmp_path: pathlib.Path) -> None:

        m = gm.shape(self.area) + gm.fill("index") + gm.borders()
        anim = m.animate(along="name", interval=200)
        assert isinstance(anim, animation.FuncAnimation)

        path = tmp_path / "map.gif"
        m.animate(along="name", path=path)
        assert path.exists()

        with pytest.raises(ValueError, match="Interval must be strictly positive"):
            m.animate(along="name", interval=0)
