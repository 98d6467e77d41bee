"""Test the shiny application."""

from __future__ import annotations

import geopandas as gpd
import matplotlib
import pytest
from shapely.geometry import Point

import geocarto as gc
from geocarto.app import _map_figure, create_app


class TestApp:

    area = gc.examples.study_area()

    def test_map_figure(self) -> None:

        fig = _map_figure(self.area, "index", n=3, title="Index")
        assert isinstance(fig, matplotlib.figure.Figure)
        assert fig.axes[0].get_title() == "Index"

        fig = _map_figure(gc.examples.sample_points(), "count", n=4, style="equal")
        assert len(fig.axes[0].collections) == 1

    def test_create_app(self) -> None:

        shiny = pytest.importorskip("shiny")

        app = create_app(self.area)
        assert isinstance(app, shiny.App)

        app = create_app(self.area, column_choices=["index"], title="Regions", style="quantile")
        assert isinstance(app, shiny.App)

    def test_create_app_errors(self) -> None:

        pytest.importorskip("shiny")

        with pytest.raises(ValueError, match="not found in vector columns"):
            create_app(self.area, column_choices=["elevation"])

        no_numeric = gc.Vector(gpd.GeoDataFrame({"name": ["a"]}, geometry=[Point(0, 0)], crs=4326))
        with pytest.raises(ValueError, match="at least one attribute"):
            create_app(no_numeric)
