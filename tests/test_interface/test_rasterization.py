"""Test rasterization of vectors."""

from __future__ import annotations

import geopandas as gpd
import numpy as np
import pytest
from shapely.geometry import LineString, Point, box

import geocarto as gc
from geocarto.exceptions import IgnoredGridWarning, InvalidGridError


def _points(values: list[int] | None = None) -> gc.Vector:
    """Three points: two in the central cell (3, 3) of the example grid and one in the upper-left cell."""
    data = {} if values is None else {"value": values}
    return gc.Vector(
        gpd.GeoDataFrame(data, geometry=[Point(0, 0), Point(0.1, -0.1), Point(-1.4, 1.4)], crs="EPSG:4326")
    )


class TestRasterize:

    elev = gc.examples.elev()

    def test_rasterize_points_count(self) -> None:

        r = _points().rasterize(ref=self.elev, fun="count")

        assert r.georeferenced_grid_equal(self.elev)
        assert r.names == ["count"]
        assert r.dtype == "int32"
        assert r.data[3, 3] == 2
        assert r.data[0, 0] == 1
        # Cells without any point are masked
        assert np.count_nonzero(r.get_mask()) == 34

        # Or filled with a background value
        r0 = _points().rasterize(ref=self.elev, fun="count", background=0)
        assert np.count_nonzero(r0.get_mask()) == 0
        assert r0.data.sum() == 3

    def test_rasterize_presence(self) -> None:

        r = _points().rasterize(ref=self.elev)
        assert r.names == ["layer"]
        assert r.dtype == "uint8"
        assert r.data[3, 3] == 1

    @pytest.mark.parametrize(
        "fun, expected, dtype",
        [("sum", 3, "int64"), ("last", 2, "int64"), ("first", 1, "int64"), ("mean", 1.5, "float64"),
         ("min", 1, "int64"), ("max", 2, "int64")],
    )  # type: ignore
    def test_rasterize_field_aggregation(self, fun: str, expected: float, dtype: str) -> None:
        """Values of features falling in the same cell are aggregated in the order of the features."""

        r = _points([1, 2, 5]).rasterize(ref=self.elev, field="value", fun=fun)

        assert r.names == ["value"]
        assert r.dtype == dtype
        assert r.data[3, 3] == expected
        assert r.data[0, 0] == 5

    def test_rasterize_callable(self) -> None:

        r = _points([1, 2, 5]).rasterize(ref=self.elev, field="value", fun=np.median)
        assert r.dtype == "float64"
        assert r.data[3, 3] == 1.5

        with pytest.raises(ValueError, match="Aggregation function must be one of"):
            _points([1, 2, 5]).rasterize(ref=self.elev, field="value", fun="mode")

    def test_rasterize_lines(self) -> None:
        """Lines burn all the cells they touch by default."""

        line = gc.Vector(gpd.GeoDataFrame(geometry=[LineString([(-1.25, 1.25), (1.25, 1.25)])], crs="EPSG:4326"))
        r = line.rasterize(ref=self.elev)

        assert np.count_nonzero(~r.get_mask()) == 6
        assert not r.get_mask()[0, :].any()

    def test_rasterize_lines_without_touches(self) -> None:
        """Without the touch rule, lines are burned with GDAL line burning, a subset of the touched cells."""

        line = gc.Vector(gpd.GeoDataFrame(geometry=[LineString([(-1.4, 1.3), (1.4, -1.2)])], crs="EPSG:4326"))
        touched = ~line.rasterize(ref=self.elev).get_mask()
        burned = ~line.rasterize(ref=self.elev, touches=False).get_mask()

        assert burned.any()
        assert not (burned & ~touched).any()
        assert np.count_nonzero(burned) < np.count_nonzero(touched)

    @pytest.mark.parametrize(
        "fun, expected",
        [("count", 2), ("sum", 11), ("mean", 5.5), ("min", 4), ("max", 7), ("first", 4), ("last", 7)],
    )  # type: ignore
    def test_rasterize_overlapping_polygons(self, fun: str, expected: float) -> None:
        """Overlapping polygons are burned one at a time, and combined per cell in the order of the features."""

        boxes = gc.Vector(
            gpd.GeoDataFrame(
                {"value": [4, 7]}, geometry=[box(-1.5, -0.5, 0.5, 1.5), box(0.0, -1.5, 1.5, 0.0)], crs="EPSG:4326"
            )
        )
        r = boxes.rasterize(ref=self.elev, field="value", fun=fun)

        # Only cell (3, 3) is covered by both boxes
        assert np.count_nonzero(~r.get_mask()) == 24
        assert r.data[3, 3] == expected
        assert r.data[0, 0] == (1 if fun == "count" else 4)
        assert r.data[5, 5] == (1 if fun == "count" else 7)

    def test_rasterize_polygons_touches(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Polygons burn cells with their centre inside, or all touched cells."""

        square = gc.Vector(gpd.GeoDataFrame(geometry=[box(-1.5, 0.5, 0.0, 1.5)], crs="EPSG:4326"))
        r = square.rasterize(ref=self.elev)
        assert np.count_nonzero(~r.get_mask()) == 6

        # A small polygon containing no cell centre
        small = gc.Vector(gpd.GeoDataFrame(geometry=[box(-1.4, 1.1, -1.3, 1.2)], crs="EPSG:4326"))
        with pytest.warns(UserWarning, match="No cell of the output grid was selected"):
            r = small.rasterize(ref=self.elev)
        assert r.get_mask().all()

        r = small.rasterize(ref=self.elev, touches=True)
        assert np.count_nonzero(~r.get_mask()) == 1
        assert not r.get_mask()[0, 0]

        # The default follows the configuration
        monkeypatch.setitem(gc.config, "rasterize_touches", True)
        r = small.rasterize(ref=self.elev)
        assert np.count_nonzero(~r.get_mask()) == 1

    def test_rasterize_categorical_field(self) -> None:
        """String attributes are burned as integer codes, with categories."""

        area = gc.examples.study_area()
        r = area.rasterize(ref=self.elev, field="name")

        assert r.is_categorical
        assert r.categories == {0: "north", 1: "south"}
        assert set(np.unique(r.data.compressed())) == {0, 1}

        with pytest.raises(ValueError, match="Cannot aggregate categorical field"):
            area.rasterize(ref=self.elev, field="name", fun="mean")
        with pytest.raises(ValueError, match="not found in vector attributes"):
            area.rasterize(ref=self.elev, field="elevation")

    def test_rasterize_grid_definitions(self) -> None:

        # From a resolution, the grid covers the vector bounds
        square = gc.Vector(gpd.GeoDataFrame(geometry=[box(-1.5, 0.5, 0.0, 1.5)], crs="EPSG:4326"))
        r = square.rasterize(res=0.25)
        assert r.shape == (4, 6)
        assert tuple(r.bounds) == (-1.5, 0.5, 0.0, 1.5)
        assert r.crs == square.crs

        # From a shape and bounds
        r = square.rasterize(shape=(2, 2), bounds=(-1.5, -0.5, 0.5, 1.5))
        assert r.res == (1.0, 1.0)

        # In another CRS, with bounds that are not a multiple of the resolution
        with pytest.warns(UserWarning, match="not a multiple of the resolution"):
            r = square.rasterize(res=50000, crs=3857)
        assert r.crs.to_epsg() == 3857
        assert r.bounds.left == pytest.approx(-1.5 * 111319.49, rel=1e-4)

    def test_rasterize_grid_errors(self) -> None:

        square = gc.Vector(gpd.GeoDataFrame(geometry=[box(-1.5, 0.5, 0.0, 1.5)], crs="EPSG:4326"))

        with pytest.raises(InvalidGridError, match="Either 'ref' or 'crs'"):
            square.rasterize(ref=self.elev, crs=4326)
        with pytest.raises(InvalidGridError, match="must be passed"):
            square.rasterize()
        with pytest.warns(IgnoredGridWarning, match="ignoring inputs res"):
            square.rasterize(ref=self.elev, res=1)
