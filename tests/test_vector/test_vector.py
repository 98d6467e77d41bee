from __future__ import annotations

import pathlib

import geopandas as gpd
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest
from pyproj import CRS
from shapely.geometry import LineString, MultiPoint, Point, Polygon, box

import geocarto as gc
from geocarto.exceptions import InvalidCRSError, InvalidGeometryError


class TestVector:

    area = gc.examples.study_area()
    points = gc.examples.sample_points()
    transect = gc.examples.transect()

    def test_init(self, tmp_path: pathlib.Path) -> None:
        """Test class initiation works as intended"""

        filename = tmp_path / "area.geojson"
        self.area.save(filename)

        # First, with a URL filename
        v0 = gc.Vector(str(filename))
        assert isinstance(v0, gc.Vector)
        assert v0.name == str(filename)

        # Second, with a pathlib path
        v1 = gc.Vector(filename)
        assert isinstance(v1, gc.Vector)

        # Third, with a geopandas dataframe
        v2 = gc.Vector(self.area.ds)
        assert isinstance(v2, gc.Vector)

        # Fourth, with a geopandas series and a shapely geometry
        v3 = gc.Vector(self.area.geometry)
        assert isinstance(v3, gc.Vector)
        assert len(v3.columns) == 1
        v4 = gc.Vector(box(0, 0, 1, 1))
        assert len(v4) == 1
        assert v4.crs is None

        # Fifth, passing a Vector itself
        v5 = gc.Vector(v2)
        assert v5.vector_equal(v2)

        assert len(v0) == len(v2)
        assert list(v0["name"]) == ["north", "south"]

        # Check errors are raised when filename has wrong type
        with pytest.raises(TypeError, match="Filename argument should be a string, path or geodataframe."):
            gc.Vector(1)  # type: ignore

    def test_properties(self) -> None:

        assert self.area.crs == CRS.from_epsg(4326)
        assert len(self.area) == 2
        assert list(self.area.columns) == ["name", "landcover", "index", "geometry"]
        assert tuple(self.area.bounds) == pytest.approx((-1.2, -1.3, 1.3, 1.3))

        assert self.area.geom_type == {"Polygon"}
        assert self.area.geom_family == "polygon"
        assert self.points.geom_family == "point"
        assert self.transect.geom_family == "line"

        # Multi-geometries belong to the same family
        multi = gc.Vector(gpd.GeoSeries([MultiPoint([(0, 0), (1, 1)]), Point(2, 2)]))
        assert multi.geom_family == "point"

        # Mixed geometries are not supported
        mixed = gc.Vector(gpd.GeoSeries([Point(0, 0), LineString([(0, 0), (1, 1)])]))
        with pytest.raises(InvalidGeometryError, match="mixed geometry types"):
            _ = mixed.geom_family

        empty = gc.Vector(gpd.GeoDataFrame(geometry=[], crs=4326))
        with pytest.raises(InvalidGeometryError, match="no geometry"):
            _ = empty.geom_family

    def test_info(self) -> None:

        info = self.area.info()
        assert "EPSG:4326" in info
        assert "Number of features: 2" in info
        assert "['name', 'landcover', 'index']" in info

    def test_copy(self) -> None:

        area2 = self.area.copy()
        assert area2.vector_equal(self.area)

        # Modifying the copy does not modify the original
        area2.ds["index"] = 0.0
        assert not area2.vector_equal(self.area)

    def test_getitem(self) -> None:

        # A column returns a Series
        names = self.area["name"]
        assert isinstance(names, pd.Series)
        assert list(names) == ["north", "south"]

        # A filter returns a Vector
        north = self.area[self.area["name"] == "north"]
        assert isinstance(north, gc.Vector)
        assert len(north) == 1

        # A list of attributes keeps the geometry
        sub = self.area[["name"]]
        assert isinstance(sub, gc.Vector)
        assert sub.geom_family == "polygon"
        assert sub.crs == self.area.crs

    def test_ds_setter(self) -> None:

        v = self.area.copy()
        v.ds = self.points.geometry
        assert v.geom_family == "point"

        with pytest.raises(ValueError, match="GeoSeries or a GeoDataFrame"):
            v.ds = pd.DataFrame({"a": [1]})  # type: ignore

    def test_reproject(self) -> None:

        area_utm = self.area.reproject(crs=3857)
        assert area_utm.crs == CRS.from_epsg(3857)
        assert area_utm.bounds.right == pytest.approx(1.3 * 111319.49, rel=1e-4)

        # With a reference
        area_back = area_utm.reproject(ref=self.area)
        assert area_back.crs == self.area.crs
        assert tuple(area_back.bounds) == pytest.approx(tuple(self.area.bounds))

        # Errors
        with pytest.raises(ValueError, match="Either of `ref` or `crs` must be set"):
            self.area.reproject()
        with pytest.raises(ValueError, match="Either of `ref` or `crs` must be set"):
            self.area.reproject(crs=3857, ref=self.area)
        with pytest.raises(TypeError, match="Type of ref"):
            self.area.reproject(ref="EPSG:3857")  # type: ignore
        with pytest.raises(InvalidCRSError, match="no CRS"):
            gc.Vector(box(0, 0, 1, 1)).reproject(crs=4326)

    def test_crop(self) -> None:

        # Only the northern polygon intersects the northern half
        cropped = self.area.crop([-1.5, 0.5, 1.5, 1.5])
        assert list(cropped["name"]) == ["north"]

        # Geometries are kept whole, unless clipped
        assert cropped.bounds.bottom == pytest.approx(0.1)
        clipped = self.area.crop([-1.5, 0.5, 1.5, 1.5], clip=True)
        assert clipped.bounds.bottom == pytest.approx(0.5)

        # Cropping to a raster
        elev = gc.examples.elev()
        assert len(self.points.crop(elev)) == len(self.points)

        with pytest.raises(TypeError, match="Crop geometry must be"):
            self.area.crop("north")  # type: ignore

    def test_to_lines(self) -> None:

        lines = self.area.to_lines()
        assert lines.geom_family == "line"
        assert list(lines["name"]) == ["north", "south"]

        # Lines are kept as they are
        assert self.transect.to_lines().vector_equal(self.transect)

        with pytest.raises(InvalidGeometryError, match="Point geometries"):
            self.points.to_lines()

    def test_create_mask(self) -> None:

        elev = gc.examples.elev()
        square = gc.Vector(gpd.GeoDataFrame(geometry=[box(-1.5, 0.5, 0.0, 1.5)], crs=4326))

        mask = square.create_mask(ref=elev)
        assert isinstance(mask, gc.Raster)
        assert mask.is_mask
        assert mask.names == ["mask"]
        assert mask.georeferenced_grid_equal(elev)
        assert np.count_nonzero(mask.data) == 6
        assert mask.data[:2, :3].all()

        arr = square.create_mask(ref=elev, as_array=True)
        assert isinstance(arr, np.ndarray)
        assert np.array_equal(arr, mask.data)

        # From a resolution, the grid covers the vector bounds
        mask2 = square.create_mask(res=0.5)
        assert mask2.shape == (2, 3)
        assert mask2.data.all()

    def test_extract_from(self) -> None:

        elev = gc.examples.elev()
        values = self.area.extract_from(elev, fun="mean")
        expected = elev.extract(self.area, fun="mean")
        assert values.equals(expected)

    def test_plot(self) -> None:

        ax = self.area.plot(column="index", cbar_title="Index", ax="new")
        # The colorbar is drawn on an appended axis
        assert len(ax.figure.axes) == 2

        fig, ax2 = plt.subplots()
        out = self.transect.plot(ax=ax2)
        assert out is ax2

        with pytest.raises(ValueError, match="ax must be"):
            self.area.plot(ax=1)  # type: ignore
