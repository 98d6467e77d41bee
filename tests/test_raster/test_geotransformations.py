"""Test geotransformations of rasters: cropping."""

from __future__ import annotations

import geopandas as gpd
import numpy as np
import pytest
from shapely.geometry import box

import geocarto as gc
from geocarto.exceptions import InvalidBoundsError


class TestCrop:

    elev = gc.examples.elev()

    def test_crop_bounds(self) -> None:
        """Test cropping to a list of coordinates, snapped outward on the grid."""

        cropped = self.elev.crop([-1.2, -0.2, 0.3, 0.8])

        # Resolution is kept, and bounds are aligned on the grid and contain the requested bounds
        assert cropped.res == self.elev.res
        assert cropped.shape == (3, 4)
        assert tuple(cropped.bounds) == (-1.5, -0.5, 0.5, 1.0)
        assert cropped.data[0, 0] == 7
        assert np.array_equal(cropped.data, self.elev.data[1:4, 0:4])

        # The input is not modified
        assert self.elev.shape == (6, 6)

    def test_crop_snap_in(self) -> None:

        cropped = self.elev.crop([-1.2, -0.2, 0.3, 0.8], snap="in")
        assert cropped.shape == (1, 2)
        left, bottom, right, top = cropped.bounds
        assert left >= -1.2 and bottom >= -0.2 and right <= 0.3 and top <= 0.8

    def test_crop_larger_than_raster(self) -> None:
        """The requested bounds are intersected with the raster extent."""

        cropped = self.elev.crop([-10, -10, 0.25, 10])
        assert cropped.shape == (6, 4)
        assert cropped.bounds.left == -1.5

    def test_crop_vector_and_raster(self) -> None:

        vector = gc.Vector(gpd.GeoDataFrame(geometry=[box(-1.0, -1.0, 0.0, 0.0)], crs="EPSG:4326"))
        cropped = self.elev.crop(vector)
        assert tuple(cropped.bounds) == (-1.0, -1.0, 0.0, 0.0)

        # Cropping to a cropped raster
        cropped2 = self.elev.crop(cropped)
        assert cropped2.raster_equal(cropped)

        # Categories are kept
        grain = gc.examples.grain()
        assert grain.crop(vector).categories == grain.categories

    def test_crop_reprojected_vector(self) -> None:
        """Bounds of a vector in another CRS are reprojected on the fly."""

        vector = gc.Vector(gpd.GeoDataFrame(geometry=[box(-1.0, -1.0, 0.0, 0.0)], crs="EPSG:4326"))
        cropped = self.elev.crop(vector.reproject(crs=3857))
        assert cropped.shape == (2, 2)

    def test_crop_errors(self) -> None:

        with pytest.raises(InvalidBoundsError, match="do not overlap"):
            self.elev.crop([10, 10, 11, 11])
        with pytest.raises(InvalidBoundsError, match="must be ordered"):
            self.elev.crop([1, 1, -1, -1])
        with pytest.raises(ValueError, match="4 values"):
            self.elev.crop([1, 1, 2])
        with pytest.raises(ValueError, match="crop_geom must be"):
            self.elev.crop("bounds")  # type: ignore
