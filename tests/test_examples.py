"""Test the example datasets."""

from __future__ import annotations

import numpy as np
import pytest

import geocarto as gc
from geocarto.examples import GRAIN_CATEGORIES


class TestExamples:
    def test_available(self) -> None:

        for name in gc.examples.available:
            obj = getattr(gc.examples, name)()
            assert isinstance(obj, (gc.Raster, gc.Vector))
            assert obj.crs.to_epsg() == 4326

    def test_rasters(self) -> None:

        elev = gc.examples.elev()
        grain = gc.examples.grain()

        assert elev.georeferenced_grid_equal(grain)
        assert elev.data[0, 0] == 1 and elev.data[-1, -1] == 36
        assert grain.categories == GRAIN_CATEGORIES
        assert set(np.unique(grain.data)).issubset(GRAIN_CATEGORIES)

        # Random draws are reproducible
        assert grain.raster_equal(gc.examples.grain())
        assert not np.array_equal(grain.data, gc.examples.grain(seed=1).data)

    @pytest.mark.parametrize("name, family", [("study_area", "polygon"), ("sample_points", "point"), ("transect", "line")])  # type: ignore
    def test_vectors(self, name: str, family: str) -> None:

        vector = getattr(gc.examples, name)()
        assert vector.geom_family == family

        # All vectors lie within the extent of the rasters
        left, bottom, right, top = vector.bounds
        assert left >= -1.5 and bottom >= -1.5 and right <= 1.5 and top <= 1.5

    def test_sample_points(self) -> None:

        points = gc.examples.sample_points(n=25, seed=3)
        assert len(points) == 25
        assert points.ds["count"].between(1, 9).all()
        assert points.vector_equal(gc.examples.sample_points(n=25, seed=3))
