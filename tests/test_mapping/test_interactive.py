"""Test the conversion of maps to interactive ipyleaflet maps."""

from __future__ import annotations

import pytest

import geocarto as gc
from geocarto import mapping as gm

ipyleaflet = pytest.importorskip("ipyleaflet")


class TestToLeaflet:

    elev = gc.examples.elev()
    area = gc.examples.study_area()

    def test_to_leaflet(self) -> None:

        m = gm.shape(self.elev) + gm.raster() + gm.shape(self.area) + gm.polygons("landcover") + gm.text("name")
        lmap = gm.to_leaflet(m)

        assert isinstance(lmap, ipyleaflet.Map)
        assert any(isinstance(layer, ipyleaflet.ImageOverlay) for layer in lmap.layers)
        assert any(isinstance(layer, ipyleaflet.GeoData) for layer in lmap.layers)
        # One legend per classed layer
        legends = [c for c in lmap.controls if isinstance(c, ipyleaflet.LegendControl)]
        assert len(legends) == 2
        assert any(isinstance(c, ipyleaflet.LayersControl) for c in lmap.controls)

        # The map is centred on the first shape
        assert lmap.center[0] == pytest.approx(0, abs=1e-6)
        assert lmap.center[1] == pytest.approx(0, abs=1e-6)

    def test_to_leaflet_no_basemap(self) -> None:

        m = gm.shape(self.area) + gm.fill("index") + gm.facets("name")
        lmap = gm.to_leaflet(m, basemap=False)

        # Facets are ignored, all features being drawn in a single layer
        assert len(lmap.layers) == 1
        geodata = lmap.layers[0]
        assert len(geodata.data["features"]) == 2

    def test_to_leaflet_projected(self) -> None:

        m = gm.shape(self.area.reproject(crs=3857)) + gm.borders()
        lmap = gm.to_leaflet(m, basemap=False)
        assert lmap.center[1] == pytest.approx(0.05, abs=1e-3)

    def test_to_leaflet_errors(self) -> None:

        with pytest.raises(ValueError, match="cannot draw a raster shape"):
            gm.to_leaflet(gm.shape(self.elev) + gm.fill())
