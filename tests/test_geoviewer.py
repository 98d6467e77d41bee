"""Test the geocarto-map command line tool."""

from __future__ import annotations

import pathlib

import matplotlib.pyplot as plt
import pytest

import geocarto as gc
from geocarto import geoviewer


class TestGeoviewer:
    @pytest.fixture()  # type: ignore
    def files(self, tmp_path: pathlib.Path) -> tuple[str, str, str]:
        raster_path = tmp_path / "elev.tif"
        vector_path = tmp_path / "area.geojson"
        lines_path = tmp_path / "transect.geojson"
        gc.examples.elev().save(raster_path)
        gc.examples.study_area().save(vector_path)
        gc.examples.transect().save(lines_path)
        return str(raster_path), str(vector_path), str(lines_path)

    def test_getparser(self) -> None:

        args = geoviewer.getparser().parse_args(["a.tif", "b.gpkg", "-col", "name", "-n", "4", "-dpi", "72"])
        assert args.filenames == ["a.tif", "b.gpkg"]
        assert args.col == "name"
        assert args.n == 4
        assert args.dpi == 72
        assert args.save == ""

    def test_load(self, files: tuple[str, str, str]) -> None:

        assert isinstance(geoviewer._load(files[0]), gc.Raster)
        assert isinstance(geoviewer._load(files[1]), gc.Vector)

    def test_build_map(self) -> None:

        objs = [gc.examples.elev(), gc.examples.study_area(), gc.examples.transect(), gc.examples.sample_points()]
        m = geoviewer.build_map(objs, col="name", title="All")

        assert [g.layers[0].kind for g in m.groups] == ["raster", "polygons", "lines", "dots"]
        # The attribute is mapped on the vectors having it
        assert m.groups[1].layers[0].params["col"] == "name"
        assert m.groups[3].layers[0].params["col"] == "black"
        assert m.compass is not None and m.scale_bar is not None
        assert m.layout.title == "All"

        with pytest.raises(ValueError, match="At least one raster or vector"):
            geoviewer.build_map([])

    def test_main_save(self, files: tuple[str, str, str], tmp_path: pathlib.Path, capsys) -> None:  # type: ignore

        out = tmp_path / "map.png"
        geoviewer.main([*files, "-col", "name", "-style", "cat", "-figsize", "6,5", "-dpi", "50", "-save", str(out)])

        assert out.exists()
        assert "Figure saved to file" in capsys.readouterr().out

    def test_main_show(self, files: tuple[str, str, str], monkeypatch) -> None:  # type: ignore

        shown = []
        monkeypatch.setattr(plt, "show", lambda: shown.append(True))
        geoviewer.main([files[1], "-title", "Regions"])
        assert shown == [True]

    def test_main_figsize_error(self, files: tuple[str, str, str]) -> None:

        with pytest.raises(SystemExit):
            geoviewer.main([files[0], "-figsize", "6"])
