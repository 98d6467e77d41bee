"""Test classification of values into map classes, and palettes."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

import geocarto as gc
from geocarto import mapping as gm
from geocarto.exceptions import InvalidClassificationError


class TestPretty:
    @pytest.mark.parametrize(
        "lo, hi, n, expected",
        [
            (0, 100, 5, [0, 20, 40, 60, 80, 100]),
            (1, 36, 10, [0, 5, 10, 15, 20, 25, 30, 35, 40]),
            (1, 36, 5, [0, 5, 10, 15, 20, 25, 30, 35, 40]),
            (0.12, 0.87, 4, [0, 0.2, 0.4, 0.6, 0.8, 1.0]),
            (-3, 3, 3, [-4, -2, 0, 2, 4]),
            (1 - 5e-9, 10, 9, list(range(11))),
        ],
    )  # type: ignore
    def test_pretty(self, lo: float, hi: float, n: int, expected: list[float]) -> None:
        """Check round breaks covering a range, as computed by R's pretty()."""

        assert np.allclose(gm.pretty(lo, hi, n), expected)

    def test_pretty_properties(self) -> None:

        rng = np.random.default_rng(42)
        for _ in range(20):
            lo, hi = np.sort(rng.normal(0, 1000, 2))
            breaks = gm.pretty(lo, hi, 5)
            # The breaks cover the range, and are equally spaced
            assert breaks[0] <= lo and breaks[-1] >= hi
            assert np.allclose(np.diff(breaks), np.diff(breaks)[0])

    def test_pretty_degenerate(self) -> None:

        breaks = gm.pretty(5, 5)
        assert breaks[0] <= 5 <= breaks[-1]
        assert len(breaks) >= 2

        with pytest.raises(ValueError, match="must be finite"):
            gm.pretty(0, np.inf)


class TestClassify:
    def test_equal(self) -> None:

        cls = gm.classify(np.arange(11), style="equal", n=5)
        assert np.allclose(cls.breaks, [0, 2, 4, 6, 8, 10])
        assert cls.n_classes == 5
        assert cls.labels[0] == "0 to 2"
        # Intervals are closed on the left, the last one being also closed on the right
        assert cls.classes.tolist() == [0, 0, 1, 1, 2, 2, 3, 3, 4, 4, 4]

    def test_quantile(self) -> None:

        cls = gm.classify(np.arange(1, 101), style="quantile", n=4)
        assert np.allclose(cls.breaks, [1, 25.75, 50.5, 75.25, 100])
        assert np.bincount(cls.classes).tolist() == [25, 25, 25, 25]

    def test_pretty_style(self) -> None:

        cls = gm.classify([0, 50, 100], style="pretty", n=5)
        assert cls.labels == ["0 to 20", "20 to 40", "40 to 60", "60 to 80", "80 to 100"]
        assert cls.classes.tolist() == [0, 2, 4]

    def test_sd(self) -> None:

        cls = gm.classify([2, 4, 4, 4, 5, 5, 7, 9], style="sd")
        assert cls.n_classes == 4
        assert cls.breaks[0] <= 2 and cls.breaks[-1] >= 9
        # Breaks are spaced by one standard deviation around the mean
        assert np.allclose(np.diff(cls.breaks), np.std([2, 4, 4, 4, 5, 5, 7, 9], ddof=1))

    def test_jenks(self) -> None:

        values = [1, 2, 3, 10, 11, 12, 20, 21, 22]
        cls = gm.classify(values, style="jenks", n=3)
        assert np.allclose(cls.breaks, [1, 3, 12, 22])
        assert cls.classes[0] == 0
        assert cls.classes[-1] == 2

        # Many values are classified on their quantiles
        rng = np.random.default_rng(42)
        many = np.concatenate([rng.normal(0, 1, 2000), rng.normal(100, 1, 2000)])
        cls = gm.classify(many, style="jenks", n=2)
        assert 0 < cls.breaks[1] < 100

    def test_fixed(self) -> None:

        cls = gm.classify([5, 15, 25, np.nan], breaks=[0, 10, 20])
        assert cls.style == "fixed"
        # Missing and out-of-range values have no class
        assert cls.classes.tolist() == [0, 1, -1, -1]

        cls = gm.classify([5, 15], breaks=[0, 10, 20], labels=["low", "high"])
        assert cls.labels == ["low", "high"]

        with pytest.raises(InvalidClassificationError, match="requires breaks"):
            gm.classify([1, 2], style="fixed")
        with pytest.raises(InvalidClassificationError, match="strictly increasing"):
            gm.classify([1, 2], breaks=[0, 10, 5])
        with pytest.raises(InvalidClassificationError, match="Number of labels"):
            gm.classify([5, 15], breaks=[0, 10, 20], labels=["low"])

    def test_cat(self) -> None:

        cls = gm.classify(["b", "a", "b", None])
        assert cls.style == "cat"
        assert cls.categories == ["a", "b"]
        assert cls.labels == ["a", "b"]
        assert cls.classes.tolist() == [1, 0, 1, -1]

        # Booleans are categories
        assert gm.classify(pd.Series([True, False]), style="equal").style == "cat"

        # Category order of categorical series is kept
        cls = gm.classify(pd.Series(pd.Categorical(["sand"], categories=["clay", "silt", "sand"])))
        assert cls.labels == ["clay", "silt", "sand"]

    def test_cont(self) -> None:

        cls = gm.classify([3.0, np.nan, 7.0], style="cont")
        assert cls.is_continuous
        assert cls.breaks.tolist() == [3, 7]
        assert cls.labels == []
        assert cls.classes.tolist() == [0, -1, 0]

    def test_defaults(self) -> None:

        cls = gm.classify(np.arange(101))
        assert cls.style == gc.config["default_style"]
        assert cls.n_classes == gc.config["default_n_classes"]

    def test_constant_values(self) -> None:

        cls = gm.classify([4.0, 4.0], style="equal", n=3)
        assert cls.n_classes == 1
        assert cls.classes.tolist() == [0, 0]

    def test_errors(self) -> None:

        with pytest.raises(InvalidClassificationError, match="not recognized"):
            gm.classify([1, 2], style="random")
        with pytest.raises(InvalidClassificationError, match="at least 1"):
            gm.classify([1, 2], n=0)
        with pytest.raises(InvalidClassificationError, match="without any finite value"):
            gm.classify([np.nan, np.nan])


class TestPalette:
    def test_qualitative(self) -> None:
        """Qualitative colormaps are used in order."""

        assert gm.get_palette("Set1", 3) == ["#e41a1c", "#377eb8", "#4daf4a"]

    def test_continuous(self) -> None:

        colours = gm.get_palette("viridis", 2)
        assert colours == ["#440154", "#fde725"]
        assert gm.get_palette("viridis", 2, reverse=True) == ["#fde725", "#440154"]

        # Defaults to the configuration palette
        assert gm.get_palette(None, 2) == gm.get_palette(gc.config["default_palette"], 2)

    def test_explicit_colours(self) -> None:

        colours = gm.get_palette(["red", "blue"], 3)
        assert len(colours) == 3
        assert colours[0] == "#ff0000" and colours[-1] == "#0000ff"

        assert gm.get_palette(["red", "blue", "green"], 2) == ["#ff0000", "#0000ff"]
        assert gm.get_palette("Set1", 0) == []

    def test_errors(self) -> None:

        with pytest.raises(ValueError, match="not a matplotlib colormap"):
            gm.get_palette("not_a_palette", 3)
        with pytest.raises(ValueError, match="at least one colour"):
            gm.get_palette([], 3)
