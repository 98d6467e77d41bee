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
Classification of attribute values into map classes, and colour palettes.
"""

from __future__ import annotations

import math
import sys
from dataclasses import dataclass
from typing import Any, Sequence

import matplotlib
import numpy as np
import pandas as pd
from matplotlib.colors import LinearSegmentedColormap, ListedColormap, to_hex

from geocarto._config import config
from geocarto._typing import ArrayLike, NDArrayNum
from geocarto.exceptions import InvalidClassificationError

STYLES = ("fixed", "equal", "quantile", "pretty", "sd", "jenks", "cat", "cont")

# Above this number of values, natural breaks are computed on quantiles of the values
_JENKS_MAX_VALUES = 1000


@dataclass
class Classification:
    """
    Result of the classification of values.

    :param style: Classification style.
    :param breaks: Class breaks, strictly increasing (None for categorical classes).
    :param classes: Class index of each value, -1 for missing or out-of-range values.
    :param labels: Label of each class.
    :param categories: Category of each class, for categorical classes.
    """

    style: str
    breaks: NDArrayNum | None
    classes: NDArrayNum
    labels: list[str]
    categories: list[Any] | None = None

    @property
    def n_classes(self) -> int:
        """Number of classes."""
        return len(self.labels)

    @property
    def is_continuous(self) -> bool:
        return self.style == "cont"


def pretty(lo: float, hi: float, n: int = 5) -> NDArrayNum:
    """
    Compute about n+1 equally spaced "round" values covering the range [lo, hi].

    The spacing is chosen as 1, 2, 5 or 10 times a power of 10, following the algorithm of R's pretty().

    :param lo: Lower value of the range.
    :param hi: Upper value of the range.
    :param n: Desired number of intervals.

    :returns: Array of breaks.
    """
    if not (np.isfinite(lo) and np.isfinite(hi)):
        raise ValueError(f"Range must be finite, got ({lo}, {hi}).")
    if hi < lo:
        lo, hi = hi, lo
    n = max(int(n), 1)

    min_n = n // 3
    h = 1.5
    h5 = 0.5 + 1.5 * h
    eps = sys.float_info.epsilon

    dx = hi - lo
    if dx == 0 and hi == 0:
        cell = 1.0
        i_small = True
    else:
        cell = max(abs(lo), abs(hi))
        u = 1 + (1 / (1 + h) if h5 >= 1.5 * h + 0.5 else 1.5 / (1 + h5))
        u *= max(1, n) * eps
        i_small = dx < cell * u * 3

    if i_small:
        if cell > 10:
            cell = 9 + cell / 10
        cell *= 0.75
        if min_n > 1:
            cell /= min_n
    else:
        cell = dx
        if n > 1:
            cell /= n

    if cell < 20 * sys.float_info.min:
        cell = 20 * sys.float_info.min
    elif cell * 10 > sys.float_info.max:
        cell = 0.1 * sys.float_info.max

    base = 10.0 ** math.floor(math.log10(cell))
    unit = base
    if 2 * base - cell < h * (cell - unit):
        unit = 2 * base
        if 5 * base - cell < h5 * (cell - unit):
            unit = 5 * base
            if 10 * base - cell < h * (cell - unit):
                unit = 10 * base

    ns = math.floor(lo / unit + 1e-10)
    nu = math.ceil(hi / unit - 1e-10)
    while ns * unit > lo + 1e-10 * unit:
        ns -= 1
    while nu * unit < hi - 1e-10 * unit:
        nu += 1

    k = int(0.5 + nu - ns)
    if k < min_n:
        k = min_n - k
        if ns >= 0:
            nu += k // 2
            ns -= k // 2 + k % 2
        else:
            ns -= k // 2
            nu += k // 2 + k % 2

    # Round to the decimals of the unit to avoid floating point artefacts
    decimals = max(0, -math.floor(math.log10(unit)) + 1)
    return np.round(np.arange(ns, nu + 1) * unit, decimals)


def _jenks_breaks(values: NDArrayNum, n: int) -> NDArrayNum:
    """
    Compute natural breaks minimizing the within-class sum of squared deviations (Fisher-Jenks).

    Exact dynamic programming on sorted values.
    """
    x = np.sort(values)
    if x.size > _JENKS_MAX_VALUES:
        x = np.quantile(x, np.linspace(0, 1, _JENKS_MAX_VALUES))
    m = x.size
    n = min(n, m)

    s1 = np.concatenate([[0.0], np.cumsum(x)])
    s2 = np.concatenate([[0.0], np.cumsum(x**2)])

    def ssd(i: NDArrayNum, j: int) -> NDArrayNum:
        """Sum of squared deviations of x[i:j+1] for an array of starts i."""
        count = j - i + 1
        total = s1[j + 1] - s1[i]
        return (s2[j + 1] - s2[i]) - total**2 / count

    # cost[k, j]: minimal cost of k+1 classes covering x[:j+1]; start[k, j]: first index of the last class
    cost = np.full((n, m), np.inf)
    start = np.zeros((n, m), dtype=int)
    cost[0, :] = [ssd(np.array([0]), j)[0] for j in range(m)]

    for k in range(1, n):
        for j in range(k, m):
            i = np.arange(k, j + 1)
            candidates = cost[k - 1, i - 1] + ssd(i, j)
            best = int(np.argmin(candidates))
            cost[k, j] = candidates[best]
            start[k, j] = i[best]

    # Backtrack the class upper bounds
    uppers = []
    j = m - 1
    for k in range(n - 1, 0, -1):
        i = start[k, j]
        uppers.append(x[i - 1])
        j = i - 1

    breaks = np.concatenate([[x[0]], uppers[::-1], [x[-1]]])
    return np.unique(breaks)


def _format_number(x: float) -> str:
    return f"{x:,.6g}"


def _assign(x: NDArrayNum, breaks: NDArrayNum) -> NDArrayNum:
    """Assign values to intervals [b_i, b_i+1), the last interval being closed."""

    classes = np.searchsorted(breaks, x, side="right") - 1
    n_classes = max(len(breaks) - 1, 1)
    finite = np.isfinite(x)
    classes[finite & (x == breaks[-1])] = n_classes - 1
    classes[~finite | (x < breaks[0]) | (x > breaks[-1])] = -1
    return classes.astype(int)


def classify(
    values: ArrayLike | pd.Series,
    style: str | None = None,
    n: int | None = None,
    breaks: Sequence[float] | None = None,
    labels: Sequence[str] | None = None,
) -> Classification:
    """
    Classify values into map classes.

    Non-numeric values are always classified with the "cat" style.

    :param values: Values to classify.
    :param style: Classification style, one of "fixed", "equal", "quantile", "pretty", "sd", "jenks", "cat" or
        "cont". Defaults to config["default_style"].
    :param n: Desired number of classes. Defaults to config["default_n_classes"].
    :param breaks: Class breaks, required for the "fixed" style.
    :param labels: Custom class labels, one per class.

    :returns: Classification of the values.
    """
    style = config["default_style"] if style is None else str(style).lower()
    n = config["default_n_classes"] if n is None else n
    if breaks is not None and style != "cat":
        style = "fixed"

    if style not in STYLES:
        raise InvalidClassificationError(f"Classification style {style!r} not recognized, must be one of {STYLES}.")
    if n < 1:
        raise InvalidClassificationError(f"Number of classes must be at least 1, got {n}.")

    series = pd.Series(values) if not isinstance(values, pd.Series) else values.reset_index(drop=True)
    if not pd.api.types.is_numeric_dtype(series) or pd.api.types.is_bool_dtype(series):
        style = "cat"

    if style == "cat":
        cat = pd.Categorical(series)
        categories = list(cat.categories)
        cat_labels = [str(c) for c in categories] if labels is None else list(labels)
        if len(cat_labels) != len(categories):
            raise InvalidClassificationError(
                f"Number of labels ({len(cat_labels)}) does not match number of categories ({len(categories)})."
            )
        return Classification(
            style="cat", breaks=None, classes=np.asarray(cat.codes, dtype=int), labels=cat_labels, categories=categories
        )

    x = series.to_numpy(dtype=float)
    finite = x[np.isfinite(x)]

    if style == "fixed":
        if breaks is None:
            raise InvalidClassificationError("The 'fixed' style requires breaks.")
        brks = np.asarray(breaks, dtype=float)
        if brks.size < 2 or np.any(np.diff(brks) <= 0):
            raise InvalidClassificationError(f"Breaks must be at least two strictly increasing values, got {breaks}.")
    elif finite.size == 0:
        raise InvalidClassificationError("Cannot classify values without any finite value.")
    elif style == "cont":
        brks = np.array([finite.min(), finite.max()])
        classes = np.where(np.isfinite(x), 0, -1)
        return Classification(style="cont", breaks=brks, classes=classes, labels=[])
    elif style == "equal":
        brks = np.linspace(finite.min(), finite.max(), n + 1)
    elif style == "quantile":
        brks = np.quantile(finite, np.linspace(0, 1, n + 1))
    elif style == "pretty":
        brks = pretty(finite.min(), finite.max(), n)
    elif style == "sd":
        mean = finite.mean()
        sd = finite.std(ddof=1) if finite.size > 1 else 0.0
        if sd == 0:
            brks = np.array([finite.min(), finite.max()])
        else:
            kmin = math.floor((finite.min() - mean) / sd)
            kmax = math.ceil((finite.max() - mean) / sd)
            brks = mean + sd * np.arange(kmin, kmax + 1)
    else:
        brks = _jenks_breaks(finite, n)

    # Collapse duplicated breaks, keeping a single class when all values are equal
    if style != "fixed":
        brks = np.unique(brks)
        if brks.size == 1:
            brks = np.array([brks[0], brks[0]])

    classes = _assign(x, brks)
    n_classes = max(len(brks) - 1, 1)

    if labels is None:
        class_labels = [f"{_format_number(brks[i])} to {_format_number(brks[i + 1])}" for i in range(n_classes)]
    else:
        class_labels = list(labels)
        if len(class_labels) != n_classes:
            raise InvalidClassificationError(
                f"Number of labels ({len(class_labels)}) does not match number of classes ({n_classes})."
            )

    return Classification(style=style, breaks=brks, classes=classes, labels=class_labels)


def get_palette(palette: str | Sequence[str] | None, n: int, reverse: bool = False) -> list[str]:
    """
    Get a list of n colours from a matplotlib colormap name or explicit colours.

    Qualitative colormaps (e.g., "Set1") and explicit colours are used in order, and interpolated if they have fewer
    colours than requested. Continuous colormaps are sampled evenly.

    :param palette: Matplotlib colormap name, or sequence of colours. Defaults to config["default_palette"].
    :param n: Number of colours.
    :param reverse: Whether to reverse the order of colours.

    :returns: List of hexadecimal colours.
    """
    if n < 1:
        return []
    if palette is None:
        palette = config["default_palette"]

    if isinstance(palette, str):
        if palette not in matplotlib.colormaps:
            raise ValueError(f"Palette {palette!r} is not a matplotlib colormap name.")
        cmap = matplotlib.colormaps[palette]
        if isinstance(cmap, ListedColormap) and cmap.N <= 20:
            colours = [to_hex(c) for c in cmap.colors]
        else:
            colours = [to_hex(cmap(v)) for v in np.linspace(0, 1, n)]
    else:
        colours = [to_hex(c) for c in palette]
        if len(colours) == 0:
            raise ValueError("Palette must contain at least one colour.")

    if len(colours) < n:
        cmap = LinearSegmentedColormap.from_list("palette", colours)
        colours = [to_hex(cmap(v)) for v in np.linspace(0, 1, n)]
    elif len(colours) > n:
        colours = colours[:n]

    if reverse:
        colours = colours[::-1]
    return colours
