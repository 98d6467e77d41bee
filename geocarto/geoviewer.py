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
geocarto.geoviewer provides a command line tool rendering raster and vector files to a thematic map.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

import matplotlib.pyplot as plt
import rasterio as rio

import geocarto as gc
from geocarto import mapping as gm


def getparser() -> argparse.ArgumentParser:

    # Set up description
    parser = argparse.ArgumentParser(
        prog="geocarto-map", description="Thematic map of raster and vector files supported by GDAL or OGR."
    )

    # Positional arguments
    parser.add_argument("filenames", type=str, nargs="+", help="str, path(s) to the raster or vector files to draw.")

    # optional arguments
    parser.add_argument(
        "-col",
        dest="col",
        type=str,
        default=None,
        help="str, attribute of the vectors or band of the rasters to map (Default is the first band of rasters, "
        "and a fixed colour for vectors).",
    )
    parser.add_argument(
        "-style",
        dest="style",
        type=str,
        default=None,
        help="str, classification style, one of " + ", ".join(gm.classification.STYLES) + " (Default is from config).",
    )
    parser.add_argument(
        "-n", dest="n", type=int, default=None, help="int, number of classes (Default is from config)."
    )
    parser.add_argument(
        "-palette",
        dest="palette",
        type=str,
        default=None,
        help="str, a matplotlib colormap name (Default is from config).",
    )
    parser.add_argument("-title", dest="title", type=str, default=None, help="str, map title (Default is empty).")
    parser.add_argument(
        "-figsize",
        dest="figsize",
        type=str,
        default=None,
        help="str, figure size in inches, two numbers separated by comma, no space (Default is from the number of "
        "panels).",
    )
    parser.add_argument("-dpi", dest="dpi", type=int, default=150, help="int, dpi of the saved figure (Default is 150).")
    parser.add_argument(
        "-save",
        dest="save",
        type=str,
        default="",
        help="str, filename to the output filename to save to disk (Default is displayed on screen).",
    )

    return parser


def _load(filename: str) -> gc.Raster | gc.Vector:
    """Open a file as a raster, or as a vector if it is not a raster."""
    try:
        return gc.Raster(filename)
    except rio.errors.RasterioIOError:
        logging.debug("File %s is not a raster, opening it as a vector.", filename)
        return gc.Vector(filename)


def build_map(
    objs: Sequence[gc.Raster | gc.Vector],
    col: str | None = None,
    style: str | None = None,
    n: int | None = None,
    palette: str | None = None,
    title: str | None = None,
) -> gm.MapSpec:
    """
    Build the map drawing rasters and vectors in order, with the layer fitting each geometry.

    The attribute is mapped on the objects having it, the other objects being drawn with fixed colours.
    """
    classes = dict(style=style, n=n, palette=palette)

    m = None
    for obj in objs:
        part = gm.shape(obj)
        if isinstance(obj, gc.Raster):
            band = col if col in obj.names else None
            part += gm.raster(col=band, **classes)
        else:
            mapped = col is not None and col in obj.columns
            if obj.geom_family == "polygon":
                part += gm.polygons(col=col, **classes) if mapped else gm.polygons()
            elif obj.geom_family == "line":
                part += gm.lines(col=col, lwd=1.5, **classes) if mapped else gm.lines()
            else:
                part += gm.dots(col=col, **classes) if mapped else gm.dots()
        m = part if m is None else m + part

    if m is None:
        raise ValueError("At least one raster or vector is required.")

    return m + gm.layout(title=title) + gm.compass() + gm.scale_bar()


def main(argv: Sequence[str] | None = None) -> None:

    # Parse arguments
    args = getparser().parse_args(argv)

    # Figsize
    if args.figsize is None:
        figsize = None
    else:
        try:
            xfigsize, yfigsize = (float(arg) for arg in args.figsize.split(","))
            figsize = (xfigsize, yfigsize)
        except ValueError as exception:
            print("ERROR: figsize must be two numbers separated by comma, currently set to %s" % args.figsize)
            sys.stderr.write(str(exception))
            sys.exit(1)

    objs = [_load(f) for f in args.filenames]
    m = build_map(objs, col=args.col, style=args.style, n=args.n, palette=args.palette, title=args.title)

    # Save
    if args.save != "":
        m.save(args.save, dpi=args.dpi, figsize=figsize)
        print("Figure saved to file %s." % args.save)
    else:
        m.plot(figsize=figsize)
        plt.show()


if __name__ == "__main__":
    main()
