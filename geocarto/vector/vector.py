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
Module for Vector class.
"""

from __future__ import annotations

import logging
import pathlib
from typing import Any, Callable, Iterable, Literal, TypeVar

import geopandas as gpd
import matplotlib
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import rasterio as rio
from geopandas.testing import assert_geodataframe_equal
from mpl_toolkits.axes_grid1 import make_axes_locatable
from pyproj import CRS, Transformer
from shapely.geometry.base import BaseGeometry

import geocarto as gc
from geocarto._typing import NDArrayNum
from geocarto.exceptions import InvalidCRSError, InvalidGeometryError

# This is a generic Vector-type (if subclasses are made, this will change appropriately)
VectorType = TypeVar("VectorType", bound="Vector")

_FAMILIES = {
    "Point": "point",
    "MultiPoint": "point",
    "LineString": "line",
    "MultiLineString": "line",
    "LinearRing": "line",
    "Polygon": "polygon",
    "MultiPolygon": "polygon",
}


def _geometry_family(geom_types: Iterable[str]) -> str:
    """
    Get the family ("point", "line" or "polygon") shared by a set of geometry types.

    :raises InvalidGeometryError: If the geometry types are mixed, empty, or not supported.
    """
    families = set()
    for geom_type in geom_types:
        if geom_type not in _FAMILIES:
            raise InvalidGeometryError(f"Geometry type {geom_type!r} is not supported.")
        families.add(_FAMILIES[geom_type])

    if len(families) == 0:
        raise InvalidGeometryError("Vector has no geometry.")
    if len(families) > 1:
        raise InvalidGeometryError(f"Vector has mixed geometry types {sorted(families)}, which is not supported.")

    return families.pop()


class Vector:
    """
    The georeferenced vector.

     Main attributes:
        ds: :class:`geopandas.GeoDataFrame`
            Geodataframe of the vector.
        crs: :class:`pyproj.crs.CRS`
            Coordinate reference system of the vector.
        bounds: :class:`rio.coords.BoundingBox`
            Coordinate bounds of the vector.
    """

    def __init__(self, filename_or_dataset: str | pathlib.Path | gpd.GeoDataFrame | gpd.GeoSeries | BaseGeometry):
        """
        Instantiate a vector from either a filename, a GeoPandas dataframe or series, or a Shapely geometry.

        :param filename_or_dataset: Path to file, or GeoPandas dataframe or series, or Shapely geometry.
        """

        self._name: str | None = None
        self._ds: gpd.GeoDataFrame | None = None

        # If Vector is passed, simply point back to Vector
        if isinstance(filename_or_dataset, Vector):
            for key in filename_or_dataset.__dict__:
                setattr(self, key, filename_or_dataset.__dict__[key])
            return
        # If filename is passed
        elif isinstance(filename_or_dataset, (str, pathlib.Path)):
            ds = gpd.read_file(filename_or_dataset)
            self._name = str(filename_or_dataset)
        # If GeoPandas or Shapely object is passed
        elif isinstance(filename_or_dataset, gpd.GeoDataFrame):
            ds = filename_or_dataset
        elif isinstance(filename_or_dataset, gpd.GeoSeries):
            ds = gpd.GeoDataFrame(geometry=filename_or_dataset)
        elif isinstance(filename_or_dataset, BaseGeometry):
            ds = gpd.GeoDataFrame({"geometry": [filename_or_dataset]}, crs=None)
        else:
            raise TypeError("Filename argument should be a string, path or geodataframe.")

        self.ds = ds

    @property
    def crs(self) -> CRS | None:
        """Coordinate reference system of the vector."""
        return self.ds.crs

    @property
    def ds(self) -> gpd.GeoDataFrame:
        """Geodataframe of the vector."""
        return self._ds

    @ds.setter
    def ds(self, new_ds: gpd.GeoDataFrame | gpd.GeoSeries) -> None:
        """Set a new geodataframe."""

        if isinstance(new_ds, gpd.GeoDataFrame):
            self._ds = new_ds
        elif isinstance(new_ds, gpd.GeoSeries):
            self._ds = gpd.GeoDataFrame(geometry=new_ds)
        else:
            raise ValueError("The dataset of a vector must be set with a GeoSeries or a GeoDataFrame.")

    @property
    def name(self) -> str | None:
        """Name on disk, if it exists."""
        return self._name

    @property
    def geometry(self) -> gpd.GeoSeries:
        return self.ds.geometry

    @property
    def columns(self) -> pd.Index:
        return self.ds.columns

    @property
    def bounds(self) -> rio.coords.BoundingBox:
        """Total bounding box of the vector."""
        return rio.coords.BoundingBox(*self.ds.total_bounds)

    @property
    def geom_type(self) -> set[str]:
        """Set of geometry types of the vector features."""
        return set(self.ds.geometry[~self.ds.geometry.is_empty].geom_type.dropna().unique())

    @property
    def geom_family(self) -> str:
        """Geometry family of the vector: "point", "line" or "polygon"."""
        return _geometry_family(self.geom_type)

    def vector_equal(self, other: Vector, **kwargs: Any) -> bool:
        """
        Check if two vectors are equal.

        Keyword arguments are passed to geopandas.assert_geodataframe_equal.
        """

        try:
            assert_geodataframe_equal(self.ds, other.ds, **kwargs)
            vector_eq = True
        except AssertionError:
            vector_eq = False

        return vector_eq

    def copy(self: VectorType) -> VectorType:
        """Return a copy of the vector."""
        new_vector = self.__new__(type(self))
        new_vector.__init__(self.ds.copy())  # type: ignore
        new_vector._name = self._name
        return new_vector

    def __len__(self) -> int:
        return len(self.ds)

    def __getitem__(self, key: Any) -> Vector | pd.Series:
        """
        Index the geodataframe: a column name returns a Series, a boolean filter or a list of columns returns a
        Vector.
        """
        out = self.ds.__getitem__(key)
        if isinstance(out, gpd.GeoDataFrame):
            return Vector(out)
        elif isinstance(out, gpd.GeoSeries):
            return Vector(gpd.GeoDataFrame(geometry=out))
        # A list of attribute columns drops the geometry, so we keep it
        elif isinstance(out, pd.DataFrame):
            return Vector(gpd.GeoDataFrame(out, geometry=self.ds.geometry, crs=self.crs))
        return out

    def __repr__(self) -> str:
        """Convert vector to string representation."""

        str_ds = "\n       ".join(self.ds.__str__().split("\n"))

        return f"{self.__class__.__name__}(\n  ds={str_ds}\n  crs={self.crs}\n  bounds={self.bounds})"

    def __str__(self) -> str:
        """Provide simplified vector string representation for print()."""

        return str(self.ds.__str__())

    def info(self) -> str:
        """
        Summarize information about the vector.

        :returns: Information about vector attributes.
        """
        crs_str = "None" if self.crs is None else f"EPSG:{self.crs.to_epsg()}"
        as_str = [
            f"Filename:           {self.name} \n",
            f"Coordinate system:  {crs_str}\n",
            f"Extent:             {self.ds.total_bounds.tolist()} \n",
            f"Number of features: {len(self.ds)} \n",
            f"Geometry types:     {sorted(self.geom_type)} \n",
            f"Attributes:         {[c for c in self.ds.columns if c != self.ds.geometry.name]}",
        ]

        return "".join(as_str)

    def save(self, filename: str | pathlib.Path, driver: str | None = None, **kwargs: Any) -> None:
        """
        Write the vector to file.

        This function is a simple wrapper of :func:`geopandas.GeoDataFrame.to_file`. See there for details.

        :param filename: Filename to write the file to.
        :param driver: Driver to write file with.
        """

        self.ds.to_file(filename=filename, driver=driver, **kwargs)
        logging.info("Vector saved under %s", filename)

    ########################
    # Geotransformations
    ########################

    def get_bounds_projected(self, out_crs: CRS | int | str, densify_points: int = 21) -> rio.coords.BoundingBox:
        """
        Get vector bounds projected in a specified CRS.

        :param out_crs: Output CRS.
        :param densify_points: Number of points to densify each edge of the bounds with before projecting.
        """
        out_crs = CRS.from_user_input(out_crs)
        if self.crs is None or out_crs == self.crs:
            return self.bounds

        transformer = Transformer.from_crs(self.crs, out_crs, always_xy=True)
        return rio.coords.BoundingBox(*transformer.transform_bounds(*self.bounds, densify_pts=densify_points))

    def reproject(
        self: VectorType,
        crs: CRS | str | int | None = None,
        ref: gc.Raster | Vector | None = None,
    ) -> VectorType:
        """
        Reproject vector to a specified coordinate reference system.

        **Match-reference:** a reference raster or vector can be passed to match CRS during reprojection.

        Alternatively, a CRS can be passed in many formats (string, EPSG integer, or CRS).

        :param crs: Specify the coordinate reference system or EPSG to reproject to.
        :param ref: Reference raster or vector whose CRS to use as a reference for reprojection.

        :returns: Reprojected vector.
        """
        if ref is not None and crs is not None:
            raise ValueError("Either of `ref` or `crs` must be set. Not both.")
        if ref is not None:
            if not isinstance(ref, (gc.Raster, Vector)):
                raise TypeError("Type of ref must be a Raster or Vector.")
            crs = ref.crs
        if crs is None:
            raise ValueError("Either of `ref` or `crs` must be set. Not both.")
        if self.crs is None:
            raise InvalidCRSError("Vector has no CRS, it cannot be reprojected.")

        new_vector = self.copy()
        new_vector.ds = self.ds.to_crs(CRS.from_user_input(crs))
        return new_vector

    def crop(
        self: VectorType,
        crop_geom: gc.Raster | Vector | list[float] | tuple[float, ...],
        clip: bool = False,
    ) -> VectorType:
        """
        Crop the vector to given extent.

        **Match-reference:** a reference raster or vector can be passed to match bounds during cropping.

        Optionally, clip geometries to that extent (by default keeps all intersecting).

        Reprojection is done on the fly if georeferenced objects have different projections.

        :param crop_geom: Geometry to crop vector to, as either a Raster object, a Vector object, or a list of
            coordinates. If ``crop_geom`` is a raster or a vector, will crop to the bounds. If ``crop_geom`` is a
            list of coordinates, the order is assumed to be [xmin, ymin, xmax, ymax].
        :param clip: Whether to clip the geometry to the given extent (by default keeps all intersecting).

        :returns: Cropped vector.
        """
        if isinstance(crop_geom, (gc.Raster, Vector)):
            # For another Vector or Raster, we reproject the bounding box in the same CRS as self
            if self.crs is not None and crop_geom.crs is not None:
                xmin, ymin, xmax, ymax = crop_geom.get_bounds_projected(out_crs=self.crs)
            else:
                xmin, ymin, xmax, ymax = crop_geom.bounds
        elif isinstance(crop_geom, (list, tuple)):
            xmin, ymin, xmax, ymax = crop_geom
        else:
            raise TypeError("Crop geometry must be a Raster, Vector, or list of coordinates.")

        new_vector = self.copy()
        new_vector.ds = new_vector.ds.cx[xmin:xmax, ymin:ymax]
        if clip:
            new_vector.ds = new_vector.ds.clip(mask=(xmin, ymin, xmax, ymax))
        return new_vector

    def to_lines(self: VectorType) -> VectorType:
        """
        Convert polygon boundaries (or lines) to line geometries, keeping the attributes.

        :raises InvalidGeometryError: If the vector contains points.

        :returns: Line vector.
        """
        family = self.geom_family
        if family == "point":
            raise InvalidGeometryError("Point geometries cannot be converted to lines.")

        new_vector = self.copy()
        if family == "polygon":
            new_vector.ds = new_vector.ds.set_geometry(new_vector.ds.geometry.boundary)
        return new_vector

    ###############################
    # Raster-vector interactions
    ###############################

    def rasterize(
        self,
        ref: gc.Raster | None = None,
        field: str | None = None,
        fun: str | Callable[[NDArrayNum], float] = "last",
        background: int | float | None = None,
        touches: bool | None = None,
        res: float | tuple[float, float] | None = None,
        bounds: tuple[float, float, float, float] | None = None,
        shape: tuple[int, int] | None = None,
        crs: CRS | int | str | None = None,
    ) -> gc.Raster:
        """
        Rasterize the vector features into a raster.

        **Match-reference:** a raster can be passed as a reference to match its resolution, bounds and CRS.

        Alternatively, a resolution or a shape can be passed, with optional bounds (defaults to the vector bounds)
        and CRS (defaults to the vector CRS).

        - Points are burned in the cell containing them.
        - Lines are burned in all cells they touch, unless ``touches`` is False.
        - Polygons are burned in all cells whose centre is inside them, or in all cells they touch if ``touches`` is
          True. By default, follows config["rasterize_touches"].

        :param ref: Reference raster to match during rasterization.
        :param field: Attribute column of the values to burn. Default burns 1 (presence).
        :param fun: Aggregation of the values falling in the same cell: "last", "first", "sum", "mean", "min",
            "max", "count", or a callable.
        :param background: Value of cells with no feature. If None, these cells are masked as nodata.
        :param touches: Whether to burn all cells touched by lines or polygons.
        :param res: Output resolution, used if no reference is passed.
        :param bounds: Output bounds (left, bottom, right, top), used if no reference is passed.
        :param shape: Output shape (rows, columns), used if no reference is passed.
        :param crs: Output CRS, used if no reference is passed.

        :returns: Rasterized vector.
        """
        from geocarto.interface.rasterization import _rasterize

        return _rasterize(
            gdf=self.ds,
            ref=ref,
            field=field,
            fun=fun,
            background=background,
            touches=touches,
            res=res,
            bounds=bounds,
            shape=shape,
            crs=crs,
        )

    def create_mask(
        self,
        ref: gc.Raster | None = None,
        touches: bool | None = None,
        res: float | tuple[float, float] | None = None,
        bounds: tuple[float, float, float, float] | None = None,
        shape: tuple[int, int] | None = None,
        crs: CRS | int | str | None = None,
        as_array: bool = False,
    ) -> gc.Raster | NDArrayNum:
        """
        Create a raster mask from the vector features (True if cell is selected by any vector feature, False if not).

        Cells are selected with the same rules as Vector.rasterize().

        :param ref: Reference raster to match during masking.
        :param touches: Whether to select all cells touched by lines or polygons.
        :param res: Spatial resolution of mask. Required if no reference or shape is passed.
        :param bounds: Bounds of mask (left, bottom, right, top). Defaults to this vector's bounds.
        :param shape: Shape of mask (rows, columns).
        :param crs: Coordinate reference system for output mask. Defaults to this vector's crs.
        :param as_array: Whether to return mask as a boolean array.

        :returns: A raster mask.
        """
        from geocarto.interface.rasterization import _create_mask

        mask, transform, out_crs = _create_mask(
            gdf=self.ds, ref=ref, touches=touches, res=res, bounds=bounds, shape=shape, crs=crs
        )

        if as_array:
            return mask
        return gc.Raster.from_array(data=mask, transform=transform, crs=out_crs, nodata=None, names=["mask"])

    def extract_from(self, raster: gc.Raster, **kwargs: Any) -> pd.DataFrame | Vector:
        """
        Extract values of a raster at the locations of the vector features.

        Keyword arguments are passed to Raster.extract().
        """
        return raster.extract(self, **kwargs)

    ##########
    # Plotting
    ##########

    def plot(
        self,
        column: str | None = None,
        cmap: matplotlib.colors.Colormap | str | None = None,
        vmin: float | int | None = None,
        vmax: float | int | None = None,
        alpha: float | int | None = None,
        cbar_title: str | None = None,
        add_cbar: bool = True,
        ax: matplotlib.axes.Axes | Literal["new"] | None = None,
        **kwargs: Any,
    ) -> matplotlib.axes.Axes:
        r"""
        Plot the vector.

        This method is a wrapper to geopandas.GeoDataFrame.plot. Any \*\*kwargs which
        you give this method will be passed to it.

        :param column: Attribute to color the features by.
        :param cmap: Colormap to use. Default is plt.rcParams['image.cmap'].
        :param vmin: Colorbar minimum value. Default is data min.
        :param vmax: Colorbar maximum value. Default is data max.
        :param alpha: Transparency of the features and colorbar.
        :param cbar_title: Colorbar label. Default is None.
        :param add_cbar: Set to True to display a colorbar, if a numeric column is passed.
        :param ax: A figure ax to be used for plotting. If None, will plot on current axes. If "new",
            will create a new axis.

        :returns: The axes used for plotting.
        """

        # Create axes, or get current ones by default (like in matplotlib)
        if ax is None:
            ax0 = plt.gca()
        elif isinstance(ax, str) and ax.lower() == "new":
            _, ax0 = plt.subplots()
        elif isinstance(ax, matplotlib.axes.Axes):
            ax0 = ax
        else:
            raise ValueError("ax must be a matplotlib.axes.Axes instance, 'new' or None.")

        # A colorbar only makes sense for a numeric column
        add_cbar = add_cbar and column is not None and pd.api.types.is_numeric_dtype(self.ds[column])

        if cmap is None:
            cmap = plt.get_cmap(plt.rcParams["image.cmap"])
        elif isinstance(cmap, str):
            cmap = plt.get_cmap(cmap)

        if add_cbar:
            values = self.ds[column].to_numpy(dtype=float)
            vmin = np.nanmin(values) if vmin is None else vmin
            vmax = np.nanmax(values) if vmax is None else vmax
            divider = make_axes_locatable(ax0)
            cax = divider.append_axes("right", size="5%", pad="2%")
            norm = matplotlib.colors.Normalize(vmin=vmin, vmax=vmax)
            cbar = matplotlib.colorbar.ColorbarBase(cax, cmap=cmap, norm=norm)
            if alpha is not None:
                cbar.solids.set_alpha(alpha)
            if cbar_title is not None:
                cbar.set_label(cbar_title)

        self.ds.plot(ax=ax0, column=column, cmap=cmap, vmin=vmin, vmax=vmax, alpha=alpha, **kwargs)
        plt.sca(ax0)

        return ax0
