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
Module for Raster class.
"""

from __future__ import annotations

import json
import logging
import os
import pathlib
from typing import Any, Callable, Iterable, Literal, TypeVar

import matplotlib
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import rasterio as rio
import rasterio.warp
from affine import Affine
from matplotlib import cm, colors
from rasterio.crs import CRS
from rasterio.plot import show as rshow

import geocarto as gc
from geocarto._typing import ArrayLike, DTypeLike, MArrayNum, NDArrayBool, NDArrayNum
from geocarto.raster.georeferencing import (
    _bounds,
    _cast_nodata,
    _coords,
    _default_nodata,
    _ij2xy,
    _res,
    _xy2ij,
)

RasterType = TypeVar("RasterType", bound="Raster")


def _load_rio(
    dataset: rio.io.DatasetReader, bands: int | list[int] | None = None
) -> tuple[MArrayNum, list[str], dict[int, str] | None]:
    """
    Load data, band names and categories from an opened rasterio dataset.

    :param dataset: Opened rasterio dataset.
    :param bands: Band number(s) to load, starting at 1. Default is all bands.
    """
    if bands is None:
        indexes = list(dataset.indexes)
    elif isinstance(bands, int):
        indexes = [bands]
    else:
        indexes = list(bands)

    data = dataset.read(indexes, masked=True)
    names = [dataset.descriptions[b - 1] or f"b{b}" for b in indexes]

    # Categories are stored as a JSON tag when saved by GeoCarto
    categories = None
    tags = dataset.tags()
    if "categories" in tags:
        categories = {int(k): v for k, v in json.loads(tags["categories"]).items()}

    return data, names, categories


class Raster:
    """
    In-memory georeferenced grid, single- or multi-band.

    The data is stored as a masked array of shape (bands, rows, columns), with invalid cells (nodata) masked.
    Single-band rasters expose their data as a 2D array of shape (rows, columns).

    Main attributes:
        data: np.ma.masked_array
            Data of the raster.
        transform: affine.Affine
            Geotransform of the raster.
        crs: rasterio.crs.CRS
            Coordinate reference system of the raster.
        nodata: int or float
            Nodata value of the raster.
        names: list[str]
            Band names.
        categories: dict[int, str]
            Labels of categorical values, if the raster is categorical.
    """

    # This only gets set if a disk-based file is read in.
    filename: str | None = None

    _data: MArrayNum
    _transform: Affine
    _crs: CRS | None
    _nodata: int | float | None
    _names: list[str]
    _categories: dict[int, str] | None

    def __init__(
        self,
        filename_or_dataset: str | pathlib.Path | RasterType | rio.io.DatasetReader,
        bands: int | list[int] | None = None,
    ) -> None:
        """
        Load a rasterio-supported dataset, given a filename.

        :param filename_or_dataset: The filename of the dataset, an opened rasterio dataset, or another Raster.
        :param bands: The band(s) to load into the object, starting at 1. Default is to load all bands.

        :return: A Raster object
        """
        # If Raster is passed, simply point back to Raster
        if isinstance(filename_or_dataset, Raster):
            for key in filename_or_dataset.__dict__:
                setattr(self, key, filename_or_dataset.__dict__[key])
            return

        # Image is a file on disk
        elif isinstance(filename_or_dataset, (str, pathlib.Path)):
            self.filename = os.path.abspath(str(filename_or_dataset))
            with rio.open(filename_or_dataset) as ds:
                self._init_from_dataset(ds, bands=bands)

        # If rio.Dataset is passed
        elif isinstance(filename_or_dataset, rio.io.DatasetReader):
            self.filename = filename_or_dataset.files[0] if filename_or_dataset.files else None
            self._init_from_dataset(filename_or_dataset, bands=bands)

        # Provide a catch in case trying to load from data array
        elif isinstance(filename_or_dataset, np.ndarray):
            raise TypeError("np.array provided as filename. Did you mean to call Raster.from_array(...) instead?")

        # Don't recognise the input, so stop here
        else:
            raise TypeError("Filename argument not recognised.")

    def _init_from_dataset(self, ds: rio.io.DatasetReader, bands: int | list[int] | None) -> None:
        """Set attributes from an opened rasterio dataset."""
        data, names, categories = _load_rio(ds, bands=bands)
        self._data = data
        self._transform = ds.transform
        self._crs = ds.crs
        self._nodata = ds.nodata
        self._names = names
        self._categories = categories

    @classmethod
    def from_array(
        cls: type[RasterType],
        data: NDArrayNum | MArrayNum,
        transform: tuple[float, ...] | Affine,
        crs: CRS | int | str | None,
        nodata: int | float | None = None,
        names: Iterable[str] | None = None,
        categories: dict[int, str] | None = None,
    ) -> RasterType:
        """Create a Raster from a numpy array and some geo-referencing information.

        :param data: Input array, 2D for a single band or 3D (bands, rows, columns).
        :param transform: Affine 2D transform. Either a tuple(x_res, 0.0, top_left_x, 0.0, y_res, top_left_y) or
            an affine.Affine object.
        :param crs: Coordinate Reference System for image. Either a rasterio CRS, an EPSG integer or a string.
        :param nodata: Nodata value. Cells equal to this value are masked, in addition to those of a masked array
            and to non-finite values of a floating array.
        :param names: Band names. Defaults to "b1", "b2", etc.
        :param categories: Labels of categorical values, mapping integer codes to class names.

        :returns: A Raster object containing the provided data.

        Example:

            You have a data array in EPSG:32645. It has a spatial resolution of
            30 m in x and y, and its top left corner is X=478000, Y=3108140.

            >>> data = np.ones((500, 500), dtype="float32")
            >>> transform = (30.0, 0.0, 478000.0, 0.0, -30.0, 3108140.0)
            >>> myim = Raster.from_array(data, transform, 32645)
        """

        if not isinstance(transform, Affine):
            if isinstance(transform, tuple):
                transform = Affine(*transform)
            else:
                raise TypeError("The transform argument needs to be Affine or tuple.")

        # Enable shortcut to create CRS from an EPSG ID or a string
        if crs is not None and not isinstance(crs, CRS):
            crs = CRS.from_user_input(crs)

        # Cast input array
        if not isinstance(data, np.ndarray):
            data = np.asarray(data)
        if data.ndim not in (2, 3):
            raise ValueError(f"Data array must be 2D or 3D, got {data.ndim} dimensions.")
        if data.ndim == 2:
            data = data[np.newaxis, :, :]

        # Build the mask from the input mask, the nodata value and non-finite values
        mask = np.ma.getmaskarray(data).copy()
        arr = np.ma.getdata(data)
        if nodata is not None and arr.dtype != bool:
            if np.isnan(nodata):
                mask |= np.isnan(arr)
            else:
                mask |= arr == nodata
        if np.issubdtype(arr.dtype, np.floating):
            mask |= ~np.isfinite(arr)

        raster = cls.__new__(cls)
        raster._data = np.ma.masked_array(arr, mask=mask)
        raster._transform = transform
        raster._crs = crs
        raster._nodata = nodata
        raster._categories = dict(categories) if categories is not None else None

        if names is None:
            names = [f"b{b + 1}" for b in range(data.shape[0])]
        else:
            names = [str(n) for n in names]
            if len(names) != data.shape[0]:
                raise ValueError(f"Number of band names ({len(names)}) does not match number of bands ({data.shape[0]}).")
        raster._names = names

        return raster

    def __repr__(self) -> str:
        """Convert object to formal string representation."""
        return (
            f"Raster(\n"
            f"  data={self.data!r},\n"
            f"  transform={self.transform!r},\n"
            f"  crs={self.crs!r},\n"
            f"  nodata={self.nodata},\n"
            f"  names={self.names})"
        )

    def __str__(self) -> str:
        """Provide string of information about Raster."""
        return self.info()

    ############
    # Properties
    ############

    @property
    def data(self) -> MArrayNum:
        """
        Data of the raster, as a masked array of shape (rows, columns) for a single band, or (bands, rows, columns).
        """
        if self._data.shape[0] == 1:
            return self._data[0, :, :]
        return self._data

    @data.setter
    def data(self, new_data: NDArrayNum | MArrayNum) -> None:
        """Set the contents of .data, which must have the same shape as the existing data."""
        if not isinstance(new_data, np.ndarray):
            raise ValueError("New data must be a numpy array.")
        if new_data.ndim == 2:
            new_data = new_data[np.newaxis, :, :]
        if new_data.shape != self._data.shape:
            raise ValueError(f"New data must be of the same shape as existing data: {self.data.shape}.")
        mask = np.ma.getmaskarray(new_data)
        if np.issubdtype(new_data.dtype, np.floating):
            mask = mask | ~np.isfinite(np.ma.getdata(new_data))
        self._data = np.ma.masked_array(np.ma.getdata(new_data), mask=mask)

    @property
    def transform(self) -> Affine:
        """Geotransform of the raster."""
        return self._transform

    @property
    def crs(self) -> CRS | None:
        """Coordinate reference system of the raster."""
        return self._crs

    @property
    def nodata(self) -> int | float | None:
        """Nodata value of the raster."""
        return self._nodata

    @property
    def names(self) -> list[str]:
        """Band names of the raster."""
        return list(self._names)

    @property
    def categories(self) -> dict[int, str] | None:
        """Labels of categorical values, or None for a continuous raster."""
        return None if self._categories is None else dict(self._categories)

    @property
    def is_categorical(self) -> bool:
        """Whether the raster holds categorical values."""
        return self._categories is not None

    @property
    def is_mask(self) -> bool:
        """Whether the raster is a boolean mask."""
        return self._data.dtype == bool

    @property
    def count(self) -> int:
        """Count of bands."""
        return self._data.shape[0]

    @property
    def height(self) -> int:
        """Height of the raster in pixels."""
        return self._data.shape[1]

    @property
    def width(self) -> int:
        """Width of the raster in pixels."""
        return self._data.shape[2]

    @property
    def shape(self) -> tuple[int, int]:
        """Shape (i.e., height, width) of the raster in pixels."""
        return self.height, self.width

    @property
    def res(self) -> tuple[float | int, float | int]:
        """Resolution (X, Y) of the raster in georeferenced units."""
        return _res(self.transform)

    @property
    def bounds(self) -> rio.coords.BoundingBox:
        """Bounding coordinates of the raster."""
        return _bounds(transform=self.transform, shape=self.shape)

    @property
    def dtype(self) -> str:
        """Data type of the raster (string representation)."""
        return str(self._data.dtype)

    ###################
    # General utilities
    ###################

    def info(self, stats: bool = False) -> str:
        """
        Summarize information about the raster.

        :param stats: Add statistics for each band of the dataset (max, min, median, mean, std. dev.).

        :returns: Text information about Raster attributes.
        """
        crs_str = "None" if self.crs is None else (f"EPSG:{self.crs.to_epsg()}" if self.crs.to_epsg() else str(self.crs))
        as_str = [
            f"Filename:             {self.filename} \n",
            f"Size:                 {self.width}, {self.height}\n",
            f"Number of bands:      {self.count:d}\n",
            f"Band names:           {self.names}\n",
            f"Data types:           {self.dtype}\n",
            f"Coordinate system:    {crs_str}\n",
            f"Nodata value:         {self.nodata}\n",
            "Pixel size:           {}, {}\n".format(*self.res),
            "Bounds:               {}, {}, {}, {}\n".format(*self.bounds),
        ]
        if self.is_categorical:
            as_str.append(f"Categories:           {self.categories}\n")

        if stats:
            for b in range(self.count):
                band_stats = self.get_stats(band=b + 1)
                if self.count > 1:
                    as_str.append(f"Band {b + 1}:\n")
                as_str.append(f"[MAXIMUM]:          {band_stats['max']:.2f}\n")
                as_str.append(f"[MINIMUM]:          {band_stats['min']:.2f}\n")
                as_str.append(f"[MEDIAN]:           {band_stats['median']:.2f}\n")
                as_str.append(f"[MEAN]:             {band_stats['mean']:.2f}\n")
                as_str.append(f"[STD DEV]:          {band_stats['std']:.2f}\n")

        return "".join(as_str)

    def copy(self: RasterType, new_array: NDArrayNum | MArrayNum | None = None) -> RasterType:
        """
        Copy the raster in-memory.

        :param new_array: New array to use in the copied raster, with the same georeferencing.

        :return: Copy of the raster.
        """
        if new_array is not None:
            data = new_array
        else:
            data = self._data.copy()

        nodata = _cast_nodata(np.asarray(data).dtype, self.nodata)
        categories = self._categories if new_array is None else None

        return self.from_array(
            data=data, transform=self.transform, crs=self.crs, nodata=nodata, names=self.names, categories=categories
        )

    def astype(self: RasterType, dtype: DTypeLike) -> RasterType:
        """
        Convert the data type of the raster, keeping the mask.

        :param dtype: Any numpy dtype or string accepted by numpy.astype.

        :returns: Raster with the new data type.
        """
        out_data = self._data.astype(dtype)
        nodata = _cast_nodata(out_data.dtype, self.nodata)
        return self.from_array(out_data, self.transform, self.crs, nodata=nodata, names=self.names)

    def raster_equal(self, other: object) -> bool:
        """
        Check if two rasters are equal: same data (including mask), georeferencing, nodata and band names.
        """
        if not isinstance(other, Raster):
            raise NotImplementedError("Equality with other object than Raster not supported by raster_equal.")

        return all(
            [
                self._data.shape == other._data.shape,
                np.array_equal(np.ma.getmaskarray(self._data), np.ma.getmaskarray(other._data)),
                np.array_equal(self._data.filled(0), other._data.filled(0)),
                self.transform == other.transform,
                self.crs == other.crs,
                self.nodata == other.nodata or (self.nodata is not None and other.nodata is not None
                                                and np.isnan(self.nodata) and np.isnan(other.nodata)),
                self.names == other.names,
            ]
        )

    def georeferenced_grid_equal(self, raster: Raster) -> bool:
        """
        Check that raster shape, geotransform and CRS are equal.
        """
        return all([self.shape == raster.shape, self.transform == raster.transform, self.crs == raster.crs])

    def get_mask(self) -> NDArrayBool:
        """Get the mask of invalid values from the raster, with the same shape as .data."""
        mask = np.ma.getmaskarray(self._data)
        return mask[0, :, :] if self.count == 1 else mask

    def get_stats(self, band: int = 1) -> dict[str, float]:
        """
        Get statistics of the valid values of a band.

        :param band: Band number, starting at 1.

        :return: Dictionary with keys "min", "max", "mean", "median", "std" and "valid_count".
        """
        if not 1 <= band <= self.count:
            raise ValueError(f"Band must be between 1 and {self.count}, got {band}.")

        valid = self._data[band - 1].compressed().astype(float)
        if valid.size == 0:
            logging.warning("Empty raster, returns NaN for all stats")
            return {"min": np.nan, "max": np.nan, "mean": np.nan, "median": np.nan, "std": np.nan, "valid_count": 0}

        return {
            "min": float(np.min(valid)),
            "max": float(np.max(valid)),
            "mean": float(np.mean(valid)),
            "median": float(np.median(valid)),
            "std": float(np.std(valid)),
            "valid_count": int(valid.size),
        }

    def value_counts(self, band: int = 1) -> pd.Series:
        """
        Count the occurrences of each valid value of a band, using category labels if the raster is categorical.

        :param band: Band number, starting at 1.

        :return: Series of counts indexed by value (or label), sorted by value.
        """
        if not 1 <= band <= self.count:
            raise ValueError(f"Band must be between 1 and {self.count}, got {band}.")

        values, counts = np.unique(self._data[band - 1].compressed(), return_counts=True)
        index: list[Any] = list(values)
        if self._categories is not None:
            index = [self._categories.get(int(v), v) if np.isfinite(v) else v for v in values]

        return pd.Series(counts, index=pd.Index(index, name=self._names[band - 1]), name="count")

    def save(self, filename: str | pathlib.Path, driver: str = "GTiff") -> None:
        """
        Write the raster to file, with masked values set to nodata.

        If no nodata value is defined and some values are masked, a default nodata value is used for the data type.

        :param filename: Filename to write the file to.
        :param driver: Driver to write file with.
        """
        dtype = self._data.dtype
        out_dtype = "uint8" if dtype == bool else dtype

        nodata = self.nodata
        if nodata is None and np.count_nonzero(np.ma.getmaskarray(self._data)) > 0:
            nodata = _default_nodata(out_dtype)
            logging.debug("No nodata value defined, saving masked values with default nodata %s.", nodata)

        save_data = self._data.astype(out_dtype)
        save_data = save_data.filled(nodata) if nodata is not None else save_data.data

        with rio.open(
            filename,
            "w",
            driver=driver,
            height=self.height,
            width=self.width,
            count=self.count,
            dtype=save_data.dtype,
            crs=self.crs,
            transform=self.transform,
            nodata=nodata,
        ) as ds:
            ds.write(save_data)
            for b, name in enumerate(self.names):
                ds.set_band_description(b + 1, name)
            if self._categories is not None:
                ds.update_tags(categories=json.dumps({str(k): v for k, v in self._categories.items()}))

        logging.info("Raster saved under %s", filename)

    def get_bounds_projected(self, out_crs: CRS | int | str, densify_points: int = 21) -> rio.coords.BoundingBox:
        """
        Get raster bounds projected in a specified CRS.

        :param out_crs: Output CRS.
        :param densify_points: Number of points to densify each edge of the bounds with before projecting.
        """
        if self.crs is None or CRS.from_user_input(out_crs) == self.crs:
            return self.bounds
        return rio.coords.BoundingBox(
            *rio.warp.transform_bounds(self.crs, out_crs, *self.bounds, densify_pts=densify_points)
        )

    ##################
    # Georeferencing
    ##################

    def xy2ij(self, x: ArrayLike, y: ArrayLike) -> tuple[NDArrayNum, NDArrayNum]:
        """
        Get indexes (row, column) of the cells containing the coordinates x, y.

        Coordinates lying exactly on the edge between two cells belong to the cell on the right (for X) or below
        (for Y), except on the right and bottom edges of the raster.

        :param x: X coordinates.
        :param y: Y coordinates.

        :returns i, j: Indexes of row and column.
        """
        return _xy2ij(x=x, y=y, transform=self.transform, shape=self.shape)

    def ij2xy(
        self, i: ArrayLike, j: ArrayLike, offset: Literal["center", "ul", "ur", "ll", "lr"] = "center"
    ) -> tuple[NDArrayNum, NDArrayNum]:
        """
        Get coordinates (x, y) of cells with indexes (row, column).

        :param i: Row indexes.
        :param j: Column indexes.
        :param offset: Position in the cell, either "center" or a corner ("ul", "ur", "ll", "lr").

        :returns x, y: X and Y coordinates.
        """
        return _ij2xy(i=i, j=j, transform=self.transform, offset=offset)

    def coords(self, grid: bool = True) -> tuple[NDArrayNum, NDArrayNum]:
        """
        Get coordinates (x, y) of all cell centres.

        :param grid: Whether to return mesh grids of coordinates, or 1D vectors.
        """
        return _coords(transform=self.transform, shape=self.shape, grid=grid)

    ################################
    # Raster-vector interactions
    ################################

    def crop(self: RasterType, crop_geom: Raster | gc.Vector | Iterable[float], snap: str = "out") -> RasterType:
        """
        Crop the raster to a given extent, keeping its resolution and alignment.

        **Match-reference:** a reference raster or vector can be passed to match bounds during cropping.

        Reprojection of the bounds is done on the fly if georeferenced objects have different projections.

        :param crop_geom: Geometry to crop raster to, as either a Raster object, a Vector object, or a list of
            coordinates. If ``crop_geom`` is a raster or a vector, will crop to the bounds. If ``crop_geom`` is a
            list of coordinates, the order is assumed to be [xmin, ymin, xmax, ymax].
        :param snap: How to align the bounds on the grid: "out" to keep all cells intersecting the extent, "in" to
            keep only cells fully inside, "near" to round to the nearest cell edge.

        :returns: Cropped raster.
        """
        from geocarto.raster.geotransformations import _crop

        crop_img, tfm = _crop(source_raster=self, crop_geom=crop_geom, snap=snap)

        return self.from_array(
            data=crop_img,
            transform=tfm,
            crs=self.crs,
            nodata=self.nodata,
            names=self.names,
            categories=self._categories,
        )

    def mask(
        self: RasterType,
        vector: gc.Vector,
        inverse: bool = False,
        updatevalue: int | float | None = None,
        touches: bool = False,
    ) -> RasterType:
        """
        Mask the raster outside (or inside, if inverse) the geometries of a vector.

        Cells are selected when their centre falls within a geometry, or when they touch it if ``touches`` is True.

        :param vector: Line or polygon vector used for masking.
        :param inverse: Whether to mask the cells inside the geometries instead of outside.
        :param updatevalue: Value to assign to the cells masked out. If None, cells are masked as nodata. A fractional
            value drops the categories of a categorical raster.
        :param touches: Whether to select all cells touched by the geometries.

        :returns: Masked raster.
        """
        from geocarto.interface.raster_vector import _mask

        return _mask(source_raster=self, vector=vector, inverse=inverse, updatevalue=updatevalue, touches=touches)

    def crop_mask(
        self: RasterType,
        vector: gc.Vector,
        inverse: bool = False,
        updatevalue: int | float | None = None,
        touches: bool = False,
        snap: str = "out",
    ) -> RasterType:
        """
        Crop the raster to the bounds of a vector, then mask it by the vector geometries.

        See Raster.crop() and Raster.mask() for a description of the arguments.
        """
        return self.crop(vector, snap=snap).mask(vector, inverse=inverse, updatevalue=updatevalue, touches=touches)

    def extract(
        self,
        vector: gc.Vector | tuple[ArrayLike, ArrayLike],
        fun: str | Callable[[NDArrayNum], float] | None = None,
        method: Literal["simple", "bilinear"] = "simple",
        along: bool = False,
        spacing: float | None = None,
        touches: bool = False,
        na_rm: bool = True,
        bind: bool = False,
    ) -> pd.DataFrame | gc.Vector:
        """
        Extract raster values at the locations of vector geometries.

        - For points, the value of the cell containing each point, or a bilinear interpolation of the four nearest
          cell centres.
        - For lines, the values of all cells touched by each line or, if ``along`` is True, values sampled at
          regular distances along each line, with the cumulative distance.
        - For polygons, the values of cells with their centre inside each polygon (or touching it), optionally
          summarized per polygon by ``fun``. Passing fun="table" counts the occurrences of each value.

        :param vector: Vector of points, lines or polygons, or a tuple of X and Y point coordinates.
        :param fun: Summary function for lines or polygons, either a name ("mean", "min", "max", "sum", "median",
            "std", "count", "table") or a callable.
        :param method: Point sampling method, "simple" or "bilinear".
        :param along: Whether to sample lines at regular distances along them.
        :param spacing: Distance between samples along lines, defaults to the smallest raster resolution.
        :param touches: Whether to select all cells touched by polygons.
        :param na_rm: Whether to remove masked values before applying the summary function.
        :param bind: Whether to return point values joined to the point vector.

        :return: Dataframe of extracted values with an "ID" column of 1-based feature indexes, or a Vector.
        """
        from geocarto.interface.raster_vector import _extract

        return _extract(
            source_raster=self,
            vector=vector,
            fun=fun,
            method=method,
            along=along,
            spacing=spacing,
            touches=touches,
            na_rm=na_rm,
            bind=bind,
        )

    def to_points(self, skip_nodata: bool = True) -> gc.Vector:
        """
        Convert the raster to a point vector, with one point at the centre of each cell.

        :param skip_nodata: Whether to skip masked cells.

        :return: Point vector with one column of values per band.
        """
        from geocarto.interface.vectorization import _raster_to_points

        return _raster_to_points(source_raster=self, skip_nodata=skip_nodata)

    def polygonize(
        self,
        target_values: Any = "all",
        dissolve: bool = False,
        band: int = 1,
    ) -> gc.Vector:
        """
        Polygonize the raster into a polygon vector.

        :param target_values: Value(s) of the raster to polygonize: "all" for all valid values, a number, a tuple
            defining an open interval, or a list of values.
        :param dissolve: Whether to merge connected cells of the same value, or return one polygon per cell.
        :param band: Band number to polygonize, starting at 1.

        :returns: Polygon vector with one column of values.
        """
        from geocarto.interface.vectorization import _polygonize

        return _polygonize(source_raster=self, target_values=target_values, dissolve=dissolve, band=band)

    def contour(self, levels: Iterable[float] | None = None, n: int = 10, band: int = 1) -> gc.Vector:
        """
        Trace contour lines of the raster.

        :param levels: Contour levels. Defaults to "pretty" levels spanning the raster values.
        :param n: Approximate number of levels, if levels are not passed.
        :param band: Band number to contour, starting at 1.

        :returns: Line vector with a "level" column.
        """
        from geocarto.interface.vectorization import _contour

        return _contour(source_raster=self, levels=levels, n=n, band=band)

    ##########
    # Plotting
    ##########

    def plot(
        self,
        band: int = 1,
        cmap: matplotlib.colors.Colormap | str | None = None,
        vmin: float | int | None = None,
        vmax: float | int | None = None,
        cbar_title: str | None = None,
        add_cbar: bool = True,
        ax: matplotlib.axes.Axes | None = None,
        **kwargs: Any,
    ) -> matplotlib.axes.Axes:
        r"""
        Plot a band of the raster, with axes in projection of image.

        This method is a wrapper to rasterio.plot.show. Any \*\*kwargs which
        you give this method will be passed to it.

        :param band: Which band to plot, starting at 1.
        :param cmap: The figure's colormap. Default is plt.rcParams['image.cmap'].
        :param vmin: Colorbar minimum value. Default is data min.
        :param vmax: Colorbar maximum value. Default is data max.
        :param cbar_title: Colorbar label.
        :param add_cbar: Set to True to display a colorbar.
        :param ax: A figure ax to be used for plotting. If None, will create default figure and axes.

        :returns: The axes used for plotting.
        """
        if not 1 <= band <= self.count:
            raise ValueError(f"Band must be between 1 and {self.count}, got {band}.")

        # Use rcParam default
        if cmap is None:
            cmap = plt.get_cmap(plt.rcParams["image.cmap"])
        elif isinstance(cmap, str):
            cmap = plt.get_cmap(cmap)

        arr = self._data[band - 1].astype(float)
        if vmin is None:
            vmin = float(np.ma.min(arr))
        if vmax is None:
            vmax = float(np.ma.max(arr))

        # Create axes
        if ax is None:
            _, ax0 = plt.subplots()
        elif isinstance(ax, matplotlib.axes.Axes):
            ax0 = ax
        else:
            raise ValueError("The ax argument must be a matplotlib.axes.Axes instance or None.")

        rshow(arr, transform=self.transform, ax=ax0, cmap=cmap, vmin=vmin, vmax=vmax, **kwargs)

        if add_cbar:
            cbar = ax0.figure.colorbar(cm.ScalarMappable(norm=colors.Normalize(vmin=vmin, vmax=vmax), cmap=cmap), ax=ax0)
            if cbar_title is not None:
                cbar.set_label(cbar_title)

        return ax0
