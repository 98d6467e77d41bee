from os import path
from typing import Optional

from setuptools import setup

FULLVERSION = "0.1.0"
VERSION = FULLVERSION

write_version = True


def write_version_py(filename: Optional[str] = None) -> None:
    cnt = """\
__version__ = '%s'
short_version = '%s'
"""
    if filename is None:
        filename = path.join(path.dirname(__file__), "geocarto", "_version.py")

    a = open(filename, "w")
    try:
        a.write(cnt % (FULLVERSION, VERSION))
    finally:
        a.close()


if write_version:
    write_version_py()


with open("README.md", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="geocarto",
    version=FULLVERSION,
    description="Raster-vector interactions and thematic maps for geospatial data",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="The GeoCarto developers",
    license="Apache-2.0",
    packages=["geocarto", "geocarto.raster", "geocarto.vector", "geocarto.interface", "geocarto.mapping"],
    package_data={"geocarto": ["config.ini"]},
    python_requires=">=3.9",
    install_requires=[
        "numpy",
        "pandas",
        "rasterio",
        "affine < 3",
        "geopandas >= 0.12.0",
        "shapely >= 2.0",
        "pyproj",
        "scipy",
        "matplotlib",
        "scikit-image",
    ],
    extras_require={
        "interactive": ["ipyleaflet"],
        "app": ["shiny"],
        "test": ["pytest"],
    },
    entry_points={"console_scripts": ["geocarto-map=geocarto.geoviewer:main"]},
    zip_safe=False,
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
        "License :: OSI Approved :: Apache Software License",
    ],
)
