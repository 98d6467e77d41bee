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
GeoCarto is a Python package for raster-vector interactions and thematic map making.
"""

from geocarto import examples  # noqa
from geocarto._config import config  # noqa

from geocarto.raster import Raster  # noqa isort:skip
from geocarto.vector import Vector  # noqa isort:skip
from geocarto import mapping  # noqa isort:skip

try:
    from geocarto._version import __version__ as __version__  # noqa
except ImportError:  # pragma: no cover
    raise ImportError(
        "geocarto is not properly installed. If you are "
        "running from the source directory, please instead "
        "create a new virtual environment (using conda or "
        "virtualenv) and then install it in-place by running: "
        "pip install -e ."
    )
