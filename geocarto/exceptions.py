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

"""Exceptions and warnings raised on invalid user input."""

from __future__ import annotations


class InvalidBoundsError(ValueError):
    """Raised when bound-type input is not recognized or does not overlap the data."""


class InvalidCRSError(ValueError):
    """Raised when CRS-type input is not recognized."""


class InvalidGridError(ValueError):
    """Raised when grid-type input is not recognized."""


class InvalidGeometryError(ValueError):
    """Raised when the geometry types of a vector are not supported by an operation."""


class InvalidClassificationError(ValueError):
    """Raised when classification input (style, breaks, number of classes) is not valid."""


class IgnoredGridWarning(UserWarning):
    """Raised when grid-type input is ignored (because redundant with others)."""
