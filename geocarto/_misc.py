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

"""Miscellaneous helpers for optional dependencies."""

from __future__ import annotations

import importlib
from types import ModuleType


def import_optional(import_name: str, package_name: str | None = None, extra_name: str | None = None) -> ModuleType:
    """
    Import an optional dependency, raising an informative error if it is missing.

    :param import_name: Name of the module to import (e.g., "ipyleaflet").
    :param package_name: Name of the package on PyPI, if different from the import name.
    :param extra_name: Name of the geocarto extra that installs the dependency.

    :return: Imported module.
    """
    try:
        return importlib.import_module(import_name)
    except ImportError as e:
        package_name = package_name or import_name
        hint = f"pip install {package_name}"
        if extra_name is not None:
            hint += f" (or pip install geocarto[{extra_name}])"
        raise ImportError(f"Optional dependency '{package_name}' is required for this functionality: {hint}.") from e
