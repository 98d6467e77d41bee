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

"""Setup of runtime-compile configuration of GeoCarto."""

from __future__ import annotations

import configparser
import os
from typing import Any

_config_ini_file = os.path.abspath(os.path.join(os.path.dirname(__file__), "config.ini"))

# Validators: to check the format of user inputs


def validate_bool(b: bool | str | int) -> bool:
    """Convert b to ``bool`` or raise."""
    if isinstance(b, str):
        b = b.lower()
    if b in ("t", "y", "yes", "on", "true", "1", 1, True):
        return True
    elif b in ("f", "n", "no", "off", "false", "0", 0, False):
        return False
    else:
        raise ValueError(f"Cannot convert {b!r} to bool")


def validate_positive_int(n: int | str) -> int:
    """Convert n to a strictly positive ``int`` or raise."""
    try:
        n_int = int(n)
    except (TypeError, ValueError):
        raise ValueError(f"Cannot convert {n!r} to int")
    if n_int < 1:
        raise ValueError(f"Expected a strictly positive integer, got {n_int}")
    return n_int


def validate_style(s: str) -> str:
    """Check s is a supported classification style."""
    styles = ("fixed", "equal", "quantile", "pretty", "sd", "jenks", "cat", "cont")
    s = str(s).lower()
    if s not in styles:
        raise ValueError(f"Classification style {s!r} not recognized, must be one of {styles}")
    return s


def validate_str(s: str) -> str:
    """Convert s to a non-empty ``str`` or raise."""
    s = str(s).strip()
    if len(s) == 0:
        raise ValueError("Expected a non-empty string")
    return s


# Map the parameter names with a validating function to check user input
_validators = {
    "warn_bounds_rounding": validate_bool,
    "rasterize_touches": validate_bool,
    "default_palette": validate_str,
    "default_style": validate_style,
    "default_n_classes": validate_positive_int,
}


class GeoCartoConfigDict(dict):  # type: ignore
    """Class for a GeoCarto config dictionary"""

    def __setitem__(self, k: str, v: Any) -> None:
        """We override setitem to check user input."""

        if k not in _validators:
            raise KeyError(f"Unknown configuration key {k!r}, must be one of {list(_validators)}")
        validate_func = _validators[k]
        new_value = validate_func(v)
        super().__setitem__(k, new_value)

    def _set_defaults(self, path_init_file: str) -> None:
        """Read default values from the packaged INI file."""

        config_parser = configparser.ConfigParser()
        config_parser.read(path_init_file)

        for section in config_parser.sections():
            for k, v in config_parser[section].items():
                self.__setitem__(k, v)


# Generate default config dictionary
config = GeoCartoConfigDict()
config._set_defaults(path_init_file=_config_ini_file)
