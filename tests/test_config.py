"""Test configuration file."""

import pytest

import geocarto as gc


class TestConfig:
    def test_config_defaults(self) -> None:
        """Check defaults compared to file"""

        # Read file
        default_config = gc._config.GeoCartoConfigDict()
        default_config._set_defaults(gc._config._config_ini_file)

        assert default_config == gc.config
        assert gc.config["default_style"] == "pretty"
        assert gc.config["default_n_classes"] == 5
        assert not gc.config["rasterize_touches"]

    def test_config_set(self) -> None:
        """Check setting a non-default config argument by user"""

        # Default is True
        assert gc.config["warn_bounds_rounding"]

        # We set it to False and it should be updated
        gc.config["warn_bounds_rounding"] = False
        assert not gc.config["warn_bounds_rounding"]

        # Leave the test with the initial default
        gc.config["warn_bounds_rounding"] = True
        assert gc.config["warn_bounds_rounding"]

    def test_config_validator(self) -> None:
        """Check setting a config argument with a wrong input type converts it automatically, or raises"""

        # We input an "on" value, that should be converted to True
        gc.config["rasterize_touches"] = "on"
        assert gc.config["rasterize_touches"]

        # Leave the test with initial default
        gc.config["rasterize_touches"] = 0
        assert not gc.config["rasterize_touches"]

        # Styles are normalized to lower case
        gc.config["default_style"] = "Quantile"
        assert gc.config["default_style"] == "quantile"
        gc.config["default_style"] = "pretty"

        with pytest.raises(ValueError, match="Cannot convert"):
            gc.config["rasterize_touches"] = "maybe"
        with pytest.raises(ValueError, match="not recognized"):
            gc.config["default_style"] = "random"
        with pytest.raises(ValueError, match="strictly positive"):
            gc.config["default_n_classes"] = 0
        with pytest.raises(KeyError, match="Unknown configuration key"):
            gc.config["not_a_key"] = 1
