"""Configuration file for Pytest."""

import matplotlib
import matplotlib.pyplot as plt
import pytest

# Figures are never displayed during tests
matplotlib.use("Agg")


@pytest.fixture(autouse=True)
def close_figures():  # type: ignore
    """Close all figures opened by a test."""
    yield
    plt.close("all")
