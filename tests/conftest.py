"""
Shared pytest fixtures for dsw tests.
"""

from unittest.mock import MagicMock

import matplotlib
import numpy as np
import pytest

matplotlib.use("Agg")

# Set random seed for reproducible tests
np.random.seed(42)


@pytest.fixture
def viewer(monkeypatch):
    """Replace the platform viewer with a mock that reports success."""
    mock_open = MagicMock(return_value=True)
    monkeypatch.setattr("dsw.exercises.webbrowser.open", mock_open)
    return mock_open


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run the test inside an empty temporary working directory."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def no_show(monkeypatch):
    """Stop matplotlib from trying to display figures."""
    import matplotlib.pyplot as plt

    monkeypatch.setattr(plt, "show", lambda *args, **kwargs: None)
    yield
    plt.close("all")


@pytest.fixture
def pet_design():
    """Mixed 2 (within) x 2 (between) design specification."""
    return {
        "within": "time=am|pm",
        "between": "pet=cat|dog",
        "mu": {"cat": [10, 12], "dog": [14, 16]},
        "sd": 3,
        "r": 0.5,
    }
