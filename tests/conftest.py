"""
Shared test fixtures for the overlay engine tests.
"""
import numpy as np
import pytest

from brow_map.anchors import Viewport
from brow_map.model import GeometryModel, default_config, set_global


@pytest.fixture
def flat_config():
    """Default molds with an identity global transform (no offset, scale 1)."""
    return set_global(default_config(), pos_x=0.0, pos_y=0.0, scale=1.0, rotation=0.0)


@pytest.fixture
def unit_viewport():
    """Overlay space equals screen space."""
    return Viewport(0.0, 0.0, 1.0)


@pytest.fixture
def model(flat_config):
    return GeometryModel(flat_config)


@pytest.fixture
def black_frame():
    return np.zeros((480, 640, 3), dtype=np.uint8)
