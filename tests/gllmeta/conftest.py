from __future__ import annotations
import pytest

import numpy as np
from gllmeta.generation import cubed_sphere
from gllmeta.mesh import Mesh


@pytest.fixture
def panel_corners():
    """
    Corners of the +X cubed-sphere panel (one sixth of the sphere),
    counter-clockwise seen from outside, shape (1, 4, 3).
    """
    corners = np.array(
        [
            [1.0, -1.0, -1.0],
            [1.0, 1.0, -1.0],
            [1.0, 1.0, 1.0],
            [1.0, -1.0, 1.0],
        ]
    ) / np.sqrt(3.0)
    return corners[None, :, :]


@pytest.fixture
def single_quad_mesh(panel_corners):
    """Open mesh made of the +X panel only."""
    return Mesh(verts=panel_corners[0], faces=[[0, 1, 2, 3]])


@pytest.fixture
def two_quad_mesh():
    """
    The +X and +Y panels of the ne=1 cubed sphere; they share the edge
    x = y = 1/sqrt(3).
    """
    cube = cubed_sphere(1)
    return Mesh(verts=cube.verts, faces=cube.faces[:2])


@pytest.fixture
def cs_mesh():
    """Closed ne=4 cubed sphere (96 quads)."""
    return cubed_sphere(4)
