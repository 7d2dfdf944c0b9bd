"""Unit tests for the uniform and interior bubble corrections."""

import numpy as np
import pytest

from gllmeta.bubble import apply_bubble, apply_interior_bubble, apply_uniform_bubble
from gllmeta.exceptions import ConfigurationError, InvalidInputError, MalformedMeshError
from gllmeta.jacobian import local_jacobians
from gllmeta.quadrature import gauss_lobatto_unit


@pytest.fixture
def raw_weights(cs_mesh):
    """Raw nP=4 weights and exact areas of the first 10 faces of the ne=4 cube."""
    points, weights = gauss_lobatto_unit(4)
    _, jac = local_jacobians(cs_mesh.face_corners()[:10], points, weights)
    return jac, cs_mesh.face_areas()[:10]


def test_uniform_bubble_matches_face_areas(raw_weights):
    jac, areas = raw_weights
    corrected = apply_uniform_bubble(jac, areas)

    np.testing.assert_allclose(corrected.sum(axis=(0, 1)), areas, rtol=1e-14)
    # Every weight of a face is scaled by the same factor.
    ratio = corrected / jac
    np.testing.assert_allclose(ratio, ratio[:1, :1, :].repeat(4, 0).repeat(4, 1), rtol=1e-14)


def test_interior_bubble_keeps_boundary_weights(raw_weights):
    """
    Test that the interior bubble scales only interior weights.

    This test ensures that:
    - Each face sums to its geometric area afterwards.
    - Boundary weights are left bit-for-bit unchanged.
    - Interior weights actually move.
    """
    jac, areas = raw_weights
    corrected = apply_interior_bubble(jac, areas)

    np.testing.assert_allclose(corrected.sum(axis=(0, 1)), areas, rtol=1e-13)

    boundary = np.ones((4, 4), dtype=bool)
    boundary[1:-1, 1:-1] = False
    np.testing.assert_array_equal(corrected[boundary], jac[boundary])
    assert not np.allclose(corrected[1:-1, 1:-1], jac[1:-1, 1:-1], rtol=1e-15, atol=0)


def test_interior_bubble_needs_interior_points(cs_mesh):
    points, weights = gauss_lobatto_unit(2)
    _, jac = local_jacobians(cs_mesh.face_corners()[:3], points, weights)

    with pytest.raises(ConfigurationError):
        apply_interior_bubble(jac, cs_mesh.face_areas()[:3])


def test_interior_bubble_rejects_non_positive_factor(raw_weights):
    """
    Test that a face whose interior would need a non-positive scale factor is
    rejected, reporting the face index shifted by ``face_offset``.
    """
    jac, areas = raw_weights
    areas = areas.copy()
    areas[3] = 0.0

    with pytest.raises(MalformedMeshError, match="Face 13"):
        apply_interior_bubble(jac, areas, face_offset=10)


def test_none_returns_equal_copy(raw_weights):
    jac, areas = raw_weights
    out = apply_bubble(jac, areas, "none")

    np.testing.assert_array_equal(out, jac)
    assert out is not jac


@pytest.mark.parametrize("mode", ["uniform", "interior"])
def test_input_is_not_modified(raw_weights, mode):
    jac, areas = raw_weights
    before = jac.copy()
    apply_bubble(jac, areas, mode)
    np.testing.assert_array_equal(jac, before)


@pytest.mark.parametrize("mode", ["uniform", "interior"])
def test_wrong_area_shape(raw_weights, mode):
    jac, areas = raw_weights
    with pytest.raises(InvalidInputError, match="Face area information"):
        apply_bubble(jac, areas[:-1], mode)


def test_unknown_mode(raw_weights):
    jac, areas = raw_weights
    with pytest.raises(ConfigurationError):
        apply_bubble(jac, areas, "both")
