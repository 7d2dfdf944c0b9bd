"""Unit tests for the NodeRegistry and boundary-sharing diagnostics.

This test suite verifies:
- First-seen, contiguous numbering
- Matching within tolerance and separation beyond it
- The earliest-representative rule, across and within batches
- Batch resolution order and shapes
- Counting of unshared face-boundary nodes
"""

import logging
import threading

import numpy as np
import pytest

from gllmeta.exceptions import InvalidInputError
from gllmeta.generation import cubed_sphere
from gllmeta.jacobian import face_node_positions
from gllmeta.nodes import NodeRegistry, boundary_mask, count_unshared_boundary_nodes
from gllmeta.quadrature import gauss_lobatto_unit


def test_registry_initialization():
    registry = NodeRegistry(1e-10)

    assert len(registry) == 0
    assert registry.tolerance == 1e-10
    assert registry.points.shape == (0, 3)


def test_first_seen_numbering_and_reuse():
    """
    Test that indices are handed out in first-seen order.

    This test ensures that:
    - Each new position gets the next unused index.
    - A repeated position gets its earlier index back.
    - The registered points are kept in index order.
    """
    registry = NodeRegistry(1e-10)
    a = [1.0, 0.0, 0.0]
    b = [0.0, 1.0, 0.0]

    assert registry.resolve_point(a) == 0
    assert registry.resolve_point(b) == 1
    assert registry.resolve_point(a) == 0
    assert registry.resolve_point(b) == 1
    assert len(registry) == 2
    np.testing.assert_array_equal(registry.points, [a, b])


def test_within_tolerance_matches_and_beyond_is_distinct():
    registry = NodeRegistry(1e-10)
    base = np.array([0.6, 0.0, 0.8])

    i0 = registry.resolve_point(base)
    assert registry.resolve_point(base + [3e-11, 0.0, 0.0]) == i0
    assert registry.resolve_point(base + [0.0, 1e-9, 0.0]) != i0


def test_match_near_tolerance():
    """
    Test that points closer than the tolerance merge on either side of a
    representative, including points straddling zero.
    """
    registry = NodeRegistry(1e-3)
    i0 = registry.resolve_point([0.0009999, 0.0, 0.0])
    i1 = registry.resolve_point([0.0010004, 0.0, 0.0])
    i2 = registry.resolve_point([-0.00000005, 0.0, 0.0])

    assert i0 == i1 == i2
    assert len(registry) == 1


def test_distance_equal_to_tolerance_is_distinct():
    registry = NodeRegistry(0.5)
    registry.resolve_point([0.0, 0.0, 0.0])
    assert registry.resolve_point([0.5, 0.0, 0.0]) == 1


def test_earliest_representative_wins():
    """
    Test that a point within tolerance of several representatives takes the
    one registered first.
    """
    registry = NodeRegistry(1.0)
    registry.resolve_point([0.0, 0.0, 0.0])
    registry.resolve_point([1.5, 0.0, 0.0])
    assert registry.resolve_point([0.75, 0.0, 0.0]) == 0


def test_duplicates_within_one_batch():
    """
    Test that points of the same batch are matched against each other.

    This test ensures that:
    - A duplicate later in the batch reuses the index of the earlier copy.
    - A point close to two new representatives takes the earlier one.
    - A point that only matches a non-representative stays distinct.
    """
    registry = NodeRegistry(1.0)
    pts = np.array(
        [
            [0.0, 0.0, 0.0],   # 0: new
            [3.0, 0.0, 0.0],   # 1: new
            [0.0, 0.0, 0.0],   # -> 0
            [1.5, 0.0, 0.0],   # new (1.5 from both)
            [0.75, 0.0, 0.0],  # near 0 and 2 -> 0
            [2.3, 0.0, 0.0],   # near 2 and 1 -> 1
        ]
    )
    idx = registry.resolve(pts)

    np.testing.assert_array_equal(idx, [0, 1, 0, 2, 0, 1])
    assert len(registry) == 3
    np.testing.assert_array_equal(registry.points, pts[[0, 1, 3]])


def test_chain_within_batch_follows_representatives():
    """
    Test that matching is not transitive through non-representatives: b is
    within tolerance of a, c only of b, so c starts a new node.
    """
    registry = NodeRegistry(1.0)
    idx = registry.resolve(np.array([[0.0, 0, 0], [0.9, 0, 0], [1.8, 0, 0]]))
    np.testing.assert_array_equal(idx, [0, 0, 1])


def test_batch_and_pointwise_resolution_agree():
    """
    Test that resolving GLL node positions in one batch gives the same
    numbering as feeding them one point at a time.
    """
    points, _ = gauss_lobatto_unit(4)
    positions = face_node_positions(cubed_sphere(2).face_corners(), points)
    flat = positions.transpose(2, 0, 1, 3).reshape(-1, 3)

    batch = NodeRegistry(1e-10).resolve(flat)
    single = NodeRegistry(1e-10)
    pointwise = np.array([single.resolve_point(p) for p in flat])

    np.testing.assert_array_equal(batch, pointwise)
    assert batch.max() + 1 == 24 * 9 + 2


def test_batch_resolution_keeps_shape_and_order():
    registry = NodeRegistry(1e-10)
    pts = np.array(
        [
            [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]],
            [[0.0, 0.0, 1.0], [1.0, 0.0, 0.0]],
        ]
    )
    idx = registry.resolve(pts)

    assert idx.shape == (2, 2)
    assert idx.dtype == np.int64
    np.testing.assert_array_equal(idx, [[0, 1], [2, 0]])


def test_resolve_logs_new_and_matched_counts(caplog):
    registry = NodeRegistry(1e-10)
    registry.resolve(np.eye(3))
    with caplog.at_level(logging.DEBUG, logger="gllmeta.nodes"):
        registry.resolve(np.array([[1.0, 0.0, 0.0], [0.0, 0.0, -1.0]]))

    assert any(
        "2 points -> 1 new, 1 matched (total=4)" in r.getMessage() for r in caplog.records
    )


@pytest.mark.parametrize("tol", [0.0, -1e-10, float("nan"), float("inf")])
def test_invalid_tolerance(tol):
    with pytest.raises(InvalidInputError):
        NodeRegistry(tol)


def test_default_tolerance_from_env(monkeypatch):
    monkeypatch.setenv("GLLMETA_TOLERANCE", "1e-8")
    assert NodeRegistry().tolerance == 1e-8


def test_concurrent_registration_is_consistent():
    """
    Test that threads racing to register the same points all get the same
    index for each point and that the registry holds each point once.
    """
    registry = NodeRegistry(1e-10)
    pts = np.random.default_rng(0).normal(size=(200, 3))
    results = []

    def work():
        results.append(registry.resolve(pts))

    threads = [threading.Thread(target=work) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(registry) == 200
    for r in results[1:]:
        np.testing.assert_array_equal(r, results[0])


def test_boundary_mask():
    mask = boundary_mask(4)
    assert mask.sum() == 12
    assert not mask[1:-1, 1:-1].any()


def test_unshared_boundary_count_open_face():
    nodes = np.arange(16).reshape(4, 4)[:, :, None]
    assert count_unshared_boundary_nodes(nodes) == 12


def test_unshared_boundary_count_two_faces_sharing_edge():
    """
    Test that nodes on a shared edge are not counted: each 3x3 face has 8
    boundary nodes, 3 of which are shared with the other face.
    """
    a = np.arange(9).reshape(3, 3)
    b = np.arange(9, 18).reshape(3, 3)
    b[:, 0] = a[:, 2]
    nodes = np.stack([a, b], axis=2)
    assert count_unshared_boundary_nodes(nodes) == 2 * 8 - 2 * 3
