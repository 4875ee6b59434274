import math

import numpy as np
import pytest

from hbondlab.geometry import FrameGeometry, valid_box


@pytest.mark.parametrize(
    "dims",
    [None, [0, 0, 0, 90, 90, 90], [10, 10, np.nan, 90, 90, 90], [10, 10, 10]],
)
def test_invalid_boxes(dims):
    assert valid_box(dims) is None


def test_distances_are_minimum_image():
    positions = [[0.5, 5.0, 5.0], [9.5, 5.0, 5.0]]
    imaged = FrameGeometry(positions, box=[10, 10, 10, 90, 90, 90])
    plain = FrameGeometry(positions)
    assert imaged.squared_distance_matrix([0], [1])[0, 0] == pytest.approx(1.0, abs=1e-4)
    assert plain.squared_distance_matrix([0], [1])[0, 0] == pytest.approx(81.0, abs=1e-3)


def test_matrix_shape_follows_index_order():
    positions = [[0, 0, 0], [3, 0, 0], [0, 4, 0]]
    geometry = FrameGeometry(positions)
    matrix = geometry.squared_distance_matrix([2, 0], [1])
    assert matrix.shape == (2, 1)
    assert matrix[:, 0] == pytest.approx([25.0, 9.0])
    assert geometry.squared_distance_matrix([], [1]).shape == (0, 1)


def test_angles_use_middle_atom_as_vertex():
    positions = [[1, 0, 0], [0, 0, 0], [0, 1, 0], [-1, 0, 0]]
    geometry = FrameGeometry(positions)
    values = geometry.angles([0, 0], [1, 1], [2, 3])
    assert values == pytest.approx([math.pi / 2, math.pi], abs=1e-4)
    assert geometry.angles([], [], []).size == 0


def test_scalar_primitives_match_vectorised():
    positions = [[0.5, 5.0, 5.0], [9.5, 5.0, 5.0], [0.5, 7.0, 5.0]]
    geometry = FrameGeometry(positions, box=[10, 10, 10, 90, 90, 90])
    assert geometry.uses_pbc
    assert geometry.squared_distance(0, 1) == pytest.approx(
        geometry.squared_distance_matrix([0], [1])[0, 0], abs=1e-4
    )
    assert geometry.angle(1, 0, 2) == pytest.approx(math.pi / 2, abs=1e-4)
    assert not FrameGeometry(positions).uses_pbc
