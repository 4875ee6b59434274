"""Per-frame distance and angle primitives."""
from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
from MDAnalysis.lib import distances


def valid_box(dimensions) -> Optional[np.ndarray]:
    """Return the box as float32 array, or None when it cannot be used for PBC."""
    if dimensions is None:
        return None
    dims = np.asarray(dimensions, dtype=np.float32)
    if dims.shape != (6,) or not np.all(np.isfinite(dims)) or not np.all(dims[:3] > 0):
        return None
    return dims


class FrameGeometry:
    """Coordinates of one frame plus the box used for minimum-image distances.

    Angles are returned in radians; the vertex is the middle atom.
    """

    def __init__(self, positions, box=None):
        self.positions = np.asarray(positions, dtype=np.float32)
        self.box = valid_box(box)

    @classmethod
    def from_timestep(cls, ts) -> "FrameGeometry":
        return cls(ts.positions, ts.dimensions)

    @property
    def uses_pbc(self) -> bool:
        return self.box is not None

    def squared_distance(self, a: int, b: int) -> float:
        value = distances.calc_bonds(
            self.positions[[a]], self.positions[[b]], box=self.box
        )
        return float(value[0]) ** 2

    def angle(self, a: int, vertex: int, c: int) -> float:
        value = distances.calc_angles(
            self.positions[[a]], self.positions[[vertex]], self.positions[[c]], box=self.box
        )
        return float(value[0])

    def squared_distance_matrix(self, rows: Sequence[int], cols: Sequence[int]) -> np.ndarray:
        """Squared distances, shape ``(len(rows), len(cols))``."""
        rows = np.asarray(rows, dtype=int)
        cols = np.asarray(cols, dtype=int)
        if rows.size == 0 or cols.size == 0:
            return np.empty((rows.size, cols.size), dtype=np.float64)
        dist = distances.distance_array(self.positions[rows], self.positions[cols], box=self.box)
        return np.square(dist.astype(np.float64))

    def angles(self, a: Sequence[int], vertex: Sequence[int], c: Sequence[int]) -> np.ndarray:
        """Element-wise angles for index triplets."""
        a = np.asarray(a, dtype=int)
        if a.size == 0:
            return np.empty(0, dtype=np.float64)
        values = distances.calc_angles(
            self.positions[a],
            self.positions[np.asarray(vertex, dtype=int)],
            self.positions[np.asarray(c, dtype=int)],
            box=self.box,
        )
        return np.asarray(values, dtype=np.float64)
