import pytest
import os
import sys

import numpy as np
import MDAnalysis as mda

# Add src to path for all tests
src_path = os.path.abspath(os.path.join(os.path.dirname(__file__), "../src"))
if src_path not in sys.path:
    sys.path.insert(0, src_path)


def place_acceptor(hydrogen, donor, dist2, angle_deg):
    """Acceptor position with |A-D|^2 == dist2 and angle A-H-D == angle_deg.

    ``hydrogen`` and ``donor`` must lie on the x axis with H at larger x.
    """
    hydrogen = np.asarray(hydrogen, dtype=float)
    donor = np.asarray(donor, dtype=float)
    bond = float(np.linalg.norm(hydrogen - donor))
    theta = np.deg2rad(180.0 - angle_deg)
    # |A-D|^2 = r^2 + 2 r bond cos(theta) + bond^2
    c = np.cos(theta)
    r = -bond * c + np.sqrt((bond * c) ** 2 - bond ** 2 + dist2)
    return hydrogen + r * np.array([np.cos(theta), np.sin(theta), 0.0])


@pytest.fixture
def make_universe():
    """Builds an in-memory universe from per-atom tuples.

    ``atoms`` is a list of (name, element, resindex); ``coords`` is
    (n_frames, n_atoms, 3).
    """

    def _make(atoms, resnames, coords, bonds=(), box=None):
        n_atoms = len(atoms)
        u = mda.Universe.empty(
            n_atoms=n_atoms,
            n_residues=len(resnames),
            atom_resindex=[res for _, _, res in atoms],
            trajectory=True,
        )
        u.add_TopologyAttr("names", [name for name, _, _ in atoms])
        u.add_TopologyAttr("elements", [element for _, element, _ in atoms])
        u.add_TopologyAttr("resnames", list(resnames))
        u.add_TopologyAttr("resids", list(range(1, len(resnames) + 1)))
        if bonds:
            u.add_TopologyAttr("bonds", [tuple(pair) for pair in bonds])
        coords = np.asarray(coords, dtype=np.float32)
        if coords.ndim == 2:
            coords = coords[None, :, :]
        if box is None:
            u.load_new(coords, order="fac")
        else:
            u.load_new(coords, order="fac", dimensions=np.asarray(box, dtype=np.float32))
        return u

    return _make


@pytest.fixture
def water_dimer_universe(make_universe):
    """Serine-like OH donor (res 0), a carbonyl acceptor (res 1) and two waters."""
    atoms = [
        ("OG", "O", 0),
        ("HG", "H", 0),
        ("O", "O", 1),
        ("C", "C", 1),
        ("OW", "O", 2),
        ("HW1", "H", 2),
        ("HW2", "H", 2),
        ("OW", "O", 3),
        ("HW1", "H", 3),
        ("HW2", "H", 3),
    ]
    coords = np.zeros((10, 3))
    coords[0] = [0.0, 0.0, 0.0]
    coords[1] = [1.0, 0.0, 0.0]
    coords[2] = [2.8, 0.0, 0.0]
    coords[3] = [4.0, 0.0, 0.0]
    for offset, idx in ((20.0, 4), (40.0, 7)):
        coords[idx] = [offset, 0.0, 0.0]
        coords[idx + 1] = [offset + 1.0, 0.0, 0.0]
        coords[idx + 2] = [offset - 0.3, 0.9, 0.0]
    return make_universe(
        atoms,
        ["SER", "GLY", "WAT", "WAT"],
        coords,
        bonds=[(0, 1), (2, 3), (4, 5), (4, 6), (7, 8), (7, 9)],
    )
