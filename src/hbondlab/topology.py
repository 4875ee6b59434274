"""Topology access and atom selection on top of an MDAnalysis Universe."""
from __future__ import annotations

import logging
import re
from typing import List, Sequence

import numpy as np
import MDAnalysis as mda
from MDAnalysis.exceptions import NoDataError, SelectionError

from hbondlab.errors import SetupError

logger = logging.getLogger("hbondlab")

HYDROGEN = "H"
ACCEPTOR_ELEMENTS = frozenset({"F", "O", "N"})

_LEADING_LETTERS = re.compile(r"[A-Za-z]+")


def _guess_element(name: str, resname: str, n_res_atoms: int) -> str:
    """Element symbol from an atom name.

    Single-atom residues named after their atom (NA, CL, MG...) are ions and
    keep the full name; everything else uses the first letter.
    """
    match = _LEADING_LETTERS.search(name or "")
    if match is None:
        return ""
    letters = match.group(0).upper()
    if n_res_atoms == 1 and resname and resname.strip().upper() == name.strip().upper():
        return letters[:2]
    return letters[0]


def _string_attr(group, attr: str, default: str) -> List[str]:
    try:
        return [str(value) for value in getattr(group, attr)]
    except (NoDataError, AttributeError):
        return [default] * len(group)


class TopologyView:
    """Read-only view of the per-atom properties the hbond engine needs.

    Wraps one MDAnalysis Universe. Atom indices are the 0-based
    ``AtomGroup.indices`` of that universe and are only meaningful while
    this topology is current.
    """

    def __init__(self, universe: mda.Universe):
        self.universe = universe
        atoms = universe.atoms
        self.n_atoms = len(atoms)
        self.n_residues = len(universe.residues)

        self._names = _string_attr(atoms, "names", "X")
        self._resnames = _string_attr(universe.residues, "resnames", "UNK")
        self._resindices = np.asarray(atoms.resindices, dtype=int)
        self._elements = self._resolve_elements(atoms)
        self._neighbors = self._bond_table(universe)
        self._molindices = self._molecule_indices(atoms)

    def _resolve_elements(self, atoms) -> List[str]:
        try:
            elements = [str(value).strip().upper() for value in atoms.elements]
        except (NoDataError, AttributeError):
            elements = []
        if elements and all(elements):
            return elements
        res_sizes = np.bincount(self._resindices, minlength=self.n_residues)
        guessed = []
        for idx, name in enumerate(self._names):
            if elements and elements[idx]:
                guessed.append(elements[idx])
                continue
            resindex = int(self._resindices[idx])
            guessed.append(_guess_element(name, self._resnames[resindex], int(res_sizes[resindex])))
        return guessed

    def _bond_table(self, universe: mda.Universe) -> List[List[int]]:
        neighbors: List[List[int]] = [[] for _ in range(self.n_atoms)]
        try:
            pairs = universe.bonds.indices
        except (NoDataError, AttributeError):
            return neighbors
        for a, b in np.asarray(pairs, dtype=int).reshape(-1, 2):
            neighbors[a].append(int(b))
            neighbors[b].append(int(a))
        return neighbors

    def _molecule_indices(self, atoms) -> np.ndarray:
        if any(self._neighbors):
            try:
                return np.asarray(atoms.fragindices, dtype=int)
            except (NoDataError, AttributeError):
                pass
        # Without bonds every residue is treated as its own molecule.
        return self._resindices.copy()

    @property
    def has_bonds(self) -> bool:
        return any(self._neighbors)

    def element(self, atom: int) -> str:
        return self._elements[atom]

    def is_hydrogen(self, atom: int) -> bool:
        return self._elements[atom] == HYDROGEN

    def bonded_neighbors(self, atom: int) -> Sequence[int]:
        return self._neighbors[atom]

    def residue_index(self, atom: int) -> int:
        return int(self._resindices[atom])

    def molecule_index(self, atom: int) -> int:
        return int(self._molindices[atom])

    def residue_label(self, resindex: int) -> str:
        return self._resnames[resindex]

    def label(self, atom: int) -> str:
        """``RESNAME_RESNUM@ATOMNAME`` with a 1-based residue number."""
        resindex = int(self._resindices[atom])
        return f"{self._resnames[resindex]}_{resindex + 1}@{self._names[atom]}"

    def label_width(self) -> int:
        """Column width for atom labels: residue-number digits plus name room."""
        return len(str(max(self.n_residues, 1))) + 10

    def select(self, expression: str, label: str = "mask") -> np.ndarray:
        """Evaluate a selection expression into an ordered atom index array."""
        selection = (expression or "").strip()
        if not selection:
            raise SetupError(f"Selection '{label}' is empty")
        if selection.lower().startswith(("and ", "or ")):
            raise SetupError(f"Selection '{label}' starts with an operator: {selection!r}")
        try:
            group = self.universe.select_atoms(selection)
        except (SelectionError, ValueError) as exc:
            raise SetupError(f"Selection '{label}' could not be parsed ({selection!r}): {exc}") from exc
        if len(group) == 0:
            logger.warning("Selection %s (%s) has no atoms.", label, selection)
            raise SetupError(f"Selection '{label}' resolved to 0 atoms: {selection!r}")
        return np.asarray(group.indices, dtype=int)
