"""Solvent molecules bridging two or more solute residues."""
from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Set, Tuple

BridgeKey = Tuple[int, ...]


def bridge_key(residues: Iterable[int]) -> BridgeKey:
    """Order-independent key for a set of residue indices."""
    return tuple(sorted({int(res) for res in residues}))


class SolventContacts:
    """Per-frame scratch map: solvent molecule -> solute residues it bonds to."""

    def __init__(self) -> None:
        self._residues: Dict[int, Set[int]] = defaultdict(set)

    def __len__(self) -> int:
        return len(self._residues)

    def touch(self, solvent_molecule: int, solute_residue: int) -> None:
        self._residues[int(solvent_molecule)].add(int(solute_residue))

    def residues(self, solvent_molecule: int) -> Set[int]:
        return set(self._residues.get(solvent_molecule, ()))

    def items(self):
        return self._residues.items()

    def bridges(self) -> List[BridgeKey]:
        """Residue sets of every molecule touching at least two residues."""
        return [
            bridge_key(residues)
            for _, residues in sorted(self._residues.items())
            if len(residues) > 1
        ]

    def clear(self) -> None:
        self._residues = defaultdict(set)


class SolventBridgeTracker:
    """Counts, per residue set, the frames in which a solvent molecule bridged it.

    Two bridges in one frame over the same residue set count twice.
    """

    def __init__(self) -> None:
        self._counts: Dict[BridgeKey, int] = {}

    def __len__(self) -> int:
        return len(self._counts)

    def __contains__(self, residues) -> bool:
        return bridge_key(residues) in self._counts

    def count(self, residues: Iterable[int]) -> int:
        return self._counts.get(bridge_key(residues), 0)

    def update(self, contacts: SolventContacts | Mapping[int, Set[int]]) -> int:
        """Add this frame's bridges; return how many solvent molecules bridged."""
        if isinstance(contacts, SolventContacts):
            keys = contacts.bridges()
        else:
            keys = [bridge_key(res) for _, res in sorted(contacts.items()) if len(set(res)) > 1]
        for key in keys:
            self._counts[key] = self._counts.get(key, 0) + 1
        return len(keys)

    def clear(self) -> None:
        self._counts.clear()

    def drain(self) -> List[Tuple[BridgeKey, int]]:
        items = sorted(self._counts.items(), key=lambda item: (-item[1], item[0]))
        self._counts.clear()
        return items
