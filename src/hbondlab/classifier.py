"""Donor and acceptor detection for hydrogen-bond analysis."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from hbondlab.errors import SetupError
from hbondlab.models import HbondConfig
from hbondlab.topology import ACCEPTOR_ELEMENTS, TopologyView

logger = logging.getLogger("hbondlab")


@dataclass(frozen=True)
class DonorPair:
    """Heavy atom plus one bonded hydrogen.

    ``heavy == hydrogen`` marks an ion (no hydrogen); such donors are
    accepted on distance alone.
    """

    heavy: int
    hydrogen: int

    @property
    def is_ion(self) -> bool:
        return self.heavy == self.hydrogen


@dataclass(frozen=True)
class HbondSites:
    """Donor/acceptor lists fixed for one topology.

    The order of ``donors`` and ``acceptors`` defines the solute-solute
    bond identity ``donor_position * len(acceptors) + acceptor_position``.
    """

    donors: Tuple[DonorPair, ...]
    acceptors: Tuple[int, ...]
    solvent_donors: Tuple[DonorPair, ...] = ()
    solvent_acceptors: Tuple[int, ...] = ()
    mode: str = "auto"

    @property
    def n_slots(self) -> int:
        return len(self.donors) * len(self.acceptors)

    def bond_key(self, donor_position: int, acceptor_position: int) -> int:
        return donor_position * len(self.acceptors) + acceptor_position

    def same_enumeration(self, other: Optional["HbondSites"]) -> bool:
        return (
            other is not None
            and self.donors == other.donors
            and self.acceptors == other.acceptors
            and self.solvent_donors == other.solvent_donors
            and self.solvent_acceptors == other.solvent_acceptors
        )

    def describe(self, topology: TopologyView) -> List[str]:
        lines = [f"Set up {len(self.acceptors)} acceptors:"]
        for atom in self.acceptors:
            lines.append(f"{atom + 1:>8d}: {topology.label(atom)}")
        lines.append(f"Set up {len(self.donors)} donors:")
        for pair in self.donors:
            lines.append(
                f"{pair.heavy + 1:>8d}:{topology.label(pair.heavy)} - "
                f"{pair.hydrogen + 1:>8d}:{topology.label(pair.hydrogen)}"
            )
        if self.solvent_acceptors:
            lines.append(f"Set up {len(self.solvent_acceptors)} solvent acceptors")
        if self.solvent_donors:
            lines.append(f"Set up {len(self.solvent_donors)} solvent donors")
        return lines


def search_acceptors(topology: TopologyView, atoms: Iterable[int], auto: bool) -> List[int]:
    """Acceptors among ``atoms``; with ``auto`` only F, O and N qualify."""
    found = []
    for atom in atoms:
        atom = int(atom)
        if not auto or topology.element(atom) in ACCEPTOR_ELEMENTS:
            found.append(atom)
    return found


def search_donors(topology: TopologyView, atoms: Iterable[int], auto: bool) -> List[DonorPair]:
    """Donor X-H pairs among ``atoms``.

    Hydrogens are never heavy atoms. With ``auto`` only F, O and N heavy
    atoms are considered; without it an atom with no bonds is an ion donor.
    """
    found: List[DonorPair] = []
    for atom in atoms:
        atom = int(atom)
        if topology.is_hydrogen(atom):
            continue
        if auto and topology.element(atom) not in ACCEPTOR_ELEMENTS:
            continue
        neighbors = topology.bonded_neighbors(atom)
        if not auto and len(neighbors) == 0:
            found.append(DonorPair(atom, atom))
            continue
        for partner in neighbors:
            if topology.is_hydrogen(partner):
                found.append(DonorPair(atom, int(partner)))
    return found


def classify_sites(topology: TopologyView, config: HbondConfig) -> HbondSites:
    """Build solute (and solvent) donor/acceptor lists for ``config``.

    Raises SetupError when any mask in use selects no atoms.
    """
    mode = config.search_mode
    region = None
    if mode != "explicit":
        region = topology.select(config.selection, "selection")
    donor_atoms = topology.select(config.donor_mask, "donor_mask") if config.has_donor_mask else None
    acceptor_atoms = (
        topology.select(config.acceptor_mask, "acceptor_mask") if config.has_acceptor_mask else None
    )
    solvent_donor_atoms = (
        topology.select(config.solvent_donor, "solvent_donor") if config.solvent_donor else None
    )
    solvent_acceptor_atoms = (
        topology.select(config.solvent_acceptor, "solvent_acceptor") if config.solvent_acceptor else None
    )

    if mode == "auto":
        acceptors = search_acceptors(topology, region, auto=True)
        donors = search_donors(topology, region, auto=True)
    elif mode == "donor_mask":
        acceptors = search_acceptors(topology, region, auto=True)
        donors = search_donors(topology, donor_atoms, auto=False)
    elif mode == "acceptor_mask":
        acceptors = search_acceptors(topology, acceptor_atoms, auto=False)
        donors = search_donors(topology, region, auto=True)
    else:
        acceptors = search_acceptors(topology, acceptor_atoms, auto=False)
        donors = search_donors(topology, donor_atoms, auto=False)

    solvent_acceptors: List[int] = []
    solvent_donors: List[DonorPair] = []
    if solvent_acceptor_atoms is not None:
        solvent_acceptors = search_acceptors(topology, solvent_acceptor_atoms, auto=False)
    if solvent_donor_atoms is not None:
        solvent_donors = search_donors(topology, solvent_donor_atoms, auto=False)

    sites = HbondSites(
        donors=tuple(donors),
        acceptors=tuple(acceptors),
        solvent_donors=tuple(solvent_donors),
        solvent_acceptors=tuple(solvent_acceptors),
        mode=mode,
    )
    logger.info(
        "Hbond %s: %d acceptors, %d donors, %d solvent acceptors, %d solvent donors",
        config.name,
        len(sites.acceptors),
        len(sites.donors),
        len(sites.solvent_acceptors),
        len(sites.solvent_donors),
    )
    if not sites.donors or not sites.acceptors:
        logger.warning("Hbond %s: no solute donor/acceptor pairs to test.", config.name)
    return sites
