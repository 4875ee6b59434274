"""Per-frame hydrogen-bond candidate tests."""
from __future__ import annotations

import math
from typing import List, Sequence

import numpy as np

from hbondlab.bridges import SolventContacts
from hbondlab.classifier import DonorPair, HbondSites
from hbondlab.registry import SOLVENT_ATOM, HbondRegistry
from hbondlab.topology import TopologyView

# Role tags qualifying solute-solvent keys: the solute atom donates or accepts.
SOLUTE_DONOR = "donor"
SOLUTE_ACCEPTOR = "acceptor"


def _donor_arrays(donors: Sequence[DonorPair]):
    heavy = np.fromiter((pair.heavy for pair in donors), dtype=int, count=len(donors))
    hydrogen = np.fromiter((pair.hydrogen for pair in donors), dtype=int, count=len(donors))
    return heavy, hydrogen


class CandidateEvaluator:
    """Tests donor x acceptor candidates of one frame against the cutoffs.

    A candidate is accepted when |A-D|^2 <= distance_cutoff2 and, unless the
    donor is an ion, the A-H-D angle is >= angle_cutoff (radians).
    """

    def __init__(
        self,
        sites: HbondSites,
        topology: TopologyView,
        distance_cutoff2: float,
        angle_cutoff: float,
    ):
        self.sites = sites
        self.topology = topology
        self.distance_cutoff2 = float(distance_cutoff2)
        self.angle_cutoff = float(angle_cutoff)

        self._donor_heavy, self._donor_h = _donor_arrays(sites.donors)
        self._acceptors = np.asarray(sites.acceptors, dtype=int)
        self._solvent_donor_heavy, self._solvent_donor_h = _donor_arrays(sites.solvent_donors)
        self._solvent_acceptors = np.asarray(sites.solvent_acceptors, dtype=int)

    def _accepted(self, geometry, heavy, hydrogen, acceptors):
        """Accepted (donor_pos, acceptor_pos, dist2, angle) in enumeration order."""
        if heavy.size == 0 or acceptors.size == 0:
            empty = np.empty(0, dtype=int)
            return empty, empty, np.empty(0), np.empty(0)
        dist2 = geometry.squared_distance_matrix(heavy, acceptors)
        within = dist2 <= self.distance_cutoff2
        within &= heavy[:, None] != acceptors[None, :]
        # row-major nonzero keeps donor-major, acceptor-minor order
        d_pos, a_pos = np.nonzero(within)
        if d_pos.size == 0:
            return d_pos, a_pos, np.empty(0), np.empty(0)
        d_atoms = heavy[d_pos]
        h_atoms = hydrogen[d_pos]
        a_atoms = acceptors[a_pos]
        ion = d_atoms == h_atoms
        angles = np.zeros(d_pos.size, dtype=np.float64)
        needs_angle = ~ion
        if np.any(needs_angle):
            angles[needs_angle] = geometry.angles(
                a_atoms[needs_angle], h_atoms[needs_angle], d_atoms[needs_angle]
            )
        keep = ion | (angles >= self.angle_cutoff)
        return d_pos[keep], a_pos[keep], dist2[d_pos[keep], a_pos[keep]], angles[keep]

    def solute_sweep(self, geometry, frame: int, registry: HbondRegistry) -> int:
        """Solute donors x solute acceptors; returns the number of bonds found."""
        d_pos, a_pos, dist2, angles = self._accepted(
            geometry, self._donor_heavy, self._donor_h, self._acceptors
        )
        for dp, ap, d2, ang in zip(d_pos.tolist(), a_pos.tolist(), dist2.tolist(), angles.tolist()):
            pair = self.sites.donors[dp]
            acceptor = self.sites.acceptors[ap]
            key = self.sites.bond_key(dp, ap)
            legend = ""
            if registry.series_length is not None and key not in registry:
                legend = f"{self.topology.label(acceptor)}-{self.topology.label(pair.heavy)}"
            registry.record(
                key,
                acceptor=acceptor,
                donor=pair.heavy,
                hydrogen=pair.hydrogen,
                distance=math.sqrt(d2),
                angle=ang,
                frame=frame,
                legend=legend,
            )
        return int(d_pos.size)

    def solute_donor_sweep(
        self,
        geometry,
        frame: int,
        registry: HbondRegistry,
        contacts: SolventContacts,
    ) -> int:
        """Solute donors x solvent acceptors, keyed by the donor heavy atom."""
        d_pos, a_pos, dist2, angles = self._accepted(
            geometry, self._donor_heavy, self._donor_h, self._solvent_acceptors
        )
        for dp, ap, d2, ang in zip(d_pos.tolist(), a_pos.tolist(), dist2.tolist(), angles.tolist()):
            pair = self.sites.donors[dp]
            solvent_atom = self.sites.solvent_acceptors[ap]
            key = (pair.heavy, SOLUTE_DONOR)
            legend = ""
            if registry.series_length is not None and key not in registry:
                legend = f"{self.topology.label(pair.heavy)}-V"
            registry.record(
                key,
                acceptor=SOLVENT_ATOM,
                donor=pair.heavy,
                hydrogen=pair.hydrogen,
                distance=math.sqrt(d2),
                angle=ang,
                frame=frame,
                legend=legend,
            )
            contacts.touch(
                self.topology.molecule_index(solvent_atom),
                self.topology.residue_index(pair.heavy),
            )
        return int(d_pos.size)

    def solvent_donor_sweep(
        self,
        geometry,
        frame: int,
        registry: HbondRegistry,
        contacts: SolventContacts,
    ) -> int:
        """Solvent donors x solute acceptors, keyed by the solute acceptor."""
        d_pos, a_pos, dist2, angles = self._accepted(
            geometry, self._solvent_donor_heavy, self._solvent_donor_h, self._acceptors
        )
        for dp, ap, d2, ang in zip(d_pos.tolist(), a_pos.tolist(), dist2.tolist(), angles.tolist()):
            solvent_pair = self.sites.solvent_donors[dp]
            acceptor = self.sites.acceptors[ap]
            key = (acceptor, SOLUTE_ACCEPTOR)
            legend = ""
            if registry.series_length is not None and key not in registry:
                legend = f"{self.topology.label(acceptor)}-V"
            registry.record(
                key,
                acceptor=acceptor,
                donor=SOLVENT_ATOM,
                hydrogen=SOLVENT_ATOM,
                distance=math.sqrt(d2),
                angle=ang,
                frame=frame,
                legend=legend,
            )
            contacts.touch(
                self.topology.molecule_index(solvent_pair.heavy),
                self.topology.residue_index(acceptor),
            )
        return int(d_pos.size)

    def pairs_tested(self) -> List[int]:
        """Candidate counts per sweep: solute, solute-donor, solvent-donor."""
        return [
            self._donor_heavy.size * self._acceptors.size,
            self._donor_heavy.size * self._solvent_acceptors.size,
            self._solvent_donor_heavy.size * self._acceptors.size,
        ]
