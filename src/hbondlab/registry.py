"""Accumulated hydrogen-bond statistics keyed by bond identity."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Hashable, Iterator, List, Optional

import numpy as np

from hbondlab.errors import StateError
from hbondlab.units import rad_to_deg

# Atom field value for "any solvent atom" in solute-solvent records.
SOLVENT_ATOM = -1


@dataclass
class HbondRecord:
    key: Hashable
    acceptor: int
    donor: int
    hydrogen: int
    frames: int = 0
    distance_sum: float = 0.0
    angle_sum: float = 0.0
    series: Optional[np.ndarray] = None
    legend: str = ""

    @property
    def solvent_acceptor(self) -> bool:
        return self.acceptor == SOLVENT_ATOM

    @property
    def solvent_donor(self) -> bool:
        return self.donor == SOLVENT_ATOM

    @property
    def avg_distance(self) -> float:
        return self.distance_sum / self.frames if self.frames else 0.0

    @property
    def avg_angle(self) -> float:
        """Average angle in degrees."""
        return rad_to_deg(self.angle_sum / self.frames) if self.frames else 0.0

    def occupancy(self, n_frames: int) -> float:
        return self.frames / n_frames if n_frames > 0 else 0.0


class HbondRegistry:
    """Mapping from bond identity to :class:`HbondRecord`.

    Lives for the whole trajectory; emptied only by :meth:`drain` or
    :meth:`clear`. When ``series_length`` is set, each record gets a
    zero-filled 0/1 occupancy array of that length on first detection.
    """

    def __init__(self, kind: str = "solute", series_length: Optional[int] = None):
        self.kind = kind
        self.series_length = series_length
        self._records: Dict[Hashable, HbondRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._records

    def __iter__(self) -> Iterator[HbondRecord]:
        return iter(self._records.values())

    def get(self, key: Hashable) -> Optional[HbondRecord]:
        return self._records.get(key)

    def record(
        self,
        key: Hashable,
        acceptor: int,
        donor: int,
        hydrogen: int,
        distance: float,
        angle: float,
        frame: int,
        legend: str = "",
    ) -> HbondRecord:
        entry = self._records.get(key)
        if entry is None:
            entry = HbondRecord(
                key=key,
                acceptor=acceptor,
                donor=donor,
                hydrogen=hydrogen,
                legend=legend,
            )
            if self.series_length is not None:
                entry.series = np.zeros(self.series_length, dtype=np.int8)
            self._records[key] = entry
        entry.frames += 1
        entry.distance_sum += distance
        entry.angle_sum += angle
        if entry.series is not None:
            if frame < 0 or frame >= entry.series.size:
                raise StateError(
                    f"Frame {frame} outside the {entry.series.size}-frame series of {self.kind} bond {key!r}"
                )
            entry.series[frame] = 1
        return entry

    def clear(self) -> None:
        self._records.clear()

    def drain(self) -> List[HbondRecord]:
        """Remove and return all records, most frequent first, ties by key."""
        records = list(self._records.values())
        self._records.clear()
        records.sort(key=lambda rec: (-rec.frames, rec.key))
        return records
