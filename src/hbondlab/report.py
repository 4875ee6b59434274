"""Hydrogen-bond average and bridging reports."""
from __future__ import annotations

import logging
import os
from typing import Dict, List, Optional, Sequence, Tuple

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pandas as pd

from hbondlab.bridges import BridgeKey, SolventBridgeTracker
from hbondlab.registry import HbondRecord, HbondRegistry
from hbondlab.topology import TopologyView

logger = logging.getLogger("hbondlab")

SOLVENT_ACCEPTOR_TEXT = "SolventAcc"
SOLVENT_DONOR_TEXT = "SolventDnr"
SOLVENT_HYDROGEN_TEXT = "SolventH"

HBOND_COLUMNS = [
    "key",
    "acceptor",
    "hydrogen",
    "donor",
    "frames",
    "fraction",
    "avg_distance",
    "avg_angle",
]


def summarize_records(
    records: Sequence[HbondRecord],
    topology: TopologyView,
    n_frames: int,
) -> pd.DataFrame:
    """Averaged rows for drained records, in the given order."""
    rows = []
    for rec in records:
        if rec.solvent_acceptor:
            acceptor = SOLVENT_ACCEPTOR_TEXT
        else:
            acceptor = topology.label(rec.acceptor)
        if rec.solvent_donor:
            donor = SOLVENT_DONOR_TEXT
            hydrogen = SOLVENT_HYDROGEN_TEXT
        else:
            donor = topology.label(rec.donor)
            hydrogen = topology.label(rec.hydrogen)
        rows.append(
            {
                "key": rec.key,
                "acceptor": acceptor,
                "hydrogen": hydrogen,
                "donor": donor,
                "frames": rec.frames,
                "fraction": rec.occupancy(n_frames),
                "avg_distance": rec.avg_distance,
                "avg_angle": rec.avg_angle,
            }
        )
    return pd.DataFrame(rows, columns=HBOND_COLUMNS)


def summarize_bridges(bridges: Sequence[Tuple[BridgeKey, int]], topology: TopologyView) -> pd.DataFrame:
    rows = []
    for residues, frames in bridges:
        rows.append(
            {
                "residues": residues,
                "labels": " ".join(f"{res + 1}:{topology.residue_label(res)}" for res in residues),
                "frames": frames,
            }
        )
    return pd.DataFrame(rows, columns=["residues", "labels", "frames"])


def format_hbond_table(
    table: pd.DataFrame,
    width: int,
    count_label: str = "Frames",
    title: Optional[str] = None,
) -> str:
    lines: List[str] = []
    if title:
        lines.append(title)
    lines.append(
        f"{'#Acceptor':<{width}} {'DonorH':>{width}} {'Donor':>{width}} "
        f"{count_label:>8} {'Frac':>12} {'AvgDist':>12} {'AvgAng':>12}"
    )
    for row in table.itertuples(index=False):
        lines.append(
            f"{row.acceptor:<{width}} {row.hydrogen:>{width}} {row.donor:>{width}} "
            f"{int(row.frames):>8d} {row.fraction:>12.4f} {row.avg_distance:>12.4f} {row.avg_angle:>12.4f}"
        )
    return "\n".join(lines) + "\n"


def format_bridge_table(table: pd.DataFrame) -> str:
    lines = ["#Bridging Solute Residues:"]
    for row in table.itertuples(index=False):
        lines.append(f"Bridge Res {row.labels}, {int(row.frames)} frames.")
    return "\n".join(lines) + "\n"


class ReportGenerator:
    """Drains registries into sorted, averaged tables and writes them out.

    Destinations written earlier by the same generator are appended to
    rather than overwritten. A destination that cannot be written is
    logged and skipped.
    """

    def __init__(self, topology: TopologyView, n_frames: int):
        self.topology = topology
        self.n_frames = n_frames
        self.width = topology.label_width()
        self.warnings: List[str] = []
        self._written: set[str] = set()

    def hbond_table(self, registry: HbondRegistry) -> Tuple[pd.DataFrame, List[HbondRecord]]:
        records = registry.drain()
        return summarize_records(records, self.topology, self.n_frames), records

    def bridge_table(self, tracker: SolventBridgeTracker) -> pd.DataFrame:
        return summarize_bridges(tracker.drain(), self.topology)

    def write(self, path: Optional[str], text: str) -> bool:
        if not path:
            return False
        norm = os.path.abspath(path)
        mode = "a" if norm in self._written else "w"
        try:
            dirpath = os.path.dirname(norm)
            if dirpath:
                os.makedirs(dirpath, exist_ok=True)
            with open(norm, mode, encoding="utf-8") as handle:
                handle.write(text)
        except OSError as exc:
            msg = f"Could not write report to {path}: {exc}"
            logger.error(msg)
            self.warnings.append(msg)
            return False
        self._written.add(norm)
        return True

    def write_solute(self, path: Optional[str], table: pd.DataFrame) -> bool:
        return self.write(path, format_hbond_table(table, self.width))

    def write_solvent(self, path: Optional[str], table: pd.DataFrame) -> bool:
        return self.write(
            path,
            format_hbond_table(table, self.width, count_label="Count", title="#Solute-Solvent Hbonds:"),
        )

    def write_bridges(self, path: Optional[str], table: pd.DataFrame) -> bool:
        return self.write(path, format_bridge_table(table))


def plot_frame_counts(per_frame: pd.DataFrame, path: str, name: str) -> Optional[str]:
    """Line plot of per-frame hydrogen-bond counts."""
    columns = [col for col in per_frame.columns if col.startswith("HB_")]
    if per_frame.empty or not columns:
        return None
    fig, ax = plt.subplots(figsize=(8, 3))
    for col in columns:
        ax.plot(per_frame["frame"], per_frame[col], label=col)
    ax.set_xlabel("Frame")
    ax.set_ylabel("N hbonds")
    ax.set_title(f"{name}: hydrogen bonds vs frame")
    ax.legend(loc="best")
    fig.tight_layout()
    fig.savefig(path, dpi=200)
    plt.close(fig)
    return path


def series_frame(records: Sequence[HbondRecord], frame_labels: Sequence[int]) -> pd.DataFrame:
    """One 0/1 column per bond (named by legend), one row per frame."""
    columns: Dict[str, object] = {"frame": list(frame_labels)}
    n = len(frame_labels)
    for rec in records:
        if rec.series is None:
            continue
        name = rec.legend or str(rec.key)
        if name in columns:
            name = f"{name}[{rec.key}]"
        columns[name] = rec.series[:n]
    return pd.DataFrame(columns)
