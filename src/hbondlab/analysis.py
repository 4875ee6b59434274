"""Hydrogen-bond analysis lifecycle and trajectory driver for hbondlab."""
from __future__ import annotations

import dataclasses
import enum
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

import pandas as pd
import MDAnalysis as mda

from hbondlab.bridges import SolventBridgeTracker, SolventContacts
from hbondlab.classifier import HbondSites, classify_sites
from hbondlab.errors import SetupError, StateError
from hbondlab.evaluator import CandidateEvaluator
from hbondlab.geometry import FrameGeometry, valid_box
from hbondlab.models import AnalysisOptions, HbondConfig, InputConfig, ProjectConfig
from hbondlab.registry import HbondRegistry
from hbondlab.report import ReportGenerator, series_frame
from hbondlab.topology import TopologyView

try:
    import yaml
except Exception:  # pragma: no cover - optional dependency in practice
    yaml = None


ProgressCallback = Callable[[int, int, str], None]


class AnalysisState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    CONFIGURED = "configured"
    ACCUMULATING = "accumulating"
    REPORTED = "reported"


@dataclass
class FrameCounts:
    frame: int
    solute: int
    solvent: Optional[int] = None
    bridges: Optional[int] = None


@dataclass
class HbondResult:
    name: str
    n_frames: int
    solute: pd.DataFrame
    per_frame: pd.DataFrame
    solvent: Optional[pd.DataFrame] = None
    bridges: Optional[pd.DataFrame] = None
    solute_series: Optional[pd.DataFrame] = None
    solvent_series: Optional[pd.DataFrame] = None
    reports: Dict[str, str] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    config: Optional[HbondConfig] = None


class HbondAnalysis:
    """One hydrogen-bond analysis over a stream of frames.

    Lifecycle: ``setup`` (once per topology) -> ``evaluate`` (once per frame,
    strictly increasing frame index) -> ``finalize`` (drains all state into
    reports). Nothing can be evaluated after ``finalize``; a second
    ``finalize`` yields empty tables.
    """

    def __init__(self, config: HbondConfig, logger: Optional[logging.Logger] = None):
        config.validate()
        self.config = config
        self.logger = logger or logging.getLogger("hbondlab")
        self.state = AnalysisState.UNINITIALIZED
        self.active = False

        self.topology: Optional[TopologyView] = None
        self.sites: Optional[HbondSites] = None
        self.evaluator: Optional[CandidateEvaluator] = None
        self.total_frames: Optional[int] = None

        self.solute = HbondRegistry("solute")
        self.solvent = HbondRegistry("solvent")
        self.bridges = SolventBridgeTracker()

        self.n_frames = 0
        self.frame_labels: List[int] = []
        self.num_solute: List[int] = []
        self.num_solvent: List[int] = []
        self.num_bridges: List[int] = []
        self._last_frame = -1

    def setup(self, topology: TopologyView, total_frames: Optional[int] = None) -> HbondSites:
        if self.state is AnalysisState.REPORTED:
            raise StateError(f"Hbond {self.config.name}: setup called after finalize")
        cfg = self.config
        if cfg.series and total_frames is None:
            self.active = False
            raise SetupError(f"Hbond {cfg.name}: per-bond series need the total frame count")
        try:
            sites = classify_sites(topology, cfg)
        except SetupError as exc:
            self.active = False
            self.logger.warning("Hbond %s: setup failed, skipping: %s", cfg.name, exc)
            raise

        if self.sites is not None and not sites.same_enumeration(self.sites):
            if len(self.solute) or len(self.solvent):
                self.logger.warning(
                    "Hbond %s: donor/acceptor lists changed; discarding %d solute and %d solvent records",
                    cfg.name,
                    len(self.solute),
                    len(self.solvent),
                )
            self.solute.clear()
            self.solvent.clear()

        series_length = int(total_frames) if cfg.series else None
        self.solute.series_length = series_length
        self.solvent.series_length = series_length
        self.total_frames = total_frames
        self.topology = topology
        self.sites = sites
        self.evaluator = CandidateEvaluator(sites, topology, cfg.distance_cutoff2, cfg.angle_cutoff)
        self.active = True
        if self.state is AnalysisState.UNINITIALIZED:
            self.state = AnalysisState.CONFIGURED

        self.logger.info("HBOND %s: %s", cfg.name, cfg.describe())
        if cfg.solvent_donor:
            self.logger.info("Hbond %s: solvent donors in [%s]", cfg.name, cfg.solvent_donor)
        if cfg.solvent_acceptor:
            self.logger.info("Hbond %s: solvent acceptors in [%s]", cfg.name, cfg.solvent_acceptor)
        self.logger.info(
            "Hbond %s: distance cutoff = %.3f, angle cutoff = %.3f", cfg.name, cfg.distance, cfg.angle
        )
        self.logger.info(
            "Hbond %s: candidate pairs per frame (solute, solute donor-solvent, solvent donor-solute): %s",
            cfg.name,
            self.evaluator.pairs_tested(),
        )
        if cfg.series:
            self.logger.info("Hbond %s: time series for each hbond will be saved.", cfg.name)
        return sites

    def evaluate(self, frame: int, geometry, frame_label: Optional[int] = None) -> Optional[FrameCounts]:
        """Process one frame; returns None while no setup has succeeded."""
        if self.state is AnalysisState.REPORTED:
            raise StateError(f"Hbond {self.config.name}: evaluate called after finalize")
        if not self.active:
            return None
        if frame <= self._last_frame:
            raise StateError(
                f"Hbond {self.config.name}: frame {frame} is not after frame {self._last_frame}"
            )
        self._last_frame = frame

        cfg = self.config
        counts = FrameCounts(frame=frame, solute=self.evaluator.solute_sweep(geometry, frame, self.solute))
        self.num_solute.append(counts.solute)
        if cfg.calc_solvent:
            contacts = SolventContacts()
            solvent_hbonds = 0
            if cfg.solvent_acceptor:
                solvent_hbonds += self.evaluator.solute_donor_sweep(geometry, frame, self.solvent, contacts)
            if cfg.solvent_donor:
                solvent_hbonds += self.evaluator.solvent_donor_sweep(geometry, frame, self.solvent, contacts)
            counts.solvent = solvent_hbonds
            counts.bridges = self.bridges.update(contacts)
            self.num_solvent.append(counts.solvent)
            self.num_bridges.append(counts.bridges)

        self.frame_labels.append(frame if frame_label is None else frame_label)
        self.n_frames += 1
        self.state = AnalysisState.ACCUMULATING
        return counts

    def per_frame_table(self) -> pd.DataFrame:
        data: Dict[str, object] = {
            "frame": list(self.frame_labels),
            "HB_UU": list(self.num_solute),
        }
        if self.config.calc_solvent:
            data["HB_UV"] = list(self.num_solvent)
            data["HB_Bridge"] = list(self.num_bridges)
        return pd.DataFrame(data)

    def finalize(self) -> HbondResult:
        if self.topology is None:
            raise StateError(f"Hbond {self.config.name}: finalize called before a successful setup")
        cfg = self.config
        generator = ReportGenerator(self.topology, self.n_frames)
        result_warnings: List[str] = []
        if self.n_frames == 0:
            result_warnings.append(f"Hbond {cfg.name}: no frames were processed")

        solute_table, solute_records = generator.hbond_table(self.solute)
        reports: Dict[str, str] = {}
        if generator.write_solute(cfg.avgout, solute_table):
            reports["avgout"] = cfg.avgout

        solvent_table = None
        bridge_table = None
        solvent_records = []
        if cfg.calc_solvent:
            solvent_table, solvent_records = generator.hbond_table(self.solvent)
            bridge_table = generator.bridge_table(self.bridges)
            if generator.write_solvent(cfg.solvout, solvent_table):
                reports["solvout"] = cfg.solvout
            if generator.write_bridges(cfg.bridgeout, bridge_table):
                reports["bridgeout"] = cfg.bridgeout

        solute_series = None
        solvent_series = None
        if cfg.series:
            labels = self.frame_labels
            solute_series = series_frame(solute_records, labels)
            if cfg.calc_solvent:
                solvent_series = series_frame(solvent_records, labels)

        result_warnings.extend(generator.warnings)
        self.state = AnalysisState.REPORTED
        self.logger.info(
            "Hbond %s: %d frames, %d solute hbonds%s",
            cfg.name,
            self.n_frames,
            len(solute_table),
            f", {len(solvent_table)} solute-solvent hbonds, {len(bridge_table)} bridges"
            if cfg.calc_solvent
            else "",
        )
        return HbondResult(
            name=cfg.name,
            n_frames=self.n_frames,
            solute=solute_table,
            per_frame=self.per_frame_table(),
            solvent=solvent_table,
            bridges=bridge_table,
            solute_series=solute_series,
            solvent_series=solvent_series,
            reports=reports,
            warnings=result_warnings,
            config=cfg,
        )


@dataclass
class AnalysisResult:
    hbond_results: Dict[str, HbondResult]
    warnings: List[str]
    qc_summary: Dict[str, object]


def load_universe(inputs: InputConfig) -> mda.Universe:
    if inputs.trajectory:
        u = mda.Universe(inputs.topology, inputs.trajectory)
    else:
        u = mda.Universe(inputs.topology)

    # Donor detection walks covalent bonds; guess them when the topology has none.
    if not hasattr(u.atoms, "bonds") or len(u.atoms.bonds) == 0:
        try:
            u.atoms.guess_bonds()
            logging.getLogger("hbondlab").info("Guessed bonds for %d atoms.", len(u.atoms))
        except Exception as exc:
            logging.getLogger("hbondlab").warning("Failed to guess bonds: %s", exc)
    return u


class HbondAnalysisEngine:
    def __init__(self, project: ProjectConfig):
        self.project = project

    def _load_universe(self) -> mda.Universe:
        return load_universe(self.project.inputs)

    def _frame_indices(self, n_frames: int, options: AnalysisOptions) -> range:
        if options.stride <= 0:
            raise ValueError("Frame stride must be positive")
        start = max(options.frame_start, 0)
        stop = options.frame_stop if options.frame_stop is not None else n_frames
        stop = min(stop, n_frames)
        return range(start, stop, options.stride)

    def run(
        self,
        progress: Optional[ProgressCallback] = None,
        logger: Optional[logging.Logger] = None,
        universe: Optional[mda.Universe] = None,
    ) -> AnalysisResult:
        logger = logger or logging.getLogger("hbondlab")
        warnings: List[str] = []
        output_dir = self.project.outputs.output_dir

        # Build every analysis first so configuration errors abort before any frame.
        analyses: List[HbondAnalysis] = []
        for cfg in self.project.hbonds:
            cfg = dataclasses.replace(cfg)
            cfg.resolve_outputs(output_dir)
            analyses.append(HbondAnalysis(cfg, logger=logger))
        if not analyses:
            raise ValueError("No hbond analyses configured")

        if universe is None:
            universe = self._load_universe()
        logger.info("Topology: %s", self.project.inputs.topology)
        logger.info(
            "Trajectory: %s",
            self.project.inputs.trajectory if self.project.inputs.trajectory else "None",
        )
        logger.info("Total atoms: %d", len(universe.atoms))
        logger.info("Total frames: %d", len(universe.trajectory))

        if valid_box(universe.trajectory.ts.dimensions) is None:
            warnings.append("No valid box vectors found; distances are not imaged.")
            logger.warning("No valid box vectors found; distances are not imaged.")

        frame_indices = self._frame_indices(len(universe.trajectory), self.project.analysis)
        total_frames = len(frame_indices)
        if total_frames == 0:
            raise ValueError("No frames selected for analysis")
        logger.info(
            "Frame selection: start=%s stop=%s stride=%s -> %d frames",
            self.project.analysis.frame_start,
            self.project.analysis.frame_stop if self.project.analysis.frame_stop is not None else "end",
            self.project.analysis.stride,
            total_frames,
        )

        topology = TopologyView(universe)
        if not topology.has_bonds:
            warnings.append("Topology has no bonds; only ion donors can be detected.")
            logger.warning("Topology has no bonds; only ion donors can be detected.")

        active: List[HbondAnalysis] = []
        setup_summary: Dict[str, object] = {}
        for analysis in analyses:
            try:
                sites = analysis.setup(topology, total_frames=total_frames)
            except SetupError as exc:
                warnings.append(str(exc))
                setup_summary[analysis.config.name] = {"ok": False, "error": str(exc)}
                continue
            active.append(analysis)
            setup_summary[analysis.config.name] = {
                "ok": True,
                "mode": sites.mode,
                "n_donors": len(sites.donors),
                "n_acceptors": len(sites.acceptors),
                "n_solvent_donors": len(sites.solvent_donors),
                "n_solvent_acceptors": len(sites.solvent_acceptors),
            }

        log_every = max(1, int(total_frames / 100))
        if active:
            trajectory = universe.trajectory[frame_indices.start:frame_indices.stop:frame_indices.step]
            for sample_index, ts in enumerate(trajectory):
                geometry = FrameGeometry.from_timestep(ts)
                for analysis in active:
                    analysis.evaluate(sample_index, geometry, frame_label=int(ts.frame))
                if progress:
                    progress(sample_index + 1, total_frames, f"Frame {ts.frame}")
                if (sample_index + 1) % log_every == 0 or sample_index + 1 == total_frames:
                    logger.info("Processed %d/%d frames", sample_index + 1, total_frames)
        else:
            logger.warning("No hbond analysis could be set up; no frames processed.")

        results: Dict[str, HbondResult] = {}
        for analysis in active:
            result = analysis.finalize()
            warnings.extend(result.warnings)
            results[result.name] = result

        qc_summary = {
            "n_frames": total_frames,
            "pbc": valid_box(universe.trajectory.ts.dimensions) is not None,
            "setup": setup_summary,
        }
        return AnalysisResult(hbond_results=results, warnings=warnings, qc_summary=qc_summary)


def write_project_json(project: ProjectConfig, path: str) -> None:
    dirpath = os.path.dirname(path)
    if dirpath:
        os.makedirs(dirpath, exist_ok=True)
    data = project.to_dict()
    if path.endswith((".yaml", ".yml")) and yaml is not None:
        with open(path, "w", encoding="utf-8") as handle:
            yaml.safe_dump(data, handle, sort_keys=False)
    else:
        with open(path, "w", encoding="utf-8") as handle:
            json.dump(data, handle, indent=2)


def load_project_json(path: str) -> ProjectConfig:
    with open(path, "r", encoding="utf-8") as handle:
        if path.endswith((".yaml", ".yml")) and yaml is not None:
            data = yaml.safe_load(handle)
        else:
            data = json.load(handle)
    return ProjectConfig.from_dict(data or {})
