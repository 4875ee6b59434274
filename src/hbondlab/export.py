"""Export utilities for hbondlab results."""
from __future__ import annotations

import json
import logging
import os
from typing import Dict

import pandas as pd

from hbondlab.analysis import AnalysisResult, HbondResult
from hbondlab.models import ProjectConfig
from hbondlab.report import plot_frame_counts
from hbondlab.serialization import to_jsonable

logger = logging.getLogger("hbondlab")


def _atomic_replace(temp_path: str, final_path: str) -> None:
    os.replace(temp_path, final_path)


def _write_dataframe(df: pd.DataFrame, path_csv: str) -> None:
    dirpath = os.path.dirname(path_csv)
    if dirpath:
        os.makedirs(dirpath, exist_ok=True)
    temp_csv = path_csv + ".tmp"
    df.to_csv(temp_csv, index=False)
    _atomic_replace(temp_csv, path_csv)


def _write_json(data, path: str) -> None:
    temp_path = path + ".tmp"
    with open(temp_path, "w", encoding="utf-8") as handle:
        json.dump(to_jsonable(data), handle, indent=2)
    _atomic_replace(temp_path, path)


def export_hbond_result(result: HbondResult, output_dir: str, write_plots: bool = False) -> Dict[str, str]:
    """Write per-frame counts, per-bond series and tables for one analysis."""
    written: Dict[str, str] = {}
    cfg = result.config
    hbond_dir = os.path.join(output_dir, f"hbond_{result.name}")
    os.makedirs(hbond_dir, exist_ok=True)

    if cfg is not None and cfg.out:
        _write_dataframe(result.per_frame, cfg.out)
        written["out"] = cfg.out

    if cfg is not None and cfg.series_out and result.solute_series is not None:
        series = result.solute_series
        if result.solvent_series is not None:
            solvent_cols = result.solvent_series.drop(columns=["frame"])
            series = pd.concat([series, solvent_cols], axis=1)
        _write_dataframe(series, cfg.series_out)
        written["series_out"] = cfg.series_out

    tables = {"solute_hbonds.csv": result.solute}
    if result.solvent is not None:
        tables["solvent_hbonds.csv"] = result.solvent
    if result.bridges is not None:
        tables["bridges.csv"] = result.bridges
    for filename, table in tables.items():
        path = os.path.join(hbond_dir, filename)
        _write_dataframe(table, path)
        written[filename] = path

    if write_plots:
        path = plot_frame_counts(result.per_frame, os.path.join(hbond_dir, "hbond_counts.png"), result.name)
        if path:
            written["plot"] = path
    return written


def export_results(result: AnalysisResult, project: ProjectConfig) -> Dict[str, Dict[str, str]]:
    output_dir = project.outputs.output_dir
    os.makedirs(output_dir, exist_ok=True)

    metadata = {
        "project": project.to_dict(),
        "warnings": result.warnings,
        "qc_summary": result.qc_summary,
    }
    _write_json(metadata, os.path.join(output_dir, "metadata.json"))

    written: Dict[str, Dict[str, str]] = {}
    for name, hbond_result in result.hbond_results.items():
        if not project.outputs.write_per_frame and hbond_result.config is not None:
            hbond_result.config.out = None
        written[name] = export_hbond_result(
            hbond_result,
            output_dir,
            write_plots=project.outputs.write_plots,
        )
        logger.info("Hbond %s: wrote %d output files", name, len(written[name]))
    return written
