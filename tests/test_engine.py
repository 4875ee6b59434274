import json

import pandas as pd
import pytest

from hbondlab.analysis import HbondAnalysisEngine, load_project_json, write_project_json
from hbondlab.errors import ConfigurationError
from hbondlab.export import export_results
from hbondlab.models import AnalysisOptions, HbondConfig, InputConfig, OutputConfig, ProjectConfig


def _project(tmp_path, hbonds, **analysis):
    return ProjectConfig(
        inputs=InputConfig(topology="in-memory"),
        analysis=AnalysisOptions(**analysis),
        outputs=OutputConfig(output_dir=str(tmp_path / "results")),
        hbonds=hbonds,
    )


def test_engine_runs_and_exports(water_dimer_universe, tmp_path):
    cfg = HbondConfig(
        name="ser",
        selection="resname SER GLY",
        series=True,
        out="counts.csv",
        avgout="avg.dat",
        series_out="series.csv",
    )
    project = _project(tmp_path, [cfg])
    result = HbondAnalysisEngine(project).run(universe=water_dimer_universe)

    assert set(result.hbond_results) == {"ser"}
    hb = result.hbond_results["ser"]
    assert hb.n_frames == 1
    assert len(hb.solute) == 1
    assert result.qc_summary["setup"]["ser"]["ok"] is True
    assert "No valid box vectors found; distances are not imaged." in result.warnings
    # project entries are left untouched
    assert cfg.avgout == "avg.dat"
    out_dir = tmp_path / "results"
    assert hb.reports["avgout"] == str(out_dir / "avg.dat")
    assert (out_dir / "avg.dat").read_text().startswith("#Acceptor")

    written = export_results(result, project)
    assert (out_dir / "metadata.json").exists()
    metadata = json.loads((out_dir / "metadata.json").read_text())
    assert metadata["project"]["hbonds"][0]["name"] == "ser"
    counts = pd.read_csv(out_dir / "counts.csv")
    assert counts["HB_UU"].tolist() == [1]
    series = pd.read_csv(out_dir / "series.csv")
    assert series.columns.tolist() == ["frame", "GLY_2@O-SER_1@OG"]
    assert "solute_hbonds.csv" in written["ser"]
    assert (out_dir / "hbond_ser" / "solute_hbonds.csv").exists()


def test_failed_setup_is_skipped(water_dimer_universe, tmp_path):
    project = _project(
        tmp_path,
        [
            HbondConfig(name="bad", selection="resname XYZ"),
            HbondConfig(name="good", selection="resname SER GLY"),
        ],
    )
    result = HbondAnalysisEngine(project).run(universe=water_dimer_universe)
    assert set(result.hbond_results) == {"good"}
    assert result.qc_summary["setup"]["bad"]["ok"] is False
    assert any("resolved to 0 atoms" in w for w in result.warnings)


def test_empty_frame_window_rejected(water_dimer_universe, tmp_path):
    project = _project(tmp_path, [HbondConfig()], frame_start=5)
    with pytest.raises(ValueError):
        HbondAnalysisEngine(project).run(universe=water_dimer_universe)


def test_project_file_round_trip(tmp_path):
    path = tmp_path / "project.json"
    path.write_text(
        json.dumps(
            {
                "inputs": {"topology": "top.pdb"},
                "outputs": {"output_dir": "out"},
                "hbonds": [{"name": "hb", "mask": ":1-10", "dist": 3.5, "avgout": "avg.dat"}],
            }
        )
    )
    project = load_project_json(str(path))
    assert project.hbonds[0].selection == ":1-10"
    assert project.hbonds[0].distance == 3.5

    copy_path = tmp_path / "copy.json"
    write_project_json(project, str(copy_path))
    assert load_project_json(str(copy_path)).to_dict() == project.to_dict()


def test_unknown_keyword_in_project_file(tmp_path):
    path = tmp_path / "project.json"
    path.write_text(json.dumps({"inputs": {"topology": "x"}, "hbonds": [{"nointramol": True}]}))
    with pytest.raises(ConfigurationError):
        load_project_json(str(path))
