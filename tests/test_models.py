import math

import pytest

from hbondlab.errors import ConfigurationError
from hbondlab.models import HbondConfig, ProjectConfig


def test_hbond_defaults():
    cfg = HbondConfig()
    cfg.validate()
    assert cfg.distance == 3.0
    assert cfg.angle == 135.0
    assert cfg.distance_cutoff2 == pytest.approx(9.0)
    assert cfg.angle_cutoff == pytest.approx(math.radians(135.0))
    assert cfg.search_mode == "auto"
    assert not cfg.calc_solvent


@pytest.mark.parametrize(
    "donor,acceptor,mode",
    [
        (None, None, "auto"),
        ("resname SER", None, "donor_mask"),
        (None, "resname GLY", "acceptor_mask"),
        ("resname SER", "resname GLY", "explicit"),
    ],
)
def test_search_mode(donor, acceptor, mode):
    cfg = HbondConfig(donor_mask=donor, acceptor_mask=acceptor)
    assert cfg.search_mode == mode


def test_from_dict_accepts_command_keywords():
    cfg = HbondConfig.from_dict(
        {
            "name": "hb1",
            "mask": "protein",
            "dist": "3.5",
            "angle": 120,
            "solventdonor": "resname WAT",
            "solventacceptor": "resname WAT and name OW",
            "series": "yes",
            "avgout": "avg.dat",
        }
    )
    assert cfg.selection == "protein"
    assert cfg.distance == 3.5
    assert cfg.angle == 120.0
    assert cfg.solvent_donor == "resname WAT"
    assert cfg.calc_solvent
    assert cfg.series is True
    assert cfg.avgout == "avg.dat"


def test_from_dict_rejects_unknown_keyword():
    with pytest.raises(ConfigurationError, match="Unrecognized hbond keyword"):
        HbondConfig.from_dict({"distance": 3.0, "cutof": 2.0})


@pytest.mark.parametrize(
    "kwargs",
    [
        {"distance": -1.0},
        {"distance": float("nan")},
        {"distance": "far"},
        {"angle": 0.0},
        {"angle": 200.0},
        {"unit": "furlong"},
    ],
)
def test_validate_rejects_bad_cutoffs(kwargs):
    with pytest.raises(ConfigurationError):
        HbondConfig(**kwargs).validate()


def test_validate_requires_region_without_both_masks():
    with pytest.raises(ConfigurationError, match="generic selection"):
        HbondConfig(selection="", donor_mask="name OG").validate()
    HbondConfig(selection="", donor_mask="name OG", acceptor_mask="name O").validate()


def test_nm_unit_converts_cutoff():
    cfg = HbondConfig(distance=0.3, unit="nm")
    cfg.validate()
    assert cfg.distance_cutoff2 == pytest.approx(9.0)


def test_resolve_outputs(tmp_path):
    cfg = HbondConfig(avgout="avg.dat", solvout=str(tmp_path / "abs.dat"))
    cfg.resolve_outputs(str(tmp_path / "out"))
    assert cfg.avgout == str(tmp_path / "out" / "avg.dat")
    assert cfg.solvout == str(tmp_path / "abs.dat")


def test_project_roundtrip():
    data = {
        "inputs": {"topology": "top.pdb", "trajectory": "traj.xtc"},
        "analysis": {"frame_start": 2, "stride": 5},
        "outputs": {"output_dir": "out", "write_plots": True},
        "hbonds": [{"name": "a", "mask": "protein"}, {"name": "b", "donormask": "resname LIG"}],
    }
    project = ProjectConfig.from_dict(data)
    assert project.analysis.stride == 5
    assert [cfg.name for cfg in project.hbonds] == ["a", "b"]
    again = ProjectConfig.from_dict(project.to_dict())
    assert again.to_dict() == project.to_dict()


def test_project_rejects_bad_stride_and_duplicates():
    with pytest.raises(ConfigurationError, match="stride"):
        ProjectConfig.from_dict({"analysis": {"stride": 0}})
    with pytest.raises(ConfigurationError, match="Duplicate"):
        ProjectConfig.from_dict({"hbonds": [{"name": "x"}, {"name": "x"}]})
