"""Data models for hbondlab project and analysis configuration."""
from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from hbondlab.errors import ConfigurationError
from hbondlab.units import deg_to_rad, squared_cutoff


# Keys accepted in a project-file hbond entry, including the original
# command keywords (dist, donormask, ...).
_HBOND_KEY_ALIASES = {
    "name": "name",
    "selection": "selection",
    "mask": "selection",
    "donor_mask": "donor_mask",
    "donormask": "donor_mask",
    "acceptor_mask": "acceptor_mask",
    "acceptormask": "acceptor_mask",
    "solvent_donor": "solvent_donor",
    "solventdonor": "solvent_donor",
    "solvent_acceptor": "solvent_acceptor",
    "solventacceptor": "solvent_acceptor",
    "distance": "distance",
    "dist": "distance",
    "angle": "angle",
    "unit": "unit",
    "series": "series",
    "out": "out",
    "avgout": "avgout",
    "solvout": "solvout",
    "bridgeout": "bridgeout",
    "series_out": "series_out",
}

_LENGTH_UNITS = ("a", "ang", "angstrom", "angstroms", "nm", "nanometer", "nanometers")


@dataclass
class HbondConfig:
    """One hydrogen-bond analysis: masks, cutoffs and report destinations."""

    name: str = "hbond"
    selection: str = "all"
    donor_mask: Optional[str] = None
    acceptor_mask: Optional[str] = None
    solvent_donor: Optional[str] = None
    solvent_acceptor: Optional[str] = None
    distance: float = 3.0
    angle: float = 135.0
    unit: str = "A"
    series: bool = False
    out: Optional[str] = None
    avgout: Optional[str] = None
    solvout: Optional[str] = None
    bridgeout: Optional[str] = None
    series_out: Optional[str] = None

    @property
    def has_donor_mask(self) -> bool:
        return bool(self.donor_mask)

    @property
    def has_acceptor_mask(self) -> bool:
        return bool(self.acceptor_mask)

    @property
    def calc_solvent(self) -> bool:
        return bool(self.solvent_donor) or bool(self.solvent_acceptor)

    @property
    def distance_cutoff2(self) -> float:
        return squared_cutoff(self.distance, self.unit)

    @property
    def angle_cutoff(self) -> float:
        """Angle cutoff in radians."""
        return deg_to_rad(self.angle)

    @property
    def search_mode(self) -> str:
        if not self.has_donor_mask and not self.has_acceptor_mask:
            return "auto"
        if self.has_donor_mask and not self.has_acceptor_mask:
            return "donor_mask"
        if self.has_acceptor_mask and not self.has_donor_mask:
            return "acceptor_mask"
        return "explicit"

    def validate(self) -> None:
        try:
            distance = float(self.distance)
            angle = float(self.angle)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(
                f"Hbond '{self.name}': cutoffs must be numeric (dist={self.distance!r}, angle={self.angle!r})"
            ) from exc
        if not math.isfinite(distance) or distance <= 0:
            raise ConfigurationError(f"Hbond '{self.name}': distance cutoff must be positive, got {distance}")
        if not math.isfinite(angle) or angle <= 0 or angle > 180.0:
            raise ConfigurationError(f"Hbond '{self.name}': angle cutoff must be in (0, 180], got {angle}")
        if str(self.unit).strip().lower() not in _LENGTH_UNITS:
            raise ConfigurationError(f"Hbond '{self.name}': unsupported unit {self.unit!r}")
        if self.search_mode != "explicit" and not (self.selection or "").strip():
            raise ConfigurationError(
                f"Hbond '{self.name}': a generic selection is required unless both donor and acceptor masks are given"
            )
        self.distance = distance
        self.angle = angle

    def describe(self) -> str:
        if self.search_mode == "auto":
            text = f"Searching for Hbond donors/acceptors in region specified by {self.selection}"
        elif self.search_mode == "donor_mask":
            text = (
                f"Donor mask is {self.donor_mask}, acceptors will be searched for in region "
                f"specified by {self.selection}"
            )
        elif self.search_mode == "acceptor_mask":
            text = (
                f"Acceptor mask is {self.acceptor_mask}, donors will be searched for in region "
                f"specified by {self.selection}"
            )
        else:
            text = f"Donor mask is {self.donor_mask}, Acceptor mask is {self.acceptor_mask}"
        return text

    def resolve_outputs(self, output_dir: str) -> None:
        """Make relative report destinations relative to ``output_dir``."""
        for attr in ("out", "avgout", "solvout", "bridgeout", "series_out"):
            value = getattr(self, attr)
            if value and not os.path.isabs(value):
                setattr(self, attr, os.path.join(output_dir, value))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "selection": self.selection,
            "donor_mask": self.donor_mask,
            "acceptor_mask": self.acceptor_mask,
            "solvent_donor": self.solvent_donor,
            "solvent_acceptor": self.solvent_acceptor,
            "distance": self.distance,
            "angle": self.angle,
            "unit": self.unit,
            "series": self.series,
            "out": self.out,
            "avgout": self.avgout,
            "solvout": self.solvout,
            "bridgeout": self.bridgeout,
            "series_out": self.series_out,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HbondConfig":
        values: Dict[str, Any] = {}
        for key, value in data.items():
            target = _HBOND_KEY_ALIASES.get(str(key).strip().lower())
            if target is None:
                raise ConfigurationError(f"Unrecognized hbond keyword: {key!r}")
            values[target] = value
        cfg = cls(
            name=str(values.get("name", "hbond")),
            selection=values.get("selection", "all") or "",
            donor_mask=values.get("donor_mask"),
            acceptor_mask=values.get("acceptor_mask"),
            solvent_donor=values.get("solvent_donor"),
            solvent_acceptor=values.get("solvent_acceptor"),
            distance=values.get("distance", 3.0),
            angle=values.get("angle", 135.0),
            unit=values.get("unit", "A"),
            series=_as_bool(values.get("series", False), "series"),
            out=values.get("out"),
            avgout=values.get("avgout"),
            solvout=values.get("solvout"),
            bridgeout=values.get("bridgeout"),
            series_out=values.get("series_out"),
        )
        cfg.validate()
        return cfg


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off", ""):
        return False
    raise ConfigurationError(f"Keyword '{key}' expects a boolean, got {value!r}")


@dataclass
class AnalysisOptions:
    frame_start: int = 0
    frame_stop: Optional[int] = None
    stride: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frame_start": self.frame_start,
            "frame_stop": self.frame_stop,
            "stride": self.stride,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisOptions":
        try:
            options = cls(
                frame_start=int(data.get("frame_start", 0)),
                frame_stop=None if data.get("frame_stop") is None else int(data["frame_stop"]),
                stride=int(data.get("stride", 1)),
            )
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid frame options: {exc}") from exc
        if options.stride <= 0:
            raise ConfigurationError("Frame stride must be positive")
        return options


@dataclass
class InputConfig:
    topology: str
    trajectory: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "topology": self.topology,
            "trajectory": self.trajectory,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InputConfig":
        return cls(
            topology=data.get("topology", ""),
            trajectory=data.get("trajectory"),
        )


@dataclass
class OutputConfig:
    output_dir: str
    write_per_frame: bool = True
    write_plots: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "output_dir": self.output_dir,
            "write_per_frame": self.write_per_frame,
            "write_plots": self.write_plots,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OutputConfig":
        return cls(
            output_dir=data.get("output_dir", "results"),
            write_per_frame=_as_bool(data.get("write_per_frame", True), "write_per_frame"),
            write_plots=_as_bool(data.get("write_plots", False), "write_plots"),
        )


@dataclass
class ProjectConfig:
    inputs: InputConfig
    analysis: AnalysisOptions
    outputs: OutputConfig
    hbonds: List[HbondConfig] = field(default_factory=list)
    version: str = "1.0"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "inputs": self.inputs.to_dict(),
            "analysis": self.analysis.to_dict(),
            "outputs": self.outputs.to_dict(),
            "hbonds": [cfg.to_dict() for cfg in self.hbonds],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProjectConfig":
        hbonds = [HbondConfig.from_dict(item) for item in data.get("hbonds", data.get("hbond", []))]
        names = [cfg.name for cfg in hbonds]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ConfigurationError(f"Duplicate hbond analysis names: {', '.join(duplicates)}")
        return cls(
            inputs=InputConfig.from_dict(data.get("inputs", {})),
            analysis=AnalysisOptions.from_dict(data.get("analysis", {})),
            outputs=OutputConfig.from_dict(data.get("outputs", {})),
            hbonds=hbonds,
            version=data.get("version", "1.0"),
        )
