"""Unit handling utilities."""
from __future__ import annotations

import math


def to_internal_length(value: float, unit: str) -> float:
    """Convert a length in user units into the internal (angstrom) units."""
    unit_norm = unit.strip().lower()
    if unit_norm in ("nm", "nanometer", "nanometers"):
        return float(value) * 10.0
    if unit_norm in ("a", "ang", "angstrom", "angstroms"):
        return float(value)
    raise ValueError(f"Unsupported unit: {unit}")


def squared_cutoff(value: float, unit: str) -> float:
    """Distance cutoff squared, in internal units (A^2)."""
    internal = to_internal_length(value, unit)
    return internal * internal


def deg_to_rad(value: float) -> float:
    return float(value) * math.pi / 180.0


def rad_to_deg(value: float) -> float:
    return float(value) * 180.0 / math.pi
