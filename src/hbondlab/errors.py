"""Exception types raised by the hydrogen-bond engine."""
from __future__ import annotations


class HbondLabError(Exception):
    """Base class for hbondlab errors."""


class ConfigurationError(HbondLabError, ValueError):
    """Invalid analysis configuration; raised before any frame is processed."""


class SetupError(HbondLabError, ValueError):
    """The analysis cannot be set up for the current topology."""


class StateError(HbondLabError, RuntimeError):
    """An analysis method was called out of lifecycle order."""
