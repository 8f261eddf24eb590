# -*- coding: utf-8 -*-
"""Exception types raised by the placement engine."""


class PlacementError(Exception):
    """Base class for every error raised by fogplacement."""


class ConfigurationError(PlacementError, ValueError):
    """Malformed problem data or algorithm configuration."""


class SolverError(PlacementError):
    """An external solver backend could not produce a result."""
