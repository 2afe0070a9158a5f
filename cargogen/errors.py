"""Exception hierarchy for manifest generation."""

from __future__ import annotations


class CargoGenError(Exception):
    """Base class for every error raised by cargogen."""


class InvalidPathError(CargoGenError):
    """Two paths share no common root, or a path escapes its expected root."""


class NotExternalError(CargoGenError):
    """Source relocation was requested for a node that is not external."""


class EntryPointNotFoundError(CargoGenError):
    """A node's entry point is not one of its source files."""


class GraphDefinitionError(CargoGenError):
    """The dependency graph or its description file is malformed."""


class ConfigError(CargoGenError):
    """The configuration file cannot be parsed."""
