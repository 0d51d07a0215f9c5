"""Utility helpers."""

from .config_validator import (
    ConfigurationError,
    ExporterConfigValidator,
    SimulationConfigValidator,
    load_config,
    validate_config,
)

__all__ = [
    "ConfigurationError",
    "ExporterConfigValidator",
    "SimulationConfigValidator",
    "load_config",
    "validate_config",
]
