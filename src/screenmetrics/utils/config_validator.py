"""
Configuration loading and validation.

This module provides validation for:
- Exporter configurations (sync threshold, endpoint, batching, storage)
- Session simulation configurations
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union
from urllib.parse import urlparse

import yaml

from ..engine.screen_loader import DEFAULT_SYNC_THRESHOLD_S
from ..export.exporter import DEFAULT_EXPORT_URL, EXPORT_BATCH_SIZE

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 5.0


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""
    pass


def _is_positive_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


class ExporterConfigValidator:
    """Validates the collection agent configuration and fills in defaults."""

    KNOWN_SECTIONS = {'sync_threshold_s', 'export', 'storage', 'logging', 'simulation'}
    LOG_LEVELS = {'DEBUG', 'INFO', 'WARNING', 'ERROR'}

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> List[str]:
        """Validate a configuration dict in place, adding missing defaults."""
        errors = []

        unknown = set(config.keys()) - cls.KNOWN_SECTIONS
        if unknown:
            logger.warning(f"Ignoring unknown configuration sections: {sorted(unknown)}")

        threshold = config.setdefault('sync_threshold_s', DEFAULT_SYNC_THRESHOLD_S)
        if not _is_positive_number(threshold):
            errors.append(f"sync_threshold_s must be a positive number, got {threshold!r}")

        export = config.setdefault('export', {})
        if not isinstance(export, dict):
            errors.append("export must be a mapping")
        else:
            url = export.setdefault('url', DEFAULT_EXPORT_URL)
            parsed = urlparse(str(url))
            if parsed.scheme not in ('http', 'https') or not parsed.netloc:
                errors.append(f"export.url must be an http(s) URL, got {url!r}")

            batch_size = export.setdefault('batch_size', EXPORT_BATCH_SIZE)
            if not isinstance(batch_size, int) or isinstance(batch_size, bool) or batch_size < 1:
                errors.append(f"export.batch_size must be a positive integer, got {batch_size!r}")

            timeout = export.setdefault('timeout_s', DEFAULT_TIMEOUT_S)
            if not _is_positive_number(timeout):
                errors.append(f"export.timeout_s must be a positive number, got {timeout!r}")

            export.setdefault('dry_run', False)

        storage = config.setdefault('storage', {})
        if not isinstance(storage, dict):
            errors.append("storage must be a mapping")
        else:
            storage.setdefault('base_dir', None)

        log_config = config.setdefault('logging', {})
        if not isinstance(log_config, dict):
            errors.append("logging must be a mapping")
        else:
            level = str(log_config.setdefault('level', 'INFO')).upper()
            if level not in cls.LOG_LEVELS:
                errors.append(f"logging.level must be one of {sorted(cls.LOG_LEVELS)}, got {level!r}")
            log_config['level'] = level

        return errors


class SimulationConfigValidator:
    """Validates the ``simulation`` section used by the session simulator."""

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> List[str]:
        errors = []
        sim = config.get('simulation')
        if not isinstance(sim, dict):
            return ["simulation section is required"]

        duration = sim.get('duration_s')
        if not _is_positive_number(duration):
            errors.append(f"simulation.duration_s must be a positive number, got {duration!r}")

        num_screens = sim.setdefault('num_screens', 1)
        if not isinstance(num_screens, int) or isinstance(num_screens, bool) or num_screens < 0:
            errors.append(f"simulation.num_screens must be a non-negative integer, got {num_screens!r}")

        load_time = sim.setdefault('load_time_dist_config', {'type': 'Constant', 'value': 1.0})
        if not isinstance(load_time, dict) or 'type' not in load_time:
            errors.append("simulation.load_time_dist_config must be a mapping with a 'type'")

        resume_times = sim.setdefault('resume_at_s', [])
        if not isinstance(resume_times, list) or not all(
            isinstance(t, (int, float)) and t >= 0 for t in resume_times
        ):
            errors.append("simulation.resume_at_s must be a list of non-negative times")

        last_synced_ago = sim.get('last_synced_s_ago')
        if last_synced_ago is not None and (
            not isinstance(last_synced_ago, (int, float)) or last_synced_ago < 0
        ):
            errors.append(f"simulation.last_synced_s_ago must be non-negative, got {last_synced_ago!r}")

        buffered = sim.setdefault('buffered_at_launch', 0)
        if not isinstance(buffered, int) or isinstance(buffered, bool) or buffered < 0:
            errors.append(f"simulation.buffered_at_launch must be a non-negative integer, got {buffered!r}")

        return errors


def validate_config(config: Dict[str, Any], simulation: bool = False) -> Tuple[bool, List[str]]:
    """Validate a full configuration.

    Returns:
        Tuple of (is_valid, list of errors)
    """
    errors = ExporterConfigValidator.validate(config)
    if simulation:
        errors.extend(SimulationConfigValidator.validate(config))

    for error in errors:
        logger.error(error)
    return len(errors) == 0, errors


def load_config(path: Union[str, Path], simulation: bool = False) -> Dict[str, Any]:
    """Load a YAML or JSON configuration file and validate it.

    Raises:
        ConfigurationError: If the file cannot be parsed or is invalid.
    """
    path = Path(path)
    try:
        with open(path, 'r') as f:
            if path.suffix == '.json':
                config = json.load(f)
            else:
                config = yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Could not read configuration {path}: {e}") from e

    if config is None:
        config = {}
    if not isinstance(config, dict):
        raise ConfigurationError(f"Configuration {path} must be a mapping")

    is_valid, errors = validate_config(config, simulation=simulation)
    if not is_valid:
        raise ConfigurationError(f"Invalid configuration {path}: {'; '.join(errors)}")

    logger.info(f"Loaded configuration from {path}")
    return config
