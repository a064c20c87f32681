# src/microsim/config/loader.py

"""Loads a scenario from a YAML file."""

import logging
from pathlib import Path
from typing import Union

import yaml

from ..exceptions import ConfigurationError
from .schemas import SimulationConfig

log = logging.getLogger(__name__)


def load_config(config_path: Union[str, Path]) -> SimulationConfig:
    """
    Load and validate a simulation scenario from a YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated SimulationConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ConfigurationError: If the file is empty or the scenario invalid
        yaml.YAMLError: If YAML parsing fails
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    log.info(f"Loading scenario from {config_path}")
    with open(config_path) as f:
        config_dict = yaml.safe_load(f)

    if config_dict is None:
        raise ConfigurationError(f"Empty configuration file: {config_path}")
    if not isinstance(config_dict, dict):
        raise ConfigurationError(
            f"Configuration file must contain a mapping: {config_path}")

    return SimulationConfig.from_dict(config_dict)
