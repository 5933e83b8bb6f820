"""
Engine configuration.

Settings can be given in code or loaded from a YAML file:

    # config/simulation.yaml
    seed: 13
    thread_num: 0
    strict_tables: true
    progress_every: 1000

Usage:
    from microsim.config import load_config
    from microsim.simulation import Simulation

    sim = Simulation.from_config(load_config("config/simulation.yaml"))
"""

import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import jsonschema
import yaml

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/simulation.yaml")

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "seed": {"type": "integer", "minimum": 0},
        "thread_num": {"type": "integer", "minimum": 0},
        "max_parameters": {"type": ["integer", "null"], "minimum": 0},
        "max_states": {"type": ["integer", "null"], "minimum": 0},
        "strict_tables": {"type": "boolean"},
        "progress_every": {"type": "integer", "minimum": 0},
        "log_level": {"enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
    },
}


@dataclass
class SimulationConfig:
    """Configuration for a Simulation instance."""
    seed: int = 13
    thread_num: int = 0  # added to seed so each thread gets its own stream

    # Dense storage: declare the number of ids up front (None = sparse)
    max_parameters: Optional[int] = None
    max_states: Optional[int] = None

    # Tabular input
    strict_tables: bool = True  # ragged rows / blank agent cells are errors

    # Monte Carlo progress log interval in draws (0 = silent)
    progress_every: int = 1000

    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, config: Optional[Dict[str, Any]] = None) -> "SimulationConfig":
        """Build from a dict, ignoring keys that are not settings."""
        config = config or {}
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in config.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def validate_config(config: Dict[str, Any]) -> None:
    """Check a raw settings dict against CONFIG_SCHEMA.

    Raises:
        ConfigurationError: If the settings do not match the schema
    """
    try:
        jsonschema.validate(config, CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        path = ".".join(str(p) for p in e.absolute_path) or "<root>"
        raise ConfigurationError(f"Invalid simulation config at {path}: {e.message}") from e


def load_config(path: Union[str, Path] = DEFAULT_CONFIG_PATH) -> SimulationConfig:
    """
    Load engine settings from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        SimulationConfig (defaults for anything the file leaves out)

    Raises:
        ConfigurationError: If the file is missing, not YAML, or fails validation
    """
    try:
        with open(path, "r") as f:
            raw = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigurationError(f"Can't open config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Config file {path} is not valid YAML: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")

    validate_config(raw)
    unknown = sorted(set(raw) - {f.name for f in fields(SimulationConfig)})
    if unknown:
        logger.warning(f"Ignoring unknown config keys in {path}: {unknown}")

    return SimulationConfig.from_dict(raw)
