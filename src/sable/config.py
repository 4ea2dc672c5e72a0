"""
Runtime configuration.

Settings are read from a YAML file: an explicit path, else the file named
by ``$SABLE_CONFIG``, else ``./sable.yaml`` when present. Any setting left
out keeps its default.

Example ``sable.yaml``::

    max_call_depth: 2000
    prompt: "sable> "
    color: false
"""

import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "SABLE_CONFIG"
DEFAULT_CONFIG_FILENAME = "sable.yaml"
NO_COLOR_ENV_VARS = ("NO_COLOR", "SABLE_NO_COLOR")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Exception):
    """Invalid or unreadable configuration."""


@dataclass
class SableConfig:
    """Settings for the interpreter, the REPL and the command line."""
    max_call_depth: int = 1000       # nested user function calls
    prompt: str = ">>> "
    continuation_prompt: str = "... "
    color: bool = True               # red error output in the REPL
    log_level: str = "WARNING"

    def validate(self) -> None:
        if self.max_call_depth < 1:
            raise ConfigError(f"max_call_depth must be at least 1, got {self.max_call_depth}")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(
                f"log_level must be one of {', '.join(LOG_LEVELS)}, got '{self.log_level}'")

    def to_dict(self) -> dict:
        return asdict(self)


_FIELD_TYPES = {
    "max_call_depth": int,
    "prompt": str,
    "continuation_prompt": str,
    "color": bool,
    "log_level": str,
}


def config_from_mapping(data: Mapping[str, Any], source: str = "<config>") -> SableConfig:
    """Build a config from parsed YAML, rejecting unknown keys and bad types."""
    if not isinstance(data, Mapping):
        raise ConfigError(f"{source}: expected a mapping of settings, got {type(data).__name__}")

    known = {f.name for f in fields(SableConfig)}
    values = {}
    for key, value in data.items():
        if key not in known:
            raise ConfigError(f"{source}: unknown setting '{key}'")
        expected = _FIELD_TYPES[key]
        # bool is an int subclass; 'max_call_depth: true' is still an error
        if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
            raise ConfigError(
                f"{source}: setting '{key}' must be {expected.__name__}, "
                f"got {type(value).__name__}")
        values[key] = value

    config = SableConfig(**values)
    config.validate()
    return config


def config_from_file(path: Union[str, Path]) -> SableConfig:
    """Load settings from a YAML file."""
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as fp:
            data = yaml.safe_load(fp) or {}
    except OSError as exc:
        raise ConfigError(f"cannot read config file {path}: {exc.strerror}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc

    logger.debug("loaded configuration from %s", path)
    return config_from_mapping(data, source=str(path))


def load_config(path: Optional[Union[str, Path]] = None,
                environ: Optional[Mapping[str, str]] = None) -> SableConfig:
    """
    Resolve the effective configuration.

    Args:
        path: Explicit config file; takes precedence over the environment
        environ: Environment mapping, ``os.environ`` by default

    Returns:
        The loaded (or default) SableConfig
    """
    environ = os.environ if environ is None else environ

    if path is None:
        path = environ.get(CONFIG_ENV_VAR) or None
    if path is None and Path(DEFAULT_CONFIG_FILENAME).is_file():
        path = DEFAULT_CONFIG_FILENAME

    config = SableConfig() if path is None else config_from_file(path)

    if any(environ.get(name) for name in NO_COLOR_ENV_VARS):
        config.color = False
    return config


def dump_config(config: SableConfig) -> str:
    """Render a config as YAML text."""
    return yaml.safe_dump(config.to_dict(), sort_keys=False)
