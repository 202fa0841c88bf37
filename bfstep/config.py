"""
Configuration for the machine and its drivers.

Values are layered: dataclass defaults, then an optional YAML file, then
environment variables (a .env file is honoured), then whatever the
caller passes to MachineConfig.merged().
"""

import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv

from .errors import ConfigError
from .machine import DEFAULT_TAPE_SIZE

logger = logging.getLogger(__name__)

MIN_DELAY_MS = 1
MAX_DELAY_MS = 500
DEFAULT_DELAY_MS = 100

ENV_TAPE_SIZE = "BF_TAPE_SIZE"
ENV_DELAY_MS = "BF_STEP_DELAY_MS"
ENV_STEP_LIMIT = "BF_STEP_LIMIT"


def validate_delay(delay_ms: int) -> int:
    """Return delay_ms if it lies in [MIN_DELAY_MS, MAX_DELAY_MS]."""
    if isinstance(delay_ms, bool) or not isinstance(delay_ms, int):
        raise ConfigError(f"delay_ms must be an integer, got {delay_ms!r}")
    if not MIN_DELAY_MS <= delay_ms <= MAX_DELAY_MS:
        raise ConfigError(f"delay_ms must be between {MIN_DELAY_MS} and {MAX_DELAY_MS}, got {delay_ms}")
    return delay_ms


@dataclass
class MachineConfig:
    tape_size: int = DEFAULT_TAPE_SIZE
    delay_ms: int = DEFAULT_DELAY_MS
    max_steps: Optional[int] = None
    input_data: str = ""

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        if isinstance(self.tape_size, bool) or not isinstance(self.tape_size, int) or self.tape_size < 1:
            raise ConfigError(f"tape_size must be a positive integer, got {self.tape_size!r}")
        validate_delay(self.delay_ms)
        if self.max_steps is not None and (isinstance(self.max_steps, bool)
                                           or not isinstance(self.max_steps, int) or self.max_steps < 1):
            raise ConfigError(f"max_steps must be a positive integer or None, got {self.max_steps!r}")
        if not isinstance(self.input_data, str):
            raise ConfigError("input_data must be a string")

    def merged(self, **overrides) -> "MachineConfig":
        """Copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        unknown = set(changes) - {f.name for f in fields(self)}
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {sorted(unknown)}")
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MachineConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {sorted(unknown)}")
        return cls(**dict(data))


def _env_int(env: Mapping[str, str], name: str) -> Optional[int]:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def load_config(path: Optional[str] = None, env: Optional[Mapping[str, str]] = None,
                use_dotenv: bool = True) -> MachineConfig:
    """Load configuration from a YAML file and the environment.

    The YAML file is a mapping with any of: tape_size, delay_ms,
    max_steps, input_data. A top-level `machine:` section is also
    accepted.
    """
    data: Dict[str, Any] = {}
    if path is not None:
        with open(path, "r") as f:
            loaded = yaml.safe_load(f)
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        if isinstance(loaded.get("machine"), dict):
            loaded = loaded["machine"]
        data.update(loaded)
        logger.debug("Loaded config from %s: %s", path, sorted(loaded))

    if env is None:
        if use_dotenv:
            load_dotenv()
        env = os.environ

    for key, var in (("tape_size", ENV_TAPE_SIZE), ("delay_ms", ENV_DELAY_MS), ("max_steps", ENV_STEP_LIMIT)):
        value = _env_int(env, var)
        if value is not None:
            data[key] = value

    return MachineConfig.from_dict(data)
