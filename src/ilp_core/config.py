"""Configuration loader for the ILP solve service."""

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError
from .selector import BackendKind

LOGGER = logging.getLogger("ilp_core.config")

SECTION = "ilp_solve"

# Environment variable -> settings field.
ENV_OVERRIDES = {
    "SOLVER": "backend",
    "USE_PRESOLVE": "use_presolve",
    "TIME_LIMIT": "time_limit",
    "MAX_PARALLEL_SOLVERS": "max_parallel_solvers",
    "PARALLEL_OBJECTIVES": "parallel_objectives",
}

_ENV_REF = re.compile(r"^\$\{([A-Za-z_][A-Za-z0-9_]*)\}$")


class SolverSettings(BaseModel):
    """Immutable process-wide solver configuration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    backend: BackendKind = BackendKind.GLPK
    use_presolve: bool = True
    time_limit: Optional[float] = Field(default=None, gt=0)
    threads: int = Field(default=0, ge=0)
    max_parallel_solvers: int = Field(default=5, ge=1)
    parallel_objectives: int = Field(default=1, ge=1)

    @field_validator("backend", mode="before")
    @classmethod
    def _parse_backend(cls, value: Any) -> BackendKind:
        return BackendKind.parse(value)


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the ``ilp_solve`` section from a YAML file.

    Args:
        config_path: Path to config.yaml. If None, looks for config.yaml in repo root
            and treats a missing file as an empty configuration.

    Returns:
        Configuration dictionary with ``${VAR}`` values expanded from the environment.
    """
    explicit = config_path is not None
    if config_path is None:
        repo_root = Path(__file__).resolve().parents[2]
        config_path = repo_root / "config.yaml"

    config_path = Path(config_path)

    if not config_path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {config_path}")
        return {}

    try:
        with open(config_path, "r") as f:
            full_config = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Could not parse {config_path}: {exc}") from exc

    if not isinstance(full_config, dict):
        raise ConfigError(f"{config_path} must contain a mapping at the top level")

    config = full_config.get(SECTION) or {}
    if not isinstance(config, dict):
        raise ConfigError(f"'{SECTION}' in {config_path} must be a mapping")

    LOGGER.debug("Loaded %s section from %s", SECTION, config_path)
    expanded = {key: _expand(value) for key, value in config.items()}
    return {key: value for key, value in expanded.items() if value is not None}


def load_settings(
    config_path: Optional[str] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> SolverSettings:
    """
    Build the solver settings: file, then environment, then explicit overrides.

    Args:
        config_path: Optional YAML file; see ``load_config``.
        environ: Environment mapping, ``os.environ`` by default.
        overrides: Values from the command line. ``None`` entries are ignored.

    Raises:
        ConfigError: If the file is unreadable or any value fails validation.
    """
    values = load_config(config_path)
    env = os.environ if environ is None else environ
    for env_name, field in ENV_OVERRIDES.items():
        raw = env.get(env_name)
        if raw is not None and raw.strip():
            values[field] = raw.strip()
    for field, value in (overrides or {}).items():
        if value is not None:
            values[field] = value

    try:
        return SolverSettings(**values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid solver configuration: {exc}") from exc


def _expand(value: Any) -> Any:
    if isinstance(value, str):
        match = _ENV_REF.match(value.strip())
        if match:
            return os.getenv(match.group(1))
    return value


__all__ = ["ENV_OVERRIDES", "SolverSettings", "load_config", "load_settings"]
