"""Configuration loader: reads TOML defaults then applies env-var overrides."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from agentshell.models import Config

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "default.toml"


def _positive_float(data: dict[str, object], key: str, default: float) -> float:
    value = float(str(data.get(key, default)))
    if value <= 0:
        raise ValueError(f"{key} must be positive, got {value}")
    return value


def _positive_int(data: dict[str, object], key: str, default: int) -> int:
    value = int(str(data.get(key, default)))
    if value <= 0:
        raise ValueError(f"{key} must be positive, got {value}")
    return value


def load_config(config_path: Path | None = None) -> Config:
    """Load engine configuration from a TOML file with env-var overrides.

    Resolution order (later wins):
    1. Hard-coded defaults in ``config/default.toml``
    2. Values in *config_path* (if provided)
    3. Environment variables: ``AGENTSHELL_PROJECT_ROOT``,
       ``AGENTSHELL_ALLOWED_PATHS`` (``os.pathsep``-separated),
       ``AGENTSHELL_TIMEOUT``, ``AGENTSHELL_TOKEN_BUDGET``, ``AGENTSHELL_SHELL``

    Args:
        config_path: Optional path to an additional TOML config file.

    Returns:
        Populated :class:`~agentshell.models.Config` instance.

    Raises:
        FileNotFoundError: If *config_path* is given but does not exist.
        ValueError: If a value is invalid or the project root does not exist.
    """
    data: dict[str, object] = {}

    # 1. Load built-in defaults.
    if _DEFAULT_CONFIG_PATH.exists():
        with _DEFAULT_CONFIG_PATH.open("rb") as fh:
            data.update(tomllib.load(fh))
        logger.debug("Loaded default config from %s", _DEFAULT_CONFIG_PATH)

    # 2. Overlay user-supplied config file.
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        with config_path.open("rb") as fh:
            data.update(tomllib.load(fh))
        logger.debug("Overlaid config from %s", config_path)

    # 3. Environment variable overrides.
    if root_env := os.environ.get("AGENTSHELL_PROJECT_ROOT"):
        data["project_root"] = root_env

    if allowed_env := os.environ.get("AGENTSHELL_ALLOWED_PATHS"):
        data["allowed_paths"] = [p for p in allowed_env.split(os.pathsep) if p]

    if timeout_env := os.environ.get("AGENTSHELL_TIMEOUT"):
        data["default_timeout_seconds"] = float(timeout_env)

    if budget_env := os.environ.get("AGENTSHELL_TOKEN_BUDGET"):
        data["token_budget"] = int(budget_env)

    if shell_env := os.environ.get("AGENTSHELL_SHELL"):
        data["shell"] = shell_env

    # Validate.
    project_root = Path(str(data.get("project_root") or os.getcwd())).expanduser()
    if not project_root.is_dir():
        raise ValueError(f"Project root is not a directory: {project_root}")

    allowed = data.get("allowed_paths", [])
    if not isinstance(allowed, list):
        raise ValueError("allowed_paths must be a list of directories")

    default_timeout = _positive_float(data, "default_timeout_seconds", 30.0)
    kill_margin = float(str(data.get("kill_margin_seconds", 0.1)))
    if not 0 <= kill_margin < default_timeout:
        raise ValueError(
            f"kill_margin_seconds must be at least 0 and below the default timeout "
            f"({default_timeout}), got {kill_margin}"
        )

    shell = data.get("shell") or None

    return Config(
        project_root=project_root.resolve(),
        allowed_paths=[Path(str(p)).expanduser() for p in allowed],
        default_timeout_seconds=default_timeout,
        token_budget=_positive_int(data, "token_budget", 2_000),
        abort_token_budget=_positive_int(data, "abort_token_budget", 1_000),
        kill_margin_seconds=kill_margin,
        drain_timeout_seconds=_positive_float(data, "drain_timeout_seconds", 2.0),
        shell=str(shell) if shell else None,
    )
