"""Configuration loading and defaults.

Sources, lowest precedence first:
1. Built-in defaults (see :class:`gha_guard.types.Config`)
2. The first parsable file among ``./gha-guard.json`` and
   ``~/.config/gha-guard/config.json``, merged per section
3. ``--bypass-permissions`` on the command line
4. ``GHA_GUARD_TIMEOUT`` in the environment (overrides ``neverhang.api_timeout``)
"""

import json
import logging
import os
import subprocess
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .exceptions import ConfigError
from .types import Config

logger = logging.getLogger(__name__)

BYPASS_FLAG = "--bypass-permissions"
TIMEOUT_ENV = "GHA_GUARD_TIMEOUT"
CONFIG_FILENAME = "gha-guard.json"


def default_search_paths() -> list[Path]:
    """Config file locations, in lookup order."""
    return [
        Path.cwd() / CONFIG_FILENAME,
        Path.home() / ".config" / "gha-guard" / "config.json",
    ]


def _read_config_file(search_paths: Sequence[Path]) -> tuple[dict[str, Any], Path | None]:
    for path in search_paths:
        if not path.is_file():
            continue
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to parse {path}: {e}")
            continue
        if not isinstance(data, dict):
            logger.warning(f"Ignoring {path}: top level must be a JSON object")
            continue
        logger.info(f"Loaded config from {path}")
        return data, path
    return {}, None


def load_config(
    argv: Sequence[str] | None = None,
    environ: Mapping[str, str] | None = None,
    search_paths: Sequence[Path] | None = None,
) -> Config:
    """Load configuration from file, command line and environment.

    Args:
        argv: Command line arguments. Defaults to ``sys.argv``.
        environ: Environment. Defaults to ``os.environ``.
        search_paths: Config file candidates. Defaults to :func:`default_search_paths`.

    Returns:
        Validated configuration.

    Raises:
        ConfigError: If the file content or an override has invalid values.
    """
    argv = sys.argv if argv is None else argv
    environ = os.environ if environ is None else environ
    search_paths = default_search_paths() if search_paths is None else search_paths

    file_config, source = _read_config_file(search_paths)
    bypass_mode = BYPASS_FLAG in argv

    try:
        config = Config.model_validate(file_config)
    except ValidationError as e:
        raise ConfigError(str(e), path=str(source) if source else None) from e

    updates: dict[str, Any] = {}
    if bypass_mode:
        updates["bypass_permissions"] = True

    timeout_override = environ.get(TIMEOUT_ENV)
    if timeout_override:
        try:
            api_timeout = int(timeout_override)
        except ValueError as e:
            raise ConfigError(f"{TIMEOUT_ENV} must be an integer, got {timeout_override!r}") from e
        if api_timeout <= 0:
            raise ConfigError(f"{TIMEOUT_ENV} must be positive, got {api_timeout}")
        updates["neverhang"] = config.neverhang.model_copy(update={"api_timeout": api_timeout})

    if updates:
        config = config.model_copy(update=updates)

    if config.bypass_permissions:
        logger.warning(f"Running with {BYPASS_FLAG}")
        logger.warning("All permission checks disabled. You own the consequences.")

    return config


def resolve_token(
    config: Config,
    environ: Mapping[str, str] | None = None,
    gh_timeout: float = 5.0,
) -> str:
    """Find the API token.

    Uses the environment variable named by ``auth.token_env``, falling back
    to ``gh auth token``.

    Raises:
        ConfigError: If neither source yields a token.
    """
    environ = os.environ if environ is None else environ
    token = environ.get(config.auth.token_env)
    if token:
        return token

    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=gh_timeout,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug(f"gh auth token unavailable: {e}")
    else:
        token = result.stdout.strip()
        if result.returncode == 0 and token:
            return token

    raise ConfigError(f"No {config.auth.token_env} and gh auth failed")
