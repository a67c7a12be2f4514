"""Configuration loading, atomic writes, and precedence resolution.

This module handles everything specmcp reads or writes besides the API
documents themselves:

* **Data directory** -- XDG compliant on Linux/BSD, ``~/.specmcp/`` on macOS
  and Windows. Crash logs land here. See :func:`get_data_dir`.
* **Project config** -- an optional ``./specmcp.json`` holding
  :class:`~specmcp.models.GeneratorConfig` defaults for a repository.
* **Batch files** -- JSON or YAML lists of documents, deserialised into a
  :class:`~specmcp.models.BatchConfig` by :func:`load_batch_config`.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, the project config and defaults into the effective
  :class:`~specmcp.models.GeneratorConfig`.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`) so an interrupted run never leaves a half-written
``tools.json`` behind.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from specmcp.exceptions import ConfigError
from specmcp.models import BatchConfig, GeneratorConfig, MergeStrategy

_APP_NAME = "specmcp"
_PROJECT_CONFIG_FILENAME = "specmcp.json"

ENV_BASE_URL = "SPECMCP_BASE_URL"
ENV_SERVER_NAME = "SPECMCP_SERVER_NAME"
ENV_MAX_WORKERS = "SPECMCP_MAX_WORKERS"


# --- Directory resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/specmcp/`` (default ``~/.local/share/specmcp/``).
    On macOS/Windows: ``~/.specmcp/logs/``.
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_DATA_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".local" / "share"
        path = base / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}" / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str) -> None:
    """Write *data* to *path* atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is removed and the exception re-raised.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


def write_json(path: Path, data: Any) -> None:
    """Serialise *data* as indented JSON (trailing newline) and write it atomically."""
    atomic_write(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./specmcp.json``.

    Returns:
        The parsed JSON object, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


# --- Batch files ---


def load_batch_config(path: str) -> BatchConfig:
    """Load a batch file listing several documents.

    The file may be JSON or YAML. Entries may be plain strings (a URL or a
    path) or objects with ``input``, ``name`` and ``enabled``. Relative
    paths are resolved against the batch file's directory.

    Example (YAML)::

        specs:
          - input: ./petstore.yaml
            name: pets
          - https://api.example.com/openapi.json
        output: ./server
        merge_strategy: namespace

    Raises:
        ConfigError: If the file is missing, cannot be parsed, or fails
            validation.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise ConfigError(f"Batch file not found: {path}")
    try:
        text = file_path.read_text(encoding="utf-8")
        if file_path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot read batch file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Batch file {path} must contain an object with a 'specs' list")

    try:
        config = BatchConfig.model_validate(data)
    except PydanticValidationError as exc:
        raise ConfigError(f"Invalid batch file {path}: {exc}") from exc

    base_dir = file_path.parent
    for source in config.specs:
        if source.input != "-" and not source.input.startswith(("http://", "https://")):
            candidate = Path(source.input)
            if not candidate.is_absolute():
                source.input = str(base_dir / candidate)
    return config


# --- Precedence resolution ---


def resolve_config(
    cli_server_name: Optional[str] = None,
    cli_base_url: Optional[str] = None,
    cli_enhance: Optional[bool] = None,
    cli_template_dir: Optional[str] = None,
    cli_max_workers: Optional[int] = None,
    cli_merge_strategy: Optional[str] = None,
    cli_strict: Optional[bool] = None,
    cli_merge_path_parameters: Optional[bool] = None,
) -> GeneratorConfig:
    """Resolve the effective generator configuration.

    Precedence (high to low):
        1. CLI flags (``cli_*`` arguments that are not ``None``)
        2. Environment variables (``SPECMCP_BASE_URL``,
           ``SPECMCP_SERVER_NAME``, ``SPECMCP_MAX_WORKERS``)
        3. Project config (``./specmcp.json``)
        4. Defaults

    Raises:
        ConfigError: If a layer supplies an invalid value.
    """
    # 4 + 3. Defaults, then project-local values.
    values: dict[str, Any] = dict(load_project_config() or {})

    # 2. Environment variables
    env_base_url = os.environ.get(ENV_BASE_URL)
    if env_base_url:
        values["base_url"] = env_base_url
    env_server_name = os.environ.get(ENV_SERVER_NAME)
    if env_server_name:
        values["server_name"] = env_server_name
    env_workers = os.environ.get(ENV_MAX_WORKERS)
    if env_workers:
        try:
            values["max_workers"] = int(env_workers)
        except ValueError as exc:
            raise ConfigError(
                f"{ENV_MAX_WORKERS} must be an integer (got {env_workers!r})"
            ) from exc

    # 1. CLI flags (highest precedence)
    overrides = {
        "server_name": cli_server_name,
        "base_url": cli_base_url,
        "enhance_descriptions": cli_enhance,
        "template_dir": cli_template_dir,
        "max_workers": cli_max_workers,
        "merge_strategy": cli_merge_strategy,
        "strict": cli_strict,
        "merge_path_parameters": cli_merge_path_parameters,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return GeneratorConfig.model_validate(values)
    except PydanticValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def merge_strategy_names() -> list[str]:
    """Valid ``--merge-strategy`` values, for help text and error messages."""
    return [s.value for s in MergeStrategy]
