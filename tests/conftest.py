"""Shared test fixtures for specmcp.

Provides reusable fixtures for loading document fixtures, creating isolated
config environments, managing output and logging state, and running CLI
commands. These fixtures are automatically discovered by pytest and available
to all test modules without explicit imports.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import pytest

from specmcp.models import ParsedApiSpec
from specmcp.output import OutputFormat, OutputLogHandler, OutputManager, reset_output, set_output


FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Auto-reset global output and logging state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager and the ``specmcp`` logger after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    The CLI callback also attaches a log handler and stops propagation,
    which would hide records from ``caplog`` in later tests.
    """
    root_level = logging.getLogger().level
    yield
    reset_output()
    logger = logging.getLogger("specmcp")
    for handler in list(logger.handlers):
        if isinstance(handler, OutputLogHandler):
            logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    logging.getLogger().setLevel(root_level)


# ---------------------------------------------------------------------------
# Raw document fixtures (plain dicts loaded from JSON files)
# ---------------------------------------------------------------------------


def _load_fixture(name: str) -> dict[str, Any]:
    with open(FIXTURES_DIR / name, encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def petstore_30_raw() -> dict[str, Any]:
    """Load the raw OpenAPI 3.0 pet store document."""
    return _load_fixture("petstore_3.0.json")


@pytest.fixture
def petstore_20_raw() -> dict[str, Any]:
    """Load the raw Swagger 2.0 pet store document."""
    return _load_fixture("petstore_swagger_2.0.json")


@pytest.fixture
def composition_raw() -> dict[str, Any]:
    """Load the raw document exercising allOf/oneOf, cycles and dangling refs."""
    return _load_fixture("composition.json")


# ---------------------------------------------------------------------------
# Normalized fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def petstore_spec(petstore_30_raw: dict[str, Any]) -> ParsedApiSpec:
    """Normalized pet store 3.0 document."""
    from specmcp.parser.normalizer import normalize

    return normalize(petstore_30_raw)


@pytest.fixture
def swagger_spec(petstore_20_raw: dict[str, Any]) -> ParsedApiSpec:
    """Normalized Swagger 2.0 pet store document."""
    from specmcp.parser.normalizer import normalize

    return normalize(petstore_20_raw)


@pytest.fixture
def composition_spec(composition_raw: dict[str, Any]) -> ParsedApiSpec:
    """Normalized composition document."""
    from specmcp.parser.normalizer import normalize

    return normalize(composition_raw)


# ---------------------------------------------------------------------------
# Files on disk
# ---------------------------------------------------------------------------


@pytest.fixture
def petstore_file(tmp_path: Path, petstore_30_raw: dict[str, Any]) -> Path:
    """The pet store 3.0 document written to ``tmp_path/petstore.json``."""
    path = tmp_path / "petstore.json"
    path.write_text(json.dumps(petstore_30_raw), encoding="utf-8")
    return path


@pytest.fixture
def swagger_file(tmp_path: Path, petstore_20_raw: dict[str, Any]) -> Path:
    """The Swagger 2.0 document written to ``tmp_path/swagger.json``."""
    path = tmp_path / "swagger.json"
    path.write_text(json.dumps(petstore_20_raw), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_DATA_HOME at a subdirectory of tmp_path, clears all
    SPECMCP_* environment variables, and changes the working directory to
    tmp_path so no ``specmcp.json`` from the real checkout is picked up.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in [
        "SPECMCP_BASE_URL",
        "SPECMCP_SERVER_NAME",
        "SPECMCP_MAX_WORKERS",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager for tests that ignore output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def json_output() -> OutputManager:
    """Install a JSON-format OutputManager for tests that check JSON output."""
    output = OutputManager(format=OutputFormat.JSON)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
