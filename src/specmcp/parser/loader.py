"""Fetch API description documents from a URL, a local file, or stdin.

The loader is the only I/O in the parsing stage. It turns a *source* string
into the decoded JSON/YAML mapping that
:func:`~specmcp.parser.normalizer.normalize` and
:func:`~specmcp.parser.validator.validate` consume. Both OpenAPI 3.x and
Swagger 2.0 documents pass through untouched: deciding which dialect a
document speaks is the normalizer's job.

Sources:

* ``-`` -- read everything from stdin.
* ``http://`` / ``https://`` -- fetched with :mod:`httpx` (30 s timeout,
  redirects followed).
* anything else -- a path on disk.

Format detection prefers a hint (file extension or response content type)
and otherwise tries JSON first, then YAML.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

import httpx
import yaml

from specmcp.exceptions import SpecParseError

logger = logging.getLogger(__name__)

#: Seconds before a remote fetch is abandoned.
FETCH_TIMEOUT = 30.0


def load_spec(source: str) -> dict[str, Any]:
    """Load and decode an API description document.

    Args:
        source: A URL (http/https), a file path, or ``'-'`` for stdin.

    Returns:
        The decoded document as a dictionary.

    Raises:
        SpecParseError: If the source cannot be read or does not decode to a
            mapping.
    """
    if source == "-":
        text, hint = _read_stdin(), ""
    elif source.startswith(("http://", "https://")):
        text, hint = _fetch_url(source)
    else:
        text, hint = _read_file(source)
    logger.debug("Loaded %d characters from %s", len(text), source)
    return parse_document(text, hint=hint)


def _read_stdin() -> str:
    try:
        text = sys.stdin.read()
    except OSError as exc:
        raise SpecParseError(f"Failed to read from stdin: {exc}") from exc
    if not text.strip():
        raise SpecParseError("No input received from stdin")
    return text


def _fetch_url(url: str) -> tuple[str, str]:
    """GET *url* and return ``(body, format hint)``.

    Raises:
        SpecParseError: On transport errors or a non-2xx status.
    """
    try:
        response = httpx.get(url, timeout=FETCH_TIMEOUT, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise SpecParseError(
            f"HTTP {exc.response.status_code} fetching document from {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise SpecParseError(f"Failed to fetch document from {url}: {exc}") from exc

    content_type = response.headers.get("content-type", "")
    hint = ""
    if "json" in content_type:
        hint = "json"
    elif "yaml" in content_type or "yml" in content_type:
        hint = "yaml"
    return response.text, hint


def _read_file(path: str) -> tuple[str, str]:
    """Read a local document and derive a format hint from its suffix."""
    file_path = Path(path)
    if not file_path.is_file():
        raise SpecParseError(f"Document not found: {path}")
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SpecParseError(f"Failed to read {path}: {exc}") from exc
    if not text.strip():
        raise SpecParseError(f"Document is empty: {path}")

    suffix = file_path.suffix.lower()
    hint = {".json": "json", ".yaml": "yaml", ".yml": "yaml"}.get(suffix, "")
    return text, hint


def parse_document(text: str, hint: str = "") -> dict[str, Any]:
    """Decode *text* as JSON or YAML.

    JSON is attempted first unless *hint* is ``"yaml"``; every JSON document
    is also YAML, but the JSON parser gives sharper errors. A ``"json"``
    hint disables the YAML fallback.

    Args:
        text: Raw document text.
        hint: ``"json"``, ``"yaml"``, or empty for auto-detection.

    Returns:
        The decoded mapping.

    Raises:
        SpecParseError: If neither decoder accepts the text, or the top-level
            value is not a mapping.
    """
    problems: list[str] = []

    if hint != "yaml":
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError as exc:
            if hint == "json":
                raise SpecParseError(f"Invalid JSON: {exc}") from exc
            problems.append(f"JSON error: {exc}")
        else:
            return _require_mapping(decoded)

    try:
        decoded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        problems.append(f"YAML error: {exc}")
    else:
        return _require_mapping(decoded)

    raise SpecParseError(
        "Failed to parse document as JSON or YAML\n  " + "\n  ".join(problems)
    )


def _require_mapping(decoded: Any) -> dict[str, Any]:
    if not isinstance(decoded, dict):
        kind = type(decoded).__name__ if decoded is not None else "empty document"
        raise SpecParseError(f"Document must be a JSON/YAML object (got {kind})")
    return decoded
