"""Tests for specmcp.parser.loader."""

from __future__ import annotations

import io
import json
import textwrap
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from specmcp.exceptions import SpecParseError
from specmcp.parser.loader import FETCH_TIMEOUT, load_spec, parse_document

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"


# ---------------------------------------------------------------------------
# load_spec dispatch
# ---------------------------------------------------------------------------


class TestLoadSpec:
    """Test load_spec routes each kind of source to the right reader."""

    def test_loads_openapi_json_file(self) -> None:
        result = load_spec(str(FIXTURES_DIR / "petstore_3.0.json"))
        assert result["openapi"] == "3.0.3"
        assert result["info"]["title"] == "Swagger Petstore"

    def test_loads_swagger_json_file_untouched(self) -> None:
        result = load_spec(str(FIXTURES_DIR / "petstore_swagger_2.0.json"))
        assert result["swagger"] == "2.0"
        assert "definitions" in result

    def test_loads_yaml_file(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "spec.yaml"
        yaml_file.write_text(
            textwrap.dedent("""\
                openapi: "3.0.3"
                info:
                  title: YAML Test
                  version: "1.0.0"
                paths: {}
            """),
            encoding="utf-8",
        )
        result = load_spec(str(yaml_file))
        assert result["info"]["title"] == "YAML Test"

    def test_loads_yaml_without_known_suffix(self, tmp_path: Path) -> None:
        spec_file = tmp_path / "spec.txt"
        spec_file.write_text("swagger: '2.0'\ninfo:\n  title: T\n  version: '1'\n", encoding="utf-8")
        assert load_spec(str(spec_file))["swagger"] == "2.0"

    def test_loads_from_stdin(self) -> None:
        spec_json = json.dumps({"openapi": "3.0.3", "info": {"title": "stdin test", "version": "1.0"}})
        with patch("specmcp.parser.loader.sys") as mock_sys:
            mock_sys.stdin = io.StringIO(spec_json)
            result = load_spec("-")
        assert result["info"]["title"] == "stdin test"

    def test_loads_from_url(self) -> None:
        spec = {"openapi": "3.0.3", "info": {"title": "URL test", "version": "1.0"}}
        mock_response = httpx.Response(
            status_code=200,
            json=spec,
            request=httpx.Request("GET", "https://example.com/spec.json"),
        )
        with patch("specmcp.parser.loader.httpx.get", return_value=mock_response) as mock_get:
            result = load_spec("https://example.com/spec.json")
        assert result["info"]["title"] == "URL test"
        mock_get.assert_called_once_with(
            "https://example.com/spec.json", timeout=FETCH_TIMEOUT, follow_redirects=True
        )


# ---------------------------------------------------------------------------
# Failure modes
# ---------------------------------------------------------------------------


class TestLoadFailures:
    """Every unreadable source surfaces as SpecParseError."""

    def test_file_not_found_raises(self) -> None:
        with pytest.raises(SpecParseError, match="not found"):
            load_spec("/nonexistent/path/to/spec.json")

    def test_empty_file_raises(self, tmp_path: Path) -> None:
        empty = tmp_path / "empty.json"
        empty.write_text("", encoding="utf-8")
        with pytest.raises(SpecParseError, match="empty"):
            load_spec(str(empty))

    def test_invalid_json_file_raises(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.json"
        bad.write_text("{invalid json", encoding="utf-8")
        with pytest.raises(SpecParseError, match="Invalid JSON"):
            load_spec(str(bad))

    def test_non_object_raises(self, tmp_path: Path) -> None:
        array_file = tmp_path / "array.json"
        array_file.write_text("[1, 2, 3]", encoding="utf-8")
        with pytest.raises(SpecParseError, match="must be a JSON/YAML object"):
            load_spec(str(array_file))

    def test_empty_stdin_raises(self) -> None:
        with patch("specmcp.parser.loader.sys") as mock_sys:
            mock_sys.stdin = io.StringIO("   \n")
            with pytest.raises(SpecParseError, match="No input"):
                load_spec("-")

    def test_http_error_status_raises(self) -> None:
        mock_response = httpx.Response(
            status_code=404,
            text="not here",
            request=httpx.Request("GET", "https://example.com/missing.json"),
        )
        with patch("specmcp.parser.loader.httpx.get", return_value=mock_response):
            with pytest.raises(SpecParseError, match="HTTP 404"):
                load_spec("https://example.com/missing.json")

    def test_transport_error_raises(self) -> None:
        with patch(
            "specmcp.parser.loader.httpx.get",
            side_effect=httpx.ConnectError("connection refused"),
        ):
            with pytest.raises(SpecParseError, match="Failed to fetch"):
                load_spec("https://example.com/spec.json")


# ---------------------------------------------------------------------------
# parse_document
# ---------------------------------------------------------------------------


class TestParseDocument:
    """Test JSON-then-YAML decoding and format hints."""

    def test_json_without_hint(self) -> None:
        assert parse_document('{"openapi": "3.0.0"}') == {"openapi": "3.0.0"}

    def test_yaml_without_hint(self) -> None:
        assert parse_document("openapi: 3.0.0\npaths: {}\n") == {"openapi": "3.0.0", "paths": {}}

    def test_json_hint_disables_yaml_fallback(self) -> None:
        with pytest.raises(SpecParseError, match="Invalid JSON"):
            parse_document("openapi: 3.0.0\n", hint="json")

    def test_yaml_hint_skips_json(self) -> None:
        assert parse_document('{"a": 1}', hint="yaml") == {"a": 1}

    def test_undecodable_text_reports_both_errors(self) -> None:
        with pytest.raises(SpecParseError) as exc_info:
            parse_document("key: [unclosed\n  - : :")
        message = str(exc_info.value)
        assert "JSON error" in message
        assert "YAML error" in message

    def test_scalar_document_rejected(self) -> None:
        with pytest.raises(SpecParseError, match="got str"):
            parse_document("just a string")
