"""Input parsing utilities for CLI commands."""

import json
from pathlib import Path
from typing import Any


def parse_param(spec: str) -> tuple[str, str]:
    """Parse one ``key=value`` query parameter.

    Examples:
        "sort=-name" → ("sort", "-name")
        "name_like=%wid%" → ("name_like", "%wid%")

    Raises:
        ValueError: If the spec has no ``=`` or an empty key
    """
    key, sep, value = spec.partition("=")
    key = key.strip()
    if not sep or not key:
        raise ValueError(f"Invalid parameter: '{spec}'. Expected format: key=value")
    return key, value


def parse_params(specs: list[str] | None) -> list[tuple[str, str]]:
    """Parse repeated ``key=value`` options, keeping order and repeated keys."""
    return [parse_param(spec) for spec in specs or []]


def read_json_file(path: str) -> dict[str, Any]:
    """Read single JSON object from file.

    Raises:
        FileNotFoundError: If file doesn't exist
        json.JSONDecodeError: If file contains invalid JSON
    """
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    with file_path.open("r", encoding="utf-8") as f:
        return json.load(f)


def load_body(data_json: str | None, from_file: str | None) -> Any:
    """Request body from an inline JSON argument or a JSON file.

    Inline text is passed through unparsed so the CRUD engine reports
    malformed JSON the same way it does for any other caller.

    Raises:
        ValueError: If neither or both sources are given
    """
    if bool(data_json) == bool(from_file):
        raise ValueError("Provide record data either as a JSON string or with --from-file")
    if from_file:
        return read_json_file(from_file)
    return data_json
