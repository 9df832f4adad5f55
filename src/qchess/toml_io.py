"""
TOML reading and writing for configs, events and metrics.

Constraints:
- Reading goes through tomllib and is narrowed to TomlValue
- Writing is deterministic: scalars first, then sub-tables, keys sorted
- Only the value types our artifacts use are supported
"""

from __future__ import annotations

import math
import tomllib
from pathlib import Path

type TomlScalar = str | int | float | bool
type TomlValue = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]

_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\t": "\\t",
    "\r": "\\r",
}


def load_toml(path: Path) -> dict[str, TomlValue]:
    """Load a TOML file into a nested dict of TomlValue.

    Raises:
        FileNotFoundError: If path does not exist.
        ValueError: If the document holds keys or values we do not support.
    """
    raw = tomllib.loads(path.read_text(encoding="utf-8"))
    return _narrow_table(raw)


def dump_toml(data: dict[str, TomlValue]) -> str:
    """Serialize a nested dict into a TOML document with stable ordering.

    Raises:
        ValueError: If data contains unsupported types.
    """
    lines: list[str] = []
    _emit_table(lines, data, ())
    return "\n".join(lines) + "\n"


def save_toml(path: Path, data: dict[str, TomlValue]) -> None:
    """Write a TOML document to disk."""
    path.write_text(dump_toml(data), encoding="utf-8")


def _narrow_table(raw: dict[object, object]) -> dict[str, TomlValue]:
    """Recursively check a parsed table and return it as TomlValue."""
    table: dict[str, TomlValue] = {}
    for key, value in raw.items():
        if not isinstance(key, str):
            raise ValueError("TOML tables must have string keys.")
        table[key] = _narrow_value(value)
    return table


def _narrow_value(value: object) -> TomlValue:
    """Check a parsed value (scalar, list or table)."""
    if isinstance(value, dict):
        return _narrow_table(value)
    if isinstance(value, list):
        if any(isinstance(item, dict) for item in value):
            raise ValueError("dict values in lists are not supported")
        return [_narrow_value(item) for item in value]
    if isinstance(value, str | int | float | bool):
        return value
    raise ValueError(f"unsupported TOML value type: {type(value)}")


def _emit_table(
    lines: list[str], table: dict[str, TomlValue], path: tuple[str, ...]
) -> None:
    """Append a table and its sub-tables to `lines`."""
    if path:
        if lines:
            lines.append("")
        lines.append(f"[{'.'.join(path)}]")
    subtables: list[str] = []
    for key in sorted(table):
        value = table[key]
        if isinstance(value, dict):
            subtables.append(key)
        else:
            lines.append(f"{key} = {_literal(value)}")
    for key in subtables:
        child = table[key]
        if isinstance(child, dict):
            _emit_table(lines, child, (*path, key))


def _literal(value: TomlValue) -> str:
    """Render a non-table value as a TOML literal."""
    # bool is an int subclass, so it must be checked first.
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "nan"
        if math.isinf(value):
            return "inf" if value > 0 else "-inf"
        return repr(value)
    if isinstance(value, str):
        escaped = "".join(_ESCAPES.get(char, char) for char in value)
        return f'"{escaped}"'
    if isinstance(value, list):
        return "[" + ", ".join(_literal(item) for item in value) + "]"
    raise ValueError("unsupported TOML value type")
