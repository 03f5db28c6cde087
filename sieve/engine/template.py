"""Declaration parsing, validation and template expansion.

A declaration is a single entry mapping or a list of them. Entries may carry a
``data`` mapping whose values fill ``{{ name }}`` placeholders; list values fan
the entry out into one concrete entry per combination.
"""

from __future__ import annotations

import itertools
import json
import re
from typing import Any, Mapping, Sequence

import pydantic
import yaml

from ..config import Entry
from ..errors import ParseError, ValidationError

PLACEHOLDER = re.compile(r"{{\s*([\w.\-]+)\s*}}")

Batch = list[Entry]


def parse_declaration(raw: Any) -> Any:
    """Decode a serialized declaration; structured input passes through."""

    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except json.JSONDecodeError as json_exc:
        try:
            data = yaml.safe_load(raw)
        except yaml.YAMLError:
            raise ParseError(f"JSON error: {json_exc}") from json_exc
        if not isinstance(data, (dict, list)):
            raise ParseError(f"JSON error: {json_exc}") from json_exc
        return data


def _validate_entry(payload: Any, prefix: str = "") -> Entry:
    if not isinstance(payload, Mapping):
        raise ValidationError(
            f"Entry {prefix or 'declaration'} must be a mapping, got {type(payload).__name__}",
            [prefix] if prefix else [],
        )
    try:
        return Entry.model_validate(dict(payload))
    except pydantic.ValidationError as exc:
        fields = [prefix + ".".join(str(part) for part in err["loc"]) for err in exc.errors()]
        details = "; ".join(
            f"{prefix}{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise ValidationError(f"Invalid entry: {details}", fields) from exc


def validate_declaration(data: Any) -> Entry | list[Entry]:
    """Validate a decoded declaration against the entry schema."""

    if isinstance(data, list):
        if not data:
            raise ValidationError("Declaration list is empty")
        return [_validate_entry(item, f"[{index}].") for index, item in enumerate(data)]
    return _validate_entry(data)


def lookup(data: Mapping[str, Any], path: str) -> Any:
    node: Any = data
    for part in path.split("."):
        if isinstance(node, Mapping) and part in node:
            node = node[part]
        elif isinstance(node, list) and part.isdigit() and int(part) < len(node):
            node = node[int(part)]
        else:
            return None
    return node


def render(template: str, data: Mapping[str, Any]) -> str:
    """Fill ``{{ name }}`` placeholders; unknown names render empty."""

    def _replace(match: re.Match[str]) -> str:
        value = lookup(data, match.group(1))
        return "" if value is None else str(value)

    return PLACEHOLDER.sub(_replace, template)


def _combinations(data: Mapping[str, Any]) -> tuple[list[dict[str, Any]], bool]:
    """Return every data combination and whether any list fanned out."""

    keys = [key for key, value in data.items() if isinstance(value, list)]
    if not keys:
        return [dict(data)], False
    combos: list[dict[str, Any]] = []
    for values in itertools.product(*(data[key] for key in keys)):
        combo = dict(data)
        combo.update(zip(keys, values))
        combos.append(combo)
    return combos, True


def _render_entry(entry: Entry, data: Mapping[str, Any]) -> Entry:
    update: dict[str, Any] = {
        "url": render(entry.url, data),
        "headers": {name: render(value, data) for name, value in entry.headers.items()},
        "data": None,
    }
    if isinstance(entry.selection, str):
        update["selection"] = render(entry.selection, data)
    return entry.model_copy(update=update)


def expand_entry(entry: Entry) -> tuple[Batch, bool]:
    if not entry.data:
        return [entry], False
    combos, fanned = _combinations(entry.data)
    return [_render_entry(entry, combo) for combo in combos], fanned


def expand(declaration: Entry | Sequence[Entry]) -> Entry | Batch:
    """Expand a validated declaration into a singular entry or a batch."""

    if isinstance(declaration, Entry):
        entries, fanned = expand_entry(declaration)
        return entries if fanned else entries[0]
    batch: Batch = []
    for entry in declaration:
        entries, _ = expand_entry(entry)
        batch.extend(entries)
    return batch


__all__ = [
    "Batch",
    "expand",
    "expand_entry",
    "lookup",
    "parse_declaration",
    "render",
    "validate_declaration",
]
