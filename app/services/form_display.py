from __future__ import annotations

from typing import Any, Iterable, Mapping
from urllib.parse import unquote, urlsplit

from app.services.form_fields import FieldDefinition, is_missing_value
from app.services.form_renderer import describe_field_type

DISPLAY_FILES = "files"
DISPLAY_LIST = "list"
DISPLAY_SCALAR = "scalar"
EMPTY_DISPLAY = "N/A"


def is_file_reference_list(value: Any) -> bool:
    return (
        isinstance(value, (list, tuple))
        and len(value) > 0
        and isinstance(value[0], str)
        and value[0].startswith("http")
    )


def file_name_from_url(url: str, default_name: str = "File") -> str:
    try:
        path = urlsplit(str(url or "")).path
    except ValueError:
        return default_name
    name = unquote(path.rsplit("/", 1)[-1]) if path else ""
    return name or default_name


def _display_entry(entry: Mapping[str, Any], item: FieldDefinition | None) -> dict[str, Any]:
    value = entry.get("value")
    out: dict[str, Any] = {
        "key": entry.get("key") or (item.key if item else None),
        "label": str(entry.get("label") or (item.label if item else "")),
        "type": item.type if item else None,
        "type_label": describe_field_type(item) if item else None,
        "files": [],
    }
    if is_file_reference_list(value):
        out["kind"] = DISPLAY_FILES
        out["files"] = [
            {"url": str(url), "name": file_name_from_url(str(url), f"File {index}")}
            for index, url in enumerate(value, start=1)
        ]
        out["text"] = ", ".join(f["name"] for f in out["files"])
    elif isinstance(value, (list, tuple)):
        out["kind"] = DISPLAY_LIST
        out["text"] = ", ".join(str(v) for v in value) or EMPTY_DISPLAY
    else:
        out["kind"] = DISPLAY_SCALAR
        out["text"] = EMPTY_DISPLAY if value is None or value == "" else str(value)
    return out


def _lookup(fields: list[FieldDefinition] | None) -> tuple[dict[str, FieldDefinition], dict[str, FieldDefinition]]:
    by_key: dict[str, FieldDefinition] = {}
    by_label: dict[str, FieldDefinition] = {}
    for item in fields or []:
        by_key.setdefault(item.key, item)
        by_label.setdefault(item.label, item)
    return by_key, by_label


def interpret_form_response(
    response: Iterable[Any],
    fields: list[FieldDefinition] | None = None,
) -> list[dict[str, Any]]:
    by_key, by_label = _lookup(fields)
    entries: list[dict[str, Any]] = []
    for entry in response or []:
        if not isinstance(entry, Mapping):
            continue
        item = by_key.get(str(entry.get("key") or "")) or by_label.get(str(entry.get("label") or ""))
        entries.append(_display_entry(entry, item))
    return entries


def form_completeness(fields: list[FieldDefinition], response: Iterable[Any]) -> float:
    if not fields:
        return 1.0
    answers: dict[str, Any] = {}
    for entry in response or []:
        if isinstance(entry, Mapping) and isinstance(entry.get("label"), str):
            answers[entry["label"].strip().lower()] = entry.get("value")
    completed = sum(1 for item in fields if not is_missing_value(answers.get(item.label.strip().lower())))
    return completed / len(fields)
