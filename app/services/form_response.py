from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from app.services.form_fields import FieldDefinition, get_field_type_spec
from app.services.form_schema import FieldValidationError


@dataclass(frozen=True)
class PendingAttachment:
    file_name: str
    mime_type: str
    content: bytes

    @property
    def size_bytes(self) -> int:
        return len(self.content)


def _assembled_value(item: FieldDefinition, raw: Any) -> Any:
    if item.is_file:
        return None
    if raw is None:
        empty = get_field_type_spec(item.type).empty_value
        return list(empty) if isinstance(empty, list) else empty
    if isinstance(raw, (list, tuple)):
        return [str(value) for value in raw]
    if isinstance(raw, bool):
        return "true" if raw else "false"
    return str(raw)


def assemble_form_response(fields: list[FieldDefinition], values: Mapping[str, Any] | None) -> list[dict[str, Any]]:
    payload = values if isinstance(values, Mapping) else {}
    return [
        {"key": item.key, "label": item.label, "value": _assembled_value(item, payload.get(item.label))}
        for item in fields
    ]


def group_pending_attachments(
    fields: list[FieldDefinition],
    attachments: Mapping[str, Iterable[PendingAttachment]] | None,
) -> dict[str, list[PendingAttachment]]:
    source = attachments if isinstance(attachments, Mapping) else {}
    grouped: dict[str, list[PendingAttachment]] = {}
    for item in fields:
        if not item.is_file:
            continue
        files = [f for f in (source.get(item.label) or []) if isinstance(f, PendingAttachment)]
        if files:
            grouped[item.label] = files
    return grouped


def check_required_files(
    fields: list[FieldDefinition],
    attachments: Mapping[str, Iterable[PendingAttachment]] | None,
) -> list[FieldValidationError]:
    grouped = group_pending_attachments(fields, attachments)
    return [
        FieldValidationError(key=item.key, label=item.label, message=f"{item.label} is required")
        for item in fields
        if item.is_file and item.required and not grouped.get(item.label)
    ]


def _entry_matches(entry: Mapping[str, Any], item: FieldDefinition) -> bool:
    entry_key = str(entry.get("key") or "").strip()
    if entry_key and item.key:
        return entry_key == item.key
    return entry.get("label") == item.label


def patch_form_response_files(
    response: list[dict[str, Any]],
    item: FieldDefinition,
    file_urls: list[str],
) -> list[dict[str, Any]]:
    patched: list[dict[str, Any]] = []
    matched = False
    for entry in response or []:
        if isinstance(entry, Mapping) and _entry_matches(entry, item):
            patched.append({**entry, "value": list(file_urls)})
            matched = True
        else:
            patched.append(dict(entry) if isinstance(entry, Mapping) else entry)
    if not matched:
        raise LookupError(f'Response has no entry for field "{item.label}"')
    return patched


def response_values_by_label(response: Iterable[Any]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for entry in response or []:
        if isinstance(entry, Mapping) and isinstance(entry.get("label"), str):
            values[entry["label"]] = entry.get("value")
    return values
