from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from app.services.form_fields import (
    CHOICE_FIELD_TYPES,
    FIELD_TYPES,
    FieldDefinition,
    legacy_field_key,
    new_field_key,
)

logger = logging.getLogger("app.forms")

MAX_LABEL_LENGTH = 200
MAX_OPTION_LENGTH = 200


class FormDefinitionError(ValueError):
    def __init__(self, problems: list[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems) or "Invalid form definition")


def normalize_form_definition(value: Any) -> list:
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, (str, bytes)):
        try:
            parsed = json.loads(value)
        except (TypeError, ValueError) as exc:
            logger.warning("custom_form_fields_parse_failed: %s", exc)
            return []
        return list(parsed) if isinstance(parsed, list) else []
    if isinstance(value, Mapping):
        fields = value.get("fields")
        if isinstance(fields, (list, tuple)):
            return list(fields)
    return []


def _clean_options(raw: Any) -> list[str]:
    if not isinstance(raw, (list, tuple)):
        return []
    out: list[str] = []
    for item in raw:
        text = str(item if item is not None else "").strip()
        if text and text not in out:
            out.append(text)
    return out


def _coerce_required(raw: Any) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    return bool(raw)


def coerce_field_definition(raw: Any) -> FieldDefinition | None:
    if isinstance(raw, FieldDefinition):
        return raw
    if not isinstance(raw, Mapping):
        return None
    label = str(raw.get("label") or "").strip()
    if not label:
        return None
    field_type = str(raw.get("type") or "").strip().lower()
    options = _clean_options(raw.get("options")) if field_type in CHOICE_FIELD_TYPES else None
    key = str(raw.get("key") or "").strip() or legacy_field_key(label)
    return FieldDefinition(
        type=field_type,
        label=label,
        required=_coerce_required(raw.get("required")),
        options=options,
        key=key,
    )


def parse_form_definition(value: Any) -> list[FieldDefinition]:
    fields: list[FieldDefinition] = []
    for raw in normalize_form_definition(value):
        item = coerce_field_definition(raw)
        if item is None:
            logger.info("custom_form_field_skipped: %r", raw)
            continue
        fields.append(item)
    return fields


def validate_form_definition(value: Any) -> list[FieldDefinition]:
    if isinstance(value, (str, bytes)):
        try:
            value = json.loads(value)
        except (TypeError, ValueError):
            raise FormDefinitionError(["custom_form_fields must be a JSON array"])
    if isinstance(value, Mapping) and isinstance(value.get("fields"), (list, tuple)):
        value = value["fields"]
    if not isinstance(value, (list, tuple)):
        raise FormDefinitionError(["custom_form_fields must be an array"])

    problems: list[str] = []
    fields: list[FieldDefinition] = []
    seen_labels: set[str] = set()
    seen_keys: set[str] = set()
    for index, raw in enumerate(value, start=1):
        if not isinstance(raw, Mapping):
            problems.append(f"Field #{index} must be an object")
            continue
        field_type = str(raw.get("type") or "").strip().lower()
        label = raw.get("label")
        if not isinstance(label, str) or not label.strip():
            problems.append(f"Field #{index} must have a label")
            continue
        label = label.strip()
        if len(label) > MAX_LABEL_LENGTH:
            problems.append(f'Label of field "{label[:40]}" is too long')
            continue
        if field_type not in FIELD_TYPES:
            problems.append(f"Invalid field type: {raw.get('type')}")
            continue

        options = None
        if field_type in CHOICE_FIELD_TYPES:
            options = _clean_options(raw.get("options"))
            if not options:
                problems.append(f'{field_type} field "{label}" must have at least one option')
                continue
            if any(len(option) > MAX_OPTION_LENGTH for option in options):
                problems.append(f'An option of field "{label}" is too long')
                continue

        lowered = label.lower()
        if lowered in seen_labels:
            problems.append(f'Duplicate field label: "{label}"')
            continue
        key = str(raw.get("key") or "").strip() or new_field_key()
        if key in seen_keys:
            problems.append(f'Duplicate field key: "{key}"')
            continue
        seen_labels.add(lowered)
        seen_keys.add(key)
        fields.append(
            FieldDefinition(
                type=field_type,
                label=label,
                required=_coerce_required(raw.get("required")),
                options=options,
                key=key,
            )
        )

    if problems:
        raise FormDefinitionError(problems)
    return fields


def serialize_form_definition(fields: list[FieldDefinition]) -> list[dict[str, Any]]:
    return [item.to_dict() for item in fields]


def find_field(fields: list[FieldDefinition], field_ref: str) -> FieldDefinition | None:
    ref = str(field_ref or "").strip()
    if not ref:
        return None
    for item in fields:
        if item.key == ref:
            return item
    for item in fields:
        if item.label == ref:
            return item
    return None
