from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from app.services.form_definition import FormDefinitionError
from app.services.form_fields import FIELD_CHECKBOX, FIELD_DROPDOWN, FieldDefinition, get_field_type_spec


@dataclass
class FieldControl:
    key: str
    label: str
    type: str
    tag: str
    required: bool
    input_mode: str
    multiple: bool
    icon: str
    type_label: str
    options: list[str] = field(default_factory=list)
    initial_value: Any = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "type": self.type,
            "tag": self.tag,
            "required": self.required,
            "input_mode": self.input_mode,
            "multiple": self.multiple,
            "icon": self.icon,
            "type_label": self.type_label,
            "options": list(self.options),
            "initial_value": self.initial_value,
        }


def describe_field_type(item: FieldDefinition) -> str:
    spec = get_field_type_spec(item.type)
    if item.type in {FIELD_DROPDOWN, FIELD_CHECKBOX}:
        return f"{spec.display_label} ({len(item.options or [])} options)"
    return spec.display_label


def _initial_value(item: FieldDefinition) -> Any:
    empty = get_field_type_spec(item.type).empty_value
    return list(empty) if isinstance(empty, list) else empty


def render_field_control(item: FieldDefinition) -> FieldControl:
    spec = get_field_type_spec(item.type)
    if item.is_choice and not item.options:
        raise FormDefinitionError([f'{item.type} field "{item.label}" has no options to choose from'])
    return FieldControl(
        key=item.key,
        label=item.label,
        type=spec.type,
        tag=spec.renderer_tag,
        required=bool(item.required),
        input_mode=spec.input_mode,
        multiple=spec.multiple,
        icon=spec.icon,
        type_label=describe_field_type(item),
        options=list(item.options or []),
        initial_value=_initial_value(item),
    )


def render_form_controls(fields: list[FieldDefinition]) -> list[FieldControl]:
    return [render_field_control(item) for item in fields]


def build_initial_form_state(fields: list[FieldDefinition]) -> dict[str, Any]:
    return {item.label: _initial_value(item) for item in fields if not item.is_file}
