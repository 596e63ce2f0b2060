from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from app.core.config import settings
from app.services.form_fields import (
    FieldDefinition,
    FieldTypeSpec,
    get_field_type_spec,
    is_missing_value,
    is_valid_email,
    is_valid_phone,
)

__all__ = [
    "CompiledFormSchema",
    "FieldRule",
    "FieldValidationError",
    "compile_form_schema",
    "is_valid_email",
    "is_valid_phone",
    "summarize_validation_errors",
]


@dataclass(frozen=True)
class FieldValidationError:
    key: str
    label: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"key": self.key, "label": self.label, "message": self.message}


@dataclass(frozen=True)
class FieldRule:
    field: FieldDefinition
    spec: FieldTypeSpec

    @property
    def required(self) -> bool:
        return bool(self.field.required) and not self.spec.deferred

    def check(self, value: Any) -> str | None:
        if self.spec.deferred:
            return None
        if is_missing_value(value) and not isinstance(value, (dict, set)):
            if self.required:
                return self.spec.missing_message.format(label=self.field.label)
            return None
        return self.spec.check(self.field, value)


class CompiledFormSchema:
    def __init__(self, rules: dict[str, FieldRule]):
        self.rules = rules

    @property
    def labels(self) -> list[str]:
        return list(self.rules)

    def validate(self, values: Mapping[str, Any] | None) -> list[FieldValidationError]:
        payload = values if isinstance(values, Mapping) else {}
        errors: list[FieldValidationError] = []
        for label, rule in self.rules.items():
            message = rule.check(payload.get(label))
            if message:
                errors.append(FieldValidationError(key=rule.field.key, label=label, message=message))
        return errors

    def is_valid(self, values: Mapping[str, Any] | None) -> bool:
        return not self.validate(values)


def compile_form_schema(fields: list[FieldDefinition]) -> CompiledFormSchema:
    rules: dict[str, FieldRule] = {}
    for item in fields:
        # Same label twice: the later definition wins, as in stored responses.
        rules[item.label] = FieldRule(field=item, spec=get_field_type_spec(item.type))
    return CompiledFormSchema(rules)


def summarize_validation_errors(errors: list[FieldValidationError], limit: int | None = None) -> list[str]:
    limit = settings.FORM_ERROR_DISPLAY_LIMIT if limit is None else max(int(limit), 0)
    messages = [error.message for error in errors]
    if len(messages) <= limit:
        return messages
    rest = len(messages) - limit
    return messages[:limit] + [f"…and {rest} more"]
