"""Field types understood by scholarship custom forms.

Every per-type behaviour (value rule, authoring label, input control, icon)
lives in ``FIELD_TYPES``. The schema compiler, the renderer dispatch and the
response display all read from this table, so adding a type is one entry here.
"""

from __future__ import annotations

import hashlib
import math
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable

FIELD_TEXT = "text"
FIELD_TEXTAREA = "textarea"
FIELD_DROPDOWN = "dropdown"
FIELD_CHECKBOX = "checkbox"
FIELD_NUMBER = "number"
FIELD_DATE = "date"
FIELD_EMAIL = "email"
FIELD_PHONE = "phone"
FIELD_FILE = "file"

CHOICE_FIELD_TYPES = {FIELD_DROPDOWN, FIELD_CHECKBOX}

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# Philippine numbering: mobile 09XXXXXXXXX, mobile with country code 63XXXXXXXXXX, Manila landline 02XXXXXXXX
_PHONE_RE = re.compile(r"^(?:09\d{9}|63\d{10}|02\d{8})$")


@dataclass
class FieldDefinition:
    type: str
    label: str
    required: bool = False
    options: list[str] | None = None
    key: str = ""

    @property
    def is_choice(self) -> bool:
        return self.type in CHOICE_FIELD_TYPES

    @property
    def is_file(self) -> bool:
        return self.type == FIELD_FILE

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "key": self.key,
            "type": self.type,
            "label": self.label,
            "required": bool(self.required),
        }
        if self.is_choice:
            out["options"] = list(self.options or [])
        return out


def new_field_key() -> str:
    return "f_" + uuid.uuid4().hex[:12]


def legacy_field_key(label: str) -> str:
    # Definitions stored before keys existed: derive a stable key from the label.
    digest = hashlib.sha1(str(label or "").strip().lower().encode("utf-8")).hexdigest()
    return "f_" + digest[:12]


def is_missing_value(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def phone_digits(value: Any) -> str:
    return "".join(ch for ch in str(value or "") if ch.isdigit())


def is_valid_phone(value: Any) -> bool:
    return bool(_PHONE_RE.fullmatch(phone_digits(value)))


def is_valid_email(value: Any) -> bool:
    return isinstance(value, str) and bool(_EMAIL_RE.fullmatch(value.strip()))


def is_numeric_value(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    if not isinstance(value, str):
        return False
    try:
        return math.isfinite(float(value.strip()))
    except ValueError:
        return False


def _check_text(f: FieldDefinition, value: Any) -> str | None:
    if not isinstance(value, str):
        return f"{f.label} must be text"
    return None


def _check_date(f: FieldDefinition, value: Any) -> str | None:
    # Format is enforced by the date picker; only the shape is checked here.
    if not isinstance(value, str):
        return f"{f.label} must be a date"
    return None


def _check_email(f: FieldDefinition, value: Any) -> str | None:
    if not is_valid_email(value):
        return f"{f.label} must be a valid email address"
    return None


def _check_phone(f: FieldDefinition, value: Any) -> str | None:
    if not isinstance(value, str) or not is_valid_phone(value):
        return f"{f.label} must be a valid phone number"
    return None


def _check_number(f: FieldDefinition, value: Any) -> str | None:
    if not is_numeric_value(value):
        return f"{f.label} must be a number"
    return None


def _check_dropdown(f: FieldDefinition, value: Any) -> str | None:
    if not isinstance(value, str) or value not in (f.options or []):
        return f"{f.label} must be one of the available options"
    return None


def _check_checkbox(f: FieldDefinition, value: Any) -> str | None:
    if not isinstance(value, (list, tuple)):
        return f"{f.label} must be a list of selections"
    allowed = set(f.options or [])
    if any(not isinstance(item, str) or item not in allowed for item in value):
        return f"{f.label} contains an invalid selection"
    return None


def _check_file(f: FieldDefinition, value: Any) -> str | None:
    return None


@dataclass(frozen=True)
class FieldTypeSpec:
    type: str
    display_label: str
    renderer_tag: str
    icon: str
    check: Callable[[FieldDefinition, Any], str | None]
    input_mode: str = "text"
    multiple: bool = False
    missing_message: str = "{label} is required"
    # File values arrive out-of-band, so the form schema never enforces them.
    deferred: bool = False
    empty_value: Any = field(default="")


FIELD_TYPES: dict[str, FieldTypeSpec] = {
    spec.type: spec
    for spec in (
        FieldTypeSpec(FIELD_TEXT, "Short answer", "text-input", "text-fields", _check_text),
        FieldTypeSpec(FIELD_TEXTAREA, "Long answer", "multiline-input", "subject", _check_text),
        FieldTypeSpec(FIELD_NUMBER, "Number", "number-input", "numbers", _check_number, input_mode="numeric"),
        FieldTypeSpec(FIELD_EMAIL, "Email", "email-input", "email", _check_email, input_mode="email"),
        FieldTypeSpec(FIELD_PHONE, "Phone number", "phone-input", "phone", _check_phone, input_mode="tel"),
        FieldTypeSpec(FIELD_DATE, "Date", "date-picker", "calendar-today", _check_date, input_mode="date"),
        FieldTypeSpec(FIELD_DROPDOWN, "Dropdown", "select", "arrow-drop-down-circle", _check_dropdown),
        FieldTypeSpec(
            FIELD_CHECKBOX,
            "Checkbox",
            "checkbox-group",
            "check-box",
            _check_checkbox,
            multiple=True,
            missing_message="{label} requires at least one selection",
            empty_value=[],
        ),
        FieldTypeSpec(
            FIELD_FILE,
            "File upload",
            "file-picker",
            "attach-file",
            _check_file,
            input_mode="file",
            multiple=True,
            deferred=True,
            empty_value=None,
        ),
    )
}

FIELD_TYPE_VALUES = tuple(FIELD_TYPES)


def get_field_type_spec(field_type: str | None) -> FieldTypeSpec:
    # Unknown types behave as plain text everywhere.
    return FIELD_TYPES.get(str(field_type or "").strip().lower(), FIELD_TYPES[FIELD_TEXT])
