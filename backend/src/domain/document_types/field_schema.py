"""Typed field schema for document types.

A DocumentType's fields_json is a list of field definitions:

    {"name": "licenseClass", "label": "License Class", "type": "select",
     "required": true, "options": ["A", "B", "C"], "aiExtractable": true,
     "description": "Class printed on the card"}

Each FieldType maps to a FieldHandler (widget name + value coercer) in
FIELD_HANDLERS. Form builders and the document update path dispatch through
that table instead of inspecting values.
"""

import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Optional

from domain.documents.document_status import as_date

FIELD_NAME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9_]*$")

EXTRACTION_MODES = ("fields", "classification-only")


class FieldType(str, Enum):
    TEXT = "text"
    DATE = "date"
    NUMBER = "number"
    SELECT = "select"
    MULTILINE = "multiline"
    BOOLEAN = "boolean"


@dataclass
class FieldSpec:
    """One field of a document type's schema"""
    name: str
    label: str
    type: FieldType = FieldType.TEXT
    required: bool = False
    options: list[str] = field(default_factory=list)
    ai_extractable: bool = True
    description: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "label": self.label,
            "type": self.type.value,
            "required": self.required,
            "options": list(self.options),
            "aiExtractable": self.ai_extractable,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FieldSpec":
        """Build a FieldSpec from its stored/JSON form.

        Raises:
            ValueError: If name, label or type are invalid
        """
        name = str(data.get("name") or "").strip()
        if not FIELD_NAME_RE.match(name):
            raise ValueError(
                f"Invalid field name '{name}': must start with a letter and contain "
                f"only letters, numbers, and underscores"
            )
        label = str(data.get("label") or "").strip()
        if not label:
            raise ValueError(f"Field '{name}' needs a label")
        try:
            field_type = FieldType(str(data.get("type") or FieldType.TEXT.value).lower())
        except ValueError:
            raise ValueError(f"Field '{name}' has unknown type '{data.get('type')}'")
        options = [str(o) for o in data.get("options") or []]
        if field_type == FieldType.SELECT and not options:
            raise ValueError(f"Select field '{name}' needs at least one option")
        return cls(
            name=name,
            label=label,
            type=field_type,
            required=bool(data.get("required", False)),
            options=options,
            ai_extractable=bool(data.get("aiExtractable", data.get("ai_extractable", True))),
            description=data.get("description") or None,
        )


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _coerce_text(value: Any, spec: FieldSpec) -> Optional[str]:
    return None if _blank(value) else str(value).strip()


def _coerce_date(value: Any, spec: FieldSpec) -> Optional[date]:
    if _blank(value):
        return None
    try:
        return as_date(value)
    except ValueError:
        raise ValueError(f"{spec.label} must be a date (YYYY-MM-DD)")


def _coerce_number(value: Any, spec: FieldSpec) -> Optional[float]:
    if _blank(value):
        return None
    if isinstance(value, bool):
        raise ValueError(f"{spec.label} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{spec.label} must be a number")
    return int(number) if number.is_integer() else number


def _coerce_select(value: Any, spec: FieldSpec) -> Optional[str]:
    if _blank(value):
        return None
    text = str(value).strip()
    if spec.options and text not in spec.options:
        raise ValueError(f"{spec.label} must be one of: {', '.join(spec.options)}")
    return text


def _coerce_boolean(value: Any, spec: FieldSpec) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)


@dataclass(frozen=True)
class FieldHandler:
    """Rendering and coercion for one field type"""
    widget: str
    coerce: Callable[[Any, FieldSpec], Any]


FIELD_HANDLERS: dict[FieldType, FieldHandler] = {
    FieldType.TEXT: FieldHandler(widget="input:text", coerce=_coerce_text),
    FieldType.DATE: FieldHandler(widget="input:date", coerce=_coerce_date),
    FieldType.NUMBER: FieldHandler(widget="input:number", coerce=_coerce_number),
    FieldType.SELECT: FieldHandler(widget="select", coerce=_coerce_select),
    FieldType.MULTILINE: FieldHandler(widget="textarea", coerce=_coerce_text),
    FieldType.BOOLEAN: FieldHandler(widget="checkbox", coerce=_coerce_boolean),
}


# Used when a document type has no schema of its own
DEFAULT_FIELDS = [
    FieldSpec(name="documentNumber", label="Document Number", type=FieldType.TEXT),
    FieldSpec(name="issuedDate", label="Issue Date", type=FieldType.DATE),
    FieldSpec(name="expiryDate", label="Expiry Date", type=FieldType.DATE, required=True),
    FieldSpec(name="notes", label="Notes", type=FieldType.MULTILINE, ai_extractable=False),
]


def parse_schema(fields_json: Optional[Iterable[Mapping[str, Any]]]) -> list[FieldSpec]:
    """Parse stored field definitions; empty or missing means DEFAULT_FIELDS.

    Raises:
        ValueError: On an invalid definition or duplicate field names
    """
    specs = [FieldSpec.from_dict(item) for item in fields_json or []]
    names = [s.name for s in specs]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ValueError(f"Duplicate field names: {', '.join(duplicates)}")
    return specs or list(DEFAULT_FIELDS)


def widget_for(spec: FieldSpec) -> str:
    return FIELD_HANDLERS[spec.type].widget


def coerce_field_value(spec: FieldSpec, value: Any) -> Any:
    """Convert a raw form value for the field's type.

    Raises:
        ValueError: If the value cannot be represented as the field's type
    """
    return FIELD_HANDLERS[spec.type].coerce(value, spec)


def validate_required_fields(values: Mapping[str, Any], schema: Iterable[FieldSpec]) -> list[str]:
    """Labels of required fields that are missing or blank, in schema order.

    A required boolean counts as present only when it is True.
    """
    missing = []
    for spec in schema:
        if not spec.required:
            continue
        value = values.get(spec.name)
        if spec.type == FieldType.BOOLEAN:
            if not _coerce_boolean(value, spec):
                missing.append(spec.label)
        elif _blank(value):
            missing.append(spec.label)
    return missing


def empty_form(schema: Iterable[FieldSpec]) -> dict[str, Any]:
    """Blank values for every field (False for booleans, "" otherwise)"""
    return {
        spec.name: (False if spec.type == FieldType.BOOLEAN else "")
        for spec in schema
    }


def field_types_catalog() -> list[dict]:
    """Field types offered to settings screens"""
    return [
        {"type": field_type.value, "widget": handler.widget}
        for field_type, handler in FIELD_HANDLERS.items()
    ]
