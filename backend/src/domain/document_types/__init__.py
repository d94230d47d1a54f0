from .field_schema import (
    DEFAULT_FIELDS,
    EXTRACTION_MODES,
    FIELD_HANDLERS,
    FieldSpec,
    FieldType,
    coerce_field_value,
    empty_form,
    field_types_catalog,
    parse_schema,
    validate_required_fields,
    widget_for,
)

__all__ = [
    "DEFAULT_FIELDS",
    "EXTRACTION_MODES",
    "FIELD_HANDLERS",
    "FieldSpec",
    "FieldType",
    "coerce_field_value",
    "empty_form",
    "field_types_catalog",
    "parse_schema",
    "validate_required_fields",
    "widget_for",
]
