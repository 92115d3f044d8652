"""Backend services."""

from services.field_resolver import (
    CANONICAL_FIELDS,
    FIELD_SPECS,
    FieldSpec,
    resolve_record,
)

__all__ = [
    "CANONICAL_FIELDS",
    "FIELD_SPECS",
    "FieldSpec",
    "resolve_record",
]
