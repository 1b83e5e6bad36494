from .settings import Settings, load_settings
from .fields import (
    FIELD_TYPES,
    MASKING_STRATEGIES,
    STANDARD_FIELDS,
    FieldSpec,
    field_spec,
)

__all__ = [
    "Settings",
    "load_settings",
    "FIELD_TYPES",
    "MASKING_STRATEGIES",
    "STANDARD_FIELDS",
    "FieldSpec",
    "field_spec",
]
