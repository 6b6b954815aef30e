"""Typed configuration from environment variables."""

__version__ = "0.1.0"

from env_extract.coerce import PrimitiveType, coerce, read_primitive
from env_extract.errors import (
    CoercionError,
    ConfigPanic,
    EnvExtractError,
    MisconfiguredSchemaError,
    MissingVariableError,
    NoMatchingVariantError,
    ResolutionError,
)
from env_extract.schema import (
    ConfigRecord,
    FieldSpec,
    env_field,
    load,
    populate,
    schema_from_dataclass,
)
from env_extract.variants import (
    CaseRule,
    EnumResolver,
    FallbackKind,
    FallbackPolicy,
    VariantSpec,
    env_var,
    resolve_variant,
)

__all__ = [
    "CaseRule",
    "CoercionError",
    "ConfigPanic",
    "ConfigRecord",
    "EnumResolver",
    "EnvExtractError",
    "FallbackKind",
    "FallbackPolicy",
    "FieldSpec",
    "MisconfiguredSchemaError",
    "MissingVariableError",
    "NoMatchingVariantError",
    "PrimitiveType",
    "ResolutionError",
    "VariantSpec",
    "__version__",
    "coerce",
    "env_field",
    "env_var",
    "load",
    "populate",
    "read_primitive",
    "resolve_variant",
    "schema_from_dataclass",
]
