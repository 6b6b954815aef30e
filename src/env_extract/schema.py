"""Populate configuration records field by field from the environment.

A schema is an ordered list of :class:`FieldSpec`. Each field resolves on its
own, with no caching and no dependency on other fields:

- enumerated fields use their resolver's match, falling back to the
  resolver's marker/default variant instead of failing the record
- primitive fields use :func:`env_extract.coerce.coerce`; a missing ``str``
  or an unusable number without a default aborts the whole record

Schemas can be written by hand or derived from a dataclass::

    @dataclass
    class Config:
        db_host: str
        db_port: int = env_field(kind="u16", default="5432")
        use_tls: bool = env_field(var_name="DB_TLS")
        db_type: DatabaseType = env_field(enum=DatabaseType)

    config = load(Config)
"""

from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Iterator, Mapping, NamedTuple, get_type_hints

from env_extract.coerce import PrimitiveType, coerce, parse_number
from env_extract.common.environ import default_var_name, read_env
from env_extract.errors import ConfigPanic, MisconfiguredSchemaError, ResolutionError
from env_extract.variants import EnumResolver, FallbackKind, VariantSpec, resolver_for

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldSpec:
    """One named field of a configuration record.

    ``target`` is a :class:`PrimitiveType` or an :class:`EnumResolver`.
    ``default`` is a literal string, only meaningful for primitive fields.
    """

    name: str
    target: PrimitiveType | EnumResolver
    var_name: str | None = None
    default: str | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise MisconfiguredSchemaError("Field name must not be empty")
        if isinstance(self.target, EnumResolver):
            if self.default is not None:
                raise MisconfiguredSchemaError(
                    f"Field {self.name!r}: literal defaults are not supported for "
                    f"enumerated fields; declare a default variant on {self.target.name}"
                )
            panics = self.target.fallback.kind is FallbackKind.PANIC
            if not (self.target.has_fallback_value or panics):
                raise MisconfiguredSchemaError(
                    f"Field {self.name!r}: {self.target.name} has no default or "
                    "marker variant to fall back to"
                )
        elif isinstance(self.target, PrimitiveType):
            if (
                self.default is not None
                and self.target.is_numeric
                and parse_number(self.default, self.target) is None
            ):
                raise MisconfiguredSchemaError(
                    f"Field {self.name!r}: default {self.default!r} is not a valid "
                    f"{self.target.value}"
                )
        else:
            raise MisconfiguredSchemaError(
                f"Field {self.name!r}: unsupported target {self.target!r}"
            )

    @property
    def is_enum(self) -> bool:
        return isinstance(self.target, EnumResolver)

    @property
    def effective_var_name(self) -> str:
        """Explicit override, else the enum's variable, else the field name uppercased."""
        if self.var_name is not None:
            return self.var_name
        if isinstance(self.target, EnumResolver):
            return self.target.var_name
        return default_var_name(self.name)


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, VariantSpec):
        return value.display_name
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class ConfigRecord(Mapping[str, Any]):
    """Immutable, ordered result of :func:`populate`.

    Values are available by key (``record["db_host"]``) or attribute
    (``record.db_host``). Fields named after a method (``items``, ``get``,
    ``to_dict`` and so on) are reachable by key only.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, Any]) -> None:
        object.__setattr__(self, "_values", dict(values))

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __getattr__(self, name: str) -> Any:
        if name == "_values":
            raise AttributeError(name)
        try:
            return self._values[name]
        except KeyError:
            raise AttributeError(name) from None

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("ConfigRecord is immutable")

    def __repr__(self) -> str:
        body = ", ".join(f"{k}={v!r}" for k, v in self._values.items())
        return f"ConfigRecord({body})"

    def to_dict(self) -> dict[str, Any]:
        return dict(self._values)

    def to_json(self) -> str:
        return json.dumps(self._values, default=_json_default)


def resolve_field(spec: FieldSpec, *, environ: Mapping[str, str] | None = None) -> Any:
    """Resolve a single field."""
    var_name = spec.effective_var_name
    target = spec.target

    if isinstance(target, EnumResolver):
        try:
            return target.resolve(var_name=var_name, environ=environ)
        except ResolutionError as exc:
            if target.fallback.kind is FallbackKind.PANIC:
                raise ConfigPanic(var_name, exc.raw, field=spec.name) from exc
            logger.debug("Field %s: %s; using %s fallback", spec.name, exc, target.name)
            return target.default()

    return coerce(
        read_env(var_name, environ),
        target,
        spec.default,
        var_name=var_name,
        field=spec.name,
    )


def populate(
    schema: Iterable[FieldSpec], *, environ: Mapping[str, str] | None = None
) -> ConfigRecord:
    """Resolve every field of ``schema`` into a :class:`ConfigRecord`.

    Raises:
        MisconfiguredSchemaError: duplicate field names (checked before any read).
        MissingVariableError: a required str or numeric field is unset.
        CoercionError: a numeric field is unparseable and has no default.
        ConfigPanic: an enumerated field's resolver panics on no match.
    """
    specs = tuple(schema)
    seen: set[str] = set()
    for spec in specs:
        if spec.name in seen:
            raise MisconfiguredSchemaError(f"Duplicate field {spec.name!r} in schema")
        seen.add(spec.name)

    values: dict[str, Any] = {}
    for spec in specs:
        values[spec.name] = resolve_field(spec, environ=environ)
    return ConfigRecord(values)


# ---------------------------------------------------------------------------
# Dataclass schemas
# ---------------------------------------------------------------------------

_METADATA_KEY = "env_extract"


class _FieldOptions(NamedTuple):
    var_name: str | None = None
    default: str | None = None
    enum: Any = None
    kind: PrimitiveType | str | None = None


def env_field(
    *,
    var_name: str | None = None,
    default: str | None = None,
    enum: Any = None,
    kind: PrimitiveType | str | None = None,
    **kwargs: Any,
) -> Any:
    """``dataclasses.field`` carrying environment options in its metadata.

    Args:
        var_name: Variable name (default: field name uppercased, or the
            enum's own variable for enumerated fields)
        default: Literal default, parsed like an environment value
        enum: An EnumResolver, or an Enum decorated with ``env_var``
        kind: Primitive width, e.g. ``"u16"`` or ``PrimitiveType.F32``
        **kwargs: Passed through to ``dataclasses.field``
    """
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[_METADATA_KEY] = _FieldOptions(var_name, default, enum, kind)
    return dataclasses.field(metadata=metadata, **kwargs)


def _enum_target(owner: str, ref: Any) -> EnumResolver:
    if isinstance(ref, EnumResolver):
        return ref
    resolver = resolver_for(ref)
    if resolver is None:
        raise MisconfiguredSchemaError(
            f"{owner}: {ref!r} is not an EnumResolver or an env_var enum"
        )
    return resolver


def _field_target(
    owner: str, annotation: Any, options: _FieldOptions
) -> PrimitiveType | EnumResolver:
    if options.enum is not None:
        return _enum_target(owner, options.enum)

    if options.kind is not None:
        kind = PrimitiveType.parse(options.kind)
        base = PrimitiveType.for_annotation(annotation)
        compatible = base is not None and (
            kind is base
            or (base is PrimitiveType.INT and kind.is_integer)
            or (base is PrimitiveType.F64 and kind.is_float)
        )
        if not compatible:
            raise MisconfiguredSchemaError(
                f"{owner}: kind {kind.value} does not fit annotation {annotation!r}"
            )
        return kind

    primitive = PrimitiveType.for_annotation(annotation)
    if primitive is not None:
        return primitive
    if resolver_for(annotation) is not None:
        return _enum_target(owner, annotation)
    raise MisconfiguredSchemaError(f"{owner}: unsupported field type {annotation!r}")


def schema_from_dataclass(cls: type) -> list[FieldSpec]:
    """Build a schema from a dataclass's ``init`` fields, in declaration order.

    Plain dataclass defaults are not consulted; use ``env_field(default=...)``.
    """
    if not (isinstance(cls, type) and dataclasses.is_dataclass(cls)):
        raise MisconfiguredSchemaError(f"{cls!r} is not a dataclass")

    # Resolves string annotations from __future__
    type_hints = get_type_hints(cls)

    specs: list[FieldSpec] = []
    for f in dataclasses.fields(cls):
        if not f.init:
            continue
        options = f.metadata.get(_METADATA_KEY) or _FieldOptions()
        annotation = type_hints.get(f.name, f.type)
        target = _field_target(f"{cls.__name__}.{f.name}", annotation, options)
        specs.append(
            FieldSpec(f.name, target, var_name=options.var_name, default=options.default)
        )
    return specs


def load(cls: type, *, environ: Mapping[str, str] | None = None) -> Any:
    """Instantiate dataclass ``cls`` from the environment."""
    record = populate(schema_from_dataclass(cls), environ=environ)
    return cls(**record.to_dict())
