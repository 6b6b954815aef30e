"""Coerce raw environment strings into primitive values.

The fallback rules differ per type and callers rely on them:

- ``bool``: exactly ``"true"`` or ``"false"``; unset or anything else is
  False. The literal default is never consulted.
- numbers: surrounding whitespace is trimmed before parsing; unset or
  unparseable values fall back to the literal default, and with no default
  the lookup fails.
- ``str``: the raw value verbatim, else the literal default verbatim, else
  the lookup fails.
"""

from __future__ import annotations

import logging
import math
import re
import struct
from enum import Enum
from typing import Any, Mapping

from env_extract.common.environ import read_env
from env_extract.errors import CoercionError, MisconfiguredSchemaError, MissingVariableError

logger = logging.getLogger(__name__)


class PrimitiveType(Enum):
    """Target types for non-enumerated values.

    Fixed-width integers are range checked; INT is an unbounded Python int.
    """

    STR = "str"
    BOOL = "bool"
    INT = "int"
    U8 = "u8"
    U16 = "u16"
    U32 = "u32"
    U64 = "u64"
    U128 = "u128"
    USIZE = "usize"
    I8 = "i8"
    I16 = "i16"
    I32 = "i32"
    I64 = "i64"
    I128 = "i128"
    ISIZE = "isize"
    F32 = "f32"
    F64 = "f64"

    @classmethod
    def parse(cls, value: str | PrimitiveType) -> PrimitiveType:
        if isinstance(value, PrimitiveType):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise MisconfiguredSchemaError(f"Unsupported primitive type {value!r}") from None

    @classmethod
    def for_annotation(cls, annotation: Any) -> PrimitiveType | None:
        """Map a ``str``/``bool``/``int``/``float`` annotation, else None."""
        return _ANNOTATIONS.get(annotation)

    @property
    def is_integer(self) -> bool:
        return self in _INTEGER_BOUNDS

    @property
    def is_float(self) -> bool:
        return self in (PrimitiveType.F32, PrimitiveType.F64)

    @property
    def is_numeric(self) -> bool:
        return self.is_integer or self.is_float

    @property
    def bounds(self) -> tuple[int | None, int | None]:
        """Inclusive (min, max) for integer types; (None, None) otherwise."""
        return _INTEGER_BOUNDS.get(self, (None, None))


_ANNOTATIONS: dict[Any, PrimitiveType] = {
    str: PrimitiveType.STR,
    bool: PrimitiveType.BOOL,
    int: PrimitiveType.INT,
    float: PrimitiveType.F64,
}


def _unsigned(bits: int) -> tuple[int, int]:
    return (0, 2**bits - 1)


def _signed(bits: int) -> tuple[int, int]:
    return (-(2 ** (bits - 1)), 2 ** (bits - 1) - 1)


_INTEGER_BOUNDS: dict[PrimitiveType, tuple[int | None, int | None]] = {
    PrimitiveType.INT: (None, None),
    PrimitiveType.U8: _unsigned(8),
    PrimitiveType.U16: _unsigned(16),
    PrimitiveType.U32: _unsigned(32),
    PrimitiveType.U64: _unsigned(64),
    PrimitiveType.U128: _unsigned(128),
    PrimitiveType.USIZE: _unsigned(64),
    PrimitiveType.I8: _signed(8),
    PrimitiveType.I16: _signed(16),
    PrimitiveType.I32: _signed(32),
    PrimitiveType.I64: _signed(64),
    PrimitiveType.I128: _signed(128),
    PrimitiveType.ISIZE: _signed(64),
}

_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")


def parse_bool(raw: str) -> bool | None:
    """Parse a boolean literal. Only "true" and "false" are accepted."""
    if raw == "true":
        return True
    if raw == "false":
        return False
    return None


def _to_single(value: float) -> float:
    """Round to IEEE single precision; out-of-range magnitudes become infinite."""
    try:
        return struct.unpack("f", struct.pack("f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def parse_number(raw: str, target: PrimitiveType) -> int | float | None:
    """Parse ``raw`` as ``target`` without trimming; None if it does not fit."""
    if target.is_integer:
        if not _INTEGER_PATTERN.fullmatch(raw):
            return None
        low, high = target.bounds
        if low == 0 and raw.startswith("-"):
            return None
        try:
            value = int(raw)
        except ValueError:
            # Digit strings beyond the interpreter's conversion limit.
            return None
        if (low is not None and value < low) or (high is not None and value > high):
            return None
        return value
    if target.is_float:
        if not raw.isascii() or "_" in raw or raw != raw.strip():
            return None
        try:
            value = float(raw)
        except ValueError:
            return None
        if target is PrimitiveType.F32:
            return _to_single(value)
        return value
    raise MisconfiguredSchemaError(f"{target.value} is not a numeric type")


def coerce(
    raw: str | None,
    target: PrimitiveType,
    literal_default: str | None = None,
    *,
    var_name: str = "",
    field: str | None = None,
) -> Any:
    """Convert a raw value (None when unset) to ``target``.

    Args:
        raw: The variable's value, or None when it is not set
        target: Primitive type to produce
        literal_default: Default as written in the schema (a string)
        var_name: Variable name, for error messages
        field: Field name, for error messages

    Returns:
        The coerced value.

    Raises:
        MissingVariableError: str/numeric value unset with no default.
        CoercionError: numeric value unparseable with no usable default.
    """
    if target is PrimitiveType.BOOL:
        parsed = parse_bool(raw) if raw is not None else None
        if parsed is None:
            if raw is not None:
                logger.debug("%s=%r is not a boolean literal, using false", var_name, raw)
            return False
        return parsed

    if target is PrimitiveType.STR:
        if raw is not None:
            return raw
        if literal_default is not None:
            return literal_default
        raise MissingVariableError(var_name, field=field)

    if raw is not None:
        value = parse_number(raw.strip(), target)
        if value is not None:
            return value
    if literal_default is None:
        if raw is None:
            raise MissingVariableError(var_name, field=field)
        raise CoercionError(var_name, raw, target.value, field=field)

    logger.debug("%s=%r unusable as %s, using default %r", var_name, raw, target.value, literal_default)
    value = parse_number(literal_default, target)
    if value is None:
        raise CoercionError(var_name, literal_default, target.value, field=field)
    return value


def read_primitive(
    var_name: str,
    target: PrimitiveType | str,
    literal_default: str | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> Any:
    """Read ``var_name`` once and coerce it to ``target``."""
    target = PrimitiveType.parse(target)
    return coerce(read_env(var_name, environ), target, literal_default, var_name=var_name)
