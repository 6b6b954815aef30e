"""Tests for primitive coercion."""

from __future__ import annotations

import math

import pytest

from env_extract.coerce import PrimitiveType, coerce, parse_bool, parse_number, read_primitive
from env_extract.errors import CoercionError, MisconfiguredSchemaError, MissingVariableError


class TestPrimitiveType:
    """Tests for PrimitiveType helpers."""

    def test_parse(self) -> None:
        assert PrimitiveType.parse("U16") is PrimitiveType.U16

    def test_parse_rejects_unknown(self) -> None:
        with pytest.raises(MisconfiguredSchemaError):
            PrimitiveType.parse("decimal")

    @pytest.mark.parametrize(
        "annotation, expected",
        [(str, PrimitiveType.STR), (bool, PrimitiveType.BOOL),
         (int, PrimitiveType.INT), (float, PrimitiveType.F64), (bytes, None)],
    )
    def test_for_annotation(self, annotation: type, expected: PrimitiveType | None) -> None:
        assert PrimitiveType.for_annotation(annotation) is expected

    def test_bounds(self) -> None:
        assert PrimitiveType.U8.bounds == (0, 255)
        assert PrimitiveType.I16.bounds == (-32768, 32767)
        assert PrimitiveType.INT.bounds == (None, None)

    def test_kinds(self) -> None:
        assert PrimitiveType.I32.is_integer and PrimitiveType.I32.is_numeric
        assert PrimitiveType.F32.is_float and not PrimitiveType.F32.is_integer
        assert not PrimitiveType.STR.is_numeric
        assert not PrimitiveType.BOOL.is_numeric


class TestParseBool:
    """Tests for parse_bool."""

    def test_literals(self) -> None:
        assert parse_bool("true") is True
        assert parse_bool("false") is False

    @pytest.mark.parametrize("value", ["True", "1", "yes", "on", "", "not-a-bool"])
    def test_other_values(self, value: str) -> None:
        assert parse_bool(value) is None


class TestParseNumber:
    """Tests for parse_number."""

    def test_integer(self) -> None:
        assert parse_number("5432", PrimitiveType.U16) == 5432
        assert parse_number("+7", PrimitiveType.I8) == 7
        assert parse_number("-128", PrimitiveType.I8) == -128

    def test_out_of_range(self) -> None:
        assert parse_number("70000", PrimitiveType.U16) is None
        assert parse_number("-129", PrimitiveType.I8) is None

    def test_unsigned_rejects_minus(self) -> None:
        assert parse_number("-0", PrimitiveType.U32) is None

    @pytest.mark.parametrize("value", ["3.14", "1_000", " 5", "0x10", "", "ten"])
    def test_integer_rejects(self, value: str) -> None:
        assert parse_number(value, PrimitiveType.I64) is None

    def test_unbounded_int(self) -> None:
        assert parse_number(str(2**200), PrimitiveType.INT) == 2**200

    def test_float(self) -> None:
        assert parse_number("2.5", PrimitiveType.F64) == 2.5
        assert parse_number("42", PrimitiveType.F32) == 42.0
        assert parse_number("1e3", PrimitiveType.F64) == 1000.0

    def test_f32_rounds_to_single_precision(self) -> None:
        value = parse_number("0.1", PrimitiveType.F32)
        assert value != 0.1
        assert value == pytest.approx(0.1, rel=1e-7)
        assert parse_number("0.1", PrimitiveType.F64) == 0.1

    def test_f32_overflow_is_infinite(self) -> None:
        assert parse_number("1e39", PrimitiveType.F32) == math.inf
        assert parse_number("-1e39", PrimitiveType.F32) == -math.inf
        assert parse_number("1e39", PrimitiveType.F64) == 1e39

    @pytest.mark.parametrize("target", [PrimitiveType.F32, PrimitiveType.F64])
    def test_float_rejects_non_ascii_digits(self, target: PrimitiveType) -> None:
        assert parse_number("\u0661\u0662", target) is None
        assert coerce("\u0661\u0662", target, "3") == 3.0

    @pytest.mark.parametrize("value", ["1_0.5", "abc", ""])
    def test_float_rejects(self, value: str) -> None:
        assert parse_number(value, PrimitiveType.F64) is None

    def test_non_numeric_target(self) -> None:
        with pytest.raises(MisconfiguredSchemaError):
            parse_number("1", PrimitiveType.STR)


class TestCoerceBool:
    """Booleans never fail and never use the literal default."""

    def test_true(self) -> None:
        assert coerce("true", PrimitiveType.BOOL) is True

    def test_invalid_is_false(self) -> None:
        assert coerce("not-a-bool", PrimitiveType.BOOL) is False

    def test_unset_is_false(self) -> None:
        assert coerce(None, PrimitiveType.BOOL) is False

    def test_literal_default_ignored(self) -> None:
        assert coerce(None, PrimitiveType.BOOL, "true") is False


class TestCoerceNumber:
    """Numbers trim, then fall back to the literal default, then fail."""

    def test_trims_whitespace(self) -> None:
        assert coerce("  5432\n", PrimitiveType.U16) == 5432

    def test_unparseable_uses_default(self) -> None:
        assert coerce("abc", PrimitiveType.U16, "8080") == 8080

    def test_unset_uses_default(self) -> None:
        assert coerce(None, PrimitiveType.F64, "0.5") == 0.5

    def test_unset_without_default(self) -> None:
        with pytest.raises(MissingVariableError) as exc_info:
            coerce(None, PrimitiveType.U16, var_name="DB_PORT", field="db_port")
        assert "db_port" in str(exc_info.value)
        assert "DB_PORT" in str(exc_info.value)

    def test_unparseable_without_default(self) -> None:
        with pytest.raises(CoercionError) as exc_info:
            coerce("abc", PrimitiveType.U16, var_name="DB_PORT")
        assert exc_info.value.raw == "abc"
        assert exc_info.value.target == "u16"

    def test_invalid_literal_default(self) -> None:
        with pytest.raises(CoercionError):
            coerce(None, PrimitiveType.U8, "300", var_name="LIMIT")


class TestCoerceStr:
    """Strings are verbatim and required."""

    def test_verbatim(self) -> None:
        assert coerce("  spaced  ", PrimitiveType.STR) == "  spaced  "

    def test_empty_value_is_kept(self) -> None:
        assert coerce("", PrimitiveType.STR, "fallback") == ""

    def test_literal_default(self) -> None:
        assert coerce(None, PrimitiveType.STR, "localhost") == "localhost"

    def test_missing_is_error(self) -> None:
        with pytest.raises(MissingVariableError, match="DB_HOST"):
            coerce(None, PrimitiveType.STR, var_name="DB_HOST")


class TestReadPrimitive:
    """Tests for read_primitive."""

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TEST_PORT", "9000")
        assert read_primitive("TEST_PORT", "u16") == 9000

    def test_explicit_store(self) -> None:
        assert read_primitive("RATE", PrimitiveType.F64, environ={"RATE": "1.5"}) == 1.5

    def test_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("TEST_NAME", raising=False)
        with pytest.raises(MissingVariableError):
            read_primitive("TEST_NAME", "str")
