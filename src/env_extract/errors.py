"""Exceptions raised while resolving configuration from the environment."""

from __future__ import annotations


class EnvExtractError(Exception):
    """Base exception for env-extract errors."""


class MisconfiguredSchemaError(EnvExtractError):
    """A resolver or field schema was declared in a way that can never resolve."""


def _subject(var_name: str, field: str | None) -> str:
    if field is None:
        return f"Environment variable {var_name!r}"
    return f"Field {field!r} (environment variable {var_name!r})"


class ResolutionError(EnvExtractError):
    """Looking up a variable produced no usable value."""

    def __init__(
        self, var_name: str, raw: str | None = None, field: str | None = None
    ) -> None:
        self.var_name = var_name
        self.raw = raw
        self.field = field
        super().__init__(self._describe())

    def _describe(self) -> str:
        return f"{_subject(self.var_name, self.field)} could not be resolved"


class MissingVariableError(ResolutionError):
    """Variable is not set and no default was configured."""

    def _describe(self) -> str:
        return f"{_subject(self.var_name, self.field)} is not set and has no default value"


class NoMatchingVariantError(ResolutionError):
    """Variable is set but matches none of the declared variants."""

    def _describe(self) -> str:
        return (
            f"{_subject(self.var_name, self.field)} has invalid value "
            f"{self.raw!r}: no variant matched"
        )


class CoercionError(EnvExtractError):
    """Raw value could not be parsed and no usable fallback exists."""

    def __init__(
        self,
        var_name: str,
        raw: str | None,
        target: str,
        field: str | None = None,
    ) -> None:
        self.var_name = var_name
        self.raw = raw
        self.target = target
        self.field = field
        super().__init__(
            f"{_subject(var_name, field)} has value {raw!r} "
            f"which cannot be parsed as {target}"
        )


class ConfigPanic(EnvExtractError):
    """Unrecoverable resolution failure from a resolver declared to panic."""

    def __init__(
        self, var_name: str, raw: str | None = None, field: str | None = None
    ) -> None:
        self.var_name = var_name
        self.raw = raw
        self.field = field
        if raw is None:
            detail = "is not set"
        else:
            detail = f"has invalid value {raw!r}"
        super().__init__(
            f"{_subject(var_name, field)} {detail} and no variant can be returned"
        )
