"""Resolve an environment variable to one of a closed set of variants.

A resolver holds an ordered list of :class:`VariantSpec` candidates and a
:class:`FallbackPolicy`. Resolution reads the variable once, compares it to
each candidate under the candidate's effective :class:`CaseRule`, and returns
the first match. When nothing matches (an unset variable included) the policy
decides: return a marker variant, return a default variant, raise a
recoverable error, or raise :class:`~env_extract.errors.ConfigPanic`.

Examples::

    from enum import Enum
    from env_extract.variants import EnumResolver, env_var

    @env_var(var_name="DATABASE_TYPE", case="lowercase", panic_on_invalid=True)
    class DatabaseType(Enum):
        Postgres = 1
        Mysql = 2
        Sqlite = 3

    DatabaseType.get()        # DATABASE_TYPE=postgres -> DatabaseType.Postgres

    class LogLevel(Enum):
        Error = 1
        Warning = 2
        Info = 3

    resolver = EnumResolver.from_enum(LogLevel, case="fold", default=LogLevel.Info)
    resolver.get()            # LOGLEVEL unset -> LogLevel.Info
    resolver.resolve()        # LOGLEVEL unset -> MissingVariableError
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Sequence

from env_extract.common.environ import default_var_name, read_env
from env_extract.errors import (
    ConfigPanic,
    MisconfiguredSchemaError,
    MissingVariableError,
    NoMatchingVariantError,
    ResolutionError,
)

logger = logging.getLogger(__name__)


class CaseRule(Enum):
    """How a raw value is compared to a variant's display name.

    - EXACT: compare unchanged
    - UPPERCASE: uppercase the variant name, compare to the raw value
    - LOWERCASE: lowercase the variant name, compare to the raw value
    - FOLD: lowercase both sides (case-insensitive)
    """

    EXACT = "exact"
    UPPERCASE = "uppercase"
    LOWERCASE = "lowercase"
    FOLD = "fold"

    @classmethod
    def parse(cls, value: str | CaseRule) -> CaseRule:
        """Parse a rule name; ``"any"`` is accepted as an alias of ``fold``."""
        if isinstance(value, CaseRule):
            return value
        key = value.strip().lower()
        if key == "any":
            key = "fold"
        try:
            return cls(key)
        except ValueError:
            raise MisconfiguredSchemaError(
                f"Invalid case conversion {value!r} "
                "(expected exact, uppercase, lowercase, fold or any)"
            ) from None

    def normalize_name(self, name: str) -> str:
        if self is CaseRule.UPPERCASE:
            return name.upper()
        if self is CaseRule.LOWERCASE or self is CaseRule.FOLD:
            return name.lower()
        return name

    def normalize_raw(self, raw: str) -> str:
        return raw.lower() if self is CaseRule.FOLD else raw

    def matches(self, raw: str, name: str) -> bool:
        """Full-string equality after normalization. Never a prefix match."""
        return self.normalize_raw(raw) == self.normalize_name(name)


@dataclass(frozen=True)
class VariantSpec:
    """A candidate value a resolver can return.

    ``case_rule`` of None inherits the resolver-wide rule. ``value`` is the
    payload handed back on a match; when None the VariantSpec itself is returned.
    """

    display_name: str
    case_rule: CaseRule | None = None
    ignored: bool = False
    value: Any = None

    def __post_init__(self) -> None:
        if not self.display_name:
            raise MisconfiguredSchemaError("Variant display name must not be empty")
        if self.case_rule is not None and not isinstance(self.case_rule, CaseRule):
            object.__setattr__(self, "case_rule", CaseRule.parse(self.case_rule))

    @property
    def payload(self) -> Any:
        return self if self.value is None else self.value

    def effective_rule(self, enum_default: CaseRule | None = None) -> CaseRule:
        """Per-variant rule, else the resolver-wide rule, else EXACT."""
        if self.case_rule is not None:
            return self.case_rule
        if enum_default is not None:
            return enum_default
        return CaseRule.EXACT


class FallbackKind(Enum):
    """What happens when no variant matches."""

    MARKER = "marker"
    DEFAULT = "default"
    FAIL = "fail"
    PANIC = "panic"


@dataclass(frozen=True)
class FallbackPolicy:
    """Exactly one no-match behaviour, with its variant where it needs one."""

    kind: FallbackKind
    variant: VariantSpec | None = None

    def __post_init__(self) -> None:
        if self.has_value and self.variant is None:
            raise MisconfiguredSchemaError(
                f"{self.kind.value} fallback requires a variant"
            )
        if not self.has_value and self.variant is not None:
            raise MisconfiguredSchemaError(
                f"{self.kind.value} fallback does not take a variant"
            )

    @classmethod
    def marker(cls, variant: VariantSpec) -> FallbackPolicy:
        return cls(FallbackKind.MARKER, variant)

    @classmethod
    def default(cls, variant: VariantSpec) -> FallbackPolicy:
        return cls(FallbackKind.DEFAULT, variant)

    @classmethod
    def fail(cls) -> FallbackPolicy:
        return cls(FallbackKind.FAIL)

    @classmethod
    def panic(cls) -> FallbackPolicy:
        return cls(FallbackKind.PANIC)

    @property
    def has_value(self) -> bool:
        """True when the policy returns a variant instead of raising."""
        return self.kind in (FallbackKind.MARKER, FallbackKind.DEFAULT)


def match_variant(
    raw: str | None,
    variants: Iterable[VariantSpec],
    *,
    case: CaseRule | None = None,
) -> VariantSpec | None:
    """Return the first non-ignored variant matching ``raw``, in declaration order."""
    if raw is None:
        return None
    for variant in variants:
        if variant.ignored:
            continue
        if variant.effective_rule(case).matches(raw, variant.display_name):
            return variant
    return None


def _no_match_error(var_name: str, raw: str | None) -> ResolutionError:
    if raw is None:
        return MissingVariableError(var_name)
    return NoMatchingVariantError(var_name, raw)


def apply_fallback(var_name: str, raw: str | None, fallback: FallbackPolicy) -> Any:
    """Apply ``fallback`` for an unmatched (or unset) variable."""
    if fallback.has_value:
        assert fallback.variant is not None
        logger.debug(
            "%s=%r matched no variant, using %s variant %s",
            var_name,
            raw,
            fallback.kind.value,
            fallback.variant.display_name,
        )
        return fallback.variant.payload
    if fallback.kind is FallbackKind.PANIC:
        raise ConfigPanic(var_name, raw)
    raise _no_match_error(var_name, raw)


def resolve_variant(
    var_name: str,
    variants: Sequence[VariantSpec],
    fallback: FallbackPolicy,
    *,
    case: CaseRule | None = None,
    environ: Mapping[str, str] | None = None,
) -> Any:
    """Resolve ``var_name`` against ``variants``.

    Reads the variable once. The marker variant of a MARKER policy never
    matches, even if it is listed without ``ignored=True``.

    Returns:
        The matched (or fallback) variant's payload.

    Raises:
        MissingVariableError: FAIL policy and the variable is unset.
        NoMatchingVariantError: FAIL policy and the value matched nothing.
        ConfigPanic: PANIC policy and nothing matched.
    """
    raw = read_env(var_name, environ)
    if fallback.kind is FallbackKind.MARKER:
        variants = [v for v in variants if v is not fallback.variant]
    matched = match_variant(raw, variants, case=case)
    if matched is not None:
        logger.debug("%s=%r matched variant %s", var_name, raw, matched.display_name)
        return matched.payload
    return apply_fallback(var_name, raw, fallback)


class EnumResolver:
    """Immutable resolver for one enumeration.

    The fallback policy is mandatory: a resolver that declares no marker,
    no default and no panic (and does not explicitly ask for FAIL) is
    rejected here rather than at lookup time.
    """

    def __init__(
        self,
        name: str,
        variants: Iterable[VariantSpec],
        *,
        fallback: FallbackPolicy | None = None,
        var_name: str | None = None,
        case: CaseRule | str | None = None,
    ) -> None:
        variants = tuple(variants)
        if not variants:
            raise MisconfiguredSchemaError(f"{name} declares no variants")
        if fallback is None:
            raise MisconfiguredSchemaError(
                f"{name} must have a marker variant, a default variant, "
                "or panic on invalid values"
            )
        if fallback.variant is not None and not any(v is fallback.variant for v in variants):
            raise MisconfiguredSchemaError(
                f"{name}: {fallback.kind.value} variant "
                f"{fallback.variant.display_name!r} is not one of its variants"
            )
        if fallback.kind is FallbackKind.DEFAULT and fallback.variant.ignored:  # type: ignore[union-attr]
            raise MisconfiguredSchemaError(
                f"{name}: default variant {fallback.variant.display_name!r} "  # type: ignore[union-attr]
                "must not be ignored"
            )

        self._name = name
        self._var_name = var_name if var_name is not None else default_var_name(name)
        self._variants = variants
        self._case = CaseRule.parse(case) if case is not None else None
        self._fallback = fallback
        self._matchable = tuple(
            v
            for v in variants
            if not (fallback.kind is FallbackKind.MARKER and v is fallback.variant)
        )

    @classmethod
    def from_enum(
        cls,
        enum_cls: type[Enum],
        *,
        var_name: str | None = None,
        case: CaseRule | str | None = None,
        default: Enum | str | None = None,
        marker: Enum | str | None = None,
        panic_on_invalid: bool = False,
        fail: bool = False,
        ignore: Iterable[Enum | str] = (),
        variant_cases: Mapping[str, CaseRule | str] | None = None,
        use_values: bool = False,
    ) -> EnumResolver:
        """Build a resolver from an ``Enum`` class, in member declaration order.

        Display names are member names (``Postgres``), or ``str(member.value)``
        with ``use_values=True``. Matches return the enum member itself.

        Args:
            enum_cls: The enumeration to resolve
            var_name: Variable name (default: the class name uppercased)
            case: Rule for variants without their own rule
            default: Member returned on no match, and by ``default()``
            marker: "Not found" member, never matched itself
            panic_on_invalid: Raise ConfigPanic on no match
            fail: Raise a recoverable ResolutionError on no match
            ignore: Members that are never matched
            variant_cases: Per-member rules, keyed by member name
            use_values: Compare against member values instead of names
        """
        declared = [
            option
            for option, given in (
                ("default", default is not None),
                ("marker", marker is not None),
                ("panic_on_invalid", panic_on_invalid),
                ("fail", fail),
            )
            if given
        ]
        if len(declared) > 1:
            raise MisconfiguredSchemaError(
                f"{enum_cls.__name__} declares more than one fallback: {', '.join(declared)}"
            )

        rules = {
            _member_name(enum_cls, key): CaseRule.parse(rule)
            for key, rule in (variant_cases or {}).items()
        }
        ignored = {_member_name(enum_cls, member) for member in ignore}

        specs: dict[str, VariantSpec] = {}
        for member in enum_cls:
            specs[member.name] = VariantSpec(
                str(member.value) if use_values else member.name,
                case_rule=rules.get(member.name),
                ignored=member.name in ignored,
                value=member,
            )

        fallback: FallbackPolicy | None = None
        if default is not None:
            fallback = FallbackPolicy.default(specs[_member_name(enum_cls, default)])
        elif marker is not None:
            fallback = FallbackPolicy.marker(specs[_member_name(enum_cls, marker)])
        elif panic_on_invalid:
            fallback = FallbackPolicy.panic()
        elif fail:
            fallback = FallbackPolicy.fail()

        return cls(
            enum_cls.__name__,
            specs.values(),
            fallback=fallback,
            var_name=var_name,
            case=case,
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def var_name(self) -> str:
        return self._var_name

    @property
    def variants(self) -> tuple[VariantSpec, ...]:
        return self._variants

    @property
    def case(self) -> CaseRule | None:
        return self._case

    @property
    def fallback(self) -> FallbackPolicy:
        return self._fallback

    @property
    def has_fallback_value(self) -> bool:
        return self._fallback.has_value

    def __repr__(self) -> str:
        return (
            f"EnumResolver({self._name!r}, var_name={self._var_name!r}, "
            f"variants={[v.display_name for v in self._variants]!r}, "
            f"fallback={self._fallback.kind.value!r})"
        )

    def match(self, raw: str | None) -> VariantSpec | None:
        """Matching step alone, without reading the environment."""
        return match_variant(raw, self._matchable, case=self._case)

    def get(
        self,
        *,
        var_name: str | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> Any:
        """Resolve with the configured policy; may raise ConfigPanic."""
        return resolve_variant(
            var_name or self._var_name,
            self._matchable,
            self._fallback,
            case=self._case,
            environ=environ,
        )

    def resolve(
        self,
        *,
        var_name: str | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> Any:
        """Resolve a match or raise ResolutionError.

        Never raises ConfigPanic and never returns the fallback variant:
        every no-match is reported so the caller decides how to recover.
        """
        return resolve_variant(
            var_name or self._var_name,
            self._matchable,
            FallbackPolicy.fail(),
            case=self._case,
            environ=environ,
        )

    def default(self) -> Any:
        """The declared fallback value (marker or default variant).

        Raises ConfigPanic for PANIC resolvers and MissingVariableError for
        FAIL resolvers, which have no fallback value.
        """
        return apply_fallback(self._var_name, None, self._fallback)


def _member_name(enum_cls: type[Enum], ref: Enum | str) -> str:
    if isinstance(ref, enum_cls):
        return ref.name
    if isinstance(ref, str) and ref in enum_cls.__members__:
        # Aliases resolve to their canonical member.
        return enum_cls[ref].name
    raise MisconfiguredSchemaError(f"{ref!r} is not a member of {enum_cls.__name__}")


_RESOLVER_ATTR = "__env_resolver__"


def env_var(
    enum_cls: type[Enum] | None = None, **options: Any
) -> Callable[[type[Enum]], type[Enum]] | type[Enum]:
    """Class decorator attaching an :class:`EnumResolver` to an ``Enum``.

    Accepts the keyword options of :meth:`EnumResolver.from_enum` and adds
    ``get()``, ``resolve()`` and ``default()`` classmethods. Without a
    fallback option the decorator raises MisconfiguredSchemaError at class
    definition time.
    """

    def wrap(cls: type[Enum]) -> type[Enum]:
        resolver = EnumResolver.from_enum(cls, **options)
        setattr(cls, _RESOLVER_ATTR, resolver)

        def get(_cls: type[Enum], *, environ: Mapping[str, str] | None = None) -> Any:
            return resolver.get(environ=environ)

        def resolve(
            _cls: type[Enum], *, environ: Mapping[str, str] | None = None
        ) -> Any:
            return resolver.resolve(environ=environ)

        def default(_cls: type[Enum]) -> Any:
            return resolver.default()

        setattr(cls, "get", classmethod(get))
        setattr(cls, "resolve", classmethod(resolve))
        setattr(cls, "default", classmethod(default))
        return cls

    if enum_cls is None:
        return wrap
    return wrap(enum_cls)


def resolver_for(enum_cls: Any) -> EnumResolver | None:
    """Return the resolver attached by :func:`env_var`, if any."""
    resolver = getattr(enum_cls, _RESOLVER_ATTR, None)
    return resolver if isinstance(resolver, EnumResolver) else None
