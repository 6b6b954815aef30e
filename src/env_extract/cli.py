"""Resolve environment variables from shell scripts.

Usage:
    env-extract enum LOGLEVEL Error Warning Info --case fold --default Info
    env-extract enum MODE Dev Prod --variant-case Prod=uppercase --fail
    env-extract get DB_PORT --type u16 --default 5432
    env-extract get DB_HOST --json

The resolved value is printed on stdout; failures are logged on stderr and
reported through the exit code (see :class:`env_extract.exit_codes.ExitCode`).
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from env_extract.coerce import PrimitiveType, read_primitive
from env_extract.common.logging import enable_debug_logging, log_error, log_info
from env_extract.errors import (
    CoercionError,
    ConfigPanic,
    EnvExtractError,
    MisconfiguredSchemaError,
    MissingVariableError,
    NoMatchingVariantError,
)
from env_extract.exit_codes import ExitCode
from env_extract.variants import CaseRule, EnumResolver, FallbackPolicy, VariantSpec


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="env-extract",
        description="Resolve typed values from environment variables",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Log resolution details to stderr"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    enum_p = sub.add_parser("enum", help="Resolve a variable to one of a fixed set of variants")
    enum_p.add_argument("var_name", help="Environment variable name")
    enum_p.add_argument("variants", nargs="+", metavar="VARIANT", help="Variants, in match order")
    enum_p.add_argument(
        "--case",
        default=None,
        help="Rule for variants without their own: exact, uppercase, lowercase, fold",
    )
    enum_p.add_argument(
        "--variant-case",
        action="append",
        default=[],
        metavar="NAME=RULE",
        help="Rule for a single variant (repeatable)",
    )
    enum_p.add_argument(
        "--ignore", action="append", default=[], metavar="NAME", help="Never match NAME"
    )
    fallback = enum_p.add_mutually_exclusive_group()
    fallback.add_argument("--default", dest="default_variant", metavar="NAME",
                          help="Variant returned when nothing matches")
    fallback.add_argument("--marker", metavar="NAME",
                          help="Not-found variant returned when nothing matches")
    fallback.add_argument("--panic", action="store_true",
                          help="Treat no match as an unrecoverable error")
    fallback.add_argument("--fail", action="store_true",
                          help="Treat no match as a recoverable error")
    enum_p.add_argument("--json", action="store_true", dest="json_output", help="Output as JSON")

    get_p = sub.add_parser("get", help="Read a variable as a primitive type")
    get_p.add_argument("var_name", help="Environment variable name")
    get_p.add_argument(
        "--type",
        dest="target",
        default=PrimitiveType.STR.value,
        choices=[t.value for t in PrimitiveType],
        help="Target type (default: str)",
    )
    get_p.add_argument("--default", dest="literal_default", help="Literal default value")
    get_p.add_argument("--json", action="store_true", dest="json_output", help="Output as JSON")

    return parser.parse_args(argv)


def _build_resolver(args: argparse.Namespace) -> EnumResolver:
    rules: dict[str, CaseRule] = {}
    for item in args.variant_case:
        name, sep, rule = item.partition("=")
        if not sep or not name:
            raise MisconfiguredSchemaError(f"Expected NAME=RULE, got {item!r}")
        rules[name] = CaseRule.parse(rule)

    names = list(args.variants)
    unknown = (set(rules) | set(args.ignore)) - set(names)
    if unknown:
        raise MisconfiguredSchemaError(f"Unknown variant(s): {', '.join(sorted(unknown))}")

    specs = {
        name: VariantSpec(name, case_rule=rules.get(name), ignored=name in args.ignore)
        for name in names
    }

    policy: FallbackPolicy | None = None
    if args.default_variant is not None:
        if args.default_variant not in specs:
            raise MisconfiguredSchemaError(
                f"Default variant {args.default_variant!r} is not one of the variants"
            )
        policy = FallbackPolicy.default(specs[args.default_variant])
    elif args.marker is not None:
        # The marker is a sentinel; it need not be listed as a variant.
        specs.setdefault(args.marker, VariantSpec(args.marker, ignored=True))
        policy = FallbackPolicy.marker(specs[args.marker])
    elif args.panic:
        policy = FallbackPolicy.panic()
    elif args.fail:
        policy = FallbackPolicy.fail()

    return EnumResolver(
        args.var_name,
        specs.values(),
        fallback=policy,
        var_name=args.var_name,
        case=args.case,
    )


def _exit_code_for(exc: EnvExtractError) -> ExitCode:
    if isinstance(exc, ConfigPanic):
        return ExitCode.PANIC
    if isinstance(exc, MisconfiguredSchemaError):
        return ExitCode.MISCONFIGURED
    if isinstance(exc, NoMatchingVariantError):
        return ExitCode.NO_MATCHING_VARIANT
    if isinstance(exc, MissingVariableError):
        return ExitCode.MISSING_VARIABLE
    if isinstance(exc, CoercionError):
        return ExitCode.COERCION_FAILED
    return ExitCode.MISCONFIGURED


def _format(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _run(args: argparse.Namespace) -> Any:
    if args.command == "enum":
        return _build_resolver(args).get()
    return read_primitive(args.var_name, args.target, args.literal_default)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the env-extract CLI."""
    args = _parse_args(argv)
    if args.verbose:
        enable_debug_logging()

    try:
        value = _run(args)
    except EnvExtractError as exc:
        code = _exit_code_for(exc)
        if args.json_output:
            print(json.dumps({
                "var_name": args.var_name,
                "error": type(exc).__name__,
                "message": str(exc),
                "exit_code": int(code),
            }))
        else:
            log_error(str(exc))
        return code

    if isinstance(value, VariantSpec):
        value = value.display_name
    if args.verbose:
        log_info(f"{args.var_name} resolved to {_format(value)}")
    if args.json_output:
        print(json.dumps({"var_name": args.var_name, "value": value}))
    else:
        print(_format(value))
    return ExitCode.SUCCESS


if __name__ == "__main__":
    sys.exit(main())
