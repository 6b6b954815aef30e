"""Exit codes for the env-extract command line."""

from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes for ``env-extract``.

    | Exit Code | Meaning                                    |
    |-----------|--------------------------------------------|
    | 0         | Value resolved (matched or fallback)       |
    | 1         | Value set but matched no variant           |
    | 2         | Variable not set and no default            |
    | 3         | Value could not be parsed as the type      |
    | 4         | Resolver or field declared inconsistently  |
    | 5         | Panic policy triggered                     |

    Using IntEnum allows these to be returned directly from ``main``.
    """

    SUCCESS = 0
    NO_MATCHING_VARIANT = 1
    MISSING_VARIABLE = 2
    COERCION_FAILED = 3
    MISCONFIGURED = 4
    PANIC = 5
