"""Read-only access to the environment-variable store.

Every lookup goes through :func:`read_env` so callers can substitute any
``Mapping[str, str]`` for ``os.environ``::

    from env_extract.common.environ import read_env

    host = read_env("DB_HOST")                       # os.environ
    host = read_env("DB_HOST", {"DB_HOST": "db"})    # explicit store
"""

from __future__ import annotations

import os
from typing import Mapping


def read_env(name: str, environ: Mapping[str, str] | None = None) -> str | None:
    """Get an environment variable.

    Args:
        name: Environment variable name
        environ: Store to read from (default: ``os.environ``, read at call time)

    Returns:
        The raw value, or None if not set. An empty value is returned as "".
    """
    source = os.environ if environ is None else environ
    return source.get(name)


def default_var_name(identifier: str) -> str:
    """Derive the variable name for a field or enumeration identifier."""
    return identifier.upper()
