"""Shared helpers for env-extract."""

from env_extract.common.environ import default_var_name, read_env

__all__ = ["default_var_name", "read_env"]
