"""Expansion settings, overridable through FLUID_* environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from .builder import DEFAULT_PARAM_PREFIX
from .errors import ConfigError
from .parser import DEFAULT_MAX_DEPTH

ENV_PARAM_PREFIX = "FLUID_PARAM_PREFIX"
ENV_MAX_DEPTH = "FLUID_MAX_DEPTH"
ENV_DEBUG_PY_TRACE = "FLUID_DEBUG_PY_TRACE"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"", "0", "false", "no", "off"}


@dataclass(frozen=True)
class Config:
    param_prefix: str = DEFAULT_PARAM_PREFIX
    max_depth: int = DEFAULT_MAX_DEPTH
    debug_py_trace: bool = False

    def __post_init__(self) -> None:
        if not self.param_prefix.isidentifier():
            raise ConfigError(f"closure parameter prefix must be an identifier, got {self.param_prefix!r}")
        if self.max_depth < 1:
            raise ConfigError(f"max_depth must be at least 1, got {self.max_depth}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Config:
        env = os.environ if environ is None else environ
        config = cls()

        prefix = env.get(ENV_PARAM_PREFIX)
        if prefix:
            config = replace(config, param_prefix=prefix.strip())

        depth = env.get(ENV_MAX_DEPTH)
        if depth:
            try:
                config = replace(config, max_depth=int(depth))
            except ValueError:
                raise ConfigError(f"{ENV_MAX_DEPTH} must be an integer, got {depth!r}") from None

        trace = env.get(ENV_DEBUG_PY_TRACE)
        if trace is not None:
            config = replace(config, debug_py_trace=parse_flag(trace, ENV_DEBUG_PY_TRACE))

        return config


def parse_flag(value: str, name: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ConfigError(f"{name} must be on/off, got {value!r}")


def debug_py_trace_enabled() -> bool:
    """Check the traceback flag live, so the REPL can toggle it."""
    value = os.environ.get(ENV_DEBUG_PY_TRACE)
    if value is None:
        return False
    return value.strip().lower() in _TRUTHY
