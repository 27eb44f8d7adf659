"""
inkgen.config — generator settings resolved from the environment.

Configuration precedence:
  1) CLI flags (applied by the caller through `dataclasses.replace`)
  2) Environment variables (INKGEN_*)
  3) Hardcoded defaults below

Key env vars:
  - INKGEN_STRICT_SCHEMA     (bool)   default: true
  - INKGEN_SELECTOR_POLICY   (str)    default: "declared"  ("declared" | "computed")
  - INKGEN_RUNTIME_MODULE    (str)    default: "inkgen.runtime"
  - INKGEN_HANDLE_NAME       (str)    default: "Instance"
  - INKGEN_LOGLEVEL          (str)    default: "WARNING"

Usage:
    from inkgen.config import load_config
    cfg = load_config()
    if cfg.strict_schema: ...
"""

from __future__ import annotations

import keyword
import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict

SELECTOR_POLICIES = ("declared", "computed")

DEFAULT_RUNTIME_MODULE = "inkgen.runtime"
DEFAULT_HANDLE_NAME = "Instance"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "t", "yes", "y", "on")


def _env_choice(name: str, default: str, choices: tuple) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    val = raw.strip().lower()
    return val if val in choices else default


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def _env_loglevel(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    level = logging.getLevelName(raw.strip().upper())
    return level if isinstance(level, int) else default


@dataclass(frozen=True)
class InkgenConfig:
    # Validate documents against the packaged JSON schema before loading.
    strict_schema: bool
    # Whether explicit selectors in the document win over computed ones.
    selector_policy: str
    # Import path the generated module uses for the runtime support package.
    runtime_module: str
    # Class name of the emitted contract handle.
    handle_name: str
    log_level: int

    def __post_init__(self) -> None:
        # inkgen.codegen imports this module at load time.
        from .codegen.naming import MODULE_RESERVED

        if self.selector_policy not in SELECTOR_POLICIES:
            raise ValueError(f"selector_policy must be one of {SELECTOR_POLICIES}, got {self.selector_policy!r}")
        if not self.handle_name.isidentifier() or keyword.iskeyword(self.handle_name):
            raise ValueError(f"handle_name must be a Python identifier, got {self.handle_name!r}")
        if self.handle_name in MODULE_RESERVED:
            raise ValueError(f"handle_name {self.handle_name!r} is already bound in generated modules")
        if not all(part.isidentifier() and not keyword.iskeyword(part) for part in self.runtime_module.split(".")):
            raise ValueError(f"runtime_module must be a dotted module path, got {self.runtime_module!r}")

    def as_dict(self) -> Dict[str, Any]:
        return {
            "strict_schema": self.strict_schema,
            "selector_policy": self.selector_policy,
            "runtime_module": self.runtime_module,
            "handle_name": self.handle_name,
            "log_level": logging.getLevelName(self.log_level),
        }


@lru_cache(maxsize=1)
def load_config() -> InkgenConfig:
    """Build and cache an InkgenConfig from environment + defaults."""
    return InkgenConfig(
        strict_schema=_env_bool("INKGEN_STRICT_SCHEMA", True),
        selector_policy=_env_choice("INKGEN_SELECTOR_POLICY", "declared", SELECTOR_POLICIES),
        runtime_module=_env_str("INKGEN_RUNTIME_MODULE", DEFAULT_RUNTIME_MODULE),
        handle_name=_env_str("INKGEN_HANDLE_NAME", DEFAULT_HANDLE_NAME),
        log_level=_env_loglevel("INKGEN_LOGLEVEL", logging.WARNING),
    )


__all__ = ["InkgenConfig", "load_config", "SELECTOR_POLICIES", "DEFAULT_RUNTIME_MODULE", "DEFAULT_HANDLE_NAME"]
