"""inkgen.version — semantic version of the generator.

Resolution order:
  1) INKGEN_VERSION (exact value)
  2) Installed package metadata for 'inkgen'
  3) BASE_VERSION + '+dev'

Generated clients embed this value in their header so a module can be traced
back to the generator that produced it.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import metadata as importlib_metadata
from typing import Optional

# Bump when the emitted source or the runtime contract changes shape.
BASE_VERSION = "0.3.0"


def _pkg_metadata_version(dist_name: str = "inkgen") -> Optional[str]:
    try:
        v = importlib_metadata.version(dist_name)
    except importlib_metadata.PackageNotFoundError:
        return None
    return v if v and v != "0.0.0" else None


@lru_cache(maxsize=1)
def compute_version() -> str:
    env = os.getenv("INKGEN_VERSION")
    if env:
        return env
    return _pkg_metadata_version() or f"{BASE_VERSION}+dev"


__version__ = compute_version()

__all__ = ["__version__", "BASE_VERSION", "compute_version"]
