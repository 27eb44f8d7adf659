"""
Identifier helpers for emitted Python.

Everything here is deterministic: the same inputs in the same order always
yield the same names, which keeps generated modules byte-stable.
"""

from __future__ import annotations

import keyword
import re
from typing import Iterable, Set

_NON_ID_CHAR = re.compile(r"[^A-Za-z0-9_]")
_MULTI_UNDERSCORE = re.compile(r"_+")

# Names a generated module binds at top level (imports and constants).
MODULE_RESERVED = frozenset(
    {
        "annotations",
        "dataclass",
        "Any",
        "ClassVar",
        "List",
        "Optional",
        "Tuple",
        "Union",
        "scale",
        "AccountId",
        "Hash",
        "Ok",
        "Err",
        "NoValue",
        "NO_VALUE",
        "ScaleType",
        "Variant",
        "EventEnum",
        "Connection",
        "SignedConnection",
        "upload_code",
        "upload",
        "CODE_HASH",
        "CODE_LEN",
        "SELECTORS",
        "Event",
        "int",
        "bool",
        "str",
        "bytes",
        "type",
    }
)

# Attributes every emitted declaration inherits from the runtime bases.
MEMBER_RESERVED = frozenset({"encode", "decode", "decode_event", "CODEC", "INDEX", "INDEXED"})

# Parameter names used by the generated call signatures and bodies.
ARG_RESERVED = frozenset({"conn", "salt", "value", "code_hash", "self", "cls", "_data", "_raw", "_account_id"})


def py_ident(s: str) -> str:
    """Turn an arbitrary label into a valid identifier; keywords get a `_` suffix."""
    s2 = _NON_ID_CHAR.sub("_", s.strip())
    if not s2:
        s2 = "x"
    if keyword.iskeyword(s2):
        s2 += "_"
    if s2[0].isdigit():
        s2 = "_" + s2
    return s2


def snake(s: str) -> str:
    """``PSP22`` -> ``psp22``, ``Ownable::Admin`` -> ``ownable_admin``, ``balanceOf`` -> ``balance_of``."""
    out = []
    prev_lower = False
    for ch in s:
        if ch.isalnum():
            if ch.isupper() and prev_lower:
                out.append("_")
            out.append(ch.lower())
            prev_lower = ch.islower()
        else:
            out.append("_")
            prev_lower = False
    name = _MULTI_UNDERSCORE.sub("_", "".join(out)).strip("_")
    return py_ident(name or "x")


def class_ident(s: str) -> str:
    """Identifier for a class built from a path segment or interface name."""
    return py_ident(_MULTI_UNDERSCORE.sub("_", s.replace("::", "_")))


def member_ident(s: str) -> str:
    """Field or variant attribute name; avoids shadowing runtime members."""
    name = py_ident(s)
    if name in MEMBER_RESERVED:
        name += "_"
    return name


def arg_ident(s: str) -> str:
    """Method parameter name; avoids the names generated signatures use."""
    name = py_ident(s)
    if name in ARG_RESERVED:
        name += "_"
    return name


class NameAllocator:
    """
    Hands out unique names within one namespace. The first request for a
    base name gets it unchanged; later ones get ``base2``, ``base3``...
    """

    def __init__(self, reserved: Iterable[str] = ()) -> None:
        self._taken: Set[str] = set(reserved)

    def allocate(self, base: str) -> str:
        name = base
        n = 2
        while name in self._taken:
            name = f"{base}{n}"
            n += 1
        self._taken.add(name)
        return name


__all__ = [
    "MODULE_RESERVED",
    "MEMBER_RESERVED",
    "ARG_RESERVED",
    "py_ident",
    "snake",
    "class_ident",
    "member_ident",
    "arg_ident",
    "NameAllocator",
]
