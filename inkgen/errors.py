"""
Typed error classes for inkgen.

Compile-time errors derive from `CompileError` and abort a generation run
before any output is produced. Runtime errors are raised by the SCALE codec
and by generated clients; they derive from `CodecError` (also a ValueError)
so callers can catch either the specific failure or the broad category.

Everything derives from `InkgenError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple

__all__ = [
    "InkgenError",
    "CompileError",
    "SchemaError",
    "UnresolvedTypeReference",
    "UnsupportedRecursiveType",
    "SelectorCollision",
    "CodecError",
    "EncodeError",
    "DecodeError",
    "UnknownEventDiscriminant",
    "CodeAlreadyStored",
    "CodeMismatch",
]


class InkgenError(Exception):
    """Base class for all inkgen errors."""


class CompileError(InkgenError):
    """Base class for errors that abort a compilation run."""


@dataclass(slots=True, eq=False)
class SchemaError(CompileError):
    """
    Raised when the metadata document is malformed or uses an unsupported
    schema version. `field` is a slash-separated path into the document,
    e.g. ``spec/messages/3/label``.
    """

    message: str
    field: Optional[str] = None

    def __str__(self) -> str:
        where = f" [{self.field}]" if self.field else ""
        return f"SchemaError{where}: {self.message}"


@dataclass(slots=True, eq=False)
class UnresolvedTypeReference(CompileError):
    """A signature or type definition names a type id absent from the registry."""

    type_id: int
    referrer: str

    def __str__(self) -> str:
        return f"UnresolvedTypeReference: type id {self.type_id} referenced by {self.referrer} is not in the registry"


@dataclass(slots=True, eq=False)
class UnsupportedRecursiveType(CompileError):
    """
    A type reaches itself without passing through a sequence or array, so it
    has no finite value representation. `cycle` lists the ids on the loop,
    starting and ending with `type_id`.
    """

    type_id: int
    cycle: Tuple[int, ...] = ()

    def __str__(self) -> str:
        loop = " -> ".join(str(i) for i in self.cycle) if self.cycle else str(self.type_id)
        return f"UnsupportedRecursiveType: type {self.type_id} is directly recursive ({loop})"


@dataclass(slots=True, eq=False)
class SelectorCollision(CompileError):
    """Two declared constructors/messages share a selector."""

    selector: bytes
    first: str
    second: str

    def __str__(self) -> str:
        return f"SelectorCollision: 0x{self.selector.hex()} is shared by {self.first!r} and {self.second!r}"


class CodecError(InkgenError, ValueError):
    """Base class for SCALE encoding/decoding failures."""


@dataclass(slots=True, eq=False)
class EncodeError(CodecError):
    """Raised when a value cannot be encoded as the requested type."""

    message: str
    value: Any = None

    def __str__(self) -> str:
        return f"EncodeError: {self.message}"


@dataclass(slots=True, eq=False)
class DecodeError(CodecError):
    """Raised when bytes do not decode as the requested type."""

    message: str
    offset: Optional[int] = None

    def __str__(self) -> str:
        at = f" at offset {self.offset}" if self.offset is not None else ""
        return f"DecodeError{at}: {self.message}"


@dataclass(slots=True, eq=False)
class UnknownEventDiscriminant(DecodeError):
    """An event payload carries a discriminant the contract never declared."""

    discriminant: int = -1
    known: Sequence[int] = ()

    def __str__(self) -> str:
        known = ", ".join(str(k) for k in self.known) or "none"
        return f"UnknownEventDiscriminant: {self.discriminant} (declared: {known})"


@dataclass(slots=True, eq=False)
class CodeAlreadyStored(InkgenError):
    """
    Raised by a connection's `upload` when the chain already holds the code.
    Generated upload routines treat this as success and return `tx_info`.
    """

    code_hash: bytes
    tx_info: Any = None

    def __str__(self) -> str:
        return f"CodeAlreadyStored: 0x{self.code_hash.hex()}"


@dataclass(slots=True, eq=False)
class CodeMismatch(InkgenError):
    """The code handed to a generated upload is not the code it was generated for."""

    expected_hash: bytes
    got_hash: bytes
    expected_len: int
    got_len: int

    def __str__(self) -> str:
        return (
            f"CodeMismatch: expected {self.expected_len} bytes hash=0x{self.expected_hash.hex()} "
            f"got {self.got_len} bytes hash=0x{self.got_hash.hex()}"
        )
