from __future__ import annotations

"""
Compile-time IR
===============

Dataclasses modelling one contract's ABI as it flows through the pipeline:

    load_metadata  -> RawMetadata
    resolve_registry -> ResolvedRegistry
    analyze_methods / analyze_events -> MethodDescriptor / EventDescriptor
    compile_metadata -> CompilationUnit  (sole input of the emitter)

Every class is frozen and holds tuples or read-only mappings, so a stage can
never mutate what an earlier stage produced. Type ids are plain `int`s and
only mean something inside one compilation.

`to_dict` helpers produce the JSON summary printed by `inkgen inspect`.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple, Union

TypeId = int

PRIMITIVE_KINDS = (
    "bool",
    "char",
    "str",
    "u8",
    "u16",
    "u32",
    "u64",
    "u128",
    "u256",
    "i8",
    "i16",
    "i32",
    "i64",
    "i128",
    "i256",
)

UNSIGNED_KINDS = ("u8", "u16", "u32", "u64", "u128", "u256")


# -----------------
# Type definitions
# -----------------

@dataclass(frozen=True)
class Field:
    """A composite or variant field; `name` is None for tuple-struct fields."""
    type_id: TypeId
    name: Optional[str] = None
    type_name: Optional[str] = None
    docs: Tuple[str, ...] = ()


@dataclass(frozen=True)
class VariantArm:
    name: str
    index: int
    fields: Tuple[Field, ...] = ()
    docs: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PrimitiveDef:
    kind: str

    @property
    def bits(self) -> Optional[int]:
        """Width of an integer kind (``u128`` -> 128), None otherwise."""
        if self.kind[0] in "ui" and self.kind[1:].isdigit():
            return int(self.kind[1:])
        return None


@dataclass(frozen=True)
class CompositeDef:
    fields: Tuple[Field, ...] = ()


@dataclass(frozen=True)
class VariantDef:
    variants: Tuple[VariantArm, ...] = ()


@dataclass(frozen=True)
class SequenceDef:
    type_id: TypeId


@dataclass(frozen=True)
class ArrayDef:
    type_id: TypeId
    length: int


@dataclass(frozen=True)
class TupleDef:
    type_ids: Tuple[TypeId, ...] = ()


@dataclass(frozen=True)
class CompactDef:
    type_id: TypeId


TypeDef = Union[PrimitiveDef, CompositeDef, VariantDef, SequenceDef, ArrayDef, TupleDef, CompactDef]


def referenced_ids(definition: TypeDef) -> Tuple[TypeId, ...]:
    """Type ids a definition refers to, in declaration order."""
    if isinstance(definition, CompositeDef):
        return tuple(f.type_id for f in definition.fields)
    if isinstance(definition, VariantDef):
        return tuple(f.type_id for arm in definition.variants for f in arm.fields)
    if isinstance(definition, (SequenceDef, ArrayDef, CompactDef)):
        return (definition.type_id,)
    if isinstance(definition, TupleDef):
        return definition.type_ids
    return ()


@dataclass(frozen=True)
class TypeParam:
    name: str
    type_id: Optional[TypeId] = None


@dataclass(frozen=True)
class TypeEntry:
    id: TypeId
    definition: TypeDef
    path: Tuple[str, ...] = ()
    params: Tuple[TypeParam, ...] = ()
    docs: Tuple[str, ...] = ()

    @property
    def display_path(self) -> str:
        return "::".join(self.path)


# -----------------
# Raw document IR
# -----------------

@dataclass(frozen=True)
class RawArg:
    label: str
    type_id: TypeId
    indexed: bool = False
    docs: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RawMethod:
    label: str
    args: Tuple[RawArg, ...] = ()
    return_type: Optional[TypeId] = None
    mutates: bool = True
    payable: bool = False
    selector: Optional[bytes] = None
    selector_name: Optional[str] = None
    docs: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RawEvent:
    label: str
    args: Tuple[RawArg, ...] = ()
    docs: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RawMetadata:
    contract_name: str
    contract_version: str
    types: Mapping[TypeId, TypeEntry]
    constructors: Tuple[RawMethod, ...] = ()
    messages: Tuple[RawMethod, ...] = ()
    events: Tuple[RawEvent, ...] = ()
    source_hash: Optional[bytes] = None
    wasm: Optional[bytes] = None

    def __post_init__(self) -> None:
        if not isinstance(self.types, MappingProxyType):
            object.__setattr__(self, "types", MappingProxyType(dict(self.types)))


# -----------------
# Analyzed surface
# -----------------

@dataclass(frozen=True)
class Grouped:
    """A method declared through an interface, e.g. ``PSP22::transfer``."""
    interface: str
    name: str


@dataclass(frozen=True)
class Ungrouped:
    name: str


MethodName = Union[Grouped, Ungrouped]


@dataclass(frozen=True)
class MethodDescriptor:
    label: str
    method_name: MethodName
    selector: bytes
    args: Tuple[Tuple[str, TypeId], ...] = ()
    return_type: Optional[TypeId] = None
    mutates: bool = True
    payable: bool = False
    docs: Tuple[str, ...] = ()
    is_constructor: bool = False

    @property
    def read_only(self) -> bool:
        return not self.mutates

    def to_dict(self) -> Dict[str, Any]:
        name = self.method_name
        return {
            "label": self.label,
            "interface": name.interface if isinstance(name, Grouped) else None,
            "name": name.name,
            "selector": "0x" + self.selector.hex(),
            "args": [{"name": n, "type": t} for n, t in self.args],
            "returnType": self.return_type,
            "mutates": self.mutates,
            "payable": self.payable,
        }


@dataclass(frozen=True)
class EventDescriptor:
    name: str
    discriminant: int
    fields: Tuple[Tuple[str, TypeId, bool], ...] = ()
    docs: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "discriminant": self.discriminant,
            "fields": [{"name": n, "type": t, "indexed": ix} for n, t, ix in self.fields],
        }


@dataclass(frozen=True)
class BytecodeRef:
    code_hash: bytes
    length: int


@dataclass(frozen=True)
class ResolvedRegistry:
    """Reachable entries only, plus composites/variants in dependency order."""
    entries: Mapping[TypeId, TypeEntry]
    declaration_order: Tuple[TypeId, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.entries, MappingProxyType):
            object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))

    def __getitem__(self, type_id: TypeId) -> TypeEntry:
        return self.entries[type_id]


@dataclass(frozen=True)
class CompilationUnit:
    contract_name: str
    contract_version: str
    registry: ResolvedRegistry
    constructors: Tuple[MethodDescriptor, ...] = ()
    messages: Tuple[MethodDescriptor, ...] = ()
    events: Tuple[EventDescriptor, ...] = ()
    code_hash: Optional[bytes] = None
    bytecode: Optional[BytecodeRef] = field(default=None)

    @property
    def interfaces(self) -> Tuple[str, ...]:
        """Interface names in first-appearance order."""
        seen: Dict[str, None] = {}
        for m in self.messages:
            if isinstance(m.method_name, Grouped):
                seen.setdefault(m.method_name.interface, None)
        return tuple(seen)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contract": {"name": self.contract_name, "version": self.contract_version},
            "codeHash": "0x" + self.code_hash.hex() if self.code_hash is not None else None,
            "codeLen": self.bytecode.length if self.bytecode is not None else None,
            "constructors": [m.to_dict() for m in self.constructors],
            "messages": [m.to_dict() for m in self.messages],
            "interfaces": list(self.interfaces),
            "events": [e.to_dict() for e in self.events],
            "declarations": [
                {"id": tid, "path": self.registry[tid].display_path}
                for tid in self.registry.declaration_order
            ],
        }


__all__ = [
    "TypeId",
    "PRIMITIVE_KINDS",
    "UNSIGNED_KINDS",
    "Field",
    "VariantArm",
    "PrimitiveDef",
    "CompositeDef",
    "VariantDef",
    "SequenceDef",
    "ArrayDef",
    "TupleDef",
    "CompactDef",
    "TypeDef",
    "referenced_ids",
    "TypeParam",
    "TypeEntry",
    "RawArg",
    "RawMethod",
    "RawEvent",
    "RawMetadata",
    "Grouped",
    "Ungrouped",
    "MethodName",
    "MethodDescriptor",
    "EventDescriptor",
    "BytecodeRef",
    "ResolvedRegistry",
    "CompilationUnit",
]
