"""
Python emitter: CompilationUnit -> source text of one client module.

Layout of the emitted module:

  1. header, imports, CODE_HASH / CODE_LEN, SELECTORS
  2. declarations (frozen dataclasses; variants as base class + arms)
  3. codec wiring (``X.CODEC = scale.Struct(...)`` / ``scale.Enum(...)``)
  4. ``Event`` union with ``decode_event``
  5. one class per interface
  6. the contract handle
  7. ``upload`` when the bytecode is known

Output is deterministic: no timestamps, and iteration only over tuples
coming from the compilation unit.
"""

from __future__ import annotations

import json
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from ..common.model import (
    CompilationUnit,
    CompositeDef,
    EventDescriptor,
    Field,
    Grouped,
    MethodDescriptor,
    TypeId,
    VariantDef,
)
from ..config import DEFAULT_HANDLE_NAME, DEFAULT_RUNTIME_MODULE
from ..version import __version__
from .naming import (
    MEMBER_RESERVED,
    MODULE_RESERVED,
    NameAllocator,
    arg_ident,
    class_ident,
    member_ident,
    py_ident,
    snake,
)
from .typemap import TypeMapper

log = logging.getLogger(__name__)

HEADER = "# This file was generated by inkgen. Do not edit by hand."

_HANDLE_RESERVED = ("account_id", "from_address", "EVENT_TYPE")


def emit_python(
    unit: CompilationUnit,
    runtime_module: str = DEFAULT_RUNTIME_MODULE,
    handle_name: str = DEFAULT_HANDLE_NAME,
) -> str:
    """Render `unit` as the source of a Python client module."""
    src = _Emitter(unit, runtime_module, handle_name).render()
    log.debug("emitted %d lines for %s", src.count("\n"), unit.contract_name)
    return src


def _docstring(docs: Sequence[str], indent: str) -> List[str]:
    text = "\n".join(d.strip() for d in docs).strip()
    if not text:
        return []
    text = text.replace("\\", "\\\\").replace('"""', '\\"\\"\\"')
    if text.endswith('"'):
        text += " "
    body = text.splitlines()
    if len(body) == 1:
        return [f'{indent}"""{body[0]}"""']
    out = [f'{indent}"""{body[0]}']
    out.extend(f"{indent}{line}" if line else "" for line in body[1:])
    out.append(f'{indent}"""')
    return out


class _Emitter:
    def __init__(self, unit: CompilationUnit, runtime_module: str, handle_name: str) -> None:
        self.unit = unit
        self.runtime_module = runtime_module
        self.handle = handle_name
        self.lines: List[str] = []

        registry = unit.registry
        probe = TypeMapper(registry, {})
        self.declared: Tuple[TypeId, ...] = tuple(
            tid for tid in registry.declaration_order if probe.well_known(tid) is None
        )

        module_names = NameAllocator(MODULE_RESERVED | {handle_name})
        self.type_names: Dict[TypeId, str] = {}
        for tid in sorted(self.declared):
            entry = registry[tid]
            base = class_ident(entry.path[-1]) if entry.path else f"Type{tid}"
            self.type_names[tid] = module_names.allocate(base)

        self.arm_names: Dict[TypeId, List[Tuple[str, str]]] = {}
        for tid in sorted(self.declared):
            d = registry[tid].definition
            if isinstance(d, VariantDef):
                attrs = NameAllocator(MEMBER_RESERVED)
                self.arm_names[tid] = [
                    (module_names.allocate(f"{self.type_names[tid]}_{class_ident(arm.name)}"), attrs.allocate(member_ident(arm.name)))
                    for arm in d.variants
                ]

        event_attrs = NameAllocator(MEMBER_RESERVED)
        self.event_names: List[Tuple[str, str]] = [
            (module_names.allocate(f"Event_{class_ident(ev.name)}"), event_attrs.allocate(member_ident(ev.name)))
            for ev in unit.events
        ]

        self.interface_classes: Dict[str, str] = {
            iface: module_names.allocate(class_ident(iface)) for iface in unit.interfaces
        }
        self.globals = frozenset(MODULE_RESERVED) | set(self.type_names.values()) | {handle_name}
        self.types = TypeMapper(registry, self.type_names)

    # -- helpers ------------------------------------------------------------

    def w(self, line: str = "") -> None:
        self.lines.append(line)

    def blank(self, n: int = 2) -> None:
        for _ in range(n):
            self.w()

    def fields(self, fields: Sequence[Field]) -> List[Tuple[str, Field]]:
        names = NameAllocator(MEMBER_RESERVED)
        return [
            (names.allocate(member_ident(f.name) if f.name else f"f{i}"), f)
            for i, f in enumerate(fields)
        ]

    def field_list(self, fields: Sequence[Field]) -> str:
        items = [f'("{name}", {self.types.codec(f.type_id, lazy=True)})' for name, f in self.fields(fields)]
        return "[" + ", ".join(items) + "]"

    # -- sections -----------------------------------------------------------

    def render(self) -> str:
        self.header()
        self.declarations()
        self.wiring()
        self.events()
        self.interfaces()
        self.handle_class()
        if self.unit.bytecode is not None:
            self.upload()
        while self.lines and not self.lines[-1]:
            self.lines.pop()
        return "\n".join(self.lines) + "\n"

    def header(self) -> None:
        unit = self.unit
        version = f" {unit.contract_version}" if unit.contract_version else ""
        self.w(HEADER)
        self.lines.extend(_docstring([f"Client for the {unit.contract_name}{version} contract (inkgen {__version__})."], ""))
        self.w()
        self.w("from __future__ import annotations")
        self.w()
        self.w("from dataclasses import dataclass")
        self.w("from typing import Any, List, Optional, Tuple, Union")
        self.w()
        imports = [
            "NO_VALUE",
            "AccountId",
            "Connection",
            "Err",
            "EventEnum",
            "Hash",
            "NoValue",
            "Ok",
            "ScaleType",
            "SignedConnection",
            "Variant",
            "scale",
        ]
        if unit.bytecode is not None:
            imports.append("upload_code")
        self.w(f"from {self.runtime_module} import (")
        for name in imports:
            self.w(f"    {name},")
        self.w(")")
        self.w()
        if unit.code_hash is not None:
            self.w(f'CODE_HASH = Hash("0x{unit.code_hash.hex()}")')
        if unit.bytecode is not None:
            self.w(f"CODE_LEN = {unit.bytecode.length}")
        self.w("SELECTORS = {")
        for m in unit.constructors + unit.messages:
            self.w(f'    {json.dumps(m.label)}: bytes.fromhex("{m.selector.hex()}"),')
        self.w("}")
        self.blank()

    def declarations(self) -> None:
        registry = self.unit.registry
        for tid in self.declared:
            entry = registry[tid]
            name = self.type_names[tid]
            d = entry.definition
            if isinstance(d, CompositeDef):
                self.dataclass(name, "ScaleType", entry.docs, d.fields)
            else:
                assert isinstance(d, VariantDef)
                self.w(f"class {name}(Variant):")
                doc = _docstring(entry.docs, "    ")
                self.lines.extend(doc or ["    pass"])
                self.blank()
                for arm, (cls_name, _) in zip(d.variants, self.arm_names[tid]):
                    self.dataclass(cls_name, name, arm.docs, arm.fields, index=arm.index)
                for arm, (cls_name, attr) in zip(d.variants, self.arm_names[tid]):
                    self.w(f"{name}.{attr} = {cls_name}")
                self.blank()

    def dataclass(
        self,
        name: str,
        base: str,
        docs: Sequence[str],
        fields: Sequence[Field],
        index: Optional[int] = None,
        indexed: Sequence[str] = (),
    ) -> None:
        self.w("@dataclass(frozen=True)")
        self.w(f"class {name}({base}):")
        body = _docstring(docs, "    ")
        if body:
            body.append("")
        if index is not None:
            body.append(f"    INDEX = {index}")
        if indexed:
            body.append(f"    INDEXED = ({''.join(repr(n) + ', ' for n in indexed).rstrip()})")
        if index is not None and fields:
            body.append("")
        for fname, f in self.fields(fields):
            body.append(f"    {fname}: {self.types.annotation(f.type_id)}")
        while body and not body[-1]:
            body.pop()
        self.lines.extend(body or ["    pass"])
        self.blank()

    def wiring(self) -> None:
        registry = self.unit.registry
        for tid in self.declared:
            name = self.type_names[tid]
            d = registry[tid].definition
            if isinstance(d, CompositeDef):
                self.w(f"{name}.CODEC = scale.Struct({name}, {self.field_list(d.fields)})")
            else:
                self.w(f"{name}.CODEC = scale.Enum(")
                self.w(f"    {name},")
                self.w("    [")
                for arm, (cls_name, _) in zip(d.variants, self.arm_names[tid]):
                    self.w(f"        ({arm.index}, {cls_name}, {self.field_list(arm.fields)}),")
                self.w("    ],")
                self.w(")")
        if self.declared:
            self.blank()

    def event_fields(self, ev: EventDescriptor) -> List[Field]:
        return [Field(type_id=tid, name=name) for name, tid, _ in ev.fields]

    def events(self) -> None:
        self.w("class Event(EventEnum):")
        self.w('    """Events emitted by the contract, keyed by discriminant."""')
        self.blank()
        for ev, (cls_name, _) in zip(self.unit.events, self.event_names):
            fields = self.event_fields(ev)
            names = [fname for fname, _ in self.fields(fields)]
            indexed = [n for n, (_, _, ix) in zip(names, ev.fields) if ix]
            self.dataclass(cls_name, "Event", ev.docs, fields, index=ev.discriminant, indexed=indexed)
        for cls_name, attr in self.event_names:
            self.w(f"Event.{attr} = {cls_name}")
        self.w("Event.CODEC = scale.Enum(")
        self.w("    Event,")
        self.w("    [")
        for ev, (cls_name, _) in zip(self.unit.events, self.event_names):
            self.w(f"        ({ev.discriminant}, {cls_name}, {self.field_list(self.event_fields(ev))}),")
        self.w("    ],")
        self.w(")")
        self.blank()

    # -- calls ----------------------------------------------------------------

    def signature(self, m: MethodDescriptor) -> Tuple[List[str], List[Tuple[str, TypeId]]]:
        """Positional parameters (name: annotation) and the encoded argument list."""
        names = NameAllocator(self.globals)
        params: List[str] = []
        encoded: List[Tuple[str, TypeId]] = []
        for label, tid in m.args:
            name = names.allocate(arg_ident(label))
            params.append(f"{name}: {self.types.annotation(tid)}")
            encoded.append((name, tid))
        return params, encoded

    def payload(self, m: MethodDescriptor, encoded: List[Tuple[str, TypeId]]) -> str:
        sel = f"SELECTORS[{json.dumps(m.label)}]"
        if not encoded:
            return sel
        pairs = ", ".join(f"({self.types.codec(tid)}, {name})" for name, tid in encoded)
        return f"{sel} + scale.encode_args({pairs})"

    def message(self, m: MethodDescriptor, attr: str) -> None:
        params, encoded = self.signature(m)
        conn_type = "SignedConnection" if m.mutates else "Connection"
        sig = ["self", f"conn: {conn_type}"] + params
        if m.payable:
            sig += ["*", "value: int = 0"]
        if m.mutates:
            ret = "Any"
        elif m.return_type is None:
            ret = "NoValue"
        else:
            ret = self.types.annotation(m.return_type)

        self.w(f"    async def {attr}({', '.join(sig)}) -> {ret}:")
        doc = _docstring(m.docs, "        ")
        self.lines.extend(doc)
        self.w(f"        _data = {self.payload(m, encoded)}")
        if m.mutates:
            value = ", value=value" if m.payable else ""
            self.w(f"        return await conn.exec(self.account_id, _data{value})")
        elif m.return_type is None:
            self.w("        await conn.read(self.account_id, _data)")
            self.w("        return NO_VALUE")
        else:
            self.w("        _raw = await conn.read(self.account_id, _data)")
            self.w(f"        return {self.types.codec(m.return_type)}.decode(_raw)")
        self.w()

    def constructor(self, m: MethodDescriptor, attr: str) -> None:
        params, encoded = self.signature(m)
        sig = ["cls", "conn: SignedConnection", "salt: bytes"] + params + ["*"]
        if self.unit.code_hash is not None:
            sig.append("code_hash: Hash = CODE_HASH")
        else:
            sig.append("code_hash: Hash")
        if m.payable:
            sig.append("value: int = 0")

        self.w("    @classmethod")
        self.w(f"    async def {attr}({', '.join(sig)}) -> {self.handle}:")
        self.lines.extend(_docstring(m.docs, "        "))
        self.w(f"        _data = {self.payload(m, encoded)}")
        value = ", value=value" if m.payable else ""
        self.w(f"        _account_id = await conn.instantiate(code_hash, salt, _data{value})")
        self.w("        return cls.from_address(_account_id)")
        self.w()

    def interfaces(self) -> None:
        for iface, cls_name in self.interface_classes.items():
            members = NameAllocator(("account_id",))
            self.w("@dataclass(frozen=True)")
            self.w(f"class {cls_name}:")
            self.w(f'    """Messages of the {iface} interface."""')
            self.w()
            self.w("    account_id: AccountId")
            self.w()
            for m in self.unit.messages:
                name = m.method_name
                if isinstance(name, Grouped) and name.interface == iface:
                    self.message(m, members.allocate(py_ident(name.name)))
            self.lines.pop()
            self.blank()

    def handle_class(self) -> None:
        unit = self.unit
        members = NameAllocator(_HANDLE_RESERVED)
        version = f" {unit.contract_version}" if unit.contract_version else ""
        self.w("@dataclass(frozen=True)")
        self.w(f"class {self.handle}:")
        self.lines.extend(_docstring([f"Handle to a deployed {unit.contract_name}{version} contract."], "    "))
        self.w()
        self.w("    account_id: AccountId")
        self.w()
        self.w("    EVENT_TYPE = Event")
        self.w()
        self.w("    @classmethod")
        self.w(f"    def from_address(cls, address: Union[bytes, str]) -> {self.handle}:")
        self.w("        return cls(AccountId(address))")
        self.w()
        for m in unit.constructors:
            self.constructor(m, members.allocate(py_ident(m.method_name.name)))
        for m in unit.messages:
            if not isinstance(m.method_name, Grouped):
                self.message(m, members.allocate(py_ident(m.method_name.name)))
        for iface, cls_name in self.interface_classes.items():
            self.w("    @property")
            self.w(f"    def {members.allocate(snake(iface))}(self) -> {cls_name}:")
            self.w(f"        return {cls_name}(self.account_id)")
            self.w()
        self.lines.pop()
        self.blank()

    def upload(self) -> None:
        self.w("async def upload(conn: SignedConnection, wasm: bytes) -> Any:")
        self.w('    """Upload the contract code; an already-stored code hash counts as success."""')
        self.w("    return await upload_code(conn, wasm, CODE_HASH, CODE_LEN)")


__all__ = ["emit_python", "HEADER"]
