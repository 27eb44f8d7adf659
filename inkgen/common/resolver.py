from __future__ import annotations

"""
Type registry resolution

Walks the type-id graph once, starting from every signature (constructors,
then messages, then events, in document order) and produces:

- the closed set of reachable entries, and
- `declaration_order`: composite and variant ids in DFS post-order, so a
  declaration always comes after the declarations it depends on (cycles
  through sequences/arrays excepted; the emitter wires those lazily).

The walk is iterative with an explicit stack; deep graphs never hit the
interpreter's recursion limit. Each id is expanded once.

A cycle is only representable when it passes through a sequence or array
(the indirection gives the value a finite encoding). Any cycle made solely of
other definitions raises `UnsupportedRecursiveType`.
"""

import logging
from typing import Dict, Iterator, List, Set, Tuple

from ..errors import SchemaError, UnresolvedTypeReference, UnsupportedRecursiveType
from .model import (
    UNSIGNED_KINDS,
    ArrayDef,
    CompactDef,
    CompositeDef,
    PrimitiveDef,
    RawMetadata,
    ResolvedRegistry,
    SequenceDef,
    TypeEntry,
    TypeId,
    VariantDef,
    referenced_ids,
)

log = logging.getLogger(__name__)

_INDIRECT = (SequenceDef, ArrayDef)


def signature_roots(raw: RawMetadata) -> Iterator[Tuple[TypeId, str]]:
    """(type_id, referrer) for every type named by a signature, in document order."""
    for kind, methods in (("constructor", raw.constructors), ("message", raw.messages)):
        for m in methods:
            for a in m.args:
                yield a.type_id, f"{kind} {m.label} arg {a.label}"
            if m.return_type is not None:
                yield m.return_type, f"{kind} {m.label} return type"
    for ev in raw.events:
        for a in ev.args:
            yield a.type_id, f"event {ev.label} field {a.label}"


def resolve_registry(raw: RawMetadata) -> ResolvedRegistry:
    """
    Resolve the reachable part of `raw.types`.

    Raises:
        UnresolvedTypeReference: a signature or definition names a missing id.
        UnsupportedRecursiveType: a cycle without sequence/array indirection.
        SchemaError: a compact over a non-unsigned type, or a variant with
            duplicate discriminants.
    """
    types = raw.types
    done: Set[TypeId] = set()
    visit_order: List[TypeId] = []
    declaration_order: List[TypeId] = []

    for root, referrer in signature_roots(raw):
        if root in done:
            continue
        _enter(types, root, referrer)
        # Frames are [type_id, children, next child position].
        stack: List[list] = [[root, referenced_ids(types[root].definition), 0]]
        on_path: Set[TypeId] = {root}
        visit_order.append(root)
        while stack:
            frame = stack[-1]
            tid, children, pos = frame
            if pos == len(children):
                stack.pop()
                on_path.discard(tid)
                done.add(tid)
                if isinstance(types[tid].definition, (CompositeDef, VariantDef)):
                    declaration_order.append(tid)
                continue
            frame[2] = pos + 1
            child = children[pos]
            if child in done or child in on_path:
                continue
            _enter(types, child, f"type {tid}")
            visit_order.append(child)
            on_path.add(child)
            stack.append([child, referenced_ids(types[child].definition), 0])

    _check_direct_cycles(types, visit_order)

    entries: Dict[TypeId, TypeEntry] = {tid: types[tid] for tid in visit_order}
    log.debug(
        "resolved %d of %d types (%d declarations)",
        len(entries),
        len(types),
        len(declaration_order),
    )
    return ResolvedRegistry(entries=entries, declaration_order=tuple(declaration_order))


def _enter(types, tid: TypeId, referrer: str) -> None:
    entry = types.get(tid)
    if entry is None:
        raise UnresolvedTypeReference(type_id=tid, referrer=referrer)
    d = entry.definition
    if isinstance(d, CompactDef):
        inner = types.get(d.type_id)
        if inner is None:
            raise UnresolvedTypeReference(type_id=d.type_id, referrer=f"type {tid}")
        if not (isinstance(inner.definition, PrimitiveDef) and inner.definition.kind in UNSIGNED_KINDS):
            raise SchemaError(
                f"compact type {tid} must wrap an unsigned integer, not type {d.type_id}",
                field=f"types[id={tid}]",
            )
    elif isinstance(d, VariantDef):
        seen: Dict[int, str] = {}
        for arm in d.variants:
            if not 0 <= arm.index <= 0xFF:
                raise SchemaError(
                    f"variant type {tid}: {arm.name!r} has index {arm.index}, outside 0..255",
                    field=f"types[id={tid}]",
                )
            if arm.index in seen:
                raise SchemaError(
                    f"variant type {tid}: {arm.name!r} reuses index {arm.index} of {seen[arm.index]!r}",
                    field=f"types[id={tid}]",
                )
            seen[arm.index] = arm.name


def _check_direct_cycles(types, ids: List[TypeId]) -> None:
    """Cycle search over the graph with sequence/array nodes removed."""
    direct = [tid for tid in ids if not isinstance(types[tid].definition, _INDIRECT)]
    direct_set = set(direct)
    finished: Set[TypeId] = set()

    for start in direct:
        if start in finished:
            continue
        stack: List[list] = [[start, referenced_ids(types[start].definition), 0]]
        path: List[TypeId] = [start]
        while stack:
            frame = stack[-1]
            tid, children, pos = frame
            if pos == len(children):
                stack.pop()
                path.pop()
                finished.add(tid)
                continue
            frame[2] = pos + 1
            child = children[pos]
            if child not in direct_set or child in finished:
                continue
            if child in path:
                cycle = tuple(path[path.index(child):]) + (child,)
                raise UnsupportedRecursiveType(type_id=child, cycle=cycle)
            path.append(child)
            stack.append([child, referenced_ids(types[child].definition), 0])


__all__ = ["resolve_registry", "signature_roots"]
