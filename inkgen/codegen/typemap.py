"""
Mapping from resolved type ids to Python source fragments.

For every type id the mapper yields two expressions:

- `annotation(tid)`: the Python type hint (``int``, ``List[Point]``...)
- `codec(tid)`: the runtime codec (``scale.U128``, ``scale.Seq(...)``...)

Well-known shapes are recognized by path *and* shape, and map onto runtime
types instead of being declared:

    Option<T>                       -> Optional[T]        scale.Option
    Result<T, E>                    -> Union[Ok[T], Err[E]]  scale.Result
    ink_primitives::...::AccountId  -> AccountId          scale.ACCOUNT_ID
    ink_primitives::...::Hash       -> Hash               scale.HASH
    Vec<u8> / [u8; n]               -> bytes              scale.BYTES / scale.FixedBytes(n)
"""

from __future__ import annotations

from typing import Callable, List, Mapping, Optional

from ..common.model import (
    ArrayDef,
    CompactDef,
    CompositeDef,
    PrimitiveDef,
    ResolvedRegistry,
    SequenceDef,
    TupleDef,
    TypeId,
    VariantDef,
)
from ..errors import UnsupportedRecursiveType

OPTION = "option"
RESULT = "result"
ACCOUNT_ID = "account_id"
HASH = "hash"

_INK_CRATES = ("ink_primitives", "ink_env", "ink")

_PRIMITIVE_ANNOTATIONS = {"bool": "bool", "char": "str", "str": "str"}
_PRIMITIVE_CODECS = {"bool": "scale.BOOL", "char": "scale.CHAR", "str": "scale.STR"}


class TypeMapper:
    def __init__(self, registry: ResolvedRegistry, names: Mapping[TypeId, str]) -> None:
        self.registry = registry
        self.names = names
        self._active: List[TypeId] = []

    # -- shape recognition --------------------------------------------------

    def well_known(self, tid: TypeId) -> Optional[str]:
        entry = self.registry[tid]
        d = entry.definition
        path = entry.path
        if isinstance(d, VariantDef) and path == ("Option",):
            arms = {(a.name, a.index, len(a.fields)) for a in d.variants}
            if arms == {("None", 0, 0), ("Some", 1, 1)}:
                return OPTION
        if isinstance(d, VariantDef) and path == ("Result",):
            arms = {(a.name, a.index, len(a.fields)) for a in d.variants}
            if arms == {("Ok", 0, 1), ("Err", 1, 1)}:
                return RESULT
        if isinstance(d, CompositeDef) and len(path) >= 2 and path[0] in _INK_CRATES:
            if path[-1] in ("AccountId", "Hash") and self._is_bytes32_newtype(d):
                return ACCOUNT_ID if path[-1] == "AccountId" else HASH
        return None

    def _is_bytes32_newtype(self, d: CompositeDef) -> bool:
        if len(d.fields) != 1:
            return False
        inner = self.registry[d.fields[0].type_id].definition
        return isinstance(inner, ArrayDef) and inner.length == 32 and self._is_u8(inner.type_id)

    def _is_u8(self, tid: TypeId) -> bool:
        d = self.registry[tid].definition
        return isinstance(d, PrimitiveDef) and d.kind == "u8"

    def _arm(self, tid: TypeId, name: str) -> TypeId:
        d = self.registry[tid].definition
        assert isinstance(d, VariantDef)
        return next(a for a in d.variants if a.name == name).fields[0].type_id

    # -- expressions ----------------------------------------------------------

    def annotation(self, tid: TypeId) -> str:
        return self._guarded(tid, self._annotation)

    def codec(self, tid: TypeId, *, lazy: bool = False) -> str:
        """
        Codec expression for `tid`. With `lazy`, declared types are referenced
        through ``scale.Ref`` so the expression can be evaluated before the
        referenced declaration is wired.
        """
        return self._guarded(tid, lambda t: self._codec(t, lazy))

    def _guarded(self, tid: TypeId, fn: Callable[[TypeId], str]) -> str:
        # Anonymous types only nest finitely; a loop without a declared type
        # in it cannot be spelled out.
        if tid in self._active:
            cycle = tuple(self._active[self._active.index(tid):]) + (tid,)
            raise UnsupportedRecursiveType(type_id=tid, cycle=cycle)
        self._active.append(tid)
        try:
            return fn(tid)
        finally:
            self._active.pop()

    def _annotation(self, tid: TypeId) -> str:
        if tid in self.names:
            return self.names[tid]
        kind = self.well_known(tid)
        if kind == OPTION:
            return f"Optional[{self.annotation(self._arm(tid, 'Some'))}]"
        if kind == RESULT:
            ok = self.annotation(self._arm(tid, "Ok"))
            err = self.annotation(self._arm(tid, "Err"))
            return f"Union[Ok[{ok}], Err[{err}]]"
        if kind == ACCOUNT_ID:
            return "AccountId"
        if kind == HASH:
            return "Hash"

        d = self.registry[tid].definition
        if isinstance(d, PrimitiveDef):
            return _PRIMITIVE_ANNOTATIONS.get(d.kind, "int")
        if isinstance(d, CompactDef):
            return "int"
        if isinstance(d, SequenceDef):
            if self._is_u8(d.type_id):
                return "bytes"
            return f"List[{self.annotation(d.type_id)}]"
        if isinstance(d, ArrayDef):
            if self._is_u8(d.type_id):
                return "bytes"
            return f"Tuple[{self.annotation(d.type_id)}, ...]"
        if isinstance(d, TupleDef):
            if not d.type_ids:
                return "Tuple[()]"
            return f"Tuple[{', '.join(self.annotation(t) for t in d.type_ids)}]"
        raise KeyError(f"type {tid} is neither declared nor well-known")

    def _codec(self, tid: TypeId, lazy: bool) -> str:
        if tid in self.names:
            name = self.names[tid]
            return f"scale.Ref(lambda: {name}.CODEC)" if lazy else f"{name}.CODEC"
        kind = self.well_known(tid)
        if kind == OPTION:
            return f"scale.Option({self.codec(self._arm(tid, 'Some'), lazy=lazy)})"
        if kind == RESULT:
            ok = self.codec(self._arm(tid, "Ok"), lazy=lazy)
            err = self.codec(self._arm(tid, "Err"), lazy=lazy)
            return f"scale.Result({ok}, {err})"
        if kind == ACCOUNT_ID:
            return "scale.ACCOUNT_ID"
        if kind == HASH:
            return "scale.HASH"

        d = self.registry[tid].definition
        if isinstance(d, PrimitiveDef):
            return _PRIMITIVE_CODECS.get(d.kind) or f"scale.{d.kind.upper()}"
        if isinstance(d, CompactDef):
            inner = self.registry[d.type_id].definition
            assert isinstance(inner, PrimitiveDef)
            return f"scale.Compact({inner.bits})"
        if isinstance(d, SequenceDef):
            if self._is_u8(d.type_id):
                return "scale.BYTES"
            return f"scale.Seq({self.codec(d.type_id, lazy=lazy)})"
        if isinstance(d, ArrayDef):
            if self._is_u8(d.type_id):
                return f"scale.FixedBytes({d.length})"
            return f"scale.Array({self.codec(d.type_id, lazy=lazy)}, {d.length})"
        if isinstance(d, TupleDef):
            if not d.type_ids:
                return "scale.UNIT"
            return f"scale.Tuple(({', '.join(self.codec(t, lazy=lazy) for t in d.type_ids)},))"
        raise KeyError(f"type {tid} is neither declared nor well-known")


__all__ = ["TypeMapper", "OPTION", "RESULT", "ACCOUNT_ID", "HASH"]
