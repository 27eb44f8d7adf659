"""
Shared fixtures for the inkgen test-suite.

Metadata documents are built by small helpers so every test gets a fresh,
independently mutable dict. Two documents cover most tests:

- ``token_metadata``: a PSP22-style token (interfaces, Result/Option,
  AccountId, events, explicit constructor selector)
- ``shapes_metadata``: one message taking a composite that holds every
  supported type shape, including recursion through a sequence
"""

from __future__ import annotations

import sys
import types
from typing import Any, Dict, List, Optional

import pytest

from inkgen.config import InkgenConfig, load_config
from inkgen.errors import CodeAlreadyStored
from inkgen.runtime.connection import ContractEvents, events_from_raw
from inkgen.runtime.hash import blake2_256
from inkgen.runtime.types import AccountId

WASM = b"\x00asm\x01\x00\x00\x00" + b"\x01\x02\x03\x04" * 8

CONTRACT = AccountId(b"\x11" * 32)
ALICE = AccountId(b"\xaa" * 32)
BOB = AccountId(b"\xbb" * 32)


# ---------------------------------------------------------------------------
# Document builders
# ---------------------------------------------------------------------------

def ty(tid: int, definition: Dict[str, Any], path=(), params=(), docs=()) -> Dict[str, Any]:
    return {
        "id": tid,
        "type": {"def": definition, "path": list(path), "params": list(params), "docs": list(docs)},
    }


def prim(tid: int, kind: str) -> Dict[str, Any]:
    return ty(tid, {"primitive": kind})


def field(type_id: int, name: Optional[str] = None, **extra) -> Dict[str, Any]:
    out: Dict[str, Any] = {"type": type_id, **extra}
    if name is not None:
        out["name"] = name
    return out


def arm(name: str, index: int, *fields: Dict[str, Any]) -> Dict[str, Any]:
    return {"name": name, "index": index, "fields": list(fields)}


def arg(label: str, type_id: int, **extra) -> Dict[str, Any]:
    return {"label": label, "type": {"type": type_id, "displayName": []}, **extra}


def message(label: str, args=(), ret: Optional[int] = None, mutates=False, payable=False, **extra) -> Dict[str, Any]:
    return {
        "label": label,
        "args": list(args),
        "returnType": {"type": ret, "displayName": []} if ret is not None else None,
        "mutates": mutates,
        "payable": payable,
        "docs": [],
        **extra,
    }


def constructor(label: str, args=(), ret: Optional[int] = None, payable=False, **extra) -> Dict[str, Any]:
    out = message(label, args, ret, payable=payable, **extra)
    out.pop("mutates")
    return out


def document(types_: List[Dict[str, Any]], constructors=(), messages=(), events=(), **top) -> Dict[str, Any]:
    doc = {
        "version": "4",
        "contract": {"name": "sample", "version": "0.1.0"},
        "types": types_,
        "spec": {"constructors": list(constructors), "messages": list(messages), "events": list(events)},
    }
    doc.update(top)
    return doc


def token_types() -> List[Dict[str, Any]]:
    return [
        prim(0, "u128"),
        prim(1, "u8"),
        ty(2, {"array": {"len": 32, "type": 1}}),
        ty(3, {"composite": {"fields": [field(2, typeName="[u8; 32]")]}}, path=["ink_primitives", "types", "AccountId"]),
        ty(4, {"sequence": {"type": 1}}),
        ty(5, {"tuple": []}),
        ty(6, {"variant": {"variants": [arm("CouldNotReadInput", 1)]}}, path=["ink_primitives", "LangError"]),
        ty(7, {"variant": {"variants": [arm("Ok", 0, field(5)), arm("Err", 1, field(6))]}}, path=["Result"]),
        ty(
            8,
            {
                "variant": {
                    "variants": [
                        arm("Custom", 0, field(9, typeName="String")),
                        arm("InsufficientBalance", 1),
                        arm("InsufficientAllowance", 2),
                    ]
                }
            },
            path=["psp22", "errors", "PSP22Error"],
            docs=["Errors returned by PSP22 messages."],
        ),
        prim(9, "str"),
        ty(10, {"variant": {"variants": [arm("Ok", 0, field(5)), arm("Err", 1, field(8))]}}, path=["Result"]),
        ty(11, {"variant": {"variants": [arm("Ok", 0, field(10)), arm("Err", 1, field(6))]}}, path=["Result"]),
        ty(12, {"variant": {"variants": [arm("Ok", 0, field(0)), arm("Err", 1, field(6))]}}, path=["Result"]),
        ty(13, {"variant": {"variants": [arm("None", 0), arm("Some", 1, field(3))]}}, path=["Option"]),
        ty(14, {"variant": {"variants": [arm("Ok", 0, field(13)), arm("Err", 1, field(6))]}}, path=["Result"]),
        prim(15, "bool"),
        ty(16, {"composite": {"fields": [field(2)]}}, path=["ink_primitives", "types", "Hash"]),
        # Never referenced by a signature.
        ty(17, {"composite": {"fields": [field(0, "unused")]}}, path=["token", "Orphan"]),
    ]


def token_document(**top) -> Dict[str, Any]:
    return document(
        token_types(),
        constructors=[
            constructor("new", [arg("total_supply", 0)], ret=7, selector="0x9bae9d5e", docs=["Mint the supply to the caller."]),
            constructor("with_code", [arg("code", 16)], ret=7, payable=True),
        ],
        messages=[
            message("PSP22::total_supply", ret=12),
            message("PSP22::balance_of", [arg("owner", 3)], ret=12),
            message("PSP22::transfer", [arg("to", 3), arg("value", 0), arg("data", 4)], ret=11, mutates=True),
            message("Ownable::owner", ret=14, docs=["Current owner, if any."]),
            message("mint", [arg("amount", 0)], ret=11, mutates=True, payable=True),
            message("ping"),
        ],
        events=[
            {
                "label": "Transfer",
                "args": [arg("from", 13, indexed=True), arg("to", 13, indexed=True), arg("value", 0, indexed=False)],
                "docs": ["Tokens moved."],
            },
            {
                "label": "Approval",
                "args": [arg("owner", 3, indexed=True), arg("spender", 3, indexed=True), arg("amount", 0)],
                "docs": [],
            },
        ],
        **top,
    )


def shapes_types() -> List[Dict[str, Any]]:
    return [
        prim(0, "i32"),
        ty(1, {"composite": {"fields": [field(0, "x"), field(0, "y")]}}, path=["shapes", "Point"]),
        prim(2, "u8"),
        prim(3, "bool"),
        ty(4, {"composite": {"fields": [field(2), field(3)]}}, path=["shapes", "Pair"]),
        prim(5, "u32"),
        ty(6, {"sequence": {"type": 1}}),
        ty(
            7,
            {
                "variant": {
                    "variants": [
                        arm("Empty", 0),
                        arm("Circle", 1, field(5, "radius")),
                        arm("Poly", 3, field(6, "points")),
                    ]
                }
            },
            path=["shapes", "Shape"],
        ),
        prim(8, "u16"),
        ty(9, {"array": {"len": 3, "type": 8}}),
        prim(10, "u64"),
        prim(11, "str"),
        ty(12, {"tuple": [10, 11]}),
        ty(13, {"compact": {"type": 10}}),
        prim(14, "char"),
        prim(15, "i128"),
        prim(16, "u256"),
        ty(17, {"composite": {"fields": [field(5, "value"), field(18, "children")]}}, path=["shapes", "Tree"]),
        ty(18, {"sequence": {"type": 17}}),
        ty(19, {"array": {"len": 4, "type": 2}}),
        ty(20, {"sequence": {"type": 2}}),
        prim(21, "u128"),
        ty(22, {"compact": {"type": 21}}),
        ty(
            23,
            {
                "composite": {
                    "fields": [
                        field(1, "point"),
                        field(4, "pair"),
                        field(7, "shape"),
                        field(9, "triple"),
                        field(12, "tagged"),
                        field(13, "small"),
                        field(22, "big"),
                        field(14, "letter"),
                        field(15, "signed"),
                        field(16, "wide"),
                        field(17, "tree"),
                        field(19, "magic"),
                        field(20, "blob"),
                        field(3, "decode"),
                    ]
                }
            },
            path=["shapes", "Everything"],
        ),
    ]


def shapes_document() -> Dict[str, Any]:
    return document(
        shapes_types(),
        constructors=[constructor("new")],
        messages=[
            message("store", [arg("everything", 23)], mutates=True),
            message("load", ret=23),
        ],
    )


@pytest.fixture
def token_metadata() -> Dict[str, Any]:
    return token_document(source={"hash": "0x" + blake2_256(WASM).hex()})


@pytest.fixture
def shapes_metadata() -> Dict[str, Any]:
    return shapes_document()


@pytest.fixture
def wasm() -> bytes:
    return WASM


@pytest.fixture
def config() -> InkgenConfig:
    load_config.cache_clear()
    cfg = load_config()
    yield cfg
    load_config.cache_clear()


# ---------------------------------------------------------------------------
# Generated modules
# ---------------------------------------------------------------------------

@pytest.fixture
def load_generated():
    """
    Execute generated source as a real module. Dataclasses resolve string
    annotations through ``sys.modules[cls.__module__]``, so the module is
    registered for the duration of the test.
    """
    created: List[str] = []

    def _load(source: str, name: str = "generated_contract") -> types.ModuleType:
        mod = types.ModuleType(name)
        mod.__file__ = f"<{name}>"
        sys.modules[name] = mod
        created.append(name)
        exec(compile(source, mod.__file__, "exec"), mod.__dict__)
        return mod

    yield _load
    for name in created:
        sys.modules.pop(name, None)


# ---------------------------------------------------------------------------
# Fake transport
# ---------------------------------------------------------------------------

class FakeConnection:
    """In-memory Connection + SignedConnection recording every call."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.responses: List[bytes] = []
        self.stored: set = set()
        self.events: Dict[Any, ContractEvents] = {}
        self.instantiated = CONTRACT
        self.fail_with: Optional[Exception] = None
        self._tx = 0

    def _next_tx(self) -> str:
        self._tx += 1
        return f"tx-{self._tx}"

    async def read(self, account_id, data):
        self.calls.append(("read", account_id, data))
        if self.fail_with is not None:
            raise self.fail_with
        return self.responses.pop(0) if self.responses else b""

    async def get_contract_events(self, tx_info):
        self.calls.append(("events", tx_info))
        return self.events.get(tx_info, ContractEvents(()))

    async def upload(self, wasm, code_hash):
        self.calls.append(("upload", wasm, code_hash))
        if bytes(code_hash) in self.stored:
            raise CodeAlreadyStored(code_hash=bytes(code_hash))
        self.stored.add(bytes(code_hash))
        return self._next_tx()

    async def instantiate(self, code_hash, salt, data, value=0):
        self.calls.append(("instantiate", code_hash, salt, data, value))
        if self.fail_with is not None:
            raise self.fail_with
        return self.instantiated

    async def exec(self, account_id, data, value=0):
        self.calls.append(("exec", account_id, data, value))
        if self.fail_with is not None:
            raise self.fail_with
        return self._next_tx()

    def emit(self, tx_info, *records) -> None:
        """Attach raw (account_id, discriminant || payload) events to a tx."""
        self.events[tx_info] = events_from_raw(records)


@pytest.fixture
def conn() -> FakeConnection:
    return FakeConnection()
