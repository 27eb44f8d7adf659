from __future__ import annotations

"""
Metadata loading & validation

Turns an ink! metadata document (v4 layout) into `RawMetadata`:

- JSON parsing (dict, JSON text or bytes)
- Version gate (only "4")
- Schema validation against the packaged `schemas/metadata.schema.json`
  (Draft 2020-12, toggled by `strict_schema`)
- Structural parsing of the type registry, constructors, messages and events
- `source.hash` / `source.wasm` consistency

The structural checks run even when schema validation is off, so every
malformed input ends in `SchemaError` with a slash-separated `field` path.
No cross-reference validation happens here; dangling type ids are the
resolver's concern.
"""

import json
import logging
from functools import lru_cache
from importlib.resources import files
from typing import Any, Dict, List, Optional, Tuple, Union

from jsonschema import Draft202012Validator
from jsonschema.exceptions import best_match

from ..config import load_config
from ..errors import SchemaError
from ..runtime.hash import blake2_256
from .model import (
    PRIMITIVE_KINDS,
    ArrayDef,
    BytecodeRef,
    CompactDef,
    CompositeDef,
    Field,
    PrimitiveDef,
    RawArg,
    RawEvent,
    RawMetadata,
    RawMethod,
    SequenceDef,
    TupleDef,
    TypeDef,
    TypeEntry,
    TypeId,
    TypeParam,
    VariantArm,
    VariantDef,
)

log = logging.getLogger(__name__)

SUPPORTED_VERSIONS = ("4",)

Document = Union[str, bytes, bytearray, Dict[str, Any]]


# ----------------------------
# Public API
# ----------------------------

def load_metadata(document: Document, *, strict_schema: Optional[bool] = None) -> RawMetadata:
    """
    Parse a metadata document into RawMetadata.

    Args:
        document: parsed dict, JSON text or JSON bytes.
        strict_schema: validate against the packaged JSON schema first.
            Defaults to `load_config().strict_schema`.

    Raises:
        SchemaError: on malformed input or an unsupported version.
    """
    if strict_schema is None:
        strict_schema = load_config().strict_schema

    raw = _load_json(document)
    _check_version(raw)
    if strict_schema:
        validate_document(raw)

    types = _parse_types(_expect_list(raw, "types", "types"))
    spec = _expect_dict(raw, "spec", "spec")
    constructors = tuple(
        _parse_method(item, f"spec/constructors/{i}", constructor=True)
        for i, item in enumerate(_expect_list(spec, "constructors", "spec/constructors"))
    )
    messages = tuple(
        _parse_method(item, f"spec/messages/{i}", constructor=False)
        for i, item in enumerate(_expect_list(spec, "messages", "spec/messages"))
    )
    events = tuple(
        _parse_event(item, f"spec/events/{i}")
        for i, item in enumerate(_expect_list(spec, "events", "spec/events", required=False))
    )

    name, version = _parse_contract(raw)
    source_hash, wasm = _parse_source(raw)

    meta = RawMetadata(
        contract_name=name,
        contract_version=version,
        types=types,
        constructors=constructors,
        messages=messages,
        events=events,
        source_hash=source_hash,
        wasm=wasm,
    )
    log.debug(
        "loaded metadata for %s %s: %d types, %d constructors, %d messages, %d events",
        name,
        version,
        len(types),
        len(constructors),
        len(messages),
        len(events),
    )
    return meta


def bytecode_ref(code: bytes) -> BytecodeRef:
    """Hash and length of the contract code, as checked by generated upload."""
    return BytecodeRef(code_hash=blake2_256(code), length=len(code))


@lru_cache(maxsize=1)
def metadata_schema() -> Dict[str, Any]:
    """The packaged metadata JSON schema (parsed once)."""
    text = (files("inkgen.common") / "schemas" / "metadata.schema.json").read_text(encoding="utf-8")
    return json.loads(text)


def validate_document(raw: Dict[str, Any]) -> None:
    """Validate `raw` against the metadata schema; the most relevant error wins."""
    validator = Draft202012Validator(metadata_schema())
    err = best_match(validator.iter_errors(raw))
    if err is not None:
        where = "/".join(str(p) for p in err.absolute_path)
        raise SchemaError(f"schema validation failed: {err.message}", field=where or None)


# ----------------------------
# Document level
# ----------------------------

def _load_json(obj: Document) -> Dict[str, Any]:
    if isinstance(obj, dict):
        return obj
    if isinstance(obj, (bytes, bytearray)):
        try:
            obj = bytes(obj).decode("utf-8")
        except UnicodeDecodeError as e:
            raise SchemaError(f"metadata is not UTF-8: {e}") from e
    if isinstance(obj, str):
        try:
            val = json.loads(obj)
        except json.JSONDecodeError as e:
            raise SchemaError(f"metadata JSON parse error: {e}") from e
        if not isinstance(val, dict):
            raise SchemaError("metadata top-level must be an object")
        return val
    raise SchemaError(f"unsupported metadata input type: {type(obj).__name__}")


def _check_version(raw: Dict[str, Any]) -> None:
    version = raw.get("version")
    if isinstance(version, int) and not isinstance(version, bool):
        version = str(version)
    if version not in SUPPORTED_VERSIONS:
        raise SchemaError(
            f"unsupported metadata version {raw.get('version')!r}; supported: {', '.join(SUPPORTED_VERSIONS)}",
            field="version",
        )


def _parse_contract(raw: Dict[str, Any]) -> Tuple[str, str]:
    contract = _expect_dict(raw, "contract", "contract")
    name = _expect_str(contract, "name", "contract/name")
    version = _expect_str(contract, "version", "contract/version", required=False) or ""
    return name, version


def _parse_source(raw: Dict[str, Any]) -> Tuple[Optional[bytes], Optional[bytes]]:
    source = raw.get("source")
    if source is None:
        return None, None
    if not isinstance(source, dict):
        raise SchemaError("expected object", field="source")
    code_hash = _hex(source.get("hash"), "source/hash", length=32) if source.get("hash") is not None else None
    wasm = _hex(source.get("wasm"), "source/wasm") if source.get("wasm") is not None else None
    if code_hash is not None and wasm is not None and blake2_256(wasm) != code_hash:
        raise SchemaError(
            f"source.hash 0x{code_hash.hex()} does not match the hash of source.wasm 0x{blake2_256(wasm).hex()}",
            field="source/hash",
        )
    return code_hash, wasm


# ----------------------------
# Type registry
# ----------------------------

def _parse_types(items: List[Any]) -> Dict[TypeId, TypeEntry]:
    out: Dict[TypeId, TypeEntry] = {}
    for i, item in enumerate(items):
        path = f"types/{i}"
        if not isinstance(item, dict):
            raise SchemaError("expected object", field=path)
        type_id = _expect_int(item, "id", f"{path}/id")
        if type_id in out:
            raise SchemaError(f"duplicate type id {type_id}", field=f"{path}/id")
        ty = _expect_dict(item, "type", f"{path}/type")
        definition = _parse_def(ty.get("def"), f"{path}/type/def")
        params = tuple(
            _parse_param(p, f"{path}/type/params/{j}")
            for j, p in enumerate(_expect_list(ty, "params", f"{path}/type/params", required=False))
        )
        out[type_id] = TypeEntry(
            id=type_id,
            definition=definition,
            path=tuple(_str_list(ty.get("path"), f"{path}/type/path")),
            params=params,
            docs=tuple(_str_list(ty.get("docs"), f"{path}/type/docs")),
        )
    return out


def _parse_def(d: Any, path: str) -> TypeDef:
    if not isinstance(d, dict) or len(d) != 1:
        raise SchemaError("type definition must be an object with exactly one kind", field=path)
    ((kind, body),) = d.items()
    where = f"{path}/{kind}"

    if kind == "primitive":
        if body not in PRIMITIVE_KINDS:
            raise SchemaError(f"unknown primitive {body!r}", field=where)
        return PrimitiveDef(body)
    if kind == "composite":
        body = _as_dict(body, where)
        return CompositeDef(_parse_fields(body.get("fields"), f"{where}/fields"))
    if kind == "variant":
        body = _as_dict(body, where)
        arms = []
        for j, v in enumerate(_as_list(body.get("variants"), f"{where}/variants")):
            vpath = f"{where}/variants/{j}"
            v = _as_dict(v, vpath)
            arms.append(
                VariantArm(
                    name=_expect_str(v, "name", f"{vpath}/name"),
                    index=_expect_int(v, "index", f"{vpath}/index"),
                    fields=_parse_fields(v.get("fields"), f"{vpath}/fields"),
                    docs=tuple(_str_list(v.get("docs"), f"{vpath}/docs")),
                )
            )
        return VariantDef(tuple(arms))
    if kind == "sequence":
        body = _as_dict(body, where)
        return SequenceDef(_expect_int(body, "type", f"{where}/type"))
    if kind == "array":
        body = _as_dict(body, where)
        return ArrayDef(_expect_int(body, "type", f"{where}/type"), _expect_int(body, "len", f"{where}/len"))
    if kind == "tuple":
        ids = _as_list(body, where)
        for j, tid in enumerate(ids):
            if isinstance(tid, bool) or not isinstance(tid, int) or tid < 0:
                raise SchemaError("expected type id", field=f"{where}/{j}")
        return TupleDef(tuple(ids))
    if kind == "compact":
        body = _as_dict(body, where)
        return CompactDef(_expect_int(body, "type", f"{where}/type"))
    if kind == "bitSequence":
        raise SchemaError("bit sequences are not supported", field=where)
    raise SchemaError(f"unknown type definition kind {kind!r}", field=path)


def _parse_fields(items: Any, path: str) -> Tuple[Field, ...]:
    out = []
    for j, f in enumerate(_as_list(items, path)):
        fpath = f"{path}/{j}"
        f = _as_dict(f, fpath)
        out.append(
            Field(
                type_id=_expect_int(f, "type", f"{fpath}/type"),
                name=_expect_str(f, "name", f"{fpath}/name", required=False),
                type_name=_expect_str(f, "typeName", f"{fpath}/typeName", required=False),
                docs=tuple(_str_list(f.get("docs"), f"{fpath}/docs")),
            )
        )
    return tuple(out)


def _parse_param(p: Any, path: str) -> TypeParam:
    p = _as_dict(p, path)
    tid = p.get("type")
    if tid is not None and (isinstance(tid, bool) or not isinstance(tid, int)):
        raise SchemaError("expected type id or null", field=f"{path}/type")
    return TypeParam(name=_expect_str(p, "name", f"{path}/name"), type_id=tid)


# ----------------------------
# Constructors, messages, events
# ----------------------------

def _parse_type_ref(ref: Any, path: str) -> TypeId:
    ref = _as_dict(ref, path)
    return _expect_int(ref, "type", f"{path}/type")


def _parse_args(items: Any, path: str, *, events: bool = False) -> Tuple[RawArg, ...]:
    out = []
    for j, a in enumerate(_as_list(items, path)):
        apath = f"{path}/{j}"
        a = _as_dict(a, apath)
        indexed = _expect_bool(a, "indexed", f"{apath}/indexed", default=False) if events else False
        out.append(
            RawArg(
                label=_expect_str(a, "label", f"{apath}/label"),
                type_id=_parse_type_ref(a.get("type"), f"{apath}/type"),
                indexed=indexed,
                docs=tuple(_str_list(a.get("docs"), f"{apath}/docs")),
            )
        )
    return tuple(out)


def _parse_method(item: Any, path: str, *, constructor: bool) -> RawMethod:
    item = _as_dict(item, path)
    ret = item.get("returnType")
    selector = item.get("selector")
    if constructor:
        mutates = True
    else:
        mutates = _expect_bool(item, "mutates", f"{path}/mutates")
    return RawMethod(
        label=_expect_str(item, "label", f"{path}/label"),
        args=_parse_args(item.get("args"), f"{path}/args"),
        return_type=_parse_type_ref(ret, f"{path}/returnType") if ret is not None else None,
        mutates=mutates,
        payable=_expect_bool(item, "payable", f"{path}/payable", default=False),
        selector=_hex(selector, f"{path}/selector", length=4) if selector is not None else None,
        selector_name=_expect_str(item, "selectorName", f"{path}/selectorName", required=False),
        docs=tuple(_str_list(item.get("docs"), f"{path}/docs")),
    )


def _parse_event(item: Any, path: str) -> RawEvent:
    item = _as_dict(item, path)
    return RawEvent(
        label=_expect_str(item, "label", f"{path}/label"),
        args=_parse_args(item.get("args"), f"{path}/args", events=True),
        docs=tuple(_str_list(item.get("docs"), f"{path}/docs")),
    )


# ----------------------------
# Small coercion helpers
# ----------------------------

def _as_dict(v: Any, path: str) -> Dict[str, Any]:
    if not isinstance(v, dict):
        raise SchemaError("expected object", field=path)
    return v


def _as_list(v: Any, path: str) -> List[Any]:
    if v is None:
        return []
    if not isinstance(v, list):
        raise SchemaError("expected array", field=path)
    return v


def _expect_dict(obj: Dict[str, Any], key: str, path: str) -> Dict[str, Any]:
    if key not in obj:
        raise SchemaError("missing required object", field=path)
    return _as_dict(obj[key], path)


def _expect_list(obj: Dict[str, Any], key: str, path: str, *, required: bool = True) -> List[Any]:
    if key not in obj:
        if required:
            raise SchemaError("missing required array", field=path)
        return []
    return _as_list(obj[key], path)


def _expect_str(obj: Dict[str, Any], key: str, path: str, *, required: bool = True) -> Optional[str]:
    v = obj.get(key)
    if v is None:
        if required:
            raise SchemaError("missing required string", field=path)
        return None
    if not isinstance(v, str) or (required and not v):
        raise SchemaError("expected non-empty string" if required else "expected string", field=path)
    return v


def _expect_int(obj: Dict[str, Any], key: str, path: str) -> int:
    v = obj.get(key)
    if isinstance(v, bool) or not isinstance(v, int) or v < 0:
        raise SchemaError("expected non-negative integer", field=path)
    return v


def _expect_bool(obj: Dict[str, Any], key: str, path: str, *, default: Optional[bool] = None) -> bool:
    v = obj.get(key)
    if v is None:
        if default is None:
            raise SchemaError("missing required boolean", field=path)
        return default
    if not isinstance(v, bool):
        raise SchemaError("expected boolean", field=path)
    return v


def _str_list(v: Any, path: str) -> List[str]:
    items = _as_list(v, path)
    for j, s in enumerate(items):
        if not isinstance(s, str):
            raise SchemaError("expected string", field=f"{path}/{j}")
    return items


def _hex(v: Any, path: str, *, length: Optional[int] = None) -> bytes:
    if not isinstance(v, str) or not v.startswith(("0x", "0X")):
        raise SchemaError("expected 0x-prefixed hex string", field=path)
    try:
        out = bytes.fromhex(v[2:])
    except ValueError as e:
        raise SchemaError(f"malformed hex {v!r}", field=path) from e
    if length is not None and len(out) != length:
        raise SchemaError(f"expected {length} bytes, got {len(out)}", field=path)
    return out


__all__ = ["load_metadata", "bytecode_ref", "metadata_schema", "validate_document", "SUPPORTED_VERSIONS"]
