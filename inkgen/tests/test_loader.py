from __future__ import annotations

import json

import pytest

from inkgen.common.loader import bytecode_ref, load_metadata, metadata_schema
from inkgen.common.model import ArrayDef, CompactDef, CompositeDef, PrimitiveDef, SequenceDef, TupleDef, VariantDef
from inkgen.config import load_config
from inkgen.errors import SchemaError
from inkgen.runtime.hash import blake2_256

from .conftest import WASM, document, message, prim, token_document, ty


def test_loads_token_document(token_metadata):
    raw = load_metadata(token_metadata, strict_schema=True)
    assert raw.contract_name == "sample"
    assert raw.contract_version == "0.1.0"
    assert [m.label for m in raw.constructors] == ["new", "with_code"]
    assert raw.constructors[0].selector == bytes.fromhex("9bae9d5e")
    assert raw.constructors[1].payable and raw.constructors[1].mutates
    assert [m.label for m in raw.messages][:2] == ["PSP22::total_supply", "PSP22::balance_of"]
    assert raw.messages[5].return_type is None
    assert raw.source_hash == blake2_256(WASM)
    assert raw.wasm is None

    transfer = raw.events[0]
    assert [(a.label, a.indexed) for a in transfer.args] == [("from", True), ("to", True), ("value", False)]
    assert raw.events[1].args[2].indexed is False


def test_accepts_text_and_bytes(token_metadata):
    text = json.dumps(token_metadata)
    a = load_metadata(text, strict_schema=True)
    b = load_metadata(text.encode(), strict_schema=True)
    assert a == b


def test_type_definitions_are_parsed(shapes_metadata):
    raw = load_metadata(shapes_metadata, strict_schema=True)
    types = raw.types
    assert types[0].definition == PrimitiveDef("i32")
    assert isinstance(types[1].definition, CompositeDef)
    assert [f.name for f in types[1].definition.fields] == ["x", "y"]
    assert [f.name for f in types[4].definition.fields] == [None, None]
    assert isinstance(types[7].definition, VariantDef)
    assert [a.index for a in types[7].definition.variants] == [0, 1, 3]
    assert types[9].definition == ArrayDef(type_id=8, length=3)
    assert types[12].definition == TupleDef((10, 11))
    assert types[13].definition == CompactDef(10)
    assert types[18].definition == SequenceDef(17)
    assert types[1].path == ("shapes", "Point")
    assert types[1].display_path == "shapes::Point"


@pytest.mark.parametrize("version", ["4", 4])
def test_version_4_is_accepted(token_metadata, version):
    token_metadata["version"] = version
    load_metadata(token_metadata, strict_schema=True)


@pytest.mark.parametrize("version", ["3", 5, "V4", None, True])
def test_other_versions_are_rejected(token_metadata, version):
    token_metadata["version"] = version
    with pytest.raises(SchemaError) as ei:
        load_metadata(token_metadata, strict_schema=False)
    assert ei.value.field == "version"


@pytest.mark.parametrize("doc", ["{not json", "[1, 2]", b"\xff\xfe", 42])
def test_unparseable_input(doc):
    with pytest.raises(SchemaError):
        load_metadata(doc, strict_schema=False)


@pytest.mark.parametrize("strict", [True, False])
def test_bit_sequences_are_rejected(strict):
    doc = document(
        [prim(0, "u8"), ty(1, {"bitSequence": {"bit_store_type": 0, "bit_order_type": 0}})],
        constructors=[],
        messages=[message("bits", ret=1)],
    )
    with pytest.raises(SchemaError) as ei:
        load_metadata(doc, strict_schema=strict)
    assert ei.value.field.startswith("types/1/type/def")


def test_duplicate_type_ids(token_metadata):
    token_metadata["types"].append(prim(0, "u8"))
    with pytest.raises(SchemaError) as ei:
        load_metadata(token_metadata, strict_schema=False)
    assert "duplicate type id 0" in str(ei.value)
    assert ei.value.field == f"types/{len(token_metadata['types']) - 1}/id"


@pytest.mark.parametrize("selector", ["0x1234", "9bae9d5e", "0xzzzzzzzz"])
def test_malformed_selector(token_metadata, selector):
    token_metadata["spec"]["constructors"][0]["selector"] = selector
    with pytest.raises(SchemaError) as ei:
        load_metadata(token_metadata, strict_schema=False)
    assert ei.value.field == "spec/constructors/0/selector"


def test_strict_schema_reports_field_path(token_metadata):
    token_metadata["spec"]["messages"][1]["selector"] = "0x12"
    with pytest.raises(SchemaError) as ei:
        load_metadata(token_metadata, strict_schema=True)
    assert ei.value.field == "spec/messages/1/selector"


def test_structural_checks_run_without_schema(token_metadata):
    del token_metadata["spec"]["messages"][2]["mutates"]
    with pytest.raises(SchemaError) as ei:
        load_metadata(token_metadata, strict_schema=False)
    assert ei.value.field == "spec/messages/2/mutates"

    doc = token_document()
    del doc["types"][3]["type"]["def"]
    with pytest.raises(SchemaError) as ei:
        load_metadata(doc, strict_schema=False)
    assert ei.value.field == "types/3/type/def"


def test_missing_spec():
    with pytest.raises(SchemaError) as ei:
        load_metadata({"version": "4", "contract": {"name": "x"}, "types": []}, strict_schema=False)
    assert ei.value.field == "spec"


def test_source_hash_must_match_embedded_wasm():
    doc = token_document(source={"hash": "0x" + "00" * 32, "wasm": "0x" + WASM.hex()})
    with pytest.raises(SchemaError) as ei:
        load_metadata(doc, strict_schema=True)
    assert ei.value.field == "source/hash"

    ok = token_document(source={"hash": "0x" + blake2_256(WASM).hex(), "wasm": "0x" + WASM.hex()})
    raw = load_metadata(ok, strict_schema=True)
    assert raw.wasm == WASM


def test_source_hash_length():
    doc = token_document(source={"hash": "0x1234"})
    with pytest.raises(SchemaError) as ei:
        load_metadata(doc, strict_schema=False)
    assert ei.value.field == "source/hash"


def test_default_strictness_comes_from_config(monkeypatch, config, token_metadata):
    monkeypatch.setenv("INKGEN_STRICT_SCHEMA", "0")
    load_config.cache_clear()
    # Both the schema and the structural parser reject a non-string doc line.
    token_metadata["spec"]["messages"][0]["docs"] = [1]
    with pytest.raises(SchemaError) as ei:
        load_metadata(token_metadata)
    # With validation off the structural parser reports it instead.
    assert "schema validation" not in str(ei.value)


def test_bytecode_ref():
    ref = bytecode_ref(WASM)
    assert ref.length == len(WASM)
    assert ref.code_hash == blake2_256(WASM)


def test_packaged_schema_is_draft_2020_12():
    assert metadata_schema()["$schema"].endswith("2020-12/schema")
