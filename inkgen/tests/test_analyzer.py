from __future__ import annotations

import logging

import pytest

from inkgen.common.analyzer import MAX_EVENTS, analyze_events, analyze_methods, classify_name, compute_selector
from inkgen.common.loader import load_metadata
from inkgen.common.model import Grouped, Ungrouped
from inkgen.errors import SchemaError, SelectorCollision

from .conftest import arg, constructor, document, message, prim


def _raw(constructors=(), messages=(), events=()):
    doc = document([prim(0, "u8"), prim(1, "bool")], constructors=constructors, messages=messages, events=events)
    return load_metadata(doc, strict_schema=False)


@pytest.mark.parametrize(
    "label,expected",
    [
        ("flip", Ungrouped("flip")),
        ("PSP22::transfer", Grouped("PSP22", "transfer")),
        ("a::b::c", Grouped("a::b", "c")),
    ],
)
def test_classify_name(label, expected):
    assert classify_name(label) == expected


@pytest.mark.parametrize("label", ["PSP22::", "::transfer", "a::::b", ""])
def test_classify_name_rejects_empty_segments(label):
    with pytest.raises(SchemaError):
        classify_name(label)


@pytest.mark.parametrize(
    "name,hexsel",
    [("new", "9bae9d5e"), ("flip", "633aa551"), ("get", "2f865bd9")],
)
def test_known_selectors(name, hexsel):
    assert compute_selector(name).hex() == hexsel


def test_token_surface(token_metadata):
    ctors, msgs = analyze_methods(load_metadata(token_metadata, strict_schema=False), "declared")
    assert [c.method_name for c in ctors] == [Ungrouped("new"), Ungrouped("with_code")]
    assert all(c.is_constructor and c.mutates for c in ctors)
    assert ctors[1].payable

    by_label = {m.label: m for m in msgs}
    assert by_label["PSP22::balance_of"].read_only
    assert by_label["PSP22::balance_of"].args == (("owner", 3),)
    assert by_label["PSP22::transfer"].mutates and not by_label["PSP22::transfer"].payable
    assert by_label["mint"].payable
    assert by_label["ping"].return_type is None
    assert by_label["PSP22::transfer"].selector == compute_selector("PSP22::transfer")
    assert by_label["Ownable::owner"].method_name == Grouped("Ownable", "owner")


def test_declared_selector_wins_under_declared_policy(caplog):
    custom = "0xcafebabe"
    raw = _raw(constructors=[constructor("new", selector=custom)], messages=[message("get", ret=1)])
    with caplog.at_level(logging.DEBUG, logger="inkgen"):
        ctors, _ = analyze_methods(raw, "declared")
    assert ctors[0].selector == bytes.fromhex("cafebabe")
    assert "differs from computed" in caplog.text


def test_computed_policy_ignores_declared_selector():
    raw = _raw(constructors=[constructor("new", selector="0xcafebabe")])
    ctors, _ = analyze_methods(raw, "computed")
    assert ctors[0].selector == bytes.fromhex("9bae9d5e")


def test_selector_name_feeds_the_hash():
    raw = _raw(messages=[message("get", ret=1, selectorName="flip")])
    _, msgs = analyze_methods(raw, "computed")
    assert msgs[0].selector.hex() == "633aa551"


def test_collision_between_constructor_and_message():
    raw = _raw(
        constructors=[constructor("new", selector="0x01020304")],
        messages=[message("get", ret=1, selector="0x01020304")],
    )
    with pytest.raises(SelectorCollision) as ei:
        analyze_methods(raw, "declared")
    assert ei.value.selector == bytes.fromhex("01020304")
    assert (ei.value.first, ei.value.second) == ("new", "get")


def test_overloading_is_rejected():
    raw = _raw(messages=[message("get", ret=1), message("get", [arg("x", 0)], ret=1, selector="0x00000001")])
    with pytest.raises(SchemaError, match="overloading"):
        analyze_methods(raw, "declared")


def test_same_name_in_different_interfaces_is_fine():
    raw = _raw(messages=[message("A::get", ret=1), message("B::get", ret=1)])
    _, msgs = analyze_methods(raw, "declared")
    assert [m.method_name for m in msgs] == [Grouped("A", "get"), Grouped("B", "get")]


def test_duplicate_argument_names():
    raw = _raw(messages=[message("set", [arg("x", 0), arg("x", 1)], mutates=True)])
    with pytest.raises(SchemaError, match="duplicate argument"):
        analyze_methods(raw, "declared")


def test_unknown_policy():
    with pytest.raises(ValueError):
        analyze_methods(_raw(), "newest")


def test_event_discriminants_follow_declaration_order(token_metadata):
    events = analyze_events(load_metadata(token_metadata, strict_schema=False))
    assert [(e.name, e.discriminant) for e in events] == [("Transfer", 0), ("Approval", 1)]
    assert events[0].fields == (("from", 13, True), ("to", 13, True), ("value", 0, False))
    assert events[0].docs == ("Tokens moved.",)


def test_duplicate_events_and_fields():
    ev = {"label": "E", "args": [arg("a", 0)], "docs": []}
    with pytest.raises(SchemaError):
        analyze_events(_raw(events=[ev, dict(ev)]))
    bad = {"label": "F", "args": [arg("a", 0), arg("a", 1)], "docs": []}
    with pytest.raises(SchemaError, match="duplicate field"):
        analyze_events(_raw(events=[bad]))


def test_too_many_events():
    events = [{"label": f"E{i}", "args": [], "docs": []} for i in range(MAX_EVENTS + 1)]
    with pytest.raises(SchemaError):
        analyze_events(_raw(events=events))
