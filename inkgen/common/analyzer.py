from __future__ import annotations

"""
Method & interface analysis

Classifies every constructor and message once, so later stages never look
at raw labels again:

- selector: BLAKE2b-256 of the selector name, first 4 bytes; explicit
  selectors win under the "declared" policy
- name: `Grouped(interface, name)` when the label contains `::` (split on
  the last one), `Ungrouped(name)` otherwise
- read-only vs mutating, payable vs not (copied from the document)

Selectors must be unique across constructors and messages together.
Overloading is not supported: two entries of the same kind with the same
name are rejected.
"""

import logging
from typing import Dict, Iterable, Optional, Tuple

from ..config import SELECTOR_POLICIES, load_config
from ..errors import SchemaError, SelectorCollision
from ..runtime.hash import selector_for
from .model import (
    EventDescriptor,
    Grouped,
    MethodDescriptor,
    MethodName,
    RawArg,
    RawMetadata,
    RawMethod,
    Ungrouped,
)

log = logging.getLogger(__name__)

MAX_EVENTS = 256


def compute_selector(name: str) -> bytes:
    """4-byte selector of a constructor/message selector name."""
    return selector_for(name)


def classify_name(label: str) -> MethodName:
    """
    ``"PSP22::transfer"`` -> Grouped("PSP22", "transfer");
    ``"A::B::m"`` -> Grouped("A::B", "m"); ``"flip"`` -> Ungrouped("flip").
    """
    if "::" not in label:
        if not label:
            raise SchemaError("empty method label")
        return Ungrouped(label)
    interface, _, name = label.rpartition("::")
    if not name or any(not seg for seg in interface.split("::")):
        raise SchemaError(f"method label {label!r} has an empty path segment")
    return Grouped(interface, name)


def analyze_methods(
    raw: RawMetadata, policy: Optional[str] = None
) -> Tuple[Tuple[MethodDescriptor, ...], Tuple[MethodDescriptor, ...]]:
    """
    Build descriptors for all constructors and messages.

    Raises:
        SelectorCollision: two entries share a selector.
        SchemaError: malformed label, overloading or duplicate argument names.
    """
    if policy is None:
        policy = load_config().selector_policy
    if policy not in SELECTOR_POLICIES:
        raise ValueError(f"selector policy must be one of {SELECTOR_POLICIES}, got {policy!r}")

    by_selector: Dict[bytes, str] = {}
    constructors = tuple(_analyze_group(raw.constructors, "constructor", policy, by_selector))
    messages = tuple(_analyze_group(raw.messages, "message", policy, by_selector))
    log.debug("analyzed %d constructors, %d messages", len(constructors), len(messages))
    return constructors, messages


def _analyze_group(
    methods: Iterable[RawMethod], kind: str, policy: str, by_selector: Dict[bytes, str]
) -> Iterable[MethodDescriptor]:
    names: Dict[MethodName, str] = {}
    for m in methods:
        method_name = classify_name(m.label)
        if method_name in names:
            raise SchemaError(f"{kind} {m.label!r} is declared twice; overloading is not supported")
        names[method_name] = m.label

        selector = _selector(m, policy)
        if selector in by_selector:
            raise SelectorCollision(selector=selector, first=by_selector[selector], second=m.label)
        by_selector[selector] = m.label

        yield MethodDescriptor(
            label=m.label,
            method_name=method_name,
            selector=selector,
            args=_args(m.args, f"{kind} {m.label}"),
            return_type=m.return_type,
            mutates=True if kind == "constructor" else m.mutates,
            payable=m.payable,
            docs=m.docs,
            is_constructor=kind == "constructor",
        )


def _selector(m: RawMethod, policy: str) -> bytes:
    computed = compute_selector(m.selector_name or m.label)
    if m.selector is None or policy == "computed":
        return computed
    if m.selector != computed:
        log.debug(
            "%s: declared selector 0x%s differs from computed 0x%s; using declared",
            m.label,
            m.selector.hex(),
            computed.hex(),
        )
    return m.selector


def _args(args: Iterable[RawArg], where: str) -> Tuple[Tuple[str, int], ...]:
    out = []
    seen = set()
    for a in args:
        if a.label in seen:
            raise SchemaError(f"{where}: duplicate argument {a.label!r}")
        seen.add(a.label)
        out.append((a.label, a.type_id))
    return tuple(out)


def analyze_events(raw: RawMetadata) -> Tuple[EventDescriptor, ...]:
    """One descriptor per event; the discriminant is its position in the list."""
    if len(raw.events) > MAX_EVENTS:
        raise SchemaError(f"{len(raw.events)} events declared; at most {MAX_EVENTS} fit a u8 discriminant")
    out = []
    seen = set()
    for i, ev in enumerate(raw.events):
        if ev.label in seen:
            raise SchemaError(f"event {ev.label!r} is declared twice", field=f"spec/events/{i}/label")
        seen.add(ev.label)
        fields = []
        field_names = set()
        for a in ev.args:
            if a.label in field_names:
                raise SchemaError(f"event {ev.label}: duplicate field {a.label!r}", field=f"spec/events/{i}/args")
            field_names.add(a.label)
            fields.append((a.label, a.type_id, a.indexed))
        out.append(EventDescriptor(name=ev.label, discriminant=i, fields=tuple(fields), docs=ev.docs))
    log.debug("analyzed %d events", len(out))
    return tuple(out)


__all__ = ["compute_selector", "classify_name", "analyze_methods", "analyze_events", "MAX_EVENTS"]
