"""
inkgen compile-time pipeline
============================

- ``load_metadata`` parses and validates an ink! metadata document
- ``resolve_registry`` computes the reachable types and declaration order
- ``analyze_methods`` / ``analyze_events`` classify the contract surface

The IR dataclasses live in ``model.py``.
"""

from .analyzer import analyze_events, analyze_methods, classify_name, compute_selector
from .loader import bytecode_ref, load_metadata
from .model import (
    BytecodeRef,
    CompilationUnit,
    EventDescriptor,
    Grouped,
    MethodDescriptor,
    RawMetadata,
    ResolvedRegistry,
    Ungrouped,
)
from .resolver import resolve_registry

__all__ = [
    "load_metadata",
    "bytecode_ref",
    "resolve_registry",
    "analyze_methods",
    "analyze_events",
    "classify_name",
    "compute_selector",
    "RawMetadata",
    "ResolvedRegistry",
    "MethodDescriptor",
    "EventDescriptor",
    "Grouped",
    "Ungrouped",
    "BytecodeRef",
    "CompilationUnit",
]
