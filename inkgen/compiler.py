"""
inkgen.compiler — one metadata document in, one client module out.

    unit = compile_metadata(open("flipper.json").read(), wasm=code)
    source = generate(unit)

Each call is a pure function of its inputs: nothing is cached between runs
and no stage mutates the output of an earlier one. Any `CompileError`
aborts the run before text is produced.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from .codegen import emit_python
from .common.analyzer import analyze_events, analyze_methods
from .common.loader import Document, bytecode_ref, load_metadata
from .common.model import CompilationUnit
from .common.resolver import resolve_registry
from .config import InkgenConfig, load_config
from .errors import SchemaError

log = logging.getLogger(__name__)


def compile_metadata(
    document: Document,
    *,
    wasm: Optional[bytes] = None,
    config: Optional[InkgenConfig] = None,
) -> CompilationUnit:
    """
    Load, resolve and analyze `document`.

    `wasm`, when given, takes precedence over `source.wasm` in the document
    and must match `source.hash` if the document declares one.
    """
    cfg = config or load_config()
    raw = load_metadata(document, strict_schema=cfg.strict_schema)

    code = wasm if wasm is not None else raw.wasm
    bytecode = bytecode_ref(code) if code is not None else None
    code_hash = raw.source_hash
    if bytecode is not None:
        if code_hash is not None and code_hash != bytecode.code_hash:
            raise SchemaError(
                f"supplied code hashes to 0x{bytecode.code_hash.hex()} but source.hash is 0x{code_hash.hex()}",
                field="source/hash",
            )
        code_hash = bytecode.code_hash

    registry = resolve_registry(raw)
    constructors, messages = analyze_methods(raw, cfg.selector_policy)
    events = analyze_events(raw)

    unit = CompilationUnit(
        contract_name=raw.contract_name,
        contract_version=raw.contract_version,
        registry=registry,
        constructors=constructors,
        messages=messages,
        events=events,
        code_hash=code_hash,
        bytecode=bytecode,
    )
    log.info(
        "compiled %s: %d declarations, %d interfaces, code %s",
        unit.contract_name,
        len(registry.declaration_order),
        len(unit.interfaces),
        "known" if bytecode is not None else ("hash only" if code_hash is not None else "unknown"),
    )
    return unit


def generate(
    document: Document,
    *,
    wasm: Optional[bytes] = None,
    config: Optional[InkgenConfig] = None,
) -> str:
    """Compile `document` and return the client module's source text."""
    cfg = config or load_config()
    unit = compile_metadata(document, wasm=wasm, config=cfg)
    return emit_python(unit, runtime_module=cfg.runtime_module, handle_name=cfg.handle_name)


def with_overrides(config: InkgenConfig, **overrides) -> InkgenConfig:
    """Copy of `config` with the non-None `overrides` applied (CLI flags)."""
    changes = {k: v for k, v in overrides.items() if v is not None}
    return replace(config, **changes) if changes else config


__all__ = ["compile_metadata", "generate", "with_overrides"]
