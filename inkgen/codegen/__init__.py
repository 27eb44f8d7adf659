"""
inkgen code generation
======================

``emit_python`` renders a ``CompilationUnit`` into the source of a Python
client module built on ``inkgen.runtime``.
"""

from .emitter import HEADER, emit_python
from .naming import NameAllocator, py_ident, snake
from .typemap import TypeMapper

__all__ = ["emit_python", "HEADER", "NameAllocator", "py_ident", "snake", "TypeMapper"]
