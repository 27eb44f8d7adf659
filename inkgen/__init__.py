"""
inkgen — compile ink! smart-contract metadata into typed Python clients.

Pipeline (see ``inkgen.compiler``):

    load_metadata -> resolve_registry -> analyze_methods / analyze_events
                  -> CompilationUnit -> emit_python -> source text

Generated modules depend only on ``inkgen.runtime``.
"""

from .compiler import compile_metadata, generate
from .config import InkgenConfig, load_config
from .errors import CompileError, InkgenError
from .version import __version__

__all__ = ["compile_metadata", "generate", "InkgenConfig", "load_config", "CompileError", "InkgenError", "__version__"]
