# src/streamed_zip/core/pipeline/__init__.py
"""
Pipeline de montagem do streamed-zip.

Este pacote reúne os tipos canônicos, o contexto de execução e o registro
de entradas que alimentam o Orchestrator.

Componentes:
    - types    → SourceKind, Entry, BuildState, BuildResult
    - context  → BuildContext (logs estruturados e warnings por participante)
    - registry → EntryRegistry (unicidade, contenção e tipo de fonte)
"""

from .context import BuildContext
from .registry import EntryRegistry, classify_source
from .types import BuildResult, BuildState, Entry, SourceKind

__all__ = [
    "BuildContext",
    "BuildResult",
    "BuildState",
    "Entry",
    "EntryRegistry",
    "SourceKind",
    "classify_source",
]
