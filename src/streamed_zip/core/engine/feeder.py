# src/streamed_zip/core/engine/feeder.py
"""
Feeder: um processo copiador por entrada.

Cada Feeder executa o utilitário copiador (por padrão `tee`) com o FIFO
da entrada como único argumento posicional. Os bytes da fonte são
entregues no stdin do copiador pelo `ProcessHandle`, bloco a bloco, a
cada `service()`. O stdout do copiador não é retido: é apenas drenado e
contado como sinal de liveness.

Decisões (v1):
- Streams seekable são reposicionados no início antes da alimentação
- Streams não seekable são consumidos a partir da posição atual
- Buffers em memória são expostos como `io.BytesIO`
- O idle timeout é configurado no handle; a decisão de falha é do Orchestrator
"""

from __future__ import annotations

import io
from typing import Any, Optional, Sequence

from streamed_zip.core.pipeline.types import Entry, SourceKind

from .process import DEFAULT_CHUNK_SIZE, ProcessHandle


def open_source(entry: Entry) -> Any:
    """Retorna a fonte pronta para leitura sequencial desde o início."""
    if entry.kind is SourceKind.BUFFER:
        return io.BytesIO(bytes(entry.source))

    source = entry.source
    seekable = getattr(source, "seekable", None)
    if callable(seekable):
        if seekable():
            source.seek(0)
    elif callable(getattr(source, "seek", None)):
        source.seek(0)
    return source


def start_feeder(
    entry: Entry,
    *,
    working_directory: str,
    copier_command: Sequence[str] = ("tee",),
    idle_timeout: Optional[float] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> ProcessHandle:
    """Inicia o Feeder da entrada sem aguardar (handle RUNNING)."""
    handle = ProcessHandle(
        [*copier_command, entry.path],
        cwd=working_directory,
        name=entry.participant_id,
        input=open_source(entry),
        idle_timeout=idle_timeout,
        capture_output=False,
        chunk_size=chunk_size,
    )
    return handle.start()
