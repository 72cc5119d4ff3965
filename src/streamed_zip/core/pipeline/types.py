# src/streamed_zip/core/pipeline/types.py
"""
Tipos canônicos do pipeline de montagem do streamed-zip.

Este módulo define as estruturas e enums fundamentais que padronizam
a comunicação entre Registry, Provisioner, participantes e Orchestrator.

Componentes principais:
    - SourceKind  → enum dos tipos de fonte aceitos (stream, buffer)
    - Entry       → entrada registrada, imutável após o registro
    - BuildState  → estados da máquina de build
    - BuildResult → resultado imutável de um build bem-sucedido

Invariantes:
    - Enums possuem valores textuais canônicos (serializáveis no Manifest)
    - Entry e BuildResult são imutáveis
    - Tipos não dependem de processos ou do filesystem

Limites explícitos:
    - Não executa processos
    - Não valida caminhos (ver `core.workspace`)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Tuple


class SourceKind(str, Enum):
    """
    Tipos de fonte aceitos para uma entrada do arquivo.

    Tipos definidos:
        - STREAM: handle binário legível (arquivo, socket, resposta HTTP)
        - BUFFER: buffer de bytes em memória (bytes, bytearray, memoryview)

    Invariantes:
        - Toda entrada possui exatamente um `kind`
        - Fontes de qualquer outro tipo são rejeitadas no registro
    """
    STREAM = "stream"
    BUFFER = "buffer"


class BuildState(str, Enum):
    """
    Estados da máquina de build do Orchestrator.

    Transições válidas:
        IDLE → PROVISIONING → RUNNING → DRAINING → REAPING → DONE
        qualquer estado intermediário → FAILED

    Decisões arquiteturais:
        - DONE e FAILED são terminais
        - Um registry só é construído uma vez por instância
    """
    IDLE = "idle"
    PROVISIONING = "provisioning"
    RUNNING = "running"
    DRAINING = "draining"
    REAPING = "reaping"
    DONE = "done"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (BuildState.DONE, BuildState.FAILED)


@dataclass(frozen=True)
class Entry:
    """
    Entrada registrada para o arquivo ZIP.

    Campos:
        - relative_path: nome da entrada no arquivo (relativo ao workspace)
        - path: caminho absoluto canônico do FIFO correspondente
        - source: stream binário ou buffer em memória
        - kind: tipo da fonte (`SourceKind`)

    Invariantes:
        - `path` foi validado pelo Workspace no momento do registro
        - A fonte é consumida exatamente uma vez, durante o build
    """
    relative_path: str
    path: str
    source: Any = field(repr=False, compare=False)
    kind: SourceKind = SourceKind.STREAM

    @property
    def participant_id(self) -> str:
        return f"feeder:{self.relative_path}"


@dataclass(frozen=True)
class BuildResult:
    """
    Resultado imutável de um build concluído com sucesso.

    Campos:
        - data: bytes do arquivo ZIP (stdout do Archiver)
        - build_id: identificador do build
        - entries: nomes das entradas, na ordem em que foram listadas ao compressor
        - duration_ms: duração total do build

    Invariantes:
        - Nunca é produzido enquanto algum participante ainda executa
        - Só existe quando todos os participantes terminaram com código 0
    """
    data: bytes = field(repr=False)
    build_id: str
    entries: Tuple[str, ...] = ()
    duration_ms: int = 0

    @property
    def size(self) -> int:
        return len(self.data)
