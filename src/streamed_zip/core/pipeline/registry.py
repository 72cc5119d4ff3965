# src/streamed_zip/core/pipeline/registry.py
"""
Registro de entradas do arquivo ZIP.

Este módulo define o `EntryRegistry`, responsável por registrar entradas
(caminho relativo → fonte pendente) e validar sua integridade antes de
qualquer provisionamento ou execução.

O registry atua como uma camada de proteção antecipada, garantindo que:
    - cada fonte seja um stream binário ou um buffer em memória
    - cada caminho seja contido no workspace
    - não existam caminhos duplicados (nem colisões com o filesystem)
    - a ordem de registro seja preservada explicitamente

Decisões arquiteturais:
    - A criação de FIFOs é adiada para o build (registro barato e reordenável)
    - A unicidade é verificada pelo nome lógico e pelo caminho resolvido
    - Uma entrada não pode ser ancestral de outra (um FIFO não é diretório)
    - Nomes precisam estar na forma normal (sem `./`, `//` ou `/` final): o
      compressor grava a forma normal, e o arquivo deve conter o nome registrado
    - Após o início de um build o registry é selado

Invariantes:
    - Cada entrada registrada possui caminho único
    - A lista de entradas reflete exatamente a ordem de registro
    - Nenhuma entrada inválida é aceita; uma falha não altera o estado

Limites explícitos:
    - Não cria FIFOs nem diretórios
    - Não lê as fontes
"""

from __future__ import annotations

import io
import os
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Dict, List

from streamed_zip.core.exceptions import ContractViolation, DuplicateEntryError
from streamed_zip.core.workspace import Workspace

from .types import Entry, SourceKind


def classify_source(source: Any) -> SourceKind:
    """
    Classifica uma fonte de entrada.

    Aceita:
        - bytes, bytearray, memoryview → BUFFER
        - objeto binário legível com `read` → STREAM

    Raises:
        ContractViolation: Para qualquer outro tipo (inclusive `str` e streams de texto)
            ou para streams fechados/não legíveis.
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        return SourceKind.BUFFER

    if isinstance(source, (str, io.TextIOBase)):
        raise ContractViolation(
            "Input must be a binary stream or a bytes-like buffer",
            details={"received": type(source).__name__},
            hint="Codifique o texto (ex.: .encode('utf-8')) ou abra o arquivo em modo binário.",
        )

    if not callable(getattr(source, "read", None)):
        raise ContractViolation(
            "Input must be a binary stream or a bytes-like buffer",
            details={"received": type(source).__name__},
        )

    if getattr(source, "closed", False):
        raise ContractViolation("Input stream is closed", details={"received": type(source).__name__})

    readable = getattr(source, "readable", None)
    if callable(readable) and not readable():
        raise ContractViolation("Input stream is not readable", details={"received": type(source).__name__})

    return SourceKind.STREAM


@dataclass
class EntryRegistry:
    """
    Registro canônico de entradas, vinculado a um Workspace.

    Decisões arquiteturais:
        - A validação de contenção é delegada ao Workspace e sua exceção
          (`PathEscapeError`) é propagada inalterada
        - A ordem de inserção é preservada separadamente
        - A estrutura interna não é exposta diretamente
    """
    workspace: Workspace

    _entries: Dict[str, Entry] = field(default_factory=dict, init=False, repr=False)
    _by_path: Dict[str, str] = field(default_factory=dict, init=False, repr=False)
    _order: List[str] = field(default_factory=list, init=False, repr=False)
    sealed: bool = field(default=False, init=False)

    def register(self, relative_path: str, source: Any) -> Entry:
        if self.sealed:
            raise ContractViolation(
                "Registry is sealed: a build was already started",
                details={"relative_path": relative_path},
                hint="Crie uma nova instância para montar outro arquivo.",
            )

        kind = classify_source(source)
        if isinstance(relative_path, str) and relative_path.startswith("-"):
            raise ContractViolation(
                "Entry path must not start with '-'",
                details={"relative_path": relative_path},
                hint="Nomes iniciados por '-' seriam interpretados como opções do compressor.",
            )

        path = self.workspace.validate_contained(relative_path)

        normalized = PurePosixPath(relative_path).as_posix()
        if normalized != relative_path:
            raise ContractViolation(
                f"Entry path {relative_path} is not in normal form",
                details={"relative_path": relative_path, "normalized": normalized},
                hint=f"Registre a entrada como '{normalized}'.",
            )

        if relative_path in self._entries or path in self._by_path:
            raise DuplicateEntryError(
                f"Path {relative_path} is already registered",
                details={"relative_path": relative_path, "path": path},
            )

        if self.workspace.exists(path):
            raise DuplicateEntryError(
                f"Path {relative_path} is already registered",
                details={"relative_path": relative_path, "path": path, "reason": "exists_in_workspace"},
            )

        for other_path, other_name in self._by_path.items():
            if path.startswith(other_path + os.sep) or other_path.startswith(path + os.sep):
                raise DuplicateEntryError(
                    f"Path {relative_path} conflicts with {other_name}",
                    details={"relative_path": relative_path, "conflicts_with": other_name},
                    hint="Uma entrada não pode ser diretório de outra.",
                )

        entry = Entry(relative_path=relative_path, path=path, source=source, kind=kind)
        self._entries[relative_path] = entry
        self._by_path[path] = relative_path
        self._order.append(relative_path)
        return entry

    def seal(self) -> None:
        self.sealed = True

    def get(self, relative_path: str) -> Entry:
        return self._entries[relative_path]

    def list(self) -> List[Entry]:
        return [self._entries[p] for p in self._order]

    def paths(self) -> List[str]:
        return list(self._order)

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, relative_path: object) -> bool:
        return relative_path in self._entries
