# src/streamed_zip/core/workspace.py
"""
Workspace privado de montagem e validação de contenção de caminhos.

Este módulo define o `Workspace`, o diretório temporário exclusivo de uma
instância de `StreamedZipArchive`. Todos os FIFOs de entrada vivem dentro
dele e o compressor é executado com ele como diretório de trabalho.

Responsabilidades do módulo:
    - Criar um diretório único sob um diretório base
    - Resolver caminhos relativos de entrada para caminhos absolutos canônicos
    - Garantir que todo caminho resolvido esteja estritamente dentro do root
    - Remover recursivamente o diretório no teardown

Decisões arquiteturais:
    - O root é canonicalizado (`os.path.realpath`) na criação, de modo que
      a comparação de prefixo nunca seja enganada por symlinks do diretório base
    - A canonicalização de entradas não exige que o alvo exista
    - O caminho absoluto retornado pela validação é exatamente o caminho usado
      pelo provisionamento de FIFOs (sem divergência entre checagem e uso)
    - Segmentos `..` e caminhos absolutos são rejeitados mesmo quando
      canonicalizariam para dentro do root

Invariantes:
    - O root existe do `create` até o `teardown`
    - Nenhum caminho validado aponta para fora do root
    - O teardown é idempotente

Limites explícitos:
    - Não cria FIFOs (ver `engine.channels`)
    - Não registra entradas (ver `pipeline.registry`)
"""

from __future__ import annotations

import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Union

from .exceptions import ContractViolation, PathEscapeError, ProvisioningError, TeardownError


@dataclass
class Workspace:
    """
    Diretório privado e exclusivo de uma instância de montagem.

    Esta classe é dona do ciclo de vida do diretório: ele é criado por
    `Workspace.create` e removido por `teardown`. Enquanto existir, é o
    único lugar onde FIFOs de entrada são materializados.

    Invariantes:
        - `root` é absoluto e canônico
        - `removed` só transita de False para True
    """

    root: str
    removed: bool = False

    @classmethod
    def create(
        cls,
        base_path: Union[str, os.PathLike] = "/tmp",
        *,
        prefix: str = "streamed-zip-archive-",
    ) -> "Workspace":
        """
        Cria um diretório único sob `base_path`.

        Raises:
            ProvisioningError: Se o diretório não puder ser criado.
        """
        base = os.fspath(base_path)
        try:
            created = tempfile.mkdtemp(prefix=prefix, dir=base)
        except OSError as e:
            raise ProvisioningError(
                f"Falha ao criar diretório temporário em {base}",
                details={"base_path": base, "error": str(e)},
                hint="Verifique se o diretório base existe e permite escrita.",
            ) from e
        return cls(root=os.path.realpath(created))

    # ------------------------------------------------------------------
    # Contenção de caminhos
    # ------------------------------------------------------------------
    def validate_contained(self, relative_path: str) -> str:
        """
        Resolve `relative_path` dentro do root e garante contenção estrita.

        A resolução usa `os.path.realpath` em modo não estrito: symlinks
        existentes são seguidos e `..` é colapsado, mas o alvo final não
        precisa existir.

        Args:
            relative_path (str): Caminho relativo da entrada no arquivo.

        Returns:
            str: Caminho absoluto canônico, estritamente dentro do root.

        Raises:
            ContractViolation: Se o caminho não for string, for vazio ou contiver NUL.
            PathEscapeError: Se o caminho for absoluto, contiver `..` ou resolver
                para fora do root.
        """
        if not isinstance(relative_path, str):
            raise ContractViolation(
                "Caminho de entrada deve ser str",
                details={"received": type(relative_path).__name__},
            )
        if not relative_path or "\x00" in relative_path:
            raise ContractViolation(
                "Caminho de entrada vazio ou inválido",
                details={"relative_path": relative_path},
            )

        if relative_path.startswith("/") or ".." in PurePosixPath(relative_path).parts:
            raise PathEscapeError(
                f"Path {relative_path} is not inside {self.root}",
                details={"relative_path": relative_path, "root": self.root},
                hint="Use caminhos relativos sem '/' inicial e sem segmentos '..'.",
            )

        resolved = os.path.realpath(os.path.join(self.root, relative_path))
        if not self.contains(resolved):
            raise PathEscapeError(
                f"Path {relative_path} is not inside {self.root}",
                details={"relative_path": relative_path, "root": self.root, "resolved": resolved},
                hint="Use caminhos relativos sem '/' inicial e sem segmentos '..'.",
            )
        return resolved

    def contains(self, absolute_path: str) -> bool:
        """Contenção estrita: o root é prefixo e o caminho não é o próprio root."""
        return absolute_path != self.root and absolute_path.startswith(self.root + os.sep)

    def exists(self, absolute_path: str) -> bool:
        """Checa existência sem seguir symlinks (um FIFO ou link quebrado também conta)."""
        return os.path.lexists(absolute_path)

    # ------------------------------------------------------------------
    # Ciclo de vida
    # ------------------------------------------------------------------
    def teardown(self) -> bool:
        """
        Remove recursivamente o workspace.

        Returns:
            bool: True se o diretório foi removido nesta chamada; False quando
            já havia sido removido (no-op).

        Raises:
            TeardownError: Se a remoção falhar.
        """
        if self.removed or not os.path.lexists(self.root):
            self.removed = True
            return False

        try:
            shutil.rmtree(self.root)
        except OSError as e:
            raise TeardownError(
                f"Falha ao remover workspace {self.root}",
                details={"root": self.root, "error": str(e)},
            ) from e

        self.removed = True
        return True
