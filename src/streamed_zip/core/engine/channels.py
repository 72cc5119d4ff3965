# src/streamed_zip/core/engine/channels.py
"""
Provisionamento de canais (FIFOs) por entrada.

Para cada entrada registrada, cria os diretórios intermediários implicados
pelo caminho relativo e exatamente um FIFO no caminho resolvido pelo
Workspace.

Decisões arquiteturais:
    - Todos os FIFOs são criados antes de qualquer processo iniciar: um FIFO
      criado depois que o compressor tentou abri-lo pode travá-lo
    - O caminho usado é o mesmo validado no registro (sem recanonicalizar)
    - Falha parcial aborta o build inteiro (sem arquivo parcial)

Limites explícitos:
    - Não escreve nem lê dos FIFOs
    - Não remove FIFOs (removidos junto com o Workspace)
"""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from typing import Iterable, Iterator, List

from streamed_zip.core.exceptions import ProvisioningError
from streamed_zip.core.pipeline.types import Entry


FIFO_MODE = 0o600


@dataclass(frozen=True)
class Channel:
    """FIFO de uma entrada: um escritor (Feeder) e um leitor (Archiver)."""
    relative_path: str
    path: str


@dataclass(frozen=True)
class ChannelSet:
    """Conjunto ordenado de canais provisionados para um build."""
    channels: tuple = ()

    def __iter__(self) -> Iterator[Channel]:
        return iter(self.channels)

    def __len__(self) -> int:
        return len(self.channels)

    def paths(self) -> List[str]:
        return [c.relative_path for c in self.channels]


def create_channel(entry: Entry) -> Channel:
    """
    Cria diretórios intermediários e o FIFO de uma entrada.

    Raises:
        ProvisioningError: Se a criação falhar ou o caminho já existir.
    """
    parent = os.path.dirname(entry.path)
    try:
        os.makedirs(parent, exist_ok=True)
        os.mkfifo(entry.path, FIFO_MODE)
    except OSError as e:
        raise ProvisioningError(
            f"Failed to create channel for {entry.relative_path}",
            details={"relative_path": entry.relative_path, "path": entry.path, "error": str(e)},
            hint="Verifique permissões do workspace e colisões de caminho entre entradas.",
        ) from e

    if not stat.S_ISFIFO(os.lstat(entry.path).st_mode):
        raise ProvisioningError(
            f"Channel for {entry.relative_path} is not a FIFO",
            details={"relative_path": entry.relative_path, "path": entry.path},
        )
    return Channel(relative_path=entry.relative_path, path=entry.path)


def provision(entries: Iterable[Entry]) -> ChannelSet:
    """Cria os canais de TODAS as entradas, na ordem de registro."""
    return ChannelSet(channels=tuple(create_channel(entry) for entry in entries))
