# src/streamed_zip/core/engine/capabilities.py
"""
Probe de capacidades do ambiente.

Um build depende de recursos externos ao processo Python:
    - o compressor (por padrão `zip`, com suporte a `-FI`)
    - o copiador de stream (por padrão `tee`)
    - a primitiva POSIX de FIFOs (`os.mkfifo`)

`probe()` checa a presença de cada um e, opcionalmente, executa um
self-test: comprime um arquivo regular num workspace temporário pelo
caminho síncrono do Archiver (sem `-FI`, a entrada não é um FIFO).

Limites explícitos:
    - Não valida a versão do compressor, apenas o comportamento observado
    - Não faz cache do resultado
"""

from __future__ import annotations

import os
import shutil
from typing import Any, Dict, List, Sequence

from streamed_zip.core.exceptions import StreamedZipException, UnsupportedEnvironmentError
from streamed_zip.core.workspace import Workspace

from .archiver import start_archiver


SELF_TEST_ENTRY = "probe.txt"


def missing_components(
    *,
    zip_command: Sequence[str] = ("zip",),
    copier_command: Sequence[str] = ("tee",),
) -> List[str]:
    """Lista os componentes ausentes (vazia quando o ambiente é suportado)."""
    missing: List[str] = []
    if not hasattr(os, "mkfifo"):
        missing.append("os.mkfifo")
    for command in (zip_command, copier_command):
        if not command or shutil.which(command[0]) is None:
            missing.append(command[0] if command else "<empty command>")
    return missing


def _self_test(zip_command: Sequence[str], tmp_path: str) -> None:
    workspace = Workspace.create(tmp_path, prefix="streamed-zip-probe-")
    try:
        with open(os.path.join(workspace.root, SELF_TEST_ENTRY), "wb") as f:
            f.write(b"streamed-zip\n")
        handle = start_archiver(
            [SELF_TEST_ENTRY],
            pipe_mode=False,
            working_directory=workspace.root,
            zip_command=zip_command,
            timeout=10.0,
        )
        if not handle.output:
            raise UnsupportedEnvironmentError(
                "Compressor produced no output during self-test",
                details={"command_line": handle.command_line},
            )
    finally:
        workspace.teardown()


def probe(
    *,
    zip_command: Sequence[str] = ("zip",),
    copier_command: Sequence[str] = ("tee",),
    tmp_path: str = "/tmp",
    self_test: bool = True,
) -> None:
    """
    Verifica se o ambiente suporta builds.

    Raises:
        UnsupportedEnvironmentError: Se algum componente estiver ausente ou o
            self-test do compressor falhar.
    """
    missing = missing_components(zip_command=zip_command, copier_command=copier_command)
    if missing:
        raise UnsupportedEnvironmentError(
            "Some components are missing to use streamed-zip",
            details={"missing": missing},
            hint="Instale o Info-ZIP `zip` e o coreutils `tee`, ou configure `commands.zip`/`commands.copier`.",
        )

    if not self_test:
        return

    try:
        _self_test(zip_command, tmp_path)
    except UnsupportedEnvironmentError:
        raise
    except StreamedZipException as e:
        details: Dict[str, Any] = {"cause": type(e).__name__}
        details.update(e.details)
        raise UnsupportedEnvironmentError(
            f"Compressor self-test failed: {e}",
            details=details,
            hint="O compressor precisa aceitar `-` (saída no stdout) e, nos builds, `-FI`.",
        ) from e


def is_supported(**kwargs) -> bool:
    """Versão booleana de `probe()`."""
    try:
        probe(**kwargs)
    except UnsupportedEnvironmentError:
        return False
    return True
