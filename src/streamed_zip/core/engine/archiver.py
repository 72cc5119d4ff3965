# src/streamed_zip/core/engine/archiver.py
"""
Archiver: o único processo compressor do build.

Invocação: `<zip command> [-FI] - <entrada1> <entrada2> ...` com o
workspace como diretório de trabalho. `-FI` instrui o compressor a ler
FIFOs até EOF; `-` direciona o arquivo para o stdout, que é acumulado
em memória pelo `ProcessHandle`.

Em modo pipe o início não bloqueia: o compressor vai esperar pelos FIFOs
que os Feeders ainda não terminaram de escrever, e o chamador precisa
intercalar o serviço dos demais participantes. Fora do modo pipe (usado
apenas pelo self-test de capacidade) a execução é síncrona.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from .process import ProcessHandle


ARCHIVER_PARTICIPANT = "archiver"
FIFO_INPUT_FLAG = "-FI"
STDOUT_TARGET = "-"


def archiver_command(
    zip_command: Sequence[str],
    entry_paths: Sequence[str],
    *,
    pipe_mode: bool,
) -> List[str]:
    arguments = list(zip_command)
    if pipe_mode:
        arguments.append(FIFO_INPUT_FLAG)
    arguments.append(STDOUT_TARGET)
    arguments.extend(entry_paths)
    return arguments


def start_archiver(
    entry_paths: Sequence[str],
    *,
    pipe_mode: bool,
    working_directory: str,
    zip_command: Sequence[str] = ("zip",),
    timeout: Optional[float] = None,
    wait: Optional[bool] = None,
) -> ProcessHandle:
    """
    Inicia o compressor.

    Args:
        entry_paths: nomes das entradas, relativos ao workspace, na ordem de consumo.
        pipe_mode: adiciona `-FI` (entradas são FIFOs).
        working_directory: root do workspace.
        zip_command: argv do compressor.
        timeout: timeout total do processo (None = sem limite).
        wait: força execução síncrona; por padrão síncrona só fora do modo pipe.

    Raises:
        ProcessFailure: Em execução síncrona, se o compressor falhar.
    """
    handle = ProcessHandle(
        archiver_command(zip_command, entry_paths, pipe_mode=pipe_mode),
        cwd=working_directory,
        name=ARCHIVER_PARTICIPANT,
        timeout=timeout,
        capture_output=True,
    )
    handle.start()

    if wait is None:
        wait = not pipe_mode
    if wait:
        handle.wait()
        handle.assert_success(ARCHIVER_PARTICIPANT)
    return handle
