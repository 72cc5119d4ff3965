# src/streamed_zip/core/engine/process.py
"""
Handle de processo externo com serviço explícito de I/O.

Este módulo define o `ProcessHandle`, a abstração usada pelo Orchestrator
para conduzir o Archiver e os Feeders como processos do sistema operacional
executando em paralelo.

O ponto central é a operação `service()`: uma única chamada que, sem
bloquear indefinidamente,
    - escreve no stdin do processo o próximo bloco da fonte (quando há espaço)
    - drena stdout/stderr disponíveis (para que o buffer do SO nunca encha)
    - verifica término e timeouts

Nenhum caminho de código consulta o estado de um processo sem também
servir seus buffers: checar status É servir I/O.

Decisões arquiteturais:
    - Pipes em modo não bloqueante multiplexados por `selectors`
    - stdout pode ser descartado (`capture_output=False`): apenas contado,
      como sinal de liveness
    - stderr é sempre capturado (diagnóstico de falha)
    - Erros de leitura da fonte abortam o processo e ficam registrados
      em `input_error`

Invariantes:
    - `status` transita READY → RUNNING → TERMINATED exatamente uma vez
    - Após TERMINATED, `exit_code` e as saídas capturadas não mudam
    - Todo processo iniciado é reaped (nenhum zumbi após `abort`)

Limites explícitos:
    - Não conhece entradas, FIFOs ou o formato ZIP
    - Não decide políticas de falha do build (ver `orchestrator`)
"""

from __future__ import annotations

import os
import selectors
import shlex
import subprocess
import time
from enum import Enum
from typing import Any, Optional, Sequence

from streamed_zip.core.exceptions import ContractViolation, ProcessFailure, ProcessTimeoutError


DEFAULT_CHUNK_SIZE = 65536


class ProcessStatus(str, Enum):
    READY = "ready"
    RUNNING = "running"
    TERMINATED = "terminated"


class ProcessHandle:
    """
    Processo externo conduzido por polling explícito.

    Campos principais:
        - command / command_line: argv executado e sua forma textual
        - cwd: diretório de trabalho
        - status: READY, RUNNING ou TERMINATED
        - exit_code: código de saída (negativo quando morto por sinal)
        - failure_reason: None, "timeout", "idle_timeout", "input_error" ou "aborted"
        - bytes_in / bytes_out: volume escrito no stdin / lido do stdout
    """

    def __init__(
        self,
        command: Sequence[str],
        *,
        cwd: Optional[str] = None,
        name: Optional[str] = None,
        input: Any = None,
        timeout: Optional[float] = None,
        idle_timeout: Optional[float] = None,
        capture_output: bool = True,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        if not command:
            raise ContractViolation("Process command must not be empty", details={"command": list(command)})

        self.command = tuple(command)
        self.cwd = cwd
        self.name = name or self.command[0]
        self.timeout = timeout
        self.idle_timeout = idle_timeout
        self.capture_output = capture_output
        self.chunk_size = chunk_size

        self.status = ProcessStatus.READY
        self.exit_code: Optional[int] = None
        self.failure_reason: Optional[str] = None
        self.input_error: Optional[BaseException] = None
        self.bytes_in = 0
        self.bytes_out = 0
        self.started_at: Optional[float] = None
        self.finished_at: Optional[float] = None
        self.last_activity: Optional[float] = None

        self._input = input
        self._pending = b""
        self._stdout = bytearray()
        self._stderr = bytearray()
        self._process: Optional[subprocess.Popen] = None
        self._selector: Optional[selectors.BaseSelector] = None

    # ------------------------------------------------------------------
    # Propriedades
    # ------------------------------------------------------------------
    @property
    def command_line(self) -> str:
        return shlex.join(self.command)

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process is not None else None

    @property
    def running(self) -> bool:
        return self.status is ProcessStatus.RUNNING

    @property
    def terminated(self) -> bool:
        return self.status is ProcessStatus.TERMINATED

    @property
    def successful(self) -> bool:
        return self.terminated and self.exit_code == 0 and self.failure_reason is None

    @property
    def failed(self) -> bool:
        return self.terminated and not self.successful

    @property
    def output(self) -> bytes:
        return bytes(self._stdout)

    @property
    def error_output(self) -> str:
        return self._stderr.decode("utf-8", errors="replace")

    @property
    def idle_for(self) -> float:
        if self.last_activity is None:
            return 0.0
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return max(0.0, end - self.last_activity)

    @property
    def idle_expired(self) -> bool:
        return self.running and self.idle_timeout is not None and self.idle_for > self.idle_timeout

    @property
    def duration(self) -> float:
        if self.started_at is None:
            return 0.0
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return max(0.0, end - self.started_at)

    # ------------------------------------------------------------------
    # Ciclo de vida
    # ------------------------------------------------------------------
    def start(self) -> "ProcessHandle":
        """Inicia o processo sem aguardar (retorna um handle RUNNING)."""
        if self.status is not ProcessStatus.READY:
            raise ContractViolation(
                "Process already started",
                details={"command_line": self.command_line, "status": self.status.value},
            )

        try:
            self._process = subprocess.Popen(
                self.command,
                cwd=self.cwd,
                stdin=subprocess.PIPE if self._input is not None else subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                bufsize=0,
            )
        except OSError as e:
            self.status = ProcessStatus.TERMINATED
            self.failure_reason = "spawn_error"
            raise ProcessFailure(
                f"Process failed to start ('{self.command_line}'): {e}",
                participant=self.name,
                command_line=self.command_line,
                exit_code=None,
                error_output=str(e),
            ) from e

        self._selector = selectors.DefaultSelector()
        for pipe, events, role in (
            (self._process.stdin, selectors.EVENT_WRITE, "stdin"),
            (self._process.stdout, selectors.EVENT_READ, "stdout"),
            (self._process.stderr, selectors.EVENT_READ, "stderr"),
        ):
            if pipe is None:
                continue
            os.set_blocking(pipe.fileno(), False)
            self._selector.register(pipe, events, role)

        now = time.monotonic()
        self.started_at = now
        self.last_activity = now
        self.status = ProcessStatus.RUNNING
        return self

    def service(self, timeout: float = 0.0) -> bool:
        """
        Serve o I/O pendente e verifica término e timeout total.

        Args:
            timeout: tempo máximo (segundos) aguardando prontidão de algum pipe.

        Returns:
            bool: True quando houve atividade (bytes movidos ou término).
        """
        if self.status is not ProcessStatus.RUNNING:
            return False

        activity = self._pump(timeout)

        if self.status is not ProcessStatus.RUNNING:
            return True

        if self._process.poll() is not None:
            self._finalize()
            return True

        if self.timeout is not None and self.duration > self.timeout:
            self.abort("timeout")
            return True

        return activity

    def wait(self, interval: float = 0.01) -> int:
        """Serve o processo até o término; retorna o código de saída."""
        while self.running:
            self.service(interval)
        return self.exit_code if self.exit_code is not None else -1

    def run(self) -> "ProcessHandle":
        """Execução síncrona: start + wait."""
        self.start()
        self.wait()
        return self

    def abort(self, reason: str = "aborted") -> None:
        """Mata o processo (se ainda em execução) e o reapa."""
        if self.status is not ProcessStatus.RUNNING:
            return
        self.failure_reason = reason
        try:
            self._process.kill()
        except ProcessLookupError:
            pass
        self._process.wait()
        self._finalize()

    # ------------------------------------------------------------------
    # Falhas
    # ------------------------------------------------------------------
    def to_failure(self, participant: Optional[str] = None) -> ProcessFailure:
        """Constrói a exceção que descreve a falha deste processo."""
        participant = participant or self.name
        error_output = self.error_output.strip()
        details = {"failure_reason": self.failure_reason, "bytes_in": self.bytes_in}

        if self.failure_reason in ("timeout", "idle_timeout"):
            limit = self.timeout if self.failure_reason == "timeout" else self.idle_timeout
            return ProcessTimeoutError(
                f"Process timed out ('{self.command_line}' exceeded {self.failure_reason} of {limit}s)",
                participant=participant,
                command_line=self.command_line,
                exit_code=self.exit_code,
                error_output=error_output,
                details=details,
            )

        if self.failure_reason == "input_error":
            details["input_error"] = repr(self.input_error)
            return ProcessFailure(
                f"Process failed ('{self.command_line}' input error): {self.input_error}",
                participant=participant,
                command_line=self.command_line,
                exit_code=self.exit_code,
                error_output=error_output,
                details=details,
                hint="A fonte da entrada falhou durante a leitura; nenhum arquivo parcial foi produzido.",
            )

        return ProcessFailure(
            f"Process failed ('{self.command_line}' returned {self.exit_code}): {error_output}",
            participant=participant,
            command_line=self.command_line,
            exit_code=self.exit_code,
            error_output=error_output,
            details=details,
        )

    def assert_success(self, participant: Optional[str] = None) -> None:
        if self.failed:
            raise self.to_failure(participant)

    # ------------------------------------------------------------------
    # I/O
    # ------------------------------------------------------------------
    def _pump(self, timeout: float) -> bool:
        if not self._selector.get_map():
            if timeout:
                time.sleep(timeout)
            return False

        activity = False
        for key, _ in self._selector.select(timeout):
            if self.status is not ProcessStatus.RUNNING:
                break
            if key.data == "stdin":
                activity = self._write_input(key.fileobj) or activity
            else:
                activity = self._read_output(key.fileobj, key.data) or activity
        return activity

    def _write_input(self, pipe: Any) -> bool:
        if not self._pending:
            try:
                chunk = self._input.read(self.chunk_size)
            except Exception as e:
                self.input_error = e
                self.abort("input_error")
                return True

            if chunk is None:
                return False
            if isinstance(chunk, str):
                self.input_error = ContractViolation("Input stream returned str instead of bytes")
                self.abort("input_error")
                return True
            if not chunk:
                self._close_stdin(pipe)
                return False
            self._pending = bytes(chunk)

        try:
            written = os.write(pipe.fileno(), self._pending)
        except BlockingIOError:
            return False
        except BrokenPipeError:
            # O processo fechou o stdin; o término dirá se foi falha.
            self._pending = b""
            self._close_stdin(pipe)
            return False

        self._pending = self._pending[written:]
        self.bytes_in += written
        if written:
            self.last_activity = time.monotonic()
        return written > 0

    def _read_output(self, pipe: Any, role: str) -> bool:
        try:
            data = os.read(pipe.fileno(), self.chunk_size)
        except BlockingIOError:
            return False

        if not data:
            self._selector.unregister(pipe)
            pipe.close()
            return False

        if role == "stdout":
            self.bytes_out += len(data)
            if self.capture_output:
                self._stdout += data
        else:
            self._stderr += data
        self.last_activity = time.monotonic()
        return True

    def _close_stdin(self, pipe: Any) -> None:
        self._selector.unregister(pipe)
        try:
            pipe.close()
        except BrokenPipeError:
            pass

    def _finalize(self) -> None:
        """Drena o restante das saídas e marca o processo como TERMINATED."""
        for key in list(self._selector.get_map().values()):
            if key.data == "stdin":
                self._close_stdin(key.fileobj)
                continue
            while self._read_output(key.fileobj, key.data):
                pass

        for key in list(self._selector.get_map().values()):
            self._selector.unregister(key.fileobj)
            key.fileobj.close()
        self._selector.close()

        self.exit_code = self._process.returncode
        self.finished_at = time.monotonic()
        self.last_activity = self.finished_at
        self._pending = b""
        self.status = ProcessStatus.TERMINATED
