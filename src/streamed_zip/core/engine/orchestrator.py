# src/streamed_zip/core/engine/orchestrator.py
"""
Orchestrator: máquina de estados e loop de liveness de um build.

Protocolo de build:
    1. PROVISIONING: todos os FIFOs são criados antes de qualquer processo
    2. RUNNING: o Archiver inicia (modo pipe, sem bloquear) e em seguida
       um Feeder por entrada, na ordem de registro
    3. Loop de polling: `service()` em cada participante (checar status é
       servir I/O); qualquer falha aborta o build inteiro
    4. DRAINING: todos os Feeders terminaram; o Archiver finaliza o arquivo
    5. REAPING: códigos de saída de todos os participantes são validados
    6. DONE com `BuildResult`, ou FAILED levantando `ProcessFailure`

Período de checagem de liveness:
    O loop dorme entre iterações por um intervalo adaptativo. Começa em
    `poll_interval` e dobra (até `max_poll_interval`) enquanto nenhum
    participante apresenta atividade; volta ao mínimo na primeira atividade.

Idle timeout de Feeders:
    Um Feeder parado pode estar apenas enfileirado: o compressor consome os
    FIFOs na ordem listada e ainda não abriu o seu. Por isso um Feeder só é
    considerado travado quando nenhum participante apresenta atividade no
    mesmo intervalo (estagnação global).

Decisões arquiteturais:
    - Um único thread coordena N+1 processos; só bloqueia em sleeps limitados
    - Em falha, todo participante ainda em execução é morto e reaped antes
      da exceção propagar; nenhum arquivo parcial é retornado
    - Causa raiz reportada: erro de leitura de fonte > Archiver > demais Feeders
    - Zero entradas: o compressor recusa entrada vazia, então o arquivo ZIP
      vazio é produzido em processo, sem iniciar processos
    - Eventos vão para o BuildContext e para o Manifest de build; falha ao
      gravar o Manifest é warning, nunca a exceção do build

Limites explícitos:
    - Não cria nem remove o Workspace (ver `archive.StreamedZipArchive`)
    - Não faz retries
"""

from __future__ import annotations

import io
import time
import uuid
import zipfile
from datetime import datetime, timezone
from typing import Dict, List, Optional

from streamed_zip.core.config.hashing import compute_config_hash, compute_entries_fingerprint
from streamed_zip.core.config.settings import ArchiveSettings
from streamed_zip.core.errors import exception_to_payload
from streamed_zip.core.exceptions import ContractViolation, ProcessFailure
from streamed_zip.core.pipeline.context import BuildContext
from streamed_zip.core.pipeline.registry import EntryRegistry
from streamed_zip.core.pipeline.types import BuildResult, BuildState, Entry
from streamed_zip.core.traceability.manifest import (
    BuildManifest,
    build_state_changed,
    create_manifest,
    participant_failed,
    participant_finished,
    participant_started,
    save_manifest,
)
from streamed_zip.core.workspace import Workspace

from .archiver import ARCHIVER_PARTICIPANT, start_archiver
from .channels import provision
from .feeder import start_feeder
from .process import ProcessHandle


ORCHESTRATOR_PARTICIPANT = "orchestrator"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def empty_archive() -> bytes:
    """Arquivo ZIP válido sem entradas (apenas o end-of-central-directory)."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w"):
        pass
    return buffer.getvalue()


class BuildOrchestrator:
    """
    Conduz um único build sobre um Workspace e um EntryRegistry.

    Uma instância executa no máximo um build: `run()` sela o registry e
    deixa o orchestrator em um estado terminal (DONE ou FAILED).
    """

    def __init__(
        self,
        *,
        workspace: Workspace,
        registry: EntryRegistry,
        settings: Optional[ArchiveSettings] = None,
        context: Optional[BuildContext] = None,
        version: str = "0.0.0",
    ) -> None:
        self.workspace = workspace
        self.registry = registry
        self.settings = settings or ArchiveSettings()
        self.version = version

        config = self.settings.to_config()
        self.ctx = context or BuildContext(
            build_id=uuid.uuid4().hex,
            created_at=_now(),
            config=config,
            meta={"workspace": workspace.root},
        )
        self.manifest: BuildManifest = create_manifest(
            build_id=self.ctx.build_id,
            started_at=self.ctx.created_at,
            version=version,
            config_hash=compute_config_hash(config),
        )

        self.state = BuildState.IDLE
        self.archiver: Optional[ProcessHandle] = None
        self.feeders: Dict[str, ProcessHandle] = {}
        self._recorded: set = set()

    # ------------------------------------------------------------------
    # Estado
    # ------------------------------------------------------------------
    def _transition(self, state: BuildState) -> None:
        self.state = state
        build_state_changed(self.manifest, state=state.value, ts=_now())
        self.ctx.log(participant=ORCHESTRATOR_PARTICIPANT, level="INFO", message=f"state={state.value}")

    def _participants(self) -> List[ProcessHandle]:
        handles: List[ProcessHandle] = []
        if self.archiver is not None:
            handles.append(self.archiver)
        handles.extend(self.feeders.values())
        return handles

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------
    def run(self) -> BuildResult:
        """
        Executa o build completo.

        Returns:
            BuildResult: bytes do arquivo ZIP e metadados do build.

        Raises:
            ContractViolation: Se este orchestrator já executou um build.
            ProvisioningError: Se a criação dos canais falhar.
            ProcessFailure: Se qualquer participante falhar (inclui timeouts).
        """
        if self.state is not BuildState.IDLE:
            raise ContractViolation(
                "Build already executed by this orchestrator",
                details={"state": self.state.value},
            )

        self.registry.seal()
        entries = self.registry.list()
        self.manifest.inputs["entries"] = [{"path": e.relative_path, "kind": e.kind.value} for e in entries]
        self.manifest.inputs["entries_fingerprint"] = compute_entries_fingerprint(e.relative_path for e in entries)
        started = time.monotonic()

        try:
            if not entries:
                data = empty_archive()
                self.ctx.log(
                    participant=ORCHESTRATOR_PARTICIPANT,
                    level="INFO",
                    message="no entries registered; empty archive produced without processes",
                )
            else:
                data = self._run_pipeline(entries)
        except Exception as e:
            self._abort_all()
            self._transition(BuildState.FAILED)
            self.ctx.log(
                participant=getattr(e, "participant", ORCHESTRATOR_PARTICIPANT),
                level="ERROR",
                message=str(e),
                error=exception_to_payload(e).to_dict(),
            )
            self._save_manifest()
            raise
        finally:
            # Nenhum processo sobrevive ao build (inclusive em KeyboardInterrupt)
            self._abort_all()

        self._transition(BuildState.DONE)
        self._save_manifest()
        return BuildResult(
            data=data,
            build_id=self.ctx.build_id,
            entries=tuple(e.relative_path for e in entries),
            duration_ms=int((time.monotonic() - started) * 1000),
        )

    def _run_pipeline(self, entries: List[Entry]) -> bytes:
        s = self.settings

        self._transition(BuildState.PROVISIONING)
        channels = provision(entries)
        self.ctx.log(
            participant=ORCHESTRATOR_PARTICIPANT,
            level="INFO",
            message=f"provisioned {len(channels)} channels",
            channels=channels.paths(),
        )

        self._transition(BuildState.RUNNING)
        self.archiver = start_archiver(
            channels.paths(),
            pipe_mode=True,
            working_directory=self.workspace.root,
            zip_command=s.zip_command,
            timeout=s.build_timeout,
        )
        self._on_started(self.archiver)

        for entry in entries:
            handle = start_feeder(
                entry,
                working_directory=self.workspace.root,
                copier_command=s.copier_command,
                idle_timeout=s.idle_timeout,
                chunk_size=s.chunk_size,
            )
            self.feeders[entry.participant_id] = handle
            self._on_started(handle)

        self._poll()

        self._transition(BuildState.REAPING)
        self.archiver.wait()
        self._record_terminations()
        if any(h.failed for h in self._participants()):
            raise self._root_cause()
        return self.archiver.output

    # ------------------------------------------------------------------
    # Loop de liveness
    # ------------------------------------------------------------------
    def _poll(self) -> None:
        s = self.settings
        interval = s.poll_interval

        while True:
            activity = False
            for handle in self._participants():
                activity = handle.service() or activity

            self._check_stalls()
            self._record_terminations()

            if any(h.failed for h in self._participants()):
                # Um Archiver que acabou de sair ainda não foi observado:
                # serve-o uma última vez para atribuir a causa corretamente.
                self.archiver.service()
                self._record_terminations()
                raise self._root_cause()

            if not any(h.running for h in self._participants()):
                return

            if self.state is BuildState.RUNNING and all(h.terminated for h in self.feeders.values()):
                self._transition(BuildState.DRAINING)

            if activity:
                interval = s.poll_interval
            else:
                interval = min(interval * 2, s.max_poll_interval)
            time.sleep(interval)

    def _global_idle(self) -> float:
        """Tempo desde a última atividade de qualquer participante."""
        marks = [h.last_activity for h in self._participants() if h.last_activity is not None]
        if not marks:
            return 0.0
        return max(0.0, time.monotonic() - max(marks))

    def _check_stalls(self) -> None:
        global_idle = self._global_idle()
        for handle in self.feeders.values():
            if not handle.idle_expired or global_idle <= handle.idle_timeout:
                continue
            self.ctx.log(
                participant=handle.name,
                level="WARNING",
                message="feeder stalled with no activity in the build",
                idle_for=handle.idle_for,
                global_idle_for=global_idle,
            )
            handle.abort("idle_timeout")

    def _root_cause(self) -> ProcessFailure:
        """Seleciona a falha reportada (fonte > Archiver > demais Feeders)."""
        for handle in self.feeders.values():
            if handle.failure_reason == "input_error":
                return handle.to_failure()

        if self.archiver is not None and self.archiver.failed and self.archiver.failure_reason != "aborted":
            return self.archiver.to_failure(ARCHIVER_PARTICIPANT)

        for handle in self.feeders.values():
            if handle.failed and handle.failure_reason != "aborted":
                return handle.to_failure()

        for handle in self._participants():
            if handle.failed:
                return handle.to_failure()
        return self.archiver.to_failure(ARCHIVER_PARTICIPANT)

    # ------------------------------------------------------------------
    # Rastreabilidade e abort
    # ------------------------------------------------------------------
    def _on_started(self, handle: ProcessHandle) -> None:
        participant_started(self.manifest, participant=handle.name, command_line=handle.command_line, ts=_now())
        self.ctx.log(
            participant=handle.name,
            level="INFO",
            message="started",
            command_line=handle.command_line,
            pid=handle.pid,
        )

    def _record_terminations(self) -> None:
        for handle in self._participants():
            if not handle.terminated or handle.name in self._recorded:
                continue
            self._recorded.add(handle.name)

            if handle.successful:
                participant_finished(
                    self.manifest,
                    participant=handle.name,
                    ts=_now(),
                    exit_code=handle.exit_code,
                    bytes_in=handle.bytes_in,
                    bytes_out=handle.bytes_out,
                )
                self.ctx.log(
                    participant=handle.name,
                    level="INFO",
                    message="terminated",
                    exit_code=handle.exit_code,
                    duration_ms=int(handle.duration * 1000),
                )
                continue

            error = exception_to_payload(handle.to_failure()).to_dict()
            participant_failed(self.manifest, participant=handle.name, ts=_now(), error=error)
            self.ctx.log(
                participant=handle.name,
                level="ERROR",
                message="failed",
                exit_code=handle.exit_code,
                failure_reason=handle.failure_reason,
                error_output=handle.error_output,
            )

    def _abort_all(self) -> None:
        for handle in self._participants():
            if handle.running:
                handle.abort("aborted")
        self._record_terminations()

    def _save_manifest(self) -> None:
        """Persiste o Manifest; uma falha de escrita vira warning e não substitui o resultado do build."""
        path = self.settings.manifest_path
        if path is None:
            return
        try:
            save_manifest(self.manifest, path)
        except OSError as e:
            self.ctx.add_warning(
                participant=ORCHESTRATOR_PARTICIPANT,
                message=f"manifest not saved to {path}: {e}",
            )
