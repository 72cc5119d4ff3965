# src/streamed_zip/core/traceability/manifest.py
"""
Build Manifest v1: registro auditável de uma montagem de arquivo.

Responde, depois do fato, a três perguntas sobre um build:
    - o que foi pedido: `inputs` (hash da configuração, entradas na ordem de
      registro, fingerprint dos nomes)
    - quem participou: `participants`, um registro por processo ("archiver",
      "feeder:<entrada>") com linha de comando, código de saída e bytes
    - em que ordem: `events`, transições de estado do build e início/fim/falha
      de cada participante

O Orchestrator chama estas funções a cada passo; nada aqui observa processos
por conta própria, e um Manifest recém-criado não tem eventos.

Decisões arquiteturais:
    - Timestamps em UTC, ISO 8601 (naive é tratado como UTC)
    - Persistência em JSON com chaves ordenadas e indentação fixa, para que
      dois builds idênticos gerem arquivos comparáveis por diff
    - `from_dict` é permissivo: seções ausentes viram vazias

Limites explícitos:
    - Não versiona nem migra o schema
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union


def _as_utc(dt: datetime) -> datetime:
    """Normaliza um timestamp para timezone-aware em UTC (naive é assumido como UTC)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _iso(dt: datetime) -> str:
    return _as_utc(dt).isoformat()


def _elapsed_ms(start: datetime, end: datetime) -> int:
    delta = _as_utc(end) - _as_utc(start)
    return max(0, int(delta.total_seconds() * 1000))


@dataclass
class BuildManifest:
    """
    Estado serializável de um build (ver docstring do módulo).

    Campos principais:
        - build: metadados do build (build_id, started_at, version, status)
        - inputs: config_hash, entradas (path + kind) na ordem de registro e seu fingerprint
        - participants: estado incremental de cada participante
        - events: transições de estado e eventos de participantes

    `participants` é indexado pelo identificador do participante; `events`
    preserva a ordem de chamada.
    """

    build: Dict[str, Any]
    inputs: Dict[str, Any]
    participants: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Cópia serializável e independente do estado interno."""
        return {
            "build": dict(self.build),
            "inputs": json.loads(json.dumps(self.inputs)),
            "participants": {k: dict(v) for k, v in self.participants.items()},
            "events": [dict(e) for e in self.events],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BuildManifest":
        """Reconstrução permissiva e estrutural (campos ausentes → vazios)."""
        return cls(
            build=dict(data.get("build", {})),
            inputs=dict(data.get("inputs", {})),
            participants={k: dict(v) for k, v in (data.get("participants", {}) or {}).items()},
            events=[dict(e) for e in (data.get("events", []) or [])],
        )


def create_manifest(
    *,
    build_id: str,
    started_at: datetime,
    version: str,
    config_hash: str,
    entries: Sequence[Dict[str, Any]] = (),
) -> BuildManifest:
    """
    Cria o Manifest inicial de um build.

    Args:
        build_id: Identificador único do build.
        started_at: Timestamp de início do build.
        version: Versão do streamed-zip utilizada.
        config_hash: Hash da configuração efetiva.
        entries: Entradas do build (ex.: {"path": "a.txt", "kind": "buffer"}).

    Returns:
        BuildManifest: Instância inicializada.
    """
    return BuildManifest(
        build={
            "build_id": build_id,
            "started_at": _iso(started_at),
            "version": version,
            "status": "idle",
        },
        inputs={
            "config_hash": config_hash,
            "entries": [dict(e) for e in entries],
        },
    )


def add_event(
    manifest: BuildManifest,
    *,
    event_type: str,
    ts: datetime,
    participant: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Adiciona um evento explícito ao Event Log do Manifest.

    Invariantes:
        - Cada chamada adiciona exatamente um evento
        - Eventos não são reordenados ou deduplicados
    """
    ev: Dict[str, Any] = {"event_type": event_type, "timestamp": _iso(ts)}
    if participant is not None:
        ev["participant"] = participant
    if payload is not None:
        ev["payload"] = payload
    manifest.events.append(ev)


def build_state_changed(manifest: BuildManifest, *, state: str, ts: datetime) -> None:
    """Registra transição de estado do build (ex.: provisioning, running)."""
    manifest.build["status"] = state
    if state in ("done", "failed"):
        manifest.build["finished_at"] = _iso(ts)
        started_iso = manifest.build.get("started_at")
        started_dt = datetime.fromisoformat(started_iso) if started_iso else ts
        manifest.build["duration_ms"] = _elapsed_ms(started_dt, ts)
    add_event(manifest, event_type="build_state", ts=ts, payload={"state": state})


def participant_started(
    manifest: BuildManifest,
    *,
    participant: str,
    command_line: str,
    ts: datetime,
) -> None:
    """Registra o início de um participante (status `running`)."""
    manifest.participants.setdefault(participant, {})
    manifest.participants[participant].update(
        {
            "participant": participant,
            "command_line": command_line,
            "status": "running",
            "started_at": _iso(ts),
        }
    )
    add_event(manifest, event_type="participant_started", ts=ts, participant=participant)


def participant_finished(
    manifest: BuildManifest,
    *,
    participant: str,
    ts: datetime,
    exit_code: Optional[int],
    bytes_in: int = 0,
    bytes_out: int = 0,
) -> None:
    """Registra o término bem-sucedido de um participante, com duração."""
    p = manifest.participants.setdefault(participant, {"participant": participant})
    started_iso = p.get("started_at")
    started_dt = datetime.fromisoformat(started_iso) if started_iso else ts
    p.update(
        {
            "status": "success",
            "finished_at": _iso(ts),
            "duration_ms": _elapsed_ms(started_dt, ts),
            "exit_code": exit_code,
            "bytes_in": bytes_in,
            "bytes_out": bytes_out,
        }
    )
    add_event(
        manifest,
        event_type="participant_finished",
        ts=ts,
        participant=participant,
        payload={"exit_code": exit_code, "duration_ms": p["duration_ms"]},
    )


def participant_failed(
    manifest: BuildManifest,
    *,
    participant: str,
    ts: datetime,
    error: Dict[str, Any],
) -> None:
    """Registra a falha de um participante com o payload de erro canônico."""
    p = manifest.participants.setdefault(participant, {"participant": participant})
    p.update(
        {
            "status": "failed",
            "finished_at": _iso(ts),
            "error": error,
        }
    )
    add_event(manifest, event_type="participant_failed", ts=ts, participant=participant, payload={"error": error})


def save_manifest(manifest: BuildManifest, path: Union[str, Path]) -> None:
    """
    Persiste um Manifest em JSON determinístico (chaves ordenadas).

    Raises:
        OSError: Em caso de falha ao criar diretórios ou escrever o arquivo.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(manifest.to_dict(), ensure_ascii=False, indent=2, sort_keys=True), encoding="utf-8")


def load_manifest(path: Union[str, Path]) -> BuildManifest:
    """Carrega um Manifest persistido (round-trip de `save_manifest`)."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return BuildManifest.from_dict(data)
