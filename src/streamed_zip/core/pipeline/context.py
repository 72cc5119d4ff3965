# src/streamed_zip/core/pipeline/context.py
"""
Contexto de execução de um build.

Este módulo define o `BuildContext`, a estrutura canônica utilizada para
registrar, de forma estruturada, tudo o que acontece durante um build:
início e término de participantes, transições de estado, falhas e
warnings não fatais (ex.: falha de teardown durante propagação de erro).

Substitui o módulo `logging`: cada instância de `StreamedZipArchive` tem o
seu contexto, e os eventos ficam em memória para inspeção e testes.

Invariantes:
    - Logs sempre incluem `build_id` e `participant`
    - Warnings são agrupados por participante
    - A ordem de `events` reflete a ordem real das chamadas

Limites explícitos:
    - Não executa processos
    - Não persiste dados automaticamente (ver `traceability.manifest`)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List


@dataclass
class BuildContext:
    """
    Contexto de execução compartilhado de um build.

    O BuildContext consolida:
        - identidade do build (build_id, created_at)
        - configuração efetiva
        - metadados livres (ex.: root do workspace)
        - logs estruturados
        - warnings por participante

    Participantes canônicos: "orchestrator", "archiver", "feeder:<entrada>",
    "workspace".
    """
    build_id: str
    created_at: datetime
    config: Dict[str, Any]
    meta: Dict[str, Any] = field(default_factory=dict)

    events: List[Dict[str, Any]] = field(default_factory=list, init=False)
    warnings: Dict[str, List[str]] = field(default_factory=dict, init=False)

    # -----------------------------
    # Logging & warnings
    # -----------------------------
    def log(self, *, participant: str, level: str, message: str, **extra: Any) -> None:
        event = {
            "build_id": self.build_id,
            "participant": participant,
            "level": level,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        event.update(extra)
        self.events.append(event)

    def add_warning(self, *, participant: str, message: str) -> None:
        if participant not in self.warnings:
            self.warnings[participant] = []
        self.warnings[participant].append(message)
        self.log(participant=participant, level="WARNING", message=message)

    def events_for(self, participant: str) -> List[Dict[str, Any]]:
        return [e for e in self.events if e["participant"] == participant]
