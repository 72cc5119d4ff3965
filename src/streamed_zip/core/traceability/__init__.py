# src/streamed_zip/core/traceability/__init__.py
"""
Rastreabilidade de builds do streamed-zip.

Este pacote expõe o Build Manifest v1: registro determinístico,
serializável e auditável de um build (entradas, participantes e
Event Log ordenado).
"""

from .manifest import (
    BuildManifest,
    add_event,
    build_state_changed,
    create_manifest,
    load_manifest,
    participant_failed,
    participant_finished,
    participant_started,
    save_manifest,
)

__all__ = [
    "BuildManifest",
    "add_event",
    "build_state_changed",
    "create_manifest",
    "load_manifest",
    "participant_failed",
    "participant_finished",
    "participant_started",
    "save_manifest",
]
