# src/streamed_zip/core/config/settings.py
"""
Settings tipados do streamed-zip.

Converte a configuração efetiva (dict resolvido pelo loader) em uma
estrutura imutável e validada, consumida pelo Workspace, pelos
participantes (Feeder/Archiver) e pelo Orchestrator.

Decisões arquiteturais:
    - Comandos externos são configuração injetada, nunca constantes de módulo
    - Um comando pode ser declarado como string (binário) ou lista (argv)
    - Valores inválidos geram `InvalidSettingError` (sem correção silenciosa)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple, Union

from .errors import InvalidSettingError


CommandSpec = Union[str, Sequence[str]]


def _section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = config.get(name) or {}
    if not isinstance(value, dict):
        raise InvalidSettingError(f"Seção '{name}' deve ser dict, recebido: {type(value).__name__}")
    return value


def normalize_command(value: Any, *, key: str) -> Tuple[str, ...]:
    """Normaliza um comando externo para argv (tupla de strings não vazia)."""
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)) or not value:
        raise InvalidSettingError(f"'{key}' deve ser um comando não vazio")
    if not all(isinstance(part, str) and part for part in value):
        raise InvalidSettingError(f"'{key}' deve conter apenas strings não vazias")
    return tuple(value)


def _optional_seconds(value: Any, *, key: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise InvalidSettingError(f"'{key}' deve ser um número positivo ou null, recebido: {value!r}")
    return float(value)


def _seconds(value: Any, *, key: str) -> float:
    seconds = _optional_seconds(value, key=key)
    if seconds is None:
        raise InvalidSettingError(f"'{key}' é obrigatório")
    return seconds


@dataclass(frozen=True)
class ArchiveSettings:
    """
    Configuração efetiva e validada de uma instância de `StreamedZipArchive`.

    Campos:
        - tmp_path: diretório base do workspace privado
        - workspace_prefix: prefixo do nome único do workspace
        - build_timeout: timeout total do Archiver (None = sem limite)
        - zip_command: argv do compressor
        - copier_command: argv do copiador de stream (Feeder)
        - idle_timeout: intervalo máximo sem atividade de um Feeder
        - chunk_size: tamanho dos blocos lidos das fontes
        - poll_interval / max_poll_interval: período de checagem de liveness
        - manifest_path: destino opcional do Manifest de build
    """

    tmp_path: str = "/tmp"
    workspace_prefix: str = "streamed-zip-archive-"
    build_timeout: Optional[float] = None
    zip_command: Tuple[str, ...] = ("zip",)
    copier_command: Tuple[str, ...] = ("tee",)
    idle_timeout: Optional[float] = 2.0
    chunk_size: int = 65536
    poll_interval: float = 0.001
    max_poll_interval: float = 0.05
    manifest_path: Optional[str] = None

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "ArchiveSettings":
        """Constrói settings a partir da configuração efetiva (ver `load_config`)."""
        if not isinstance(config, dict):
            raise InvalidSettingError(f"Config deve ser dict, recebido: {type(config).__name__}")

        archive = _section(config, "archive")
        commands = _section(config, "commands")
        feeder = _section(config, "feeder")
        engine = _section(config, "engine")
        traceability = _section(config, "traceability")

        tmp_path = archive.get("tmp_path", cls.tmp_path)
        if not isinstance(tmp_path, str) or not tmp_path:
            raise InvalidSettingError("'archive.tmp_path' deve ser uma string não vazia")

        prefix = archive.get("workspace_prefix", cls.workspace_prefix)
        if not isinstance(prefix, str) or "/" in prefix:
            raise InvalidSettingError("'archive.workspace_prefix' deve ser string sem '/'")

        chunk_size = feeder.get("chunk_size", cls.chunk_size)
        if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size <= 0:
            raise InvalidSettingError(f"'feeder.chunk_size' deve ser inteiro positivo, recebido: {chunk_size!r}")

        poll_interval = _seconds(engine.get("poll_interval", cls.poll_interval), key="engine.poll_interval")
        max_poll_interval = _seconds(
            engine.get("max_poll_interval", cls.max_poll_interval), key="engine.max_poll_interval"
        )
        if max_poll_interval < poll_interval:
            raise InvalidSettingError("'engine.max_poll_interval' deve ser >= 'engine.poll_interval'")

        manifest_path = traceability.get("manifest_path")
        if manifest_path is not None and (not isinstance(manifest_path, str) or not manifest_path):
            raise InvalidSettingError("'traceability.manifest_path' deve ser string ou null")

        return cls(
            tmp_path=tmp_path,
            workspace_prefix=prefix,
            build_timeout=_optional_seconds(archive.get("build_timeout"), key="archive.build_timeout"),
            zip_command=normalize_command(commands.get("zip", list(cls.zip_command)), key="commands.zip"),
            copier_command=normalize_command(
                commands.get("copier", list(cls.copier_command)), key="commands.copier"
            ),
            idle_timeout=_optional_seconds(feeder.get("idle_timeout", cls.idle_timeout), key="feeder.idle_timeout"),
            chunk_size=chunk_size,
            poll_interval=poll_interval,
            max_poll_interval=max_poll_interval,
            manifest_path=manifest_path,
        )

    def to_config(self) -> Dict[str, Any]:
        """Representação serializável (mesmo shape do arquivo de defaults)."""
        return {
            "archive": {
                "tmp_path": self.tmp_path,
                "workspace_prefix": self.workspace_prefix,
                "build_timeout": self.build_timeout,
            },
            "commands": {
                "zip": list(self.zip_command),
                "copier": list(self.copier_command),
            },
            "feeder": {
                "idle_timeout": self.idle_timeout,
                "chunk_size": self.chunk_size,
            },
            "engine": {
                "poll_interval": self.poll_interval,
                "max_poll_interval": self.max_poll_interval,
            },
            "traceability": {
                "manifest_path": self.manifest_path,
            },
        }
