# src/streamed_zip/archive.py
"""
Fachada pública do streamed-zip.

`StreamedZipArchive` é dona de um Workspace privado e de um registro de
entradas. O ciclo de vida é:

    1. construção: resolve a configuração, verifica o ambiente e cria o workspace
    2. `add_stream()` (alias `register`): registra entradas, sem efeitos no disco
    3. `build_archive()` (alias `build`): executa o build e retorna os bytes do ZIP
    4. `close()`: remove o workspace (idempotente)

O protocolo de context manager e `open_archive()` garantem o passo 4.

Decisões arquiteturais:
    - Argumentos do construtor têm precedência sobre o arquivo de configuração
    - Uma instância monta no máximo um arquivo
    - Falhas de teardown durante a propagação de outro erro viram warning no
      BuildContext; fora disso levantam `TeardownError`

Limites explícitos:
    - Não remove o workspace no garbage collector; use `close()` ou `with`
"""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Sequence, Tuple, Union

from . import __version__
from .core.config.loader import load_config
from .core.config.settings import ArchiveSettings, CommandSpec, normalize_command
from .core.engine.capabilities import is_supported as _is_supported
from .core.engine.capabilities import probe
from .core.engine.orchestrator import BuildOrchestrator
from .core.exceptions import ContractViolation, TeardownError
from .core.pipeline.context import BuildContext
from .core.pipeline.registry import EntryRegistry
from .core.pipeline.types import BuildResult, Entry
from .core.traceability.manifest import BuildManifest
from .core.workspace import Workspace


WORKSPACE_PARTICIPANT = "workspace"


def _constructor_overrides(
    *,
    tmp_path: Optional[Union[str, Path]],
    build_timeout: Optional[float],
    zip_command: Optional[CommandSpec],
    copier_command: Optional[CommandSpec],
    idle_timeout: Optional[float],
) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if tmp_path is not None:
        overrides.setdefault("archive", {})["tmp_path"] = str(tmp_path)
    if build_timeout is not None:
        overrides.setdefault("archive", {})["build_timeout"] = build_timeout
    if zip_command is not None:
        overrides.setdefault("commands", {})["zip"] = list(normalize_command(zip_command, key="zip_command"))
    if copier_command is not None:
        overrides.setdefault("commands", {})["copier"] = list(
            normalize_command(copier_command, key="copier_command")
        )
    if idle_timeout is not None:
        overrides.setdefault("feeder", {})["idle_timeout"] = idle_timeout
    return overrides


class StreamedZipArchive:
    """
    Monta um arquivo ZIP a partir de fontes registradas, inteiramente por streaming.

    Args:
        tmp_path: diretório base do workspace (default: `archive.tmp_path`).
        build_timeout: timeout total do compressor em segundos (None = sem limite).
        zip_command: compressor (binário ou argv); default `commands.zip`.
        copier_command: copiador de stream (binário ou argv); default `commands.copier`.
        idle_timeout: inatividade máxima de um Feeder; default `feeder.idle_timeout`.
        config_path: arquivo local (YAML/JSON) mesclado sobre os defaults.
        settings: settings já resolvidos (ignora config_path e demais overrides).
        check_support: executa o probe de ambiente antes de criar o workspace.

    Raises:
        UnsupportedEnvironmentError: Se `check_support` e o ambiente não suportar builds.
        ProvisioningError: Se o workspace não puder ser criado.
        ConfigError: Se a configuração for inválida.
    """

    def __init__(
        self,
        tmp_path: Optional[Union[str, Path]] = None,
        build_timeout: Optional[float] = None,
        *,
        zip_command: Optional[CommandSpec] = None,
        copier_command: Optional[CommandSpec] = None,
        idle_timeout: Optional[float] = None,
        config_path: Optional[Union[str, Path]] = None,
        settings: Optional[ArchiveSettings] = None,
        check_support: bool = True,
    ) -> None:
        if settings is None:
            config = load_config(
                local_path=config_path,
                overrides=_constructor_overrides(
                    tmp_path=tmp_path,
                    build_timeout=build_timeout,
                    zip_command=zip_command,
                    copier_command=copier_command,
                    idle_timeout=idle_timeout,
                ),
            )
            settings = ArchiveSettings.from_config(config)
        self.settings = settings

        if check_support:
            probe(
                zip_command=settings.zip_command,
                copier_command=settings.copier_command,
                tmp_path=settings.tmp_path,
            )

        self.workspace = Workspace.create(settings.tmp_path, prefix=settings.workspace_prefix)
        self.registry = EntryRegistry(self.workspace)
        self.context = BuildContext(
            build_id=uuid.uuid4().hex,
            created_at=datetime.now(timezone.utc),
            config=settings.to_config(),
            meta={"workspace": self.workspace.root, "version": __version__},
        )
        self.manifest: Optional[BuildManifest] = None
        self.result: Optional[BuildResult] = None
        self._built = False

    # ------------------------------------------------------------------
    # Registro
    # ------------------------------------------------------------------
    def add_stream(self, relative_path: str, source: Any) -> Entry:
        """
        Registra uma entrada do arquivo.

        Args:
            relative_path: nome da entrada no arquivo (relativo, sem `..`).
            source: stream binário legível ou buffer de bytes.

        Raises:
            ContractViolation: Fonte inválida, caminho inválido ou instância fechada.
            DuplicateEntryError: Caminho já registrado ou existente no workspace.
            PathEscapeError: Caminho resolve para fora do workspace.
        """
        self._ensure_open()
        entry = self.registry.register(relative_path, source)
        self.context.log(
            participant="registry",
            level="INFO",
            message=f"registered {entry.relative_path}",
            kind=entry.kind.value,
        )
        return entry

    register = add_stream

    @property
    def entries(self) -> Tuple[str, ...]:
        return tuple(self.registry.paths())

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------
    def build_archive(self) -> bytes:
        """
        Executa o build e retorna os bytes do arquivo ZIP.

        Raises:
            ContractViolation: Instância fechada ou build já executado.
            ProvisioningError: Falha ao criar os FIFOs.
            ProcessFailure: Falha de qualquer participante (inclui timeouts).
        """
        self._ensure_open()
        if self._built:
            raise ContractViolation(
                "Archive was already built by this instance",
                details={"build_id": self.context.build_id},
                hint="Crie uma nova instância para montar outro arquivo.",
            )
        self._built = True

        orchestrator = BuildOrchestrator(
            workspace=self.workspace,
            registry=self.registry,
            settings=self.settings,
            context=self.context,
            version=__version__,
        )
        self.manifest = orchestrator.manifest
        self.result = orchestrator.run()
        return self.result.data

    build = build_archive

    @staticmethod
    def is_supported(
        zip_command: Sequence[str] = ("zip",),
        copier_command: Sequence[str] = ("tee",),
        *,
        self_test: bool = True,
    ) -> bool:
        """Probe de capacidades: compressor, copiador e FIFOs disponíveis."""
        return _is_supported(
            zip_command=tuple(normalize_command(zip_command, key="zip_command")),
            copier_command=tuple(normalize_command(copier_command, key="copier_command")),
            self_test=self_test,
        )

    # ------------------------------------------------------------------
    # Ciclo de vida
    # ------------------------------------------------------------------
    @property
    def closed(self) -> bool:
        return self.workspace.removed

    def close(self) -> bool:
        """
        Remove o workspace.

        Returns:
            bool: False quando já havia sido removido.

        Raises:
            TeardownError: Se a remoção falhar.
        """
        removed = self.workspace.teardown()
        if removed:
            self.context.log(participant=WORKSPACE_PARTICIPANT, level="INFO", message="workspace removed")
        return removed

    teardown = close

    def __enter__(self) -> "StreamedZipArchive":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self.close()
            return False

        # Não sobrescrever o erro em propagação
        try:
            self.close()
        except TeardownError as e:
            self.context.add_warning(participant=WORKSPACE_PARTICIPANT, message=str(e))
        return False

    def _ensure_open(self) -> None:
        if self.closed:
            raise ContractViolation(
                "Archive is closed",
                details={"root": self.workspace.root},
            )


@contextmanager
def open_archive(*args: Any, **kwargs: Any) -> Iterator[StreamedZipArchive]:
    """Aquisição com escopo: o workspace é removido ao sair do bloco."""
    archive = StreamedZipArchive(*args, **kwargs)
    with archive:
        yield archive


def build_zip(
    entries: Union[Mapping[str, Any], Iterable[Tuple[str, Any]]],
    **options: Any,
) -> bytes:
    """
    Atalho: registra `entries` (na ordem dada) e retorna os bytes do ZIP.

    `options` são repassados ao construtor de `StreamedZipArchive`.
    """
    items = entries.items() if isinstance(entries, Mapping) else entries
    with open_archive(**options) as archive:
        for relative_path, source in items:
            archive.add_stream(relative_path, source)
        return archive.build_archive()
