# src/streamed_zip/__init__.py
"""
streamed-zip: montagem de arquivos ZIP por streaming, sem disco persistente.

Cada entrada registrada (stream binário ou buffer em memória) recebe um
FIFO próprio num workspace temporário; um processo copiador por entrada
alimenta o FIFO enquanto um único compressor externo consome todos eles
e emite o arquivo no stdout.

Uso típico:

    with open_archive() as archive:
        archive.add_stream("a.txt", b"hello")
        archive.add_stream("dir/b.txt", open("b.bin", "rb"))
        data = archive.build_archive()

Arquitetura em alto nível:
    - archive           → fachada pública (StreamedZipArchive, open_archive, build_zip)
    - core.workspace    → diretório privado e contenção de caminhos
    - core.pipeline     → tipos, contexto de build e registro de entradas
    - core.engine       → FIFOs, Feeders, Archiver e Orchestrator
    - core.traceability → Manifest de build

Limites explícitos:
    - Requer um ambiente POSIX com `zip` (Info-ZIP) e `tee`
    - Não lê nem extrai arquivos ZIP
"""

__version__ = "0.1.0"

from .archive import StreamedZipArchive, build_zip, open_archive
from .core.exceptions import (
    ContractViolation,
    DuplicateEntryError,
    PathEscapeError,
    ProcessFailure,
    ProcessTimeoutError,
    ProvisioningError,
    StreamedZipException,
    TeardownError,
    UnsupportedEnvironmentError,
)
from .core.pipeline.types import BuildResult

__all__ = [
    "BuildResult",
    "ContractViolation",
    "DuplicateEntryError",
    "PathEscapeError",
    "ProcessFailure",
    "ProcessTimeoutError",
    "ProvisioningError",
    "StreamedZipArchive",
    "StreamedZipException",
    "TeardownError",
    "UnsupportedEnvironmentError",
    "__version__",
    "build_zip",
    "open_archive",
]
