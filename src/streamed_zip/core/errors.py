"""
Catálogo de erros do streamed-zip: payloads serializáveis e códigos estáveis.

Este módulo define o padrão canônico de erros do streamed-zip.
Erros são registrados no Manifest de build e devem ser:

- explícitos
- serializáveis
- rastreáveis
- acionáveis

Nenhum build com falha produz arquivo parcial.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from .exceptions import (
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


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ZipErrorPayload:
    """
    Payload canônico de erro do streamed-zip.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem curta, humana e objetiva
    - details: dados estruturados relevantes para diagnóstico
    - hint: ação sugerida ao operador (onde corrigir)
    """

    type: str
    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo canônico de tipos de erro (v1)
# ---------------------------------------------------------------------------

# Registro de entradas
CONTRACT_VIOLATION = "CONTRACT_VIOLATION"
DUPLICATE_ENTRY = "DUPLICATE_ENTRY"
PATH_ESCAPE = "PATH_ESCAPE"

# Workspace / ambiente
PROVISIONING_FAILED = "PROVISIONING_FAILED"
TEARDOWN_FAILED = "TEARDOWN_FAILED"
UNSUPPORTED_ENVIRONMENT = "UNSUPPORTED_ENVIRONMENT"

# Processos / Engine
PROCESS_FAILED = "PROCESS_FAILED"
PROCESS_TIMEOUT = "PROCESS_TIMEOUT"
ENGINE_EXECUTION_ERROR = "ENGINE_EXECUTION_ERROR"


# Ordem importa: subclasses antes das bases.
_EXCEPTION_CODES = (
    (ProcessTimeoutError, PROCESS_TIMEOUT),
    (ProcessFailure, PROCESS_FAILED),
    (PathEscapeError, PATH_ESCAPE),
    (DuplicateEntryError, DUPLICATE_ENTRY),
    (ContractViolation, CONTRACT_VIOLATION),
    (ProvisioningError, PROVISIONING_FAILED),
    (TeardownError, TEARDOWN_FAILED),
    (UnsupportedEnvironmentError, UNSUPPORTED_ENVIRONMENT),
)


# ---------------------------------------------------------------------------
# Helpers de fábrica
# ---------------------------------------------------------------------------

def engine_execution_error(
    *,
    exc_type: Optional[str] = None,
    exc_message: Optional[str] = None,
    hint: str = "Verifique o stacktrace e o Manifest do build para diagnosticar a falha.",
) -> ZipErrorPayload:
    return ZipErrorPayload(
        type=ENGINE_EXECUTION_ERROR,
        message="Falha inesperada durante a montagem do arquivo",
        details={
            "exc_type": exc_type,
            "exc_message": exc_message,
        },
        hint=hint,
    )


def exception_to_payload(exc: BaseException) -> ZipErrorPayload:
    """Converte exceções em ZipErrorPayload (serializável, acionável).

    Regras:
    - StreamedZipException: código estável pelo tipo + details/hint da exceção.
    - Outras exceções: ENGINE_EXECUTION_ERROR sem expor stack trace.
    """
    if isinstance(exc, StreamedZipException):
        code = ENGINE_EXECUTION_ERROR
        for exc_type, candidate in _EXCEPTION_CODES:
            if isinstance(exc, exc_type):
                code = candidate
                break
        return ZipErrorPayload(
            type=code,
            message=exc.message or "Erro de build",
            details=dict(exc.details),
            hint=exc.hint,
        )

    return engine_execution_error(
        exc_type=exc.__class__.__name__,
        exc_message=str(exc) or None,
    )
