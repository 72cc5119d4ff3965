"""
Hierarquia de exceções do streamed-zip.

Este módulo define as exceções tipadas do streamed-zip.

Objetivo:
- Permitir que Workspace, Registry e Orchestrator levantem exceções semânticas
- Facilitar o mapeamento determinístico para ZipErrorPayload
- Evitar ValueError/RuntimeError genéricos em guardrails críticos

Regras:
- Exceções carregam apenas dados estruturados (serializáveis) em `details`
- `PathEscapeError` é relevante para segurança: nunca é rebaixada a warning
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class StreamedZipException(Exception):
    """Base class para exceções do streamed-zip.

    Importante:
    - Sempre carregar dados estruturados em `details`
    - Mensagem deve ser curta e humana
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[Dict[str, Any]] = None,
        hint: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})
        self.hint = hint

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Registro de entradas
# ---------------------------------------------------------------------------

class ContractViolation(StreamedZipException, TypeError):
    """Argumento com tipo ou forma inválida (ex.: fonte que não é stream nem buffer)."""


class DuplicateEntryError(StreamedZipException, ValueError):
    """Caminho já registrado, ou já existente no workspace."""


class PathEscapeError(StreamedZipException, ValueError):
    """Caminho de entrada resolve para fora do workspace."""


# ---------------------------------------------------------------------------
# Workspace / Provisionamento
# ---------------------------------------------------------------------------

class ProvisioningError(StreamedZipException, OSError):
    """Falha ao criar workspace, diretórios intermediários ou FIFOs."""


class TeardownError(StreamedZipException, OSError):
    """Falha ao remover o workspace."""


class UnsupportedEnvironmentError(StreamedZipException, RuntimeError):
    """Utilitários externos ausentes ou sem suporte às opções necessárias."""


# ---------------------------------------------------------------------------
# Processos
# ---------------------------------------------------------------------------

class ProcessFailure(StreamedZipException, RuntimeError):
    """Participante do build terminou com falha.

    Campos adicionais (também presentes em `details`):
    - participant: identificador do participante (ex.: "feeder:a.txt", "archiver")
    - command_line: linha de comando executada
    - exit_code: código de saída (None quando o processo foi abortado)
    - error_output: stderr capturado
    """

    def __init__(
        self,
        message: str,
        *,
        participant: str,
        command_line: str,
        exit_code: Optional[int],
        error_output: str = "",
        details: Optional[Dict[str, Any]] = None,
        hint: Optional[str] = None,
    ) -> None:
        merged = {
            "participant": participant,
            "command_line": command_line,
            "exit_code": exit_code,
            "error_output": error_output,
        }
        merged.update(details or {})
        super().__init__(message, details=merged, hint=hint)
        self.participant = participant
        self.command_line = command_line
        self.exit_code = exit_code
        self.error_output = error_output


class ProcessTimeoutError(ProcessFailure):
    """Participante excedeu o timeout total ou o idle timeout."""
