# tests/core/test_errors.py
"""
Testes do catálogo canônico de erros e do mapeamento exceção → payload.

Os testes asseguram que:
- cada exceção do streamed-zip mapeia para um código estável
- subclasses têm precedência sobre bases (timeout antes de falha genérica)
- exceções desconhecidas viram ENGINE_EXECUTION_ERROR sem stack trace
- o payload é serializável
"""

import json

import pytest

from streamed_zip.core import errors
from streamed_zip.core.exceptions import (
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


@pytest.mark.parametrize(
    "exc, code",
    [
        (ContractViolation("x"), errors.CONTRACT_VIOLATION),
        (DuplicateEntryError("x"), errors.DUPLICATE_ENTRY),
        (PathEscapeError("x"), errors.PATH_ESCAPE),
        (ProvisioningError("x"), errors.PROVISIONING_FAILED),
        (TeardownError("x"), errors.TEARDOWN_FAILED),
        (UnsupportedEnvironmentError("x"), errors.UNSUPPORTED_ENVIRONMENT),
        (
            ProcessFailure("x", participant="archiver", command_line="zip -FI - a", exit_code=12),
            errors.PROCESS_FAILED,
        ),
        (
            ProcessTimeoutError("x", participant="feeder:a", command_line="tee a", exit_code=-9),
            errors.PROCESS_TIMEOUT,
        ),
        (StreamedZipException("x"), errors.ENGINE_EXECUTION_ERROR),
    ],
)
def test_exception_codes(exc, code):
    assert errors.exception_to_payload(exc).type == code


def test_process_failure_payload_carries_diagnostics():
    exc = ProcessFailure(
        "Process failed ('zip -FI - a.txt' returned 12): zip error",
        participant="archiver",
        command_line="zip -FI - a.txt",
        exit_code=12,
        error_output="zip error",
        hint="verifique o compressor",
    )
    payload = errors.exception_to_payload(exc).to_dict()

    assert payload["details"]["participant"] == "archiver"
    assert payload["details"]["exit_code"] == 12
    assert payload["details"]["error_output"] == "zip error"
    assert payload["hint"] == "verifique o compressor"
    json.dumps(payload)


def test_unknown_exception_is_engine_execution_error():
    payload = errors.exception_to_payload(KeyError("boom"))
    assert payload.type == errors.ENGINE_EXECUTION_ERROR
    assert payload.details["exc_type"] == "KeyError"
    assert payload.hint


def test_exceptions_keep_builtin_bases():
    """Chamadores podem capturar pelas bases nativas (TypeError, ValueError, OSError)."""
    assert issubclass(ContractViolation, TypeError)
    assert issubclass(PathEscapeError, ValueError)
    assert issubclass(DuplicateEntryError, ValueError)
    assert issubclass(ProvisioningError, OSError)
    assert issubclass(TeardownError, OSError)
    assert issubclass(ProcessTimeoutError, ProcessFailure)
