# tests/core/engine/test_capabilities.py
"""
Testes do probe de capacidades do ambiente.
"""

import pytest

from streamed_zip.core.engine import capabilities
from streamed_zip.core.engine.capabilities import is_supported, missing_components, probe
from streamed_zip.core.exceptions import UnsupportedEnvironmentError
from tests._helpers import fake_tee_command, fake_zip_command, requires_tee, requires_zip


def test_missing_binaries_are_listed(tmp_path):
    missing = missing_components(
        zip_command=(str(tmp_path / "nozip"),),
        copier_command=fake_tee_command(),
    )
    assert missing == [str(tmp_path / "nozip")]


def test_probe_raises_with_missing_components(tmp_path):
    with pytest.raises(UnsupportedEnvironmentError) as ei:
        probe(zip_command=("definitely-not-a-zip-binary",), copier_command=fake_tee_command(), tmp_path=str(tmp_path))
    assert ei.value.details["missing"] == ["definitely-not-a-zip-binary"]
    assert not is_supported(zip_command=("definitely-not-a-zip-binary",), self_test=False)


def test_self_test_passes_with_working_compressor(tmp_path):
    probe(zip_command=fake_zip_command(), copier_command=fake_tee_command(), tmp_path=str(tmp_path))
    assert list(tmp_path.iterdir()) == []


def test_self_test_runs_archiver_synchronously_without_fifo_flag(tmp_path, monkeypatch):
    calls = []
    real_start = capabilities.start_archiver

    def recording_start(entry_paths, **kwargs):
        handle = real_start(entry_paths, **kwargs)
        calls.append((kwargs, handle))
        return handle

    monkeypatch.setattr(capabilities, "start_archiver", recording_start)
    probe(zip_command=fake_zip_command(), copier_command=fake_tee_command(), tmp_path=str(tmp_path))

    [(kwargs, handle)] = calls
    assert kwargs["pipe_mode"] is False
    assert "wait" not in kwargs
    assert "-FI" not in handle.command
    assert handle.terminated and handle.successful


def test_self_test_failure_is_unsupported_environment(tmp_path):
    """Um compressor presente mas que falha no self-test não é suportado."""
    with pytest.raises(UnsupportedEnvironmentError) as ei:
        probe(zip_command=fake_zip_command("--fail"), copier_command=fake_tee_command(), tmp_path=str(tmp_path))
    assert ei.value.details["cause"] == "ProcessFailure"
    assert ei.value.details["exit_code"] == 12


@requires_zip
@requires_tee
def test_real_environment_is_supported():
    assert is_supported()
