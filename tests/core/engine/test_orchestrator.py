# tests/core/engine/test_orchestrator.py
"""
Testes do BuildOrchestrator (protocolo de build completo).

Este módulo exercita o Orchestrator com o compressor e o copiador stub
(`tests/fixtures`), sem depender de `zip`/`tee` do sistema.

Os testes asseguram que:
- um build bem-sucedido contém exatamente as entradas registradas (completude)
- entradas maiores que o buffer de um pipe não travam o build
- falhas de qualquer participante abortam o build inteiro, sem arquivo
  parcial e sem processos sobreviventes (atomicidade)
- a causa raiz reportada prioriza erro da fonte e depois o Archiver
- timeouts (idle e total) são detectados
- zero entradas produzem um ZIP vazio sem iniciar processos
- BuildContext e Manifest registram participantes e estados

Decisões arquiteturais:
    - O stub lê os FIFOs na ordem listada, como o compressor real
    - Timeouts curtos são usados apenas nos testes de timeout
"""

import dataclasses
import io
import zipfile

import pytest

from streamed_zip.core.config.hashing import compute_entries_fingerprint
from streamed_zip.core.engine.orchestrator import BuildOrchestrator, empty_archive
from streamed_zip.core.exceptions import ContractViolation, ProcessFailure, ProcessTimeoutError, ProvisioningError
from streamed_zip.core.pipeline.registry import EntryRegistry
from streamed_zip.core.pipeline.types import BuildState
from streamed_zip.core.traceability.manifest import load_manifest
from tests._helpers import FailingStream, OneShotStream, fake_zip_command


def _orchestrator(workspace, settings, entries):
    registry = EntryRegistry(workspace)
    for name, source in entries:
        registry.register(name, source)
    return BuildOrchestrator(workspace=workspace, registry=registry, settings=settings, version="0.1.0")


def _assert_all_reaped(orchestrator):
    for handle in [orchestrator.archiver, *orchestrator.feeders.values()]:
        if handle is not None:
            assert handle.terminated


def test_build_contains_every_entry(workspace, stub_settings):
    """
    Cenário canônico: `a.txt` (buffer) e `dir/b.txt` (stream).

    Invariantes:
        - O ZIP contém exatamente as entradas registradas, com o conteúdo das fontes
        - Todos os participantes terminaram com código 0
        - O estado final é DONE
    """
    orch = _orchestrator(
        workspace,
        stub_settings,
        [("a.txt", b"hello"), ("dir/b.txt", io.BytesIO(b"world"))],
    )
    result = orch.run()

    with zipfile.ZipFile(io.BytesIO(result.data)) as zf:
        assert sorted(zf.namelist()) == ["a.txt", "dir/b.txt"]
        assert zf.read("a.txt") == b"hello"
        assert zf.read("dir/b.txt") == b"world"

    assert result.entries == ("a.txt", "dir/b.txt")
    assert result.build_id == orch.ctx.build_id
    assert result.size == len(result.data)
    assert orch.state is BuildState.DONE
    assert orch.state.terminal and not BuildState.DRAINING.terminal
    assert all(h.successful for h in [orch.archiver, *orch.feeders.values()])


def test_entries_larger_than_pipe_buffer(workspace, stub_settings):
    big = b"0123456789abcdef" * 200_000
    other = bytes(range(256)) * 8_000
    orch = _orchestrator(workspace, stub_settings, [("big.bin", big), ("other.bin", io.BytesIO(other))])

    result = orch.run()

    with zipfile.ZipFile(io.BytesIO(result.data)) as zf:
        assert zf.read("big.bin") == big
        assert zf.read("other.bin") == other


def test_non_seekable_stream_is_consumed(workspace, stub_settings):
    orch = _orchestrator(workspace, stub_settings, [("net.bin", OneShotStream(b"payload"))])
    result = orch.run()
    with zipfile.ZipFile(io.BytesIO(result.data)) as zf:
        assert zf.read("net.bin") == b"payload"


def test_zero_entries_produce_empty_archive(workspace, stub_settings):
    orch = _orchestrator(workspace, stub_settings, [])
    result = orch.run()

    assert result.data == empty_archive()
    with zipfile.ZipFile(io.BytesIO(result.data)) as zf:
        assert zf.namelist() == []
    assert orch.archiver is None
    assert orch.feeders == {}
    assert orch.state is BuildState.DONE


def test_source_error_fails_build_naming_the_feeder(workspace, stub_settings):
    """
    Uma fonte que falha após 3 bytes aborta o build inteiro.

    Invariantes:
        - A exceção nomeia o Feeder da entrada com falha
        - Nenhum processo sobrevive; nenhum arquivo é retornado
    """
    orch = _orchestrator(
        workspace,
        stub_settings,
        [("a.txt", b"hello"), ("c.txt", FailingStream(b"abc"))],
    )
    with pytest.raises(ProcessFailure) as ei:
        orch.run()

    assert ei.value.participant == "feeder:c.txt"
    assert "source exploded" in str(ei.value)
    assert orch.state is BuildState.FAILED
    _assert_all_reaped(orch)

    failed = orch.manifest.participants["feeder:c.txt"]
    assert failed["status"] == "failed"
    assert failed["error"]["type"] == "PROCESS_FAILED"


def test_archiver_failure_is_root_cause(workspace, stub_settings):
    settings = dataclasses.replace(stub_settings, zip_command=tuple(fake_zip_command("--fail")))
    orch = _orchestrator(workspace, settings, [("a.txt", b"hello")])

    with pytest.raises(ProcessFailure) as ei:
        orch.run()

    exc = ei.value
    assert exc.participant == "archiver"
    assert exc.exit_code == 12
    assert "simulated failure" in exc.error_output
    assert exc.command_line == orch.archiver.command_line
    assert orch.state is BuildState.FAILED
    _assert_all_reaped(orch)


def test_global_stall_fails_feeder_with_idle_timeout(workspace, stub_settings):
    """Compressor que nunca abre os FIFOs: nenhum participante progride."""
    settings = dataclasses.replace(
        stub_settings,
        zip_command=tuple(fake_zip_command("--hang")),
        idle_timeout=0.3,
    )
    orch = _orchestrator(workspace, settings, [("a.txt", b"hello"), ("b.txt", b"world")])

    with pytest.raises(ProcessTimeoutError) as ei:
        orch.run()

    assert ei.value.participant.startswith("feeder:")
    assert ei.value.details["failure_reason"] == "idle_timeout"
    _assert_all_reaped(orch)
    assert any(e["level"] == "WARNING" for e in orch.ctx.events)


def test_build_timeout_fails_archiver(workspace, stub_settings):
    settings = dataclasses.replace(
        stub_settings,
        zip_command=tuple(fake_zip_command("--hang")),
        idle_timeout=None,
        build_timeout=0.5,
    )
    orch = _orchestrator(workspace, settings, [("a.txt", b"hello")])

    with pytest.raises(ProcessTimeoutError) as ei:
        orch.run()

    assert ei.value.participant == "archiver"
    _assert_all_reaped(orch)


def test_provisioning_failure_starts_no_process(workspace, stub_settings):
    orch = _orchestrator(workspace, stub_settings, [("a.txt", b"hello")])
    open(orch.registry.get("a.txt").path, "wb").close()

    with pytest.raises(ProvisioningError):
        orch.run()

    assert orch.archiver is None
    assert orch.state is BuildState.FAILED


def test_orchestrator_runs_once(workspace, stub_settings):
    orch = _orchestrator(workspace, stub_settings, [("a.txt", b"hello")])
    orch.run()

    with pytest.raises(ContractViolation):
        orch.run()
    with pytest.raises(ContractViolation):
        orch.registry.register("b.txt", b"late")


def test_context_and_manifest_trace_the_build(workspace, stub_settings, tmp_path):
    manifest_path = tmp_path / "out" / "manifest.json"
    settings = dataclasses.replace(stub_settings, manifest_path=str(manifest_path))
    orch = _orchestrator(workspace, settings, [("a.txt", b"hello")])
    orch.run()

    states = [e["payload"]["state"] for e in orch.manifest.events if e["event_type"] == "build_state"]
    assert states == ["provisioning", "running", "draining", "reaping", "done"] or states == [
        "provisioning",
        "running",
        "reaping",
        "done",
    ]
    assert set(orch.manifest.participants) == {"archiver", "feeder:a.txt"}
    assert all(p["status"] == "success" for p in orch.manifest.participants.values())
    assert orch.manifest.inputs["entries"] == [{"path": "a.txt", "kind": "buffer"}]
    assert len(orch.manifest.inputs["config_hash"]) == 64
    assert orch.manifest.inputs["entries_fingerprint"] == compute_entries_fingerprint(["a.txt"])

    assert [e["message"] for e in orch.ctx.events_for("feeder:a.txt")][0] == "started"

    loaded = load_manifest(manifest_path)
    assert loaded.build["status"] == "done"
    assert loaded.build["version"] == "0.1.0"


def test_manifest_is_saved_on_failure(workspace, stub_settings, tmp_path):
    manifest_path = tmp_path / "failed.json"
    settings = dataclasses.replace(stub_settings, manifest_path=str(manifest_path))
    orch = _orchestrator(workspace, settings, [("c.txt", FailingStream())])

    with pytest.raises(ProcessFailure):
        orch.run()

    loaded = load_manifest(manifest_path)
    assert loaded.build["status"] == "failed"
    assert loaded.participants["feeder:c.txt"]["status"] == "failed"


def test_unwritable_manifest_does_not_hide_build_failure(workspace, stub_settings, tmp_path):
    blocker = tmp_path / "afile"
    blocker.write_bytes(b"")
    settings = dataclasses.replace(stub_settings, manifest_path=str(blocker / "m.json"))
    orch = _orchestrator(workspace, settings, [("c.txt", FailingStream(b"abc"))])

    with pytest.raises(ProcessFailure) as ei:
        orch.run()

    assert ei.value.participant == "feeder:c.txt"
    assert orch.state is BuildState.FAILED
    assert "manifest not saved" in orch.ctx.warnings["orchestrator"][0]


def test_unwritable_manifest_keeps_successful_result(workspace, stub_settings, tmp_path):
    blocker = tmp_path / "afile"
    blocker.write_bytes(b"")
    settings = dataclasses.replace(stub_settings, manifest_path=str(blocker / "m.json"))
    orch = _orchestrator(workspace, settings, [("a.txt", b"hello")])

    result = orch.run()

    with zipfile.ZipFile(io.BytesIO(result.data)) as zf:
        assert zf.read("a.txt") == b"hello"
    assert orch.state is BuildState.DONE
    assert len(orch.ctx.warnings["orchestrator"]) == 1
