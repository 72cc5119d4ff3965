# tests/e2e/test_archive_scenarios.py
"""
Cenários ponta a ponta da fachada pública `StreamedZipArchive`.

Executados com o compressor e o copiador stub (`tests/fixtures`), de modo
que rodam em qualquer ambiente POSIX. O módulo `test_real_binaries.py`
repete os cenários principais com `zip` e `tee` do sistema.

Cenários:
    1. `a.txt` + `dir/b.txt` → ZIP com exatamente essas entradas
    2. `../escape.txt` → PathEscapeError, nada registrado
    3. fonte que falha após 3 bytes → ProcessFailure nomeando o Feeder,
       nenhum arquivo parcial e workspace removido no fim do escopo

Propriedades adicionais:
    - registro duplicado é rejeitado
    - teardown idempotente; uso após `close()` é violação de contrato
    - falha de teardown durante propagação de erro vira warning
"""

import io
import os
import zipfile

import pytest

from streamed_zip import (
    ContractViolation,
    DuplicateEntryError,
    PathEscapeError,
    ProcessFailure,
    StreamedZipArchive,
    TeardownError,
    build_zip,
    open_archive,
)
from streamed_zip.core.config import ConfigError
from tests._helpers import FailingStream, fake_tee_command, fake_zip_command


@pytest.fixture
def options(tmp_path):
    return {
        "tmp_path": tmp_path,
        "zip_command": fake_zip_command(),
        "copier_command": fake_tee_command(),
        "check_support": False,
    }


def _names(data: bytes):
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return sorted(zf.namelist())


def test_scenario_two_entries(options):
    with open_archive(**options) as archive:
        archive.add_stream("a.txt", b"hello")
        archive.register("dir/b.txt", io.BytesIO(b"world"))
        data = archive.build_archive()
        root = archive.workspace.root

    assert _names(data) == ["a.txt", "dir/b.txt"]
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        assert zf.read("dir/b.txt") == b"world"
    assert not os.path.exists(root)
    assert archive.closed


def test_scenario_path_escape(options, tmp_path):
    with open_archive(**options) as archive:
        with pytest.raises(PathEscapeError) as ei:
            archive.add_stream("../escape.txt", b"x")
        assert str(ei.value) == f"Path ../escape.txt is not inside {archive.workspace.root}"
        assert archive.entries == ()

    assert not (tmp_path / "escape.txt").exists()


def test_scenario_failing_source(options):
    """
    Uma fonte que levanta erro após 3 bytes falha o build inteiro.

    Invariantes:
        - A exceção nomeia `feeder:c.txt`
        - Nenhum resultado é publicado (`archive.result` permanece None)
        - O workspace é removido ao sair do escopo
    """
    archive = StreamedZipArchive(**options)
    with pytest.raises(ProcessFailure) as ei:
        with archive:
            archive.add_stream("a.txt", b"hello")
            archive.add_stream("c.txt", FailingStream(b"abc"))
            archive.build_archive()

    assert ei.value.participant == "feeder:c.txt"
    assert archive.result is None
    assert archive.manifest.build["status"] == "failed"
    assert archive.closed


def test_duplicate_registration_is_rejected(options):
    with open_archive(**options) as archive:
        archive.add_stream("a.txt", b"1")
        with pytest.raises(DuplicateEntryError):
            archive.add_stream("a.txt", b"2")
        assert _names(archive.build()) == ["a.txt"]


def test_build_zip_helper_accepts_mapping_and_pairs(options):
    data = build_zip({"a.txt": b"1", "b/c.txt": io.BytesIO(b"2")}, **options)
    assert _names(data) == ["a.txt", "b/c.txt"]

    data = build_zip([("x.txt", b"3")], **options)
    assert _names(data) == ["x.txt"]


def test_zero_entries_build_an_empty_archive(options):
    assert _names(build_zip({}, **options)) == []


def test_instance_builds_once(options):
    with open_archive(**options) as archive:
        archive.add_stream("a.txt", b"1")
        archive.build_archive()
        with pytest.raises(ContractViolation):
            archive.build_archive()
        with pytest.raises(ContractViolation):
            archive.add_stream("b.txt", b"2")


def test_close_is_idempotent_and_blocks_further_use(options):
    archive = StreamedZipArchive(**options)
    assert archive.close() is True
    assert archive.close() is False
    with pytest.raises(ContractViolation):
        archive.add_stream("a.txt", b"x")
    with pytest.raises(ContractViolation):
        archive.build_archive()


def test_teardown_failure_during_error_becomes_warning(options, monkeypatch):
    archive = StreamedZipArchive(**options)

    def broken_teardown():
        raise TeardownError("Falha ao remover workspace")

    monkeypatch.setattr(archive.workspace, "teardown", broken_teardown)

    with pytest.raises(KeyError):
        with archive:
            raise KeyError("original")

    assert archive.context.warnings["workspace"] == ["Falha ao remover workspace"]
    monkeypatch.undo()
    archive.close()


def test_teardown_failure_without_error_is_raised(options, monkeypatch):
    archive = StreamedZipArchive(**options)

    def broken_teardown():
        raise TeardownError("Falha ao remover workspace")

    monkeypatch.setattr(archive.workspace, "teardown", broken_teardown)
    with pytest.raises(TeardownError):
        with archive:
            pass
    monkeypatch.undo()
    archive.close()


def test_constructor_arguments_override_config_file(tmp_path, options):
    local = tmp_path / "config.local.yaml"
    local.write_text("feeder:\n  idle_timeout: 9\narchive:\n  build_timeout: 60\n", encoding="utf-8")

    with open_archive(config_path=local, idle_timeout=1.5, **options) as archive:
        assert archive.settings.idle_timeout == 1.5
        assert archive.settings.build_timeout == 60
        assert archive.settings.zip_command == tuple(fake_zip_command())


def test_invalid_configuration_is_a_config_error(options):
    with pytest.raises(ConfigError):
        StreamedZipArchive(idle_timeout=-1, **options)


def test_workspace_is_created_under_tmp_path(options, tmp_path):
    with open_archive(**options) as archive:
        assert archive.workspace.root.startswith(os.path.realpath(tmp_path) + os.sep)
        assert os.path.basename(archive.workspace.root).startswith("streamed-zip-archive-")
