# tests/conftest.py
"""
Fixtures compartilhados para testes do streamed-zip.

Este módulo define fixtures reutilizáveis que fornecem:
- workspace isolado sob o `tmp_path` do pytest
- settings apontando para o compressor stub
- configuração mínima em YAML para testes do loader

Decisões arquiteturais:
    - Todo workspace é removido ao fim do teste, mesmo em falha
    - O compressor real nunca é exigido por estas fixtures
    - Imports do core são realizados de forma lazy para
      melhorar a clareza de erros durante falhas

Limites explícitos:
    - Não substituir testes de integração com `zip`/`tee` reais
"""

import pytest


@pytest.fixture
def local_config_yaml() -> str:
    """
    YAML de override local semelhante ao uso real.

    Sobrescreve apenas o idle timeout e o compressor; o restante vem
    dos defaults empacotados.
    """
    return """\
feeder:
  idle_timeout: 5
commands:
  zip: [/usr/local/bin/zip]
"""


@pytest.fixture
def workspace(tmp_path):
    """Workspace criado sob `tmp_path`, removido ao final do teste."""
    from streamed_zip.core.workspace import Workspace

    ws = Workspace.create(tmp_path)
    yield ws
    ws.teardown()


@pytest.fixture
def stub_settings(tmp_path):
    """ArchiveSettings com compressor e copiador stub e workspace sob `tmp_path`."""
    from streamed_zip.core.config.settings import ArchiveSettings
    from tests._helpers import fake_tee_command, fake_zip_command

    return ArchiveSettings(
        tmp_path=str(tmp_path),
        zip_command=tuple(fake_zip_command()),
        copier_command=tuple(fake_tee_command()),
        idle_timeout=2.0,
    )
