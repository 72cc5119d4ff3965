# src/streamed_zip/core/config/__init__.py

"""
Camada de configuração do streamed-zip.

Este pacote contém as estruturas e utilitários responsáveis por carregar,
mesclar, validar e identificar a configuração de montagem de arquivos.

Responsabilidades do pacote:
    - Carregamento de arquivos de configuração (defaults + overrides locais)
    - Resolução de configuração final via deep-merge determinístico
    - Conversão para settings tipados e validados
    - Geração de hash canônico para rastreabilidade

Limites explícitos:
    - Não executa build
    - Não interage com processos externos
"""

from .errors import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigTypeConflictError,
    InvalidConfigRootTypeError,
    InvalidSettingError,
    UnsupportedConfigFormatError,
)
from .hashing import compute_config_hash, compute_entries_fingerprint
from .loader import DEFAULTS_PATH, load_config
from .merge import deep_merge
from .settings import ArchiveSettings, normalize_command

__all__ = [
    "ArchiveSettings",
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigTypeConflictError",
    "DEFAULTS_PATH",
    "InvalidConfigRootTypeError",
    "InvalidSettingError",
    "UnsupportedConfigFormatError",
    "compute_config_hash",
    "compute_entries_fingerprint",
    "deep_merge",
    "load_config",
    "normalize_command",
]
