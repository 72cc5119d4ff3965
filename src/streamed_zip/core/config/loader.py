# src/streamed_zip/core/config/loader.py
"""
Resolução da configuração efetiva de montagem.

Camadas, em precedência crescente:
    1. defaults: `config.defaults.yaml` empacotado (ou `defaults_path`)
    2. local: arquivo YAML/JSON do operador (`config_path` do construtor)
    3. overrides: dict montado a partir dos argumentos do construtor

Decisões arquiteturais:
    - Os defaults são obrigatórios; um arquivo local ausente é ignorado, para
      que o mesmo `config_path` sirva a máquinas com e sem override
    - Arquivo vazio equivale a `{}`
    - O formato é decidido pela extensão do arquivo

Limites explícitos:
    - Não valida semântica (ver `settings.ArchiveSettings`)
    - Não calcula hash (ver `hashing`; o Orchestrator registra no Manifest)
"""

import json
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TextIO, Union

import yaml  # PyYAML

from .errors import (
    ConfigFileNotFoundError,
    InvalidConfigRootTypeError,
    UnsupportedConfigFormatError,
)
from .merge import deep_merge


DEFAULTS_PATH = Path(__file__).with_name("config.defaults.yaml")

_PARSERS: Dict[str, Callable[[TextIO], Any]] = {
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
    ".json": json.load,
}


def _ensure_root(data: Any, origin: str) -> Dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidConfigRootTypeError(
            f"Config root deve ser dict, recebido: {type(data).__name__} ({origin})"
        )
    return data


def _load_file(path: Path) -> Dict[str, Any]:
    """
    Lê um arquivo de configuração YAML (.yaml/.yml) ou JSON (.json).

    Raises:
        ConfigFileNotFoundError: Se o arquivo não existir.
        UnsupportedConfigFormatError: Se a extensão não for suportada.
        InvalidConfigRootTypeError: Se o conteúdo raiz não for um dicionário.
    """
    if not path.exists():
        raise ConfigFileNotFoundError(f"Arquivo de configuração não encontrado: {path}")

    parser = _PARSERS.get(path.suffix.lower())
    if parser is None:
        raise UnsupportedConfigFormatError(f"Formato não suportado: {path.suffix}")

    with path.open("r", encoding="utf-8") as f:
        return _ensure_root(parser(f), str(path))


def load_config(
    *,
    defaults_path: Optional[Union[str, Path]] = None,
    local_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Carrega e resolve a configuração efetiva (defaults → local → overrides).

    Args:
        defaults_path: Arquivo de defaults alternativo ao empacotado.
        local_path: Arquivo local opcional; ignorado quando não existe.
        overrides: Overrides em memória (maior precedência).

    Returns:
        Dict[str, Any]: Configuração final resolvida (dict novo).

    Raises:
        ConfigFileNotFoundError: Se o arquivo de defaults não existir.
        UnsupportedConfigFormatError: Se o formato de algum arquivo não for suportado.
        InvalidConfigRootTypeError: Se algum root (arquivo ou overrides) não for dict.
        ConfigTypeConflictError: Se uma camada mudar o tipo de uma chave.
    """
    effective = _load_file(Path(defaults_path) if defaults_path is not None else DEFAULTS_PATH)

    if local_path is not None and Path(local_path).exists():
        effective = deep_merge(effective, _load_file(Path(local_path)))

    if overrides:
        effective = deep_merge(effective, _ensure_root(overrides, "overrides"))

    return effective
