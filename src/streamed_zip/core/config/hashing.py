# src/streamed_zip/core/config/hashing.py
"""
Identidade de um build: hash da configuração efetiva e fingerprint das entradas.

Dois builds com o mesmo `config_hash` e o mesmo `entries_fingerprint`
executaram os mesmos comandos, com os mesmos limites, sobre a mesma lista
ordenada de nomes. Ambos os valores vão para o Manifest de build.

Chaves que só dizem *onde* algo é gravado (diretório base do workspace,
prefixo do diretório e destino do Manifest) não afetam o arquivo produzido
e ficam fora do hash.

Invariantes:
    - SHA-256 hexadecimal (64 caracteres) sobre JSON canônico em UTF-8
    - A ordem das chaves do dict não afeta o hash
    - A ordem das entradas afeta o fingerprint
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Dict, Iterable, Tuple


LOCATION_KEYS: Tuple[Tuple[str, str], ...] = (
    ("archive", "tmp_path"),
    ("archive", "workspace_prefix"),
    ("traceability", "manifest_path"),
)


def _digest(payload: Any) -> str:
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _without_location_keys(config: Dict[str, Any]) -> Dict[str, Any]:
    stripped = {k: (dict(v) if isinstance(v, dict) else v) for k, v in config.items()}
    for section, key in LOCATION_KEYS:
        block = stripped.get(section)
        if isinstance(block, dict):
            block.pop(key, None)
    return stripped


def compute_config_hash(config: Dict[str, Any]) -> str:
    """
    Hash da configuração efetiva, ignorando chaves de localização.

    Raises:
        TypeError: Se `config` não for um dicionário.
    """
    if not isinstance(config, dict):
        raise TypeError(f"Config para hashing deve ser dict, recebido: {type(config).__name__}")
    return _digest(_without_location_keys(config))


def compute_entries_fingerprint(relative_paths: Iterable[str]) -> str:
    """Hash da lista ordenada de nomes de entrada (o conteúdo não participa)."""
    return _digest(list(relative_paths))
