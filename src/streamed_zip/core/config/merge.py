# src/streamed_zip/core/config/merge.py
"""
Deep-merge da configuração do streamed-zip.

Resolve a configuração final a partir dos defaults empacotados, do arquivo
local do operador e dos argumentos do construtor de `StreamedZipArchive`,
nessa ordem de precedência crescente.

Regras por valor do override:
    - seção (dict) sobre seção → merge recursivo
    - argv (list) → substitui o comando inteiro; argv nunca é mesclado item a item
    - null → "não definido" (ex.: `build_timeout: null` desliga o timeout)
    - número sobre número → int e float são intercambiáveis (`idle_timeout: 5`)
    - qualquer outra mudança de tipo → `ConfigTypeConflictError`

O erro cita a chave pontuada (`feeder.idle_timeout`), não só a folha.

Limites explícitos:
    - Não valida semântica (ver `settings.ArchiveSettings`)
    - Não realiza coerção de tipos
"""

from copy import deepcopy
from typing import Any, Dict

from .errors import ConfigTypeConflictError


def _kind(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    return type(value).__name__


def _merge_section(base: Dict[str, Any], override: Dict[str, Any], prefix: str) -> Dict[str, Any]:
    merged = deepcopy(base)
    for key, new in override.items():
        dotted = f"{prefix}{key}"
        if key not in merged:
            merged[key] = deepcopy(new)
            continue

        old = merged[key]
        if isinstance(old, dict) and isinstance(new, dict):
            merged[key] = _merge_section(old, new, dotted + ".")
            continue

        old_kind, new_kind = _kind(old), _kind(new)
        if "null" not in (old_kind, new_kind) and old_kind != new_kind:
            raise ConfigTypeConflictError(
                f"Conflito de tipo na chave '{dotted}': {type(old).__name__} vs {type(new).__name__}"
            )
        merged[key] = deepcopy(new)
    return merged


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Mescla `override` sobre `base` e retorna um novo dict (inputs intactos).

    Raises:
        ConfigTypeConflictError: Se algum root não for dict ou uma chave mudar de tipo.
    """
    if not isinstance(base, dict) or not isinstance(override, dict):
        raise ConfigTypeConflictError(
            f"Deep-merge requer dicts no nível raiz, recebido: "
            f"{type(base).__name__} vs {type(override).__name__}"
        )
    return _merge_section(base, override, "")
