# src/streamed_zip/core/config/errors.py
"""
Erros de configuração do streamed-zip.

Uma configuração inválida é detectada no construtor de `StreamedZipArchive`,
antes de qualquer workspace ou processo existir. Por isso estes erros ficam
fora da hierarquia `StreamedZipException` (que descreve falhas de build) e
têm `ConfigError` como base comum.

Quem levanta o quê:
    - loader: `ConfigFileNotFoundError`, `UnsupportedConfigFormatError`,
      `InvalidConfigRootTypeError`
    - merge: `ConfigTypeConflictError`
    - settings: `InvalidSettingError`
"""


class ConfigError(Exception):
    """Base de todos os erros de configuração."""


class ConfigFileNotFoundError(ConfigError):
    """
    Arquivo de defaults ausente.

    Só o arquivo de defaults (empacotado ou `defaults_path`) é obrigatório;
    um arquivo local ausente é ignorado pelo loader.
    """


class UnsupportedConfigFormatError(ConfigError):
    """Extensão diferente de .yaml, .yml e .json."""


class InvalidConfigRootTypeError(ConfigError):
    """Arquivo ou overrides cujo conteúdo raiz não é um mapeamento."""


class ConfigTypeConflictError(ConfigError):
    """
    Uma camada muda o tipo de uma chave já definida.

    Ex.: defaults `feeder: {idle_timeout: 2.0}` e local `feeder: rapido`.
    A mensagem cita a chave pontuada; nenhum resultado parcial é devolvido.
    """


class InvalidSettingError(ConfigError):
    """
    Valor com o tipo certo mas fora do domínio aceito.

    Ex.: `idle_timeout` negativo, `chunk_size` zero, comando vazio ou
    `poll_interval` maior que `max_poll_interval`. Levantado por
    `ArchiveSettings.from_config`; nada é corrigido silenciosamente.
    """
