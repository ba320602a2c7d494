"""
Exceções da camada de configuração.

Todas herdam de `ConfigError`, que é uma `ConfigurationException`: o Engine
e o mapeamento de erros as tratam como erro de configuração (fatal, sem retry).
"""

from __future__ import annotations

from atlas_datalake.core.exceptions import ConfigurationException


class ConfigError(ConfigurationException):
    """Base para falhas de carregamento, merge e construção do pipeline."""


class DefaultsNotFoundError(ConfigError):
    """O arquivo de defaults é obrigatório e não foi encontrado."""


class UnsupportedConfigFormatError(ConfigError):
    """Extensão de arquivo diferente de .yaml, .yml ou .json."""


class InvalidConfigRootTypeError(ConfigError):
    """O conteúdo raiz do arquivo não é um mapa chave-valor."""


class ConfigTypeConflictError(ConfigError):
    """
    Mesma chave com tipos incompatíveis entre base e override.

    Exemplo:
        base:     {"engine": {"fail_fast": true}}
        override: {"engine": "DEBUG"}
    """
