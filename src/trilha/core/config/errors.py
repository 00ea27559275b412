# src/trilha/core/config/errors.py
"""
Exceções da camada de configuração do Trilha.

Representam falhas ao carregar ou mesclar arquivos de configuração
(defaults + override local). Violações de valores de engine/store
detectadas depois do merge usam `EngineConfigurationError`
(`trilha.core.exceptions`).

Invariantes:
    - Todas as exceções de arquivo de configuração herdam de `ConfigError`
    - Nenhuma exceção aqui representa erro de execução de target
"""


class ConfigError(Exception):
    """Exceção base para erros de carregamento/merge de configuração."""


class DefaultsNotFoundError(ConfigError):
    """
    O arquivo de defaults informado explicitamente não existe.

    Quando nenhum caminho é informado, o loader usa `DEFAULT_CONFIG`;
    esta exceção só ocorre para caminhos explícitos.
    """


class UnsupportedConfigFormatError(ConfigError):
    """
    Formato de arquivo não suportado.

    Formatos suportados (v1):
        - YAML (.yaml, .yml)
        - JSON (.json)
    """


class InvalidConfigRootTypeError(ConfigError):
    """O conteúdo raiz do arquivo não é um dicionário."""


class ConfigTypeConflictError(ConfigError):
    """
    Conflito de tipos durante o deep-merge.

    Exemplo de conflito:
        - base:     {"engine": {"fail_fast": true}}
        - override: {"engine": "DEBUG"}
    """
