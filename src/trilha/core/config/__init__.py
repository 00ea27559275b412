# src/trilha/core/config/__init__.py
"""
Camada de configuração do Trilha.

Responsabilidades do pacote:
    - Carregamento de arquivos de configuração (defaults + overrides locais)
    - Resolução da configuração final via deep-merge determinístico
    - Hash canônico para rastreabilidade (Run Trace)
    - Settings tipados e validados para Engine, Store e Trace

Limites explícitos:
    - Não executa pipeline
    - Não instancia stores (responsabilidade do `Pipeline`)
"""

from .errors import (
    ConfigError,
    ConfigTypeConflictError,
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    UnsupportedConfigFormatError,
)
from .hashing import compute_config_hash
from .loader import DEFAULT_CONFIG, load_config
from .merge import deep_merge
from .settings import EngineSettings

__all__ = [
    "ConfigError",
    "ConfigTypeConflictError",
    "DefaultsNotFoundError",
    "InvalidConfigRootTypeError",
    "UnsupportedConfigFormatError",
    "compute_config_hash",
    "DEFAULT_CONFIG",
    "load_config",
    "deep_merge",
    "EngineSettings",
]
