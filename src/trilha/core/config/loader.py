# src/trilha/core/config/loader.py
"""
Loader canônico de configuração do Trilha.

A configuração efetiva é resolvida a partir de:
    - um arquivo de defaults (YAML/JSON) ou, quando nenhum caminho é
      informado, o dicionário embutido `DEFAULT_CONFIG`
    - um arquivo local de overrides (opcional)

Exemplo de arquivo (YAML):

    engine:
      fail_fast: true
      max_workers: 4
      timeout_seconds: 120
    store:
      backend: disk
      root: .trilha
    trace:
      enabled: true

Princípios fundamentais:
    - Configuração é declarativa e explícita
    - Overrides locais nunca mutam os defaults
    - Erros estruturais são tratados como falhas fatais
"""

from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, Optional
import json

import yaml  # PyYAML

from .merge import deep_merge
from .errors import (
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    UnsupportedConfigFormatError,
)


DEFAULT_CONFIG: Dict[str, Any] = {
    "engine": {
        "fail_fast": True,
        "max_workers": 1,
        "timeout_seconds": None,
    },
    "store": {
        "backend": "disk",
        "root": ".trilha",
    },
    "trace": {
        "enabled": True,
    },
}


def _load_file(path: Path) -> Dict[str, Any]:
    """
    Carrega um arquivo de configuração e valida o tipo raiz.

    Arquivos vazios são interpretados como dicionários vazios.

    Raises:
        DefaultsNotFoundError: Se o arquivo não existir.
        UnsupportedConfigFormatError: Se a extensão não for suportada.
        InvalidConfigRootTypeError: Se o conteúdo raiz não for um dicionário.
    """
    if not path.exists():
        raise DefaultsNotFoundError(f"Arquivo de configuração não encontrado: {path}")

    suffix = path.suffix.lower()

    if suffix in {".yaml", ".yml"}:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

    elif suffix == ".json":
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)

    else:
        raise UnsupportedConfigFormatError(f"Formato não suportado: {path.suffix}")

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise InvalidConfigRootTypeError(
            f"Config root deve ser dict, recebido: {type(data).__name__}"
        )

    return data


def load_config(
    *,
    defaults_path: Optional[str] = None,
    local_path: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Carrega e resolve a configuração efetiva.

    Política de resolução:
        - `DEFAULT_CONFIG` é sempre a base
        - o arquivo de defaults, quando informado, é obrigatório e é
          mesclado sobre a base
        - o arquivo local é opcional; se o caminho não existir é ignorado
        - o local sempre tem prioridade sobre defaults

    Args:
        defaults_path (Optional[str]): Caminho para o arquivo de defaults.
        local_path (Optional[str]): Caminho opcional para overrides locais.

    Returns:
        Dict[str, Any]: Configuração final resolvida.

    Raises:
        DefaultsNotFoundError: Se `defaults_path` for informado e não existir.
        UnsupportedConfigFormatError: Se o formato do arquivo não for suportado.
        InvalidConfigRootTypeError: Se o conteúdo não for um dicionário.
        ConfigTypeConflictError: Se ocorrer conflito estrutural durante o merge.
    """
    effective = deepcopy(DEFAULT_CONFIG)

    if defaults_path is not None:
        effective = deep_merge(effective, _load_file(Path(defaults_path)))

    if local_path is not None:
        local_file = Path(local_path)
        if local_file.exists():
            effective = deep_merge(effective, _load_file(local_file))

    return effective
