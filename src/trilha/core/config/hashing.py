# src/trilha/core/config/hashing.py
"""
Hashing canônico de configuração e de estruturas serializáveis.

O hash representa a identidade estrutural de um dicionário e é registrado
no Run Trace (`inputs.config_hash`, `inputs.graph_hash`).

Política de hashing (v1):
    - Serialização JSON canônica (chaves ordenadas, separadores compactos)
    - Codificação UTF-8
    - SHA-256, hexadecimal de 64 caracteres
"""

import hashlib
import json
from typing import Any, Dict


def canonical_json(obj: Any) -> str:
    """Serializa `obj` em JSON canônico (determinístico)."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def compute_config_hash(config: Dict[str, Any]) -> str:
    """
    Gera um hash determinístico da configuração efetiva.

    Configurações estruturalmente equivalentes produzem o mesmo hash,
    independentemente da ordem original das chaves.

    Raises:
        TypeError: Se o objeto fornecido não for um dicionário.
    """
    if not isinstance(config, dict):
        raise TypeError(
            f"Config para hashing deve ser dict, recebido: {type(config).__name__}"
        )
    return sha256_hex(canonical_json(config))
