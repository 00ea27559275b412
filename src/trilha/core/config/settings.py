# src/trilha/core/config/settings.py
"""
Settings tipados do engine, do store e do trace.

`EngineSettings.from_config` lê a configuração resolvida (dict) e valida
os valores usados pelo Engine e pelo `Pipeline`. Chaves ausentes assumem
os valores de `DEFAULT_CONFIG`; valores com tipo ou faixa inválidos
levantam `EngineConfigurationError` antes de qualquer execução.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from trilha.core.exceptions import EngineConfigurationError

from .loader import DEFAULT_CONFIG


STORE_BACKENDS = ("disk", "memory")


def _section(config: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = (config or {}).get(key)
    if value is None:
        return dict(DEFAULT_CONFIG[key])
    if not isinstance(value, dict):
        raise EngineConfigurationError(
            f"Invalid config: '{key}' must be a mapping",
            details={"key": key, "received": type(value).__name__},
        )
    merged = dict(DEFAULT_CONFIG[key])
    merged.update(value)
    return merged


@dataclass(frozen=True)
class EngineSettings:
    """Valores efetivos de execução e persistência."""

    fail_fast: bool = True
    max_workers: int = 1
    timeout_seconds: Optional[float] = None
    store_backend: str = "disk"
    store_root: str = ".trilha"
    trace_enabled: bool = True

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]]) -> "EngineSettings":
        config = config or {}
        engine = _section(config, "engine")
        store = _section(config, "store")
        trace = _section(config, "trace")

        fail_fast = engine.get("fail_fast")
        if not isinstance(fail_fast, bool):
            raise EngineConfigurationError(
                "Invalid config: engine.fail_fast must be a bool",
                details={"received": repr(fail_fast)},
            )

        max_workers = engine.get("max_workers")
        if isinstance(max_workers, bool) or not isinstance(max_workers, int) or max_workers < 1:
            raise EngineConfigurationError(
                "Invalid config: engine.max_workers must be an int >= 1",
                details={"received": repr(max_workers)},
            )

        timeout = engine.get("timeout_seconds")
        if timeout is not None:
            if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
                raise EngineConfigurationError(
                    "Invalid config: engine.timeout_seconds must be a positive number or null",
                    details={"received": repr(timeout)},
                )
            timeout = float(timeout)

        backend = store.get("backend")
        if backend not in STORE_BACKENDS:
            raise EngineConfigurationError(
                f"Invalid config: store.backend must be one of {list(STORE_BACKENDS)}",
                details={"received": repr(backend)},
            )

        root = store.get("root")
        if not isinstance(root, str) or not root.strip():
            raise EngineConfigurationError(
                "Invalid config: store.root must be a non-empty string",
                details={"received": repr(root)},
            )

        trace_enabled = trace.get("enabled")
        if not isinstance(trace_enabled, bool):
            raise EngineConfigurationError(
                "Invalid config: trace.enabled must be a bool",
                details={"received": repr(trace_enabled)},
            )

        return cls(
            fail_fast=fail_fast,
            max_workers=max_workers,
            timeout_seconds=timeout,
            store_backend=backend,
            store_root=root,
            trace_enabled=trace_enabled,
        )
