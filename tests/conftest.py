# tests/conftest.py
"""
Fixtures compartilhados para testes do Trilha.

Este módulo define fixtures reutilizáveis que fornecem:
- configurações mínimas e determinísticas (YAML como string e dict)
- contexto de execução controlado (RunContext)
- stores em memória para testes do Engine sem filesystem
- um registrador de chamadas para verificar quais comandos executaram

Decisões arquiteturais:
    - Fixtures são mantidas simples e explícitas
    - Imports do core são realizados de forma lazy para
      melhorar a clareza de erros durante falhas
    - Testes que precisam de disco usam `tmp_path`

Invariantes:
    - Nenhuma fixture executa pipeline real
    - Nenhuma fixture realiza I/O
    - Todas as fixtures são seguras para execução em paralelo
"""

import threading
from datetime import datetime, timezone

import pytest


# =====================================================
# Config fixtures
# =====================================================

@pytest.fixture
def project_like_config_defaults_yaml() -> str:
    """YAML de defaults semelhante a um `trilha.defaults.yaml` real."""
    return """\
engine:
  fail_fast: true
  max_workers: 2
  timeout_seconds: null
store:
  backend: disk
  root: .trilha
trace:
  enabled: true
"""


@pytest.fixture
def project_like_config_local_yaml() -> str:
    """YAML de overrides locais (apenas o que muda)."""
    return """\
engine:
  max_workers: 4
  timeout_seconds: 30
store:
  backend: memory
"""


@pytest.fixture
def dummy_config() -> dict:
    """
    Configuração mínima já resolvida para testes do Engine.

    Invariantes:
        - fail_fast explicitamente habilitado
        - backend em memória (sem filesystem)
        - trace desabilitado
    """
    return {
        "engine": {"fail_fast": True, "max_workers": 1, "timeout_seconds": None},
        "store": {"backend": "memory", "root": ".trilha"},
        "trace": {"enabled": False},
    }


@pytest.fixture
def memory_config(dummy_config) -> dict:
    return dummy_config


# =====================================================
# Pipeline / Engine fixtures
# =====================================================

@pytest.fixture
def dummy_ctx(dummy_config):
    """RunContext determinístico (run_id e created_at fixos)."""
    from trilha.core.pipeline.context import RunContext

    return RunContext(
        run_id="run-test-001",
        created_at=datetime(2026, 1, 16, 0, 0, 0, tzinfo=timezone.utc),
        config=dummy_config,
        meta={"source": "pytest"},
    )


@pytest.fixture
def memory_stores():
    """Par (fingerprints, results) em memória, compartilhado entre runs do mesmo teste."""
    from trilha.persistence.fingerprint_store import MemoryFingerprintStore
    from trilha.persistence.result_store import MemoryResultStore

    return MemoryFingerprintStore(), MemoryResultStore()


@pytest.fixture
def calls():
    """
    Registrador thread-safe de execuções de comandos.

    Uso:
        calls.hit("a")          # dentro do comando
        calls.names == ["a"]    # no assert
    """

    class _Calls:
        def __init__(self):
            self._lock = threading.Lock()
            self.names = []

        def hit(self, name):
            with self._lock:
                self.names.append(name)

        def count(self, name):
            return self.names.count(name)

        def reset(self):
            with self._lock:
                self.names = []

    return _Calls()


@pytest.fixture
def engine_runner(dummy_config, memory_stores):
    """
    Executa listas de Target no Engine, reaproveitando as mesmas stores
    entre chamadas (permite testar runs incrementais consecutivas).

    Uso:
        report, ctx = engine_runner.run([Target.create("a", fn)])
        report, ctx = engine_runner.run(targets, engine={"fail_fast": False})
    """
    from trilha.core.config.merge import deep_merge
    from trilha.core.engine.engine import Engine
    from trilha.core.pipeline.context import RunContext

    class _Runner:
        def __init__(self):
            self.fingerprints, self.results = memory_stores
            self.runs = 0
            self.last_engine = None

        def engine(self, targets, *, trace=None, **overrides):
            self.runs += 1
            ctx = RunContext(
                run_id=f"run-test-{self.runs:03d}",
                created_at=datetime(2026, 1, 16, 0, 0, 0, tzinfo=timezone.utc),
                config=deep_merge(dummy_config, overrides),
            )
            self.last_engine = Engine(
                targets=targets,
                ctx=ctx,
                fingerprints=self.fingerprints,
                results=self.results,
                trace=trace,
            )
            return self.last_engine

        def run(self, targets, *, trace=None, **overrides):
            engine = self.engine(targets, trace=trace, **overrides)
            return engine.run(), engine.ctx

    return _Runner()
