# src/trilha/pipeline.py
"""
Pipeline — fachada pública do Trilha.

Reúne registry, Graph Builder, Planner, Engine e stores em uma API
pequena, pensada para notebooks e scripts:

    pipeline = Pipeline({"store": {"backend": "memory"}})

    @pipeline.target()
    def a():
        return 5

    @pipeline.target()
    def b(a):
        return a + 1

    report = pipeline.run()
    pipeline.read("b")            # 6

Operações:
    - register / target  → declaração de targets
    - run                → execução incremental (RunReport)
    - manifest           → listagem {name, command, dependencies}
    - graph              → DAG (nós + arestas) para renderização externa
    - read               → valor armazenado, com seleção opcional de sub-elementos
    - clear / cancel     → invalidação e cancelamento cooperativo
    - outdated           → targets que a próxima run recalcularia (dry run)

Stores:
    - store.backend=disk   → JsonFingerprintStore + JoblibResultStore em
      `<store.root>/records` e `<store.root>/results`; Run Trace em
      `<store.root>/runs/<run_id>.json`
    - store.backend=memory → stores voláteis ligadas à instância
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from trilha._version import __version__
from trilha.core.config import DEFAULT_CONFIG, EngineSettings, compute_config_hash, deep_merge, load_config
from trilha.core.engine.engine import Engine
from trilha.core.engine.graph import TargetGraph, build_graph
from trilha.core.engine.planner import plan_execution
from trilha.core.exceptions import NotFoundError, StoreError
from trilha.core.pipeline.command import command_digest, describe_command
from trilha.core.pipeline.context import RunContext
from trilha.core.pipeline.registry import TargetRegistry
from trilha.core.pipeline.target import DependsOn, Target
from trilha.core.pipeline.types import RunReport
from trilha.core.traceability import RunTrace, create_trace, save_trace
from trilha.persistence.fingerprint_store import (
    REUSABLE_STATUSES,
    FingerprintStore,
    JsonFingerprintStore,
    MemoryFingerprintStore,
    fingerprint_of,
)
from trilha.persistence.result_store import JoblibResultStore, MemoryResultStore, ResultStore


def _new_run_id(now: datetime) -> str:
    return f"{now.strftime('%Y%m%dT%H%M%SZ')}-{uuid.uuid4().hex[:8]}"


class Pipeline:
    """Definição de pipeline + stores + execução."""

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        *,
        fingerprints: Optional[FingerprintStore] = None,
        results: Optional[ResultStore] = None,
    ):
        self.config: Dict[str, Any] = deep_merge(DEFAULT_CONFIG, config or {})
        self.settings = EngineSettings.from_config(self.config)
        self.registry = TargetRegistry()

        root = Path(self.settings.store_root)
        if self.settings.store_backend == "disk":
            self.fingerprints = fingerprints or JsonFingerprintStore(root / "records")
            self.results = results or JoblibResultStore(root / "results")
        else:
            self.fingerprints = fingerprints or MemoryFingerprintStore()
            self.results = results or MemoryResultStore()

        self.last_context: Optional[RunContext] = None
        self.last_trace: Optional[RunTrace] = None
        self._engine: Optional[Engine] = None
        self._lock = threading.Lock()

    @classmethod
    def from_files(cls, defaults_path: Optional[str] = None, local_path: Optional[str] = None) -> "Pipeline":
        """Pipeline configurado por arquivos YAML/JSON (ver `load_config`)."""
        return cls(load_config(defaults_path=defaults_path, local_path=local_path))

    # ------------------------------------------------------------------
    # Declaração
    # ------------------------------------------------------------------
    def register(
        self,
        name: str,
        command: Callable[..., Any],
        depends_on: DependsOn = None,
        description: Optional[str] = None,
    ) -> Target:
        return self.registry.register(name, command, depends_on=depends_on, description=description)

    def target(
        self,
        name: Optional[str] = None,
        depends_on: DependsOn = None,
        description: Optional[str] = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator: registra a função com o próprio nome (ou `name`) e a devolve intacta."""

        def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
            self.register(name or fn.__name__, fn, depends_on=depends_on, description=description or fn.__doc__)
            return fn

        return decorator

    # ------------------------------------------------------------------
    # Introspecção
    # ------------------------------------------------------------------
    def graph(self) -> TargetGraph:
        return build_graph(self.registry.all())

    def manifest(self) -> List[Dict[str, Any]]:
        graph = self.graph()
        return [
            {
                "name": t.name,
                "command": describe_command(t.command),
                "dependencies": list(graph.upstream[t.name]),
                "description": t.description,
            }
            for t in self.registry.all()
        ]

    def outdated(self) -> List[str]:
        """Targets que a próxima run recalcularia, em ordem de plano. Não executa nada."""
        graph = self.graph()
        order = plan_execution(graph)
        try:
            self.fingerprints.open()
            self.results.open()
        except StoreError:
            return order

        current: Dict[str, str] = {}
        out: List[str] = []
        for name in order:
            if any(u not in current for u in graph.upstream[name]):
                out.append(name)
                continue
            try:
                digest = command_digest(graph.targets[name].command)
            except Exception:
                # a run registraria ERROR para este target
                out.append(name)
                continue
            inputs = {arg: current[up] for arg, up in graph.inputs(name).items()}
            fp = fingerprint_of(digest, [current[u] for u in graph.upstream[name]], inputs)
            current[name] = fp
            try:
                record = self.fingerprints.load_record(name)
                fresh = (
                    record is not None
                    and record.fingerprint == fp
                    and record.status in REUSABLE_STATUSES
                    and self.results.has(name)
                )
            except StoreError:
                fresh = False
            if not fresh:
                out.append(name)
        return out

    # ------------------------------------------------------------------
    # Execução
    # ------------------------------------------------------------------
    def run(self, run_id: Optional[str] = None) -> RunReport:
        """
        Executa o pipeline de forma incremental.

        Raises:
            ConfigurationError: Nome duplicado, dependência desconhecida ou
                ciclo (sempre antes de qualquer execução).
        """
        graph = self.graph()
        now = datetime.now(timezone.utc)
        run_id = run_id or _new_run_id(now)

        ctx = RunContext(run_id=run_id, created_at=now, config=self.config, meta={"trilha_version": __version__})
        trace = None
        if self.settings.trace_enabled:
            trace = create_trace(
                run_id=run_id,
                started_at=now,
                trilha_version=__version__,
                config_hash=compute_config_hash(self.config),
                graph_hash=compute_config_hash(graph.to_dict()),
            )

        engine = Engine(
            targets=self.registry.all(),
            ctx=ctx,
            fingerprints=self.fingerprints,
            results=self.results,
            trace=trace,
            settings=self.settings,
        )
        with self._lock:
            self._engine = engine
        try:
            report = engine.run()
        finally:
            with self._lock:
                self._engine = None

        self.last_context = ctx
        self.last_trace = trace
        if trace is not None and self.settings.store_backend == "disk":
            path = self.trace_path(run_id)
            try:
                save_trace(trace, path)
            except OSError as exc:
                ctx.log(target=None, level="warning", message=f"run trace not saved: {exc}", path=str(path))
        return report

    def trace_path(self, run_id: str) -> Path:
        return Path(self.settings.store_root) / "runs" / f"{run_id}.json"

    def cancel(self) -> None:
        """Cancela a run em andamento (thread-safe). Sem run ativa, não faz nada."""
        with self._lock:
            engine = self._engine
        if engine is not None:
            engine.cancel()

    # ------------------------------------------------------------------
    # Resultados
    # ------------------------------------------------------------------
    def read(self, name: str, *path: Any) -> Any:
        """
        Lê o valor armazenado de um target.

        `path` seleciona sub-elementos: cada item é aplicado como chave/índice
        (`value[item]`) e, se não resolver, como atributo (`getattr`).

            pipeline.read("metrics", "accuracy")
            pipeline.read("split", "X_train", "shape", 0)

        Um target BLOCKED não executa e não altera a store: continua
        retornando o valor da última execução bem-sucedida (se houver),
        mesmo que esse valor não corresponda mais ao estado atual do
        pipeline. Use `outdated()` para saber quais valores estão defasados.

        Raises:
            NotFoundError: Target sem resultado (nunca calculado ou última
                execução em erro) ou caminho que não resolve.
            StoreCorruptError: Resultado persistido ilegível.
        """
        try:
            record = self.fingerprints.load_record(name)
        except StoreError:
            record = None
        if record is not None and record.status == "error":
            raise NotFoundError(name, f"Last run of target '{name}' failed; no result available")

        value = self.results.get(name)
        for step, key in enumerate(path):
            value = _select(value, key, name=name, path=path[: step + 1])
        return value

    def clear(self, name: Optional[str] = None) -> None:
        """Invalida resultado e registro de um target (ou de todos)."""
        self.results.clear(name)
        self.fingerprints.clear(name)


_MISSING = object()


def _select(value: Any, key: Any, *, name: str, path: tuple) -> Any:
    found = _MISSING
    if isinstance(value, Mapping) or hasattr(value, "__getitem__"):
        try:
            found = value[key]
        except (KeyError, IndexError, TypeError):
            found = _MISSING
    if found is _MISSING and isinstance(key, str) and hasattr(value, key):
        found = getattr(value, key)
    if found is _MISSING:
        raise NotFoundError(name, f"Path {list(path)!r} does not resolve in result of '{name}'")
    return found


__all__ = ["Pipeline"]
