# src/trilha/core/engine/engine.py
"""
Engine de execução incremental do Trilha.

Fluxo de uma run:
    1. Constrói o DAG (`build_graph`) e o plano topológico (`plan_execution`)
    2. Para cada target cujos upstream estão todos em estado terminal:
        - upstream em ERROR/BLOCKED → BLOCKED (nunca executa)
        - calcula o fingerprint a partir do digest do comando, dos
          fingerprints *da run atual* dos upstream e do vínculo
          parâmetro → upstream
        - fingerprint igual ao persistido, status persistido "ok"/"skipped" e
          resultado disponível → SKIPPED (resultado reutilizado; o registro
          passa a "skipped")
        - caso contrário, o comando é submetido ao pool de workers com os
          resultados upstream vinculados aos parâmetros; valores de upstream
          SKIPPED só são lidos da store neste momento
    3. Retorna um RunReport com todos os targets, na ordem do plano

Políticas:
    - engine.fail_fast=true (default): após o primeiro ERROR nenhum target
      novo inicia; os não iniciados ficam BLOCKED (RUN_HALTED)
    - engine.fail_fast=false: ramos independentes continuam; consumidores
      do target com falha ficam BLOCKED (UPSTREAM_FAILED)
    - engine.timeout_seconds: invocação que excede o limite → ERROR
      (TARGET_TIMEOUT); o resultado tardio é descartado
    - cancel(): nenhum target inicia após o cancelamento; os não iniciados
      ficam BLOCKED (RUN_CANCELLED); os em execução terminam e são registrados

Concorrência:
    - Uma única thread coordenadora (a que chama `run`)
    - Comandos executam em `ThreadPoolExecutor(engine.max_workers)`
    - Toda escrita em stores, contexto e trace ocorre na thread coordenadora

Falhas de store:
    - leitura falha/corrompida → cache-miss (recalcula) + warning
    - valor de upstream SKIPPED ilegível ao ser consumido → o upstream é
      recalculado antes do consumidor e seu report passa de SKIPPED ao
      resultado do recálculo
    - digest do comando não calculável → ERROR do próprio target
    - escrita falha após sucesso do comando → status OK + warning
"""

from __future__ import annotations

import heapq
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Set, Tuple

from trilha.core.config.settings import EngineSettings
from trilha.core.errors import (
    ErrorPayload,
    engine_execution_error,
    run_cancelled,
    run_halted,
    target_timeout,
    upstream_failed,
)
from trilha.core.exceptions import StoreError
from trilha.core.pipeline.command import command_digest
from trilha.core.pipeline.context import RunContext
from trilha.core.pipeline.target import Target
from trilha.core.pipeline.types import RunReport, TargetReport, TargetStatus
from trilha.core.traceability import RunTrace, add_event, target_failed, target_finished, target_started
from trilha.persistence.fingerprint_store import (
    REUSABLE_STATUSES,
    FingerprintStore,
    RunRecord,
    fingerprint_of,
    utc_now_iso,
)
from trilha.persistence.result_store import ResultStore

from .graph import TargetGraph, build_graph
from .planner import plan_execution


def _invoke(command: Callable[..., Any], kwargs: Dict[str, Any]) -> Tuple[Any, float]:
    start = time.perf_counter()
    value = command(**kwargs)
    return value, (time.perf_counter() - start) * 1000.0


@dataclass
class _Running:
    name: str
    submitted: float
    deadline: Optional[float]


class Engine:
    """Scheduler/Executor canônico do Trilha (planner + pool + stores)."""

    def __init__(
        self,
        *,
        targets: Sequence[Target],
        ctx: RunContext,
        fingerprints: FingerprintStore,
        results: ResultStore,
        trace: Optional[RunTrace] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self.targets: List[Target] = list(targets)
        self.ctx = ctx
        self.fingerprints = fingerprints
        self.results = results
        self.trace = trace
        self.settings = settings or EngineSettings.from_config(ctx.config)
        self._cancel = threading.Event()

    # ------------------------------------------------------------------
    # Cancelamento (thread-safe)
    # ------------------------------------------------------------------
    def cancel(self) -> None:
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    # ------------------------------------------------------------------
    # Helpers de registro (thread coordenadora)
    # ------------------------------------------------------------------
    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def _warn(self, name: str, message: str) -> None:
        self.ctx.add_warning(target=name, message=message)
        self.ctx.log(target=name, level="warning", message=message)

    def _report(
        self,
        name: str,
        status: TargetStatus,
        *,
        duration_ms: float = 0.0,
        error: Optional[ErrorPayload] = None,
        fingerprint: Optional[str] = None,
    ) -> TargetReport:
        return TargetReport(
            name=name,
            status=status,
            duration_ms=duration_ms,
            error=error.to_dict() if error is not None else None,
            warnings=self.ctx.warnings_for(name),
            fingerprint=fingerprint,
        )

    def _trace_terminal(self, report: TargetReport) -> None:
        if self.trace is None:
            return
        if report.status == TargetStatus.ERROR:
            target_failed(self.trace, target=report.name, ts=self._now(), error=report.error or {})
            return
        target_finished(
            self.trace,
            target=report.name,
            ts=self._now(),
            result={
                "status": report.status.value,
                "duration_ms": report.duration_ms,
                "fingerprint": report.fingerprint,
                "warnings": list(report.warnings),
                "error": report.error,
            },
        )

    # ------------------------------------------------------------------
    # Stores
    # ------------------------------------------------------------------
    def _open_stores(self) -> Optional[str]:
        """Abre as stores; retorna motivo de invalidação total ou None."""
        for label, store in (("fingerprint", self.fingerprints), ("result", self.results)):
            try:
                store.open()
            except StoreError as exc:
                self.ctx.log(target=None, level="warning", message=f"{label} store unavailable: {exc}")
                return f"{label} store unavailable ({exc}); recomputing"
        return None

    def _flush_stores(self) -> None:
        for label, store in (("fingerprint", self.fingerprints), ("result", self.results)):
            try:
                store.flush()
            except StoreError as exc:
                self.ctx.log(target=None, level="warning", message=f"{label} store flush failed: {exc}")

    def _try_skip(self, name: str, fingerprint: str) -> bool:
        """
        Decide se o target pode ser reaproveitado.

        Apenas a existência do resultado é verificada; o valor só é lido
        quando algum consumidor de fato executa (ver `_RunLoop._load_inputs`).
        """
        try:
            record = self.fingerprints.load_record(name)
        except StoreError as exc:
            self._warn(name, f"run record unreadable ({exc}); recomputing")
            return False

        if record is None or record.fingerprint != fingerprint or record.status not in REUSABLE_STATUSES:
            return False

        try:
            return self.results.has(name)
        except StoreError as exc:
            self._warn(name, f"stored result unreadable ({exc}); recomputing")
            return False

    def _record_success(self, name: str, fingerprint: str, value: Any) -> None:
        try:
            self.results.put(name, value)
            ref = self.results.ref(name)
        except StoreError as exc:
            self._warn(name, f"result not persisted: {exc}")
            return
        try:
            self.fingerprints.save_record(
                name,
                RunRecord(fingerprint=fingerprint, status="ok", result_ref=ref, updated_at=utc_now_iso()),
            )
        except StoreError as exc:
            self._warn(name, f"run record not persisted: {exc}")

    def _record_skip(self, name: str, fingerprint: str) -> None:
        try:
            self.fingerprints.save_record(
                name,
                RunRecord(
                    fingerprint=fingerprint,
                    status="skipped",
                    result_ref=self.results.ref(name),
                    updated_at=utc_now_iso(),
                ),
            )
        except StoreError as exc:
            self._warn(name, f"run record not persisted: {exc}")

    def _record_failure(self, name: str, fingerprint: Optional[str], error: ErrorPayload) -> None:
        try:
            self.results.clear(name)
        except StoreError as exc:
            self._warn(name, f"stale result not cleared: {exc}")
        try:
            if fingerprint is None:
                # sem fingerprint calculável nada pode ser reaproveitado depois
                self.fingerprints.clear(name)
                return
            self.fingerprints.save_record(
                name,
                RunRecord(
                    fingerprint=fingerprint,
                    status="error",
                    result_ref=None,
                    updated_at=utc_now_iso(),
                    error=error.to_dict(),
                ),
            )
        except StoreError as exc:
            self._warn(name, f"run record not persisted: {exc}")

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------
    def run(self) -> RunReport:
        """
        Executa o pipeline.

        Raises:
            ConfigurationError: Grafo inválido (antes de qualquer execução).
        """
        graph = build_graph(self.targets)
        order = plan_execution(graph)
        return _RunLoop(self, graph, order).execute()


class _RunLoop:
    """Estado mutável de uma única run (vive apenas dentro de `Engine.run`)."""

    def __init__(self, engine: Engine, graph: TargetGraph, order: List[str]):
        self.engine = engine
        self.ctx = engine.ctx
        self.settings = engine.settings
        self.graph = graph
        self.order = order
        self.index = {name: i for i, name in enumerate(graph.nodes)}

        self.digests: Dict[str, str] = {}
        self.current: Dict[str, str] = {}
        self.values: Dict[str, Any] = {}
        self.reports: Dict[str, TargetReport] = {}
        self.remaining: Dict[str, int] = {n: len(graph.upstream[n]) for n in graph.nodes}
        self.ready: List[Tuple[int, str]] = []
        self.running: Dict[Future, _Running] = {}
        # consumidor → upstream SKIPPED sendo recalculados por valor ilegível
        self.waiting: Dict[str, Set[str]] = {}
        self.rebuilding: Set[str] = set()
        self.halted_by: Optional[str] = None
        self.stale_reason: Optional[str] = None
        self.pool: Optional[ThreadPoolExecutor] = None

    # -----------------------------
    # Transições de estado
    # -----------------------------
    def _finalize(self, report: TargetReport) -> None:
        self.reports[report.name] = report
        self.engine._trace_terminal(report)
        for child in self.graph.downstream[report.name]:
            self.remaining[child] -= 1
            if self.remaining[child] == 0:
                heapq.heappush(self.ready, (self.index[child], child))

    def _settle(self, report: TargetReport) -> None:
        """Finaliza o target ou, se era um recálculo, substitui o report SKIPPED."""
        name = report.name
        if name not in self.rebuilding:
            self._finalize(report)
            return
        self.rebuilding.discard(name)
        self.reports[name] = report
        self.engine._trace_terminal(report)
        self._resume(name)

    def _block(self, name: str, error: ErrorPayload) -> None:
        self.ctx.log(target=name, level="info", message="blocked", reason=error.type)
        self._settle(self.engine._report(name, TargetStatus.BLOCKED, error=error))

    def _failed_upstream(self, name: str) -> Optional[str]:
        for up in self.graph.upstream[name]:
            if not self.reports[up].status.is_success:
                return up
        return None

    def _blocked_by_policy(self, name: str) -> bool:
        if self.engine.cancelled:
            self._block(name, run_cancelled(target=name))
            return True
        failed = self._failed_upstream(name)
        if failed is not None:
            self._block(name, upstream_failed(target=name, upstream=failed))
            return True
        if self.halted_by is not None:
            self._block(name, run_halted(target=name, failed=self.halted_by))
            return True
        return False

    # -----------------------------
    # Agendamento
    # -----------------------------
    def _fingerprint(self, name: str) -> str:
        if name not in self.digests:
            self.digests[name] = command_digest(self.graph.targets[name].command)
        return fingerprint_of(
            self.digests[name],
            [self.current[u] for u in self.graph.upstream[name]],
            {arg: self.current[up] for arg, up in self.graph.inputs(name).items()},
        )

    def _schedule(self, name: str) -> None:
        engine = self.engine
        if self._blocked_by_policy(name):
            return

        try:
            fp = self._fingerprint(name)
        except Exception as exc:
            self._fail(name, engine_execution_error(target=name, exc=exc), 0.0)
            return
        self.current[name] = fp

        if self.stale_reason is not None:
            engine._warn(name, self.stale_reason)
        elif engine._try_skip(name, fp):
            engine._record_skip(name, fp)
            self.ctx.log(target=name, level="info", message="skipped", fingerprint=fp)
            self._finalize(engine._report(name, TargetStatus.SKIPPED, fingerprint=fp))
            return

        self._start(name)

    def _start(self, name: str) -> None:
        missing = self._load_inputs(name)
        if missing:
            self.waiting[name] = set(missing)
            for up in missing:
                if up not in self.rebuilding:
                    self.rebuilding.add(up)
                    self._start(up)
            return
        self._submit(name)

    def _load_inputs(self, name: str) -> List[str]:
        """Carrega sob demanda os valores upstream reaproveitados; retorna os ilegíveis."""
        missing: List[str] = []
        # dependências apenas de ordem não são passadas ao comando
        for up in dict.fromkeys(self.graph.inputs(name).values()):
            if up in self.rebuilding:
                missing.append(up)
                continue
            if up in self.values:
                continue
            try:
                self.values[up] = self.engine.results.get(up)
            except KeyError:
                self.engine._warn(up, "stored result missing; recomputing")
                missing.append(up)
            except StoreError as exc:
                self.engine._warn(up, f"stored result unreadable ({exc}); recomputing")
                missing.append(up)
        return missing

    def _submit(self, name: str) -> None:
        engine = self.engine
        fp = self.current[name]
        kwargs = {arg: self.values[up] for arg, up in self.graph.inputs(name).items()}

        self.ctx.log(target=name, level="info", message="started", fingerprint=fp)
        if engine.trace is not None:
            target_started(engine.trace, target=name, ts=engine._now(), fingerprint=fp)

        submitted = time.monotonic()
        timeout = self.settings.timeout_seconds
        future = self.pool.submit(_invoke, self.graph.targets[name].command, kwargs)
        self.running[future] = _Running(
            name=name,
            submitted=submitted,
            deadline=submitted + timeout if timeout is not None else None,
        )

    def _resume(self, up: str) -> None:
        """Libera os consumidores que aguardavam o recálculo de `up`."""
        for name in [n for n, pending in self.waiting.items() if up in pending]:
            pending = self.waiting[name]
            pending.discard(up)
            if pending:
                continue
            del self.waiting[name]
            if not self._blocked_by_policy(name):
                self._start(name)

    # -----------------------------
    # Conclusão
    # -----------------------------
    def _complete(self, future: Future) -> None:
        info = self.running.pop(future)
        name = info.name
        fp = self.current[name]
        try:
            value, duration_ms = future.result()
        except Exception as exc:
            duration_ms = (time.monotonic() - info.submitted) * 1000.0
            self._fail(name, engine_execution_error(target=name, exc=exc), duration_ms)
            return

        timeout = self.settings.timeout_seconds
        if timeout is not None and duration_ms > timeout * 1000.0:
            self._fail(name, target_timeout(target=name, timeout_seconds=timeout), duration_ms)
            return

        self.values[name] = value
        self.engine._record_success(name, fp, value)
        self.ctx.log(target=name, level="info", message="finished", duration_ms=duration_ms)
        self._settle(self.engine._report(name, TargetStatus.OK, duration_ms=duration_ms, fingerprint=fp))

    def _fail(self, name: str, error: ErrorPayload, duration_ms: float) -> None:
        fp = self.current.get(name)
        self.engine._record_failure(name, fp, error)
        self.ctx.log(target=name, level="error", message="failed", error=error.to_dict())
        if self.settings.fail_fast and self.halted_by is None:
            self.halted_by = name
        self._settle(
            self.engine._report(name, TargetStatus.ERROR, duration_ms=duration_ms, error=error, fingerprint=fp)
        )

    def _new_pool(self) -> ThreadPoolExecutor:
        return ThreadPoolExecutor(max_workers=self.settings.max_workers, thread_name_prefix="trilha")

    def _expire(self) -> None:
        now = time.monotonic()
        expired = False
        for future, info in list(self.running.items()):
            if info.deadline is None or now < info.deadline or future.done():
                continue
            self.running.pop(future)
            # o resultado tardio é descartado
            future.cancel()
            expired = True
            self._fail(
                info.name,
                target_timeout(target=info.name, timeout_seconds=self.settings.timeout_seconds or 0.0),
                (now - info.submitted) * 1000.0,
            )
        if expired:
            # a thread presa continua ocupando um worker do pool antigo
            self.pool.shutdown(wait=False)
            self.pool = self._new_pool()

    def _wait_timeout(self) -> Optional[float]:
        deadlines = [i.deadline for i in self.running.values() if i.deadline is not None]
        if not deadlines:
            return None
        return max(0.0, min(deadlines) - time.monotonic())

    # -----------------------------
    # Loop principal
    # -----------------------------
    def execute(self) -> RunReport:
        engine = self.engine
        self.ctx.log(
            target=None,
            level="info",
            message="run_started",
            targets=len(self.order),
            fail_fast=self.settings.fail_fast,
            max_workers=self.settings.max_workers,
        )
        if engine.trace is not None:
            add_event(engine.trace, event_type="run_started", ts=engine._now(), payload={"targets": list(self.order)})

        self.stale_reason = engine._open_stores()

        for name in self.graph.nodes:
            if self.remaining[name] == 0:
                heapq.heappush(self.ready, (self.index[name], name))

        self.pool = self._new_pool()
        try:
            while len(self.reports) < len(self.order):
                while self.ready and len(self.running) < self.settings.max_workers:
                    _, name = heapq.heappop(self.ready)
                    self._schedule(name)

                if not self.running:
                    if self.ready:
                        continue
                    break

                done, _ = wait(list(self.running), timeout=self._wait_timeout(), return_when=FIRST_COMPLETED)
                for future in sorted(done, key=lambda f: self.index[self.running[f].name]):
                    self._complete(future)
                self._expire()
        finally:
            # timeouts podem deixar threads em andamento; não bloqueia a run
            self.pool.shutdown(wait=False, cancel_futures=True)
            engine._flush_stores()

        report = RunReport(run_id=self.ctx.run_id, targets=[self.reports[n] for n in self.order])
        counts = {s.value: len(report.names_with(s)) for s in TargetStatus}
        self.ctx.log(target=None, level="info", message="run_finished", **counts)
        if engine.trace is not None:
            add_event(engine.trace, event_type="run_finished", ts=engine._now(), payload=counts)
        return report


__all__ = ["Engine"]
