# tests/core/engine/test_executor_fail_fast.py
"""
Testes da política de falha padrão (engine.fail_fast=true).

Após o primeiro ERROR nenhum target novo inicia:
- consumidores do target com falha → BLOCKED (UPSTREAM_FAILED)
- targets independentes ainda não iniciados → BLOCKED (RUN_HALTED)
- o resultado armazenado do target com falha é removido
- targets BLOCKED mantêm resultado e registro anteriores
"""

import pytest

try:
    from trilha.core.errors import ENGINE_EXECUTION_ERROR, RUN_HALTED, UPSTREAM_FAILED
    from trilha.core.pipeline.target import Target
    from trilha.core.pipeline.types import TargetStatus
except Exception as e:  # noqa: BLE001
    Target = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing Engine. Import error: {_IMPORT_ERR}")


def _boom():
    raise RuntimeError("boom")


def test_failure_halts_the_run(engine_runner, calls):
    _require_imports()

    def other():
        calls.hit("other")
        return 1

    def child(a):
        calls.hit("child")
        return a

    targets = [
        Target.create("a", _boom),
        Target.create("other", other),
        Target.create("child", child),
    ]
    report, _ = engine_runner.run(targets)

    assert report.statuses() == {
        "a": TargetStatus.ERROR,
        "other": TargetStatus.BLOCKED,
        "child": TargetStatus.BLOCKED,
    }
    assert report.ok is False
    assert calls.names == []

    assert report["a"].error["type"] == ENGINE_EXECUTION_ERROR
    assert report["a"].error["message"] == "boom"
    assert report["a"].error["details"]["exception_class"] == "RuntimeError"
    assert report["other"].error["type"] == RUN_HALTED
    assert report["other"].error["details"]["failed"] == "a"
    assert report["child"].error["type"] == UPSTREAM_FAILED
    assert report["child"].error["details"]["upstream"] == "a"


def test_blocked_targets_have_no_fingerprint_and_zero_duration(engine_runner):
    _require_imports()
    report, _ = engine_runner.run([Target.create("a", _boom), Target.create("b", lambda a: a)])

    blocked = report["b"]
    assert blocked.fingerprint is None
    assert blocked.duration_ms == 0.0
    assert report["a"].fingerprint is not None


def test_error_is_recorded_and_result_cleared(engine_runner):
    _require_imports()
    engine_runner.run([Target.create("a", lambda: 1)])
    assert engine_runner.results.has("a")

    report, _ = engine_runner.run([Target.create("a", _boom)])

    record = engine_runner.fingerprints.load_record("a")
    assert report.status_of("a") == TargetStatus.ERROR
    assert record.status == "error"
    assert record.result_ref is None
    assert record.error["type"] == ENGINE_EXECUTION_ERROR
    assert not engine_runner.results.has("a")


def test_blocked_keeps_previous_result_and_recovers(engine_runner, calls):
    """
    Cenário:
        1. a=5, b=a+1 executam (OK)
        2. a passa a falhar → a ERROR, b BLOCKED (b mantém o valor 6)
        3. a volta à definição original → a recalcula, b é SKIPPED
    """
    _require_imports()

    def b(a):
        calls.hit("b")
        return a + 1

    engine_runner.run([Target.create("a", lambda: 5), Target.create("b", b)])
    b_record = engine_runner.fingerprints.load_record("b")

    broken, _ = engine_runner.run([Target.create("a", _boom), Target.create("b", b)])
    assert broken.status_of("b") == TargetStatus.BLOCKED
    assert engine_runner.results.get("b") == 6
    assert engine_runner.fingerprints.load_record("b") == b_record

    calls.reset()
    fixed, _ = engine_runner.run([Target.create("a", lambda: 5), Target.create("b", b)])
    assert fixed.status_of("a") == TargetStatus.OK
    assert fixed.status_of("b") == TargetStatus.SKIPPED
    assert calls.names == []


def test_errored_target_is_retried_even_with_same_fingerprint(engine_runner, calls):
    _require_imports()

    def flaky():
        calls.hit("flaky")
        if calls.count("flaky") == 1:
            raise ValueError("first attempt")
        return "done"

    first, _ = engine_runner.run([Target.create("flaky", flaky)])
    second, _ = engine_runner.run([Target.create("flaky", flaky)])

    assert first.status_of("flaky") == TargetStatus.ERROR
    assert second.status_of("flaky") == TargetStatus.OK
    assert first["flaky"].fingerprint == second["flaky"].fingerprint
    assert calls.count("flaky") == 2


def test_raise_on_error_surfaces_first_failure(engine_runner):
    _require_imports()
    from trilha.core.exceptions import ExecutionError

    report, _ = engine_runner.run([Target.create("ok", lambda: 1), Target.create("bad", _boom)])

    with pytest.raises(ExecutionError) as excinfo:
        report.raise_on_error()
    assert excinfo.value.target == "bad"
    assert excinfo.value.details["exception_class"] == "RuntimeError"


def test_raise_on_error_is_silent_for_successful_runs(engine_runner):
    _require_imports()
    report, _ = engine_runner.run([Target.create("ok", lambda: 1)])
    assert report.raise_on_error() is None


def test_undigestable_command_is_an_error_of_its_target(engine_runner, monkeypatch):
    """Falha ao calcular o digest vira ERROR do target, não exceção da run."""
    _require_imports()
    from trilha.core.engine import engine as engine_module

    real_digest = engine_module.command_digest

    def opaque():
        return 1

    def digest(command):
        if command is opaque:
            raise RecursionError("maximum recursion depth exceeded")
        return real_digest(command)

    monkeypatch.setattr(engine_module, "command_digest", digest)
    report, _ = engine_runner.run(
        [Target.create("a", opaque), Target.create("child", lambda a: a)],
        engine={"fail_fast": False},
    )

    assert report.status_of("a") == TargetStatus.ERROR
    assert report["a"].error["type"] == ENGINE_EXECUTION_ERROR
    assert report["a"].fingerprint is None
    assert report.status_of("child") == TargetStatus.BLOCKED
    assert report["child"].error["type"] == UPSTREAM_FAILED
    assert engine_runner.fingerprints.load_record("a") is None
