# tests/e2e/test_pipeline_iris_e2e.py
"""
Teste end-to-end do pipeline de exemplo (iris) em disco.

Fluxo validado:
    1. Primeira run: todos os targets executam (OK)
    2. Segunda run idêntica: todos SKIPPED
    3. Nova seed: `split` e dependentes recalculam; `raw_data`,
       `data_summary` e `hist` continuam SKIPPED
    4. Resultados são legíveis com seleção de sub-elementos
"""

import pandas as pd
import pytest

try:
    from trilha import Pipeline, TargetStatus
    from trilha.notebook_ui import render_manifest, render_run_report
    from trilha.steps import register_iris_targets
except Exception as e:  # noqa: BLE001
    Pipeline = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


ALL = ["raw_data", "data_summary", "hist", "split", "fit", "predictions", "metrics"]


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing trilha e2e dependencies. Import error: {_IMPORT_ERR}")


def _pipeline(root, *, seed=42):
    pipe = Pipeline({"engine": {"max_workers": 2}, "store": {"backend": "disk", "root": str(root)}})
    register_iris_targets(pipe, seed=seed)
    return pipe


def test_iris_pipeline_incremental_runs(tmp_path):
    _require_imports()

    first = _pipeline(tmp_path).run()
    assert [t.name for t in first] == ALL
    assert first.names_with(TargetStatus.OK) == ALL

    second = _pipeline(tmp_path).run()
    assert second.names_with(TargetStatus.SKIPPED) == ALL

    reseeded = _pipeline(tmp_path, seed=7).run()
    assert reseeded.names_with(TargetStatus.SKIPPED) == ["raw_data", "data_summary", "hist"]
    assert reseeded.names_with(TargetStatus.OK) == ["split", "fit", "predictions", "metrics"]


def test_iris_results_are_readable(tmp_path):
    _require_imports()
    pipe = _pipeline(tmp_path)
    report = pipe.run()
    assert report.ok

    raw = pipe.read("raw_data")
    assert isinstance(raw, pd.DataFrame)
    assert raw.shape == (150, 5)

    accuracy = pipe.read("metrics", "accuracy")
    assert 0.8 <= accuracy <= 1.0

    cm = pipe.read("metrics", "confusion_matrix")
    assert cm.shape == (3, 3)
    assert int(cm.to_numpy().sum()) == len(pipe.read("split", "y_test"))

    assert pipe.read("split", "X_train", "shape", 0) == 105
    assert int(pipe.read("hist", "counts").sum()) == 150


def test_iris_manifest_and_rendering(tmp_path):
    _require_imports()
    pipe = _pipeline(tmp_path)

    entries = pipe.manifest()
    deps = {e["name"]: e["dependencies"] for e in entries}
    assert deps["metrics"] == ["split", "predictions"]
    assert deps["predictions"] == ["split", "fit"]
    assert "seed=42" in entries[3]["command"]

    text = render_manifest(entries).text
    assert "metrics <- split, predictions" in text

    rendered = render_run_report(pipe.run())
    assert rendered.text.splitlines()[0].endswith("(ok=7)")
    assert "metrics" in rendered.html
