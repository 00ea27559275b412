# src/trilha/steps/iris.py
"""
Pipeline de exemplo: classificação do dataset iris.

Targets registrados por `register_iris_targets`:

    raw_data ─┬─ data_summary
              ├─ hist
              └─ split ─┬─ fit ── predictions ─┐
                        └──────────────────────┴─ metrics

Parâmetros de execução (seed, test_size, bins) entram nos comandos via
`functools.partial`; por isso participam do fingerprint: alterar a seed
recalcula `split` e tudo o que depende dele, mantendo `raw_data`,
`data_summary` e `hist` como SKIPPED.

Limites explícitos:
    - Exemplo didático; não há busca de hiperparâmetros
    - Não plota histogramas (apenas contagens e bordas)
"""

from __future__ import annotations

from functools import partial
from typing import Any, Dict

import numpy as np
import pandas as pd
from sklearn.datasets import load_iris
from sklearn.metrics import accuracy_score, confusion_matrix
from sklearn.model_selection import train_test_split
from sklearn.naive_bayes import GaussianNB


FEATURES = [
    "sepal length (cm)",
    "sepal width (cm)",
    "petal length (cm)",
    "petal width (cm)",
]
LABEL = "species"


def _validate_test_size(test_size: Any) -> float:
    if isinstance(test_size, bool) or not isinstance(test_size, (int, float)):
        raise ValueError("Invalid config: test_size must be a number")
    ts = float(test_size)
    if not (0.0 < ts < 1.0):
        raise ValueError("Invalid config: test_size must be between 0 and 1 (exclusive)")
    return ts


def raw_data() -> pd.DataFrame:
    """Dataset iris com as quatro medidas e a espécie (categórica)."""
    bunch = load_iris(as_frame=True)
    frame = bunch.frame.drop(columns=["target"])
    frame[LABEL] = pd.Categorical.from_codes(bunch.target, categories=list(bunch.target_names))
    return frame


def data_summary(raw_data: pd.DataFrame) -> pd.DataFrame:
    return raw_data.describe()


def hist(raw_data: pd.DataFrame, *, bins: int = 10, column: str = "petal length (cm)") -> Dict[str, Any]:
    counts, edges = np.histogram(raw_data[column].to_numpy(), bins=bins)
    return {"column": column, "counts": counts, "edges": edges}


def split(raw_data: pd.DataFrame, *, seed: int = 42, test_size: float = 0.3) -> Dict[str, Any]:
    """Split estratificado e reprodutível (seed explícita)."""
    ts = _validate_test_size(test_size)
    X_train, X_test, y_train, y_test = train_test_split(
        raw_data[FEATURES],
        raw_data[LABEL].astype(str),
        test_size=ts,
        random_state=seed,
        stratify=raw_data[LABEL],
    )
    return {"X_train": X_train, "X_test": X_test, "y_train": y_train, "y_test": y_test}


def fit(split: Dict[str, Any]) -> GaussianNB:
    return GaussianNB().fit(split["X_train"], split["y_train"])


def predictions(fit: GaussianNB, split: Dict[str, Any]) -> pd.Series:
    X_test = split["X_test"]
    return pd.Series(fit.predict(X_test), index=X_test.index, name="predicted")


def metrics(split: Dict[str, Any], predictions: pd.Series) -> Dict[str, Any]:
    """Matriz de confusão (linhas = real, colunas = previsto) e acurácia."""
    y_true = split["y_test"]
    labels = sorted(set(y_true) | set(predictions))
    cm = confusion_matrix(y_true, predictions.loc[y_true.index], labels=labels)
    return {
        "confusion_matrix": pd.DataFrame(cm, index=labels, columns=labels),
        "accuracy": float(accuracy_score(y_true, predictions.loc[y_true.index])),
    }


def register_iris_targets(pipeline: Any, *, seed: int = 42, test_size: float = 0.3, bins: int = 10) -> None:
    """Registra os targets do exemplo iris em `pipeline` (qualquer objeto com `register`)."""
    pipeline.register("raw_data", raw_data, description="Iris dataset as a DataFrame")
    pipeline.register("data_summary", data_summary, description="Descriptive statistics")
    pipeline.register("hist", partial(hist, bins=bins), description="Histogram of petal length")
    pipeline.register(
        "split",
        partial(split, seed=seed, test_size=test_size),
        description="Stratified train/test split",
    )
    pipeline.register("fit", fit, description="Gaussian naive Bayes model")
    pipeline.register("predictions", predictions, description="Predicted species on the test split")
    pipeline.register("metrics", metrics, description="Confusion matrix and accuracy")


__all__ = [
    "FEATURES",
    "LABEL",
    "raw_data",
    "data_summary",
    "hist",
    "split",
    "fit",
    "predictions",
    "metrics",
    "register_iris_targets",
]
