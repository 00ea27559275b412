"""
Persistência do Trilha.

- fingerprint_store: RunRecord por target (JSON ou memória)
- result_store: valores dos targets (joblib ou memória)
"""

from .fingerprint_store import (
    FingerprintStore,
    JsonFingerprintStore,
    MemoryFingerprintStore,
    RunRecord,
    fingerprint_of,
)
from .result_store import JoblibResultStore, MemoryResultStore, ResultStore

__all__ = [
    "FingerprintStore",
    "JsonFingerprintStore",
    "MemoryFingerprintStore",
    "RunRecord",
    "fingerprint_of",
    "ResultStore",
    "JoblibResultStore",
    "MemoryResultStore",
]
