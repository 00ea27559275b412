# tests/core/config/test_hashing.py
"""
Testes do hashing canônico de configuração.

O hash é registrado no Run Trace (`inputs.config_hash`) e precisa ser
determinístico e independente da ordem das chaves.
"""

import hashlib
import json

import pytest

try:
    from trilha.core.config.hashing import canonical_json, compute_config_hash
except Exception as e:  # noqa: BLE001
    compute_config_hash = None
    canonical_json = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing src/trilha/core/config/hashing.py. Import error: {_IMPORT_ERR}")


def test_hash_is_deterministic():
    _require_imports()
    h1 = compute_config_hash({"b": 2, "a": 1})
    h2 = compute_config_hash({"a": 1, "b": 2})
    assert h1 == h2
    assert isinstance(h1, str)
    assert len(h1) == 64


def test_hash_matches_sha256_of_canonical_json():
    _require_imports()
    cfg = {"engine": {"fail_fast": True, "max_workers": 2}, "store": {"backend": "memory"}}
    raw = json.dumps(cfg, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    assert compute_config_hash(cfg) == hashlib.sha256(raw).hexdigest()
    assert canonical_json(cfg) == raw.decode("utf-8")


def test_hash_changes_on_override():
    _require_imports()
    base = {"engine": {"fail_fast": True}}
    changed = {"engine": {"fail_fast": False}}
    assert compute_config_hash(base) != compute_config_hash(changed)


def test_hash_rejects_non_dict():
    _require_imports()
    with pytest.raises(TypeError):
        compute_config_hash(["not", "a", "dict"])
