# src/trilha/persistence/fingerprint_store.py
"""
Fingerprint Store — estado durável por target (RunRecord).

Cada target possui um registro independente com o último fingerprint,
a referência do resultado, o status da última execução e o instante da
atualização. Carregar e salvar um target nunca exige ler os demais, o
que mantém runs incrementais baratas.

Implementações:
    - MemoryFingerprintStore: dicionário em memória (testes, notebooks)
    - JsonFingerprintStore: um arquivo JSON por target sob `root`

Decisões (v1):
    - Escrita atômica (arquivo temporário + `os.replace`)
    - Nome de arquivo = nome sanitizado + hash curto do nome
    - JSON ilegível ou com schema inválido → StoreCorruptError
    - Falhas de I/O → StoreError

Limites explícitos:
    - Não decide skip/recompute (responsabilidade do Engine)
    - Não armazena valores de resultado (responsabilidade do Result Store)
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol, Union

from trilha.core.config.hashing import canonical_json, sha256_hex
from trilha.core.exceptions import StoreCorruptError, StoreError

from .paths import atomic_write, safe_stem


RECORD_STATUSES = ("ok", "error", "skipped")
# status cujo resultado armazenado é válido para reaproveitamento
REUSABLE_STATUSES = ("ok", "skipped")


def fingerprint_of(
    command_digest: str,
    upstream_fingerprints: Iterable[str],
    inputs: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Fingerprint de um target na run atual.

    `inputs` mapeia cada argumento nomeado recebido pelo comando ao
    fingerprint do upstream que o fornece; trocar qual upstream alimenta
    qual parâmetro (ou o nome sob o qual chega em `**kwargs`) muda o
    fingerprint.

    Função pura: mesmo digest, mesmo conjunto de fingerprints upstream e
    mesmos vínculos produzem sempre o mesmo valor, independentemente da
    ordem em que são informados.
    """
    payload = {
        "command": command_digest,
        "upstream": sorted(upstream_fingerprints),
        "inputs": sorted([param, fp] for param, fp in (inputs or {}).items()),
    }
    return sha256_hex(canonical_json(payload))


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class RunRecord:
    """Registro persistido de um target."""

    fingerprint: str
    status: str
    result_ref: Optional[str] = None
    updated_at: Optional[str] = None
    error: Optional[Dict[str, Any]] = field(default=None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fingerprint": self.fingerprint,
            "status": self.status,
            "result_ref": self.result_ref,
            "updated_at": self.updated_at,
            "error": dict(self.error) if self.error is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "RunRecord":
        if not isinstance(data, dict):
            raise StoreCorruptError("Run record must be a JSON object", details={"received": type(data).__name__})
        fingerprint = data.get("fingerprint")
        status = data.get("status")
        if not isinstance(fingerprint, str) or status not in RECORD_STATUSES:
            raise StoreCorruptError(
                "Run record has invalid fingerprint/status",
                details={"fingerprint": repr(fingerprint), "status": repr(status)},
            )
        error = data.get("error")
        return cls(
            fingerprint=fingerprint,
            status=status,
            result_ref=data.get("result_ref"),
            updated_at=data.get("updated_at"),
            error=dict(error) if isinstance(error, dict) else None,
        )


class FingerprintStore(Protocol):
    """Contrato mínimo esperado pelo Engine."""

    def open(self) -> None: ...

    def flush(self) -> None: ...

    def load(self, name: str) -> Optional[str]: ...

    def save(self, name: str, fingerprint: str) -> None: ...

    def load_record(self, name: str) -> Optional[RunRecord]: ...

    def save_record(self, name: str, record: RunRecord) -> None: ...

    def clear(self, name: Optional[str] = None) -> None: ...


class _RecordStoreMixin:
    """`load`/`save` derivados de `load_record`/`save_record`."""

    def load(self, name: str) -> Optional[str]:
        record = self.load_record(name)  # type: ignore[attr-defined]
        return record.fingerprint if record is not None else None

    def save(self, name: str, fingerprint: str) -> None:
        previous = self.load_record(name)  # type: ignore[attr-defined]
        self.save_record(  # type: ignore[attr-defined]
            name,
            RunRecord(
                fingerprint=fingerprint,
                status="ok",
                result_ref=previous.result_ref if previous is not None else None,
                updated_at=utc_now_iso(),
            ),
        )


class MemoryFingerprintStore(_RecordStoreMixin):
    """Fingerprint Store volátil; vive enquanto a instância existir."""

    def __init__(self) -> None:
        self._records: Dict[str, RunRecord] = {}

    def open(self) -> None:
        return None

    def flush(self) -> None:
        return None

    def load_record(self, name: str) -> Optional[RunRecord]:
        return self._records.get(name)

    def save_record(self, name: str, record: RunRecord) -> None:
        self._records[name] = record

    def clear(self, name: Optional[str] = None) -> None:
        if name is None:
            self._records.clear()
        else:
            self._records.pop(name, None)


class JsonFingerprintStore(_RecordStoreMixin):
    """Um arquivo JSON por target em `root`."""

    suffix = ".record.json"

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def path_for(self, name: str) -> Path:
        return self.root / f"{safe_stem(name)}{self.suffix}"

    def open(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreError(f"Cannot open fingerprint store at {self.root}", details={"root": str(self.root)}) from exc
        if not self.root.is_dir():
            raise StoreError(f"Fingerprint store root is not a directory: {self.root}", details={"root": str(self.root)})

    def flush(self) -> None:
        # cada save_record já é durável
        return None

    def load_record(self, name: str) -> Optional[RunRecord]:
        path = self.path_for(name)
        if not path.exists():
            return None
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StoreError(f"Cannot read run record of '{name}'", details={"target": name, "path": str(path)}) from exc
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise StoreCorruptError(
                f"Run record of '{name}' is not valid JSON",
                details={"target": name, "path": str(path)},
            ) from exc
        if isinstance(data, dict) and data.get("name") not in (None, name):
            raise StoreCorruptError(
                f"Run record at {path.name} belongs to another target",
                details={"target": name, "found": data.get("name")},
            )
        return RunRecord.from_dict(data)

    def save_record(self, name: str, record: RunRecord) -> None:
        data = dict(record.to_dict(), name=name)
        text = json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True)
        try:
            atomic_write(self.path_for(name), lambda fh: fh.write(text.encode("utf-8")))
        except OSError as exc:
            raise StoreError(f"Cannot write run record of '{name}'", details={"target": name}) from exc

    def clear(self, name: Optional[str] = None) -> None:
        paths = [self.path_for(name)] if name is not None else list(self.root.glob(f"*{self.suffix}"))
        for path in paths:
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                raise StoreError(f"Cannot remove run record {path.name}", details={"path": str(path)}) from exc


__all__ = [
    "RECORD_STATUSES",
    "REUSABLE_STATUSES",
    "RunRecord",
    "FingerprintStore",
    "MemoryFingerprintStore",
    "JsonFingerprintStore",
    "fingerprint_of",
]
