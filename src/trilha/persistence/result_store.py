# src/trilha/persistence/result_store.py
"""
Result Store — valores produzidos pelos targets.

O Result Store é dono dos valores; o RunRecord apenas os referencia
(`ref(name)`), sem duplicá-los.

Implementações:
    - MemoryResultStore: valores mantidos em memória, por referência
    - JoblibResultStore: um arquivo joblib por target sob `root`

Decisões (v1):
    - Formato em disco: joblib (mesmo formato dos artefatos sklearn)
    - Escrita atômica (arquivo temporário + `os.replace`)
    - `get` de target ausente → NotFoundError
    - Falha de desserialização → StoreCorruptError; o Engine trata como
      cache-miss e recalcula

Limites explícitos:
    - Não versiona resultados antigos (apenas o último valor por target)
    - Não decide quando um resultado é válido (responsabilidade do Engine)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

import joblib

from trilha.core.exceptions import NotFoundError, StoreCorruptError, StoreError

from .paths import atomic_write, safe_stem


class ResultStore(Protocol):
    """Contrato mínimo esperado pelo Engine e pelo Pipeline."""

    def open(self) -> None: ...

    def flush(self) -> None: ...

    def put(self, name: str, value: Any) -> None: ...

    def get(self, name: str) -> Any: ...

    def has(self, name: str) -> bool: ...

    def ref(self, name: str) -> str: ...

    def clear(self, name: Optional[str] = None) -> None: ...


class MemoryResultStore:
    """Result Store volátil."""

    def __init__(self) -> None:
        self._values: Dict[str, Any] = {}

    def open(self) -> None:
        return None

    def flush(self) -> None:
        return None

    def put(self, name: str, value: Any) -> None:
        self._values[name] = value

    def get(self, name: str) -> Any:
        try:
            return self._values[name]
        except KeyError:
            raise NotFoundError(name) from None

    def has(self, name: str) -> bool:
        return name in self._values

    def ref(self, name: str) -> str:
        return f"memory://{name}"

    def clear(self, name: Optional[str] = None) -> None:
        if name is None:
            self._values.clear()
        else:
            self._values.pop(name, None)


class JoblibResultStore:
    """Um arquivo `.joblib` por target em `root`."""

    suffix = ".joblib"

    def __init__(self, root: Union[str, Path], *, compress: int = 0):
        self.root = Path(root)
        self.compress = compress

    def path_for(self, name: str) -> Path:
        return self.root / f"{safe_stem(name)}{self.suffix}"

    def open(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreError(f"Cannot open result store at {self.root}", details={"root": str(self.root)}) from exc

    def flush(self) -> None:
        return None

    def put(self, name: str, value: Any) -> None:
        try:
            atomic_write(self.path_for(name), lambda fh: joblib.dump(value, fh, compress=self.compress))
        except Exception as exc:
            # inclui erros de pickling (valor não serializável)
            raise StoreError(
                f"Cannot persist result of '{name}': {exc}",
                details={"target": name, "exception_class": exc.__class__.__name__},
            ) from exc

    def get(self, name: str) -> Any:
        path = self.path_for(name)
        if not path.exists():
            raise NotFoundError(name)
        try:
            return joblib.load(path)
        except Exception as exc:
            raise StoreCorruptError(
                f"Stored result of '{name}' cannot be loaded",
                details={"target": name, "path": str(path), "exception_class": exc.__class__.__name__},
            ) from exc

    def has(self, name: str) -> bool:
        return self.path_for(name).exists()

    def ref(self, name: str) -> str:
        return self.path_for(name).as_posix()

    def clear(self, name: Optional[str] = None) -> None:
        paths = [self.path_for(name)] if name is not None else list(self.root.glob(f"*{self.suffix}"))
        for path in paths:
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                raise StoreError(f"Cannot remove stored result {path.name}", details={"path": str(path)}) from exc


__all__ = ["ResultStore", "MemoryResultStore", "JoblibResultStore"]
