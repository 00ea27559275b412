# src/trilha/persistence/paths.py
"""Nomes de arquivo determinísticos e escrita atômica para as stores em disco."""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path
from typing import Callable, IO

from trilha.core.config.hashing import sha256_hex


_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]+")


def safe_stem(name: str) -> str:
    """
    Converte um nome de target em radical de arquivo seguro.

    O nome sanitizado mantém legibilidade; o sufixo de hash garante que
    nomes distintos (ex.: "a/b" e "a_b") nunca colidam.
    """
    readable = _UNSAFE.sub("_", name).strip("._")[:64] or "target"
    return f"{readable}-{sha256_hex(name)[:12]}"


def atomic_write(path: Path, write: Callable[[IO[bytes]], None]) -> None:
    """Escreve via arquivo temporário no mesmo diretório + `os.replace`."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as fh:
            write(fh)
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise
