# src/trilha/core/pipeline/command.py
"""
Introspecção de comandos de targets.

Um comando é qualquer callable Python. Este módulo extrai dele:
    - os parâmetros vinculáveis por nome (usados pelo Graph Builder para
      descobrir referências a outros targets)
    - um digest determinístico da definição (usado no fingerprint)
    - uma descrição textual (usada no manifest)

Digest do comando (v1):
    - bytecode, constantes (recursivamente, incluindo code objects
      aninhados), nomes referenciados e nomes de variáveis
    - defaults, kwdefaults e valores capturados em closure
    - `functools.partial`: função, args e keywords
    - instâncias chamáveis: tipo, `__call__` e atributos simples

Valores simples (None/bool/int/float/str e containers deles) entram por
valor; callables aninhados entram pelo próprio digest; qualquer outro
objeto entra apenas pelo nome qualificado do tipo. Arquivo e número de
linha nunca participam. Containers que referenciam a si mesmos (ou
aninhados além de `_MAX_NESTING`) entram como marcador, sem recursão.

Limites explícitos:
    - Valores de globais do módulo referenciadas pelo comando não
      participam do digest (apenas seus nomes)
    - Referências dinâmicas (ex.: `getattr` com string) não são rastreadas
"""

from __future__ import annotations

import functools
import inspect
import textwrap
from typing import Any, Callable, Dict, FrozenSet, List

from trilha.core.config.hashing import canonical_json, sha256_hex


# profundidade máxima ao seguir callables aninhados (recursão via closure)
_MAX_DEPTH = 8

# profundidade máxima de containers aninhados em valores capturados
_MAX_NESTING = 32

BINDABLE_KINDS = (
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
    inspect.Parameter.KEYWORD_ONLY,
)


def command_parameters(command: Callable[..., Any]) -> List[inspect.Parameter]:
    """Parâmetros do comando; lista vazia quando a assinatura não é introspectável."""
    try:
        sig = inspect.signature(command)
    except (TypeError, ValueError):
        return []
    return list(sig.parameters.values())


def accepts_var_keyword(command: Callable[..., Any]) -> bool:
    return any(p.kind == inspect.Parameter.VAR_KEYWORD for p in command_parameters(command))


def command_digest(command: Callable[..., Any]) -> str:
    """SHA-256 hexadecimal da descrição canônica do comando."""
    return sha256_hex(canonical_json(_callable_payload(command, 0)))


def describe_command(command: Callable[..., Any]) -> str:
    """Texto-fonte do comando quando disponível; caso contrário, o nome qualificado."""
    if isinstance(command, functools.partial):
        args = ", ".join(
            [repr(a) for a in command.args] + [f"{k}={v!r}" for k, v in sorted(command.keywords.items())]
        )
        return f"partial({describe_command(command.func)}, {args})" if args else describe_command(command.func)
    try:
        return textwrap.dedent(inspect.getsource(command)).strip()
    except (OSError, TypeError):
        return _qualname(command)


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

def _qualname(obj: Any) -> str:
    module = getattr(obj, "__module__", None) or ""
    name = getattr(obj, "__qualname__", None) or getattr(obj, "__name__", None) or type(obj).__qualname__
    return f"{module}.{name}" if module else str(name)


def _code_payload(code: Any, depth: int) -> Dict[str, Any]:
    return {
        "bytecode": code.co_code.hex(),
        "consts": [_const_payload(c, depth) for c in code.co_consts],
        "names": list(code.co_names),
        "varnames": list(code.co_varnames),
        "freevars": list(code.co_freevars),
        "argcount": code.co_argcount,
        "kwonlyargcount": code.co_kwonlyargcount,
    }


def _const_payload(const: Any, depth: int) -> Any:
    if inspect.iscode(const):
        if depth >= _MAX_DEPTH:
            return {"code": const.co_name}
        return {"code": _code_payload(const, depth + 1)}
    if isinstance(const, (tuple, frozenset)):
        items = [_const_payload(c, depth) for c in const]
        if isinstance(const, frozenset):
            items = sorted(items, key=canonical_json)
        return {"tuple": items}
    if isinstance(const, bytes):
        return {"bytes": const.hex()}
    return _value_payload(const, depth)


def _value_payload(value: Any, depth: int, seen: FrozenSet[int] = frozenset()) -> Any:
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        # NaN/inf não são JSON estrito
        return value if value == value and value not in (float("inf"), float("-inf")) else repr(value)
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        # `seen`: ids dos containers no caminho atual (referências cíclicas)
        if id(value) in seen:
            return {"cycle": _qualname(type(value))}
        if len(seen) >= _MAX_NESTING:
            return {"nested": _qualname(type(value))}
        seen = seen | {id(value)}
        if isinstance(value, (list, tuple)):
            return [_value_payload(v, depth, seen) for v in value]
        if isinstance(value, (set, frozenset)):
            return sorted((_value_payload(v, depth, seen) for v in value), key=canonical_json)
        return {str(k): _value_payload(v, depth, seen) for k, v in value.items()}
    if inspect.isclass(value):
        return {"type": _qualname(value)}
    if callable(value):
        return {"callable": _callable_payload(value, depth + 1)}
    return {"object": _qualname(type(value))}


def _cell_payload(cell: Any, depth: int) -> Any:
    try:
        contents = cell.cell_contents
    except ValueError:  # célula ainda vazia
        return {"empty": True}
    return _value_payload(contents, depth)


def _callable_payload(obj: Any, depth: int) -> Dict[str, Any]:
    if depth > _MAX_DEPTH:
        return {"callable": _qualname(obj)}

    if isinstance(obj, functools.partial):
        return {
            "partial": _callable_payload(obj.func, depth + 1),
            "args": [_value_payload(a, depth) for a in obj.args],
            "keywords": {k: _value_payload(v, depth) for k, v in sorted(obj.keywords.items())},
        }

    if inspect.ismethod(obj):
        return {
            "method": _callable_payload(obj.__func__, depth + 1),
            "self": _qualname(type(obj.__self__)),
        }

    code = getattr(obj, "__code__", None)
    if code is None:
        call = getattr(type(obj), "__call__", None)
        if not inspect.isclass(obj) and inspect.isfunction(call):
            state = vars(obj) if hasattr(obj, "__dict__") else {}
            return {
                "instance": _qualname(type(obj)),
                "call": _callable_payload(call, depth + 1),
                "state": _value_payload(state, depth),
            }
        # builtins, classes e callables sem bytecode
        return {"callable": _qualname(obj)}

    return {
        "code": _code_payload(code, depth),
        "defaults": _value_payload(getattr(obj, "__defaults__", None), depth),
        "kwdefaults": _value_payload(getattr(obj, "__kwdefaults__", None), depth),
        "closure": [_cell_payload(c, depth) for c in (getattr(obj, "__closure__", None) or ())],
    }
