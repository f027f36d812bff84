"""
Evaluation scope for level expressions.

A Scope is the read-only view an expression sees while a level is built:
N for the current level, the variables already produced at this level,
then every ancestor variable (already cascaded to this level's rows), and
finally the random source as `rng`.

Expressions come in three forms:
- callables, whose parameters are bound by name from the scope
    lambda N, rng: rng.normal(size=N)
- string expressions wrapped with expr(), evaluated by Python against the scope
    expr("income * 1.1")
- anything else, which is used as a constant
"""

import inspect
from collections import ChainMap
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd

from .errors import UndefinedVariable


class Scope(Mapping):
    """
    Name-to-value bindings visible to one expression.

    N always resolves to the current level's size, shadowing any ancestor
    column called N. Only the level processor binds new names.
    """

    def __init__(
        self,
        N: int,
        rng: np.random.Generator,
        ancestors: Optional[Mapping] = None,
        level: Optional[str] = None
    ):
        self.N = N
        self.rng = rng
        self.level = level
        self._local: Dict[str, Any] = {}
        self._ancestors = MappingProxyType(dict(ancestors or {}))
        self._chain = ChainMap({'N': N}, self._local, self._ancestors, {'rng': rng})

    def __getitem__(self, name: str) -> Any:
        return self._chain[name]

    def __iter__(self):
        return iter(self._chain)

    def __len__(self) -> int:
        return len(self._chain)

    def __contains__(self, name) -> bool:
        return name in self._chain

    def bind(self, name: str, values) -> None:
        """Make a freshly produced variable visible to later expressions"""
        self._local[name] = values

    def resolve(self, name: str, target: Optional[str] = None) -> Any:
        """Look up a name, raising UndefinedVariable when it is unbound"""
        try:
            return self._chain[name]
        except KeyError:
            raise UndefinedVariable(name, self.level, target) from None

    def variables(self) -> Dict[str, Any]:
        """Visible data variables (no N, no rng)"""
        merged = dict(self._ancestors)
        merged.update(self._local)
        return merged


class Expr:
    """
    A Python expression string evaluated against a scope.

    numpy and pandas are available as np and pd.
    """

    def __init__(self, source: str):
        self.source = source
        self._code = compile(source, f"<expr {source!r}>", "eval")

    def __repr__(self) -> str:
        return f"expr({self.source!r})"

    def evaluate(self, scope: Scope) -> Any:
        return eval(self._code, {'np': np, 'pd': pd}, scope)


def expr(source: str) -> Expr:
    """
    Wrap a Python expression string for deferred evaluation.

    Example:
        >>> fabricate(N=3, x=[1, 2, 3], y=expr("x * 2"))
    """
    return Expr(source)


def evaluate_expression(expression, scope: Scope, target: Optional[str] = None) -> Any:
    """
    Evaluate one expression inside a scope.

    Args:
        expression: Expr, callable, or constant
        scope: Bindings for this evaluation
        target: Name of the variable being produced (for error messages)

    Returns:
        Raw expression result (not yet length-checked)
    """
    try:
        if isinstance(expression, Expr):
            return expression.evaluate(scope)
        if callable(expression):
            return _call_with_scope(expression, scope, target)
        return expression
    except UndefinedVariable:
        raise
    except NameError as e:
        name = getattr(e, 'name', None) or str(e)
        raise UndefinedVariable(name, scope.level, target) from e


def _call_with_scope(func, scope: Scope, target: Optional[str]) -> Any:
    """Call func with each of its parameters bound by name from the scope"""
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        raise TypeError(
            f"Cannot bind the parameters of {func!r} for '{target}': its signature "
            f"is not introspectable; wrap it, e.g. lambda N, rng: rng.normal(size=N)"
        ) from None

    args = []
    kwargs = {}

    for param in signature.parameters.values():
        if param.kind == param.VAR_POSITIONAL:
            continue

        if param.kind == param.VAR_KEYWORD:
            for name, value in scope.variables().items():
                kwargs.setdefault(name, value)
            continue

        if param.name in scope:
            value = scope[param.name]
        elif param.default is not param.empty:
            continue
        else:
            raise UndefinedVariable(param.name, scope.level, target)

        if param.kind == param.POSITIONAL_ONLY:
            args.append(value)
        else:
            kwargs[param.name] = value

    return func(*args, **kwargs)
