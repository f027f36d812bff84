"""
Level processing: turning one level specification into columns.

Resolves the level size, evaluates each declared expression in order
inside the level's scope, and conforms every result to the level's
row count.
"""

import logging
from collections.abc import Mapping
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from .config import get_settings
from .errors import InvalidSizeError, LengthMismatchError, MissingSizeError
from .recycling import as_vector
from .scope import Scope, evaluate_expression

logger = logging.getLogger(__name__)


def _as_count(value, level: Optional[str]) -> int:
    """Validate a single size value as a non-negative integer"""
    if isinstance(value, (bool, np.bool_)):
        raise InvalidSizeError(f"N for level '{level}' must be an integer, got {value!r}")
    try:
        count = int(value)
    except (TypeError, ValueError):
        raise InvalidSizeError(f"N for level '{level}' must be an integer, got {value!r}") from None
    if count != value or count < 0:
        raise InvalidSizeError(f"N for level '{level}' must be a non-negative integer, got {value!r}")
    return count


def resolve_size(N, inherited_size: Optional[int] = None, level: Optional[str] = None) -> int:
    """
    Resolve the row count of a level.

    Args:
        N: Explicit size (wins when given); a length-1 sequence is accepted
        inherited_size: Size inherited from imported data or a parent level
        level: Level name for error messages

    Returns:
        Number of rows for the level
    """
    if N is None:
        if inherited_size is None:
            raise MissingSizeError(level)
        return _as_count(inherited_size, level)

    sizes = as_vector(N)
    if len(sizes) != 1:
        raise LengthMismatchError(
            f"N for level '{level}' must be a single number, got {len(sizes)} values",
            variable='N', length=len(sizes), expected=1, level=level
        )
    return _as_count(sizes[0], level)


def resolve_child_counts(N, parent_size: int, level: Optional[str] = None) -> np.ndarray:
    """
    Resolve how many child rows each parent row gets.

    Args:
        N: None (one child per parent), a scalar, or a per-parent sequence
        parent_size: Number of parent rows
        level: Level name for error messages

    Returns:
        Integer array of length parent_size
    """
    if N is None:
        return np.ones(parent_size, dtype=np.int64)

    sizes = as_vector(N)
    if len(sizes) == 1:
        sizes = np.repeat(sizes, parent_size)
    elif len(sizes) != parent_size:
        # Lengths that merely divide the parent count are rejected, not recycled
        raise LengthMismatchError(
            f"N for level '{level}' has {len(sizes)} values but there are "
            f"{parent_size} parent rows; pass a single number or one per parent",
            variable='N', length=len(sizes), expected=parent_size, level=level
        )

    return np.array([_as_count(n, level) for n in sizes], dtype=np.int64)


def conform_length(
    values,
    N: int,
    variable: str,
    level: Optional[str] = None,
    recycle: bool = False
) -> np.ndarray:
    """
    Conform an expression result to the level's row count.

    Length N is accepted as-is, length 1 is broadcast, and a length that
    divides N is tiled only when recycle is True.
    """
    arr = as_vector(values)

    if arr.ndim != 1:
        raise LengthMismatchError(
            f"Variable '{variable}' at level '{level}' must be one-dimensional, "
            f"got shape {arr.shape}",
            variable=variable, length=len(arr), expected=N, level=level
        )

    length = len(arr)
    if length == N:
        return arr
    if length == 1:
        return np.repeat(arr, N)
    if recycle and length > 0 and N % length == 0:
        return np.tile(arr, N // length)

    raise LengthMismatchError(
        f"Variable '{variable}' at level '{level}' has length {length}, "
        f"but the level has N={N}",
        variable=variable, length=length, expected=N, level=level
    )


def make_ids(label: str, N: int, start: int = 1) -> List[str]:
    """
    Generate sequential identifier labels for a level.

    Example:
        >>> make_ids('cities', 3)
        ['cities_1', 'cities_2', 'cities_3']
    """
    separator = get_settings().id_separator
    return [f"{label}{separator}{i}" for i in range(start, start + N)]


def evaluate_level(
    variables: Mapping,
    N: int,
    level: Optional[str],
    ancestors: Optional[Mapping],
    rng: np.random.Generator,
    recycle: bool = False
) -> Dict[str, np.ndarray]:
    """
    Evaluate a level's declared variables in order.

    Each result is bound into the scope before the next expression runs,
    so later variables can use earlier ones.

    Args:
        variables: Ordered mapping of variable name to expression
        N: Level row count
        level: Level name
        ancestors: Columns visible from enclosing levels, length N each
        rng: Random source exposed to expressions as `rng`
        recycle: Tile results whose length divides N

    Returns:
        Ordered dict of variable name to array of length N
    """
    scope = Scope(N, rng, ancestors, level=level)
    columns: Dict[str, np.ndarray] = {}

    for name, expression in variables.items():
        result = evaluate_expression(expression, scope, target=name)
        values = conform_length(result, N, name, level, recycle)
        scope.bind(name, values)
        columns[name] = values

    logger.debug(f"Level '{level}': evaluated {len(columns)} variables over {N} rows")
    return columns


def process_level(
    variables: Mapping,
    N: int,
    level: str,
    ancestors: Optional[Mapping],
    rng: np.random.Generator,
    recycle: bool = False,
    id_start: int = 1
) -> pd.DataFrame:
    """
    Build a level table: a fresh identifier column followed by the level's variables.

    Returns:
        DataFrame with N rows whose first column, named after the level,
        uniquely labels each row
    """
    if level in variables:
        raise ValueError(f"Variable '{level}' clashes with the identifier column of level '{level}'")

    ids = make_ids(level, N, id_start)

    # The level's own identifier is visible to its expressions
    visible = dict(ancestors or {})
    visible[level] = np.array(ids, dtype=object)

    columns = evaluate_level(variables, N, level, visible, rng, recycle)

    table = pd.DataFrame({level: ids})
    for name, values in columns.items():
        table[name] = values
    return table
