"""
Hierarchical bootstrap resampling.

Units are drawn with replacement level by level, outermost first. Each
drawn unit is copied with all rows beneath it, and deeper levels are
resampled independently inside every copy, so a unit drawn twice gets
two independently resampled sets of children. Every copy receives a fresh
identifier.
"""

import logging
from collections.abc import Mapping
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .config import get_settings
from .errors import LengthMismatchError, UnknownLevelError
from .level import make_ids
from .sampler import make_rng, sample_indices

logger = logging.getLogger(__name__)


class _All:
    """Keep every unit of a level"""

    def __repr__(self) -> str:
        return 'ALL'


ALL = _All()


def detect_id_labels(data: pd.DataFrame) -> List[str]:
    """
    Find the identifier columns of a table, outermost first.

    Uses the levels recorded by fabricate(); otherwise falls back to the
    default identifier column when present.
    """
    labels = [label for label in data.attrs.get('levels', []) if label in data.columns]
    if labels:
        return labels

    default = get_settings().default_id_label
    if default in data.columns:
        return [default]
    return []


def _resolve_labels(data: pd.DataFrame, ID_labels) -> List[str]:
    if ID_labels is None:
        return detect_id_labels(data)

    if isinstance(ID_labels, str):
        ID_labels = [ID_labels]

    labels = list(ID_labels)
    for label in labels:
        if label not in data.columns:
            raise UnknownLevelError(label, detect_id_labels(data))
    return labels


def _resolve_plan(data: pd.DataFrame, N, labels: List[str]) -> List[Tuple[Optional[str], object]]:
    """
    Pair every level with the number of units to draw (or ALL).

    With no identifier columns the rows themselves are the units.
    """
    if not labels:
        if N is None:
            return [(None, len(data))]
        if isinstance(N, Mapping):
            raise UnknownLevelError(next(iter(N)), [])
        if isinstance(N, (list, tuple, np.ndarray)):
            if len(N) != 1:
                raise LengthMismatchError(
                    f"Got {len(N)} sizes but the data has no identifier columns",
                    variable='N', length=len(N), expected=1
                )
            N = N[0]
        return [(None, N)]

    if N is None:
        sizes = {labels[0]: data[labels[0]].nunique(dropna=False)}
    elif isinstance(N, Mapping):
        sizes = dict(N)
        for label in sizes:
            if label not in labels:
                raise UnknownLevelError(label, labels)
    elif isinstance(N, (list, tuple, np.ndarray)):
        if len(N) > len(labels):
            raise LengthMismatchError(
                f"Got {len(N)} sizes for {len(labels)} levels {labels}",
                variable='N', length=len(N), expected=len(labels)
            )
        sizes = dict(zip(labels, N))
    else:
        sizes = {labels[0]: N}

    return [(label, sizes.get(label, ALL)) for label in labels]


def _concat(parts: List[np.ndarray]) -> np.ndarray:
    if not parts:
        return np.empty(0, dtype=np.intp)
    return np.concatenate(parts)


def _split_groups(table: pd.DataFrame, positions: np.ndarray, label: Optional[str]) -> List[np.ndarray]:
    """Row positions of each unit, units in order of first appearance"""
    if label is None:
        return [positions[i:i + 1] for i in range(len(positions))]
    if len(positions) == 0:
        return []

    codes, uniques = pd.factorize(table[label].to_numpy()[positions], use_na_sentinel=False)
    order = np.argsort(codes, kind='stable')
    boundaries = np.cumsum(np.bincount(codes, minlength=len(uniques)))[:-1]
    return np.split(positions[order], boundaries)


def _draw(
    table: pd.DataFrame,
    positions: np.ndarray,
    plan: List[Tuple[Optional[str], object]],
    depth: int,
    rng: np.random.Generator,
    replace: bool,
    counters: List[int]
) -> Tuple[np.ndarray, List[np.ndarray]]:
    """
    Resample the units of plan[depth] among the given rows.

    Returns:
        Drawn row positions, and for each level from depth down the copy
        number every drawn row belongs to
    """
    label, size = plan[depth]
    groups = _split_groups(table, positions, label)

    if size is ALL:
        drawn = np.arange(len(groups))
    else:
        drawn = sample_indices(len(groups), size, rng, replace)

    levels_below = len(plan) - depth
    row_parts = []
    copy_parts: List[List[np.ndarray]] = [[] for _ in range(levels_below)]

    for group in drawn:
        members = groups[group]
        copy_number = counters[depth]
        counters[depth] += 1

        if depth + 1 < len(plan):
            rows, nested = _draw(table, members, plan, depth + 1, rng, replace, counters)
        else:
            rows, nested = members, []

        row_parts.append(rows)
        copy_parts[0].append(np.full(len(rows), copy_number, dtype=np.intp))
        for offset, copies in enumerate(nested, start=1):
            copy_parts[offset].append(copies)

    return _concat(row_parts), [_concat(parts) for parts in copy_parts]


def resample_data(
    data: pd.DataFrame,
    N=None,
    ID_labels: Optional[Sequence[str]] = None,
    *,
    replace: bool = True,
    keep_original_ids: bool = True,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None
) -> pd.DataFrame:
    """
    Resample a (possibly hierarchical) table, preserving its structure.

    Args:
        data: Table to resample
        N: Units to draw per level: None (outermost level, original count),
           an int (outermost level), a sequence aligned with ID_labels, or a
           mapping of level name to size. ALL keeps every unit of a level.
           Levels without a size keep every unit.
        ID_labels: Identifier columns, outermost first (default: levels
                   recorded by fabricate(), or the default ID column)
        replace: Sample with replacement (bootstrap) or without
        keep_original_ids: Keep source identifiers in '<label>_original'
        seed: Seed for a fresh random source
        rng: Random source (numpy Generator)

    Returns:
        Resampled DataFrame; every copied unit has a fresh identifier

    Example:
        >>> resample_data(df, N=[3, 5], ID_labels=['regions', 'cities'])
    """
    random_source = make_rng(seed, rng)

    if not isinstance(data, pd.DataFrame):
        data = pd.DataFrame(data)

    labels = _resolve_labels(data, ID_labels)
    plan = _resolve_plan(data, N, labels)
    logger.debug(f"Resampling plan: {plan}")

    table = data.reset_index(drop=True)
    counters = [0] * len(plan)
    rows, copies = _draw(table, np.arange(len(table)), plan, 0, random_source, replace, counters)

    result = table.iloc[rows].reset_index(drop=True)

    suffix = get_settings().original_id_suffix
    for (label, _), copy_numbers, count in zip(plan, copies, counters):
        if label is None:
            continue

        if keep_original_ids and f"{label}{suffix}" not in result.columns:
            result.insert(result.columns.get_loc(label) + 1, f"{label}{suffix}", result[label].to_numpy())

        fresh = np.array(make_ids(label, count), dtype=object)
        result[label] = fresh[copy_numbers]
        logger.debug(f"Level '{label}': {count} units drawn")

    result.attrs['levels'] = list(data.attrs.get('levels') or labels)
    logger.info(f"Resampled {len(data)} rows into {len(result)} rows over levels {labels}")
    return result
