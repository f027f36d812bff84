"""
Main fabrication pipeline.

Resolves an ordered sequence of level specifications into a single
rectangular DataFrame:
1. Root level: N rows with a fresh identifier
2. Nested levels: each parent row expands into its children, parent
   columns cascaded unchanged into every child row
3. Standalone levels (nest=False) kept aside for cross_levels()
4. Cross levels: every combination of other levels' units
5. Modified levels: new variables computed per unit and re-cascaded
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .config import get_settings
from .errors import LengthMismatchError, UnknownLevelError
from .level import (
    evaluate_level,
    make_ids,
    process_level,
    resolve_child_counts,
    resolve_size,
)
from .models import Level, LevelAction
from .sampler import make_rng
from .scope import Expr, Scope, evaluate_expression

logger = logging.getLogger(__name__)


def _columns_of(table: pd.DataFrame) -> Dict[str, np.ndarray]:
    return {col: table[col].to_numpy() for col in table.columns}


def _unused_ids(label: str, count: int, used) -> List[str]:
    """The first count identifier labels not already in used"""
    ids: List[str] = []
    start = 1
    while len(ids) < count:
        ids.extend(i for i in make_ids(label, count, start) if i not in used)
        start += count
    return ids[:count]


def _unit_codes(table: pd.DataFrame, name: str) -> Tuple[np.ndarray, pd.Index]:
    """Unit number of every row of a level, units in order of first appearance"""
    missing = table[name].isna()
    if missing.any():
        raise ValueError(
            f"Identifier column '{name}' has {int(missing.sum())} missing values; "
            f"every row must belong to a '{name}' unit"
        )
    return pd.factorize(table[name])


class HierarchyBuilder:
    """
    Builds a hierarchical table one level at a time.

    State is the accumulated table, the ordered identifier labels of its
    levels (outer to inner) and any standalone level tables. The builder
    is the only writer; every level works on its own copy of the rows.
    """

    def __init__(self, rng: np.random.Generator):
        """
        Args:
            rng: Random source handed to every expression as `rng`
        """
        self.rng = rng
        self.table: Optional[pd.DataFrame] = None
        self.level_ids: List[str] = []
        self.standalone: Dict[str, pd.DataFrame] = {}

    @property
    def depth(self) -> int:
        return len(self.level_ids)

    # =========================================================================
    # Entry points
    # =========================================================================

    def build(
        self,
        levels: Sequence[Level],
        data: Optional[pd.DataFrame] = None,
        ID_label: Optional[str] = None
    ) -> pd.DataFrame:
        """
        Apply level specifications in order.

        Args:
            levels: Named Level objects
            data: Imported data to build on
            ID_label: Identifier column of the imported data

        Returns:
            The hierarchical table
        """
        if data is not None:
            self.import_data(data, ID_label)

        for level in levels:
            self.apply(level)

        return self.result()

    def build_single(
        self,
        variables: Dict,
        N=None,
        ID_label: Optional[str] = None,
        data: Optional[pd.DataFrame] = None
    ) -> pd.DataFrame:
        """
        Build a single-level table, or add variables to imported data.
        """
        label = ID_label or get_settings().default_id_label

        if data is None:
            size = resolve_size(N, None, label)
            self.table = process_level(variables, size, label, None, self.rng)
            self.level_ids = [label]
            return self.result()

        self.import_data(data, label)
        self._mutate_rows(label, variables, N)
        return self.result()

    def import_data(self, data: pd.DataFrame, ID_label: Optional[str] = None) -> None:
        """
        Start from a copy of existing data.

        Identifier levels recorded on the data are restored. When ID_label is
        given its column is kept (missing values get new labels) or created
        as the first column.
        """
        if not isinstance(data, pd.DataFrame):
            data = pd.DataFrame(data)

        table = data.copy().reset_index(drop=True)
        stored = [label for label in data.attrs.get('levels', []) if label in table.columns]

        if ID_label is not None:
            if ID_label in table.columns:
                column = table[ID_label].astype(object).to_numpy(copy=True)
                missing = pd.isna(column)
                if missing.any():
                    used = set(column[~missing])
                    filled = _unused_ids(ID_label, int(missing.sum()), used)
                    column[missing] = np.array(filled, dtype=object)
                    table[ID_label] = column
                    logger.debug(f"Filled {int(missing.sum())} missing '{ID_label}' identifiers")
            else:
                table.insert(0, ID_label, np.array(make_ids(ID_label, len(table)), dtype=object))

            if ID_label not in stored:
                stored = [ID_label] + stored

        self.table = table
        self.level_ids = stored
        logger.debug(f"Imported {len(table)} rows with levels {stored}")

    def result(self) -> pd.DataFrame:
        table = self.table if self.table is not None else pd.DataFrame()
        table = table.reset_index(drop=True)
        table.attrs['levels'] = list(self.level_ids)
        return table

    # =========================================================================
    # Level transitions
    # =========================================================================

    def apply(self, level: Level) -> None:
        """Advance the builder by one level specification"""
        if not level.name:
            raise ValueError("Levels must be named (pass them to fabricate() as keyword arguments)")

        logger.debug(f"Applying level {level.describe()}")

        if level.action is LevelAction.MODIFY:
            self._modify(level)
        elif level.action is LevelAction.CROSS:
            self._cross(level)
        elif self.table is None:
            self._add_root(level)
        elif not level.nest:
            self._add_standalone(level)
        else:
            self._add_nested(level)

    def _add_root(self, level: Level) -> None:
        self._check_new_level(level, [])

        N = resolve_size(level.N, None, level.name)
        self.table = process_level(level.variables, N, level.name, None, self.rng, level.recycle)
        self.level_ids = [level.name]

    def _add_standalone(self, level: Level) -> None:
        self._check_new_level(level, [])

        N = resolve_size(level.N, None, level.name)
        self.standalone[level.name] = process_level(
            level.variables, N, level.name, None, self.rng, level.recycle
        )

    def _add_nested(self, level: Level) -> None:
        parent = self.table
        self._check_new_level(level, parent.columns)

        sizes = level.N
        if isinstance(sizes, Expr) or callable(sizes):
            # Per-parent sizes computed from the parent's own variables
            scope = Scope(len(parent), self.rng, _columns_of(parent), level=level.name)
            sizes = evaluate_expression(sizes, scope, target='N')

        counts = resolve_child_counts(sizes, len(parent), level.name)

        # Each parent row repeated once per child: cascades every parent column
        positions = np.repeat(np.arange(len(parent)), counts)
        cascaded = parent.iloc[positions].reset_index(drop=True)

        child = process_level(
            level.variables,
            int(counts.sum()),
            level.name,
            _columns_of(cascaded),
            self.rng,
            level.recycle
        )

        self.table = pd.concat([cascaded, child], axis=1)
        self.level_ids.append(level.name)

    def _cross(self, level: Level) -> None:
        frames = [self._level_frame(name) for name in level.by]

        seen = set()
        for name, frame in zip(level.by, frames):
            overlap = seen.intersection(frame.columns)
            if overlap:
                raise ValueError(
                    f"Cannot cross '{name}': columns {sorted(overlap)} appear in more than one crossed level"
                )
            seen.update(frame.columns)

        product = frames[0].reset_index(drop=True)
        for frame in frames[1:]:
            product = product.merge(frame, how='cross')

        self._check_new_level(level, product.columns)

        crossed = process_level(
            level.variables,
            len(product),
            level.name,
            _columns_of(product),
            self.rng,
            level.recycle
        )

        known = set(self.level_ids) | set(self.standalone)
        self.table = pd.concat([product, crossed], axis=1)
        self.level_ids = [col for col in product.columns if col in known] + [level.name]

    def _modify(self, level: Level) -> None:
        name = level.name

        if name in self.standalone:
            self.standalone[name] = self._modify_table(self.standalone[name], level, [name])
        elif self.table is not None and name in self.table.columns:
            self.table = self._modify_table(self.table, level, self.level_ids)
        else:
            available = list(self.level_ids) + list(self.standalone)
            raise UnknownLevelError(name, available)

    def _modify_table(self, table: pd.DataFrame, level: Level, level_ids: List[str]) -> pd.DataFrame:
        """
        Evaluate a level's variables once per unit and cascade them back.

        Only columns constant within each unit are visible to the expressions.
        New columns are placed at the end of the level's block, before the
        next level's identifier.
        """
        name = level.name
        table = table.copy()

        codes, uniques = _unit_codes(table, name)
        units = len(uniques)

        if level.N is not None:
            requested = resolve_size(level.N, None, name)
            if requested != units:
                raise LengthMismatchError(
                    f"modify_level('{name}') got N={requested} but the level has {units} units",
                    variable='N', length=requested, expected=units, level=name
                )

        constant = table.groupby(codes, sort=True).nunique(dropna=False).le(1).all()
        visible = [col for col in table.columns if constant[col]]

        first_rows = table.loc[~table[name].duplicated(), visible].reset_index(drop=True)
        columns = evaluate_level(
            level.variables, units, name, _columns_of(first_rows), self.rng, level.recycle
        )

        position = self._block_end(table, name, level_ids)
        for var, values in columns.items():
            if var == name:
                raise ValueError(f"modify_level cannot overwrite the identifier column '{name}'")

            cascaded = values[codes]
            if var in table.columns:
                if not constant[var]:
                    raise ValueError(
                        f"Column '{var}' varies within '{name}' units and cannot be modified at this level"
                    )
                table[var] = cascaded
            else:
                table.insert(position, var, cascaded)
                position += 1

        logger.debug(f"Modified level '{name}': {list(columns)} over {units} units")
        return table

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _block_end(table: pd.DataFrame, name: str, level_ids: List[str]) -> int:
        """Column position just past the given level's block"""
        if name in level_ids:
            for inner in level_ids[level_ids.index(name) + 1:]:
                if inner in table.columns:
                    return table.columns.get_loc(inner)
        return len(table.columns)

    def _level_frame(self, name: str) -> pd.DataFrame:
        """One row per unit of a level, with the columns constant within units"""
        if name in self.standalone:
            return self.standalone[name]

        if self.table is None or name not in self.level_ids:
            raise UnknownLevelError(name, list(self.level_ids) + list(self.standalone))

        table = self.table
        codes, _ = _unit_codes(table, name)
        constant = table.groupby(codes, sort=True).nunique(dropna=False).le(1).all()
        visible = [col for col in table.columns if constant[col]]
        return table.loc[~table[name].duplicated(), visible].reset_index(drop=True)

    def _check_new_level(self, level: Level, columns) -> None:
        existing = set(columns) | set(self.level_ids) | set(self.standalone)
        if level.name in existing:
            raise ValueError(f"Level '{level.name}' already exists; use modify_level() to change it")

        clashes = [var for var in level.variables if var in existing]
        if clashes:
            raise ValueError(
                f"Level '{level.name}' redefines existing columns {clashes}; use modify_level() instead"
            )

    def _mutate_rows(self, label: str, variables: Dict, N=None) -> None:
        """Evaluate variables over every row of imported data"""
        table = self.table
        size = resolve_size(N, len(table), label)
        if size != len(table):
            raise LengthMismatchError(
                f"N={size} does not match the {len(table)} rows of the imported data",
                variable='N', length=size, expected=len(table), level=label
            )

        columns = evaluate_level(variables, size, label, _columns_of(table), self.rng)
        for var, values in columns.items():
            if var == label:
                raise ValueError(f"Variable '{var}' clashes with the identifier column")
            table[var] = values


def fabricate(
    data: Optional[pd.DataFrame] = None,
    *,
    N=None,
    ID_label: Optional[str] = None,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    **kwargs
) -> pd.DataFrame:
    """
    Fabricate a single-level or hierarchical dataset.

    Single level: keyword arguments are variables.
        fabricate(N=5, Y=lambda N, rng: rng.normal(size=N))

    Hierarchical: keyword arguments are levels named by their keyword.
        fabricate(
            regions=add_level(N=2),
            cities=add_level(N=3, pop=lambda N, rng: rng.poisson(1000, size=N)),
        )

    Args:
        data: Existing data to add variables or levels to
        N: Number of rows (single level without data)
        ID_label: Identifier column name (single level, or the imported data's level)
        seed: Seed for a fresh random source
        rng: Random source (numpy Generator); exposed to expressions as `rng`
        **kwargs: Variables, or Level objects

    Returns:
        DataFrame with one identifier column per level; the level labels are
        recorded in DataFrame.attrs['levels']
    """
    random_source = make_rng(seed, rng)
    builder = HierarchyBuilder(random_source)

    level_args = {key: value for key, value in kwargs.items() if isinstance(value, Level)}

    if level_args:
        if len(level_args) != len(kwargs):
            plain = [key for key in kwargs if key not in level_args]
            raise ValueError(
                f"Cannot mix levels and plain variables {plain}; wrap variables in add_level()"
            )
        if N is not None:
            raise ValueError("Pass N to add_level() when fabricating hierarchical data")

        levels = [level.named(key) for key, level in kwargs.items()]
        table = builder.build(levels, data=data, ID_label=ID_label)
    else:
        table = builder.build_single(kwargs, N=N, ID_label=ID_label, data=data)

    logger.info(f"Fabricated {len(table)} rows, {len(table.columns)} columns, levels {table.attrs['levels']}")
    return table
