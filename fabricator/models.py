"""
Level specification models.

A Level describes one layer of a dataset: the expressions that generate
its variables, its size, and how it relates to the levels before it.
Levels are built with add_level(), modify_level() and cross_levels() and
passed to fabricate() as keyword arguments; the keyword names the level.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence


class LevelAction(Enum):
    """How a level changes the table being built"""
    ADD = "add"
    MODIFY = "modify"
    CROSS = "cross"


@dataclass
class Level:
    """
    One level specification.

    Attributes:
        variables: Ordered mapping of variable name to expression
        N: Size; for nested levels a scalar, a per-parent sequence or an
           expression evaluated against the parent level
        name: Level name, also the name of its identifier column
        action: add a new level, modify an existing one, or cross levels
        nest: Nest under the current table (False builds a standalone level
              for a later cross)
        recycle: Tile results whose length evenly divides N
        by: Levels to cross (cross levels only)
    """
    variables: Dict[str, Any] = field(default_factory=dict)
    N: Any = None
    name: Optional[str] = None
    action: LevelAction = LevelAction.ADD
    nest: bool = True
    recycle: bool = False
    by: List[str] = field(default_factory=list)

    def named(self, name: str) -> 'Level':
        """Copy of this level carrying a name"""
        return replace(self, name=name, variables=dict(self.variables), by=list(self.by))

    def describe(self) -> dict:
        """Summary for logging and debugging"""
        return {
            'name': self.name,
            'action': self.action.value,
            'N': self.N if not callable(self.N) else repr(self.N),
            'nest': self.nest,
            'recycle': self.recycle,
            'by': list(self.by),
            'variables': list(self.variables),
        }


def add_level(N=None, nest: bool = True, recycle: bool = False, **variables) -> Level:
    """
    Declare a new level.

    Args:
        N: Number of rows; for a nested level, the number of children per
           parent row (scalar, one value per parent, or an expression of the
           parent's variables). Omitted for a nested level, each parent gets
           one child.
        nest: Nest under the previous levels (default) or build a standalone
              level to be combined later with cross_levels()
        recycle: Tile variables whose length evenly divides N
        **variables: Variable name to expression, evaluated in order

    Example:
        >>> fabricate(
        ...     regions=add_level(N=2, gdp=lambda N, rng: rng.normal(size=N)),
        ...     cities=add_level(N=3, pop=lambda gdp, rng: gdp + rng.normal(size=len(gdp))),
        ... )
    """
    return Level(variables=variables, N=N, action=LevelAction.ADD, nest=nest, recycle=recycle)


def modify_level(N=None, recycle: bool = False, **variables) -> Level:
    """
    Add or replace variables of an existing level.

    Expressions run once per unit of the level (N is the number of units)
    and their results are cascaded to every row of that unit.
    """
    return Level(variables=variables, N=N, action=LevelAction.MODIFY, recycle=recycle)


def cross_levels(by: Sequence[str], recycle: bool = False, **variables) -> Level:
    """
    Build a level from every combination of the units of other levels.

    Used for panel and cross-classified data, e.g. country-years:

        fabricate(
            countries=add_level(N=5),
            years=add_level(N=10, nest=False),
            obs=cross_levels(by=['countries', 'years'], y=...),
        )
    """
    if isinstance(by, str):
        by = [by]
    if len(by) < 2:
        raise ValueError("cross_levels needs at least two levels to cross")
    return Level(variables=variables, action=LevelAction.CROSS, recycle=recycle, by=list(by))
