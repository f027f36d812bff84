"""
Tests for single-level and hierarchical fabrication.
"""

import numpy as np
import pandas as pd
import pytest

from fabricator import (
    add_level,
    cross_levels,
    expr,
    fabricate,
    modify_level,
)
from fabricator.errors import (
    LengthMismatchError,
    MissingSizeError,
    UndefinedVariable,
    UnknownLevelError,
)


def assert_cascaded(table, level_columns):
    """Every column of a level is constant within each unit of that level"""
    for label, columns in level_columns.items():
        grouped = table.groupby(label)[columns].nunique(dropna=False)
        assert (grouped <= 1).all().all(), f"{label} columns vary within units"


class TestSingleLevel:
    """Flat datasets"""

    def test_basic_fabrication(self):
        """Five rows of normal draws with a default identifier"""
        df = fabricate(N=5, Y=lambda N, rng: rng.normal(size=N))

        assert df.shape == (5, 2)
        assert list(df.columns) == ['ID', 'Y']
        assert df['ID'].tolist() == ['ID_1', 'ID_2', 'ID_3', 'ID_4', 'ID_5']
        assert df.attrs['levels'] == ['ID']

    def test_custom_id_label(self):
        df = fabricate(N=3, ID_label='person', age=30)

        assert list(df.columns) == ['person', 'age']
        assert df['age'].tolist() == [30, 30, 30]

    def test_variables_in_order(self):
        """Variables are evaluated left to right and can use earlier ones"""
        df = fabricate(N=3, x=[1, 2, 3], y=expr("x * 2"), z=lambda x, y: x + y)

        assert list(df.columns) == ['ID', 'x', 'y', 'z']
        assert df['y'].tolist() == [2, 4, 6]
        assert df['z'].tolist() == [3, 6, 9]

    def test_mixed_constant_keeps_element_types(self):
        """A constant list mixing strings and numbers is not stringified"""
        df = fabricate(N=2, x=['a', 1])

        assert df['x'].tolist() == ['a', 1]

    def test_undefined_variable(self):
        """Referencing an unknown name fails naming the variable and level"""
        with pytest.raises(UndefinedVariable) as exc_info:
            fabricate(N=5, Y=lambda undefined_var: undefined_var + 1)

        error = exc_info.value
        assert error.variable == 'undefined_var'
        assert error.level == 'ID'
        assert 'undefined_var' in str(error)

    def test_missing_size(self):
        with pytest.raises(MissingSizeError):
            fabricate(Y=[1, 2])

    def test_seed_reproducible(self):
        """The same seed gives the same table"""
        first = fabricate(N=10, Y=lambda N, rng: rng.normal(size=N), seed=7)
        second = fabricate(N=10, Y=lambda N, rng: rng.normal(size=N), seed=7)
        other = fabricate(N=10, Y=lambda N, rng: rng.normal(size=N), seed=8)

        pd.testing.assert_frame_equal(first, second)
        assert not np.allclose(first['Y'], other['Y'])

    def test_seed_and_rng_exclusive(self, rng):
        with pytest.raises(ValueError):
            fabricate(N=2, seed=1, rng=rng)

    def test_zero_rows(self):
        df = fabricate(N=0, x=lambda N: np.zeros(N))

        assert len(df) == 0
        assert list(df.columns) == ['ID', 'x']


class TestImportedData:
    """Adding variables to existing data"""

    def test_adds_identifier_column(self):
        data = pd.DataFrame({'x': [1, 2, 3]})
        df = fabricate(data, z=lambda x: x * 2)

        assert list(df.columns) == ['ID', 'x', 'z']
        assert df['z'].tolist() == [2, 4, 6]
        # Input is not modified
        assert list(data.columns) == ['x']

    def test_keeps_existing_identifiers(self):
        data = pd.DataFrame({'person': ['a', 'b'], 'x': [1, 2]})
        df = fabricate(data, ID_label='person', z=lambda N: np.arange(N))

        assert df['person'].tolist() == ['a', 'b']
        assert df['z'].tolist() == [0, 1]

    def test_fills_missing_identifiers(self):
        """Only missing identifiers get new labels, and labels stay unique"""
        data = pd.DataFrame({'ID': ['ID_1', None, 'ID_3'], 'x': [1, 2, 3]})
        df = fabricate(data, z=0)

        assert df['ID'].tolist() == ['ID_1', 'ID_2', 'ID_3']
        assert df['ID'].is_unique

    def test_filled_identifiers_skip_existing_labels(self):
        df = fabricate(pd.DataFrame({'ID': ['ID_2', None], 'x': [1, 2]}), z=0)
        assert df['ID'].tolist() == ['ID_2', 'ID_1']

        df = fabricate(pd.DataFrame({'ID': [None, 'ID_1', None], 'x': [1, 2, 3]}), z=0)
        assert df['ID'].tolist() == ['ID_2', 'ID_1', 'ID_3']
        assert df['ID'].is_unique

    def test_size_inherited(self):
        """N defaults to the number of imported rows"""
        data = pd.DataFrame({'x': [1, 2, 3, 4]})
        df = fabricate(data, n=lambda N: np.full(N, N))

        assert df['n'].tolist() == [4, 4, 4, 4]

    def test_size_must_match(self):
        with pytest.raises(LengthMismatchError):
            fabricate(pd.DataFrame({'x': [1, 2, 3]}), N=5, z=0)


class TestHierarchy:
    """Nested levels"""

    def test_two_levels(self, nested_table):
        """Two outer units with three inner units each"""
        assert len(nested_table) == 6
        assert list(nested_table.columns) == ['outer', 'outer_value', 'inner', 'inner_value']
        assert nested_table['outer'].nunique() == 2
        assert nested_table['outer'].value_counts().tolist() == [3, 3]
        assert nested_table['inner'].is_unique
        assert nested_table.attrs['levels'] == ['outer', 'inner']

    def test_rows_are_product_of_sizes(self):
        df = fabricate(
            regions=add_level(N=2),
            cities=add_level(N=3),
            households=add_level(N=4),
        )

        assert len(df) == 2 * 3 * 4
        assert df['cities'].nunique() == 6
        assert df.groupby('cities').size().eq(4).all()

    def test_parent_values_cascade(self, nested_table):
        """Parent columns repeat unchanged in every child row"""
        assert_cascaded(nested_table, {'outer': ['outer_value']})

    def test_children_see_parent_variables(self):
        df = fabricate(
            schools=add_level(N=2, funding=[10, 20]),
            pupils=add_level(N=2, grant=lambda funding: funding * 2),
        )

        assert df['grant'].tolist() == [20, 20, 40, 40]

    def test_n_is_current_level_size(self):
        """Inside a nested level N is that level's total row count"""
        df = fabricate(
            schools=add_level(N=2),
            pupils=add_level(N=3, total=lambda N: np.full(N, N)),
        )

        assert df['total'].tolist() == [6] * 6

    def test_per_parent_counts(self):
        df = fabricate(
            households=add_level(N=3),
            people=add_level(N=[1, 0, 2]),
        )

        assert len(df) == 3
        assert df['households'].tolist() == ['households_1', 'households_3', 'households_3']

    def test_counts_from_parent_variable(self):
        df = fabricate(
            households=add_level(N=2, size=[2, 3]),
            people=add_level(N=lambda size: size),
        )

        assert df.groupby('households').size().tolist() == [2, 3]

    def test_one_child_per_parent_by_default(self):
        df = fabricate(
            households=add_level(N=3),
            heads=add_level(),
        )

        assert len(df) == 3
        assert df['heads'].tolist() == ['heads_1', 'heads_2', 'heads_3']

    def test_counts_vector_must_match_parents(self):
        with pytest.raises(LengthMismatchError):
            fabricate(
                households=add_level(N=4),
                people=add_level(N=[1, 2]),
            )

    def test_level_recycle(self):
        df = fabricate(groups=add_level(N=4, g=[0, 1], recycle=True))
        assert df['g'].tolist() == [0, 1, 0, 1]

        with pytest.raises(LengthMismatchError):
            fabricate(groups=add_level(N=4, g=[0, 1]))

    def test_root_level_needs_size(self):
        with pytest.raises(MissingSizeError):
            fabricate(regions=add_level(x=1))

    def test_cannot_mix_levels_and_variables(self):
        with pytest.raises(ValueError):
            fabricate(regions=add_level(N=2), x=1)

    def test_redefining_column_rejected(self):
        with pytest.raises(ValueError):
            fabricate(
                regions=add_level(N=2, x=1),
                cities=add_level(N=2, x=2),
            )

    def test_undefined_variable_in_child(self):
        with pytest.raises(UndefinedVariable) as exc_info:
            fabricate(
                regions=add_level(N=2),
                cities=add_level(N=2, y=lambda nothing: nothing),
            )

        assert exc_info.value.level == 'cities'

    def test_seed_reproducible(self):
        def build(seed):
            return fabricate(
                regions=add_level(N=2, a=lambda N, rng: rng.normal(size=N)),
                cities=add_level(N=lambda N, rng: rng.integers(1, 5, size=N),
                                 b=lambda N, rng: rng.normal(size=N)),
                seed=seed,
            )

        pd.testing.assert_frame_equal(build(3), build(3))


class TestAddLevelToData:
    """Nesting new levels under imported data"""

    def test_nest_under_fabricated_table(self, nested_table):
        df = fabricate(nested_table, visits=add_level(N=2, recycle=True, day=[1, 2]))

        assert len(df) == 12
        assert df['day'].tolist() == [1, 2] * 6
        assert df.attrs['levels'] == ['outer', 'inner', 'visits']
        assert_cascaded(df, {'outer': ['outer_value'], 'inner': ['inner_value']})

    def test_nest_under_plain_data(self):
        data = pd.DataFrame({'x': [1, 2]})
        df = fabricate(data, ID_label='firm', workers=add_level(N=3))

        assert len(df) == 6
        assert df.attrs['levels'] == ['firm', 'workers']
        assert df['firm'].value_counts().tolist() == [3, 3]


class TestModifyLevel:
    """Variables added to an existing level"""

    def test_adds_unit_level_variable(self, nested_table):
        df = fabricate(nested_table, outer=modify_level(z=lambda N: np.arange(N)))

        assert list(df.columns) == ['outer', 'outer_value', 'z', 'inner', 'inner_value']
        assert df['z'].tolist() == [0, 0, 0, 1, 1, 1]
        assert_cascaded(df, {'outer': ['outer_value', 'z']})

    def test_sees_unit_variables_only(self, nested_table):
        df = fabricate(nested_table, outer=modify_level(double=lambda outer_value: outer_value * 2))
        assert np.allclose(df['double'], df['outer_value'] * 2)

        with pytest.raises(UndefinedVariable):
            fabricate(nested_table, outer=modify_level(bad=lambda inner_value: inner_value))

    def test_overwrites_unit_variable(self, nested_table):
        df = fabricate(nested_table, outer=modify_level(outer_value=0.0))

        assert df['outer_value'].tolist() == [0.0] * 6
        assert list(df.columns) == list(nested_table.columns)

    def test_innermost_level(self, nested_table):
        df = fabricate(
            nested_table,
            inner=modify_level(total=lambda outer_value, inner_value: outer_value + inner_value),
        )

        assert list(df.columns)[-1] == 'total'
        assert np.allclose(df['total'], df['outer_value'] + df['inner_value'])

    def test_unknown_level(self, nested_table):
        with pytest.raises(UnknownLevelError):
            fabricate(nested_table, nothing=modify_level(x=1))

    def test_wrong_unit_count(self, nested_table):
        with pytest.raises(LengthMismatchError):
            fabricate(nested_table, outer=modify_level(N=5, x=1))

    def test_missing_unit_identifiers(self):
        """Rows without a unit identifier cannot receive a unit's values"""
        data = pd.DataFrame({'g': ['a', 'a', None], 'x': [1, 2, 3]})

        with pytest.raises(ValueError, match="missing"):
            fabricate(data, g=modify_level(k=lambda N: np.arange(N)))


class TestCrossLevels:
    """Cross-classified levels"""

    def test_panel(self):
        df = fabricate(
            countries=add_level(N=3, base=[1, 2, 3]),
            years=add_level(N=4, nest=False, year=[2000, 2001, 2002, 2003]),
            obs=cross_levels(by=['countries', 'years'], y=lambda base, year: base * 10000 + year),
        )

        assert len(df) == 12
        assert df.attrs['levels'] == ['countries', 'years', 'obs']
        assert not df.duplicated(['countries', 'years']).any()
        assert df['obs'].is_unique
        assert (df['y'] == df['base'] * 10000 + df['year']).all()
        assert_cascaded(df, {'countries': ['base'], 'years': ['year']})

    def test_standalone_levels_only(self):
        df = fabricate(
            a=add_level(N=2),
            b=add_level(N=2, nest=False),
            c=add_level(N=3, nest=False),
            abc=cross_levels(by=['b', 'c']),
        )

        assert len(df) == 6
        assert 'a' not in df.columns
        assert df.attrs['levels'] == ['b', 'c', 'abc']

    def test_unknown_level(self):
        with pytest.raises(UnknownLevelError):
            fabricate(
                a=add_level(N=2),
                ab=cross_levels(by=['a', 'missing']),
            )

    def test_needs_two_levels(self):
        with pytest.raises(ValueError):
            cross_levels(by=['a'])
