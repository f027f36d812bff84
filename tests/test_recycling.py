"""
Tests for recycling short sequences to a level's length.
"""

import pytest

from fabricator import fabricate, recycle, recycle_to
from fabricator.errors import EmptyInputError, FabricationError, InvalidSizeError


MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
          "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def test_recycle_to_repeats_cyclically():
    """Element i of the output is element i mod len of the input"""
    assert recycle_to(['a', 'b', 'c'], 5).tolist() == ['a', 'b', 'c', 'a', 'b']
    assert recycle_to([1, 2, 3], 2).tolist() == [1, 2]
    assert recycle_to([1, 2, 3], 0).tolist() == []


def test_recycle_to_scalar():
    """A scalar behaves like a length-1 sequence"""
    assert recycle_to(7, 3).tolist() == [7, 7, 7]
    assert recycle_to("x", 2).tolist() == ["x", "x"]


@pytest.mark.parametrize("N", [1, 5, 12, 13, 30])
def test_recycle_to_idempotent(N):
    """Recycling an already recycled vector to the same length changes nothing"""
    once = recycle_to(MONTHS, N)
    assert recycle_to(once, N).tolist() == once.tolist()


def test_recycle_to_empty_input():
    """Recycling nothing is an error"""
    with pytest.raises(EmptyInputError):
        recycle_to([], 3)

    # Part of the fabricator error family
    with pytest.raises(FabricationError):
        recycle_to([], 3)


def test_recycle_to_negative_length():
    """N must be a non-negative integer"""
    with pytest.raises(InvalidSizeError):
        recycle_to([1, 2], -1)


def test_recycle_deferred():
    """Without N, recycle returns an expression of N"""
    recycled = recycle([1, 2])
    assert callable(recycled)
    assert recycled(5).tolist() == [1, 2, 1, 2, 1]

    assert recycle([1, 2], 3).tolist() == [1, 2, 1]


def test_fabricate_months():
    """Twelve months recycled over twenty rows"""
    df = fabricate(N=20, month=recycle(MONTHS))

    assert len(df) == 20
    assert df['month'].tolist() == MONTHS + MONTHS[:8]


def test_recycle_to_mixed_types():
    """Mixed sequences keep their element types"""
    assert recycle_to(['a', 1], 3).tolist() == ['a', 1, 'a']
    assert recycle_to(['a', 'b'], 3).dtype.kind == 'U'
