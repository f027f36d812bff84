"""
Recycling: stretching a short sequence to a target length by repetition.
"""

from typing import Callable, Optional, Union

import numpy as np
import pandas as pd

from .errors import EmptyInputError, InvalidSizeError


def as_vector(values) -> np.ndarray:
    """
    Coerce an expression result to a 1-d numpy array.

    Scalars (including strings and None) become length-1 arrays.
    pandas objects are unwrapped so that their index is never aligned on.
    """
    if isinstance(values, (pd.Series, pd.Index, pd.Categorical)):
        return np.asarray(values)
    if isinstance(values, str):
        return np.array([values])

    arr = np.asarray(values)
    if arr.dtype.kind in 'US' and not isinstance(values, np.ndarray):
        # Mixed lists like ['a', 1] keep their element types
        mixed = np.asarray(values, dtype=object)
        if not all(isinstance(v, (str, bytes)) for v in mixed.ravel()):
            arr = mixed
    if arr.ndim == 0:
        return arr.reshape(1)
    return arr


def recycle_to(values, N: int) -> np.ndarray:
    """
    Repeat values cyclically until they reach length N.

    Element i of the output is element (i mod len(values)) of the input.

    Args:
        values: Sequence (or scalar) to recycle
        N: Target length

    Returns:
        New array of length N

    Example:
        >>> recycle_to(['a', 'b', 'c'], 5).tolist()
        ['a', 'b', 'c', 'a', 'b']
    """
    if N is None or int(N) != N or N < 0:
        raise InvalidSizeError(f"Cannot recycle to length {N!r}: N must be a non-negative integer")

    arr = as_vector(values)
    if len(arr) == 0:
        raise EmptyInputError("Cannot recycle an empty sequence")

    return arr[np.arange(int(N)) % len(arr)]


def recycle(values, N: Optional[int] = None) -> Union[np.ndarray, Callable]:
    """
    Recycle values to N, or defer until N is known.

    Without N this returns an expression taking N, so it can be used
    directly inside fabricate():

        fabricate(N=20, month=recycle(MONTHS))
    """
    if N is not None:
        return recycle_to(values, N)

    def recycled(N):
        return recycle_to(values, N)

    return recycled
