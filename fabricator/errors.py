"""
Exceptions raised by fabrication and resampling.

Every error derives from FabricationError and from the closest builtin
exception, so callers can catch either.
"""

from typing import Optional


class FabricationError(Exception):
    """Base class for all fabricator errors"""


class MissingSizeError(FabricationError, ValueError):
    """No N could be resolved for a level"""

    def __init__(self, level: Optional[str] = None):
        self.level = level
        super().__init__(
            f"Level '{level}' has no N: pass N explicitly or provide data to inherit it from"
        )


class InvalidSizeError(FabricationError, ValueError):
    """N is negative or not an integer"""


class LengthMismatchError(FabricationError, ValueError):
    """
    A produced vector cannot be conformed to the level size.

    Attributes:
        variable: Offending variable (or size vector) name
        length: Length that was produced
        expected: Length that was required
        level: Level being built
    """

    def __init__(
        self,
        message: str,
        variable: Optional[str] = None,
        length: Optional[int] = None,
        expected: Optional[int] = None,
        level: Optional[str] = None
    ):
        self.variable = variable
        self.length = length
        self.expected = expected
        self.level = level
        super().__init__(message)


class UndefinedVariable(FabricationError, NameError):
    """An expression referenced a name that is not in scope"""

    def __init__(self, name: str, level: Optional[str] = None, target: Optional[str] = None):
        self.variable = name
        self.level = level
        self.target = target

        message = f"Variable '{name}' is not defined"
        if target:
            message += f" (while evaluating '{target}')"
        if level:
            message += f" at level '{level}'"
        super().__init__(message)


class EmptyInputError(FabricationError, ValueError):
    """Recycling was asked to stretch an empty sequence"""


class UnknownLevelError(FabricationError, LookupError):
    """A level name does not match any identifier column"""

    def __init__(self, level: str, available=None):
        self.level = level
        self.available = list(available or [])
        super().__init__(
            f"Unknown level '{level}'. Available: {self.available}"
        )


class SampleSizeError(FabricationError, ValueError):
    """Sampling without replacement asked for more groups than exist"""
