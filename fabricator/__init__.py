"""
Fabricator

Simulates single-level and hierarchical datasets from user expressions,
and resamples existing data while preserving its hierarchy.
"""

from .pipeline import HierarchyBuilder, fabricate
from .models import Level, LevelAction, add_level, modify_level, cross_levels
from .resample import ALL, resample_data, detect_id_labels
from .recycling import recycle, recycle_to
from .scope import Scope, Expr, expr, evaluate_expression
from .level import (
    resolve_size,
    resolve_child_counts,
    conform_length,
    make_ids,
    evaluate_level,
    process_level,
)
from .sampler import make_rng, sample_indices
from .database import TableStore, get_store
from .config import Settings, get_settings
from .errors import (
    FabricationError,
    MissingSizeError,
    InvalidSizeError,
    LengthMismatchError,
    UndefinedVariable,
    EmptyInputError,
    UnknownLevelError,
    SampleSizeError,
)

__version__ = "0.1.0"

__all__ = [
    # Main entry points
    'fabricate',
    'resample_data',
    'HierarchyBuilder',

    # Level specifications
    'Level',
    'LevelAction',
    'add_level',
    'modify_level',
    'cross_levels',
    'ALL',

    # Expressions
    'Scope',
    'Expr',
    'expr',
    'evaluate_expression',
    'recycle',
    'recycle_to',

    # Level processing
    'resolve_size',
    'resolve_child_counts',
    'conform_length',
    'make_ids',
    'evaluate_level',
    'process_level',
    'detect_id_labels',

    # Randomness
    'make_rng',
    'sample_indices',

    # Storage and configuration
    'TableStore',
    'get_store',
    'Settings',
    'get_settings',

    # Errors
    'FabricationError',
    'MissingSizeError',
    'InvalidSizeError',
    'LengthMismatchError',
    'UndefinedVariable',
    'EmptyInputError',
    'UnknownLevelError',
    'SampleSizeError',
]
