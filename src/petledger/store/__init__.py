from .table import Table
from .columns import Column, Alias, asc, desc
from .conditions import (
    Condition,
    NullCondition,
    InCondition,
    CompoundCondition,
    eq,
    ne,
    gt,
    is_null,
    is_not_null,
    in_array,
    not_in_array,
    and_,
    or_,
)
from .query import Query

__all__ = [
    "Table",
    "Column",
    "Alias",
    "asc",
    "desc",
    # Condition classes
    "Condition",
    "NullCondition",
    "InCondition",
    "CompoundCondition",
    # Comparison operators
    "eq",
    "ne",
    "gt",
    # NULL checks
    "is_null",
    "is_not_null",
    # List operations
    "in_array",
    "not_in_array",
    # Logical operators
    "and_",
    "or_",
    # Query builder
    "Query",
]
