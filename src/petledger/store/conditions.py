from typing import Any

from .columns import Column


def collect_params(params: list, value) -> None:
    """Append a condition's parameter(s) to ``params``."""
    if value is None:
        # IS NULL / column-to-column comparisons carry no parameters
        return
    if isinstance(value, (list, tuple)):
        params.extend(value)
    else:
        params.append(value)


class Condition:
    """A single SQL WHERE or JOIN condition."""

    def __init__(self, column: Column, operator: str, value):
        self.column = column
        self.operator = operator
        self.value = value

    def columns(self) -> list[Column]:
        if isinstance(self.value, Column):
            return [self.column, self.value]
        return [self.column]

    def to_sql(self, quote=None):
        if isinstance(self.value, Column):
            return (
                f"{self.column.full_name(quote)} {self.operator} {self.value.full_name(quote)}",
                None,
            )
        return f"{self.column.full_name(quote)} {self.operator} %s", self.value


class NullCondition(Condition):
    """IS NULL or IS NOT NULL."""

    def __init__(self, column: Column, operator: str):
        super().__init__(column, operator, None)

    def to_sql(self, quote=None):
        return f"{self.column.full_name(quote)} {self.operator}", None


class InCondition(Condition):
    """IN or NOT IN over a list of values."""

    def __init__(self, column: Column, values: list[Any], not_in: bool = False):
        super().__init__(column, "NOT IN" if not_in else "IN", list(values))

    def to_sql(self, quote=None):
        if not self.value:
            # An empty IN list matches nothing, an empty NOT IN matches everything.
            return ("1 = 1" if self.operator == "NOT IN" else "1 = 0"), None
        placeholders = ", ".join(["%s"] * len(self.value))
        return f"{self.column.full_name(quote)} {self.operator} ({placeholders})", self.value


class CompoundCondition:
    """Conditions joined with AND or OR."""

    def __init__(self, operator: str, *conditions):
        self.operator = operator
        self.conditions = conditions

    def columns(self) -> list[Column]:
        found = []
        for cond in self.conditions:
            found.extend(cond.columns())
        return found

    def to_sql(self, quote=None):
        clauses = []
        params = []
        for cond in self.conditions:
            clause, value = cond.to_sql(quote)
            clauses.append(f"({clause})")
            collect_params(params, value)
        return f" {self.operator} ".join(clauses), params


def eq(column: Column, value):
    if value is None:
        return NullCondition(column, "IS NULL")
    return Condition(column, "=", value)


def ne(column: Column, value):
    if value is None:
        return NullCondition(column, "IS NOT NULL")
    return Condition(column, "<>", value)


def gt(column: Column, value):
    """Greater than."""
    return Condition(column, ">", value)


def is_null(column: Column):
    return NullCondition(column, "IS NULL")


def is_not_null(column: Column):
    return NullCondition(column, "IS NOT NULL")


def in_array(column: Column, values: list[Any]):
    """Check if column value is IN a list of values."""
    return InCondition(column, values)


def not_in_array(column: Column, values: list[Any]):
    """Check if column value is NOT IN a list of values."""
    return InCondition(column, values, not_in=True)


def and_(*conditions):
    """
    Combine conditions with AND.

    Example:
        and_(eq(ownerships.pet_id, pets.id), eq(ownerships.is_primary, True))
    """
    return CompoundCondition("AND", *conditions)


def or_(*conditions):
    """Combine conditions with OR."""
    return CompoundCondition("OR", *conditions)
