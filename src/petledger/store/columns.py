from datetime import date, datetime
from uuid import UUID

from django.db import connection, models


def default_quote(name: str) -> str:
    return connection.ops.quote_name(name)


class Column:
    """A column of a table, addressed as ``"table"."column"`` in SQL."""

    def __init__(self, table_name: str, column_name: str, django_field=None):
        self.table_name = table_name
        self.column_name = column_name
        self.django_field = django_field

    def full_name(self, quote=None) -> str:
        """
        Args:
            quote: Identifier quoting of the database the SQL is for. A query
                passes its own connection's; the default database's otherwise.
        """
        quote = quote or default_quote
        return f"{quote(self.table_name)}.{quote(self.column_name)}"

    def as_(self, alias_name: str) -> "Alias":
        """
        Select this column under another name.

        Example:
            db.select(users.name.as_("owner_name")).from_(pets)
        """
        return Alias(self, alias_name)

    @property
    def valid_types(self) -> tuple:
        """
        Python types accepted for this column when inserting rows.
        None is accepted for nullable columns.
        """
        if not self.django_field:
            return (object,)

        # Order matters: subclasses before their bases.
        field_type_map = (
            (models.ForeignKey, (int, str, UUID)),
            (models.BooleanField, (bool, int)),
            (models.IntegerField, (int,)),
            (models.FloatField, (float, int)),
            (models.DecimalField, (float, int)),
            (models.DateTimeField, (datetime, str)),
            (models.DateField, (date, str)),
            (models.CharField, (str,)),
            (models.TextField, (str,)),
            (models.UUIDField, (str, UUID)),
        )

        valid = (object,)
        for field_type, python_types in field_type_map:
            if isinstance(self.django_field, field_type):
                valid = python_types
                break

        if getattr(self.django_field, "null", False):
            valid = valid + (type(None),)

        return valid


class OrderDirection:
    """A column with an order direction (ASC or DESC)."""

    def __init__(self, column: Column, direction: str = "ASC"):
        self.column = column
        self.direction = direction.upper()

    def to_sql(self, quote=None) -> str:
        return f"{self.column.full_name(quote)} {self.direction}"


class Alias:
    """A selected column with an alias."""

    def __init__(self, column: Column, alias_name: str):
        self.column = column
        self.alias_name = alias_name

    def to_sql(self, quote=None) -> str:
        quote = quote or default_quote
        return f"{self.column.full_name(quote)} AS {quote(self.alias_name)}"


def asc(column: Column) -> OrderDirection:
    return OrderDirection(column, "ASC")


def desc(column: Column) -> OrderDirection:
    return OrderDirection(column, "DESC")
