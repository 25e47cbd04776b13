from typing import Generic, Type, TypeVar

from django.db import models

from ..exceptions import InvalidColumnError
from .columns import Column

T = TypeVar("T", bound=models.Model)


class Table(Generic[T]):
    """
    Column-level view of a Django model's table.

    Every concrete field is reachable as an attribute under both its field
    name and its column name, so ``pets.owner`` and ``pets.owner_id`` are the
    same column. Works with historical models handed to ``RunPython`` too.

    Pass ``alias`` to join the same table more than once:

        mine = Table(Ownership, alias="mine")
        primary = Table(Ownership, alias="primary_row")
    """

    def __init__(self, model_class: Type[T], alias: str | None = None):
        self.model_class = model_class
        self.db_table_name = model_class._meta.db_table
        self.alias = alias
        self.column_names = set()

        for field in model_class._meta.concrete_fields:
            col = Column(self.ref_name, field.column, django_field=field)
            setattr(self, field.name, col)
            setattr(self, field.column, col)
            self.column_names.add(field.column)

    @property
    def ref_name(self) -> str:
        """Name columns are qualified with: the alias if any, else the table name."""
        return self.alias or self.db_table_name

    @property
    def pk(self) -> Column:
        return getattr(self, self.model_class._meta.pk.column)

    def column(self, name: str) -> Column:
        if name not in self.column_names:
            raise InvalidColumnError(
                f"Column {name} not in table {self.db_table_name}"
            )
        return getattr(self, name)

    def __repr__(self):
        if self.alias:
            return f"<Table {self.db_table_name} AS {self.alias}>"
        return f"<Table {self.db_table_name}>"
