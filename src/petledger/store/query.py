from typing import Any, Dict, Union

from asgiref.sync import sync_to_async
from django.db import DEFAULT_DB_ALIAS, connections

from ..exceptions import InvalidColumnError
from .columns import Alias, Column, OrderDirection
from .conditions import collect_params
from .table import Table


class Query:
    """
    Table-level query builder executed on a Django database connection.

    Values written and read go through the Django field of their column, so
    rows carry the same Python values the ORM would give (aware datetimes
    when ``USE_TZ`` is on, booleans on SQLite).
    """

    def __init__(self, using: str = DEFAULT_DB_ALIAS):
        """
        Args:
            using: Django database alias the query runs on.
        """
        self.using = using
        self._table: Table | None = None
        self._query_type: str = "select"  # "select", "count", "insert", "update" or "delete"
        self._fields: list[Column | Alias] | None = None
        self._conditions: list = []
        self._joins: list[tuple[str, Table, Any]] = []  # (join_type, table, condition)
        self._order_by: list[Column | OrderDirection] = []
        self._limit: int | None = None
        self._insert_values: list[Dict[str, Any]] | None = None
        self._update_values: Dict[str, Any] | None = None

    def _reset_query_state(self):
        self._table = None
        self._fields = None
        self._conditions = []
        self._joins = []
        self._order_by = []
        self._limit = None
        self._insert_values = None
        self._update_values = None

    @property
    def connection(self):
        return connections[self.using]

    def _quote(self, name: str) -> str:
        return self.connection.ops.quote_name(name)

    def select(self, *fields: Union[Column, Alias]) -> "Query":
        self._reset_query_state()
        self._query_type = "select"
        self._fields = list(fields) if fields else None
        return self

    def count(self) -> "Query":
        """
        Start a ``SELECT COUNT(*)`` query. Executing it returns an int.

        Example:
            db.count().from_(pets).where(is_not_null(pets.owner_id))()
        """
        self._reset_query_state()
        self._query_type = "count"
        return self

    def insert(self, table: Table) -> "Query":
        """
        Start an INSERT query for the given table.

        Example:
            db.insert(pets).values([{"id": 1, "name": "Tom"}, {"id": 2, "name": "Kit"}])
        """
        self._reset_query_state()
        self._query_type = "insert"
        self._table = table
        return self

    def values(self, data: Dict[str, Any] | list[Dict[str, Any]]) -> "Query":
        """Rows to insert, keyed by column name. A dict or a list of dicts."""
        if isinstance(data, dict):
            self._insert_values = [data]
        elif isinstance(data, list):
            self._insert_values = data
        else:
            raise ValueError("values() must receive a dict or list of dicts")

        self._validate_value_types(self._insert_values)
        return self

    def update(self, table: Table) -> "Query":
        """
        Start an UPDATE query for the given table.

        Example:
            db.update(pets).set({"name": "Thomas"}).where(eq(pets.id, 1))
        """
        self._reset_query_state()
        self._query_type = "update"
        self._table = table
        return self

    def set(self, data: Dict[str, Any]) -> "Query":
        """Values to update, keyed by column name. None sets the column to NULL."""
        if not isinstance(data, dict):
            raise ValueError("set() must receive a dict")
        self._update_values = data
        self._validate_value_types([data])
        return self

    def delete(self, table: Table) -> "Query":
        """
        Start a DELETE query for the given table. Rows are removed in SQL only:
        Django's on_delete handlers and signals do not run.

        Example:
            db.delete(pets).where(in_array(pets.id, [3, 4]))
        """
        self._reset_query_state()
        self._query_type = "delete"
        self._table = table
        return self

    def from_(self, table: Table) -> "Query":
        self._table = table
        return self

    def where(self, *conditions) -> "Query":
        self._conditions.extend(conditions)
        return self

    def inner_join(self, table: Table, condition) -> "Query":
        """
        Add an INNER JOIN to the query.

        Example:
            db.select().from_(pets).inner_join(ownerships, eq(ownerships.pet_id, pets.id))
        """
        self._joins.append(("INNER", table, condition))
        return self

    def left_join(self, table: Table, condition) -> "Query":
        self._joins.append(("LEFT", table, condition))
        return self

    def order_by(self, *columns: Column | OrderDirection) -> "Query":
        """Plain columns order ascending; wrap with asc()/desc() to choose."""
        self._order_by.extend(columns)
        return self

    def limit(self, count: int) -> "Query":
        self._limit = count
        return self

    def _validate_value_types(self, rows: list[Dict[str, Any]]) -> None:
        """
        Raises:
            InvalidColumnError: If a row names a column the table lacks
            TypeError: If a value's type doesn't match the column's valid types
        """
        for row_idx, row in enumerate(rows):
            for col_name, value in row.items():
                column = self._table.column(col_name)
                valid_types = column.valid_types
                if not isinstance(value, valid_types):
                    type_names = ", ".join(t.__name__ for t in valid_types)
                    row_info = f" (row {row_idx})" if len(rows) > 1 else ""
                    raise TypeError(
                        f"Invalid type for column '{col_name}'{row_info}: "
                        f"expected {type_names}, got {type(value).__name__}"
                    )

    def _validate_columns(self):
        known = {self._table.ref_name}
        known.update(join_table.ref_name for _, join_table, _ in self._joins)

        def check(column: Column, where: str):
            if column.table_name not in known:
                raise InvalidColumnError(
                    f"Column {column.table_name}.{column.column_name} in {where} "
                    f"belongs to no table of this query"
                )

        for f in self._fields or []:
            check(f.column if isinstance(f, Alias) else f, "select list")
        for _, _, condition in self._joins:
            for column in condition.columns():
                check(column, "join")
        for cond in self._conditions:
            for column in cond.columns():
                check(column, "where clause")
        for item in self._order_by:
            check(item.column if isinstance(item, OrderDirection) else item, "order by")

    def _prepare_row(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """Turn Python values into database values the way the ORM saves them."""
        prepared = {}
        for col_name, value in row.items():
            field = self._table.column(col_name).django_field
            if field is not None:
                value = field.get_db_prep_save(value, connection=self.connection)
            prepared[col_name] = value
        return prepared

    def _build_sql(self) -> tuple[str, list[Any]]:
        if not self._table:
            raise ValueError("No table selected")

        if self._query_type == "insert":
            return self._build_insert_sql()
        if self._query_type == "update":
            return self._build_update_sql()
        if self._query_type == "delete":
            return self._build_delete_sql()
        return self._build_select_sql()

    def _table_sql(self, table: Table) -> str:
        if table.alias:
            return f"{self._quote(table.db_table_name)} AS {self._quote(table.alias)}"
        return self._quote(table.db_table_name)

    def _where_sql(self, params: list[Any]) -> str:
        if not self._conditions:
            return ""
        clauses = []
        for cond in self._conditions:
            clause, value = cond.to_sql(self._quote)
            clauses.append(clause)
            collect_params(params, value)
        return " WHERE " + " AND ".join(clauses)

    def _build_select_sql(self) -> tuple[str, list[Any]]:
        self._validate_columns()
        quote = self._quote

        if self._query_type == "count":
            fields = "COUNT(*)"
        elif self._fields:
            fields = ", ".join(f.to_sql(quote) if isinstance(f, Alias) else f.full_name(quote) for f in self._fields)
        else:
            fields = f"{quote(self._table.ref_name)}.*"

        sql = f"SELECT {fields} FROM {self._table_sql(self._table)}"
        params: list[Any] = []

        for join_type, join_table, join_condition in self._joins:
            join_clause, join_value = join_condition.to_sql(quote)
            sql += f" {join_type} JOIN {self._table_sql(join_table)} ON {join_clause}"
            collect_params(params, join_value)

        sql += self._where_sql(params)

        if self._order_by and self._query_type != "count":
            order_clauses = []
            for order_item in self._order_by:
                if isinstance(order_item, OrderDirection):
                    order_clauses.append(order_item.to_sql(quote))
                else:
                    order_clauses.append(f"{order_item.full_name(quote)} ASC")
            sql += " ORDER BY " + ", ".join(order_clauses)

        if self._limit is not None:
            sql += f" LIMIT {int(self._limit)}"

        return sql, params

    def _build_insert_sql(self) -> tuple[str, list[Any]]:
        if not self._insert_values:
            raise ValueError("No values specified for INSERT")
        quote = self._quote

        # Columns in first-seen order across all rows
        columns = []
        seen = set()
        for row in self._insert_values:
            for col in row:
                if col not in seen:
                    columns.append(col)
                    seen.add(col)

        column_list = ", ".join(quote(col) for col in columns)
        sql = f"INSERT INTO {quote(self._table.db_table_name)} ({column_list})"

        params: list[Any] = []
        value_rows = []
        for row in self._insert_values:
            prepared = self._prepare_row(row)
            value_rows.append(f"({', '.join(['%s'] * len(columns))})")
            params.extend(prepared.get(col) for col in columns)

        sql += " VALUES " + ", ".join(value_rows)
        return sql, params

    def _build_update_sql(self) -> tuple[str, list[Any]]:
        if not self._update_values:
            raise ValueError("No values specified for UPDATE. Use .set()")
        self._validate_columns()

        params: list[Any] = []
        set_clauses = []
        for col, value in self._prepare_row(self._update_values).items():
            set_clauses.append(f"{self._quote(col)} = %s")
            params.append(value)

        sql = f"UPDATE {self._table_sql(self._table)} SET " + ", ".join(set_clauses)
        sql += self._where_sql(params)
        return sql, params

    def _build_delete_sql(self) -> tuple[str, list[Any]]:
        self._validate_columns()
        params: list[Any] = []
        sql = f"DELETE FROM {self._table_sql(self._table)}"
        sql += self._where_sql(params)
        return sql, params

    @property
    def sql(self) -> str:
        """
        The SQL string without executing it.

        Example:
            query = db.select(pets.id).from_(pets).where(eq(pets.owner_id, 42))
            print(query.sql)  # SELECT "petledger_pet"."id" FROM "petledger_pet" WHERE ...
        """
        sql, _ = self._build_sql()
        return sql

    @property
    def params(self) -> list[Any]:
        _, params = self._build_sql()
        return params

    def _result_fields(self, names: list[str]) -> list:
        """The Django field behind each result column, None where there is none."""
        if self._fields:
            return [(f.column if isinstance(f, Alias) else f).django_field for f in self._fields]
        return [
            self._table.column(name).django_field if name in self._table.column_names else None
            for name in names
        ]

    def _converters(self, fields: list) -> list[list]:
        """Backend and field converters per result column, as the ORM applies them."""
        connection = self.connection
        converters = []
        for field in fields:
            if field is None:
                converters.append((None, []))
                continue
            col = field.get_col(field.model._meta.db_table)
            converters.append(
                (col, connection.ops.get_db_converters(col) + col.get_db_converters(connection))
            )
        return converters

    def _execute(self):
        sql, params = self._build_sql()
        connection = self.connection

        with connection.cursor() as cur:
            cur.execute(sql, params)

            if self._query_type in ("insert", "update", "delete"):
                return cur.rowcount
            if self._query_type == "count":
                return cur.fetchone()[0]

            names = [desc[0] for desc in cur.description]
            converters = self._converters(self._result_fields(names))
            rows = []
            for raw in cur.fetchall():
                row = {}
                for name, value, (col, funcs) in zip(names, raw, converters):
                    for convert in funcs:
                        value = convert(value, col, connection)
                    row[name] = value
                rows.append(row)
            return rows

    def __await__(self):
        """
        Run the query from async code.

        Example:
            rows = await db.select().from_(pets)
        """
        # Django connections are thread-local; sync_to_async keeps the call on
        # the thread that owns the connection.
        return sync_to_async(self._execute)().__await__()

    def __call__(self):
        return self._execute()
