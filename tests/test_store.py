"""Tests for the table-level query builder."""

from types import SimpleNamespace

import pytest

from petledger.exceptions import InvalidColumnError
from petledger.models import Ownership, Pet, User
from petledger.store import Query, Table, and_, desc, eq, in_array, is_not_null, not_in_array


@pytest.fixture
def pets():
    return Table(Pet)


@pytest.fixture
def users():
    return Table(User)


class TestTable:
    def test_columns_by_field_and_column_name(self, pets):
        assert pets.owner is pets.owner_id
        assert pets.owner_id.column_name == "owner_id"
        assert "owner_id" in pets.column_names
        assert "owner" not in pets.column_names

    def test_unknown_column(self, pets):
        with pytest.raises(InvalidColumnError):
            pets.column("species")

    def test_alias_qualifies_columns(self):
        mine = Table(Ownership, alias="mine")
        assert mine.ref_name == "mine"
        assert mine.user_id.full_name() == '"mine"."user_id"'


class TestSqlGeneration:
    def test_select_qualifies_columns(self, query, pets):
        q = query.select(pets.id, pets.name).from_(pets).where(eq(pets.owner_id, 7))
        assert q.sql == (
            'SELECT "petledger_pet"."id", "petledger_pet"."name" FROM "petledger_pet" '
            'WHERE "petledger_pet"."owner_id" = %s'
        )
        assert q.params == [7]

    def test_eq_none_is_null(self, query, pets):
        q = query.select().from_(pets).where(eq(pets.owner_id, None))
        assert q.sql.endswith('WHERE "petledger_pet"."owner_id" IS NULL')
        assert q.params == []

    def test_join_params_precede_where_params(self, query, pets, users):
        primary = Table(Ownership, alias="primary_row")
        q = (
            query.select(pets.id, users.name.as_("owner_name"))
            .from_(pets)
            .inner_join(primary, and_(eq(primary.pet_id, pets.id), eq(primary.is_primary, True)))
            .inner_join(users, eq(users.id, primary.user_id))
            .where(in_array(pets.id, [1, 2]))
            .order_by(desc(pets.name))
            .limit(10)
        )
        sql = q.sql
        assert 'INNER JOIN "petledger_ownership" AS "primary_row"' in sql
        assert '"petledger_user"."name" AS "owner_name"' in sql
        assert sql.endswith('ORDER BY "petledger_pet"."name" DESC LIMIT 10')
        assert q.params == [True, 1, 2]

    def test_empty_in_lists(self, query, pets):
        assert query.select().from_(pets).where(in_array(pets.id, [])).sql.endswith("WHERE 1 = 0")
        assert query.select().from_(pets).where(not_in_array(pets.id, [])).sql.endswith("WHERE 1 = 1")

    def test_column_from_foreign_table_rejected(self, query, pets, users):
        with pytest.raises(InvalidColumnError):
            query.select(users.name).from_(pets).sql

    def test_count(self, query, pets):
        q = query.count().from_(pets).where(is_not_null(pets.owner_id))
        assert q.sql.startswith('SELECT COUNT(*) FROM "petledger_pet"')

    def test_insert_rejects_wrong_type(self, query, users):
        with pytest.raises(TypeError) as exc_info:
            query.insert(users).values({"email": "x@example.com", "name": 42})
        assert "Invalid type for column 'name'" in str(exc_info.value)

    def test_insert_rejects_unknown_column(self, query, users):
        with pytest.raises(InvalidColumnError):
            query.insert(users).values({"email": "x@example.com", "age": 3})

    def test_update_and_delete(self, query, pets):
        q = query.update(pets).set({"name": "Thomas"}).where(eq(pets.id, 3))
        assert q.sql == 'UPDATE "petledger_pet" SET "name" = %s WHERE "petledger_pet"."id" = %s'
        assert q.params == ["Thomas", 3]

        q = query.delete(pets).where(in_array(pets.id, [3, 4]))
        assert q.sql == 'DELETE FROM "petledger_pet" WHERE "petledger_pet"."id" IN (%s, %s)'

    def test_quotes_for_the_query_database(self, monkeypatch, pets, users):
        bracketed = SimpleNamespace(ops=SimpleNamespace(quote_name=lambda name: f"[{name}]"))
        monkeypatch.setattr("petledger.store.query.connections", {"reporting": bracketed})

        q = (
            Query(using="reporting")
            .select(pets.id, users.name.as_("owner_name"))
            .from_(pets)
            .inner_join(users, eq(users.id, pets.owner_id))
            .where(is_not_null(pets.owner_id))
            .order_by(desc(pets.name))
        )
        assert q.sql == (
            "SELECT [petledger_pet].[id], [petledger_user].[name] AS [owner_name] "
            "FROM [petledger_pet] INNER JOIN [petledger_user] "
            "ON [petledger_user].[id] = [petledger_pet].[owner_id] "
            "WHERE [petledger_pet].[owner_id] IS NOT NULL ORDER BY [petledger_pet].[name] DESC"
        )
        assert '"' not in q.sql

    def test_values_requires_dict_or_list(self, query, users):
        with pytest.raises(ValueError):
            query.insert(users).values("name")


@pytest.mark.django_db
class TestExecution:
    def test_insert_then_select(self, query, users):
        query.insert(users).values([
            {"email": "a@example.com", "name": "A", "created_at": "2024-01-01 10:00:00"},
            {"email": "b@example.com", "name": "B", "created_at": "2024-01-02 10:00:00"},
        ])()

        rows = query.select(users.email, users.name).from_(users).order_by(users.email)()
        assert rows == [
            {"email": "a@example.com", "name": "A"},
            {"email": "b@example.com", "name": "B"},
        ]
        assert query.count().from_(users)() == 2

    def test_join(self, query, users, alice):
        Pet.objects.create(name="Tom", description="Grey", pet_type="cat", owner=alice)
        pets = Table(Pet)

        rows = (
            query.select(pets.name, users.name.as_("owner_name"))
            .from_(pets)
            .inner_join(users, eq(users.id, pets.owner_id))()
        )
        assert rows == [{"name": "Tom", "owner_name": "Alice"}]
