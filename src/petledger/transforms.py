"""
Data copies between ownership generations, and their verification.

These functions take ``store.Table`` objects instead of importing models, so
the same code runs from the sequencer (live models) and from a ``RunPython``
migration (historical models):

    def forwards(apps, schema_editor):
        db = Query(using=schema_editor.connection.alias)
        copy_cats_to_pets(db, Table(apps.get_model("petledger", "Cat")),
                          Table(apps.get_model("petledger", "Pet")), "cat")

Copies preserve primary keys and creation timestamps and leave rows that
already match alone, so they can be re-run after an interruption or after
the source changed.
"""

import logging
from typing import Iterator

from django.core.management.color import no_style
from django.db import connections, transaction
from django.utils import timezone

from .store import Query, Table, asc, eq, gt, in_array, is_not_null

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 500


def _batches(db: Query, table: Table, columns: list, *conditions, batch_size: int) -> Iterator[list[dict]]:
    """Rows of ``table`` in primary key order, ``batch_size`` at a time."""
    pk = table.pk
    last = None
    while True:
        query = db.select(*columns).from_(table)
        if conditions:
            query = query.where(*conditions)
        if last is not None:
            query = query.where(gt(pk, last))
        rows = query.order_by(asc(pk)).limit(batch_size)()
        if not rows:
            return
        yield rows
        last = rows[-1][pk.column_name]


def reset_sequences(using: str, *models) -> None:
    """Move id sequences past explicitly inserted primary keys."""
    connection = connections[using]
    statements = connection.ops.sequence_reset_sql(no_style(), list(models))
    if statements:
        with connection.cursor() as cursor:
            for sql in statements:
                cursor.execute(sql)


CAT_FIELDS = ("name", "description", "owner_id", "created_at")


def _stale_fields(cat: dict, pet: dict) -> list[str]:
    return [name for name in CAT_FIELDS if pet[name] != cat[name]]


def _pets_without_cat(db: Query, cats: Table, pets: Table, batch_size: int) -> Iterator[list]:
    """Ids of pet rows whose cat no longer exists, a batch at a time."""
    for batch in _batches(db, pets, [pets.id], batch_size=batch_size):
        ids = [row["id"] for row in batch]
        alive = {row["id"] for row in db.select(cats.id).from_(cats).where(in_array(cats.id, ids))()}
        orphans = [pet_id for pet_id in ids if pet_id not in alive]
        if orphans:
            yield orphans


def _copies_of(db: Query, pets: Table, ids: list) -> dict:
    rows = (
        db.select(pets.id, pets.name, pets.description, pets.owner_id, pets.created_at)
        .from_(pets)
        .where(in_array(pets.id, ids))()
    )
    return {row["id"]: row for row in rows}


def copy_cats_to_pets(db: Query, cats: Table, pets: Table, pet_type: str,
                      batch_size: int = DEFAULT_BATCH_SIZE) -> int:
    """
    Bring the pet table in line with the cat table.

    Cats without a pet row are inserted under the same id, tagged
    ``pet_type``. Pet rows that differ from their cat are updated, and pet
    rows whose cat was deleted are removed. While cats are current every
    pet row is a copy, so a re-run also picks up edits made after the last
    copy.

    Returns:
        Number of pet rows inserted, updated or deleted by this call.
    """
    changed = 0
    columns = [cats.id, *(getattr(cats, name) for name in CAT_FIELDS)]
    for batch in _batches(db, cats, columns, batch_size=batch_size):
        ids = [row["id"] for row in batch]
        copies = _copies_of(db, pets, ids)
        now = timezone.now()
        missing = []
        stale = []
        for cat in batch:
            pet = copies.get(cat["id"])
            if pet is None:
                missing.append({
                    "id": cat["id"],
                    "name": cat["name"],
                    "description": cat["description"],
                    "pet_type": pet_type,
                    "owner_id": cat["owner_id"],
                    "created_at": cat["created_at"],
                    "updated_at": now,
                })
            elif _stale_fields(cat, pet):
                stale.append(cat)
        if not missing and not stale:
            continue

        with transaction.atomic(using=db.using):
            if missing:
                db.insert(pets).values(missing)()
            for cat in stale:
                values = {name: cat[name] for name in _stale_fields(cat, copies[cat["id"]])}
                values["updated_at"] = now
                db.update(pets).set(values).where(eq(pets.id, cat["id"]))()
        changed += len(missing) + len(stale)
        logger.debug(
            "Copied %d and refreshed %d cats up to id %s", len(missing), len(stale), ids[-1]
        )

    for orphans in _pets_without_cat(db, cats, pets, batch_size):
        with transaction.atomic(using=db.using):
            db.delete(pets).where(in_array(pets.id, orphans))()
        changed += len(orphans)
        logger.info("Removed pets %s whose cats were deleted", ", ".join(map(str, orphans)))
    return changed


def verify_cats_copied(db: Query, cats: Table, pets: Table,
                       batch_size: int = DEFAULT_BATCH_SIZE) -> list[str]:
    """
    Pet rows must match cat rows one to one: same id, fields, owner and
    creation time, and no pet row without a cat.
    """
    problems = []
    columns = [cats.id, *(getattr(cats, name) for name in CAT_FIELDS)]
    for batch in _batches(db, cats, columns, batch_size=batch_size):
        copies = _copies_of(db, pets, [row["id"] for row in batch])
        for cat in batch:
            pet = copies.get(cat["id"])
            if pet is None:
                problems.append(f"cat {cat['id']} has no pet row")
                continue
            for name in _stale_fields(cat, pet):
                problems.append(
                    f"pet {cat['id']} {name} is {pet[name]!r}, cat has {cat[name]!r}"
                )
    for orphans in _pets_without_cat(db, cats, pets, batch_size):
        problems.extend(f"pet {pet_id} has no cat row" for pet_id in orphans)
    return problems


def copy_owners_to_ownerships(db: Query, pets: Table, ownerships: Table,
                              batch_size: int = DEFAULT_BATCH_SIZE) -> int:
    """
    Give every pet with an ``owner_id`` a primary ownership row for that user.

    Pets that already have ownership rows are left alone.

    Returns:
        Number of ownership rows inserted by this call.
    """
    copied = 0
    columns = [pets.id, pets.owner_id, pets.created_at]
    for batch in _batches(db, pets, columns, is_not_null(pets.owner_id), batch_size=batch_size):
        ids = [row["id"] for row in batch]
        present = {
            row["pet_id"]
            for row in db.select(ownerships.pet_id).from_(ownerships)
            .where(in_array(ownerships.pet_id, ids))()
        }
        rows = [
            {
                "pet_id": row["id"],
                "user_id": row["owner_id"],
                "is_primary": True,
                "added_at": row["created_at"],
            }
            for row in batch
            if row["id"] not in present
        ]
        if rows:
            with transaction.atomic(using=db.using):
                db.insert(ownerships).values(rows)()
            copied += len(rows)
            logger.debug("Copied owners of %d pets up to id %s", len(rows), ids[-1])
    return copied


def verify_ownerships_copied(db: Query, pets: Table, ownerships: Table,
                             batch_size: int = DEFAULT_BATCH_SIZE) -> list[str]:
    """
    Every pet must have at least one owner and exactly one primary owner, and
    a pet's ``owner_id`` must be that primary owner.
    """
    problems = []
    columns = [pets.id, pets.owner_id]
    for batch in _batches(db, pets, columns, batch_size=batch_size):
        ids = [row["id"] for row in batch]
        rows_by_pet = {pet_id: [] for pet_id in ids}
        for row in (
            db.select(ownerships.pet_id, ownerships.user_id, ownerships.is_primary)
            .from_(ownerships)
            .where(in_array(ownerships.pet_id, ids))()
        ):
            rows_by_pet[row["pet_id"]].append(row)

        for pet in batch:
            rows = rows_by_pet[pet["id"]]
            if not rows:
                problems.append(f"pet {pet['id']} has no ownership rows")
                continue
            primaries = [row["user_id"] for row in rows if row["is_primary"]]
            if len(primaries) != 1:
                problems.append(f"pet {pet['id']} has {len(primaries)} primary owners")
            elif pet["owner_id"] is not None and primaries[0] != pet["owner_id"]:
                problems.append(
                    f"pet {pet['id']} primary owner is user {primaries[0]}, "
                    f"owner_id is {pet['owner_id']}"
                )
    return problems
