"""
Who owns a pet.

Ownership is stored differently in each generation, so every generation has
a backend exposing the same methods. ``backend_for`` picks the one matching
the stored generation; the module-level functions are what the rest of the
app calls.
"""

import logging

from asgiref.sync import sync_to_async
from django.db import DEFAULT_DB_ALIAS, transaction

from .conf import settings
from .exceptions import MigrationStateError, OwnershipError
from .models import Cat, Generation, MigrationRun, Ownership, Pet, User
from .store import Query, Table, and_, asc, eq

logger = logging.getLogger(__name__)


class SingleOwnerBackend:
    """Ownership held in an ``owner`` foreign key on the record itself."""

    generation: Generation
    model: type

    def pet_types(self) -> tuple[str, ...]:
        return settings.pet_types

    def owners(self, pet) -> set[User]:
        return {pet.owner} if pet.owner_id is not None else set()

    def primary_owner(self, pet) -> User:
        if pet.owner_id is None:
            raise OwnershipError(f"pet {pet.pk} has no owner")
        return pet.owner

    def is_owner(self, pet, user) -> bool:
        return pet.owner_id == user.pk

    def create(self, user, data: dict):
        return self.model.objects.create(owner=user, **self._record_fields(data))

    def _record_fields(self, data: dict) -> dict:
        return {
            "name": data["name"],
            "description": data["description"],
            "pet_type": data["type"],
        }

    def _unshared(self, *args):
        raise OwnershipError(
            f"pets have a single owner until the {Generation.TYPED_PET_MULTI_OWNER} cutover"
        )

    add_owner = remove_owner = set_primary_owner = _unshared

    def listing(self, db: Query, user) -> list[dict]:
        return self._listing_query(db, user)()

    def _listing_query(self, db: Query, user) -> Query:
        pets = Table(self.model)
        owners = Table(User)
        return (
            db.select(
                pets.id,
                pets.name,
                pets.description,
                *self._type_columns(pets),
                owners.id.as_("primary_owner_id"),
                owners.name.as_("primary_owner_name"),
            )
            .from_(pets)
            .inner_join(owners, eq(owners.id, pets.owner_id))
            .where(eq(pets.owner_id, user.pk))
            .order_by(asc(pets.name), asc(pets.id))
        )

    def _type_columns(self, pets: Table) -> list:
        return [pets.pet_type]


class CatBackend(SingleOwnerBackend):
    generation = Generation.SINGLE_OWNER_CAT
    model = Cat

    def pet_types(self) -> tuple[str, ...]:
        return (settings.MIGRATED_CAT_TYPE,)

    def _record_fields(self, data: dict) -> dict:
        return {"name": data["name"], "description": data["description"]}

    def _type_columns(self, pets: Table) -> list:
        return []

    def listing(self, db: Query, user) -> list[dict]:
        rows = super().listing(db, user)
        for row in rows:
            row["pet_type"] = settings.MIGRATED_CAT_TYPE
        return rows


class SinglePetBackend(SingleOwnerBackend):
    generation = Generation.TYPED_PET_SINGLE_OWNER
    model = Pet


class SharedPetBackend:
    """Ownership held in ``Ownership`` rows; ``Pet.owner`` is no longer used."""

    generation = Generation.TYPED_PET_MULTI_OWNER
    model = Pet

    def pet_types(self) -> tuple[str, ...]:
        return settings.pet_types

    def owners(self, pet) -> set[User]:
        return set(User.objects.filter(ownerships__pet=pet))

    def primary_owner(self, pet) -> User:
        try:
            return User.objects.get(ownerships__pet=pet, ownerships__is_primary=True)
        except User.DoesNotExist:
            raise OwnershipError(f"pet {pet.pk} has no primary owner") from None

    def is_owner(self, pet, user) -> bool:
        return Ownership.objects.filter(pet=pet, user=user).exists()

    @transaction.atomic
    def create(self, user, data: dict) -> Pet:
        pet = Pet.objects.create(
            name=data["name"],
            description=data["description"],
            pet_type=data["type"],
        )
        Ownership.objects.create(pet=pet, user=user, is_primary=True, added_at=pet.created_at)
        return pet

    def add_owner(self, pet, user) -> bool:
        """Add ``user`` as a secondary owner. Returns False if already an owner."""
        _, created = Ownership.objects.get_or_create(
            pet=pet, user=user, defaults={"is_primary": False}
        )
        if created:
            logger.info("Added user %s as owner of pet %s", user.pk, pet.pk)
        return created

    @transaction.atomic
    def remove_owner(self, pet, user) -> None:
        rows = list(Ownership.objects.select_for_update().filter(pet=pet))
        row = next((r for r in rows if r.user_id == user.pk), None)
        if row is None:
            raise OwnershipError(f"user {user.pk} does not own pet {pet.pk}")
        if len(rows) == 1:
            raise OwnershipError(f"user {user.pk} is the last owner of pet {pet.pk}")
        if row.is_primary:
            raise OwnershipError(
                f"user {user.pk} is the primary owner of pet {pet.pk}; transfer it first"
            )
        row.delete()
        logger.info("Removed user %s from owners of pet %s", user.pk, pet.pk)

    @transaction.atomic
    def set_primary_owner(self, pet, user) -> None:
        rows = list(Ownership.objects.select_for_update().filter(pet=pet))
        row = next((r for r in rows if r.user_id == user.pk), None)
        if row is None:
            raise OwnershipError(f"user {user.pk} does not own pet {pet.pk}")
        if row.is_primary:
            return
        # Clear the old flag first; the one-primary constraint is checked per statement.
        Ownership.objects.filter(pet=pet, is_primary=True).update(is_primary=False)
        row.is_primary = True
        row.save(update_fields=["is_primary"])
        logger.info("User %s is now primary owner of pet %s", user.pk, pet.pk)

    def listing(self, db: Query, user) -> list[dict]:
        pets = Table(Pet)
        mine = Table(Ownership, alias="mine")
        primary = Table(Ownership, alias="primary_row")
        owners = Table(User, alias="primary_owner")
        return (
            db.select(
                pets.id,
                pets.name,
                pets.description,
                pets.pet_type,
                owners.id.as_("primary_owner_id"),
                owners.name.as_("primary_owner_name"),
            )
            .from_(pets)
            .inner_join(mine, eq(mine.pet_id, pets.id))
            .inner_join(primary, and_(eq(primary.pet_id, pets.id), eq(primary.is_primary, True)))
            .inner_join(owners, eq(owners.id, primary.user_id))
            .where(eq(mine.user_id, user.pk))
            .order_by(asc(pets.name), asc(pets.id))
        )()


BACKENDS = {
    backend.generation: backend
    for backend in (CatBackend(), SinglePetBackend(), SharedPetBackend())
}


def current_generation() -> Generation:
    return MigrationRun.objects.current_generation()


def backend_for(pet=None):
    """
    The backend for the stored generation.

    Raises:
        MigrationStateError: If ``pet`` is a record of a shape that is not current.
    """
    backend = BACKENDS[current_generation()]
    if pet is not None and not isinstance(pet, backend.model):
        raise MigrationStateError(
            f"{type(pet).__name__} records are not in use in the {backend.generation} generation"
        )
    return backend


def is_owner(pet, user) -> bool:
    if user is None or user.pk is None:
        return False
    return backend_for(pet).is_owner(pet, user)


def owners(pet) -> set[User]:
    return backend_for(pet).owners(pet)


def primary_owner(pet) -> User:
    return backend_for(pet).primary_owner(pet)


def pets_for_user(user, using: str = DEFAULT_DB_ALIAS) -> list[dict]:
    """
    Every pet ``user`` owns with its primary owner's name, in one statement.

    Rows carry ``id``, ``name``, ``description``, ``pet_type``,
    ``primary_owner_id`` and ``primary_owner_name``, ordered by pet name.
    """
    return backend_for().listing(Query(using=using), user)


apets_for_user = sync_to_async(pets_for_user)
