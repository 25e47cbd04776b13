"""
Entry point for the web request layer.

The request layer authenticates the user and calls

    PetService().handle(current_user_id, action, form_fields)

which answers with an ``ActionResult``. Every mutation checks authorization
first, then validation, and writes in one transaction, so a refused request
leaves the database untouched.
"""

import logging
from dataclasses import dataclass, field

from django.db import transaction

from . import ownership
from .authorization import authorize
from .exceptions import (
    AuthorizationError,
    FieldError,
    NotFoundError,
    OwnershipError,
    ValidationError,
)
from .forms import validate_pet
from .models import User

logger = logging.getLogger(__name__)


INVALID_ACTION = "invalid_action"
VALIDATION = "validation"
AUTHORIZATION = "authorization"
NOT_FOUND = "not_found"
OWNERSHIP = "ownership"


@dataclass
class ActionResult:
    """
    Outcome of a request. On failure ``error`` names the kind of failure so
    the request layer can answer 403 for ``authorization``, 404 for
    ``not_found`` and 400/422 for the others; ``errors`` carries the
    per-field messages to show.
    """

    success: bool
    errors: list[FieldError] = field(default_factory=list)
    pet_id: int | None = None
    error: str | None = None

    @classmethod
    def failed(cls, error: str, field_name: str, message: str, pet_id=None) -> "ActionResult":
        return cls(
            success=False, errors=[FieldError(field_name, message)], pet_id=pet_id, error=error
        )


class PetService:
    ACTIONS = ("create", "update", "delete", "add_owner", "remove_owner", "set_primary_owner")

    def handle(self, current_user_id, action: str, form_fields: dict | None = None) -> ActionResult:
        """
        Run ``action`` for the authenticated user.

        ``form_fields`` carries the submitted values; ``pet_id`` names the pet
        for every action but ``create`` and ``user_id`` names the other user
        for the ownership actions.
        """
        form_fields = dict(form_fields or {})
        if action not in self.ACTIONS:
            return ActionResult.failed(INVALID_ACTION, "action", f"unknown action {action!r}")

        pet_id = form_fields.pop("pet_id", None)
        try:
            user = self._user(current_user_id)
            if action == "create":
                pet = self.create_pet(user, form_fields)
            elif action == "update":
                pet = self.update_pet(user, self._pet(pet_id), form_fields)
            elif action == "delete":
                pet = self._pet(pet_id)
                pet_id = pet.pk
                self.delete_pet(user, pet)
                return ActionResult(success=True, pet_id=pet_id)
            else:
                pet = self._pet(pet_id)
                other = self._user(form_fields.get("user_id"))
                getattr(self, action)(user, pet, other)
        except ValidationError as e:
            return ActionResult(success=False, errors=e.errors, pet_id=pet_id, error=VALIDATION)
        except AuthorizationError:
            return ActionResult.failed(AUTHORIZATION, "pet", "not allowed", pet_id=pet_id)
        except NotFoundError as e:
            return ActionResult.failed(NOT_FOUND, e.field, "not found", pet_id=pet_id)
        except OwnershipError as e:
            return ActionResult.failed(OWNERSHIP, "owners", str(e), pet_id=pet_id)
        return ActionResult(success=True, pet_id=pet.pk)

    def _user(self, user_id) -> User:
        try:
            return User.objects.get(pk=user_id)
        except (User.DoesNotExist, ValueError, TypeError):
            raise NotFoundError("user_id", user_id) from None

    def _pet(self, pet_id):
        model = ownership.backend_for().model
        try:
            return model.objects.get(pk=pet_id)
        except (model.DoesNotExist, ValueError, TypeError):
            raise NotFoundError("pet_id", pet_id) from None

    def create_pet(self, user, fields: dict):
        backend = ownership.backend_for()
        data = validate_pet(fields, pet_types=backend.pet_types())
        with transaction.atomic():
            pet = backend.create(user, data)
        logger.info("User %s created pet %s", user.pk, pet.pk)
        return pet

    def update_pet(self, user, pet, fields: dict):
        backend = ownership.backend_for(pet)
        authorize(user, pet, "update")
        data = validate_pet(fields, pet_types=backend.pet_types())
        with transaction.atomic():
            pet.name = data["name"]
            pet.description = data["description"]
            update_fields = ["name", "description"]
            if hasattr(pet, "pet_type"):
                pet.pet_type = data["type"]
                update_fields += ["pet_type", "updated_at"]
            pet.save(update_fields=update_fields)
        logger.info("User %s updated pet %s", user.pk, pet.pk)
        return pet

    def delete_pet(self, user, pet) -> None:
        authorize(user, pet, "delete")
        pet_id = pet.pk
        with transaction.atomic():
            pet.delete()
        logger.info("User %s deleted pet %s", user.pk, pet_id)

    def add_owner(self, user, pet, new_owner) -> bool:
        backend = ownership.backend_for(pet)
        authorize(user, pet, "share")
        with transaction.atomic():
            return backend.add_owner(pet, new_owner)

    def remove_owner(self, user, pet, owner) -> None:
        backend = ownership.backend_for(pet)
        authorize(user, pet, "unshare")
        with transaction.atomic():
            backend.remove_owner(pet, owner)

    def set_primary_owner(self, user, pet, owner) -> None:
        backend = ownership.backend_for(pet)
        authorize(user, pet, "transfer")
        with transaction.atomic():
            backend.set_primary_owner(pet, owner)
