"""Tests for the request-layer entry point."""

import pytest

from petledger.exceptions import AuthorizationError, FieldError, ValidationError
from petledger.models import Cat, Ownership, Pet
from petledger.services import AUTHORIZATION, INVALID_ACTION, NOT_FOUND, OWNERSHIP, VALIDATION


@pytest.mark.django_db
class TestCreate:
    def test_create_cat_before_typed_pets(self, service, alice):
        result = service.handle(alice.pk, "create", {"name": "Tom", "description": "Grey", "type": "cat"})

        assert result.success
        cat = Cat.objects.get(pk=result.pet_id)
        assert cat.owner == alice

    def test_only_cats_before_typed_pets(self, service, alice):
        result = service.handle(alice.pk, "create", {"name": "Rex", "description": "Loud", "type": "dog"})

        assert not result.success
        assert result.error == VALIDATION
        assert result.errors == [FieldError("type", "not a recognized pet type")]

    def test_create_shared_pet(self, service, multi_owner, alice):
        result = service.handle(alice.pk, "create", {"name": "Rex", "description": "Loud", "type": "dog"})

        assert result.success
        row = Ownership.objects.get(pet_id=result.pet_id)
        assert (row.user_id, row.is_primary) == (alice.pk, True)

    def test_empty_description_persists_nothing(self, service, multi_owner, alice):
        result = service.handle(alice.pk, "create", {"name": "Whiskers", "description": "", "type": "cat"})

        assert result.success is False
        assert result.errors == [FieldError("description", "required")]
        assert Pet.objects.count() == 0
        assert Ownership.objects.count() == 0

    def test_owner_from_form_is_ignored(self, service, single_owner, alice, bob):
        result = service.handle(
            alice.pk, "create",
            {"name": "Rex", "description": "Loud", "type": "dog", "owner_id": bob.pk, "owner": bob.pk},
        )

        assert result.success
        assert Pet.objects.get(pk=result.pet_id).owner == alice

    def test_unknown_user(self, service):
        result = service.handle(12345, "create", {"name": "Rex", "description": "Loud", "type": "dog"})
        assert result.error == NOT_FOUND
        assert result.errors == [FieldError("user_id", "not found")]


@pytest.mark.django_db
class TestUpdate:
    @pytest.fixture
    def rex(self, single_owner, alice):
        return Pet.objects.create(name="Rex", description="Loud", pet_type="dog", owner=alice)

    def test_owner_updates(self, service, rex, alice):
        result = service.handle(
            alice.pk, "update", {"pet_id": rex.pk, "name": "Rex II", "description": "Quieter", "type": "dog"}
        )

        assert result.success
        rex.refresh_from_db()
        assert (rex.name, rex.description) == ("Rex II", "Quieter")

    def test_non_owner_is_refused_and_nothing_changes(self, service, rex, bob):
        with pytest.raises(AuthorizationError):
            service.update_pet(bob, rex, {"name": "Mine", "description": "Now", "type": "dog"})

        rex.refresh_from_db()
        assert rex.name == "Rex"

    def test_authorization_checked_before_validation(self, service, rex, bob):
        result = service.handle(bob.pk, "update", {"pet_id": rex.pk, "name": "", "description": "", "type": "x"})

        assert result.error == AUTHORIZATION
        assert result.errors == [FieldError("pet", "not allowed")]

    def test_validation_and_authorization_failures_differ(self, service, rex, alice, bob):
        invalid = service.handle(alice.pk, "update", {"pet_id": rex.pk, "name": "", "description": "x", "type": "dog"})
        denied = service.handle(bob.pk, "update", {"pet_id": rex.pk, "name": "A", "description": "B", "type": "dog"})

        assert (invalid.error, invalid.errors) == (VALIDATION, [FieldError("name", "required")])
        assert denied.error == AUTHORIZATION
        assert invalid.error != denied.error

    def test_invalid_update_keeps_pet(self, service, rex, alice):
        with pytest.raises(ValidationError):
            service.update_pet(alice, rex, {"name": "", "description": "Quieter", "type": "dog"})

        rex.refresh_from_db()
        assert rex.description == "Loud"

    def test_missing_pet(self, service, rex, alice):
        result = service.handle(alice.pk, "update", {"pet_id": 999, "name": "A", "description": "B", "type": "dog"})
        assert result.errors == [FieldError("pet_id", "not found")]


@pytest.mark.django_db
class TestDelete:
    def test_owner_deletes(self, service, single_owner, alice):
        rex = Pet.objects.create(name="Rex", description="Loud", pet_type="dog", owner=alice)

        result = service.handle(alice.pk, "delete", {"pet_id": rex.pk})

        assert result.success
        assert result.pet_id == rex.pk
        assert not Pet.objects.filter(pk=rex.pk).exists()

    def test_non_owner_cannot_delete(self, service, single_owner, alice, bob):
        rex = Pet.objects.create(name="Rex", description="Loud", pet_type="dog", owner=alice)

        result = service.handle(bob.pk, "delete", {"pet_id": rex.pk})

        assert not result.success
        assert Pet.objects.filter(pk=rex.pk).exists()


@pytest.mark.django_db
class TestSharing:
    @pytest.fixture
    def rex(self, service, multi_owner, alice):
        result = service.handle(alice.pk, "create", {"name": "Rex", "description": "Loud", "type": "dog"})
        return Pet.objects.get(pk=result.pet_id)

    def test_share_and_transfer(self, service, rex, alice, bob):
        assert service.handle(alice.pk, "add_owner", {"pet_id": rex.pk, "user_id": bob.pk}).success
        assert service.handle(bob.pk, "set_primary_owner", {"pet_id": rex.pk, "user_id": bob.pk}).success
        assert service.handle(bob.pk, "remove_owner", {"pet_id": rex.pk, "user_id": alice.pk}).success

        assert list(Ownership.objects.filter(pet=rex).values_list("user_id", "is_primary")) == [(bob.pk, True)]

    def test_stranger_cannot_add_themself(self, service, rex, bob):
        result = service.handle(bob.pk, "add_owner", {"pet_id": rex.pk, "user_id": bob.pk})

        assert result.errors == [FieldError("pet", "not allowed")]
        assert not Ownership.objects.filter(pet=rex, user=bob).exists()

    def test_last_owner_stays(self, service, rex, alice):
        result = service.handle(alice.pk, "remove_owner", {"pet_id": rex.pk, "user_id": alice.pk})

        assert not result.success
        assert result.error == OWNERSHIP
        assert result.errors[0].field == "owners"
        assert Ownership.objects.filter(pet=rex, user=alice).exists()

    def test_sharing_needs_shared_generation(self, service, single_owner, alice, bob):
        rex = Pet.objects.create(name="Rex", description="Loud", pet_type="dog", owner=alice)

        result = service.handle(alice.pk, "add_owner", {"pet_id": rex.pk, "user_id": bob.pk})

        assert not result.success
        assert result.errors[0].field == "owners"


@pytest.mark.django_db
def test_unknown_action(service, alice):
    result = service.handle(alice.pk, "adopt", {})
    assert result.error == INVALID_ACTION
    assert result.errors == [FieldError("action", "unknown action 'adopt'")]
