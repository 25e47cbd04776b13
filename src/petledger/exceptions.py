from dataclasses import dataclass


class PetLedgerError(Exception):
    """Base exception for petledger errors."""

    pass


class InvalidColumnError(PetLedgerError):
    """Raised when a non-existent column is referenced."""

    pass


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def __str__(self):
        return f"{self.field}: {self.message}"


class ValidationError(PetLedgerError):
    """Raised when submitted pet fields break a validation rule."""

    def __init__(self, errors: list[FieldError]):
        self.errors = list(errors)
        super().__init__(", ".join(str(e) for e in self.errors))


class AuthorizationError(PetLedgerError):
    """Raised when a user may not perform an action on a pet."""

    def __init__(self, user_id, pet_id, action: str = "modify"):
        self.user_id = user_id
        self.pet_id = pet_id
        self.action = action
        super().__init__(f"user {user_id} may not {action} pet {pet_id}")


class NotFoundError(PetLedgerError):
    """Raised when a referenced pet or user does not exist."""

    def __init__(self, field: str, value):
        self.field = field
        self.value = value
        super().__init__(f"no record for {field}={value!r}")


class OwnershipError(PetLedgerError):
    """Raised when a change would leave a pet without a valid owner set."""

    pass


class MigrationError(PetLedgerError):
    """Base exception for ownership schema migrations."""

    pass


class MigrationStateError(MigrationError):
    """Raised when a migration step is requested out of order."""

    pass


class MigrationVerificationError(MigrationError):
    """Raised when copied records do not match their source."""

    def __init__(self, transition: str, discrepancies: list[str]):
        self.transition = transition
        self.discrepancies = list(discrepancies)
        shown = "; ".join(self.discrepancies[:5])
        more = len(self.discrepancies) - 5
        if more > 0:
            shown += f"; and {more} more"
        super().__init__(f"{transition} failed verification: {shown}")
