"""
Pet ownership for Django: who owns which pet, who may change it, and how the
stored ownership data moves from one schema generation to the next.

Model-backed modules (``ownership``, ``authorization``, ``services``,
``sequencer``) need the app registry and are imported from their modules.
"""

from .exceptions import (
    PetLedgerError,
    InvalidColumnError,
    FieldError,
    ValidationError,
    AuthorizationError,
    NotFoundError,
    OwnershipError,
    MigrationError,
    MigrationStateError,
    MigrationVerificationError,
)

__all__ = [
    "PetLedgerError",
    "InvalidColumnError",
    "FieldError",
    "ValidationError",
    "AuthorizationError",
    "NotFoundError",
    "OwnershipError",
    "MigrationError",
    "MigrationStateError",
    "MigrationVerificationError",
]
