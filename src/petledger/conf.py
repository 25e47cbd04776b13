"""
Settings for petledger, read from the ``PETLEDGER`` dict in Django settings.

Example:
    PETLEDGER = {
        "EXTRA_PET_TYPES": ("ferret",),
        "MIGRATION_BATCH_SIZE": 1000,
    }
"""

from django.conf import settings as django_settings

DEFAULTS = {
    "PET_TYPES": ("cat", "dog", "bird", "rabbit", "fish", "reptile", "other"),
    "EXTRA_PET_TYPES": (),
    "MIGRATED_CAT_TYPE": "cat",
    "MIGRATION_BATCH_SIZE": 500,
}


class PetLedgerSettings:
    def __getattr__(self, name):
        if name not in DEFAULTS:
            raise AttributeError(f"Invalid petledger setting: '{name}'")
        user_settings = getattr(django_settings, "PETLEDGER", {})
        return user_settings.get(name, DEFAULTS[name])

    @property
    def pet_types(self) -> tuple[str, ...]:
        """Recognized pet-type tags, base set first then extras, without duplicates."""
        seen = {}
        for tag in (*self.PET_TYPES, *self.EXTRA_PET_TYPES):
            seen.setdefault(tag.strip().lower(), None)
        return tuple(seen)


settings = PetLedgerSettings()
