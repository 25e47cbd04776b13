from django.apps import AppConfig


class PetLedgerConfig(AppConfig):
    name = "petledger"
    label = "petledger"
    verbose_name = "Pet ledger"
    default_auto_field = "django.db.models.BigAutoField"
