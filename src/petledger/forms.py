"""
Declarative validation of submitted pet fields.

    name:        required
    description: required
    type:        required, one of the recognized pet types

Values are trimmed before the required check. Fields the form does not
declare are dropped, so owners can never be set from submitted data.
"""

import logging

from django import forms

from .conf import settings
from .exceptions import FieldError, ValidationError

logger = logging.getLogger(__name__)

REQUIRED = "required"
UNKNOWN_TYPE = "not a recognized pet type"
SINGLE_TYPE = "exactly one pet type is allowed"


class PetTypeField(forms.ChoiceField):
    """A choice field that refuses several tags passed as a list."""

    def to_python(self, value):
        if isinstance(value, (list, tuple, set)):
            raise forms.ValidationError(SINGLE_TYPE, code="multiple")
        value = super().to_python(value)
        return value.strip().lower()


class PetForm(forms.Form):
    name = forms.CharField(max_length=100, error_messages={"required": REQUIRED})
    description = forms.CharField(error_messages={"required": REQUIRED})
    type = PetTypeField(
        choices=lambda: [(tag, tag) for tag in settings.pet_types],
        error_messages={"required": REQUIRED, "invalid_choice": UNKNOWN_TYPE},
    )

    def __init__(self, *args, pet_types=None, **kwargs):
        super().__init__(*args, **kwargs)
        if pet_types is not None:
            self.fields["type"].choices = [(tag, tag) for tag in pet_types]


def validate_pet(fields: dict, pet_types=None) -> dict:
    """
    Validate submitted pet fields.

    Args:
        fields: Raw submitted values, e.g. ``{"name": "Tom", "description": "Grey", "type": "cat"}``.
        pet_types: Tags accepted for ``type``; defaults to the configured set.

    Returns:
        The cleaned ``name``, ``description`` and ``type`` values.

    Raises:
        ValidationError: With one FieldError per failed rule.
    """
    ignored = sorted(set(fields) - set(PetForm.base_fields))
    if ignored:
        logger.debug("Ignoring undeclared pet fields: %s", ", ".join(ignored))

    form = PetForm(data=fields, pet_types=pet_types)
    if not form.is_valid():
        errors = [
            FieldError(field, message)
            for field, messages in form.errors.items()
            for message in messages
        ]
        raise ValidationError(errors)
    return form.cleaned_data
