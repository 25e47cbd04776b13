import logging

from asgiref.sync import sync_to_async

from . import ownership
from .exceptions import AuthorizationError

logger = logging.getLogger(__name__)


def can_modify(user, pet) -> bool:
    """True iff ``user`` is one of the stored owners of ``pet``."""
    return ownership.is_owner(pet, user)


def authorize(user, pet, action: str = "modify") -> None:
    """
    Raises:
        AuthorizationError: If ``user`` may not modify ``pet``.
    """
    if not can_modify(user, pet):
        user_id = getattr(user, "pk", None)
        logger.warning("Denied %s of pet %s to user %s", action, pet.pk, user_id)
        raise AuthorizationError(user_id, pet.pk, action)


acan_modify = sync_to_async(can_modify)
