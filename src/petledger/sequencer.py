"""
Moves stored ownership data forward one generation at a time.

    single-owner-cat -> typed-pet-single-owner -> typed-pet-multi-owner

Each transition has two phases:

1. ``copy``: copy records into the new shape. Idempotent, so an interrupted
   copy is finished by running it again.
2. ``cutover``: verify the copy against its source and, only if nothing is
   missing or different, make the new generation current. The old shape is
   then deprecated: kept in the database, no longer read or written.

There is no way back from a cutover; undoing one takes a new transition.
"""

import logging
from dataclasses import dataclass
from typing import Callable

from django.db import DEFAULT_DB_ALIAS, transaction
from django.utils import timezone

from . import transforms
from .conf import settings
from .exceptions import MigrationStateError, MigrationVerificationError
from .models import Cat, Generation, MigrationRun, Ownership, Pet
from .store import Query, Table

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transition:
    source: Generation
    target: Generation
    copy: Callable[[Query, int], int]
    verify: Callable[[Query, int], list[str]]
    deprecates: str
    copied_models: tuple = ()

    @property
    def name(self) -> str:
        return f"{self.source} -> {self.target}"


TRANSITIONS = (
    Transition(
        source=Generation.SINGLE_OWNER_CAT,
        target=Generation.TYPED_PET_SINGLE_OWNER,
        copy=lambda db, batch_size: transforms.copy_cats_to_pets(
            db, Table(Cat), Table(Pet), settings.MIGRATED_CAT_TYPE, batch_size
        ),
        verify=lambda db, batch_size: transforms.verify_cats_copied(
            db, Table(Cat), Table(Pet), batch_size
        ),
        deprecates="cat table",
        copied_models=(Pet,),
    ),
    Transition(
        source=Generation.TYPED_PET_SINGLE_OWNER,
        target=Generation.TYPED_PET_MULTI_OWNER,
        copy=lambda db, batch_size: transforms.copy_owners_to_ownerships(
            db, Table(Pet), Table(Ownership), batch_size
        ),
        verify=lambda db, batch_size: transforms.verify_ownerships_copied(
            db, Table(Pet), Table(Ownership), batch_size
        ),
        deprecates="pet owner_id column",
    ),
)


class MigrationSequencer:
    def __init__(self, using: str = DEFAULT_DB_ALIAS, batch_size: int | None = None):
        self.using = using
        self.batch_size = batch_size or settings.MIGRATION_BATCH_SIZE

    def current_state(self) -> Generation:
        return MigrationRun.objects.using(self.using).current_generation()

    def next_transition(self) -> Transition | None:
        current = self.current_state()
        return next((t for t in TRANSITIONS if t.source == current), None)

    def _transition(self, target: Generation | str | None) -> Transition:
        transition = self.next_transition()
        if transition is None:
            raise MigrationStateError(f"already at {self.current_state()}, nothing to migrate")
        if target is not None and Generation(target) != transition.target:
            raise MigrationStateError(
                f"cannot migrate to {Generation(target)}; the next generation is {transition.target}"
            )
        return transition

    def _run_for(self, transition: Transition) -> MigrationRun:
        run, _ = MigrationRun.objects.using(self.using).get_or_create(
            target=transition.target, defaults={"source": transition.source}
        )
        return run

    def copy(self, target: Generation | str | None = None) -> int:
        """
        Phase 1: copy records into the next generation's shape.

        Returns:
            Number of rows this call wrote; 0 when re-run on an up to date copy.
        """
        transition = self._transition(target)
        run = self._run_for(transition)
        logger.info("Copying %s", transition.name)

        db = Query(using=self.using)
        copied = transition.copy(db, self.batch_size)
        if copied:
            transforms.reset_sequences(self.using, *transition.copied_models)

        run.copied_at = timezone.now()
        run.copied_rows += copied
        run.save(using=self.using)
        logger.info("Wrote %d rows for %s", copied, transition.name)
        return copied

    def verify(self, target: Generation | str | None = None) -> list[str]:
        """Compare the copy with its source. An empty list means consistent."""
        transition = self._transition(target)
        problems = transition.verify(Query(using=self.using), self.batch_size)
        run = self._run_for(transition)
        if problems:
            run.last_error = "\n".join(problems)
        else:
            run.verified_at = timezone.now()
            run.last_error = ""
        run.save(using=self.using)
        return problems

    def cutover(self, target: Generation | str | None = None) -> Generation:
        """
        Phase 2: verify the copy and make the next generation current.

        Raises:
            MigrationStateError: If the copy has not run yet.
            MigrationVerificationError: If the copy does not match its source.
        """
        transition = self._transition(target)
        run = self._run_for(transition)
        if run.copied_at is None:
            raise MigrationStateError(f"{transition.name}: run copy before cutover")

        with transaction.atomic(using=self.using):
            problems = transition.verify(Query(using=self.using), self.batch_size)
            if not problems:
                now = timezone.now()
                run.verified_at = now
                run.cutover_at = now
                run.last_error = ""
                run.save(using=self.using)

        if problems:
            run.last_error = "\n".join(problems)
            run.save(using=self.using, update_fields=["last_error"])
            error = MigrationVerificationError(transition.name, problems)
            logger.error("%s", error)
            raise error

        logger.info(
            "Cut over to %s; %s is deprecated", transition.target, transition.deprecates
        )
        return transition.target

    def advance(self) -> Generation:
        """Copy and cut over the next transition."""
        transition = self._transition(None)
        self.copy(transition.target)
        return self.cutover(transition.target)

    def migrate_to(self, target: Generation | str) -> Generation:
        target = Generation(target)
        current = self.current_state()
        if target.position < current.position:
            raise MigrationStateError(f"cannot go back from {current} to {target}")
        while current != target:
            current = self.advance()
        return current

    def status(self) -> list[dict]:
        runs = {str(run.target): run for run in MigrationRun.objects.using(self.using)}
        current = self.current_state()
        report = []
        for transition in TRANSITIONS:
            run = runs.get(transition.target.value)
            report.append(
                {
                    "transition": transition.name,
                    "status": run.status if run else "pending",
                    "copied_rows": run.copied_rows if run else 0,
                    "copied_at": run.copied_at if run else None,
                    "verified_at": run.verified_at if run else None,
                    "cutover_at": run.cutover_at if run else None,
                    "last_error": run.last_error if run else "",
                    "deprecates": transition.deprecates,
                    "next": transition.source == current,
                }
            )
        return report
