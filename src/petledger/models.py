from django.db import models
from django.db.models import Q
from django.utils import timezone


class Generation(models.TextChoices):
    """Stored shapes of the ownership data, oldest first."""

    SINGLE_OWNER_CAT = "single-owner-cat", "Cats with one owner"
    TYPED_PET_SINGLE_OWNER = "typed-pet-single-owner", "Typed pets with one owner"
    TYPED_PET_MULTI_OWNER = "typed-pet-multi-owner", "Typed pets with shared owners"

    @property
    def position(self) -> int:
        return list(Generation).index(self)


class User(models.Model):
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=100, blank=True, default="")
    created_at = models.DateTimeField(default=timezone.now)

    def __str__(self):
        return self.name or self.email


class Cat(models.Model):
    """Single-owner cat records, the shape before pets were typed."""

    name = models.CharField(max_length=100)
    description = models.TextField()
    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name="cats")
    created_at = models.DateTimeField(default=timezone.now)

    def __str__(self):
        return self.name


class Pet(models.Model):
    name = models.CharField(max_length=100)
    description = models.TextField()
    pet_type = models.CharField(max_length=30, db_index=True)
    # Single-owner column. Not read or written once shared ownership is cut over.
    owner = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="owned_pets",
    )
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.pet_type})"


class Ownership(models.Model):
    pet = models.ForeignKey(Pet, on_delete=models.CASCADE, related_name="ownerships")
    user = models.ForeignKey(User, on_delete=models.PROTECT, related_name="ownerships")
    added_at = models.DateTimeField(default=timezone.now)
    is_primary = models.BooleanField(default=False)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["pet", "user"], name="petledger_ownership_unique_owner"),
            models.UniqueConstraint(
                fields=["pet"],
                condition=Q(is_primary=True),
                name="petledger_ownership_one_primary",
            ),
        ]

    def __str__(self):
        flag = " (primary)" if self.is_primary else ""
        return f"{self.user} owns {self.pet}{flag}"


class MigrationRunQuerySet(models.QuerySet):
    def current_generation(self) -> Generation:
        """The newest generation whose transition has been cut over."""
        reached = [
            Generation(target)
            for target in self.filter(cutover_at__isnull=False).values_list("target", flat=True)
        ]
        return max(reached, key=lambda g: g.position, default=Generation.SINGLE_OWNER_CAT)


class MigrationRun(models.Model):
    """Bookkeeping for one transition between two generations."""

    source = models.CharField(max_length=40, choices=Generation.choices)
    target = models.CharField(max_length=40, choices=Generation.choices, unique=True)
    copied_at = models.DateTimeField(null=True, blank=True)
    copied_rows = models.PositiveIntegerField(default=0)
    verified_at = models.DateTimeField(null=True, blank=True)
    cutover_at = models.DateTimeField(null=True, blank=True)
    last_error = models.TextField(blank=True, default="")

    objects = MigrationRunQuerySet.as_manager()

    def __str__(self):
        return f"{self.source} -> {self.target}"

    @property
    def status(self) -> str:
        if self.cutover_at:
            return "cut over"
        if self.last_error:
            return "verification failed"
        if self.copied_at:
            return "copied"
        return "pending"
