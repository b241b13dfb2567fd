"""
Soft delete (archiving) for reference data.

Ingredients, menu items and expense categories are archived rather than
deleted so historical expenses, sales and mapping rules keep pointing at real
rows. Archived rows drop out of ``objects``; ``all_objects`` still sees them.
"""
from django.db import models
from django.utils import timezone


class SoftDeleteQuerySet(models.QuerySet):

    def active(self):
        return self.filter(is_active=True)

    def archived(self):
        return self.filter(is_active=False)


class SoftDeleteManager(models.Manager):
    """Manager that hides archived records."""

    def get_queryset(self):
        return SoftDeleteQuerySet(self.model, using=self._db).active()


class SoftDeleteMixin(models.Model):
    """
    Abstract base for archivable reference data.

    Subclasses get:
    - is_active / archived_at / archived_by columns
    - archive(), guarded by the can_archive() hook
    - delete() that archives, and force_delete() for a real delete
    """

    is_active = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Inactive records are archived and hidden from pickers."
    )
    archived_at = models.DateTimeField(null=True, blank=True)
    archived_by = models.CharField(max_length=150, blank=True, default="")

    objects = SoftDeleteManager()
    all_objects = models.Manager()

    class Meta:
        abstract = True

    def can_archive(self):
        """
        Hook for subclasses to refuse archiving.

        Should raise ``core_backend.exceptions.ConflictError`` when the record
        is still referenced by something that must not dangle.
        """
        return None

    def archive(self, archived_by=""):
        self.can_archive()
        self.is_active = False
        self.archived_at = timezone.now()
        self.archived_by = archived_by or ""
        self.save(update_fields=['is_active', 'archived_at', 'archived_by'])

    @property
    def is_archived(self):
        return not self.is_active

    def delete(self, using=None, keep_parents=False):
        """Archive instead of deleting. Use force_delete() for a hard delete."""
        self.archive()

    def force_delete(self, using=None, keep_parents=False):
        self.can_archive()
        return super().delete(using=using, keep_parents=keep_parents)
