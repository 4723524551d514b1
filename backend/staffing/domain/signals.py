from __future__ import annotations

from django.db.models.signals import post_delete, post_save, pre_save
from django.dispatch import receiver

from .models import Assignment, BookingConflict, ConfirmationRequest, Project
from staffing.services.audit import DEFAULT_EXCLUDE, audit, snapshot_instance

# Mutating repository calls set ``instance._actor`` before saving; it becomes
# the audit author. Bulk day writes bypass signals and are audited by the
# lifecycle operations themselves.

def _capture_before(model, instance, exclude=DEFAULT_EXCLUDE) -> None:
    if not instance.pk:
        instance._before_snapshot = None
        return
    old = model.objects.filter(pk=instance.pk).first()
    instance._before_snapshot = snapshot_instance(old, exclude=exclude) if old else None

def _audit_saved(instance, created: bool, exclude=DEFAULT_EXCLUDE) -> None:
    audit(
        "create" if created else "update",
        instance,
        before=getattr(instance, "_before_snapshot", None),
        after=snapshot_instance(instance, exclude=exclude),
        author=getattr(instance, "_actor", None),
    )

def _audit_deleted(instance, exclude=DEFAULT_EXCLUDE) -> None:
    audit(
        "delete",
        instance,
        before=snapshot_instance(instance, exclude=exclude),
        after=None,
        author=getattr(instance, "_actor", None),
    )

# ========= Assignment =========

@receiver(pre_save, sender=Assignment)
def _assignment_pre_save(sender, instance: Assignment, **kwargs) -> None:
    _capture_before(Assignment, instance)

@receiver(post_save, sender=Assignment)
def _assignment_post_save(sender, instance: Assignment, created: bool, **kwargs) -> None:
    _audit_saved(instance, created)

@receiver(post_delete, sender=Assignment)
def _assignment_post_delete(sender, instance: Assignment, **kwargs) -> None:
    _audit_deleted(instance)

# ========= Project =========

@receiver(pre_save, sender=Project)
def _project_pre_save(sender, instance: Project, **kwargs) -> None:
    _capture_before(Project, instance)

@receiver(post_save, sender=Project)
def _project_post_save(sender, instance: Project, created: bool, **kwargs) -> None:
    _audit_saved(instance, created)

@receiver(post_delete, sender=Project)
def _project_post_delete(sender, instance: Project, **kwargs) -> None:
    _audit_deleted(instance)

# ========= BookingConflict (overrides) =========

@receiver(pre_save, sender=BookingConflict)
def _conflict_pre_save(sender, instance: BookingConflict, **kwargs) -> None:
    _capture_before(BookingConflict, instance)

@receiver(post_save, sender=BookingConflict)
def _conflict_post_save(sender, instance: BookingConflict, created: bool, **kwargs) -> None:
    # Detected conflicts are bulk-inserted; only overrides reach this path.
    if not created:
        _audit_saved(instance, created)

# ========= ConfirmationRequest =========

# Linked assignments are audited through their own status changes.
_CONFIRMATION_EXCLUDE = DEFAULT_EXCLUDE | {"assignments"}

@receiver(pre_save, sender=ConfirmationRequest)
def _confirmation_pre_save(sender, instance: ConfirmationRequest, **kwargs) -> None:
    _capture_before(ConfirmationRequest, instance, _CONFIRMATION_EXCLUDE)

@receiver(post_save, sender=ConfirmationRequest)
def _confirmation_post_save(sender, instance: ConfirmationRequest, created: bool, **kwargs) -> None:
    _audit_saved(instance, created, _CONFIRMATION_EXCLUDE)

@receiver(post_delete, sender=ConfirmationRequest)
def _confirmation_post_delete(sender, instance: ConfirmationRequest, **kwargs) -> None:
    _audit_deleted(instance, _CONFIRMATION_EXCLUDE)
