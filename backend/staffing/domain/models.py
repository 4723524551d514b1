from __future__ import annotations

from django.contrib.auth.models import User
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from staffing.utils import (
    default_confirmation_expiry,
    default_day_end,
    default_day_start,
    new_confirmation_token,
)

# =========================
# Canonical choices
# =========================

class BookingStatus(models.TextChoices):
    TENTATIVE = "tentative", "Tentative"
    PENDING_CONFIRMATION = "pending_confirmation", "Pending Confirmation"
    CONFIRMED = "confirmed", "Confirmed"

# tentative -> pending_confirmation -> confirmed -> tentative
STATUS_CYCLE = {
    BookingStatus.TENTATIVE: BookingStatus.PENDING_CONFIRMATION,
    BookingStatus.PENDING_CONFIRMATION: BookingStatus.CONFIRMED,
    BookingStatus.CONFIRMED: BookingStatus.TENTATIVE,
}

# Display order: confirmed first, then pending, then tentative
STATUS_ORDER = [
    BookingStatus.CONFIRMED,
    BookingStatus.PENDING_CONFIRMATION,
    BookingStatus.TENTATIVE,
]

class ConfirmationStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    DECLINED = "declined", "Declined"
    EXPIRED = "expired", "Expired"

# =========================
# Models
# =========================

class Project(models.Model):
    """A project whose date span bounds the work that may be scheduled on it."""
    name = models.CharField(max_length=200, db_index=True)
    start_date = models.DateField(blank=True, null=True, db_index=True)
    end_date = models.DateField(blank=True, null=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Project"
        verbose_name_plural = "Projects"
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                condition=Q(start_date__isnull=True) | Q(end_date__isnull=True) | Q(end_date__gte=F("start_date")),
                name="chk_project_dates",
            ),
        ]

    def __str__(self):
        return self.name

class Assignment(models.Model):
    """Binds one person to one project with a booking status."""
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="assignments")
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="assignments")
    booking_status = models.CharField(
        max_length=24, choices=BookingStatus.choices, default=BookingStatus.TENTATIVE, db_index=True
    )
    notes = models.TextField(blank=True, null=True)
    uses_day_model = models.BooleanField(
        default=True,
        help_text="False for legacy assignments scheduled as project span minus excluded dates.",
    )
    created_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Assignment"
        verbose_name_plural = "Assignments"
        constraints = [
            models.UniqueConstraint(fields=("project", "user"), name="uniq_assignment_project_user"),
        ]
        indexes = [
            models.Index(fields=["user", "booking_status"], name="assignment_user_status_idx"),
            models.Index(fields=["project", "booking_status"], name="assignment_project_status_idx"),
        ]
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"{self.project} -> {self.user} ({self.booking_status})"

    @property
    def next_status(self) -> str:
        return STATUS_CYCLE[BookingStatus(self.booking_status)]

class AssignmentDay(models.Model):
    """One calendar day of scheduled work under an assignment."""
    assignment = models.ForeignKey(Assignment, on_delete=models.CASCADE, related_name="days")
    work_date = models.DateField(db_index=True)
    start_time = models.TimeField(default=default_day_start)
    end_time = models.TimeField(default=default_day_end)
    created_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Assignment day"
        verbose_name_plural = "Assignment days"
        ordering = ["work_date"]
        constraints = [
            models.UniqueConstraint(fields=("assignment", "work_date"), name="uniq_assignment_day_date"),
            models.CheckConstraint(condition=Q(end_time__gt=F("start_time")), name="chk_day_time_order"),
        ]
        indexes = [
            models.Index(fields=["work_date", "assignment"], name="assignment_day_date_idx"),
        ]

    def __str__(self):
        return f"{self.assignment_id} {self.work_date} {self.start_time:%H:%M}-{self.end_time:%H:%M}"

class AssignmentExcludedDate(models.Model):
    """Legacy overlay: a date inside the project span that is NOT worked."""
    assignment = models.ForeignKey(Assignment, on_delete=models.CASCADE, related_name="excluded_dates")
    excluded_date = models.DateField(db_index=True)
    reason = models.CharField(max_length=500, blank=True, null=True)
    created_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Excluded date"
        verbose_name_plural = "Excluded dates"
        ordering = ["excluded_date"]
        constraints = [
            models.UniqueConstraint(
                fields=("assignment", "excluded_date"), name="uniq_excluded_date_assignment"
            ),
        ]

    def __str__(self):
        return f"{self.assignment_id} -{self.excluded_date}"

class BookingConflict(models.Model):
    """Two assignments of the same user claiming the same work date.

    Assignment references carry no database constraint: resolved conflicts
    are kept as history after either assignment is removed.
    """
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="booking_conflicts")
    assignment = models.ForeignKey(
        Assignment, on_delete=models.DO_NOTHING, db_constraint=False, related_name="+"
    )
    conflicting_assignment = models.ForeignKey(
        Assignment, on_delete=models.DO_NOTHING, db_constraint=False, related_name="+"
    )
    conflict_date = models.DateField(db_index=True)
    override_reason = models.CharField(max_length=500, blank=True, null=True)
    overridden_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    overridden_at = models.DateTimeField(blank=True, null=True)
    is_resolved = models.BooleanField(default=False, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Booking conflict"
        verbose_name_plural = "Booking conflicts"
        ordering = ["conflict_date", "id"]
        indexes = [
            models.Index(fields=["user", "is_resolved"], name="conflict_user_resolved_idx"),
        ]

    def __str__(self):
        state = "resolved" if self.is_resolved else "open"
        return f"{self.user} {self.conflict_date} #{self.assignment_id}/#{self.conflicting_assignment_id} ({state})"

class BookingStatusHistory(models.Model):
    """Append-only trail of booking status transitions; outlives its assignment."""
    assignment = models.ForeignKey(
        Assignment, on_delete=models.DO_NOTHING, db_constraint=False, related_name="+"
    )
    old_status = models.CharField(max_length=24, choices=BookingStatus.choices, blank=True, null=True)
    new_status = models.CharField(max_length=24, choices=BookingStatus.choices)
    changed_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    note = models.CharField(max_length=500, blank=True, null=True)
    changed_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = "Booking status change"
        verbose_name_plural = "Booking status history"
        ordering = ["changed_at", "id"]
        indexes = [
            models.Index(fields=["assignment", "changed_at"], name="history_assignment_idx"),
        ]

    def __str__(self):
        return f"#{self.assignment_id}: {self.old_status or '-'} -> {self.new_status}"

class ConfirmationRequest(models.Model):
    """A tokenised request asking the customer to confirm a set of bookings."""
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="confirmation_requests")
    token = models.CharField(max_length=64, unique=True, default=new_confirmation_token, editable=False)
    sent_to_email = models.EmailField()
    sent_to_name = models.CharField(max_length=200, blank=True, null=True)
    sent_at = models.DateTimeField(auto_now_add=True)
    expires_at = models.DateTimeField(default=default_confirmation_expiry, db_index=True)
    status = models.CharField(
        max_length=16, choices=ConfirmationStatus.choices, default=ConfirmationStatus.PENDING, db_index=True
    )
    responded_at = models.DateTimeField(blank=True, null=True)
    decline_reason = models.TextField(blank=True, null=True)
    assignments = models.ManyToManyField(
        Assignment, through="ConfirmationRequestAssignment", related_name="confirmation_requests"
    )
    created_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Confirmation request"
        verbose_name_plural = "Confirmation requests"
        ordering = ["expires_at", "id"]

    def __str__(self):
        return f"{self.project} -> {self.sent_to_email} ({self.status})"

    @property
    def is_expired(self) -> bool:
        return self.expires_at < timezone.now()

class ConfirmationRequestAssignment(models.Model):
    confirmation_request = models.ForeignKey(ConfirmationRequest, on_delete=models.CASCADE, related_name="links")
    assignment = models.ForeignKey(Assignment, on_delete=models.CASCADE, related_name="+")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Confirmation request assignment"
        verbose_name_plural = "Confirmation request assignments"
        constraints = [
            models.UniqueConstraint(
                fields=("confirmation_request", "assignment"), name="uniq_confirmation_assignment"
            ),
        ]

    def __str__(self):
        return f"{self.confirmation_request_id} #{self.assignment_id}"

class AuditLog(models.Model):
    """Records create, update and delete actions on other models."""
    action = models.CharField(max_length=50, db_index=True)
    table = models.CharField(max_length=50, db_index=True)
    record_id = models.CharField(max_length=50)
    before = models.JSONField(blank=True, null=True)
    after = models.JSONField(blank=True, null=True)
    author = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = "Audit entry"
        verbose_name_plural = "Audit log"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["table", "created_at"], name="audit_table_created_idx"),
            models.Index(fields=["action", "created_at"], name="audit_action_created_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.created_at:%Y-%m-%d %H:%M:%S} | {self.table}:{self.record_id} | {self.action}"
