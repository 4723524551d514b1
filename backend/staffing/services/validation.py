from __future__ import annotations

import re
from typing import Any, Dict, Mapping, Type

from rest_framework import serializers

from staffing.domain.models import BookingStatus
from staffing.domain.results import ScheduleValidationError
from staffing.utils import _get_setting, default_day_end, default_day_start

ISO_DATE_FMT = "%Y-%m-%d"

_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_TIME_RE = re.compile(r"[0-9]{2}:[0-9]{2}(:[0-9]{2})?")

_ID_ERRORS = {"invalid": "Invalid ID format", "min_value": "Invalid ID format"}
_DATE_ERRORS = {"invalid": "Invalid date format (YYYY-MM-DD)", "datetime": "Invalid date format (YYYY-MM-DD)"}
_TIME_ERRORS = {"invalid": "Invalid time format (HH:MM or HH:MM:SS)"}

class IsoDateField(serializers.DateField):
    """DateField that only takes zero-padded YYYY-MM-DD strings."""

    def to_internal_value(self, value):
        if isinstance(value, str) and not _DATE_RE.fullmatch(value):
            self.fail("invalid", format="YYYY-MM-DD")
        return super().to_internal_value(value)

class ClockTimeField(serializers.TimeField):
    """TimeField that only takes zero-padded HH:MM or HH:MM:SS strings."""

    def to_internal_value(self, value):
        if isinstance(value, str) and not _TIME_RE.fullmatch(value):
            self.fail("invalid", format="HH:MM")
        return super().to_internal_value(value)

def _id_field(**kwargs) -> serializers.IntegerField:
    return serializers.IntegerField(min_value=1, error_messages=_ID_ERRORS, **kwargs)

def _date_field(**kwargs) -> IsoDateField:
    return IsoDateField(input_formats=[ISO_DATE_FMT], error_messages=_DATE_ERRORS, **kwargs)

def _time_field(**kwargs) -> ClockTimeField:
    return ClockTimeField(input_formats=["%H:%M", "%H:%M:%S"], error_messages=_TIME_ERRORS, **kwargs)

def _check_batch_size(items, noun: str) -> None:
    limit = int(_get_setting("MAX_DAYS_PER_BATCH", 366))
    if not items:
        raise serializers.ValidationError(f"At least one {noun} required")
    if len(items) > limit:
        raise serializers.ValidationError(f"Too many {noun}s (max {limit})")

# =========================
# Assignments
# =========================

class CreateAssignmentSerializer(serializers.Serializer):
    project_id = _id_field()
    user_id = _id_field()
    booking_status = serializers.ChoiceField(choices=BookingStatus.choices, default=BookingStatus.TENTATIVE)
    notes = serializers.CharField(
        max_length=1000, required=False, allow_blank=True, allow_null=True,
        error_messages={"max_length": "Notes too long"},
    )

class AssignmentRefSerializer(serializers.Serializer):
    assignment_id = _id_field()
    note = serializers.CharField(
        max_length=500, required=False, allow_blank=True, allow_null=True,
        error_messages={"max_length": "Note too long"},
    )

class UserRefSerializer(serializers.Serializer):
    user_id = _id_field(required=False, allow_null=True)

class UpdateStatusSerializer(serializers.Serializer):
    assignment_id = _id_field()
    new_status = serializers.ChoiceField(choices=BookingStatus.choices)
    note = serializers.CharField(
        max_length=500, required=False, allow_blank=True, allow_null=True,
        error_messages={"max_length": "Note too long"},
    )

class DayInputSerializer(serializers.Serializer):
    """One requested work day; missing times fall back to the configured defaults."""
    date = _date_field()
    start_time = _time_field(required=False)
    end_time = _time_field(required=False)

    def validate(self, attrs):
        attrs.setdefault("start_time", default_day_start())
        attrs.setdefault("end_time", default_day_end())
        if attrs["start_time"] >= attrs["end_time"]:
            raise serializers.ValidationError(
                f"Start time must be before end time ({attrs['date']:%Y-%m-%d})"
            )
        return attrs

class AddDaysSerializer(serializers.Serializer):
    assignment_id = _id_field()
    days = serializers.ListField(child=DayInputSerializer(), allow_empty=True)

    def validate_days(self, value):
        _check_batch_size(value, "day")
        seen = set()
        for d in value:
            if d["date"] in seen:
                raise serializers.ValidationError(f"Duplicate date in request: {d['date']:%Y-%m-%d}")
            seen.add(d["date"])
        return value

class UpdateDaySerializer(serializers.Serializer):
    day_id = _id_field()
    start_time = _time_field()
    end_time = _time_field()

    def validate(self, attrs):
        if attrs["start_time"] >= attrs["end_time"]:
            raise serializers.ValidationError("Start time must be before end time")
        return attrs

class RemoveDaysSerializer(serializers.Serializer):
    day_ids = serializers.ListField(child=_id_field(), allow_empty=True)

    def validate_day_ids(self, value):
        if not value:
            raise serializers.ValidationError("At least one day ID required")
        return value

# =========================
# Legacy excluded dates
# =========================

class AddExcludedDatesSerializer(serializers.Serializer):
    assignment_id = _id_field()
    dates = serializers.ListField(child=_date_field(), allow_empty=True)
    reason = serializers.CharField(
        max_length=500, required=False, allow_blank=True, allow_null=True,
        error_messages={"max_length": "Reason too long"},
    )

    def validate_dates(self, value):
        _check_batch_size(value, "date")
        return sorted(set(value))

class RemoveExcludedDatesSerializer(serializers.Serializer):
    excluded_date_ids = serializers.ListField(child=_id_field(), allow_empty=True)

    def validate_excluded_date_ids(self, value):
        if not value:
            raise serializers.ValidationError("At least one excluded date ID required")
        return value

# =========================
# Projects and conflicts
# =========================

class ProjectDatesSerializer(serializers.Serializer):
    project_id = _id_field()
    start_date = _date_field(allow_null=True)
    end_date = _date_field(allow_null=True)

    def validate(self, attrs):
        s, e = attrs.get("start_date"), attrs.get("end_date")
        if s and e and s > e:
            raise serializers.ValidationError("Start date must be before or equal to end date")
        return attrs

class CheckConflictsSerializer(serializers.Serializer):
    user_id = _id_field()
    start_date = _date_field()
    end_date = _date_field()
    exclude_assignment_id = _id_field(required=False, allow_null=True)

    def validate(self, attrs):
        if attrs["start_date"] > attrs["end_date"]:
            raise serializers.ValidationError("Start date must be before or equal to end date")
        return attrs

class OverrideConflictSerializer(serializers.Serializer):
    conflict_id = _id_field()
    reason = serializers.CharField(
        max_length=500,
        trim_whitespace=True,
        error_messages={
            "required": "A reason is required to override a conflict",
            "null": "A reason is required to override a conflict",
            "blank": "A reason is required to override a conflict",
            "max_length": "Reason too long",
        },
    )

# =========================
# Confirmation requests
# =========================

class CreateConfirmationSerializer(serializers.Serializer):
    project_id = _id_field()
    assignment_ids = serializers.ListField(child=_id_field(), allow_empty=True)
    send_to_email = serializers.EmailField(
        error_messages={
            "invalid": "Invalid email address",
            "required": "Invalid email address",
            "null": "Invalid email address",
            "blank": "Invalid email address",
        },
    )
    send_to_name = serializers.CharField(
        max_length=200, required=False, allow_blank=True, allow_null=True,
        error_messages={"max_length": "Name too long"},
    )

    def validate_assignment_ids(self, value):
        if not value:
            raise serializers.ValidationError("At least one assignment required")
        return sorted(set(value))

class ConfirmationResponseSerializer(serializers.Serializer):
    token = serializers.CharField(
        max_length=128,
        error_messages={"required": "Token required", "null": "Token required", "blank": "Token required"},
    )
    action = serializers.ChoiceField(
        choices=[("confirm", "Confirm"), ("decline", "Decline")],
        error_messages={"invalid_choice": "Action must be confirm or decline"},
    )
    decline_reason = serializers.CharField(
        max_length=1000, required=False, allow_blank=True, allow_null=True,
        error_messages={"max_length": "Reason too long"},
    )

class ConfirmationRefSerializer(serializers.Serializer):
    request_id = _id_field()

# =========================
# Helper
# =========================

def _first_error(detail: Any) -> str:
    if isinstance(detail, Mapping):
        for value in detail.values():
            msg = _first_error(value)
            if msg:
                return msg
        return ""
    if isinstance(detail, (list, tuple)):
        for item in detail:
            msg = _first_error(item)
            if msg:
                return msg
        return ""
    return str(detail)

def validate_input(serializer_class: Type[serializers.Serializer], data: Mapping[str, Any]) -> Dict[str, Any]:
    """Validates raw input and returns the cleaned values.

    Args:
        serializer_class (Type[Serializer]): The serializer describing the input.
        data (Mapping[str, Any]): Caller-supplied values.

    Raises:
        ScheduleValidationError: With the first error message found.

    Returns:
        Dict[str, Any]: ``validated_data`` of the serializer.
    """
    s = serializer_class(data=dict(data))
    if not s.is_valid():
        raise ScheduleValidationError(_first_error(s.errors) or "Validation failed")
    return dict(s.validated_data)
