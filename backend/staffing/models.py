from staffing.domain.models import (  # noqa: F401
    STATUS_CYCLE,
    STATUS_ORDER,
    Assignment,
    AssignmentDay,
    AssignmentExcludedDate,
    AuditLog,
    BookingConflict,
    BookingStatus,
    BookingStatusHistory,
    ConfirmationRequest,
    ConfirmationRequestAssignment,
    ConfirmationStatus,
    Project,
)
