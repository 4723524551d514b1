from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Dict, List, Optional, Tuple

from django.contrib.auth.models import User

from staffing.domain.models import BookingStatus, ConfirmationRequest, ConfirmationStatus
from staffing.domain.repositories import (
    AssignmentRepository,
    ConfirmationRepository,
    ProjectRepository,
    StatusHistoryRepository,
)
from staffing.domain.results import (
    ActionResult,
    ScheduleNotFoundError,
    ScheduleValidationError,
    scheduling_action,
)
from staffing.services.validation import (
    ConfirmationRefSerializer,
    ConfirmationResponseSerializer,
    CreateConfirmationSerializer,
    validate_input,
)

log = logging.getLogger(__name__)

LINK_EXPIRED = "This confirmation link has expired"
ALREADY_RESPONDED = "This request has already been responded to"

# =========================
# View types
# =========================

@dataclass
class ConfirmationScheduleItem:
    """One shift shown to the customer, with everyone working it."""
    date: date
    start_time: time
    end_time: time
    engineers: List[str] = field(default_factory=list)

@dataclass
class ConfirmationPage:
    project_name: str
    customer_name: str
    dates: List[ConfirmationScheduleItem]
    is_expired: bool
    is_responded: bool
    previous_response: Optional[str] = None

@dataclass(frozen=True)
class PendingConfirmation:
    id: int
    project_id: int
    project_name: str
    sent_to_email: str
    sent_to_name: Optional[str]
    sent_at: datetime
    expires_at: datetime
    is_expired: bool
    assignment_count: int

# =========================
# Operations
# =========================

@scheduling_action
def create_confirmation_request(
    project_id: int,
    assignment_ids: List[int],
    send_to_email: str,
    send_to_name: Optional[str] = None,
    actor: Optional[User] = None,
) -> ConfirmationRequest:
    """Asks the customer to confirm a set of tentative bookings.

    Every linked assignment moves to pending confirmation with one history
    row. Delivering the link is left to the caller.

    Args:
        project_id (int): The project the bookings belong to.
        assignment_ids (List[int]): Assignments to confirm; all must be tentative.
        send_to_email (str): Customer address.
        send_to_name (Optional[str], optional): Customer display name.
        actor (Optional[User], optional): Who sends the request.

    Returns:
        ConfirmationRequest: The pending request, carrying its token.
    """
    data = validate_input(CreateConfirmationSerializer, {
        "project_id": project_id,
        "assignment_ids": assignment_ids,
        "send_to_email": send_to_email,
        "send_to_name": send_to_name,
    })
    project = ProjectRepository.get(data["project_id"])
    if project is None:
        raise ScheduleNotFoundError("Project not found")

    assignments = AssignmentRepository.get_many_for_update(data["assignment_ids"])
    if not assignments:
        raise ScheduleNotFoundError("No assignments found")
    if len(assignments) != len(data["assignment_ids"]):
        raise ScheduleNotFoundError("Assignment not found")
    if any(a.project_id != project.id for a in assignments):
        raise ScheduleValidationError("Assignments must belong to this project")
    if any(a.booking_status != BookingStatus.TENTATIVE for a in assignments):
        raise ScheduleValidationError(
            "All assignments must be in tentative status to send for confirmation"
        )

    req = ConfirmationRepository.insert(
        project, assignments, data["send_to_email"], data.get("send_to_name") or None, actor
    )
    note = f"Sent confirmation request to {req.sent_to_email}"
    for a in assignments:
        AssignmentRepository.update_status(a, BookingStatus.PENDING_CONFIRMATION, actor)
        StatusHistoryRepository.append(
            a.id, BookingStatus.TENTATIVE, BookingStatus.PENDING_CONFIRMATION, actor, note
        )
    log.info(
        "Confirmation request %s for project %s sent to %s (%d assignment(s))",
        req.id, project.id, req.sent_to_email, len(assignments),
    )
    return req

@scheduling_action
def expire_confirmation_requests() -> int:
    """Marks every pending request past its expiry as expired."""
    expired = ConfirmationRepository.expire_overdue()
    if expired:
        log.info("Expired %d confirmation request(s)", expired)
    return expired

@scheduling_action
def _apply_response(token: str, action: str, decline_reason: Optional[str]) -> ConfirmationRequest:
    data = validate_input(ConfirmationResponseSerializer, {
        "token": token,
        "action": action,
        "decline_reason": decline_reason,
    })
    req = ConfirmationRepository.get_by_token(data["token"], for_update=True)
    if req is None:
        raise ScheduleNotFoundError("Invalid or expired link")
    if req.status == ConfirmationStatus.EXPIRED or (req.status == ConfirmationStatus.PENDING and req.is_expired):
        raise ScheduleValidationError(LINK_EXPIRED)
    if req.status != ConfirmationStatus.PENDING:
        raise ScheduleValidationError(ALREADY_RESPONDED)

    reason = data.get("decline_reason") or None
    if data["action"] == "confirm":
        ConfirmationRepository.set_response(req, ConfirmationStatus.CONFIRMED)
        new_status, note = BookingStatus.CONFIRMED, "Customer confirmed via portal"
    else:
        ConfirmationRepository.set_response(req, ConfirmationStatus.DECLINED, reason)
        new_status, note = BookingStatus.TENTATIVE, f"Customer declined: {reason or 'No reason provided'}"

    for a in ConfirmationRepository.linked_assignments(req):
        old = a.booking_status
        AssignmentRepository.update_status(a, new_status)
        StatusHistoryRepository.append(a.id, old, new_status, None, note)
    log.info("Confirmation request %s %s by customer", req.id, req.status)
    return req

def respond_to_confirmation(token: str, action: str, decline_reason: Optional[str] = None) -> ActionResult:
    """Applies the customer's answer to a confirmation request.

    ``confirm`` confirms every linked booking; ``decline`` returns them to
    tentative with the reason in their history. Overdue requests are marked
    expired first, so a late answer is rejected and the expiry is kept.

    Args:
        token (str): The request token from the confirmation link.
        action (str): ``"confirm"`` or ``"decline"``.
        decline_reason (Optional[str], optional): Customer's reason when declining.

    Returns:
        ActionResult: The answered request on success.
    """
    swept = expire_confirmation_requests()
    if not swept.success:
        return swept
    return _apply_response(token, action, decline_reason)

@scheduling_action
def cancel_confirmation_request(request_id: int, actor: Optional[User] = None) -> int:
    """Withdraws a pending request; its bookings go back to tentative."""
    data = validate_input(ConfirmationRefSerializer, {"request_id": request_id})
    req = ConfirmationRepository.get_for_update(data["request_id"])
    if req is None:
        raise ScheduleNotFoundError("Confirmation request not found")
    if req.status != ConfirmationStatus.PENDING:
        raise ScheduleValidationError("Cannot cancel - request already responded to")

    for a in ConfirmationRepository.linked_assignments(req):
        old = a.booking_status
        AssignmentRepository.update_status(a, BookingStatus.TENTATIVE, actor)
        StatusHistoryRepository.append(a.id, old, BookingStatus.TENTATIVE, actor, "Confirmation request cancelled")
    ConfirmationRepository.delete(req, actor)
    log.info("Confirmation request %s cancelled", data["request_id"])
    return data["request_id"]

@scheduling_action
def get_pending_confirmations() -> List[PendingConfirmation]:
    return [
        PendingConfirmation(
            id=r.id,
            project_id=r.project_id,
            project_name=r.project.name,
            sent_to_email=r.sent_to_email,
            sent_to_name=r.sent_to_name,
            sent_at=r.sent_at,
            expires_at=r.expires_at,
            is_expired=r.is_expired,
            assignment_count=r.assignment_count,
        )
        for r in ConfirmationRepository.pending()
    ]

@scheduling_action
def get_confirmation_page(token: str) -> ConfirmationPage:
    """What the customer sees behind a confirmation link: shifts grouped by date and hours."""
    if not token:
        raise ScheduleValidationError("Token required")
    req = ConfirmationRepository.get_by_token(token)
    if req is None:
        raise ScheduleNotFoundError("Invalid confirmation link")

    by_shift: Dict[Tuple[date, time, time], ConfirmationScheduleItem] = {}
    for d in ConfirmationRepository.schedule_for(req):
        key = (d.work_date, d.start_time, d.end_time)
        item = by_shift.setdefault(key, ConfirmationScheduleItem(*key))
        user = d.assignment.user
        name = user.get_full_name() or user.username
        if name not in item.engineers:
            item.engineers.append(name)

    responded = req.status != ConfirmationStatus.PENDING
    return ConfirmationPage(
        project_name=req.project.name,
        customer_name=req.sent_to_name or "Customer",
        dates=sorted(by_shift.values(), key=lambda i: (i.date, i.start_time, i.end_time)),
        is_expired=req.is_expired,
        is_responded=responded,
        previous_response=req.status if responded and req.status != ConfirmationStatus.EXPIRED else None,
    )
