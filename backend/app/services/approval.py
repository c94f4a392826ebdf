from __future__ import annotations

from datetime import datetime, timezone
import logging

from app.core.exceptions import StateError, ValidationError
from app.models.schedule_template import ApprovalStatus, ScheduleTemplate
from app.schemas.schedule import NOTES_MAX_LENGTH

logger = logging.getLogger(__name__)

ELIGIBLE_STATUSES = frozenset({ApprovalStatus.approved, ApprovalStatus.auto_approved})

# Rejected templates are resubmitted as new pending templates, never reopened.
TRANSITIONS: dict[ApprovalStatus, frozenset[ApprovalStatus]] = {
    ApprovalStatus.pending: frozenset({ApprovalStatus.approved, ApprovalStatus.rejected}),
    ApprovalStatus.approved: frozenset(),
    ApprovalStatus.auto_approved: frozenset(),
    ApprovalStatus.rejected: frozenset(),
}


def is_eligible(status: ApprovalStatus | None) -> bool:
    return status in ELIGIBLE_STATUSES


def initial_state(requires_approval: bool) -> tuple[ApprovalStatus, bool]:
    """Approval status and `is_active` flag for a freshly submitted template."""
    if requires_approval:
        return ApprovalStatus.pending, False
    return ApprovalStatus.auto_approved, True


def can_transition(current: ApprovalStatus, target: ApprovalStatus) -> bool:
    return target in TRANSITIONS[current]


def _ensure_transition(template: ScheduleTemplate, target: ApprovalStatus) -> None:
    if not can_transition(template.approval_status, target):
        raise StateError(
            f"Schedule template is already {template.approval_status.value}",
            details={
                "template_id": template.id,
                "approval_status": template.approval_status.value,
                "requested": target.value,
            },
        )


def _clean_notes(notes: str | None) -> str | None:
    if notes is None:
        return None
    trimmed = notes.strip()
    if len(trimmed) > NOTES_MAX_LENGTH:
        raise ValidationError(
            f"Approval notes must not exceed {NOTES_MAX_LENGTH} characters",
            details={"length": len(trimmed)},
        )
    return trimmed or None


def approve(template: ScheduleTemplate, *, approved_by: str, notes: str | None = None) -> ScheduleTemplate:
    _ensure_transition(template, ApprovalStatus.approved)
    cleaned = _clean_notes(notes)
    template.approval_status = ApprovalStatus.approved
    template.is_active = True
    template.approved_by_id = approved_by
    template.approval_date = datetime.now(timezone.utc)
    template.approval_notes = cleaned
    logger.info("Schedule template %s approved by %s", template.id, approved_by)
    return template


def reject(template: ScheduleTemplate, *, approved_by: str, notes: str | None) -> ScheduleTemplate:
    cleaned = _clean_notes(notes)
    if cleaned is None:
        raise ValidationError("Approval notes are required when rejecting a schedule template")
    _ensure_transition(template, ApprovalStatus.rejected)
    template.approval_status = ApprovalStatus.rejected
    template.is_active = False
    template.approved_by_id = approved_by
    template.approval_date = datetime.now(timezone.utc)
    template.approval_notes = cleaned
    logger.info("Schedule template %s rejected by %s", template.id, approved_by)
    return template
