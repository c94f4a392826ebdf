from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable
import logging

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from app.models.schedule_template import ApprovalStatus, ScheduleTemplate
from app.schemas.conflict import ConflictingTemplate, ConflictReport
from app.services.time_window import TimeWindow, overlaps

logger = logging.getLogger(__name__)


class ConflictScope(str, Enum):
    # Pending submissions block each other too, so approval never surprises anyone.
    non_rejected = "non_rejected"
    active = "active"


@dataclass(frozen=True)
class ConflictCandidate:
    teacher_id: str
    window: TimeWindow
    room: str | None = None


def template_window(template: ScheduleTemplate) -> TimeWindow:
    return TimeWindow.from_strings(template.day_of_week, template.start_time, template.end_time)


def _describe(template: ScheduleTemplate, kind: str) -> ConflictingTemplate:
    if kind == "teacher":
        description = (
            f"Teacher {template.teacher_id} already teaches on {template.day_of_week.value} "
            f"{template.start_time}-{template.end_time}"
        )
    else:
        description = (
            f"Room {template.room} is already booked on {template.day_of_week.value} "
            f"{template.start_time}-{template.end_time}"
        )
    return ConflictingTemplate(
        template_id=template.id,
        day_of_week=template.day_of_week,
        start_time=template.start_time,
        end_time=template.end_time,
        teacher_id=template.teacher_id,
        room=template.room,
        course_id=template.course_id,
        approval_status=template.approval_status,
        description=description,
    )


def detect_conflicts(
    candidate: ConflictCandidate,
    templates: Iterable[ScheduleTemplate],
    *,
    exclude_template_id: str | None = None,
) -> ConflictReport:
    """Classify overlapping templates into teacher and room conflicts.

    The caller decides which templates are in scope; this only looks at the
    day, the time window, the teacher and the room. A template that shares both
    the teacher and the room shows up in both lists.
    """
    report = ConflictReport()
    for template in templates:
        if exclude_template_id is not None and template.id == exclude_template_id:
            continue
        same_teacher = template.teacher_id == candidate.teacher_id
        same_room = bool(candidate.room) and template.room == candidate.room
        if not (same_teacher or same_room):
            continue
        if not overlaps(candidate.window, template_window(template)):
            continue
        if same_teacher:
            report.teacher_conflicts.append(_describe(template, "teacher"))
        if same_room:
            report.room_conflicts.append(_describe(template, "room"))
    return report


class ConflictDetector:
    def __init__(self, db: Session, *, scope: ConflictScope = ConflictScope.non_rejected) -> None:
        self.db = db
        self.scope = ConflictScope(scope)

    def _candidates_query(self, candidate: ConflictCandidate, scope: ConflictScope):
        resource_match = ScheduleTemplate.teacher_id == candidate.teacher_id
        if candidate.room:
            resource_match = or_(resource_match, ScheduleTemplate.room == candidate.room)
        query = select(ScheduleTemplate).where(
            ScheduleTemplate.day_of_week == candidate.window.day,
            resource_match,
        )
        if scope == ConflictScope.active:
            return query.where(ScheduleTemplate.is_active.is_(True))
        return query.where(
            ScheduleTemplate.approval_status != ApprovalStatus.rejected,
            ScheduleTemplate.deactivated_at.is_(None),
        )

    def find_conflicts(
        self,
        candidate: ConflictCandidate,
        exclude_template_id: str | None = None,
        *,
        scope: ConflictScope | None = None,
    ) -> ConflictReport:
        effective_scope = self.scope if scope is None else ConflictScope(scope)
        query = self._candidates_query(candidate, effective_scope).order_by(ScheduleTemplate.start_time)
        templates = self.db.execute(query).scalars()
        report = detect_conflicts(candidate, templates, exclude_template_id=exclude_template_id)
        if report.has_conflict:
            logger.info(
                "Conflict check for teacher=%s room=%s %s %s-%s found %d teacher / %d room conflict(s)",
                candidate.teacher_id,
                candidate.room,
                candidate.window.day.value,
                candidate.window.start_time,
                candidate.window.end_time,
                len(report.teacher_conflicts),
                len(report.room_conflicts),
            )
        return report
