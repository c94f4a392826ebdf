from __future__ import annotations

from datetime import date, datetime, timezone
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.exceptions import ResourceNotFoundError, ScheduleConflictError, StateError, ValidationError
from app.models.course import Course, SessionGroup
from app.models.room import Room
from app.models.schedule_template import (
    DAY_ORDER,
    ApprovalStatus,
    DayOfWeek,
    RecurrenceType,
    ScheduleTemplate,
)
from app.models.user import User
from app.schemas.conflict import ConflictReport
from app.schemas.schedule import NOTES_MAX_LENGTH, ScheduleTemplateCreate, ScheduleTemplateUpdate
from app.services import approval
from app.services.conflicts import ConflictCandidate, ConflictDetector, ConflictScope
from app.services.events import ScheduleEvent, template_event
from app.services.time_window import TimeWindow

logger = logging.getLogger(__name__)

WINDOW_FIELDS = frozenset({"day_of_week", "start_time", "end_time", "room"})
NON_NULLABLE_FIELDS = frozenset(
    {"day_of_week", "start_time", "end_time", "recurrence_type", "effective_from", "exception_dates"}
)


def build_window(day_of_week: DayOfWeek | str, start_time: str, end_time: str) -> TimeWindow:
    try:
        return TimeWindow.from_strings(day_of_week, start_time, end_time)
    except ValueError as exc:
        raise ValidationError(str(exc), details={"start_time": start_time, "end_time": end_time}) from exc


def validate_effective_window(effective_from: date, effective_to: date | None) -> None:
    if effective_to is not None and effective_to <= effective_from:
        raise ValidationError(
            "effective_to must be after effective_from",
            details={"effective_from": effective_from.isoformat(), "effective_to": effective_to.isoformat()},
        )


def _conflict_message(report: ConflictReport) -> str:
    parts = []
    if report.teacher_conflicts:
        parts.append("Teacher has another class at this time")
    if report.room_conflicts:
        parts.append("Room is already booked at this time")
    return "; ".join(parts)


def raise_for_conflicts(report: ConflictReport) -> None:
    if not report.has_conflict:
        return
    raise ScheduleConflictError(
        _conflict_message(report),
        teacher_conflicts=[item.model_dump(mode="json") for item in report.teacher_conflicts],
        room_conflicts=[item.model_dump(mode="json") for item in report.room_conflicts],
    )


class ScheduleTemplateStore:
    """Owns schedule templates: validation, persistence and approval transitions.

    Methods flush but never commit; the request boundary owns the transaction.
    Lifecycle events collected in `events` are meant to be dispatched after commit.
    """

    def __init__(self, db: Session, settings: Settings | None = None) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.detector = ConflictDetector(db, scope=ConflictScope(self.settings.conflict_scan_scope))
        self.events: list[ScheduleEvent] = []

    # reads

    def get(self, template_id: str) -> ScheduleTemplate:
        template = self.db.get(ScheduleTemplate, template_id)
        if template is None:
            raise ResourceNotFoundError("Schedule template", template_id)
        return template

    def list_templates(
        self,
        *,
        course_id: str | None = None,
        teacher_id: str | None = None,
        day_of_week: DayOfWeek | None = None,
        room: str | None = None,
        is_active: bool | None = None,
        approval_status: ApprovalStatus | None = None,
        include_deactivated: bool = False,
    ) -> list[ScheduleTemplate]:
        query = select(ScheduleTemplate)
        if course_id:
            query = query.where(ScheduleTemplate.course_id == course_id)
        if teacher_id:
            query = query.where(ScheduleTemplate.teacher_id == teacher_id)
        if day_of_week is not None:
            query = query.where(ScheduleTemplate.day_of_week == day_of_week)
        if room:
            query = query.where(ScheduleTemplate.room == room)
        if is_active is not None:
            query = query.where(ScheduleTemplate.is_active.is_(is_active))
        if approval_status is not None:
            query = query.where(ScheduleTemplate.approval_status == approval_status)
        if not include_deactivated:
            query = query.where(ScheduleTemplate.deactivated_at.is_(None))
        templates = list(self.db.execute(query).scalars())
        return sorted(templates, key=lambda item: (DAY_ORDER.index(item.day_of_week), item.start_time))

    def list_for_teacher(self, teacher_id: str) -> list[ScheduleTemplate]:
        return self.list_templates(teacher_id=teacher_id, is_active=True)

    def list_for_course(self, course_id: str) -> list[ScheduleTemplate]:
        return self.list_templates(course_id=course_id, is_active=True)

    def list_for_day(self, day_of_week: DayOfWeek, room: str | None = None) -> list[ScheduleTemplate]:
        return self.list_templates(day_of_week=day_of_week, room=room, is_active=True)

    def weekly_timetable(
        self,
        *,
        teacher_id: str | None = None,
        course_id: str | None = None,
        room: str | None = None,
    ) -> dict[DayOfWeek, list[ScheduleTemplate]]:
        grouped: dict[DayOfWeek, list[ScheduleTemplate]] = {day: [] for day in DAY_ORDER}
        for template in self.list_templates(teacher_id=teacher_id, course_id=course_id, room=room, is_active=True):
            grouped[template.day_of_week].append(template)
        return grouped

    def pending_approvals(self) -> list[ScheduleTemplate]:
        query = (
            select(ScheduleTemplate)
            .where(
                ScheduleTemplate.approval_status == ApprovalStatus.pending,
                ScheduleTemplate.deactivated_at.is_(None),
            )
            .order_by(ScheduleTemplate.created_at, ScheduleTemplate.id)
        )
        return list(self.db.execute(query).scalars())

    def check_conflicts(
        self,
        *,
        teacher_id: str,
        day_of_week: DayOfWeek | str,
        start_time: str,
        end_time: str,
        room: str | None = None,
        exclude_id: str | None = None,
    ) -> ConflictReport:
        candidate = ConflictCandidate(
            teacher_id=teacher_id,
            window=build_window(day_of_week, start_time, end_time),
            room=room or None,
        )
        return self.detector.find_conflicts(candidate, exclude_template_id=exclude_id)

    # reference data

    def _ensure_references(
        self,
        *,
        course_id: str,
        teacher_id: str,
        session_group_id: str,
    ) -> None:
        course = self.db.get(Course, course_id)
        if course is None:
            raise ResourceNotFoundError("Course", course_id)
        teacher = self.db.get(User, teacher_id)
        if teacher is None:
            raise ResourceNotFoundError("Teacher", teacher_id)
        if not teacher.is_teacher:
            raise ValidationError("User is not a teacher", details={"teacher_id": teacher_id})
        if not teacher.is_active:
            raise ValidationError("Teacher account is inactive", details={"teacher_id": teacher_id})
        if course.teacher_id and course.teacher_id != teacher_id:
            raise ValidationError(
                "Teacher is not assigned to this course",
                details={"course_id": course_id, "teacher_id": teacher_id},
            )
        group = self.db.get(SessionGroup, session_group_id)
        if group is None:
            raise ResourceNotFoundError("Session group", session_group_id)
        if group.course_id != course_id:
            raise ValidationError(
                "Session group does not belong to this course",
                details={"course_id": course_id, "session_group_id": session_group_id},
            )

    def _resolve_room(self, room: str | None) -> Room | None:
        if not room:
            return None
        record = self.db.execute(select(Room).where(Room.name == room)).scalar_one_or_none()
        if record is None:
            raise ResourceNotFoundError("Room", room)
        return record

    # writes

    def create(self, payload: ScheduleTemplateCreate, *, created_by: str) -> ScheduleTemplate:
        window = build_window(payload.day_of_week, payload.start_time, payload.end_time)
        effective_from = payload.effective_from or date.today()
        validate_effective_window(effective_from, payload.effective_to)
        if payload.notes and len(payload.notes) > NOTES_MAX_LENGTH:
            raise ValidationError(f"notes must not exceed {NOTES_MAX_LENGTH} characters")

        self._ensure_references(
            course_id=payload.course_id,
            teacher_id=payload.teacher_id,
            session_group_id=payload.session_group_id,
        )
        room = self._resolve_room(payload.room)

        report = self.detector.find_conflicts(
            ConflictCandidate(teacher_id=payload.teacher_id, window=window, room=payload.room)
        )
        raise_for_conflicts(report)

        requires_approval = self.settings.schedule_requires_approval
        approval_status, is_active = approval.initial_state(requires_approval)
        template = ScheduleTemplate(
            course_id=payload.course_id,
            teacher_id=payload.teacher_id,
            session_group_id=payload.session_group_id,
            room=payload.room,
            building=payload.building or (room.building if room is not None else None),
            day_of_week=window.day,
            start_time=window.start_time,
            end_time=window.end_time,
            recurrence_type=payload.recurrence_type,
            effective_from=effective_from,
            effective_to=payload.effective_to,
            exception_dates=sorted({item.isoformat() for item in payload.exception_dates}),
            is_active=is_active,
            approval_status=approval_status,
            requires_approval=requires_approval,
            notes=payload.notes,
            created_by_id=created_by,
        )
        self.db.add(template)
        self.db.flush()
        logger.info(
            "Schedule template %s created for teacher %s on %s %s-%s (%s)",
            template.id,
            template.teacher_id,
            template.day_of_week.value,
            template.start_time,
            template.end_time,
            template.approval_status.value,
        )
        self.events.append(template_event("schedule.created", template, actor_id=created_by))
        return template

    def update(self, template_id: str, payload: ScheduleTemplateUpdate, *, updated_by: str) -> ScheduleTemplate:
        template = self.get(template_id)
        if template.is_deactivated:
            raise StateError("Deactivated schedule templates cannot be edited", details={"template_id": template_id})
        if template.approval_status == ApprovalStatus.rejected:
            raise StateError(
                "Rejected schedule templates cannot be edited; submit a new template instead",
                details={"template_id": template_id},
            )

        data = payload.model_dump(exclude_unset=True)
        if not data:
            raise ValidationError("At least one field must be provided for update")
        null_fields = sorted(key for key in NON_NULLABLE_FIELDS if key in data and data[key] is None)
        if null_fields:
            raise ValidationError("Fields cannot be cleared", details={"fields": null_fields})

        window = build_window(
            data.get("day_of_week", template.day_of_week),
            data.get("start_time", template.start_time),
            data.get("end_time", template.end_time),
        )
        effective_from = data.get("effective_from", template.effective_from)
        effective_to = data.get("effective_to", template.effective_to)
        validate_effective_window(effective_from, effective_to)

        new_room = data.get("room", template.room)
        if "room" in data:
            room = self._resolve_room(new_room)
            if room is not None and "building" not in data:
                data["building"] = room.building

        if WINDOW_FIELDS & data.keys():
            report = self.detector.find_conflicts(
                ConflictCandidate(teacher_id=template.teacher_id, window=window, room=new_room),
                exclude_template_id=template.id,
            )
            raise_for_conflicts(report)

        data["day_of_week"] = window.day
        data["start_time"] = window.start_time
        data["end_time"] = window.end_time
        if "exception_dates" in data:
            data["exception_dates"] = sorted({item.isoformat() for item in data["exception_dates"]})
        if "recurrence_type" in data:
            data["recurrence_type"] = RecurrenceType(data["recurrence_type"])

        changed = sorted(key for key, value in data.items() if getattr(template, key) != value)
        for key, value in data.items():
            setattr(template, key, value)
        self.db.flush()
        logger.info("Schedule template %s updated by %s: %s", template.id, updated_by, ", ".join(changed) or "-")
        self.events.append(template_event("schedule.updated", template, actor_id=updated_by, changed=changed))
        return template

    def deactivate(self, template_id: str, *, deactivated_by: str) -> ScheduleTemplate:
        template = self.get(template_id)
        if template.is_deactivated:
            raise StateError("Schedule template is already deactivated", details={"template_id": template_id})
        template.is_active = False
        template.deactivated_at = datetime.now(timezone.utc)
        self.db.flush()
        logger.info("Schedule template %s deactivated by %s", template.id, deactivated_by)
        self.events.append(template_event("schedule.deactivated", template, actor_id=deactivated_by))
        return template

    def approve(self, template_id: str, *, approved_by: str, notes: str | None = None) -> ScheduleTemplate:
        template = self.get(template_id)
        if template.is_deactivated:
            raise StateError("Deactivated schedule templates cannot be approved", details={"template_id": template_id})
        if template.approval_status == ApprovalStatus.pending:
            # Anything activated since submission must not be double-booked by this approval.
            report = self.detector.find_conflicts(
                ConflictCandidate(
                    teacher_id=template.teacher_id,
                    window=build_window(template.day_of_week, template.start_time, template.end_time),
                    room=template.room,
                ),
                exclude_template_id=template.id,
                scope=ConflictScope.active,
            )
            raise_for_conflicts(report)
        approval.approve(template, approved_by=approved_by, notes=notes)
        self.db.flush()
        self.events.append(template_event("schedule.approved", template, actor_id=approved_by))
        return template

    def reject(self, template_id: str, *, approved_by: str, notes: str | None) -> ScheduleTemplate:
        template = self.get(template_id)
        if template.is_deactivated:
            raise StateError("Deactivated schedule templates cannot be rejected", details={"template_id": template_id})
        approval.reject(template, approved_by=approved_by, notes=notes)
        self.db.flush()
        self.events.append(
            template_event("schedule.rejected", template, actor_id=approved_by, notes=template.approval_notes)
        )
        return template
