from datetime import date

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_capability, require_roles
from app.core.permissions import Capability
from app.models.schedule_template import ApprovalStatus, DayOfWeek, ScheduleTemplate
from app.models.user import User, UserRole
from app.schemas.conflict import ConflictCheckRequest, ConflictReport
from app.schemas.occurrence import GenerateOccurrencesRequest, GenerationReport, SessionOccurrenceOut
from app.schemas.schedule import (
    ApprovalDecision,
    ScheduleTemplateCreate,
    ScheduleTemplateOut,
    ScheduleTemplateUpdate,
    WeeklyTimetableOut,
)
from app.services.events import ScheduleEvent, event_dispatcher
from app.services.occurrences import OccurrenceGenerator
from app.services.template_store import ScheduleTemplateStore

router = APIRouter()


def _commit_and_dispatch(db: Session, background_tasks: BackgroundTasks, events: list[ScheduleEvent]) -> None:
    db.commit()
    if events:
        background_tasks.add_task(event_dispatcher.dispatch, list(events))


def _weekly(grouped: dict[DayOfWeek, list[ScheduleTemplate]]) -> WeeklyTimetableOut:
    return WeeklyTimetableOut(
        days={day: [ScheduleTemplateOut.model_validate(item) for item in items] for day, items in grouped.items()},
        count=sum(len(items) for items in grouped.values()),
    )


@router.get("/", response_model=list[ScheduleTemplateOut])
def list_schedules(
    course_id: str | None = Query(default=None),
    teacher_id: str | None = Query(default=None),
    day_of_week: DayOfWeek | None = Query(default=None),
    room: str | None = Query(default=None),
    is_active: bool | None = Query(default=None),
    approval_status: ApprovalStatus | None = Query(default=None),
    include_deactivated: bool = Query(default=False),
    current_user: User = Depends(require_capability(Capability.schedule_read)),
    db: Session = Depends(get_db),
) -> list[ScheduleTemplateOut]:
    return ScheduleTemplateStore(db).list_templates(
        course_id=course_id,
        teacher_id=teacher_id,
        day_of_week=day_of_week,
        room=room,
        is_active=is_active,
        approval_status=approval_status,
        include_deactivated=include_deactivated,
    )


@router.post("/", response_model=ScheduleTemplateOut, status_code=status.HTTP_201_CREATED)
def create_schedule(
    payload: ScheduleTemplateCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_capability(Capability.schedule_manage)),
    db: Session = Depends(get_db),
) -> ScheduleTemplateOut:
    store = ScheduleTemplateStore(db)
    template = store.create(payload, created_by=current_user.id)
    _commit_and_dispatch(db, background_tasks, store.events)
    db.refresh(template)
    return template


@router.post("/check-conflicts", response_model=ConflictReport)
def check_conflicts(
    payload: ConflictCheckRequest,
    current_user: User = Depends(require_capability(Capability.schedule_manage)),
    db: Session = Depends(get_db),
) -> ConflictReport:
    return ScheduleTemplateStore(db).check_conflicts(
        teacher_id=payload.teacher_id,
        day_of_week=payload.day_of_week,
        start_time=payload.start_time,
        end_time=payload.end_time,
        room=payload.room,
        exclude_id=payload.exclude_id,
    )


@router.get("/weekly", response_model=WeeklyTimetableOut)
def weekly_timetable(
    teacher_id: str | None = Query(default=None),
    course_id: str | None = Query(default=None),
    room: str | None = Query(default=None),
    current_user: User = Depends(require_capability(Capability.schedule_read)),
    db: Session = Depends(get_db),
) -> WeeklyTimetableOut:
    grouped = ScheduleTemplateStore(db).weekly_timetable(teacher_id=teacher_id, course_id=course_id, room=room)
    return _weekly(grouped)


@router.get("/pending", response_model=list[ScheduleTemplateOut])
def pending_approvals(
    current_user: User = Depends(require_capability(Capability.schedule_approve)),
    db: Session = Depends(get_db),
) -> list[ScheduleTemplateOut]:
    return ScheduleTemplateStore(db).pending_approvals()


@router.get("/my", response_model=WeeklyTimetableOut)
def my_schedule(
    current_user: User = Depends(require_roles(UserRole.teacher)),
    db: Session = Depends(get_db),
) -> WeeklyTimetableOut:
    return _weekly(ScheduleTemplateStore(db).weekly_timetable(teacher_id=current_user.id))


@router.get("/teacher/{teacher_id}", response_model=list[ScheduleTemplateOut])
def schedules_for_teacher(
    teacher_id: str,
    current_user: User = Depends(require_capability(Capability.schedule_read)),
    db: Session = Depends(get_db),
) -> list[ScheduleTemplateOut]:
    return ScheduleTemplateStore(db).list_for_teacher(teacher_id)


@router.get("/course/{course_id}", response_model=list[ScheduleTemplateOut])
def schedules_for_course(
    course_id: str,
    current_user: User = Depends(require_capability(Capability.schedule_read)),
    db: Session = Depends(get_db),
) -> list[ScheduleTemplateOut]:
    return ScheduleTemplateStore(db).list_for_course(course_id)


@router.get("/day/{day_of_week}", response_model=list[ScheduleTemplateOut])
def schedules_for_day(
    day_of_week: DayOfWeek,
    room: str | None = Query(default=None),
    current_user: User = Depends(require_capability(Capability.schedule_read)),
    db: Session = Depends(get_db),
) -> list[ScheduleTemplateOut]:
    return ScheduleTemplateStore(db).list_for_day(day_of_week, room=room)


@router.get("/{template_id}", response_model=ScheduleTemplateOut)
def get_schedule(
    template_id: str,
    current_user: User = Depends(require_capability(Capability.schedule_read)),
    db: Session = Depends(get_db),
) -> ScheduleTemplateOut:
    return ScheduleTemplateStore(db).get(template_id)


@router.put("/{template_id}", response_model=ScheduleTemplateOut)
def update_schedule(
    template_id: str,
    payload: ScheduleTemplateUpdate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_capability(Capability.schedule_manage)),
    db: Session = Depends(get_db),
) -> ScheduleTemplateOut:
    store = ScheduleTemplateStore(db)
    template = store.update(template_id, payload, updated_by=current_user.id)
    _commit_and_dispatch(db, background_tasks, store.events)
    db.refresh(template)
    return template


@router.delete("/{template_id}", response_model=ScheduleTemplateOut)
def deactivate_schedule(
    template_id: str,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_capability(Capability.schedule_manage)),
    db: Session = Depends(get_db),
) -> ScheduleTemplateOut:
    store = ScheduleTemplateStore(db)
    template = store.deactivate(template_id, deactivated_by=current_user.id)
    _commit_and_dispatch(db, background_tasks, store.events)
    db.refresh(template)
    return template


@router.post("/{template_id}/approve", response_model=ScheduleTemplateOut)
def approve_schedule(
    template_id: str,
    background_tasks: BackgroundTasks,
    payload: ApprovalDecision | None = None,
    current_user: User = Depends(require_capability(Capability.schedule_approve)),
    db: Session = Depends(get_db),
) -> ScheduleTemplateOut:
    store = ScheduleTemplateStore(db)
    notes = payload.notes if payload is not None else None
    template = store.approve(template_id, approved_by=current_user.id, notes=notes)
    _commit_and_dispatch(db, background_tasks, store.events)
    db.refresh(template)
    return template


@router.post("/{template_id}/reject", response_model=ScheduleTemplateOut)
def reject_schedule(
    template_id: str,
    payload: ApprovalDecision,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_capability(Capability.schedule_approve)),
    db: Session = Depends(get_db),
) -> ScheduleTemplateOut:
    store = ScheduleTemplateStore(db)
    template = store.reject(template_id, approved_by=current_user.id, notes=payload.notes)
    _commit_and_dispatch(db, background_tasks, store.events)
    db.refresh(template)
    return template


@router.post("/{template_id}/generate", response_model=GenerationReport)
def generate_occurrences(
    template_id: str,
    payload: GenerateOccurrencesRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_capability(Capability.occurrence_generate)),
    db: Session = Depends(get_db),
) -> GenerationReport:
    generator = OccurrenceGenerator(db)
    report = generator.generate(template_id, payload.start_date, payload.end_date, actor_id=current_user.id)
    _commit_and_dispatch(db, background_tasks, generator.events)
    return report


@router.get("/{template_id}/occurrences", response_model=list[SessionOccurrenceOut])
def list_occurrences(
    template_id: str,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    current_user: User = Depends(require_capability(Capability.schedule_read)),
    db: Session = Depends(get_db),
) -> list[SessionOccurrenceOut]:
    return OccurrenceGenerator(db).list_occurrences(template_id, start_date=start_date, end_date=end_date)
