from __future__ import annotations

from datetime import date
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.exceptions import ResourceNotFoundError, StateError, ValidationError
from app.models.schedule_template import ScheduleTemplate
from app.models.session_occurrence import OccurrenceStatus, SessionOccurrence
from app.schemas.occurrence import CreatedOccurrence, FailedOccurrence, GenerationReport
from app.services.approval import is_eligible
from app.services.events import ScheduleEvent, template_event
from app.services.recurrence import expand

logger = logging.getLogger(__name__)


class OccurrenceGenerator:
    """Materializes dated sessions from an active template.

    Generation is idempotent per (template, date): dates that already have an
    occurrence are skipped untouched, and each new date is written in its own
    savepoint so one failing date does not undo the others.
    """

    def __init__(self, db: Session, settings: Settings | None = None) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.events: list[ScheduleEvent] = []

    def _lock_template(self, template_id: str) -> ScheduleTemplate:
        # Serializes concurrent generations for one template before the existence check.
        query = (
            select(ScheduleTemplate)
            .where(ScheduleTemplate.id == template_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        template = self.db.execute(query).scalar_one_or_none()
        if template is None:
            raise ResourceNotFoundError("Schedule template", template_id)
        return template

    def _validate_range(self, range_start: date, range_end: date) -> None:
        if range_end <= range_start:
            raise ValidationError(
                "end_date must be after start_date",
                details={"start_date": range_start.isoformat(), "end_date": range_end.isoformat()},
            )
        span = (range_end - range_start).days
        if span > self.settings.max_generation_range_days:
            raise ValidationError(
                f"Date range cannot exceed {self.settings.max_generation_range_days} days",
                details={"days": span},
            )

    def _existing_dates(self, template_id: str, first: date, last: date) -> set[date]:
        query = select(SessionOccurrence.scheduled_date).where(
            SessionOccurrence.template_id == template_id,
            SessionOccurrence.scheduled_date >= first,
            SessionOccurrence.scheduled_date <= last,
        )
        return set(self.db.execute(query).scalars())

    def _create_occurrence(self, template: ScheduleTemplate, scheduled_date: date) -> SessionOccurrence:
        occurrence = SessionOccurrence(
            template_id=template.id,
            course_id=template.course_id,
            teacher_id=template.teacher_id,
            session_group_id=template.session_group_id,
            room=template.room,
            building=template.building,
            scheduled_date=scheduled_date,
            start_time=template.start_time,
            end_time=template.end_time,
            status=OccurrenceStatus.scheduled,
        )
        self.db.add(occurrence)
        self.db.flush()
        return occurrence

    def generate(
        self,
        template_id: str,
        range_start: date,
        range_end: date,
        *,
        actor_id: str | None = None,
    ) -> GenerationReport:
        self._validate_range(range_start, range_end)
        template = self._lock_template(template_id)
        if template.is_deactivated or not template.is_active or not is_eligible(template.approval_status):
            raise StateError(
                "Occurrences can only be generated from active, approved schedule templates",
                details={
                    "template_id": template.id,
                    "is_active": template.is_active,
                    "approval_status": template.approval_status.value,
                },
            )

        candidates = expand(template, range_start, range_end)
        report = GenerationReport(template_id=template.id, total_candidate_dates=len(candidates))
        if not candidates:
            return report

        existing = self._existing_dates(template.id, candidates[0], candidates[-1])
        for scheduled_date in candidates:
            if scheduled_date in existing:
                report.skipped.append(scheduled_date)
                continue
            try:
                with self.db.begin_nested():
                    occurrence = self._create_occurrence(template, scheduled_date)
            except IntegrityError:
                # Another writer created this date after our existence check.
                logger.info("Occurrence for template %s on %s already exists", template.id, scheduled_date)
                report.skipped.append(scheduled_date)
                continue
            except SQLAlchemyError as exc:
                logger.warning(
                    "Failed to create occurrence for template %s on %s",
                    template.id,
                    scheduled_date,
                    exc_info=True,
                )
                reason = str(getattr(exc, "orig", None) or exc)
                report.failed.append(FailedOccurrence(scheduled_date=scheduled_date, reason=reason))
                continue
            report.created.append(CreatedOccurrence(id=occurrence.id, scheduled_date=scheduled_date))

        logger.info(
            "Generated occurrences for template %s %s..%s: created=%d skipped=%d failed=%d",
            template.id,
            range_start,
            range_end,
            len(report.created),
            len(report.skipped),
            len(report.failed),
        )
        if report.created:
            self.events.append(
                template_event(
                    "occurrences.generated",
                    template,
                    actor_id=actor_id,
                    created=len(report.created),
                    start_date=range_start.isoformat(),
                    end_date=range_end.isoformat(),
                )
            )
        return report

    def list_occurrences(
        self,
        template_id: str,
        *,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[SessionOccurrence]:
        if self.db.get(ScheduleTemplate, template_id) is None:
            raise ResourceNotFoundError("Schedule template", template_id)
        query = select(SessionOccurrence).where(SessionOccurrence.template_id == template_id)
        if start_date is not None:
            query = query.where(SessionOccurrence.scheduled_date >= start_date)
        if end_date is not None:
            query = query.where(SessionOccurrence.scheduled_date <= end_date)
        return list(self.db.execute(query.order_by(SessionOccurrence.scheduled_date)).scalars())
