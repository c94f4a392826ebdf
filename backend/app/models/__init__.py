from app.models.course import Course, SessionGroup  # noqa: F401
from app.models.room import Room  # noqa: F401
from app.models.schedule_template import (  # noqa: F401
    ApprovalStatus,
    DayOfWeek,
    RecurrenceType,
    ScheduleTemplate,
)
from app.models.session_occurrence import OccurrenceStatus, SessionOccurrence  # noqa: F401
from app.models.user import User, UserRole  # noqa: F401
