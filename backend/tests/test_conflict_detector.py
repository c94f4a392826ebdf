from datetime import date, datetime, timezone

import pytest

from app.models.schedule_template import ApprovalStatus, DayOfWeek, ScheduleTemplate
from app.services.conflicts import ConflictCandidate, ConflictDetector, ConflictScope, detect_conflicts
from app.services.time_window import TimeWindow


def make_template(**overrides) -> ScheduleTemplate:
    values = {
        "course_id": "course-1",
        "teacher_id": "teacher-x",
        "session_group_id": "group-1",
        "room": "101",
        "day_of_week": DayOfWeek.monday,
        "start_time": "09:00",
        "end_time": "10:30",
        "effective_from": date(2024, 1, 1),
        "exception_dates": [],
        "is_active": True,
        "approval_status": ApprovalStatus.approved,
        "created_by_id": "manager-1",
    }
    values.update(overrides)
    return ScheduleTemplate(**values)


def candidate(teacher_id: str, start: str, end: str, room: str | None = None, day: str = "monday"):
    return ConflictCandidate(teacher_id=teacher_id, window=TimeWindow.from_strings(day, start, end), room=room)


@pytest.fixture()
def existing(db_session):
    template = make_template()
    db_session.add(template)
    db_session.commit()
    return template


def test_same_teacher_overlap_is_a_teacher_conflict(db_session, existing):
    report = ConflictDetector(db_session).find_conflicts(candidate("teacher-x", "10:00", "11:00", room="102"))
    assert report.has_conflict
    assert [item.template_id for item in report.teacher_conflicts] == [existing.id]
    assert report.room_conflicts == []


def test_back_to_back_slot_in_the_same_room_is_free(db_session, existing):
    report = ConflictDetector(db_session).find_conflicts(candidate("teacher-y", "10:30", "11:30", room="101"))
    assert not report.has_conflict


def test_other_teacher_overlapping_in_same_room_is_a_room_conflict(db_session, existing):
    report = ConflictDetector(db_session).find_conflicts(candidate("teacher-y", "10:00", "11:00", room="101"))
    assert report.teacher_conflicts == []
    assert [item.template_id for item in report.room_conflicts] == [existing.id]
    assert "Room 101" in report.room_conflicts[0].description


def test_shared_teacher_and_room_is_reported_in_both_lists(db_session, existing):
    report = ConflictDetector(db_session).find_conflicts(candidate("teacher-x", "09:30", "10:00", room="101"))
    assert len(report.teacher_conflicts) == 1
    assert len(report.room_conflicts) == 1


def test_candidate_without_room_only_checks_the_teacher(db_session, existing):
    report = ConflictDetector(db_session).find_conflicts(candidate("teacher-y", "09:00", "10:00"))
    assert not report.has_conflict


def test_excluded_template_is_ignored(db_session, existing):
    report = ConflictDetector(db_session).find_conflicts(
        candidate("teacher-x", "09:00", "10:30", room="101"),
        exclude_template_id=existing.id,
    )
    assert not report.has_conflict


def test_other_day_is_never_a_conflict(db_session, existing):
    report = ConflictDetector(db_session).find_conflicts(
        candidate("teacher-x", "09:00", "10:30", room="101", day="tuesday")
    )
    assert not report.has_conflict


def test_rejected_and_deactivated_templates_are_out_of_scope(db_session):
    db_session.add_all(
        [
            make_template(approval_status=ApprovalStatus.rejected, is_active=False),
            make_template(deactivated_at=datetime.now(timezone.utc), is_active=False),
        ]
    )
    db_session.commit()
    report = ConflictDetector(db_session).find_conflicts(candidate("teacher-x", "09:00", "10:30", room="101"))
    assert not report.has_conflict


def test_pending_templates_block_in_default_scope_only(db_session):
    db_session.add(make_template(approval_status=ApprovalStatus.pending, is_active=False))
    db_session.commit()
    probe = candidate("teacher-x", "09:00", "10:00")

    assert ConflictDetector(db_session).find_conflicts(probe).has_conflict
    assert not ConflictDetector(db_session, scope=ConflictScope.active).find_conflicts(probe).has_conflict
    assert not ConflictDetector(db_session).find_conflicts(probe, scope=ConflictScope.active).has_conflict


def test_detect_conflicts_works_on_plain_template_lists():
    templates = [
        make_template(id="a", start_time="08:00", end_time="09:00"),
        make_template(id="b", start_time="09:30", end_time="10:00"),
        make_template(id="c", teacher_id="teacher-z", room="900", start_time="09:30", end_time="10:00"),
    ]
    report = detect_conflicts(candidate("teacher-x", "08:30", "09:45", room="101"), templates)
    assert [item.template_id for item in report.teacher_conflicts] == ["a", "b"]
    assert [item.template_id for item in report.room_conflicts] == ["a", "b"]
