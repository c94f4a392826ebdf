from sqlalchemy import inspect, text

from app.db.bootstrap import OCCURRENCE_UNIQUE_INDEX, ensure_runtime_schema_compatibility, find_schema_gaps


def test_bootstrap_is_a_no_op_on_a_current_schema(engine):
    ensure_runtime_schema_compatibility(engine)
    assert find_schema_gaps(engine) == ([], {})


def test_bootstrap_adds_missing_exception_dates_column(engine):
    with engine.begin() as connection:
        connection.execute(text("ALTER TABLE schedule_templates DROP COLUMN exception_dates"))
    assert find_schema_gaps(engine)[1] == {"schedule_templates": ["exception_dates"]}

    ensure_runtime_schema_compatibility(engine)

    columns = {item["name"] for item in inspect(engine).get_columns("schedule_templates")}
    assert "exception_dates" in columns


def test_bootstrap_restores_occurrence_uniqueness(engine):
    with engine.begin() as connection:
        connection.execute(text("DROP TABLE session_occurrences"))
        connection.execute(
            text(
                "CREATE TABLE session_occurrences ("
                "id VARCHAR(36) PRIMARY KEY, template_id VARCHAR(36) NOT NULL, "
                "course_id VARCHAR(36) NOT NULL, teacher_id VARCHAR(36) NOT NULL, "
                "session_group_id VARCHAR(36) NOT NULL, room VARCHAR(50), building VARCHAR(100), "
                "scheduled_date DATE NOT NULL, start_time VARCHAR(5) NOT NULL, end_time VARCHAR(5) NOT NULL, "
                "status VARCHAR(11) NOT NULL, created_at DATETIME, updated_at DATETIME)"
            )
        )

    ensure_runtime_schema_compatibility(engine)

    indexes = {item["name"]: item for item in inspect(engine).get_indexes("session_occurrences")}
    assert indexes[OCCURRENCE_UNIQUE_INDEX]["unique"]


def test_bootstrap_adds_last_login_column_to_older_user_tables(engine):
    with engine.begin() as connection:
        connection.execute(text("ALTER TABLE users DROP COLUMN last_login_at"))
    assert find_schema_gaps(engine)[1] == {"users": ["last_login_at"]}

    ensure_runtime_schema_compatibility(engine)

    assert find_schema_gaps(engine) == ([], {})
