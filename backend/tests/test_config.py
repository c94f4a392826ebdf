import pytest
from pydantic import ValidationError

from app.core.config import Settings


def test_defaults_require_approval_and_scan_non_rejected_templates():
    settings = Settings()
    assert settings.schedule_requires_approval is True
    assert settings.conflict_scan_scope == "non_rejected"
    assert settings.max_generation_range_days == 366


def test_cors_origins_accept_comma_or_json_lists():
    assert Settings(cors_origins="http://a.test, http://b.test").cors_origins == ["http://a.test", "http://b.test"]
    assert Settings(cors_origins='["http://a.test"]').cors_origins == ["http://a.test"]


def test_log_level_is_normalized():
    assert Settings(log_level=" debug ").log_level == "DEBUG"


def test_unknown_conflict_scope_is_rejected():
    with pytest.raises(ValidationError):
        Settings(conflict_scan_scope="everything")


def test_generation_window_must_be_positive():
    with pytest.raises(ValidationError):
        Settings(max_generation_range_days=0)
