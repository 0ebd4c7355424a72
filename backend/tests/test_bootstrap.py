import pytest

from classplan.db import bootstrap


def _raise_error(message: str):
    raise RuntimeError(message)


def test_runtime_schema_bootstrap_raises_on_validation_failure(monkeypatch):
    monkeypatch.setattr(bootstrap.Base.metadata, "create_all", lambda bind: None)
    monkeypatch.setattr(
        bootstrap,
        "_assert_required_columns",
        lambda: _raise_error("missing required schema"),
    )

    with pytest.raises(RuntimeError, match="Runtime schema compatibility bootstrap failed"):
        bootstrap.ensure_runtime_schema_compatibility()


def test_required_columns_cover_scheduling_and_cpr_tables():
    assert {"classes", "cpr_modules", "cpr_topics", "cpr_sub_topics"} <= set(bootstrap.REQUIRED_COLUMNS)
    assert {"start_at", "end_at", "lecture_number", "sub_topic_id"} <= bootstrap.REQUIRED_COLUMNS["classes"]
