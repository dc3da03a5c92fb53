import pytest

from confsched.core.config import Settings
from confsched.db import bootstrap


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


def test_settings_accept_comma_or_json_cors_origins():
    comma = Settings(cors_origins="https://a.test, https://b.test ,")
    as_json = Settings(cors_origins='["https://c.test", " "]')

    assert comma.cors_origins == ["https://a.test", "https://b.test"]
    assert as_json.cors_origins == ["https://c.test"]


def test_smtp_configured_needs_host_and_sender():
    assert Settings(smtp_host="smtp.test", smtp_from_email=None).smtp_configured is False
    assert Settings(smtp_host="smtp.test", smtp_from_email="program@conference.test").smtp_configured is True
