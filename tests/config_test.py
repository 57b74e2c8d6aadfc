import pytest

from config import AppSettings, config


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("LOG_LEVEL", "TIME_OFFSET_DAYS", "CONSOLIDATE_INCOME"):
        monkeypatch.delenv(name, raising=False)

    settings = AppSettings(_env_file=None)

    assert settings.log_level == "INFO"
    assert settings.time_offset_days == 0
    assert settings.consolidate_income is True


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TIME_OFFSET_DAYS", "-1")
    monkeypatch.setenv("CONSOLIDATE_INCOME", "false")

    settings = config()

    assert settings.time_offset_days == -1
    assert settings.consolidate_income is False
    assert config() is settings
