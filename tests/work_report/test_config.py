import json
from datetime import date

from work_report.backend.config import AppConfig, load_app_config, load_from_env


def _write(tmp_path, data):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
    return str(path)


def test_load_app_config(tmp_path):
    path = _write(
        tmp_path,
        {
            "organization": {"name": "Lab"},
            "hoursPerDay": 7.5,
            "timezone": "Asia/Jerusalem",
            "defaultResearchers": ["Dr. Cohen", " ", "Dr. Levi"],
            "backdateOverride": {"enabled": True, "minDate": "2025-08-01"},
        },
    )
    cfg = load_app_config(path)
    assert cfg.name == "Lab"
    assert cfg.hours_per_day == 7.5
    assert cfg.default_researchers == ["Dr. Cohen", "Dr. Levi"]
    assert cfg.backdate_override.enabled
    assert cfg.backdate_override.min_date == date(2025, 8, 1)


def test_load_app_config_defaults(tmp_path):
    cfg = load_app_config(_write(tmp_path, {"hoursPerDay": 0}))
    assert cfg == AppConfig()


def test_load_from_env_overrides(tmp_path, monkeypatch):
    path = _write(tmp_path, {"hoursPerDay": 8, "timezone": "UTC"})
    monkeypatch.setenv("WORK_REPORT_CONFIG_PATH", path)
    monkeypatch.setenv("WORK_REPORT_TZ", "Europe/London")
    monkeypatch.setenv("WORK_REPORT_HOURS_PER_DAY", "6")
    cfg = load_from_env()
    assert cfg is not None
    assert cfg.timezone == "Europe/London"
    assert cfg.hours_per_day == 6.0


def test_load_from_env_missing_file(tmp_path, monkeypatch):
    monkeypatch.delenv("WORK_REPORT_CONFIG_PATH", raising=False)
    assert load_from_env(default_path=str(tmp_path / "nope.json")) is None
