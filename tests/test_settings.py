import os
from datetime import date

import pytest

from smfarm.collector.config.settings import config_from_dict, load_config
from smfarm.shared.config import get_log_level, resolve_config_path

ENV_VARS = ("SMFARM_SHEET_ID", "LOG_LEVEL", "MQTT_BROKER", "SMFARM_ENV", "SMFARM_CONFIG")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
    # .env files load straight into os.environ
    for name in ENV_VARS:
        os.environ.pop(name, None)


def test_dummy_source_defaults():
    config = config_from_dict({"source": {"type": "dummy"}})

    assert config.source.type == "dummy"
    assert config.source.sheet is None
    assert config.source.devices == ["farm-1", "farm-2"]
    assert config.view.points == 100
    assert config.view.advisor_device is None
    assert config.mqtt is None
    assert config.log_level == "INFO"
    assert config.thresholds.n.action_lt == 10


def test_gviz_source_requires_sheet_id():
    with pytest.raises(ValueError, match="sheet_id"):
        config_from_dict({"source": {"type": "gviz"}})


def test_sheet_id_from_environment(monkeypatch):
    monkeypatch.setenv("SMFARM_SHEET_ID", "env-sheet")
    config = config_from_dict({"source": {"type": "gviz", "sheet_id": "file-sheet", "timeout": 5}})

    assert config.source.sheet.sheet_id == "env-sheet"
    assert config.source.sheet.sheet_name == "data"
    assert config.source.sheet.timeout == 5


def test_log_level_environment_wins(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "debug")
    config = config_from_dict({"source": {"type": "dummy"}, "log_level": "WARNING"})
    assert config.log_level == "DEBUG"


def test_mqtt_section_and_broker_override(monkeypatch):
    monkeypatch.setenv("MQTT_BROKER", "broker.local")
    config = config_from_dict({"source": {"type": "dummy"}, "mqtt": {"port": 1884}})

    assert config.mqtt.broker == "broker.local"
    assert config.mqtt.port == 1884
    assert config.mqtt.topic_prefix == "smfarm/advisor"


def test_partial_threshold_overrides():
    config = config_from_dict({
        "source": {"type": "dummy"},
        "thresholds": {"p": {"ok_hi": 90}, "ph": {"ok_max": 6.2}},
    })

    assert config.thresholds.p.ok_hi == 90
    assert config.thresholds.p.action_lt == 30
    assert config.thresholds.p.warn_high_gt == 100
    assert config.thresholds.ph.ok_max == 6.2
    assert config.thresholds.ph.warn_high == 6.5
    assert config.thresholds.k.ok_hi == 391


def test_view_and_conversion_sections():
    config = config_from_dict({
        "source": {"type": "dummy"},
        "view": {"device": "farm-1", "start_date": "2024-01-01", "end_date": date(2024, 1, 31), "points": 20},
        "conversion": {"factors": {"n": 1.5}},
    })

    assert config.view.device == "farm-1"
    assert config.view.start_date == date(2024, 1, 1)
    assert config.view.end_date == date(2024, 1, 31)
    assert config.view.fetch_limit() is None
    assert config.conversion.factor_for("N") == 1.5
    assert config.conversion.factor_for("K") == 1.0


def test_load_config_from_file(tmp_path):
    path = tmp_path / "config-test.yaml"
    path.write_text(
        "refresh_interval: 30\n"
        "source:\n"
        "  type: dummy\n"
        "  devices: [plot-1]\n"
        "view:\n"
        "  points: 50\n"
        "  advisor_device: ''\n"
    )
    config = load_config(str(path))

    assert config.refresh_interval == 30
    assert config.source.devices == ["plot-1"]
    assert config.view.points == 50
    assert config.view.advisor_device == ""


def test_load_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "missing.yaml"))


def test_config_path_lookup_order(monkeypatch, tmp_path):
    monkeypatch.setenv("SMFARM_ENV", "test")
    assert resolve_config_path().name == "config-test.yaml"
    assert resolve_config_path().parent.name == "config"
    assert resolve_config_path(config_dir="/etc/smfarm").as_posix() == "/etc/smfarm/config-test.yaml"

    monkeypatch.setenv("SMFARM_CONFIG", str(tmp_path / "site.yaml"))
    assert resolve_config_path() == tmp_path / "site.yaml"
    assert resolve_config_path("explicit.yaml").name == "explicit.yaml"


def test_env_file_beside_config(monkeypatch, tmp_path):
    (tmp_path / "config-test.yaml").write_text("source:\n  type: gviz\n")
    (tmp_path / ".env").write_text("SMFARM_SHEET_ID=from-dotenv\n")

    config = load_config(str(tmp_path / "config-test.yaml"))
    assert config.source.sheet.sheet_id == "from-dotenv"


def test_process_environment_wins_over_env_file(monkeypatch, tmp_path):
    (tmp_path / "config-test.yaml").write_text("source:\n  type: gviz\n")
    (tmp_path / ".env").write_text("SMFARM_SHEET_ID=from-dotenv\n")
    monkeypatch.setenv("SMFARM_SHEET_ID", "from-shell")

    assert load_config(str(tmp_path / "config-test.yaml")).source.sheet.sheet_id == "from-shell"


def test_non_mapping_config_is_rejected(tmp_path):
    path = tmp_path / "config-list.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ValueError, match="mapping"):
        load_config(str(path))


def test_log_level_defaults():
    assert get_log_level({}) == "INFO"
    assert get_log_level({"log_level": "warning"}) == "WARNING"


def test_empty_yaml_sections_keep_defaults(tmp_path):
    path = tmp_path / "config-empty.yaml"
    path.write_text(
        "source:\n"
        "view:\n"
        "conversion:\n"
        "thresholds:\n"
        "  n:\n"
        "  ph:\n"
    )
    with pytest.raises(ValueError, match="sheet_id"):
        load_config(str(path))

    config = config_from_dict({
        "source": {"type": "dummy", "devices": None},
        "view": None,
        "conversion": None,
        "thresholds": {"n": None, "ph": None},
    })
    assert config.source.devices == ["farm-1", "farm-2"]
    assert config.view.points == 100
    assert config.conversion.factor_for("N") == 1.0
    assert config.thresholds.n.warn_lt == 20
    assert config.thresholds.ph.ok_min == 5.5


@pytest.mark.parametrize("thresholds,match", [
    ({"n": {"action_lt": 25}}, "n.action_lt"),
    ({"p": {"ok_hi": 120}}, "p.ok_hi"),
    ({"k": {"warn_lt": 100}}, "k.action_lt"),
    ({"moi": {"refill_pct": 65}}, "moi.refill_pct"),
    ({"ph": {"ok_max": 7.0}}, "ph.ok_max"),
    ({"ec": {"warn_ppm": 3000}}, "ec.warn_ppm"),
])
def test_out_of_order_cutoffs_are_rejected(thresholds, match):
    with pytest.raises(ValueError, match=match):
        config_from_dict({"source": {"type": "dummy"}, "thresholds": thresholds})


@pytest.mark.parametrize("thresholds", [
    {"p": {"ok_hi": None}},
    {"k": {"ok_hi": None, "warn_high_gt": None}},
    {"ph": {"ok_min": "low"}},
    {"ec": {"alert_ppm": float("nan")}},
])
def test_unusable_cutoffs_are_rejected(thresholds):
    with pytest.raises(ValueError):
        config_from_dict({"source": {"type": "dummy"}, "thresholds": thresholds})


def test_engine_rejects_unordered_thresholds():
    from smfarm.advisor.engine import AdvisoryEngine
    from smfarm.advisor.thresholds import MoistureThresholds, Thresholds

    with pytest.raises(ValueError):
        AdvisoryEngine(Thresholds(moi=MoistureThresholds(ok_min_pct=90, ok_max_pct=80)))
