from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
sys.path.append(str(Path(__file__).resolve().parents[1]))

import pytest
import yaml

import stats_server
from gradestats.errors import ComputationError
from gradestats.settings import StatsSettings, load_settings
from utils.logger_setup import setup_logging_from_config


@pytest.fixture()
def restore_root_logging():
    root = logging.getLogger()
    level = root.level
    yield
    for handler in root.handlers[:]:
        if isinstance(handler, logging.FileHandler) or type(handler) is logging.StreamHandler:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


def _write_config(path: Path, data: dict) -> Path:
    path.write_text(yaml.safe_dump(data))
    return path


def test_empty_config_uses_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")
    settings = load_settings(path)
    assert settings == StatsSettings()
    assert settings.global_mode.threshold == 50
    assert settings.global_mode.boundaries == [0, 20, 40, 60, 80, 100]
    assert settings.global_mode.sample_size == 100
    assert settings.global_mode.percentage_decimals is None
    assert settings.class_mode.threshold == 70
    assert settings.class_mode.boundaries == [0, 60, 70, 80, 90, 100]
    assert settings.class_mode.percentage_decimals == 2


def test_partial_config_overrides(tmp_path):
    path = _write_config(
        tmp_path / "config.yaml",
        {"records_path": "scores.json", "class_mode": {"threshold": 65, "boundaries": [0, 50, 100]}},
    )
    settings = load_settings(path)
    assert settings.records_path == "scores.json"
    assert settings.class_mode.threshold == 65
    assert settings.class_mode.percentage_decimals is None
    assert settings.global_mode.threshold == 50


def test_repository_config_is_valid():
    settings = load_settings(Path(__file__).resolve().parents[1] / "config.yaml")
    assert settings.weights.exam == 0.5


@pytest.mark.parametrize(
    "data",
    [
        {"weights": {"exam": 0.4, "quiz": 0.3, "homework": 0.2}},
        {"global_mode": {"threshold": 50, "boundaries": [0, 40, 20]}},
        {"class_mode": {"threshold": "high", "boundaries": [0, 100]}},
    ],
)
def test_invalid_config_raises(tmp_path, data):
    with pytest.raises(ComputationError):
        load_settings(_write_config(tmp_path / "config.yaml", data))


def test_missing_config_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "nope.yaml")


def test_setup_logging_writes_log_file(tmp_path, restore_root_logging):
    path = _write_config(
        tmp_path / "config.yaml",
        {"logging": {"log_dir": str(tmp_path / "logs"), "log_filename": "stats.log", "level": "debug"}},
    )
    log_file = setup_logging_from_config(path)

    assert log_file == tmp_path / "logs" / "stats.log"
    assert logging.getLogger().level == logging.DEBUG
    logging.getLogger("gradestats.test").info("hello from test")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "hello from test" in log_file.read_text()


def test_cli_report(tmp_path, capsys, restore_root_logging):
    records = tmp_path / "grades.jsonl"
    records.write_text(
        json.dumps(
            {"learner_id": 1, "class_id": 10, "scores": [
                {"type": "quiz", "score": 90}, {"type": "exam", "score": 80}, {"type": "homework", "score": 70},
            ]}
        )
    )
    config = _write_config(tmp_path / "config.yaml", {"logging": {"log_dir": str(tmp_path / "logs")}})

    exit_code = stats_server.main(["--config", str(config), "--records", str(records), "--report", "10"])
    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["class_id"] == 10
    assert payload["learner_scores"][0]["weighted_avg"] == pytest.approx(81.0)

    exit_code = stats_server.main(["--config", str(config), "--records", str(records), "--report", "999"])
    assert exit_code == 1
    assert "No data found for class_id: 999" in capsys.readouterr().err
