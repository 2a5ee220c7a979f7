"""YAML-backed configuration for the statistics service."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from . import schemas
from .aggregations import check_boundaries, check_weights
from .errors import ComputationError

DEFAULT_CONFIG_PATH = Path("config.yaml")


class LoggingSettings(BaseModel):
    log_dir: str = "logs"
    log_filename: str = "gradestats.log"
    level: str = "INFO"


class StatsSettings(BaseModel):
    records_path: Optional[str] = None
    weights: schemas.ScoreWeights = Field(default_factory=schemas.ScoreWeights)
    global_mode: schemas.ModeSettings = Field(default_factory=schemas.default_global_mode)
    class_mode: schemas.ModeSettings = Field(default_factory=schemas.default_class_mode)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def validate_settings(settings: StatsSettings) -> StatsSettings:
    check_weights(settings.weights)
    check_boundaries(settings.global_mode.boundaries)
    check_boundaries(settings.class_mode.boundaries)
    return settings


def load_settings(config_path: Path | str = DEFAULT_CONFIG_PATH) -> StatsSettings:
    """
    Load and validate settings from a YAML file.

    Parameters
    ----------
    config_path : Path | str
        Path to the YAML configuration file. Missing sections fall back to
        the built-in defaults; an empty file yields the defaults entirely.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    raw = yaml.safe_load(path.read_text()) or {}
    try:
        settings = StatsSettings.model_validate(raw)
    except ValidationError as exc:
        raise ComputationError(f"Invalid settings in {path}: {exc}") from exc
    return validate_settings(settings)


__all__ = ["LoggingSettings", "StatsSettings", "load_settings", "validate_settings", "DEFAULT_CONFIG_PATH"]
