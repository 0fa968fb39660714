"""
delaycam Configuration
======================

This module handles configuration loading for the delay effect loop.

Configuration Sources (in order of precedence):
    1. Command-line flags (applied by delaycam.main)
    2. Environment variables
    3. YAML config file (--config, or delaycam.yaml in the working directory)
    4. Default values (lowest priority)

Environment Variable Mapping:
    DELAYCAM_QUEUE_SIZE      -> delay.queue_size
    DELAYCAM_SKIP_IN         -> delay.skip_in
    DELAYCAM_SKIP_OUT        -> delay.skip_out
    DELAYCAM_EFFECT          -> effect.mode
    DELAYCAM_MORPH_SIZE      -> effect.morph_size
    DELAYCAM_BACKGROUND_SUBTRACTOR -> effect.background_subtractor
    DELAYCAM_DEVICE          -> capture.device
    DELAYCAM_FRAME_INTERVAL  -> display.frame_interval
    DELAYCAM_LOG_LEVEL       -> logging.level

Example:
    from delaycam.config import load_config

    settings = load_config()
    print(settings.delay.queue_size)
    print(settings.effect.mode)
"""

import os
import logging
from enum import Enum
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from delaycam.signals.background import BackgroundSubtractorKind


logger = logging.getLogger(__name__)


DEFAULT_CONFIG_FILENAMES = ("delaycam.yaml", "delaycam.yml")


# =============================================================================
# Configuration Models
# =============================================================================

class EffectMode(str, Enum):
    """Which derived signal is delayed and how it is composited."""

    MASK = "mask"
    FLOW = "flow"


class DelayConfig(BaseModel):
    """Frame delay buffer configuration."""

    queue_size: int = Field(
        default=30,
        ge=1,
        description="Number of frames to queue",
    )
    skip_in: int = Field(
        default=1,
        ge=1,
        description="Store only every skip_in-th captured frame",
    )
    skip_out: int = Field(
        default=3,
        description="Read cursor step per displayed frame (can be negative)",
    )

    @field_validator("skip_out")
    @classmethod
    def skip_out_non_zero(cls, value: int) -> int:
        if value == 0:
            raise ValueError("'skip_out' must be non-zero")
        return value


class EffectConfig(BaseModel):
    """Effect selection and derived-signal parameters."""

    mode: EffectMode = Field(
        default=EffectMode.MASK,
        description="Effect: 'mask' (background subtraction) or 'flow' (optical flow)",
    )
    morph_size: int = Field(
        default=5,
        ge=1,
        description="Size of morphological close applied to the foreground mask",
    )
    background_subtractor: BackgroundSubtractorKind = Field(
        default=BackgroundSubtractorKind.MOG2,
        description="Background subtraction algorithm (mask effect only)",
    )
    debug_background: bool = Field(
        default=False,
        description="Black out the delayed background (mask effect only)",
    )

    @field_validator("background_subtractor", mode="before")
    @classmethod
    def normalize_subtractor(cls, value):
        if isinstance(value, str):
            return value.upper()
        return value


class CaptureConfig(BaseModel):
    """Capture device configuration."""

    device: int = Field(default=0, ge=0, description="Video capture device index")


class DisplayConfig(BaseModel):
    """Display window configuration."""

    frame_interval: int = Field(
        default=33,
        ge=0,
        description="Milliseconds to wait per displayed frame (1/fps)",
    )
    window_name: str = Field(default="Display window", description="Window title")
    quit_key: str = Field(
        default="q",
        min_length=1,
        max_length=1,
        description="Key that stops the loop",
    )


class LogFormat(str, Enum):
    """Log line layout."""

    TEXT = "text"
    JSON = "json"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: LogFormat = Field(default=LogFormat.TEXT, description="Log format: json or text")


class PipelineConfig(BaseModel):
    """Effect loop configuration."""

    log_every_n_frames: int = Field(
        default=300,
        ge=1,
        description="Iterations between metrics log lines",
    )


class Settings(BaseModel):
    """
    Main settings class for delaycam.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    delay: DelayConfig = Field(default_factory=DelayConfig)
    effect: EffectConfig = Field(default_factory=EffectConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def check_mask_skip_out(self) -> "Settings":
        # Backward scanning is only meaningful for flow fields
        if self.effect.mode is EffectMode.MASK and self.delay.skip_out < 1:
            raise ValueError("'skip_out' must be >0 for the mask effect")
        return self


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config_data(config_path: Optional[str] = None) -> dict:
    """
    Load raw configuration from YAML file and environment variables.

    Args:
        config_path: Path to YAML file. If None, searches the working directory.

    Returns:
        Nested dict ready for Settings.model_validate

    Raises:
        FileNotFoundError: If an explicit config_path does not exist
        ValueError: If the file is not valid YAML or not a mapping of sections
    """
    if config_path is None:
        for name in DEFAULT_CONFIG_FILENAMES:
            path = Path(name)
            if path.exists():
                config_path = str(path)
                break
    elif not Path(config_path).exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    config_data = {}
    if config_path:
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            try:
                config_data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"invalid config file {config_path}: {e}") from e
        if not isinstance(config_data, dict):
            raise ValueError(
                f"invalid config file {config_path}: top level must be a mapping, "
                f"got {type(config_data).__name__}"
            )
    else:
        logger.debug("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)
    return config_data


def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to YAML file. If None, searches the working directory.

    Returns:
        Settings: Loaded configuration
    """
    return Settings.model_validate(load_config_data(config_path))


def config_section(config_data: dict, section: str) -> dict:
    """
    Return the nested dict for ``section``, creating it when missing.

    A section left empty in YAML (``delay:``) loads as None and is replaced
    by an empty dict.

    Raises:
        ValueError: If the section holds something other than a mapping
    """
    value = config_data.get(section)
    if value is None:
        value = config_data[section] = {}
    elif not isinstance(value, dict):
        raise ValueError(
            f"config section '{section}' must be a mapping, got {type(value).__name__}"
        )
    return value


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Delay buffer
    if env_size := os.environ.get("DELAYCAM_QUEUE_SIZE"):
        config_section(config_data, "delay")["queue_size"] = int(env_size)
    if env_skip_in := os.environ.get("DELAYCAM_SKIP_IN"):
        config_section(config_data, "delay")["skip_in"] = int(env_skip_in)
    if env_skip_out := os.environ.get("DELAYCAM_SKIP_OUT"):
        config_section(config_data, "delay")["skip_out"] = int(env_skip_out)

    # Effect
    if env_effect := os.environ.get("DELAYCAM_EFFECT"):
        config_section(config_data, "effect")["mode"] = env_effect
    if env_morph := os.environ.get("DELAYCAM_MORPH_SIZE"):
        config_section(config_data, "effect")["morph_size"] = int(env_morph)
    if env_bg := os.environ.get("DELAYCAM_BACKGROUND_SUBTRACTOR"):
        config_section(config_data, "effect")["background_subtractor"] = env_bg

    # Capture and display
    if env_device := os.environ.get("DELAYCAM_DEVICE"):
        config_section(config_data, "capture")["device"] = int(env_device)
    if env_interval := os.environ.get("DELAYCAM_FRAME_INTERVAL"):
        config_section(config_data, "display")["frame_interval"] = int(env_interval)

    # Logging
    if env_log := os.environ.get("DELAYCAM_LOG_LEVEL"):
        config_section(config_data, "logging")["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format is LogFormat.JSON:
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
