"""
BRIDGE SETTINGS

This module handles bridge configuration parsing and validation.

CRITICAL RULES:
- Settings are read ONCE at startup
- Invalid settings → ConfigurationError (no partial settings)
- Unknown keys are rejected
- The capability flag is NOT a setting; it is probed and passed explicitly

WHAT THIS IS:
- YAML settings loader
- Field validation (pydantic)
- Defaults matching the host's control surface (540 rows, inference on)

WHAT THIS IS NOT:
- Hot-reload of settings
- Hardware detection (see hardware.py)
"""

import os
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError

# Environment variable naming a settings file for the CLI
CONFIG_ENV_VAR = "INFERENCE_BRIDGE_CONFIG"


class BridgeSettings(BaseModel):
    """
    Validated bridge configuration.

    IMMUTABLE after parsing.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", protected_namespaces=())

    target_height: int = Field(540, gt=0, description="Model input height in pixels; width derives from the screen aspect ratio")
    inference_enabled: bool = Field(True, description="User toggle; forced off when hardware is incompatible")
    models_dir: str = Field("models", description="Directory scanned (non-recursively) for model description files")
    model_extension: str = Field(".xml", description="Extension identifying model description files")
    model_index: int = Field(0, ge=0, description="Index into the discovered model list")
    device_index: int = Field(0, ge=0, description="Backend device index; 0 is the default device")
    interpolation: Literal["nearest", "linear", "area", "cubic"] = Field(
        "linear",
        description="Resampling filter used by capture and reintegrate"
    )
    flip_vertical: bool = Field(False, description="Source frames have a bottom-left origin")
    compatible_vendors: List[str] = Field(
        default_factory=lambda: ["Intel"],
        description="Vendor substrings that mark CPU/GPU names as compatible"
    )
    log_level: str = Field("INFO", description="loguru level used by the CLI")

    @field_validator("model_extension")
    @classmethod
    def _normalize_extension(cls, value: str) -> str:
        value = value.strip().lower()
        if not value:
            raise ValueError("model_extension must not be empty")
        if not value.startswith("."):
            value = "." + value
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        return value.strip().upper()

    @classmethod
    def from_yaml_file(cls, yaml_path: str) -> "BridgeSettings":
        """
        Parse and validate a settings YAML file.

        An empty file yields the defaults.

        Raises:
            ConfigurationError: If the file is missing, is not a YAML mapping,
                or fails validation
        """
        try:
            with open(yaml_path, "r") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError as e:
            raise ConfigurationError(f"Settings file not found: {yaml_path}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {yaml_path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Settings file is not a YAML mapping: {yaml_path}")

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid settings in {yaml_path}: {e}") from e


def load_settings(path: Optional[str] = None) -> BridgeSettings:
    """
    Load settings from `path`, else from $INFERENCE_BRIDGE_CONFIG, else defaults.
    """
    path = path or os.environ.get(CONFIG_ENV_VAR)
    if not path:
        return BridgeSettings()
    return BridgeSettings.from_yaml_file(path)


# EXAMPLE settings.yaml:
#
# target_height: 540
# inference_enabled: true
# models_dir: StreamingAssets/models
# model_index: 0
# device_index: 0
# interpolation: linear
# compatible_vendors:
#   - Intel
