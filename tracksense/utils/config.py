"""
Configuration management for TrackSense.

Loads and validates configuration from YAML files with environment
variable interpolation support. Every empirically tuned analysis constant
has a default in ``get_default_config()`` so it can be changed without
touching the algorithms.
"""

import copy
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from tracksense.utils.errors import ConfigurationError


class ConfigManager:
    """
    Manages configuration loaded from YAML files.

    Features:
    - YAML configuration loading
    - Environment variable interpolation (${VAR_NAME}), with .env support
    - Nested key access with dot notation
    - Default value support
    - Configuration validation
    """

    def __init__(self, config_dict: Optional[Dict[str, Any]] = None):
        """
        Initialize configuration manager.

        Args:
            config_dict: Optional pre-loaded configuration dictionary
        """
        self._config: Dict[str, Any] = config_dict or {}
        self._env_pattern = re.compile(r'\$\{([^}]+)\}')

    @classmethod
    def from_file(cls, file_path: Path) -> "ConfigManager":
        """
        Create ConfigManager from YAML file.

        A ``.env`` file next to the configuration file is loaded first so
        its variables are available for interpolation.

        Args:
            file_path: Path to YAML configuration file

        Returns:
            ConfigManager: Initialized with file contents

        Raises:
            ConfigurationError: If file cannot be loaded or parsed
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {file_path}",
                config_key=str(file_path)
            )

        env_path = file_path.parent / ".env"
        if env_path.exists():
            load_dotenv(env_path)

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                config_dict = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Failed to parse YAML configuration: {e}",
                config_key=str(file_path)
            ) from e

        if not isinstance(config_dict, dict):
            raise ConfigurationError(
                "Configuration root must be a mapping",
                config_key=str(file_path)
            )

        manager = cls(config_dict)
        manager._interpolate_env_vars()
        return manager

    def _interpolate_env_vars(self) -> None:
        """Replace ${ENV_VAR} patterns with environment variable values."""
        self._config = self._interpolate_value(self._config)

    def _interpolate_value(self, value: Any) -> Any:
        """Recursively interpolate environment variables in nested values."""
        if isinstance(value, dict):
            return {key: self._interpolate_value(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self._interpolate_value(item) for item in value]
        if isinstance(value, str):
            return self._interpolate_string(value)
        return value

    def _interpolate_string(self, s: str) -> str:
        """Replace ${ENV_VAR} with environment variable value."""
        def replace(match: re.Match) -> str:
            value = os.environ.get(match.group(1))
            if value is None:
                return match.group(0)  # Keep original if not found
            return value

        return self._env_pattern.sub(replace, s)

    def get(
        self,
        key: str,
        default: Any = None,
        required: bool = False
    ) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            key: Configuration key (e.g. "analysis.drops.min_gap_seconds")
            default: Default value if key not found
            required: If True, raise error when key not found

        Returns:
            Configuration value or default

        Raises:
            ConfigurationError: If required key is not found
        """
        value: Any = self._config

        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                if required:
                    raise ConfigurationError(
                        f"Required configuration key not found: {key}",
                        config_key=key
                    )
                return default

        return value

    def get_section(self, key: str) -> Dict[str, Any]:
        """
        Get an entire configuration section as a dictionary.

        Args:
            key: Section key (e.g., "analysis.tempo")

        Returns:
            Dictionary of section values (empty dict if not found)
        """
        value = self.get(key, default={})
        if not isinstance(value, dict):
            return {}
        return value

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value using dot notation.

        Example:
            config.set("performance.max_workers", 8)
        """
        keys = key.split('.')
        current = self._config

        for k in keys[:-1]:
            if k not in current or not isinstance(current[k], dict):
                current[k] = {}
            current = current[k]

        current[keys[-1]] = value

    def to_dict(self) -> Dict[str, Any]:
        """Return configuration as dictionary."""
        return copy.deepcopy(self._config)

    def validate(self, schema: Dict[str, Any]) -> None:
        """
        Validate configuration against a schema.

        Args:
            schema: Dictionary defining required keys and their types

        Raises:
            ConfigurationError: If validation fails

        Schema format:
            {
                "performance.max_workers": {"type": int, "required": True},
                "analysis.drops.max_markers": {"type": int}
            }
        """
        for key, rules in schema.items():
            value = self.get(key)
            expected_type = rules.get("type")

            if value is None:
                if rules.get("required", False):
                    raise ConfigurationError(
                        f"Required configuration missing: {key}",
                        config_key=key
                    )
                continue

            if expected_type and not isinstance(value, expected_type):
                type_name = getattr(expected_type, "__name__", str(expected_type))
                raise ConfigurationError(
                    f"Invalid type for {key}: expected {type_name}, "
                    f"got {type(value).__name__}",
                    config_key=key
                )


CONFIG_SCHEMA: Dict[str, Any] = {
    "performance.max_workers": {"type": int},
    "performance.executor": {"type": str},
    "analysis.tempo.fft_size": {"type": int},
    "analysis.tempo.hop_size": {"type": int},
    "analysis.key.fft_size": {"type": int},
    "analysis.key.hop_size": {"type": int},
    "analysis.drops.fft_size": {"type": int},
    "analysis.drops.hop_size": {"type": int},
    "analysis.drops.max_markers": {"type": int},
    "analysis.drops.min_gap_seconds": {"type": (int, float)},
    "analysis.features.fft_size": {"type": int},
    "analysis.features.hop_size": {"type": int},
}


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from file or return defaults.

    Values from the file are merged over the defaults, so a file only needs
    to contain the keys it changes.

    Args:
        config_path: Optional path to config file.
                    If None, tries "config/config.yaml"

    Returns:
        Dict[str, Any]: Configuration dictionary
    """
    if config_path is None:
        default_paths = [
            Path("config/config.yaml"),
            Path("config.yaml"),
        ]

        for path in default_paths:
            if path.exists():
                config_path = str(path)
                break

    config = get_default_config()

    if config_path:
        manager = ConfigManager.from_file(Path(config_path))
        manager.validate(CONFIG_SCHEMA)
        config = merge_config(config, manager.to_dict())

    return config


def merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def get_default_config() -> Dict[str, Any]:
    """Return default configuration values."""
    return {
        "audio": {
            "supported_formats": [".wav", ".aiff", ".aif", ".mp3", ".flac", ".ogg"],
            "max_file_size": 524288000,  # 500 MB
        },
        "analysis": {
            "tempo": {
                "fft_size": 2048,
                "hop_size": 512,
                "min_bpm": 30.0,
                "max_bpm": 300.0,
                "prior_center_bpm": 120.0,
                "prior_octave_std": 1.0,
                "autocorr_gain": 1e6,
                "fold_min_bpm": 60.0,
                "fold_max_bpm": 150.0,
                "min_frames": 10,
            },
            "key": {
                "fft_size": 8192,
                "hop_size": 4096,
                "segment_seconds": 60.0,
                "min_frequency": 50.0,
                "max_frequency": 4000.0,
            },
            "drops": {
                "fft_size": 2048,
                "hop_size": 1024,
                "window_seconds": 2.0,
                "mad_multiplier": 2.5,
                "band_weights": [0.4, 0.3, 0.2, 0.1],
                "build_weights": [0.5, 0.5],
                "build_bass_ratio": 0.5,
                "min_gap_seconds": 8.0,
                "max_markers": 8,
                "first_cue_id": 100,
                "min_frames": 10,
            },
            "features": {
                "fft_size": 2048,
                "hop_size": 1024,
                "rolloff_fraction": 0.85,
                "loud_frame_fraction": 0.1,
                "energy_weights": [0.4, 0.3, 0.3],
                "energy_bpm_range": [60.0, 200.0],
            },
            "intro_outro": {
                "window_seconds": 0.5,
                "threshold_ratio": 0.03,
            },
        },
        "performance": {
            "max_workers": 4,
            "executor": "thread",
        },
        "logging": {
            "level": "INFO",
            "format": "text",
        },
    }
