"""
Centralized configuration manager.
Loads config/config.yaml and provides dotted-path access with defaults.

Every component takes a plain dict section and applies its own defaults,
so a missing file or section only changes which values are tuned, never
whether the core runs.
"""

import os
import yaml
import logging

logger = logging.getLogger(__name__)

_BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))
_CONFIG_DIR = os.path.join(_BASE_DIR, "config")

# Schema: sections and the expected types of their critical fields
_CONFIG_SCHEMA = {
    "recognition": {
        "instant_gestures": list,
        "hold": dict,
        "gesture": dict,
        "swipe": dict,
    },
    "focus": {
        "threshold": float,
        "smoothing_alpha": float,
        "buffer_size": int,
        "min_votes": int,
        "jitter": bool,
    },
    "session": {
        "pause_toggle": bool,
        "distraction_cooldown_ms": int,
        "start_after_end_cooldown_ms": int,
        "palm_absence_frames": int,
        "camera_pause_ms": int,
        "tick_interval_ms": int,
    },
    "camera": {
        "device_id": int,
        "width": int,
        "height": int,
    },
    "mediapipe": {
        "min_detection_confidence": float,
        "min_tracking_confidence": float,
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base dict."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """Singleton configuration manager."""

    _instance = None
    _data = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def load(self, config_path=None, overrides: dict = None):
        """Load configuration from YAML, then apply ``overrides`` on top."""
        config_path = config_path or os.path.join(_CONFIG_DIR, "config.yaml")

        try:
            with open(config_path, "r") as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                logger.warning("Config file %s is not a mapping, using defaults", config_path)
                data = {}
            else:
                logger.info("Loaded config from %s", config_path)
        except FileNotFoundError:
            logger.warning("Config file not found: %s, using defaults", config_path)
            data = {}
        except yaml.YAMLError as e:
            logger.warning("Config file %s is malformed (%s), using defaults", config_path, e)
            data = {}

        if overrides:
            data = _deep_merge(data, overrides)
        self._data = data

        self._validate()
        return self

    def _validate(self):
        """Validate critical config fields against schema."""
        warnings = []
        for section_name, fields in _CONFIG_SCHEMA.items():
            section = self._data.get(section_name)
            if section is None:
                logger.debug("Config section '%s' not set, using defaults", section_name)
                continue
            if not isinstance(section, dict):
                warnings.append(f"Section '{section_name}' should be a dict, got {type(section).__name__}")
                continue
            for field_name, expected_type in fields.items():
                if field_name in section:
                    value = section[field_name]
                    # Allow int where float is expected
                    if expected_type is float and isinstance(value, (int, float)) \
                            and not isinstance(value, bool):
                        continue
                    if expected_type is int and isinstance(value, bool):
                        warnings.append(f"{section_name}.{field_name}: expected int, got bool")
                        continue
                    if not isinstance(value, expected_type):
                        warnings.append(
                            f"{section_name}.{field_name}: expected {expected_type.__name__}, "
                            f"got {type(value).__name__} ({value!r})"
                        )

        if warnings:
            for w in warnings:
                logger.warning("Config validation: %s", w)
        else:
            logger.debug("Config validation passed")
        return warnings

    def get(self, key_path: str, default=None):
        """Get nested config value using dot notation: 'session.camera_pause_ms'."""
        keys = key_path.split(".")
        value = self._data
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def get_section(self, section: str) -> dict:
        """Get an entire config section."""
        value = self._data.get(section, {})
        return value if isinstance(value, dict) else {}

    @property
    def data(self) -> dict:
        return self._data

    @property
    def recognition(self) -> dict:
        return self.get_section("recognition")

    @property
    def focus(self) -> dict:
        return self.get_section("focus")

    @property
    def session(self) -> dict:
        return self.get_section("session")

    @property
    def attention(self) -> dict:
        return self.get_section("attention")

    @property
    def camera(self) -> dict:
        return self.get_section("camera")

    @property
    def mediapipe(self) -> dict:
        return self.get_section("mediapipe")

    @property
    def performance(self) -> dict:
        return self.get_section("performance")

    @property
    def logging(self) -> dict:
        return self.get_section("logging")

    @property
    def base_dir(self) -> str:
        return _BASE_DIR

    @classmethod
    def reset(cls):
        """Reset singleton instance (for testing)."""
        cls._instance = None
        cls._data = {}
