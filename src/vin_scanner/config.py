"""
Scanner Configuration - Centralized Settings
============================================

All configurable parameters in one place.
Supports environment variable overrides and JSON/YAML config files.

Usage:
    from vin_scanner.config import get_config
    config = get_config()
    print(config.detection.iou_threshold)

Environment Variables:
    VIN_MODEL_INPUT_SIZE=640
    VIN_CONF_FLOOR=0.25
    VIN_IOU_THRESHOLD=0.45
    VIN_COORDS_NORMALIZED=true
    VIN_MIN_DIGITS=5
    VIN_MAX_PERMUTATION_DEPTH=1
    VIN_CHECKSUM_POLICY=strict
    VIN_LOG_LEVEL=DEBUG
    VIN_LOG_FILE=/tmp/vin_scanner.log
"""

import os
import json
import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .core.exceptions import ConfigurationError
from .core.validator import ChecksumPolicy

logger = logging.getLogger(__name__)


def _get_env_float(key: str, default: float) -> float:
    """Get float from environment variable."""
    value = os.environ.get(key)
    if value is not None:
        try:
            return float(value)
        except ValueError:
            logger.warning(f"Invalid float for {key}: {value}, using default {default}")
    return default


def _get_env_int(key: str, default: int) -> int:
    """Get int from environment variable."""
    value = os.environ.get(key)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            logger.warning(f"Invalid int for {key}: {value}, using default {default}")
    return default


def _get_env_bool(key: str, default: bool) -> bool:
    """Get bool from environment variable."""
    value = os.environ.get(key)
    if value is not None:
        return value.lower() in ('true', '1', 'yes', 'on')
    return default


def _get_env_str(key: str, default: str) -> str:
    """Get string from environment variable."""
    return os.environ.get(key, default)


@dataclass
class DetectionConfig:
    """Detection decoding and NMS configuration."""

    # Side of the detector's square input
    model_input_size: int = field(
        default_factory=lambda: _get_env_int('VIN_MODEL_INPUT_SIZE', 640)
    )

    # Requested thresholds are never applied below this
    confidence_floor: float = field(
        default_factory=lambda: _get_env_float('VIN_CONF_FLOOR', 0.25)
    )

    iou_threshold: float = field(
        default_factory=lambda: _get_env_float('VIN_IOU_THRESHOLD', 0.45)
    )

    # Tensor geometry is in [0, 1] and scaled by model_input_size
    coordinates_normalized: bool = field(
        default_factory=lambda: _get_env_bool('VIN_COORDS_NORMALIZED', True)
    )


@dataclass
class ValidationConfig:
    """VIN text validation configuration."""

    min_digits: int = field(
        default_factory=lambda: _get_env_int('VIN_MIN_DIGITS', 5)
    )
    max_permutation_depth: int = field(
        default_factory=lambda: _get_env_int('VIN_MAX_PERMUTATION_DEPTH', 1)
    )
    checksum_policy: str = field(
        default_factory=lambda: _get_env_str('VIN_CHECKSUM_POLICY', ChecksumPolicy.STRICT.value)
    )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = field(
        default_factory=lambda: _get_env_str('VIN_LOG_LEVEL', 'INFO')
    )
    format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    date_format: str = '%Y-%m-%d %H:%M:%S'

    # File logging (optional)
    log_file: Optional[str] = field(
        default_factory=lambda: os.environ.get('VIN_LOG_FILE')
    )


# Expected value types, checked before ranges so file input fails cleanly
_FIELD_TYPES = (
    ('detection', 'model_input_size', (int,)),
    ('detection', 'confidence_floor', (int, float)),
    ('detection', 'iou_threshold', (int, float)),
    ('detection', 'coordinates_normalized', (bool,)),
    ('validation', 'min_digits', (int,)),
    ('validation', 'max_permutation_depth', (int,)),
    ('validation', 'checksum_policy', (str,)),
    ('logging', 'level', (str,)),
)


@dataclass
class ScannerConfig:
    """Complete scanner configuration."""

    detection: DetectionConfig = field(default_factory=DetectionConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> 'ScannerConfig':
        """
        Check value types and ranges.

        Raises:
            ConfigurationError: If any value has the wrong type or is out of range
        """
        for section, key, expected in _FIELD_TYPES:
            value = getattr(getattr(self, section), key)
            # bool is an int subclass but never a valid number here
            if isinstance(value, bool) != (expected == (bool,)) or not isinstance(value, expected):
                names = "/".join(t.__name__ for t in expected)
                raise ConfigurationError(
                    f"{section}.{key} must be {names}, got {type(value).__name__} ({value!r})"
                )

        det = self.detection
        if det.model_input_size <= 0:
            raise ConfigurationError(f"model_input_size must be positive, got {det.model_input_size}")
        if not 0.0 <= det.confidence_floor <= 1.0:
            raise ConfigurationError(f"confidence_floor must be in [0, 1], got {det.confidence_floor}")
        if not 0.0 <= det.iou_threshold <= 1.0:
            raise ConfigurationError(f"iou_threshold must be in [0, 1], got {det.iou_threshold}")

        val = self.validation
        if not 0 <= val.min_digits <= 17:
            raise ConfigurationError(f"min_digits must be in [0, 17], got {val.min_digits}")
        if val.max_permutation_depth < 0:
            raise ConfigurationError(
                f"max_permutation_depth must be >= 0, got {val.max_permutation_depth}"
            )
        valid_policies = [p.value for p in ChecksumPolicy]
        policy = getattr(val.checksum_policy, 'value', val.checksum_policy)
        if str(policy).lower() not in valid_policies:
            raise ConfigurationError(
                f"Invalid checksum policy: '{val.checksum_policy}'. Valid policies: {valid_policies}"
            )
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    def save(self, path: Union[str, Path]):
        """Save configuration to JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'ScannerConfig':
        """
        Load configuration from a JSON or YAML file.

        Unknown keys are ignored; missing keys keep their defaults.
        """
        path = Path(path)
        with open(path) as f:
            if path.suffix.lower() in ('.yaml', '.yml'):
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")

        config = cls()

        for section in ('detection', 'validation', 'logging'):
            if section not in data:
                continue
            if not isinstance(data[section], dict):
                raise ConfigurationError(
                    f"Config section '{section}' must be a mapping, got {type(data[section]).__name__}"
                )
            target = getattr(config, section)
            for key, value in data[section].items():
                if hasattr(target, key):
                    setattr(target, key, value)
                else:
                    logger.warning(f"Ignoring unknown config key '{section}.{key}'")

        return config.validate()


# Global configuration instance (singleton pattern)
_config: Optional[ScannerConfig] = None


def get_config() -> ScannerConfig:
    """
    Get the global configuration instance.

    Creates a new instance on first call, returns cached instance thereafter.
    """
    global _config
    if _config is None:
        _config = ScannerConfig().validate()
    return _config


def reset_config():
    """Reset configuration to defaults (useful for testing)."""
    global _config
    _config = None


def setup_logging(config: Optional[LoggingConfig] = None):
    """Configure logging based on settings."""
    config = config or LoggingConfig()
    level = getattr(logging, config.level.upper(), logging.INFO)

    handlers = [logging.StreamHandler()]

    if config.log_file:
        handlers.append(logging.FileHandler(config.log_file))

    logging.basicConfig(
        level=level,
        format=config.format,
        datefmt=config.date_format,
        handlers=handlers,
    )
