"""
Configuration.

This module provides the configuration sections for a control session
and loads them from YAML.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from stickpilot.core.exceptions import ConfigurationError
from stickpilot.models.control_mode import VirtualStickControlMode

logger = logging.getLogger(__name__)


@dataclass
class JoystickConfig:
    """On-screen joystick geometry."""
    size: float = 120.0
    knob_size: float = 50.0


@dataclass
class DispatchConfig:
    """Stick command rate limiting."""
    min_interval: float = 0.1  # 10 Hz
    deadzone: float = 0.02


@dataclass
class PollingConfig:
    """Readiness and telemetry polling cadence (seconds)."""
    readiness_interval: float = 5.0
    altitude_interval: float = 2.0


@dataclass
class LogConfig:
    """Debug log buffer and logger levels."""
    capacity: int = 100
    level: str = "INFO"
    autopilot_level: str = "WARNING"


@dataclass
class ConnectionConfig:
    """MAVLink connection."""
    connection_string: str = "udpin:0.0.0.0:14550"
    baud: int = 57600
    source_system: int = 255
    heartbeat_timeout: float = 5.0
    takeoff_altitude: float = 5.0  # metres
    keepalive_interval: float = 0.2  # override repeat


@dataclass
class ControlModeConfig:
    """Virtual stick control mode, by name."""
    roll_pitch: str = "VELOCITY"
    yaw: str = "ANGULAR_VELOCITY"
    vertical: str = "VELOCITY"
    coordinate_system: str = "GROUND"

    def to_mode(self) -> VirtualStickControlMode:
        return VirtualStickControlMode.from_names(
            self.roll_pitch, self.yaw, self.vertical, self.coordinate_system
        )


@dataclass
class ControlConfig:
    """Complete control session configuration."""
    joystick: JoystickConfig = field(default_factory=JoystickConfig)
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    logs: LogConfig = field(default_factory=LogConfig)
    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    control_mode: ControlModeConfig = field(default_factory=ControlModeConfig)

    def validate(self) -> "ControlConfig":
        """
        Check value ranges.

        Raises:
            ConfigurationError: On the first invalid value
        """
        if self.joystick.size <= self.joystick.knob_size:
            raise ConfigurationError(
                f"Joystick size ({self.joystick.size}) must exceed knob size "
                f"({self.joystick.knob_size})"
            )
        if self.dispatch.min_interval < 0:
            raise ConfigurationError("dispatch.min_interval cannot be negative")
        if not 0 <= self.dispatch.deadzone < 1:
            raise ConfigurationError("dispatch.deadzone must be in [0, 1)")
        if self.polling.readiness_interval <= 0 or self.polling.altitude_interval <= 0:
            raise ConfigurationError("Polling intervals must be positive")
        if self.logs.capacity < 1:
            raise ConfigurationError("logs.capacity must be at least 1")
        for name in ("level", "autopilot_level"):
            value = getattr(self.logs, name)
            if not isinstance(logging.getLevelName(value.upper()), int):
                raise ConfigurationError(f"Unknown log level for logs.{name}: {value}")
        if self.connection.heartbeat_timeout <= 0:
            raise ConfigurationError("connection.heartbeat_timeout must be positive")
        if self.connection.takeoff_altitude <= 0:
            raise ConfigurationError("connection.takeoff_altitude must be positive")
        if self.connection.keepalive_interval <= 0:
            raise ConfigurationError("connection.keepalive_interval must be positive")
        return self


def _section(cls: type, data: Any, name: str) -> Any:
    if data is None:
        return cls()
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Section '{name}' must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        logger.warning("Ignoring unknown keys in '%s': %s", name, ", ".join(sorted(unknown)))
    return cls(**{k: v for k, v in data.items() if k in known})


def config_from_dict(data: Mapping[str, Any]) -> ControlConfig:
    """Build a validated config from a mapping; missing sections keep defaults."""
    config = ControlConfig(
        joystick=_section(JoystickConfig, data.get("joystick"), "joystick"),
        dispatch=_section(DispatchConfig, data.get("dispatch"), "dispatch"),
        polling=_section(PollingConfig, data.get("polling"), "polling"),
        logs=_section(LogConfig, data.get("logs"), "logs"),
        connection=_section(ConnectionConfig, data.get("connection"), "connection"),
        control_mode=_section(ControlModeConfig, data.get("control_mode"), "control_mode"),
    )
    return config.validate()


def load_config(path: str | Path | None = None) -> ControlConfig:
    """
    Load configuration from a YAML file.

    Args:
        path: File to read; defaults are returned when None

    Raises:
        ConfigurationError: If the file cannot be parsed or holds invalid values
    """
    if path is None:
        return ControlConfig().validate()

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot load config {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Config {path} must contain a mapping")
    return config_from_dict(data)
