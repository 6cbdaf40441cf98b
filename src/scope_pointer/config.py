"""
Configuration

Settings are plain frozen dataclasses passed explicitly into every
computation. They are built from a YAML file (config.yaml next to this module,
or the file named by SCOPE_POINTER_CONFIG) merged over DEFAULT_CONFIG, and
validated once at this boundary.
"""

from __future__ import annotations

import copy
import logging
import math
import os
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

import yaml

from .smoothing import SmoothingStrength

logger = logging.getLogger(__name__)

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
CONFIG_PATH = os.path.join(BASE_DIR, "config.yaml")
CONFIG_ENV = "SCOPE_POINTER_CONFIG"

HEADING_METHODS = ("tilt", "vector")
FORWARD_AXES = ("x", "y", "z")

DEFAULT_CONFIG: Dict[str, Any] = {
    "settings": {
        "flip_altitude": False,
        "heading_offset": 0.0,
        "use_true_north": True,
        "smoothing_strength": "med",
        "heading_method": "tilt",
        "auto_location": True,
        "manual_lat": None,
        "manual_lon": None,
    },
    "mounting": {"forward_axis": "y", "forward_sign": 1},
    "session": {"target_interval_s": 2.0},
    "simulator": {
        "dip_deg": 60.0,
        "field_ut": 50.0,
        "accel_noise": 0.02,
        "mag_noise": 0.3,
        "slew_rate_deg_s": 15.0,
        "latitude": 50.1822,
        "longitude": 19.7925,
    },
}


class ConfigError(ValueError):
    """Raised when a configuration value violates its contract."""


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    raise ConfigError(f"{key} must be a boolean, got {value!r}")


def _as_float(value: Any, key: str, optional: bool = False) -> Optional[float]:
    if value is None or value == "":
        if optional:
            return None
        raise ConfigError(f"{key} is required")
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be a number, got {value!r}")
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be a number, got {value!r}") from None
    if not math.isfinite(result):
        raise ConfigError(f"{key} must be finite, got {value!r}")
    return result


@dataclass(frozen=True)
class Settings:
    """
    Orientation-relevant user settings.

    Attributes:
        flip_altitude (bool): Negate pitch and altitude (device mounted upside down).
        heading_offset (float): Degrees added to the magnetic heading. This is
            where the local magnetic declination goes.
        use_true_north (bool): Informational; true north is obtained through
            heading_offset.
        smoothing_strength (SmoothingStrength): Selects alpha and tick cadence.
        heading_method (str): "tilt" (tilt-compensated compass) or "vector"
            (cross-product method).
        auto_location (bool): Use the GPS fix; when False the manual
            coordinates are used if both are set.
        manual_lat (float | None): Manual latitude in degrees.
        manual_lon (float | None): Manual longitude in degrees, east positive.
    """

    flip_altitude: bool = False
    heading_offset: float = 0.0
    use_true_north: bool = True
    smoothing_strength: SmoothingStrength = SmoothingStrength.MED
    heading_method: str = "tilt"
    auto_location: bool = True
    manual_lat: Optional[float] = None
    manual_lon: Optional[float] = None

    def __post_init__(self):
        if not isinstance(self.smoothing_strength, SmoothingStrength):
            raise ConfigError(
                f"smoothing_strength must be a SmoothingStrength, "
                f"got {self.smoothing_strength!r}"
            )
        if self.heading_method not in HEADING_METHODS:
            raise ConfigError(
                f"heading_method must be one of {HEADING_METHODS}, "
                f"got {self.heading_method!r}"
            )
        if not math.isfinite(self.heading_offset):
            raise ConfigError("heading_offset must be finite")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        """Builds validated settings from a config mapping (missing keys use defaults)."""
        d = dict(DEFAULT_CONFIG["settings"])
        d.update(data or {})
        unknown = set(d) - set(DEFAULT_CONFIG["settings"])
        if unknown:
            raise ConfigError(f"Unknown settings: {', '.join(sorted(unknown))}")
        try:
            strength = SmoothingStrength.parse(d["smoothing_strength"])
        except ValueError as e:
            raise ConfigError(str(e)) from None
        return cls(
            flip_altitude=_as_bool(d["flip_altitude"], "flip_altitude"),
            heading_offset=_as_float(d["heading_offset"], "heading_offset"),
            use_true_north=_as_bool(d["use_true_north"], "use_true_north"),
            smoothing_strength=strength,
            heading_method=str(d["heading_method"]),
            auto_location=_as_bool(d["auto_location"], "auto_location"),
            manual_lat=_as_float(d["manual_lat"], "manual_lat", optional=True),
            manual_lon=_as_float(d["manual_lon"], "manual_lon", optional=True),
        )

    def with_changes(self, **changes: Any) -> "Settings":
        return replace(self, **changes)


@dataclass(frozen=True)
class MountingConfig:
    """
    Fixed mounting of the device on the telescope tube.

    Attributes:
        forward_axis (str): Device axis pointing along the tube ("x", "y" or "z").
        forward_sign (int): +1 or -1.
    """

    forward_axis: str = "y"
    forward_sign: int = 1

    def __post_init__(self):
        if self.forward_axis not in FORWARD_AXES:
            raise ConfigError(
                f"forward_axis must be one of {FORWARD_AXES}, got {self.forward_axis!r}"
            )
        if self.forward_sign not in (1, -1):
            raise ConfigError(f"forward_sign must be 1 or -1, got {self.forward_sign!r}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MountingConfig":
        d = dict(DEFAULT_CONFIG["mounting"])
        d.update(data or {})
        try:
            sign = int(d["forward_sign"])
        except (TypeError, ValueError):
            raise ConfigError(
                f"forward_sign must be 1 or -1, got {d['forward_sign']!r}"
            ) from None
        return cls(forward_axis=str(d["forward_axis"]).lower(), forward_sign=sign)


def merge_dicts(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(a)
    for k, v in b.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = merge_dicts(out[k], v)
        else:
            out[k] = v
    return out


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Loads configuration from a YAML file merged over DEFAULT_CONFIG.

    A missing or unreadable file yields the defaults.
    """
    path = path or os.environ.get(CONFIG_ENV) or CONFIG_PATH
    if os.path.exists(path):
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ConfigError(f"Top level of {path} must be a mapping")
            return merge_dicts(DEFAULT_CONFIG, data)
        except (OSError, yaml.YAMLError, ConfigError) as e:
            logger.error("Error loading config %s: %s", path, e)
    return merge_dicts(DEFAULT_CONFIG, {})


def settings_from_config(config: Dict[str, Any]) -> Settings:
    return Settings.from_dict(config.get("settings", {}))


def mounting_from_config(config: Dict[str, Any]) -> MountingConfig:
    return MountingConfig.from_dict(config.get("mounting", {}))
