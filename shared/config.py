"""
WaveLens Configuration Management
==================================

Centralized configuration for the WaveLens WiFi-analysis console using
slotted dataclasses loaded from a TOML file.

Each section of the TOML file maps onto one dataclass; missing keys fall
back to the dataclass defaults and unknown keys are ignored, so older
config files keep loading after new options are introduced.

Example ``config.toml``::

    [global]
    log_level = "DEBUG"
    log_file = "logs/wavelens.log"

    [scan]
    interface = "wlan0mon"
    duration = 15.0

    [capture]
    interface = "eth0"
    poll_interval = 3.0
    page_size = 20
"""

from __future__ import annotations

import tomllib
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Optional


# Project-root config.toml, used when no path is given
_DEFAULT_CONFIG_PATH: Path = Path(__file__).resolve().parent.parent / "config.toml"


# Section configs


@dataclass(slots=True)
class ScanConfig:
    """Configuration for beacon scanning.

    ``duration`` bounds one scan in seconds; progress batches are pushed
    every ``progress_interval`` seconds and only networks heard within
    ``freshness_window`` seconds are reported.
    """

    interface: str = "wlan0mon"
    duration: float = 10.0
    progress_interval: float = 0.5
    freshness_window: float = 10.0


@dataclass(slots=True)
class CaptureConfig:
    """Configuration for packet capture sessions and the packet view."""

    interface: str = "eth0"
    poll_interval: float = 3.0
    page_size: int = 10
    bpf_filter: str = ""


@dataclass(slots=True)
class SimulationConfig:
    """Parameters for the simulated radio backend (``--simulate``)."""

    seed: Optional[int] = None
    network_count: int = 12
    packets_per_poll: int = 8


# Global settings


@dataclass(slots=True)
class GlobalConfig:
    """Global settings: logging verbosity, log destination, debug mode."""

    log_level: str = "INFO"
    log_file: str = ""
    log_json: bool = False
    debug: bool = False
    version: str = "1.0.0"


# Master config

# TOML table name -> attribute on WaveLensConfig
_SECTIONS: dict[str, str] = {
    "global": "global_settings",
    "scan": "scan",
    "capture": "capture",
    "simulation": "simulation",
}


@dataclass(slots=True)
class WaveLensConfig:
    """All WaveLens settings, one attribute per TOML table.

    Usage:
        >>> config = WaveLensConfig.load()
        >>> config.capture.poll_interval
        3.0
    """

    global_settings: GlobalConfig = field(default_factory=GlobalConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)

    @classmethod
    def load(cls, path: str | Path | None = None) -> WaveLensConfig:
        """Read settings from *path*, or from the project ``config.toml``.

        A missing default file yields the built-in defaults; a missing
        file the caller named raises ``FileNotFoundError``. Malformed TOML
        surfaces as ``tomllib.TOMLDecodeError``.
        """
        source = _DEFAULT_CONFIG_PATH if path is None else Path(path)
        if not source.is_file():
            if path is None:
                return cls()
            raise FileNotFoundError(f"Configuration file not found: {source}")

        raw = tomllib.loads(source.read_text(encoding="utf-8"))
        config = cls()
        for table, attr in _SECTIONS.items():
            section = getattr(config, attr)
            setattr(config, attr, _merge_section(section, raw.get(table, {})))
        return config

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _merge_section(section: Any, values: dict[str, Any]) -> Any:
    """Return a copy of *section* with the known keys of *values* applied."""
    known = {f.name for f in fields(section)}
    return replace(section, **{k: v for k, v in values.items() if k in known})


_cached_config: Optional[WaveLensConfig] = None


def get_config(path: str | Path | None = None) -> WaveLensConfig:
    """Load the configuration once and hand out the same instance afterwards.

    Passing *path* always reloads.
    """
    global _cached_config
    if _cached_config is None or path is not None:
        _cached_config = WaveLensConfig.load(path)
    return _cached_config
