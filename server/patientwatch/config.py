"""Server configuration.

Loads from config.yaml if present, with environment variable overrides.
Environment variables use the pattern: PW_<SECTION>_<KEY> (uppercase).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8000
    env: str = "dev"  # "dev" or "prod"


@dataclass
class SimulationConfig:
    enabled: bool = True  # never runs when server.env is "prod"
    interval_seconds: float = 8.0
    fall_probability: float = 0.02
    fall_clear_probability: float = 0.5
    emergency_resolve_probability: float = 0.1
    seed: int | None = None
    seed_demo_patients: bool = True


@dataclass
class HistoryConfig:
    capacity: int = 500


@dataclass
class IngestConfig:
    clamp_vitals: bool = False


@dataclass
class LimitsConfig:
    active_window_seconds: float = 120.0


@dataclass
class LoggingConfig:
    level: str = "info"
    format: str = "console"  # "console" or "json"


@dataclass
class AppConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    ingest: IngestConfig = field(default_factory=IngestConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def simulation_active(self) -> bool:
        return self.simulation.enabled and self.server.env != "prod"


def _apply_env_overrides(config: AppConfig) -> None:
    """Override config values from environment variables."""
    mapping = {
        "PW_SERVER_HOST": lambda v: setattr(config.server, "host", v),
        "PW_SERVER_PORT": lambda v: setattr(config.server, "port", int(v)),
        "PW_SERVER_ENV": lambda v: setattr(config.server, "env", v),
        "PW_SIMULATION_ENABLED": lambda v: setattr(config.simulation, "enabled", _parse_bool(v)),
        "PW_SIMULATION_INTERVAL": lambda v: setattr(config.simulation, "interval_seconds", float(v)),
        "PW_SIMULATION_SEED": lambda v: setattr(config.simulation, "seed", int(v)),
        "PW_SIMULATION_SEED_DEMO": lambda v: setattr(config.simulation, "seed_demo_patients", _parse_bool(v)),
        "PW_HISTORY_CAPACITY": lambda v: setattr(config.history, "capacity", int(v)),
        "PW_INGEST_CLAMP_VITALS": lambda v: setattr(config.ingest, "clamp_vitals", _parse_bool(v)),
        "PW_LIMITS_ACTIVE_WINDOW": lambda v: setattr(config.limits, "active_window_seconds", float(v)),
        "PW_LOG_LEVEL": lambda v: setattr(config.logging, "level", v),
        "PW_LOG_FORMAT": lambda v: setattr(config.logging, "format", v),
    }
    for env_key, setter in mapping.items():
        val = os.environ.get(env_key)
        if val is not None:
            setter(val)


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load configuration from YAML file + environment overrides."""
    config = AppConfig()

    if config_path is None:
        config_path = Path("config.yaml")
    else:
        config_path = Path(config_path)

    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}

        for section in ("server", "simulation", "history", "ingest", "limits", "logging"):
            target = getattr(config, section)
            for k, v in (raw.get(section) or {}).items():
                if hasattr(target, k):
                    setattr(target, k, v)

    # Environment overrides always win
    _apply_env_overrides(config)
    return config
