from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError
from .protocol.commands import SETTLE_S


@dataclass
class LoggingConfig:
    level: str = "INFO"
    log_file: Optional[str] = None
    csv_out: Optional[str] = None  # directory for per-run sample CSVs
    print_every: int = 100


@dataclass
class DriverConfig:
    port: Optional[str] = None
    baud: int = 115200
    frame_id: str = "imu"
    delay: float = 0.0  # seconds subtracted from every timestamp
    settle_s: float = SETTLE_S
    reinit_attempts: int = 1
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def require_port(self) -> str:
        if not self.port:
            raise ConfigError("must provide a port")
        return self.port


def _opt_str(x: Any) -> Optional[str]:
    if x is None or x == "":
        return None
    return str(x)


def config_from_dict(raw: Dict[str, Any]) -> DriverConfig:
    if not isinstance(raw, dict):
        raise ConfigError("config root must be a mapping")
    lg = raw.get("logging", {}) or {}
    if not isinstance(lg, dict):
        raise ConfigError("logging block must be a mapping")
    try:
        return DriverConfig(
            port=_opt_str(raw.get("port")),
            baud=int(raw.get("baud", 115200)),
            frame_id=str(raw.get("frame_id", "imu")),
            delay=float(raw.get("delay", 0.0)),
            settle_s=float(raw.get("settle_s", SETTLE_S)),
            reinit_attempts=int(raw.get("reinit_attempts", 1)),
            logging=LoggingConfig(
                level=str(lg.get("level", "INFO")),
                log_file=_opt_str(lg.get("log_file")),
                csv_out=_opt_str(lg.get("csv_out")),
                print_every=int(lg.get("print_every", 100)),
            ),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"invalid value: {e}") from e


def load_config(path: Optional[str]) -> DriverConfig:
    """YAML file -> DriverConfig. A missing path (None) yields the defaults."""
    if path is None:
        return DriverConfig()
    if not os.path.exists(path):
        raise ConfigError(f"config file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"{path}: {e}") from e
    return config_from_dict(raw)
