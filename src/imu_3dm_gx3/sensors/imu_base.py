from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import numpy as np


@dataclass(frozen=True)
class ImuSample:
    timestamp: float
    frame_id: str
    angular_velocity: np.ndarray  # (3,) rad/s
    linear_acceleration: np.ndarray  # (3,) m/s^2
    orientation: np.ndarray  # (4,) w, x, y, z
    # the device reports no orientation covariance
    orientation_known: bool = False


@dataclass(frozen=True)
class MagSample:
    timestamp: float
    frame_id: str
    magnetic_field: np.ndarray  # (3,) gauss


class Transport(Protocol):
    is_open: bool

    def open(self) -> None:
        ...

    def write(self, data: bytes) -> None:
        ...

    def read(self, n: int) -> bytes:
        ...

    def close(self) -> None:
        ...


class Publisher(Protocol):
    def emit_imu(self, sample: ImuSample) -> None:
        ...

    def emit_mag(self, sample: MagSample) -> None:
        ...
