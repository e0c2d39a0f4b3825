from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ..errors import FrameError
from .codec import extract_be_f32, extract_be_i32
from .commands import CONTINUOUS_FRAME_LENGTH


@dataclass(frozen=True)
class RawContinuousFrame:
    """
    Preset 0xCC frame in device units.

    accel_g: (3,) g
    gyro_rad_s: (3,) rad/s
    mag_gauss: (3,) gauss
    rotation: (3,3) orientation matrix, row-major (already transposed from the wire)
    timer_ticks: device timer count since the last reset (62500 ticks/s)
    """

    frame_type: int
    accel_g: np.ndarray
    gyro_rad_s: np.ndarray
    mag_gauss: np.ndarray
    rotation: np.ndarray
    timer_ticks: int


def _floats(data: bytes, k: int, n: int) -> tuple[np.ndarray, int]:
    out = np.empty(n, dtype=float)
    for i in range(n):
        out[i] = extract_be_f32(data[k:k + 4])
        k += 4
    return out, k


def decode_continuous_frame(data: bytes) -> RawContinuousFrame:
    """Decode a checksum-validated continuous frame. Does not check the checksum."""
    data = bytes(data)
    if len(data) != CONTINUOUS_FRAME_LENGTH:
        raise FrameError(f"continuous frame must be {CONTINUOUS_FRAME_LENGTH} bytes, got {len(data)}")

    k = 1
    accel, k = _floats(data, k, 3)
    gyro, k = _floats(data, k, 3)
    mag, k = _floats(data, k, 3)
    m, k = _floats(data, k, 9)
    ticks = extract_be_i32(data[k:k + 4])

    # wire order is column-major: R[i, j] = m[j*3 + i]
    rotation = m.reshape(3, 3).T.copy()

    return RawContinuousFrame(
        frame_type=data[0],
        accel_g=accel,
        gyro_rad_s=gyro,
        mag_gauss=mag,
        rotation=rotation,
        timer_ticks=ticks,
    )
