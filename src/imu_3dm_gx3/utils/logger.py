from __future__ import annotations

import csv
import logging
import os
import sys
import time
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from ..sensors.imu_base import ImuSample, MagSample, Publisher

logger = logging.getLogger(__name__)

CSV_HEADER = [
    "t", "frame_id",
    "ax", "ay", "az",
    "gx", "gy", "gz",
    "qw", "qx", "qy", "qz",
    "mx", "my", "mz",
]


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    lvl = getattr(logging, str(level).upper(), logging.INFO)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=lvl,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )


def _v(x: np.ndarray, n: int) -> list[float]:
    a = np.asarray(x, dtype=float).reshape(n)
    return [float(c) for c in a]


@dataclass
class SampleCsvWriter:
    """
    One CSV row per decoded frame: the ImuSample and the MagSample that share its timestamp.

    An imu sample without a matching mag sample (or vice versa) is written with blank columns.
    """

    out_dir: str
    prefix: str = "imu"
    csv_path: Optional[str] = None

    def __post_init__(self) -> None:
        os.makedirs(self.out_dir, exist_ok=True)
        ts = time.strftime("%Y%m%d_%H%M%S")
        self.csv_path = os.path.join(self.out_dir, f"{self.prefix}_{ts}.csv")
        self._f = open(self.csv_path, "w", newline="", encoding="utf-8")
        self._w = csv.writer(self._f)
        self._w.writerow(CSV_HEADER)
        self._f.flush()
        self._pending: Optional[ImuSample] = None
        self.rows = 0

    def _write(self, imu: Optional[ImuSample], mag: Optional[MagSample]) -> None:
        ref = imu if imu is not None else mag
        assert ref is not None
        row: list = [float(ref.timestamp), ref.frame_id]
        if imu is not None:
            row += _v(imu.linear_acceleration, 3) + _v(imu.angular_velocity, 3) + _v(imu.orientation, 4)
        else:
            row += [""] * 10
        row += _v(mag.magnetic_field, 3) if mag is not None else [""] * 3
        self._w.writerow(row)
        self._f.flush()
        self.rows += 1

    def emit_imu(self, sample: ImuSample) -> None:
        if self._pending is not None:
            self._write(self._pending, None)
        self._pending = sample

    def emit_mag(self, sample: MagSample) -> None:
        pending, self._pending = self._pending, None
        if pending is not None and pending.timestamp != sample.timestamp:
            self._write(pending, None)
            pending = None
        self._write(pending, sample)

    def close(self) -> None:
        if self._f.closed:
            return
        if self._pending is not None:
            self._write(self._pending, None)
            self._pending = None
        self._f.close()


class LogPublisher:
    """Logs every `print_every`-th imu sample at INFO, the rest at DEBUG."""

    def __init__(self, print_every: int = 100):
        self.print_every = max(1, int(print_every))
        self.count = 0

    def emit_imu(self, sample: ImuSample) -> None:
        self.count += 1
        level = logging.INFO if (self.count % self.print_every) == 0 else logging.DEBUG
        if not logger.isEnabledFor(level):
            return
        a = sample.linear_acceleration
        g = sample.angular_velocity
        q = sample.orientation
        logger.log(
            level,
            "[%s] t=%.4f acc=(%.3f %.3f %.3f) gyr=(%.3f %.3f %.3f) q=(%.3f %.3f %.3f %.3f)",
            sample.frame_id, sample.timestamp, a[0], a[1], a[2], g[0], g[1], g[2], q[0], q[1], q[2], q[3],
        )

    def emit_mag(self, sample: MagSample) -> None:
        if logger.isEnabledFor(logging.DEBUG):
            m = sample.magnetic_field
            logger.debug("[%s] t=%.4f mag=(%.4f %.4f %.4f)", sample.frame_id, sample.timestamp, m[0], m[1], m[2])


class TeePublisher:
    def __init__(self, publishers: List[Publisher]):
        self.publishers = list(publishers)

    def emit_imu(self, sample: ImuSample) -> None:
        for p in self.publishers:
            p.emit_imu(sample)

    def emit_mag(self, sample: MagSample) -> None:
        for p in self.publishers:
            p.emit_mag(sample)
