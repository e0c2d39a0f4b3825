from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import numpy as np

from ..errors import ChecksumError, TransportError
from ..protocol import commands as cmd
from ..protocol.codec import ensure_checksum, hexdump, rotation_to_quaternion
from ..protocol.decoder import decode_continuous_frame
from ..sensors.imu_base import ImuSample, MagSample, Publisher, Transport

logger = logging.getLogger(__name__)


@dataclass
class StreamStats:
    frames_read: int = 0
    frames_published: int = 0
    frames_dropped: int = 0


class StreamLoop:
    """
    Steady-state loop: read 79 bytes, validate, decode, timestamp, publish.

    A frame with a bad checksum is dropped and the next 79 bytes are read as the
    next frame; byte alignment is never re-searched. The loop exits when `shutdown`
    is set (checked between frames) or when the transport fails, and always sends
    the stop command, waits `settle_s` and closes the port on the way out.
    """

    def __init__(
        self,
        transport: Transport,
        publisher: Publisher,
        t0: float,
        *,
        frame_id: str = "imu",
        delay: float = 0.0,
        shutdown: Optional[threading.Event] = None,
        settle_s: float = cmd.SETTLE_S,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.transport = transport
        self.publisher = publisher
        self.t0 = float(t0)
        self.frame_id = str(frame_id)
        self.delay = float(delay)
        self.shutdown = shutdown if shutdown is not None else threading.Event()
        self.settle_s = float(settle_s)
        self.sleep = sleep
        self.stats = StreamStats()

    def convert(self, data: bytes) -> Tuple[ImuSample, MagSample]:
        """Validated frame bytes -> (ImuSample, MagSample) with a shared timestamp."""
        raw = decode_continuous_frame(data)
        stamp = self.t0 + raw.timer_ticks / cmd.TIMER_TICKS_PER_S - self.delay
        imu = ImuSample(
            timestamp=stamp,
            frame_id=self.frame_id,
            angular_velocity=raw.gyro_rad_s.copy(),
            linear_acceleration=raw.accel_g * cmd.GRAVITY_CONSTANT,
            orientation=rotation_to_quaternion(raw.rotation),
        )
        mag = MagSample(
            timestamp=stamp,
            frame_id=self.frame_id,
            magnetic_field=np.asarray(raw.mag_gauss, dtype=float).copy(),
        )
        return imu, mag

    def step(self) -> bool:
        """Read and handle one frame. Returns False if the frame was dropped."""
        data = self.transport.read(cmd.CONTINUOUS_FRAME_LENGTH)
        self.stats.frames_read += 1
        try:
            ensure_checksum(data, "continuous frame")
        except ChecksumError as e:
            self.stats.frames_dropped += 1
            logger.error("%s, dropped", e)
            logger.debug("dropped frame: %s", hexdump(e.data))
            return False

        imu, mag = self.convert(data)
        self.publisher.emit_imu(imu)
        self.publisher.emit_mag(mag)
        self.stats.frames_published += 1
        return True

    def stop_device(self) -> None:
        """Best-effort: stop continuous output and close the port."""
        try:
            if self.transport.is_open:
                self.transport.write(cmd.STOP_CONTINUOUS)
                logger.warning("stop imu streaming, waiting %.1fs", self.settle_s)
                self.sleep(self.settle_s)
        except TransportError as e:
            logger.error("failed to send stop command: %s", e)
        finally:
            self.transport.close()
            logger.info("serial port closed")

    def run(self) -> StreamStats:
        try:
            while not self.shutdown.is_set():
                self.step()
        except TransportError as e:
            logger.error("transport failure while streaming: %s", e)
            raise
        finally:
            self.stop_device()
            logger.info(
                "frames read=%d published=%d dropped=%d",
                self.stats.frames_read, self.stats.frames_published, self.stats.frames_dropped,
            )
        return self.stats
