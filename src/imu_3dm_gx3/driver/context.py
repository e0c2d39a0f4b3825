from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from ..config import DriverConfig
from ..errors import StartupError, TransportError
from ..sensors.imu_base import Publisher, Transport
from ..sensors.serial_port import SerialTransport
from .handshake import HandshakeEngine
from .stream import StreamLoop, StreamStats

logger = logging.getLogger(__name__)


class DriverContext:
    """
    Owns the transport for the whole run and exposes `shutdown`, the token a signal
    handler sets to end streaming. Nothing else touches the port.
    """

    def __init__(
        self,
        cfg: DriverConfig,
        publisher: Publisher,
        *,
        transport: Optional[Transport] = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
        shutdown: Optional[threading.Event] = None,
    ):
        self.cfg = cfg
        self.publisher = publisher
        self.transport = transport if transport is not None else SerialTransport(cfg.require_port(), cfg.baud)
        self.clock = clock
        self.sleep = sleep
        self.shutdown = shutdown if shutdown is not None else threading.Event()
        self.loop: Optional[StreamLoop] = None

    def request_shutdown(self) -> None:
        self.shutdown.set()

    def start(self) -> StreamLoop:
        try:
            self.transport.open()
        except TransportError as e:
            raise StartupError("open port", "", e) from e

        engine = HandshakeEngine(
            self.transport,
            reinit_attempts=self.cfg.reinit_attempts,
            settle_s=self.cfg.settle_s,
            clock=self.clock,
            sleep=self.sleep,
        )
        t0 = engine.run()
        self.loop = StreamLoop(
            self.transport,
            self.publisher,
            t0,
            frame_id=self.cfg.frame_id,
            delay=self.cfg.delay,
            shutdown=self.shutdown,
            settle_s=self.cfg.settle_s,
            sleep=self.sleep,
        )
        return self.loop

    def run(self) -> StreamStats:
        loop = self.start()
        if self.shutdown.is_set():
            logger.info("shutdown requested during startup")
        return loop.run()
