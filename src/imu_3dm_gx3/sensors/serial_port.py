from __future__ import annotations

import logging
from typing import Optional

import serial

from ..errors import TransportError

logger = logging.getLogger(__name__)


class SerialTransport:
    """
    Blocking pyserial link: 8N1, no flow control, no read timeout.

    read(n) returns exactly n bytes or raises; a silent device blocks forever.
    """

    def __init__(self, port: str, baud: int = 115200):
        self.port = port
        self.baud = int(baud)
        self.ser: Optional[serial.Serial] = None

    @property
    def is_open(self) -> bool:
        return self.ser is not None and self.ser.is_open

    def open(self) -> None:
        if self.is_open:
            return
        try:
            self.ser = serial.Serial(
                port=self.port,
                baudrate=self.baud,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                xonxoff=False,
                rtscts=False,
                dsrdtr=False,
                timeout=None,
            )
        except (serial.SerialException, ValueError, OSError) as e:
            self.ser = None
            raise TransportError(f"failed to open {self.port}: {e}") from e
        logger.info("opened %s @ %d", self.port, self.baud)

    def close(self) -> None:
        if self.ser is None:
            return
        try:
            self.ser.close()
        except (serial.SerialException, OSError) as e:
            logger.warning("error closing %s: %s", self.port, e)
        finally:
            self.ser = None
        logger.info("closed %s", self.port)

    def _require_open(self) -> serial.Serial:
        if self.ser is None or not self.ser.is_open:
            raise TransportError(f"{self.port} is not open")
        return self.ser

    def write(self, data: bytes) -> None:
        ser = self._require_open()
        try:
            ser.write(bytes(data))
            ser.flush()
        except (serial.SerialException, OSError) as e:
            raise TransportError(f"write to {self.port} failed: {e}") from e

    def read(self, n: int) -> bytes:
        ser = self._require_open()
        try:
            data = ser.read(n)
        except (serial.SerialException, OSError) as e:
            raise TransportError(f"read from {self.port} failed: {e}") from e
        if len(data) != n:
            raise TransportError(f"short read from {self.port}: wanted {n} bytes, got {len(data)}")
        return bytes(data)
