from __future__ import annotations

from typing import Optional

from ..errors import TransportError


class CaptureTransport:
    """
    Read-only transport over a raw byte capture of the continuous stream
    (e.g. `cat /dev/ttyUSB0 > imu.bin` after the device was put in continuous mode).

    Writes are accepted and discarded, so the stop command sent on shutdown is harmless.
    """

    def __init__(self, path: str, skip_bytes: int = 0):
        self.path = path
        self.skip_bytes = max(0, int(skip_bytes))
        self._data: Optional[bytes] = None
        self._pos = 0

    @property
    def is_open(self) -> bool:
        return self._data is not None

    @property
    def remaining(self) -> int:
        if self._data is None:
            return 0
        return len(self._data) - self._pos

    def open(self) -> None:
        if self._data is not None:
            return
        try:
            with open(self.path, "rb") as f:
                self._data = f.read()
        except OSError as e:
            raise TransportError(f"failed to open capture {self.path}: {e}") from e
        self._pos = min(self.skip_bytes, len(self._data))

    def close(self) -> None:
        self._data = None
        self._pos = 0

    def write(self, data: bytes) -> None:
        if self._data is None:
            raise TransportError(f"{self.path} is not open")

    def read(self, n: int) -> bytes:
        if self._data is None:
            raise TransportError(f"{self.path} is not open")
        if self.remaining < n:
            raise TransportError(f"end of capture {self.path}: wanted {n} bytes, {self.remaining} left")
        out = self._data[self._pos:self._pos + n]
        self._pos += n
        return out
