from __future__ import annotations

from typing import Optional


class DriverError(Exception):
    """Base class for everything the driver raises on purpose."""


class StartupError(DriverError):
    """Fatal: the device could not be brought into streaming mode."""

    def __init__(self, step: str, detail: str = "", cause: Optional[BaseException] = None):
        self.step = step
        self.detail = detail
        self.cause = cause
        msg = f"{step}: {detail}" if detail else step
        if cause is not None:
            msg = f"{msg} ({cause})"
        super().__init__(msg)


class ConfigError(StartupError):
    def __init__(self, detail: str):
        super().__init__("load config", detail)


class TransportError(DriverError):
    """Serial I/O failure (open/read/write)."""


class ChecksumError(DriverError):
    """Soft error: a frame or reply failed its 16-bit checksum."""

    def __init__(self, what: str, expected: int, received: int, data: bytes):
        self.what = what
        self.expected = int(expected)
        self.received = int(received)
        self.data = bytes(data)
        super().__init__(
            f"{what}: checksum mismatch (computed 0x{self.expected:04X}, received 0x{self.received:04X})"
        )


class FrameError(DriverError):
    """A buffer handed to the decoder does not have the expected shape."""
