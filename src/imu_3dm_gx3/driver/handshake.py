"""Startup sequence that brings the 3DM-GX3 from an unknown state into continuous mode."""
from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable, List, Optional

from ..errors import ChecksumError, StartupError, TransportError
from ..protocol import commands as cmd
from ..protocol.codec import ensure_checksum, hexdump
from ..sensors.imu_base import Transport

logger = logging.getLogger(__name__)


class HandshakeState(Enum):
    INIT = "init"
    STREAMING_STOPPED = "streaming_stopped"
    MODE_QUERIED = "mode_queried"
    REINIT_PENDING = "reinit_pending"
    MODE_ENSURED_ACTIVE = "mode_ensured_active"
    PRESET_SET = "preset_set"
    CONTINUOUS_MODE_SET = "continuous_mode_set"
    TIMER_RESET = "timer_reset"
    STREAMING = "streaming"
    FAILED = "failed"


class HandshakeEngine:
    """
    Runs once, synchronously, before streaming.

    The only recoverable step is the first mode query: on a bad reply the port is
    closed, reopened after `settle_s`, and the query resent, up to `reinit_attempts`
    times. Every other failure is fatal and raises StartupError with the port closed.
    run() returns t0, the wall-clock time at which the device timer was zeroed.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        reinit_attempts: int = 1,
        settle_s: float = cmd.SETTLE_S,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.transport = transport
        self.reinit_attempts = max(0, int(reinit_attempts))
        self.settle_s = float(settle_s)
        self.clock = clock
        self.sleep = sleep
        self.state = HandshakeState.INIT
        self.history: List[HandshakeState] = [HandshakeState.INIT]
        self.reported_mode: Optional[int] = None
        self.t0: Optional[float] = None

    def _enter(self, state: HandshakeState) -> None:
        self.state = state
        self.history.append(state)
        logger.debug("handshake -> %s", state.value)

    def _fail(self, step: str, detail: str = "", cause: Optional[BaseException] = None) -> StartupError:
        self._enter(HandshakeState.FAILED)
        if self.transport.is_open:
            self.transport.close()
        err = StartupError(step, detail, cause)
        logger.error("handshake failed: %s", err)
        return err

    def _exchange(self, command: bytes, reply_length: int, step: str) -> bytes:
        self.transport.write(command)
        reply = self.transport.read(reply_length)
        logger.debug("%s: sent [%s] got [%s]", step, hexdump(command), hexdump(reply))
        return ensure_checksum(reply, step)

    def _stop_streaming(self) -> None:
        self.transport.write(cmd.STOP_CONTINUOUS)
        logger.warning("stopping any continuous output, waiting %.1fs", self.settle_s)
        self.sleep(self.settle_s)
        self._enter(HandshakeState.STREAMING_STOPPED)

    def _query_mode(self) -> bytes:
        step = "get mode"
        query = cmd.mode_command(cmd.MODE_QUERY)
        attempt = 0
        while True:
            try:
                reply = self._exchange(query, cmd.MODE_REPLY_LENGTH, step)
            except ChecksumError as e:
                if attempt >= self.reinit_attempts:
                    raise self._fail(step, "bad reply after reinit", e) from e
                attempt += 1
                logger.error("%s failed (%s), reinitializing port (%d/%d)", step, e, attempt, self.reinit_attempts)
                self.transport.close()
                self._enter(HandshakeState.REINIT_PENDING)
                self.sleep(self.settle_s)
                try:
                    self.transport.open()
                except TransportError as oe:
                    raise self._fail("reopen port", "", oe) from oe
                continue
            self._enter(HandshakeState.MODE_QUERIED)
            return reply

    def _checked(self, command: bytes, reply_length: int, step: str, state: HandshakeState) -> bytes:
        try:
            reply = self._exchange(command, reply_length, step)
        except ChecksumError as e:
            raise self._fail(step, "bad reply", e) from e
        self._enter(state)
        return reply

    def run(self) -> float:
        step = "stop streaming"
        try:
            self._stop_streaming()

            step = "get mode"
            reply = self._query_mode()
            self.reported_mode = reply[cmd.MODE_REPLY_INDEX]

            step = "set mode to active"
            if self.reported_mode != cmd.DeviceMode.ACTIVE:
                self._checked(cmd.mode_command(cmd.DeviceMode.ACTIVE), cmd.MODE_REPLY_LENGTH,
                              step, HandshakeState.MODE_ENSURED_ACTIVE)
            else:
                self._enter(HandshakeState.MODE_ENSURED_ACTIVE)

            step = "set continuous mode preset"
            self._checked(cmd.CONTINUOUS_PRESET, cmd.PRESET_REPLY_LENGTH, step, HandshakeState.PRESET_SET)

            step = "set mode to continuous output"
            self._checked(cmd.mode_command(cmd.DeviceMode.CONTINUOUS), cmd.MODE_REPLY_LENGTH,
                          step, HandshakeState.CONTINUOUS_MODE_SET)

            step = "reset timer"
            self.transport.write(cmd.RESET_TIMER)
            # acknowledgment only, checksum not checked
            self.transport.read(cmd.RESET_TIMER_REPLY_LENGTH)
            self.t0 = float(self.clock())
            self._enter(HandshakeState.TIMER_RESET)
        except TransportError as e:
            raise self._fail(step, "transport error", e) from e

        self._enter(HandshakeState.STREAMING)
        logger.info("streaming data (t0=%.6f)", self.t0)
        return self.t0
