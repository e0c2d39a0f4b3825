from __future__ import annotations

from enum import IntEnum

# 3DM-GX3-25 single byte protocol.
# Command bytes and reply lengths are fixed by the device firmware.

STOP_CONTINUOUS = bytes([0xFA, 0x75, 0xB4])  # no reply

MODE_PREFIX = bytes([0xD4, 0xA3, 0x47])
MODE_QUERY = 0x00
MODE_REPLY_LENGTH = 4
MODE_REPLY_INDEX = 2  # byte of the mode reply that carries the current mode

# Continuous preset 0xCC: accel + angular rate + mag + orientation matrix
CONTINUOUS_PRESET = bytes([0xD6, 0xC6, 0x6B, 0xCC])
PRESET_REPLY_LENGTH = 4

# Restart the timestamp counter at the given value (here: 0)
RESET_TIMER = bytes([0xD7, 0xC1, 0x29, 0x01, 0x00, 0x00, 0x00, 0x00])
RESET_TIMER_REPLY_LENGTH = 7

# Continuous frame: type byte + 19 x 4-byte fields + 2-byte checksum
CONTINUOUS_FRAME_LENGTH = 79
CONTINUOUS_FIELD_COUNT = 19

TIMER_TICKS_PER_S = 62500.0
GRAVITY_CONSTANT = 9.807
SETTLE_S = 0.1


class DeviceMode(IntEnum):
    ACTIVE = 0x01      # polled ("active") mode
    CONTINUOUS = 0x02


def mode_command(function: int) -> bytes:
    """D4 A3 47 <M>: M=0 query, otherwise the DeviceMode to switch to."""
    return MODE_PREFIX + bytes([int(function) & 0xFF])
