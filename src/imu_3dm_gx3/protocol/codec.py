"""Stateless helpers for the 3DM-GX3 binary protocol."""
from __future__ import annotations

import struct

import numpy as np

from ..errors import ChecksumError
from ..quaternion import q_from_rotation_matrix

_BE_F32 = struct.Struct(">f")
_BE_I32 = struct.Struct(">i")


def checksum16(data: bytes) -> int:
    """16-bit sum (mod 65536) of every byte."""
    return sum(bytes(data)) & 0xFFFF


def received_checksum(data: bytes) -> int:
    return (data[-2] << 8) | data[-1]


def validate_checksum(data: bytes) -> bool:
    """True when the last two bytes (big-endian) match the sum of the others."""
    if len(data) < 2:
        return False
    return checksum16(data[:-2]) == received_checksum(data)


def ensure_checksum(data: bytes, what: str = "frame") -> bytes:
    if not validate_checksum(data):
        expected = checksum16(data[:-2]) if len(data) >= 2 else checksum16(data)
        received = received_checksum(data) if len(data) >= 2 else 0
        raise ChecksumError(what, expected, received, data)
    return data


def append_checksum(payload: bytes) -> bytes:
    c = checksum16(payload)
    return bytes(payload) + bytes([(c >> 8) & 0xFF, c & 0xFF])


def _four(b4: bytes) -> bytes:
    b4 = bytes(b4)
    if len(b4) != 4:
        raise ValueError(f"expected 4 bytes, got {len(b4)}")
    return b4


def extract_be_f32(b4: bytes) -> float:
    return float(_BE_F32.unpack(_four(b4))[0])


def extract_be_i32(b4: bytes) -> int:
    return int(_BE_I32.unpack(_four(b4))[0])


def rotation_to_quaternion(R: np.ndarray) -> np.ndarray:
    """(3,3) rotation matrix -> unit quaternion [w, x, y, z]."""
    return q_from_rotation_matrix(R)


def hexdump(data: bytes) -> str:
    return " ".join(f"{b:02x}" for b in bytes(data))
