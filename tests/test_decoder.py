import numpy as np
import pytest

from fakes import build_frame
from imu_3dm_gx3.errors import FrameError
from imu_3dm_gx3.protocol.commands import CONTINUOUS_FRAME_LENGTH
from imu_3dm_gx3.protocol.decoder import decode_continuous_frame


def test_frame_length_constant():
    assert len(build_frame()) == CONTINUOUS_FRAME_LENGTH == 79


def test_fields_in_order():
    frame = build_frame(
        accel=(0.5, -0.25, 1.0),
        gyro=(0.125, 0.0, -2.0),
        mag=(0.25, 0.5, -0.75),
        ticks=123456,
        frame_type=0xC8,
    )
    raw = decode_continuous_frame(frame)
    assert raw.frame_type == 0xC8
    assert np.array_equal(raw.accel_g, [0.5, -0.25, 1.0])
    assert np.array_equal(raw.gyro_rad_s, [0.125, 0.0, -2.0])
    assert np.array_equal(raw.mag_gauss, [0.25, 0.5, -0.75])
    assert raw.timer_ticks == 123456


def test_matrix_is_transposed_from_wire_order():
    wire = [float(v) for v in range(1, 10)]
    raw = decode_continuous_frame(build_frame(wire_matrix=wire))
    # R[i, j] == wire[j*3 + i]
    for i in range(3):
        for j in range(3):
            assert raw.rotation[i, j] == wire[j * 3 + i]
    assert raw.rotation[0, 1] == 4.0
    assert raw.rotation[1, 0] == 2.0


def test_negative_timer():
    raw = decode_continuous_frame(build_frame(ticks=-5))
    assert raw.timer_ticks == -5


def test_does_not_check_checksum():
    frame = bytearray(build_frame())
    frame[-1] ^= 0xFF
    raw = decode_continuous_frame(bytes(frame))
    assert raw.accel_g[2] == 1.0


@pytest.mark.parametrize("n", [0, 78, 80])
def test_wrong_length_rejected(n):
    with pytest.raises(FrameError):
        decode_continuous_frame(bytes(n))
